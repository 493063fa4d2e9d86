"""Saving and loading generated bar stimuli.

Two container formats are supported:

- ``pytorch``: a single ``torch.save`` dict (default, ``.pt``)
- ``hdf5``: gzip-compressed datasets via h5py (``.h5``)

Both store the frame library (``images``), the presentation sequence
(``stimulus/seq``), its timing (``stimulus/seqtiming``) and the experiment
parameters, which is enough to restore a :class:`BarStimulus` exactly.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

import numpy as np
import torch

import retinoforge
from retinoforge.config.schema import ExperimentParams, resolve_params
from retinoforge.core.pipeline import BarStimulus
from retinoforge.core.timing import total_duration

SAVE_FORMATS = ("pytorch", "hdf5")
_HDF5_SUFFIXES = (".h5", ".hdf5")


def _metadata() -> Dict[str, Any]:
    return {
        "timestamp": datetime.now().isoformat(),
        "version": retinoforge.__version__,
    }


def infer_format(path: str | Path) -> str:
    """Pick the container format from a file suffix."""
    return "hdf5" if Path(path).suffix.lower() in _HDF5_SUFFIXES else "pytorch"


def save_stimulus(
    stimulus: BarStimulus,
    output_path: str | Path,
    save_format: str | None = None,
) -> Path:
    """Write a stimulus to disk.

    Args:
        stimulus: Generated stimulus.
        output_path: Destination file; parent directories are created.
        save_format: 'pytorch' or 'hdf5'; inferred from the suffix if None.

    Returns:
        Path of the written file.

    Raises:
        ValueError: If ``save_format`` is unknown.
        ImportError: If HDF5 output is requested without h5py installed.
    """
    output_path = Path(output_path)
    save_format = save_format or infer_format(output_path)
    if save_format not in SAVE_FORMATS:
        raise ValueError(
            f"Unknown save_format: {save_format}. Must be one of: {', '.join(SAVE_FORMATS)}"
        )
    output_path.parent.mkdir(parents=True, exist_ok=True)

    if save_format == "hdf5":
        _save_hdf5(stimulus, output_path)
    else:
        _save_pytorch(stimulus, output_path)
    return output_path


def _save_pytorch(stimulus: BarStimulus, output_path: Path) -> None:
    torch.save(
        {
            "metadata": _metadata(),
            "params": stimulus.params.to_dict(),
            "images": stimulus.images.cpu(),
            "stimulus": {
                "seq": stimulus.sequence.cpu(),
                "seqtiming": stimulus.timing.cpu(),
            },
            "blank_index": stimulus.blank_index,
        },
        output_path,
    )


def _save_hdf5(stimulus: BarStimulus, output_path: Path) -> None:
    try:
        import h5py
    except ImportError:
        raise ImportError(
            "h5py is required for HDF5 output. Install with: pip install h5py"
        )

    with h5py.File(output_path, "w") as f:
        for key, value in _metadata().items():
            f.attrs[key] = value
        f.attrs["params"] = json.dumps(stimulus.params.to_dict())
        f.attrs["blank_index"] = stimulus.blank_index

        f.create_dataset(
            "images",
            data=stimulus.images.cpu().numpy(),
            compression="gzip",
            compression_opts=4,
        )
        stim_grp = f.create_group("stimulus")
        stim_grp.create_dataset("seq", data=stimulus.sequence.cpu().numpy())
        stim_grp.create_dataset("seqtiming", data=stimulus.timing.cpu().numpy())


def _restore(
    params: Dict[str, Any],
    images: torch.Tensor,
    sequence: torch.Tensor,
    timing: torch.Tensor,
    blank_index: int,
) -> BarStimulus:
    resolved = resolve_params(ExperimentParams.from_dict(params))
    return BarStimulus(
        images=images,
        sequence=sequence,
        timing=timing,
        resolved=resolved,
        blank_index=int(blank_index),
        total_duration=total_duration(
            len(sequence), resolved.motion_steps, resolved.params.sampling_interval
        ),
    )


def load_stimulus(path: str | Path) -> BarStimulus:
    """Read a stimulus written by :func:`save_stimulus`.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        ImportError: If the file is HDF5 and h5py is not installed.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Stimulus file not found: {path}")

    if infer_format(path) == "hdf5":
        try:
            import h5py
        except ImportError:
            raise ImportError(
                "h5py is required to read HDF5 stimuli. Install with: pip install h5py"
            )

        with h5py.File(path, "r") as f:
            return _restore(
                json.loads(f.attrs["params"]),
                torch.from_numpy(np.asarray(f["images"])),
                torch.from_numpy(np.asarray(f["stimulus/seq"])),
                torch.from_numpy(np.asarray(f["stimulus/seqtiming"])),
                f.attrs["blank_index"],
            )

    data = torch.load(path, map_location="cpu", weights_only=False)
    return _restore(
        data["params"],
        data["images"],
        data["stimulus"]["seq"],
        data["stimulus"]["seqtiming"],
        data["blank_index"],
    )
