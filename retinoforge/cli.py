"""Command-line interface for RetinoForge.

This module provides CLI commands for generating bar stimuli, validating
experiment files, inspecting derived quantities and previewing frames.

Example:
    $ retinoforge make experiment.yml --output bars.pt
    $ retinoforge make experiment.yml --output bars.h5 --contrast 0.5
    $ retinoforge validate experiment.yml
    $ retinoforge info
    $ retinoforge visualize experiment.yml --save preview.png
"""

import argparse
import dataclasses
import logging
import sys
from typing import Any, Dict, Optional

from retinoforge.config.schema import ExperimentParams, ResolvedParams, resolve_params
from retinoforge.config.yaml_utils import load_yaml_file
from retinoforge.core.persistence import SAVE_FORMATS, save_stimulus
from retinoforge.core.pipeline import BarStimulus, BarStimulusPipeline


def load_params(config_path: Optional[str], contrast: Optional[float] = None) -> ExperimentParams:
    """Load experiment parameters from a YAML file, applying CLI overrides.

    Args:
        config_path: Path to YAML file, or None for defaults.
        contrast: Optional contrast override.

    Returns:
        Experiment parameter record (not yet validated).
    """
    config: Dict[str, Any] = load_yaml_file(config_path) if config_path else {}
    params = ExperimentParams.from_dict(config)
    if contrast is not None:
        params = dataclasses.replace(params, contrast=contrast)
    return params


def print_resolved(resolved: ResolvedParams) -> None:
    """Print resolved parameters and derived counts."""
    p = resolved.params
    print(f"  Resolution: {p.resolution[0]}x{p.resolution[1]} px")
    print(f"  Frame size: {resolved.frame_size}x{resolved.frame_size} px")
    print(f"  Outer radius: {resolved.outer_radius:g} px, bar width: {resolved.ring_width:g} px")
    print(f"  Intensity range: {resolved.intensity_range}, background: {p.background_intensity}")
    print(f"  TR: {p.sampling_interval:g} s, sweep: {p.sweep_duration:g} s, scan: {p.scan_duration:g} s")
    print(f"  Steps per sweep: {resolved.steps_per_sweep}, motion steps: {p.motion_steps}")
    print(f"  Cycle: {resolved.cycle_duration:g} s x {resolved.num_cycles}, "
          f"buffer: {resolved.buffer_time:g} s ({resolved.buffer_length} samples)")
    print(f"  Library size: {resolved.library_size} frames")
    print(f"  Sequence length: {resolved.sequence_length} samples")


def cmd_make(args: argparse.Namespace) -> int:
    """Generate a stimulus and save it.

    Args:
        args: Command-line arguments with config, output, format, contrast,
            device and quiet.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    try:
        params = load_params(args.config, args.contrast)
        pipeline = BarStimulusPipeline(params, device=args.device)

        verbose = not args.quiet
        if verbose:
            print(f"Loaded parameters from {args.config}")
            print_resolved(pipeline.resolved)

        stimulus = pipeline.run(verbose=verbose)
        output_path = save_stimulus(stimulus, args.output, args.format)

        if verbose:
            summary = stimulus.summary()
            print(f"\nSaved {summary['num_images']} images and "
                  f"{summary['sequence_length']} samples "
                  f"({summary['total_duration']:g} s) to {output_path}")
        return 0

    except Exception as e:
        print(f"Error generating stimulus: {e}", file=sys.stderr)
        return 1


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate an experiment file without rendering.

    Returns:
        Exit code (0 for valid, 1 for invalid).
    """
    try:
        resolved = resolve_params(load_params(args.config))
    except FileNotFoundError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"❌ Configuration validation failed: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"❌ Error validating config: {e}", file=sys.stderr)
        return 1

    print(f"✓ Configuration is valid: {args.config}")
    print_resolved(resolved)
    return 0


def cmd_info(args: argparse.Namespace) -> int:
    """Print resolved parameters (defaults when no config is given)."""
    try:
        resolved = resolve_params(load_params(args.config, args.contrast))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    source = args.config if args.config else "defaults"
    print(f"Experiment parameters ({source}):")
    print_resolved(resolved)
    return 0


def save_preview(stimulus: BarStimulus, save_path: str, num_frames: int = 12) -> None:
    """Save a montage of evenly spaced presented frames."""
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    num_frames = max(1, min(num_frames, len(stimulus.sequence)))
    cols = min(num_frames, 6)
    rows = (num_frames + cols - 1) // cols
    picks = [int(i * len(stimulus.sequence) / num_frames) for i in range(num_frames)]

    fig, axes = plt.subplots(rows, cols, figsize=(2 * cols, 2 * rows), squeeze=False)
    for ax in axes.flat:
        ax.axis("off")
    for ax, sample in zip(axes.flat, picks):
        frame = stimulus.images[stimulus.sequence[sample]].cpu().numpy()
        ax.imshow(frame, cmap="gray", vmin=0, vmax=255)
        ax.set_title(f"t={stimulus.timing[sample].item():.1f}s", fontsize=8)

    plt.tight_layout()
    fig.savefig(save_path, dpi=100)
    plt.close(fig)


def cmd_visualize(args: argparse.Namespace) -> int:
    """Render a stimulus and save a preview montage.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    try:
        pipeline = BarStimulusPipeline(load_params(args.config), device=args.device)
        print(f"Rendering stimulus from {args.config}...")
        stimulus = pipeline.run()
        save_preview(stimulus, args.save, args.frames)
        print(f"Preview saved to {args.save}")
        return 0

    except Exception as e:
        print(f"Error visualizing stimulus: {e}", file=sys.stderr)
        return 1


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog='retinoforge',
        description='RetinoForge: drifting bar stimuli for pRF mapping'
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level for library messages (default: WARNING)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Make command
    make_parser = subparsers.add_parser(
        'make',
        help='Generate a stimulus and save it'
    )
    make_parser.add_argument(
        'config',
        help='Path to YAML experiment file'
    )
    make_parser.add_argument(
        '--output',
        required=True,
        help='Output file path (.pt for PyTorch, .h5 for HDF5)'
    )
    make_parser.add_argument(
        '--format',
        choices=list(SAVE_FORMATS),
        help='Override output format (default: inferred from suffix)'
    )
    make_parser.add_argument(
        '--contrast',
        type=float,
        help='Override contrast (0-1)'
    )
    make_parser.add_argument(
        '--device',
        default='cpu',
        choices=['cpu', 'cuda', 'mps'],
        help='Rendering device (default: cpu)'
    )
    make_parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress progress output'
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        'validate',
        help='Validate YAML experiment file without rendering'
    )
    validate_parser.add_argument(
        'config',
        help='Path to YAML experiment file'
    )

    # Info command
    info_parser = subparsers.add_parser(
        'info',
        help='Show resolved parameters and derived counts'
    )
    info_parser.add_argument(
        'config',
        nargs='?',
        help='Path to YAML experiment file (default: built-in defaults)'
    )
    info_parser.add_argument(
        '--contrast',
        type=float,
        help='Override contrast (0-1)'
    )

    # Visualize command
    viz_parser = subparsers.add_parser(
        'visualize',
        help='Save a montage of presented frames'
    )
    viz_parser.add_argument(
        'config',
        help='Path to YAML experiment file'
    )
    viz_parser.add_argument(
        '--save',
        required=True,
        help='Output image path (e.g. preview.png)'
    )
    viz_parser.add_argument(
        '--frames',
        type=int,
        default=12,
        help='Number of frames in the montage (default: 12)'
    )
    viz_parser.add_argument(
        '--device',
        default='cpu',
        choices=['cpu', 'cuda', 'mps'],
        help='Rendering device (default: cpu)'
    )

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
    )

    # Route to command handlers
    commands = {
        'make': cmd_make,
        'validate': cmd_validate,
        'info': cmd_info,
        'visualize': cmd_visualize,
    }

    handler = commands.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
