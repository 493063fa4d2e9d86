"""YAML loading for experiment files.

Plain ``yaml.safe_load`` keeps the last of two repeated keys, so a typo such
as ``motion_steps`` given twice would silently change the experiment. The
loader here refuses such documents instead.
"""

from __future__ import annotations

from collections.abc import Hashable
from pathlib import Path
from typing import Any, Dict, TextIO

import yaml

_MERGE_TAG = "tag:yaml.org,2002:merge"


class ExperimentLoader(yaml.SafeLoader):
    """Safe loader that raises on a mapping with a repeated key."""

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> Dict[Any, Any]:
        seen = set()
        for key_node, _ in node.value:
            if key_node.tag == _MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                line = key_node.start_mark.line + 1
                raise ValueError(f"Duplicate key '{key}' in YAML mapping (line {line}).")
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


def load_yaml(stream: TextIO) -> Any:
    """Parse one YAML document, rejecting repeated mapping keys.

    Raises:
        ValueError: If any mapping repeats a key.
    """
    return yaml.load(stream, Loader=ExperimentLoader)


def load_yaml_file(path: str | Path) -> Dict[str, Any]:
    """Load an experiment YAML file into a dict.

    An empty file yields an empty dict so every parameter takes its default.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the document is not a mapping or repeats a key.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = load_yaml(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data
