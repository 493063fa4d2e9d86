"""Experiment parameter schema and YAML loading."""

from retinoforge.config.schema import (
    ConfigurationError,
    ExperimentParams,
    ResolvedParams,
    resolve_params,
)
from retinoforge.config.yaml_utils import load_yaml, load_yaml_file

__all__ = [
    "ConfigurationError",
    "ExperimentParams",
    "ResolvedParams",
    "resolve_params",
    "load_yaml",
    "load_yaml_file",
]
