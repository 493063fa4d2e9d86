"""Tests for YAML loading utilities with duplicate key validation."""

from __future__ import annotations

import io
import pytest

from retinoforge.config.yaml_utils import load_yaml, load_yaml_file


def test_load_yaml_accepts_valid_mapping() -> None:
    yaml_text = """
    experiment:
      motion_steps: 8
      tr: 0.8
    """
    result = load_yaml(io.StringIO(yaml_text))
    assert result["experiment"]["motion_steps"] == 8
    assert result["experiment"]["tr"] == 0.8


def test_load_yaml_rejects_duplicate_keys() -> None:
    yaml_text = """
    experiment:
      motion_steps: 8
      motion_steps: 4
    """
    with pytest.raises(ValueError, match="Duplicate key 'motion_steps'"):
        load_yaml(io.StringIO(yaml_text))


def test_load_yaml_reports_duplicate_line() -> None:
    yaml_text = "tr: 0.8\nmotion_steps: 8\ntr: 1.0\n"
    with pytest.raises(ValueError, match=r"line 3"):
        load_yaml(io.StringIO(yaml_text))


def test_load_yaml_allows_merge_keys() -> None:
    yaml_text = """
    base: &base
      motion_steps: 8
      tr: 0.8
    experiment:
      <<: *base
      tr: 1.0
    """
    result = load_yaml(io.StringIO(yaml_text))
    assert result["experiment"] == {"motion_steps": 8, "tr": 1.0}


def test_load_yaml_file_missing(tmp_path) -> None:
    with pytest.raises(FileNotFoundError):
        load_yaml_file(tmp_path / "missing.yml")


def test_load_yaml_file_empty_gives_empty_dict(tmp_path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("")
    assert load_yaml_file(path) == {}


def test_load_yaml_file_rejects_non_mapping(tmp_path) -> None:
    path = tmp_path / "list.yml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ValueError, match="mapping"):
        load_yaml_file(path)


def test_load_yaml_file_fixture(small_yaml) -> None:
    data = load_yaml_file(small_yaml)
    assert data["experiment"]["resolution"] == [80, 40]
