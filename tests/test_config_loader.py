from pathlib import Path

import pytest

from geosentiment.utils.config import get_section, load_config


def test_load_config(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("key: value\n", encoding="utf-8")
    config = load_config(config_file)
    assert config["key"] == "value"


def test_load_config_empty_file_is_empty_mapping(tmp_path: Path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("", encoding="utf-8")
    assert load_config(config_file) == {}


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_get_section_treats_null_as_empty():
    config = {"graph": None, "clustering": {"bandwidth": 0.1}}
    assert get_section(config, "graph") == {}
    assert get_section(config, "absent") == {}
    assert get_section(config, "clustering")["bandwidth"] == 0.1
