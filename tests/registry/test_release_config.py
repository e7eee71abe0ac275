from __future__ import annotations

import json
from pathlib import Path

import pytest
from filesorter_release.core import ConfigurationError
from filesorter_release.registry import (
    OsFamily,
    load_release_config,
    parse_release_config,
    resolve_config_dir,
)

REPO_CONFIG = Path(__file__).resolve().parents[2] / "config"


def test_shipped_config_loads() -> None:
    cfg = load_release_config(REPO_CONFIG)
    assert cfg.artifact_base == "filesorter"
    assert cfg.os == ["ubuntu-latest", "windows-latest", "macos-latest"]
    assert cfg.channels == ["stable", "nightly"]

    tm = {t.os_id: t for t in cfg.targets}
    assert tm["ubuntu-latest"].family is OsFamily.linux
    assert tm["windows-latest"].artifact_filename == "filesorter.exe"
    assert tm["macos-latest"].platform_slug == "macos-amd64"
    assert cfg.build.command[:2] == ["cargo", "+{channel}"]
    assert cfg.build.cross_compile is False
    assert cfg.postprocess.strip_command == ["strip", "{path}"]


def test_defaults_apply_when_tool_sections_omitted(raw_config) -> None:
    raw = raw_config()
    del raw["build"]
    del raw["postprocess"]
    cfg = parse_release_config(raw)
    assert cfg.build.env == {"CARGO_TARGET_DIR": "{target_dir}"}
    assert cfg.build.output == "{target_dir}/release/{artifact_filename}"


def test_unknown_family_is_configuration_error(raw_config) -> None:
    raw = raw_config()
    raw["targets"][0]["family"] = "solaris"
    with pytest.raises(ConfigurationError, match="targets/0/family"):
        parse_release_config(raw)


def test_missing_join_field_is_configuration_error(raw_config) -> None:
    raw = raw_config()
    del raw["targets"][1]["platform_slug"]
    with pytest.raises(ConfigurationError):
        parse_release_config(raw)


def test_duplicate_platform_slug_is_configuration_error(raw_config) -> None:
    raw = raw_config()
    raw["targets"][2]["platform_slug"] = "linux-amd64"
    with pytest.raises(ConfigurationError, match="platform_slug"):
        parse_release_config(raw)


def test_config_factory_hands_out_independent_targets(raw_config) -> None:
    first = raw_config()
    first["targets"][0]["family"] = "solaris"
    del first["targets"][1]["platform_slug"]

    second = raw_config()
    assert second["targets"][0]["family"] == "linux"
    assert second["targets"][1]["platform_slug"] == "windows-amd64"
    parse_release_config(second)


def test_unknown_key_rejected(raw_config) -> None:
    raw = raw_config()
    raw["upload"] = {"overwrite": False}
    with pytest.raises(ConfigurationError):
        parse_release_config(raw)


def test_invalid_json_file(tmp_path: Path) -> None:
    (tmp_path / "release.json").write_text("{ not json")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_release_config(tmp_path)


def test_resolve_config_dir_from_env(tmp_path: Path, raw_config, monkeypatch) -> None:
    (tmp_path / "release.json").write_text(json.dumps(raw_config()))
    monkeypatch.setenv("FILESORTER_RELEASE_CONFIG_DIR", str(tmp_path))
    assert resolve_config_dir() == tmp_path.resolve()


def test_resolve_config_dir_rejects_bad_explicit_dir(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="--config-dir"):
        resolve_config_dir(tmp_path)
