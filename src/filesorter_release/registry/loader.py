from __future__ import annotations

import json
import os
from pathlib import Path

import jsonschema
from filesorter_release.core import ConfigurationError, read_json
from pydantic import TypeAdapter, ValidationError

from .models import ReleaseConfig

CONFIG_FILENAME = "release.json"
CONFIG_DIR_ENV = "FILESORTER_RELEASE_CONFIG_DIR"


def resolve_config_dir(explicit: Path | None = None) -> Path:
    """
    Resolve the directory containing release.json.

    Priority:
      1) explicit argument
      2) env FILESORTER_RELEASE_CONFIG_DIR
      3) ./config
      4) discover ./config by walking upwards from this module (dev checkout)
    """

    def _is_config_dir(p: Path) -> bool:
        return (p / CONFIG_FILENAME).is_file()

    if explicit is not None:
        p = Path(explicit).expanduser().resolve()
        if _is_config_dir(p):
            return p
        raise ConfigurationError(
            f"--config-dir does not look like a config directory: {p}"
        )

    env = os.environ.get(CONFIG_DIR_ENV)
    if env:
        p = Path(env).expanduser().resolve()
        if _is_config_dir(p):
            return p
        raise ConfigurationError(
            f"{CONFIG_DIR_ENV} does not look like a config directory: {p}"
        )

    cand = Path.cwd() / "config"
    if _is_config_dir(cand):
        return cand.resolve()

    here = Path(__file__).resolve()
    for parent in here.parents:
        cand = parent / "config"
        if _is_config_dir(cand):
            return cand.resolve()

    raise ConfigurationError(
        "Could not resolve release config directory. "
        f"Pass --config-dir or set {CONFIG_DIR_ENV}."
    )


def schema_for_release_config() -> dict:
    return TypeAdapter(ReleaseConfig).json_schema()


def parse_release_config(raw: dict) -> ReleaseConfig:
    """
    Validate a raw config document: JSON schema first (readable paths for
    hand-edited files), then the model validators.
    """
    try:
        jsonschema.validate(instance=raw, schema=schema_for_release_config())
    except jsonschema.ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigurationError(f"Invalid release config at {where}: {e.message}") from e

    try:
        return ReleaseConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid release config: {e}") from e


def load_release_config(config_dir: Path | None = None) -> ReleaseConfig:
    cfg_dir = resolve_config_dir(config_dir)
    path = cfg_dir / CONFIG_FILENAME
    try:
        raw = read_json(path)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"{path} is not valid JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")
    return parse_release_config(raw)
