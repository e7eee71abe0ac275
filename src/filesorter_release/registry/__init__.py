from .loader import load_release_config, parse_release_config, resolve_config_dir
from .models import (
    BuildSpec,
    OsFamily,
    PostProcessSpec,
    ReleaseConfig,
    TargetSpec,
)

__all__ = [
    "BuildSpec",
    "OsFamily",
    "PostProcessSpec",
    "ReleaseConfig",
    "TargetSpec",
    "load_release_config",
    "parse_release_config",
    "resolve_config_dir",
]
