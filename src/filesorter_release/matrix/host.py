from __future__ import annotations

import os
import platform
from typing import Mapping

from filesorter_release.core import ConfigurationError
from filesorter_release.registry.models import OsFamily

# RUNNER_OS values set by GitHub Actions runners.
_RUNNER_OS = {
    "Linux": OsFamily.linux,
    "Windows": OsFamily.windows,
    "macOS": OsFamily.macos,
}

# platform.system() values.
_SYSTEM = {
    "Linux": OsFamily.linux,
    "Windows": OsFamily.windows,
    "Darwin": OsFamily.macos,
}


def host_family(
    environ: Mapping[str, str] | None = None, *, system: str | None = None
) -> OsFamily:
    """
    OS family of the machine running the builds. A CI runner's RUNNER_OS
    wins over platform.system().
    """
    env = os.environ if environ is None else environ

    runner_os = env.get("RUNNER_OS")
    if runner_os:
        try:
            return _RUNNER_OS[runner_os]
        except KeyError:
            raise ConfigurationError(f"Unsupported RUNNER_OS: {runner_os!r}") from None

    name = system if system is not None else platform.system()
    try:
        return _SYSTEM[name]
    except KeyError:
        raise ConfigurationError(f"Unsupported host operating system: {name!r}") from None
