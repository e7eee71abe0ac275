from __future__ import annotations

import copy
import sys
from pathlib import Path
from typing import Any, Callable

import pytest
import structlog
from filesorter_release.registry import ReleaseConfig

# Stand-ins for cargo and strip. No braces: command strings go through
# str.format placeholder rendering.
FAKE_COMPILER = """
import pathlib, sys
out, slug, channel, failing = sys.argv[1:5]
if slug + "-" + channel in failing.split(","):
    print("error: could not compile filesorter")
    sys.exit(101)
p = pathlib.Path(out)
p.parent.mkdir(parents=True, exist_ok=True)
p.write_bytes(("binary " + slug + " " + channel + "\\n").encode() + b"DEBUG-SYMBOLS\\n")
print("Finished release")
"""

FAKE_STRIP = """
import pathlib, sys
p = pathlib.Path(sys.argv[1])
p.write_bytes(p.read_bytes().replace(b"DEBUG-SYMBOLS\\n", b""))
with open(sys.argv[2], "a") as f:
    f.write(sys.argv[1] + "\\n")
"""

TARGETS = {
    "ubuntu-latest": {
        "os_id": "ubuntu-latest",
        "family": "linux",
        "artifact_filename": "filesorter",
        "platform_slug": "linux-amd64",
    },
    "windows-latest": {
        "os_id": "windows-latest",
        "family": "windows",
        "artifact_filename": "filesorter.exe",
        "platform_slug": "windows-amd64",
    },
    "macos-latest": {
        "os_id": "macos-latest",
        "family": "macos",
        "artifact_filename": "filesorter",
        "platform_slug": "macos-amd64",
    },
}


@pytest.fixture
def strip_log(tmp_path: Path) -> Path:
    return tmp_path / "strip-calls.txt"


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    d = tmp_path / "src-tree"
    d.mkdir()
    (d / "Cargo.toml").write_text('[package]\nname = "filesorter"\n')
    return d


@pytest.fixture
def raw_config(strip_log: Path) -> Callable[..., dict[str, Any]]:
    def _make(
        *,
        os_ids: list[str] | None = None,
        channels: list[str] | None = None,
        failing: tuple[str, ...] = (),
        build_timeout_s: float = 60.0,
        cross_compile: bool = True,
    ) -> dict[str, Any]:
        os_ids = os_ids or ["ubuntu-latest", "windows-latest"]
        return {
            "spec_version": 1,
            "artifact_base": "filesorter",
            "os": os_ids,
            "channels": channels or ["stable"],
            "targets": copy.deepcopy(list(TARGETS.values())),
            "build": {
                "command": [
                    sys.executable,
                    "-c",
                    FAKE_COMPILER,
                    "{target_dir}/release/{artifact_filename}",
                    "{platform_slug}",
                    "{channel}",
                    ",".join(failing),
                ],
                "env": {"CARGO_TARGET_DIR": "{target_dir}"},
                "output": "{target_dir}/release/{artifact_filename}",
                "timeout_s": build_timeout_s,
                # The fake compiler emits a binary for any family.
                "cross_compile": cross_compile,
            },
            "postprocess": {
                "strip_command": [sys.executable, "-c", FAKE_STRIP, "{path}", str(strip_log)],
                "timeout_s": 60,
            },
        }

    return _make


@pytest.fixture
def make_config(raw_config: Callable[..., dict[str, Any]]) -> Callable[..., ReleaseConfig]:
    def _make(**kw: Any) -> ReleaseConfig:
        return ReleaseConfig.model_validate(raw_config(**kw))

    return _make


@pytest.fixture
def logger():
    return structlog.get_logger("tests")
