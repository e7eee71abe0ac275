from __future__ import annotations

import sys
from pathlib import Path

import pytest
from filesorter_release.core import BuildFailure
from filesorter_release.matrix import expand_config
from filesorter_release.registry import OsFamily
from filesorter_release.stages.build import build_command, run_build


def _cell(cfg, cell_id: str):
    return next(c for c in expand_config(cfg) if c.cell_id == cell_id)


def test_build_command_renders_placeholders(make_config, tmp_path: Path) -> None:
    cfg = make_config()
    cell = _cell(cfg, "windows-amd64-stable")
    argv, env, output = build_command(
        cell, spec=cfg.build, source_dir=tmp_path, target_dir=tmp_path / "t"
    )
    assert argv[3:6] == [f"{tmp_path / 't'}/release/filesorter.exe", "windows-amd64", "stable"]
    assert env == {"CARGO_TARGET_DIR": str(tmp_path / "t")}
    assert output == tmp_path / "t" / "release" / "filesorter.exe"


def test_default_cargo_command(make_config, raw_config, tmp_path: Path) -> None:
    from filesorter_release.registry import parse_release_config

    raw = raw_config()
    del raw["build"]
    cfg = parse_release_config(raw)
    argv, _, output = build_command(
        _cell(cfg, "linux-amd64-stable"),
        spec=cfg.build,
        source_dir=tmp_path,
        target_dir=tmp_path / "t",
    )
    assert argv == ["cargo", "+stable", "build", "--release", "--verbose"]
    assert output.name == "filesorter"


def test_run_build_produces_artifact_at_expected_path(make_config, source_dir: Path, tmp_path: Path) -> None:
    cfg = make_config()
    cell = _cell(cfg, "linux-amd64-stable")
    art = run_build(
        cell,
        spec=cfg.build,
        source_dir=source_dir,
        work_dir=tmp_path / "cell",
        log_path=tmp_path / "cell" / "build.log",
    )
    assert art.cell == cell
    assert art.local_path == (tmp_path / "cell" / "target" / "release" / "filesorter").resolve()
    assert art.local_path.read_bytes().startswith(b"binary linux-amd64 stable")
    assert "Finished release" in (tmp_path / "cell" / "build.log").read_text()


def test_nonzero_exit_is_build_failure_with_log_tail(make_config, source_dir: Path, tmp_path: Path) -> None:
    cfg = make_config(failing=("linux-amd64-stable",))
    with pytest.raises(BuildFailure, match="exited with 101") as ei:
        run_build(
            _cell(cfg, "linux-amd64-stable"),
            spec=cfg.build,
            source_dir=source_dir,
            work_dir=tmp_path / "cell",
            log_path=tmp_path / "build.log",
        )
    assert "could not compile" in str(ei.value)


def test_missing_output_is_build_failure(make_config, source_dir: Path, tmp_path: Path) -> None:
    cfg = make_config()
    spec = cfg.build.model_copy(update={"command": [sys.executable, "-c", "pass"]})
    with pytest.raises(BuildFailure, match="is missing"):
        run_build(
            _cell(cfg, "linux-amd64-stable"),
            spec=spec,
            source_dir=source_dir,
            work_dir=tmp_path / "cell",
            log_path=tmp_path / "build.log",
        )


def test_missing_compiler_is_build_failure(make_config, source_dir: Path, tmp_path: Path) -> None:
    cfg = make_config()
    spec = cfg.build.model_copy(update={"command": ["no-such-cargo-binary", "build"]})
    with pytest.raises(BuildFailure, match="not found"):
        run_build(
            _cell(cfg, "linux-amd64-stable"),
            spec=spec,
            source_dir=source_dir,
            work_dir=tmp_path / "cell",
            log_path=tmp_path / "build.log",
        )


def test_hung_compiler_hits_cell_timeout(make_config, source_dir: Path, tmp_path: Path) -> None:
    cfg = make_config()
    spec = cfg.build.model_copy(
        update={"command": [sys.executable, "-c", "import time; time.sleep(30)"], "timeout_s": 0.5}
    )
    with pytest.raises(BuildFailure, match="timed out"):
        run_build(
            _cell(cfg, "linux-amd64-stable"),
            spec=spec,
            source_dir=source_dir,
            work_dir=tmp_path / "cell",
            log_path=tmp_path / "build.log",
        )


def test_foreign_family_is_refused_before_compiling(
    make_config, source_dir: Path, tmp_path: Path
) -> None:
    cfg = make_config(os_ids=["ubuntu-latest", "macos-latest"], cross_compile=False)
    log_path = tmp_path / "build.log"

    with pytest.raises(BuildFailure, match="linux host cannot build macos"):
        run_build(
            _cell(cfg, "macos-amd64-stable"),
            spec=cfg.build,
            source_dir=source_dir,
            work_dir=tmp_path / "cell",
            log_path=log_path,
            host=OsFamily.linux,
        )
    assert not log_path.exists()
    assert not (tmp_path / "cell").exists()


def test_own_family_builds_without_cross_compile(
    make_config, source_dir: Path, tmp_path: Path
) -> None:
    cfg = make_config(os_ids=["ubuntu-latest", "macos-latest"], cross_compile=False)
    art = run_build(
        _cell(cfg, "macos-amd64-stable"),
        spec=cfg.build,
        source_dir=source_dir,
        work_dir=tmp_path / "cell",
        log_path=tmp_path / "build.log",
        host=OsFamily.macos,
    )
    assert art.local_path.read_bytes().startswith(b"binary macos-amd64 stable")
