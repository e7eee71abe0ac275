from __future__ import annotations

import threading
from pathlib import Path

from filesorter_release.core import (
    BuildFailure,
    ILogger,
    ToolError,
    run_tool,
    tail_lines,
)
from filesorter_release.matrix import MatrixCell, host_family
from filesorter_release.pipeline.types import BuildArtifact
from filesorter_release.registry import BuildSpec, OsFamily


def _placeholders(cell: MatrixCell, *, source_dir: Path, target_dir: Path) -> dict[str, str]:
    return {
        "channel": cell.channel,
        "os": cell.os_id,
        "platform_slug": cell.platform_slug,
        "artifact_filename": cell.target.artifact_filename,
        "source_dir": str(source_dir),
        "target_dir": str(target_dir),
    }


def _render(template: str, values: dict[str, str]) -> str:
    try:
        return template.format(**values)
    except (KeyError, IndexError, ValueError) as e:
        raise BuildFailure(f"Bad placeholder in build template {template!r}: {e}") from e


def build_command(
    cell: MatrixCell, *, spec: BuildSpec, source_dir: Path, target_dir: Path
) -> tuple[list[str], dict[str, str], Path]:
    """
    Resolve (argv, env, expected output path) for one cell.
    """
    values = _placeholders(cell, source_dir=source_dir, target_dir=target_dir)
    argv = [_render(a, values) for a in spec.command]
    env = {k: _render(v, values) for k, v in spec.env.items()}

    output = Path(_render(spec.output, values))
    if not output.is_absolute():
        output = source_dir / output
    return argv, env, output


def run_build(
    cell: MatrixCell,
    *,
    spec: BuildSpec,
    source_dir: Path,
    work_dir: Path,
    log_path: Path,
    host: OsFamily | None = None,
    cancel: threading.Event | None = None,
    logger: ILogger | None = None,
) -> BuildArtifact:
    """
    Compile one cell. Raises BuildFailure when the host cannot build the
    cell's OS family, on a nonzero exit, a missing compiler, a timeout, or
    when the expected output file is absent.
    """
    if not spec.cross_compile:
        host = host or host_family()
        if cell.family != host:
            raise BuildFailure(
                f"{cell.cell_id}: a {host} host cannot build {cell.family} binaries "
                "(run this cell on its own OS or enable build.cross_compile)"
            )

    source_dir = Path(source_dir).resolve()
    target_dir = Path(work_dir).resolve() / "target"
    target_dir.mkdir(parents=True, exist_ok=True)

    argv, env, output = build_command(
        cell, spec=spec, source_dir=source_dir, target_dir=target_dir
    )
    if logger is not None:
        logger.info("Compiling", argv=argv, output=str(output))

    try:
        res = run_tool(
            argv,
            cwd=source_dir,
            env=env,
            log_path=log_path,
            timeout_s=spec.timeout_s,
            cancel=cancel,
        )
    except ToolError as e:
        raise BuildFailure(f"{cell.cell_id}: {e}") from e

    if not res.ok:
        tail = tail_lines(log_path)
        msg = f"{cell.cell_id}: compiler exited with {res.returncode}"
        if tail:
            msg += f"\n{tail}"
        raise BuildFailure(msg)

    if not output.is_file():
        raise BuildFailure(f"{cell.cell_id}: compiler succeeded but {output} is missing")

    return BuildArtifact(local_path=output, cell=cell)
