from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path

from filesorter_release.core import (
    ConfigurationError,
    Settings,
    bind,
    configure_logging,
    get_logger,
    load_settings,
    new_run_id,
)
from filesorter_release.dispatch import (
    DispatchPolicy,
    Released,
    TriggerEvent,
    classify_trigger,
    event_from_github_env,
)
from filesorter_release.matrix import MatrixCell, expand_config, host_family, select_cells
from filesorter_release.pipeline.report import RunReport
from filesorter_release.pipeline.runner import MatrixRunner, RunnerConfig
from filesorter_release.pipeline.stage import Stage
from filesorter_release.registry import load_release_config
from filesorter_release.stages import stage_build, stage_postprocess, stage_publish
from filesorter_release.stages.publish.naming import artifact_name
from filesorter_release.stages.publish.sinks import (
    DirectoryReleaseSink,
    GitHubReleaseSink,
    ReleaseSink,
)
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

console = Console()

EXIT_CONFIG = 2

_CELL_STAGES = (
    ("build", stage_build),
    ("postprocess", stage_postprocess),
    ("publish", stage_publish),
)


@dataclass(frozen=True, slots=True)
class _CommonArgs:
    cmd: str
    config_dir: Path | None
    os_ids: list[str] | None
    channels: list[str] | None


def _add_common_args(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--config-dir",
        default=None,
        help=(
            "Directory containing release.json. "
            "If omitted: uses FILESORTER_RELEASE_CONFIG_DIR or ./config."
        ),
    )
    p.add_argument(
        "--os",
        action="append",
        dest="os_ids",
        help="Only run cells for this operating system (repeatable).",
    )
    p.add_argument(
        "--channel",
        action="append",
        dest="channels",
        help="Only run cells for this toolchain channel (repeatable).",
    )


def _add_trigger_args(p: argparse.ArgumentParser) -> None:
    g = p.add_mutually_exclusive_group(required=True)
    # No `choices`: unknown kinds must fail as configuration errors.
    g.add_argument("--event", help="Trigger kind: code-change or tag-push")
    g.add_argument(
        "--github-env",
        action="store_true",
        help="Derive the trigger from GITHUB_EVENT_NAME / GITHUB_REF.",
    )
    p.add_argument("--tag", default=None, help="Tag name for --event tag-push")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="filesorter-release")
    sub = p.add_subparsers(dest="cmd", required=True)

    run = sub.add_parser("run", help="Build, post-process and publish every matrix cell")
    _add_common_args(run)
    _add_trigger_args(run)
    run.add_argument("--source-dir", default=None, help="Source tree to compile")
    run.add_argument("--max-workers", type=int, default=None, help="Parallel cells")

    matrix = sub.add_parser("matrix", help="Show the expanded build matrix")
    _add_common_args(matrix)

    classify = sub.add_parser("classify", help="Show the dispatch policy for a trigger")
    _add_trigger_args(classify)

    return p


def _common(args: argparse.Namespace) -> _CommonArgs:
    return _CommonArgs(
        cmd=str(args.cmd),
        config_dir=Path(args.config_dir) if getattr(args, "config_dir", None) else None,
        os_ids=list(args.os_ids) if getattr(args, "os_ids", None) else None,
        channels=list(args.channels) if getattr(args, "channels", None) else None,
    )


def _trigger(args: argparse.Namespace) -> TriggerEvent:
    if args.github_env:
        return event_from_github_env(os.environ)
    return TriggerEvent(kind=str(args.event), tag=args.tag)


def make_release_sink(s: Settings) -> ReleaseSink:
    if s.release_sink == "github":
        if not s.github_repository:
            raise ConfigurationError(
                "release_sink=github requires FILESORTER_RELEASE_GITHUB_REPOSITORY"
            )
        if s.publish_token is None or not s.publish_token.get_secret_value():
            raise ConfigurationError(
                "release_sink=github requires FILESORTER_RELEASE_PUBLISH_TOKEN or GITHUB_TOKEN"
            )
        return GitHubReleaseSink(
            repository=s.github_repository,
            token=s.publish_token,
            api_url=s.github_api_url,
            uploads_url=s.github_uploads_url,
        )
    return DirectoryReleaseSink(s.release_root)


def build_stages() -> list[Stage]:
    return [MatrixRunner.fn(stage_id=sid, fn=fn) for sid, fn in _CELL_STAGES]


def _policy_text(policy: DispatchPolicy) -> str:
    if isinstance(policy, Released):
        return f"released (tag={policy.tag})"
    return "ephemeral"


def _matrix_table(cells: list[MatrixCell], *, artifact_base: str | None = None) -> Table:
    tbl = Table(title="Matrix", show_header=True)
    for col in ("cell", "os", "family", "channel", "artifact"):
        tbl.add_column(col)
    if artifact_base:
        tbl.add_column("published as")
    for c in cells:
        row = [c.cell_id, c.os_id, str(c.family), c.channel, c.target.artifact_filename]
        if artifact_base:
            row.append(artifact_name(artifact_base, c))
        tbl.add_row(*row)
    return tbl


def _result_table(report: RunReport) -> Table:
    tbl = Table(title="Result", show_header=True)
    for col in ("cell", "status", "stage", "detail"):
        tbl.add_column(col)
    for c in report.cells:
        if c.ok:
            status = "[green]ok[/green]"
            stage = "publish"
            detail = c.published["location"] if c.published else ""
        else:
            colour = "yellow" if c.status == "cancelled" else "red"
            status = f"[{colour}]{c.status}[/{colour}]"
            stage = c.error.stage if c.error else ""
            detail = (c.error.message.splitlines() or [""])[0] if c.error else ""
        tbl.add_row(c.cell_id, status, stage, detail)
    return tbl


def _cmd_matrix(common: _CommonArgs) -> int:
    cfg = load_release_config(common.config_dir)
    cells = select_cells(expand_config(cfg), os_ids=common.os_ids, channels=common.channels)
    console.print(_matrix_table(cells, artifact_base=cfg.artifact_base))
    return 0


def _cmd_classify(args: argparse.Namespace) -> int:
    policy = classify_trigger(_trigger(args))
    console.print(f"policy: [bold]{_policy_text(policy)}[/bold]")
    return 0


def _cmd_run(args: argparse.Namespace, common: _CommonArgs, s: Settings) -> int:
    log = get_logger("filesorter_release")

    # Everything that can be misconfigured is resolved before any cell starts.
    policy = classify_trigger(_trigger(args))
    cfg = load_release_config(common.config_dir)

    # A CI runner builds only the cells of its own OS unless told otherwise.
    families = None
    if args.github_env and not common.os_ids and not cfg.build.cross_compile:
        families = [host_family()]
    cells = select_cells(
        expand_config(cfg),
        os_ids=common.os_ids,
        channels=common.channels,
        families=families,
    )
    release_sink = make_release_sink(s) if isinstance(policy, Released) else None

    run_id = new_run_id()
    bind(run_id=run_id, command=common.cmd, policy=policy.kind)

    source_dir = Path(args.source_dir) if args.source_dir else s.source_dir
    max_workers = args.max_workers or s.max_workers

    console.print(
        Panel.fit(
            Text(
                f"filesorter-release - {common.cmd}\n"
                f"run_id={run_id}\n"
                f"policy={_policy_text(policy)}\n"
                f"cells={len(cells)}",
                style="bold",
            ),
            title="Run",
        )
    )

    runner = MatrixRunner(
        stages=build_stages(),
        cfg=RunnerConfig(max_workers=max_workers),
        logger=log,
    )
    try:
        exit_code, report, report_path = runner.run(
            cells=cells,
            config=cfg,
            policy=policy,
            source_dir=source_dir,
            run_root=s.run_root,
            release_sink=release_sink,
            run_id=run_id,
            meta={
                "config_dir": str(common.config_dir) if common.config_dir else None,
                "source_dir": str(source_dir),
                "os_filter": common.os_ids,
                "channel_filter": common.channels,
            },
        )
    finally:
        if isinstance(release_sink, GitHubReleaseSink):
            release_sink.close()

    console.print(_result_table(report))
    console.print(f"report: {report_path}")
    return int(exit_code)


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    common = _common(args)

    s = load_settings()
    configure_logging(level=s.log_level, fmt=s.log_format)
    log = get_logger("filesorter_release")

    try:
        if common.cmd == "matrix":
            return _cmd_matrix(common)
        if common.cmd == "classify":
            return _cmd_classify(args)
        return _cmd_run(args, common, s)
    except ConfigurationError as e:
        log.error("Configuration error", error=str(e))
        console.print(f"[red]configuration error:[/red] {e}")
        return EXIT_CONFIG


if __name__ == "__main__":
    raise SystemExit(main())
