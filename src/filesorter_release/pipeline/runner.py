from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor, as_completed, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from filesorter_release.core import (
    CellError,
    ConfigurationError,
    ILogger,
    RunLayout,
    RunProvenance,
    configure_logging,
    format_duration_ms,
    get_logger,
    monotonic_ms,
    new_run_id,
    utc_now_iso,
    write_sha256_sum_txt,
)
from filesorter_release.dispatch import DispatchPolicy, Released
from filesorter_release.matrix import MatrixCell, host_family
from filesorter_release.registry import OsFamily, ReleaseConfig
from filesorter_release.stages.publish.sinks import (
    DirectoryEphemeralSink,
    PublishSinks,
    ReleaseSink,
)

from .cell import CellResult, cancelled_cell, run_cell
from .context import RunContext
from .events import EventSink, EventType, make_event
from .report import RunReport, build_run_report
from .stage import FunctionStage, Stage, StageFn

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CANCELLED = 130


@dataclass(slots=True)
class RunnerConfig:
    max_workers: int = 4


def default_logger() -> ILogger:
    configure_logging()
    return get_logger("pipeline")


def exit_code_for(status: str) -> int:
    if status == "success":
        return EXIT_OK
    if status == "cancelled":
        return EXIT_CANCELLED
    return EXIT_FAILED


class MatrixRunner:
    """
    Runs the same stage sequence for every matrix cell, cells in parallel.

    A failing cell never stops its siblings; the run fails if any cell did.
    """

    def __init__(
        self,
        *,
        stages: Sequence[Stage],
        cfg: RunnerConfig | None = None,
        logger: ILogger | None = None,
    ) -> None:
        self.stages = list(stages)
        self.cfg = cfg or RunnerConfig()
        self.logger: ILogger = logger or default_logger()
        self._cancel = threading.Event()

        ids = [s.stage_id for s in self.stages]
        if len(ids) != len(set(ids)):
            dupes = sorted({x for x in ids if ids.count(x) > 1})
            raise ValueError(f"Duplicate stage_id(s): {dupes}")

    @staticmethod
    def fn(stage_id: str, fn: StageFn) -> Stage:
        return FunctionStage(stage_id=stage_id, fn=fn)

    def cancel(self) -> None:
        """Ask in-flight cells to stop; cells not yet started will not start."""
        self._cancel.set()

    def run(
        self,
        *,
        cells: Sequence[MatrixCell],
        config: ReleaseConfig,
        policy: DispatchPolicy,
        source_dir: Path,
        run_root: Path,
        release_sink: ReleaseSink | None = None,
        run_id: str | None = None,
        meta: dict[str, Any] | None = None,
        host: OsFamily | None = None,
    ) -> tuple[int, RunReport, Path]:
        """
        Execute every cell and write events.jsonl + run_report.json.

        Returns: (exit_code, report, report_path)
        """
        if not cells:
            raise ConfigurationError("No matrix cells selected")
        if isinstance(policy, Released) and release_sink is None:
            raise ConfigurationError("Released policy requires a release sink")
        if host is None and not config.build.cross_compile:
            host = host_family()

        meta = meta or {}
        rid = run_id or new_run_id()
        layout = RunLayout.for_run(Path(run_root), rid)
        layout.ensure_dirs()

        events = EventSink(layout.events_jsonl())
        sinks = PublishSinks(
            ephemeral=DirectoryEphemeralSink(layout.artifacts_root()),
            release=release_sink,
        )

        self._cancel = threading.Event()
        ctx = RunContext(
            run_id=rid,
            layout=layout,
            source_dir=Path(source_dir),
            config=config,
            policy=policy,
            sinks=sinks,
            logger=self.logger,
            events=events,
            cancel=self._cancel,
            host=host,
        )

        started_at = utc_now_iso()
        provenance = RunProvenance(run_id=rid, started_at_utc=started_at)
        t0 = monotonic_ms()

        self.logger.info(
            "Release run starting",
            run_id=rid,
            policy=policy.kind,
            cells=[c.cell_id for c in cells],
            stages=[s.stage_id for s in self.stages],
            run_dir=str(layout.run_dir),
            host=str(host) if host else "cross",
        )
        events.emit(
            make_event(
                event_type=EventType.RUN_START,
                run_id=rid,
                policy=policy.to_dict(),
                cells=[c.cell_id for c in cells],
                host=str(host) if host else None,
                **meta,
            )
        )

        results = self._run_cells(ctx, cells)

        cancelled = self._cancel.is_set()
        sums_path = self._write_sha256sums(layout, results)
        duration = monotonic_ms() - t0

        report = build_run_report(
            run_id=rid,
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            policy=policy.to_dict(),
            cell_results=results,
            cancelled=cancelled,
            events_jsonl=str(layout.events_jsonl()),
            sha256sums=str(sums_path) if sums_path else None,
            provenance=provenance.to_dict(),
            meta=meta,
        )
        report_path = layout.run_report_json()
        report.write_json(report_path)

        events.emit(
            make_event(
                event_type=EventType.RUN_FINISH,
                run_id=rid,
                status=report.status,
                duration_ms=duration,
                failed=report.failed,
                report_json=str(report_path),
            )
        )

        self.logger.info(
            "Run complete",
            status=report.status,
            duration=format_duration_ms(duration),
            succeeded=len(report.succeeded),
            failed=len(report.failed),
            report=str(report_path),
        )
        for f in report.failures:
            self.logger.error("Cell failed", **f)

        return exit_code_for(report.status), report, report_path

    def _run_cells(
        self, ctx: RunContext, cells: Sequence[MatrixCell]
    ) -> list[CellResult]:
        stage_ids = [s.stage_id for s in self.stages]
        workers = max(1, min(self.cfg.max_workers, len(cells)))
        done: dict[str, CellResult] = {}

        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cell")
        futures: dict[Future[CellResult], MatrixCell] = {
            pool.submit(run_cell, run=ctx, cell=c, stages=self.stages): c
            for c in cells
        }
        try:
            for fut in as_completed(futures):
                cell = futures[fut]
                done[cell.cell_id] = self._collect(fut, cell, stage_ids)
        except KeyboardInterrupt:
            self.logger.warning("Cancellation requested; stopping in-flight cells")
            self.cancel()
            ctx.events.emit(make_event(event_type=EventType.RUN_CANCEL, run_id=ctx.run_id))
            for fut in futures:
                fut.cancel()
            wait(list(futures))
        finally:
            pool.shutdown(wait=True, cancel_futures=True)

        out: list[CellResult] = []
        for fut, cell in futures.items():
            res = done.get(cell.cell_id)
            if res is None:
                res = self._collect(fut, cell, stage_ids)
            out.append(res)

        # Report in matrix order, not completion order.
        order = {c.cell_id: i for i, c in enumerate(cells)}
        out.sort(key=lambda r: order[r.cell_id])
        return out

    def _collect(
        self, fut: Future[CellResult], cell: MatrixCell, stage_ids: list[str]
    ) -> CellResult:
        if fut.cancelled():
            return cancelled_cell(cell, stage_ids)

        exc = fut.exception()
        if exc is None:
            return fut.result()

        # run_cell records stage errors itself; reaching here is a bug.
        self.logger.error("Cell pipeline crashed", cell=cell.cell_id, error=str(exc))
        now = utc_now_iso()
        return CellResult(
            cell_id=cell.cell_id,
            cell=cell.to_dict(),
            status="failed",
            started_at_utc=now,
            finished_at_utc=now,
            duration_ms=0,
            error=CellError(
                stage="",
                kind="internal",
                exc_type=type(exc).__name__,
                message=str(exc),
                traceback="",
            ),
        )

    @staticmethod
    def _write_sha256sums(layout: RunLayout, results: list[CellResult]) -> Path | None:
        entries: dict[str, str] = {}
        for r in results:
            pub = r.published
            if pub and pub.get("sink") == DirectoryEphemeralSink.sink_name:
                entries[str(pub["name"])] = str(pub["sha256"])
        if not entries:
            return None
        path = layout.sha256sums_txt()
        write_sha256_sum_txt(path, entries)
        return path
