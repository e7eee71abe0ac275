from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from filesorter_release.core import CellError, monotonic_ms, utc_now_iso
from filesorter_release.matrix import MatrixCell

from .context import CellContext, RunContext
from .events import EventType
from .stage import Stage, StageResult, run_stage, skipped_stage


@dataclass(slots=True)
class CellResult:
    cell_id: str
    cell: dict[str, str]
    status: str  # "success" | "failed" | "cancelled"
    started_at_utc: str
    finished_at_utc: str
    duration_ms: int

    stages: list[StageResult] = field(default_factory=list)
    error: Optional[CellError] = None
    published: Optional[dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"


def cancelled_cell(cell: MatrixCell, stage_ids: Sequence[str]) -> CellResult:
    """Result for a cell whose pipeline never started."""
    now = utc_now_iso()
    return CellResult(
        cell_id=cell.cell_id,
        cell=cell.to_dict(),
        status="cancelled",
        started_at_utc=now,
        finished_at_utc=now,
        duration_ms=0,
        stages=[skipped_stage(s) for s in stage_ids],
        error=CellError(
            stage=stage_ids[0] if stage_ids else "",
            kind="cancelled",
            exc_type="RunCancelled",
            message="Run cancelled before cell started",
            traceback="",
        ),
    )


def run_cell(
    *, run: RunContext, cell: MatrixCell, stages: Sequence[Stage]
) -> CellResult:
    """
    build -> postprocess -> publish for one cell. Stops at the first stage
    that does not succeed; later stages are recorded as skipped.
    """
    ctx = CellContext(run=run, cell=cell)
    log = run.logger.bind(cell=cell.cell_id)

    t0 = monotonic_ms()
    started_at = utc_now_iso()
    ctx.work_dir.mkdir(parents=True, exist_ok=True)

    ctx.emit(EventType.CELL_START, **cell.to_dict())
    log.info("Cell starting", os=cell.os_id, channel=cell.channel)

    results: list[StageResult] = []
    error: CellError | None = None
    status = "success"

    total = len(stages)
    for idx, st in enumerate(stages, start=1):
        if status != "success":
            results.append(skipped_stage(st.stage_id))
            ctx.emit(EventType.STAGE_SKIPPED, stage=st.stage_id)
            continue

        res = run_stage(ctx=ctx, stage=st, index=idx, total=total)
        results.append(res)
        if res.status != "success":
            status = res.status
            error = res.error

    duration = monotonic_ms() - t0
    published = ctx.published.to_dict() if ctx.published is not None else None

    ctx.emit(
        EventType.CELL_FINISH,
        status=status,
        duration_ms=duration,
        published=published,
    )
    if status == "success":
        log.info("Cell succeeded", duration_ms=duration)
    else:
        log.error(
            "Cell did not complete",
            status=status,
            stage=error.stage if error else None,
            error=error.message if error else None,
        )

    return CellResult(
        cell_id=cell.cell_id,
        cell=cell.to_dict(),
        status=status,
        started_at_utc=started_at,
        finished_at_utc=utc_now_iso(),
        duration_ms=duration,
        stages=results,
        error=error,
        published=published,
    )
