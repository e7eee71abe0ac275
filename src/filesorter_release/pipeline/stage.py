from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol

from filesorter_release.core import (
    CellError,
    RunCancelled,
    cell_error_from_exc,
    format_duration_ms,
    monotonic_ms,
    utc_now_iso,
)

from .context import CellContext
from .events import EventType
from .types import ArtifactRef


@dataclass(slots=True)
class FunctionStage:
    """
    Adapter that turns a plain function into a Stage.
    """

    stage_id: str
    fn: StageFn

    def run(self, ctx: CellContext) -> dict[str, Any] | None:
        return self.fn(ctx)


@dataclass(slots=True)
class StageResult:
    stage: str
    status: str  # "success" | "failed" | "cancelled" | "skipped"
    started_at_utc: str
    finished_at_utc: str
    duration_ms: int

    outputs: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    artifacts: list[ArtifactRef] = field(default_factory=list)
    error: Optional[CellError] = None


class Stage(Protocol):
    stage_id: str

    def run(self, ctx: CellContext) -> dict[str, Any] | None: ...


StageFn = Callable[[CellContext], dict[str, Any] | None]


def skipped_stage(stage_id: str) -> StageResult:
    now = utc_now_iso()
    return StageResult(
        stage=stage_id,
        status="skipped",
        started_at_utc=now,
        finished_at_utc=now,
        duration_ms=0,
    )


def run_stage(
    *,
    ctx: CellContext,
    stage: Stage,
    index: int | None = None,
    total: int | None = None,
) -> StageResult:
    """
    Run one stage of one cell. Never raises: every failure becomes a
    StageResult carrying a CellError.
    """
    stage_id = stage.stage_id
    log = ctx.stage_logger(stage_id)

    t0 = monotonic_ms()
    started_at = utc_now_iso()
    position = f"{index}/{total}" if index is not None and total is not None else None

    ctx.emit(EventType.STAGE_START, stage=stage_id)
    log.info("Stage starting", position=position)

    warnings: list[str] = []
    artifacts: list[ArtifactRef] = []
    metrics: dict[str, Any] = {}

    try:
        ctx.check_cancelled()
        out = stage.run(ctx) or {}
        if not isinstance(out, dict):
            raise TypeError(
                f"Stage {stage_id} returned {type(out).__name__}, expected dict or None"
            )

        w = out.pop("_warnings", None)
        if isinstance(w, list):
            warnings.extend(str(x) for x in w)

        m = out.pop("_metrics", None)
        if isinstance(m, dict):
            metrics.update(m)

        a = out.pop("_artifacts", None)
        if isinstance(a, list):
            artifacts.extend(a)

        for msg in warnings:
            ctx.emit(EventType.STAGE_WARN, stage=stage_id, message=msg)
            log.warning(msg)

        if metrics:
            ctx.emit(EventType.STAGE_METRICS, stage=stage_id, metrics=metrics)

        duration = monotonic_ms() - t0
        ctx.emit(EventType.STAGE_SUCCESS, stage=stage_id, duration_ms=duration)

        log_fields: dict[str, object] = {
            "position": position,
            "duration": format_duration_ms(duration),
            "warnings": len(warnings),
            "outputs": sorted(out.keys()),
        }
        if artifacts:
            log_fields["artifacts"] = len(artifacts)
        log.info("Stage succeeded", **log_fields)

        return StageResult(
            stage=stage_id,
            status="success",
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            outputs=out,
            metrics=metrics,
            warnings=warnings,
            artifacts=artifacts,
        )

    except Exception as e:
        err = cell_error_from_exc(stage=stage_id, exc=e)
        duration = monotonic_ms() - t0
        status = "cancelled" if isinstance(e, RunCancelled) else "failed"

        ctx.emit(
            EventType.STAGE_FAILED,
            stage=stage_id,
            status=status,
            kind=err.kind,
            duration_ms=duration,
            exc_type=err.exc_type,
            message=err.message,
        )

        if status == "cancelled":
            log.warning("Stage cancelled", position=position)
        elif err.kind == "internal":
            log.error(
                "Stage crashed",
                position=position,
                duration=format_duration_ms(duration),
                error=err.message,
                traceback=traceback.format_exc(),
            )
        else:
            log.error(
                "Stage failed",
                position=position,
                kind=err.kind,
                duration=format_duration_ms(duration),
                error=err.message,
            )

        return StageResult(
            stage=stage_id,
            status=status,
            started_at_utc=started_at,
            finished_at_utc=utc_now_iso(),
            duration_ms=duration,
            metrics=metrics,
            warnings=warnings,
            artifacts=artifacts,
            error=err,
        )
