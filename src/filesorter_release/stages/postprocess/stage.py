from __future__ import annotations

from typing import Any

from filesorter_release.pipeline.context import CellContext
from filesorter_release.pipeline.events import EventType

from .runner import run_post_process
from .table import steps_for


def stage_postprocess(ctx: CellContext) -> dict[str, Any]:
    artifact = ctx.require_artifact("postprocess")
    family = artifact.cell.family
    planned = [s.name for s in steps_for(family)]

    ctx.emit(
        EventType.POSTPROCESS_PLAN,
        stage="postprocess",
        family=str(family),
        steps=planned,
    )

    applied = run_post_process(
        artifact,
        spec=ctx.run.config.postprocess,
        log_path=ctx.run.layout.postprocess_log(ctx.cell_id),
        cancel=ctx.run.cancel,
        logger=ctx.stage_logger("postprocess"),
    )
    for name in applied:
        ctx.emit(EventType.POSTPROCESS_STEP, stage="postprocess", step=name)

    out: dict[str, Any] = {
        "family": str(family),
        "applied": ",".join(applied),
        "_metrics": {"steps": len(applied)},
    }
    if applied:
        out["_artifacts"] = [
            ctx.record_artifact(
                stage="postprocess",
                path=artifact.local_path,
                content_type="application/octet-stream",
            )
        ]
    return out
