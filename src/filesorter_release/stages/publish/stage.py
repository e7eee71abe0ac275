from __future__ import annotations

from typing import TypedDict

from filesorter_release.pipeline.context import CellContext
from filesorter_release.pipeline.events import EventType

from .naming import published_name
from .runner import publish_artifact


class StagePublishResult(TypedDict):
    sink: str
    name: str
    location: str
    sha256: str
    _metrics: dict[str, int]


def stage_publish(ctx: CellContext) -> StagePublishResult:
    run = ctx.run
    artifact = ctx.require_artifact("publish")
    pname = published_name(run.config.artifact_base, ctx.cell, run.policy)

    ctx.emit(
        EventType.PUBLISH_START,
        stage="publish",
        policy=run.policy.to_dict(),
        name=pname.name,
    )

    handle = publish_artifact(
        artifact,
        policy=run.policy,
        artifact_base=run.config.artifact_base,
        sinks=run.sinks,
        logger=ctx.stage_logger("publish"),
    )
    ctx.release_artifact()
    ctx.published = handle

    ctx.emit(EventType.PUBLISH_FINISH, stage="publish", **handle.to_dict())

    return {
        "sink": handle.sink,
        "name": handle.name,
        "location": handle.location,
        "sha256": handle.sha256,
        "_metrics": {"bytes": handle.bytes},
    }
