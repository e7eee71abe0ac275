from __future__ import annotations

from typing import TypedDict

from filesorter_release.pipeline.context import CellContext
from filesorter_release.pipeline.events import EventType
from filesorter_release.pipeline.types import ArtifactRef

from .runner import run_build


class StageBuildResult(TypedDict):
    local_path: str
    build_log: str
    _artifacts: list[ArtifactRef]
    _metrics: dict[str, int]


def stage_build(ctx: CellContext) -> StageBuildResult:
    run = ctx.run
    cell = ctx.cell
    log_path = run.layout.build_log(ctx.cell_id)

    ctx.emit(
        EventType.BUILD_START,
        stage="build",
        os=cell.os_id,
        channel=cell.channel,
        source_dir=str(run.source_dir),
    )

    artifact = run_build(
        cell,
        spec=run.config.build,
        source_dir=run.source_dir,
        work_dir=ctx.work_dir,
        log_path=log_path,
        host=run.host,
        cancel=run.cancel,
        logger=ctx.stage_logger("build"),
    )
    ctx.artifact = artifact

    ref = ctx.record_artifact(
        stage="build",
        path=artifact.local_path,
        content_type="application/octet-stream",
    )
    ctx.emit(EventType.BUILD_FINISH, stage="build", local_path=ref.path, bytes=ref.bytes)

    return {
        "local_path": str(artifact.local_path),
        "build_log": str(log_path),
        "_artifacts": [ref],
        "_metrics": {"bytes": ref.bytes},
    }
