from __future__ import annotations

import threading
from pathlib import Path
from typing import Mapping

from filesorter_release.core import ILogger
from filesorter_release.pipeline.types import BuildArtifact
from filesorter_release.registry import OsFamily, PostProcessSpec

from .table import POST_PROCESS_TABLE, PostProcessStep, StepEnv, steps_for


def run_post_process(
    artifact: BuildArtifact,
    *,
    spec: PostProcessSpec,
    log_path: Path,
    cancel: threading.Event | None = None,
    logger: ILogger | None = None,
    table: Mapping[OsFamily, tuple[PostProcessStep, ...]] = POST_PROCESS_TABLE,
) -> list[str]:
    """
    Apply the table's steps for the artifact's OS family, in place and in
    order. Returns the names of the applied steps (empty for a no-op).
    """
    steps = steps_for(artifact.cell.family, table)
    env = StepEnv(spec=spec, log_path=log_path, cancel=cancel)

    applied: list[str] = []
    for step in steps:
        if logger is not None:
            logger.info("Post-processing", step=step.name, path=str(artifact.local_path))
        step(artifact, env)
        applied.append(step.name)
    return applied
