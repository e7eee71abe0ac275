from __future__ import annotations

from pathlib import Path

from filesorter_release.core import ILogger, PublishFailure
from filesorter_release.dispatch import DispatchPolicy, Ephemeral, Released
from filesorter_release.pipeline.types import BuildArtifact

from .naming import published_name
from .sinks import PublishSinks, SinkHandle


def _read_artifact(artifact: BuildArtifact) -> bytes:
    try:
        return Path(artifact.local_path).read_bytes()
    except OSError as e:
        raise PublishFailure(f"Cannot read artifact {artifact.local_path}: {e}") from e


def publish_artifact(
    artifact: BuildArtifact,
    *,
    policy: DispatchPolicy,
    artifact_base: str,
    sinks: PublishSinks,
    logger: ILogger | None = None,
) -> SinkHandle:
    """
    Route one artifact to the sink selected by the run's policy.

    No retries: a failed publish fails the cell and the operator re-runs.
    """
    cell = artifact.cell
    pname = published_name(artifact_base, cell, policy)
    data = _read_artifact(artifact)

    if logger is not None:
        logger.info("Publishing", policy=policy.kind, name=str(pname), bytes=len(data))

    if isinstance(policy, Released):
        if sinks.release is None:
            raise PublishFailure("Released policy but no release sink configured")
        return sinks.release.publish(
            tag=policy.tag, name=pname.name, data=data, overwrite=True
        )

    if isinstance(policy, Ephemeral):
        return sinks.ephemeral.store(
            pname.name, data, filename=cell.target.artifact_filename
        )

    raise TypeError(f"Unknown dispatch policy: {policy!r}")
