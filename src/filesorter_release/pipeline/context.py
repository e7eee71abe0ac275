from __future__ import annotations

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from filesorter_release.core import ILogger, RunCancelled, RunLayout, sha256_file
from filesorter_release.dispatch import DispatchPolicy
from filesorter_release.matrix import MatrixCell
from filesorter_release.registry import OsFamily, ReleaseConfig

from .events import EventSink, EventType, make_event
from .types import ArtifactRef, BuildArtifact

if TYPE_CHECKING:
    from filesorter_release.stages.publish.sinks import PublishSinks, SinkHandle


@dataclass(slots=True)
class RunContext:
    """
    Run-lifetime values shared read-only by every cell pipeline.

    `cancel` is the only thing cells observe changing; everything else is
    fixed before the first cell starts.
    """

    run_id: str
    layout: RunLayout
    source_dir: Path
    config: ReleaseConfig
    policy: DispatchPolicy
    sinks: "PublishSinks"
    logger: ILogger
    events: EventSink
    cancel: threading.Event = field(default_factory=threading.Event)

    # OS family of this machine; None when the build cross-compiles.
    host: Optional[OsFamily] = None

    @property
    def run_dir(self) -> Path:
        return self.layout.run_dir

    def emit(
        self,
        event: EventType | str,
        *,
        cell: str | None = None,
        stage: str | None = None,
        **kw: Any,
    ) -> None:
        event_value = event.value if isinstance(event, EventType) else str(event)
        self.events.emit(
            make_event(
                event_type=event_value, run_id=self.run_id, cell=cell, stage=stage, **kw
            )
        )
        # Keep event chatter at debug level to leave console logs readable.
        self.logger.debug(event_value, cell=cell, stage=stage, **kw)


@dataclass(slots=True)
class CellContext:
    """
    Per-cell pipeline state. Owned by exactly one worker thread.
    """

    run: RunContext
    cell: MatrixCell

    artifact: Optional[BuildArtifact] = None
    published: Optional["SinkHandle"] = None

    @property
    def cell_id(self) -> str:
        return self.cell.cell_id

    @property
    def work_dir(self) -> Path:
        return self.run.layout.cell(self.cell_id)

    def stage_logger(self, stage: str) -> ILogger:
        return self.run.logger.bind(cell=self.cell_id, stage=stage)

    def emit(self, event: EventType | str, *, stage: str | None = None, **kw: Any) -> None:
        self.run.emit(event, cell=self.cell_id, stage=stage, **kw)

    def check_cancelled(self) -> None:
        if self.run.cancel.is_set():
            raise RunCancelled(f"Run cancelled before {self.cell_id} finished")

    def require_artifact(self, stage: str) -> BuildArtifact:
        if self.artifact is None:
            raise RuntimeError(f"{stage} requires a build artifact for {self.cell_id}")
        return self.artifact

    def release_artifact(self) -> BuildArtifact:
        """Hand the artifact over; the cell no longer owns it afterwards."""
        art = self.require_artifact("publish")
        self.artifact = None
        return art

    def record_artifact(
        self,
        *,
        stage: str,
        path: Path,
        content_type: str | None = None,
    ) -> ArtifactRef:
        p = Path(path)
        digest = sha256_file(p)
        art = ArtifactRef(
            path=str(p), bytes=digest.bytes, sha256=digest.sha256, content_type=content_type
        )
        self.emit(
            EventType.ARTIFACT_WRITTEN,
            stage=stage,
            path=art.path,
            bytes=art.bytes,
            sha256=art.sha256,
            content_type=art.content_type,
        )
        return art
