from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from filesorter_release.matrix import MatrixCell


@dataclass(frozen=True, slots=True)
class BuildArtifact:
    """
    A compiled binary on local disk, owned by the pipeline of `cell`.
    """

    local_path: Path
    cell: MatrixCell


@dataclass(frozen=True, slots=True)
class ArtifactRef:
    """
    A reference to a file produced or published by a stage.
    """

    path: str
    bytes: int
    sha256: str
    content_type: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Event:
    """
    Structured event emitted by the pipeline.
    """

    type: str
    ts_utc: str
    run_id: str
    cell: Optional[str] = None
    stage: Optional[str] = None
    data: dict[str, Any] = field(default_factory=dict)
