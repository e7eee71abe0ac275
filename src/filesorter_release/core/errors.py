from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import ClassVar


class ReleaseError(RuntimeError):
    """Base error"""


@dataclass(frozen=True, slots=True)
class CellError:
    """
    A normalized failure record for one matrix cell.
    """

    stage: str
    kind: str  # "build" | "postprocess" | "publish" | "internal" | "cancelled"
    exc_type: str
    message: str
    traceback: str


def cell_error_from_exc(*, stage: str, exc: BaseException) -> CellError:
    return CellError(
        stage=stage,
        kind=failure_kind(exc),
        exc_type=type(exc).__name__,
        message=str(exc),
        traceback=traceback.format_exc(),
    )


def failure_kind(exc: BaseException) -> str:
    if isinstance(exc, CellFailure):
        return exc.kind
    if isinstance(exc, RunCancelled):
        return "cancelled"
    return "internal"


class ConfigurationError(ReleaseError):
    """
    Fatal: malformed or incomplete release configuration, or an unrecognized
    trigger. Raised before any cell starts.
    """


class RunCancelled(ReleaseError):
    """The run was cancelled while this cell was in flight"""


class CellFailure(ReleaseError):
    """
    Failure scoped to a single matrix cell. Recorded, never propagated to
    sibling cells.
    """

    kind: ClassVar[str] = "internal"


class BuildFailure(CellFailure):
    """Compiler exited nonzero, timed out, or produced no output"""

    kind = "build"


class PostProcessFailure(CellFailure):
    """A configured post-processing tool failed"""

    kind = "postprocess"


class PublishFailure(CellFailure):
    """Sink rejected the artifact or was unreachable"""

    kind = "publish"


class ToolError(ReleaseError):
    """External tool could not be run to completion"""


class ToolNotFound(ToolError):
    """Executable missing"""


class ToolTimeout(ToolError):
    """Tool exceeded its per-cell timeout and was killed"""
