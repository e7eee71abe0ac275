from .cell import CellResult, run_cell
from .context import CellContext, RunContext
from .events import EventSink, EventType
from .report import RunReport
from .runner import MatrixRunner, RunnerConfig, exit_code_for
from .stage import FunctionStage, Stage, StageResult
from .types import ArtifactRef, BuildArtifact

__all__ = [
    "ArtifactRef",
    "BuildArtifact",
    "CellContext",
    "CellResult",
    "EventSink",
    "EventType",
    "FunctionStage",
    "MatrixRunner",
    "RunContext",
    "RunReport",
    "RunnerConfig",
    "Stage",
    "StageResult",
    "exit_code_for",
    "run_cell",
]
