from .runner import build_command, run_build
from .stage import stage_build

__all__ = ["build_command", "run_build", "stage_build"]
