from .runner import run_post_process
from .stage import stage_postprocess
from .table import POST_PROCESS_TABLE, PostProcessStep, strip_debug_symbols, steps_for

__all__ = [
    "POST_PROCESS_TABLE",
    "PostProcessStep",
    "run_post_process",
    "stage_postprocess",
    "steps_for",
    "strip_debug_symbols",
]
