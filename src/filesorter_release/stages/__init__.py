from .build import stage_build
from .postprocess import stage_postprocess
from .publish import stage_publish

__all__ = [
    "stage_build",
    "stage_postprocess",
    "stage_publish",
]
