from .policy import DispatchPolicy, Ephemeral, Released
from .trigger import (
    TriggerEvent,
    TriggerKind,
    classify_trigger,
    event_from_github_env,
    normalize_tag,
)

__all__ = [
    "DispatchPolicy",
    "Ephemeral",
    "Released",
    "TriggerEvent",
    "TriggerKind",
    "classify_trigger",
    "event_from_github_env",
    "normalize_tag",
]
