from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Mapping, Optional

from filesorter_release.core import ConfigurationError

from .policy import DispatchPolicy, Ephemeral, Released

TAG_REF_PREFIX = "refs/tags/"


class TriggerKind(StrEnum):
    code_change = "code-change"
    tag_push = "tag-push"


@dataclass(frozen=True, slots=True)
class TriggerEvent:
    """
    The event that started a run. `kind` stays a plain string so that
    unrecognized kinds reach the classifier and are rejected there.
    """

    kind: str
    tag: Optional[str] = None


def normalize_tag(tag: str) -> str:
    t = tag.strip()
    if t.startswith(TAG_REF_PREFIX):
        t = t[len(TAG_REF_PREFIX) :]
    return t


def classify_trigger(event: TriggerEvent) -> DispatchPolicy:
    if event.kind == TriggerKind.code_change:
        return Ephemeral()

    if event.kind == TriggerKind.tag_push:
        tag = normalize_tag(event.tag or "")
        if not tag:
            raise ConfigurationError("tag-push trigger requires a non-empty tag")
        return Released(tag=tag)

    allowed = ", ".join(k.value for k in TriggerKind)
    raise ConfigurationError(
        f"Unrecognized trigger kind {event.kind!r} (expected one of: {allowed})"
    )


def event_from_github_env(environ: Mapping[str, str]) -> TriggerEvent:
    """
    Derive the trigger from GitHub Actions variables.

      push + refs/tags/<T>  -> tag-push(T)
      push | pull_request   -> code-change
    """
    name = (environ.get("GITHUB_EVENT_NAME") or "").strip()
    ref = (environ.get("GITHUB_REF") or "").strip()

    if not name:
        raise ConfigurationError("GITHUB_EVENT_NAME is not set")

    if name == "push" and ref.startswith(TAG_REF_PREFIX):
        return TriggerEvent(kind=TriggerKind.tag_push.value, tag=normalize_tag(ref))

    if name in ("push", "pull_request"):
        return TriggerEvent(kind=TriggerKind.code_change.value)

    raise ConfigurationError(f"Unsupported GitHub event for release runs: {name!r}")
