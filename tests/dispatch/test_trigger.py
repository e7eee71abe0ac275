from __future__ import annotations

import pytest
from filesorter_release.core import ConfigurationError
from filesorter_release.dispatch import (
    Ephemeral,
    Released,
    TriggerEvent,
    classify_trigger,
    event_from_github_env,
)


def test_code_change_is_ephemeral() -> None:
    policy = classify_trigger(TriggerEvent(kind="code-change"))
    assert policy == Ephemeral()
    assert policy.to_dict() == {"kind": "ephemeral"}


def test_code_change_ignores_stray_tag() -> None:
    assert classify_trigger(TriggerEvent(kind="code-change", tag="v9")) == Ephemeral()


def test_tag_push_is_released_with_tag() -> None:
    policy = classify_trigger(TriggerEvent(kind="tag-push", tag="v1.0"))
    assert policy == Released(tag="v1.0")
    assert policy.to_dict() == {"kind": "released", "tag": "v1.0"}


def test_tag_push_strips_ref_prefix() -> None:
    policy = classify_trigger(TriggerEvent(kind="tag-push", tag="refs/tags/v1.0"))
    assert policy == Released(tag="v1.0")


@pytest.mark.parametrize("tag", [None, "", "   ", "refs/tags/"])
def test_tag_push_without_tag_is_rejected(tag) -> None:
    with pytest.raises(ConfigurationError):
        classify_trigger(TriggerEvent(kind="tag-push", tag=tag))


@pytest.mark.parametrize("kind", ["schedule", "release", "", "Tag-Push"])
def test_unknown_kind_never_defaults(kind: str) -> None:
    with pytest.raises(ConfigurationError, match="Unrecognized trigger kind"):
        classify_trigger(TriggerEvent(kind=kind, tag="v1.0"))


def test_ephemeral_has_no_tag() -> None:
    assert not hasattr(Ephemeral(), "tag")


def test_github_env_tag_push() -> None:
    ev = event_from_github_env(
        {"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/tags/v2.1.0"}
    )
    assert ev == TriggerEvent(kind="tag-push", tag="v2.1.0")


@pytest.mark.parametrize(
    "env",
    [
        {"GITHUB_EVENT_NAME": "push", "GITHUB_REF": "refs/heads/main"},
        {"GITHUB_EVENT_NAME": "pull_request", "GITHUB_REF": "refs/pull/7/merge"},
    ],
)
def test_github_env_code_change(env) -> None:
    assert classify_trigger(event_from_github_env(env)) == Ephemeral()


@pytest.mark.parametrize("env", [{}, {"GITHUB_EVENT_NAME": "workflow_dispatch"}])
def test_github_env_unsupported(env) -> None:
    with pytest.raises(ConfigurationError):
        event_from_github_env(env)
