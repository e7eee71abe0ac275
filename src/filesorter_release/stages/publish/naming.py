from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from filesorter_release.dispatch import DispatchPolicy, Released
from filesorter_release.matrix import MatrixCell


@dataclass(frozen=True, slots=True)
class PublishedName:
    name: str
    tag: Optional[str] = None

    def __str__(self) -> str:
        return self.name if self.tag is None else f"{self.tag}/{self.name}"


def artifact_name(artifact_base: str, cell: MatrixCell) -> str:
    """`{artifact_base}-{channel}-{platform_slug}`, e.g. filesorter-stable-linux-amd64"""
    return f"{artifact_base}-{cell.channel}-{cell.platform_slug}"


def published_name(
    artifact_base: str, cell: MatrixCell, policy: DispatchPolicy
) -> PublishedName:
    tag = policy.tag if isinstance(policy, Released) else None
    return PublishedName(name=artifact_name(artifact_base, cell), tag=tag)
