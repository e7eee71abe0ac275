from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Union


@dataclass(frozen=True, slots=True)
class Ephemeral:
    """
    Store artifacts in run-scoped storage, visible to pipeline operators only.
    """

    kind: ClassVar[str] = "ephemeral"

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind}


@dataclass(frozen=True, slots=True)
class Released:
    """
    Publish artifacts permanently under `tag`, replacing same-named entries.
    """

    tag: str
    kind: ClassVar[str] = "released"

    def to_dict(self) -> dict[str, object]:
        return {"kind": self.kind, "tag": self.tag}


DispatchPolicy = Union[Ephemeral, Released]
