from __future__ import annotations

import os
import platform
import uuid
from dataclasses import dataclass, field


def new_run_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True, slots=True)
class RunProvenance:
    """
    Where and by whom a release run was executed. Written into the run report.
    """

    run_id: str
    started_at_utc: str
    hostname: str = field(default_factory=platform.node)
    pid: int = field(default_factory=os.getpid)
    python: str = field(default_factory=platform.python_version)
    platform: str = field(default_factory=platform.platform)

    def to_dict(self) -> dict[str, object]:
        return {
            "run_id": self.run_id,
            "started_at_utc": self.started_at_utc,
            "hostname": self.hostname,
            "pid": self.pid,
            "python": self.python,
            "platform": self.platform,
        }
