from __future__ import annotations

import json
import os
import socket
import threading
from dataclasses import asdict
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from filesorter_release.core import utc_now_iso

from .types import Event


class EventType(str, Enum):
    RUN_ENV = "run.env"
    RUN_START = "run.start"
    RUN_CANCEL = "run.cancel"
    RUN_FINISH = "run.finish"

    CELL_START = "cell.start"
    CELL_FINISH = "cell.finish"

    STAGE_START = "stage.start"
    STAGE_WARN = "stage.warn"
    STAGE_METRICS = "stage.metrics"
    STAGE_SUCCESS = "stage.success"
    STAGE_FAILED = "stage.failed"
    STAGE_SKIPPED = "stage.skipped"

    ARTIFACT_WRITTEN = "artifact.written"

    BUILD_START = "build.start"
    BUILD_FINISH = "build.finish"

    POSTPROCESS_PLAN = "postprocess.plan"
    POSTPROCESS_STEP = "postprocess.step"

    PUBLISH_START = "publish.start"
    PUBLISH_FINISH = "publish.finish"


class EventSink:
    """
    Append-only JSONL event log. Safe to share between cell worker threads.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

        self.emit(
            Event(
                type=EventType.RUN_ENV.value,
                ts_utc=utc_now_iso(),
                run_id="__init__",
                data={
                    "hostname": socket.gethostname(),
                    "pid": os.getpid(),
                    "cwd": str(Path.cwd()),
                },
            )
        )

    def emit(self, event: Event) -> None:
        line = json.dumps(asdict(event), ensure_ascii=False, default=str)
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)
                f.write("\n")


def make_event(
    *,
    event_type: EventType | str,
    run_id: str,
    cell: Optional[str] = None,
    stage: Optional[str] = None,
    **data: Any,
) -> Event:
    type_value = (
        event_type.value if isinstance(event_type, EventType) else str(event_type)
    )
    return Event(
        type=type_value,
        ts_utc=utc_now_iso(),
        run_id=run_id,
        cell=cell,
        stage=stage,
        data=dict(data),
    )
