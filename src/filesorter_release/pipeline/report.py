from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

from filesorter_release.core import atomic_write_json

from .cell import CellResult


@dataclass(slots=True)
class RunReport:
    run_id: str
    started_at_utc: str
    finished_at_utc: str
    status: str  # "success" | "failed" | "cancelled"
    duration_ms: int
    policy: dict[str, Any]

    cells: list[CellResult] = field(default_factory=list)
    failures: list[dict[str, Any]] = field(default_factory=list)
    events_jsonl: Optional[str] = None
    sha256sums: Optional[str] = None
    provenance: dict[str, Any] = field(default_factory=dict)
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> list[str]:
        return [c.cell_id for c in self.cells if c.ok]

    @property
    def failed(self) -> list[str]:
        return [c.cell_id for c in self.cells if not c.ok]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def write_json(self, path: Path) -> None:
        atomic_write_json(Path(path), self.to_dict())


def failure_summary(cells: list[CellResult]) -> list[dict[str, Any]]:
    """
    One entry per cell that did not succeed, so operators can re-run only
    what is missing.
    """
    out: list[dict[str, Any]] = []
    for c in cells:
        if c.ok:
            continue
        out.append(
            {
                "cell_id": c.cell_id,
                "status": c.status,
                "stage": c.error.stage if c.error else None,
                "kind": c.error.kind if c.error else None,
                "message": c.error.message if c.error else None,
            }
        )
    return out


def run_status(cells: list[CellResult], *, cancelled: bool) -> str:
    if cancelled and any(c.status == "cancelled" for c in cells):
        return "cancelled"
    return "success" if all(c.ok for c in cells) else "failed"


def build_run_report(
    *,
    run_id: str,
    started_at_utc: str,
    finished_at_utc: str,
    duration_ms: int,
    policy: dict[str, Any],
    cell_results: list[CellResult],
    cancelled: bool,
    events_jsonl: str | None,
    sha256sums: str | None = None,
    provenance: dict[str, Any] | None = None,
    meta: dict[str, Any] | None = None,
) -> RunReport:
    return RunReport(
        run_id=run_id,
        started_at_utc=started_at_utc,
        finished_at_utc=finished_at_utc,
        status=run_status(cell_results, cancelled=cancelled),
        duration_ms=duration_ms,
        policy=policy,
        cells=cell_results,
        failures=failure_summary(cell_results),
        events_jsonl=events_jsonl,
        sha256sums=sha256sums,
        provenance=provenance or {},
        meta=meta or {},
    )
