from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class RunLayout:
    """
    Canonical path layout for one release run:

      {run_root}/{run_id}/events.jsonl
      {run_root}/{run_id}/run_report.json
      {run_root}/{run_id}/cells/{cell_id}/target/      compiler output dir
      {run_root}/{run_id}/cells/{cell_id}/build.log
      {run_root}/{run_id}/cells/{cell_id}/postprocess.log
      {run_root}/{run_id}/artifacts/{published_name}/  ephemeral storage
      {run_root}/{run_id}/artifacts/sha256sums.txt
    """

    run_dir: Path

    @classmethod
    def for_run(cls, run_root: Path, run_id: str) -> "RunLayout":
        return cls(run_dir=Path(run_root) / run_id)

    def events_jsonl(self) -> Path:
        return self.run_dir / "events.jsonl"

    def run_report_json(self) -> Path:
        return self.run_dir / "run_report.json"

    def cells_root(self) -> Path:
        return self.run_dir / "cells"

    def cell(self, cell_id: str) -> Path:
        return self.cells_root() / cell_id

    def cell_target_dir(self, cell_id: str) -> Path:
        return self.cell(cell_id) / "target"

    def build_log(self, cell_id: str) -> Path:
        return self.cell(cell_id) / "build.log"

    def postprocess_log(self, cell_id: str) -> Path:
        return self.cell(cell_id) / "postprocess.log"

    def artifacts_root(self) -> Path:
        return self.run_dir / "artifacts"

    def sha256sums_txt(self) -> Path:
        return self.artifacts_root() / "sha256sums.txt"

    def ensure_dirs(self) -> None:
        for p in (self.run_dir, self.cells_root(), self.artifacts_root()):
            p.mkdir(parents=True, exist_ok=True)
