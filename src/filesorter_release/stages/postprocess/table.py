from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping

from filesorter_release.core import PostProcessFailure, ToolError, run_tool, tail_lines
from filesorter_release.pipeline.types import BuildArtifact
from filesorter_release.registry import OsFamily, PostProcessSpec


@dataclass(frozen=True, slots=True)
class StepEnv:
    spec: PostProcessSpec
    log_path: Path
    cancel: threading.Event | None = None


@dataclass(frozen=True, slots=True)
class PostProcessStep:
    name: str
    fn: Callable[[BuildArtifact, StepEnv], None]

    def __call__(self, artifact: BuildArtifact, env: StepEnv) -> None:
        self.fn(artifact, env)


def _strip_debug_symbols(artifact: BuildArtifact, env: StepEnv) -> None:
    path = Path(artifact.local_path)
    try:
        argv = [a.format(path=str(path)) for a in env.spec.strip_command]
    except (KeyError, IndexError, ValueError) as e:
        raise PostProcessFailure(f"Bad placeholder in strip_command: {e}") from e

    try:
        res = run_tool(
            argv,
            cwd=path.parent,
            log_path=env.log_path,
            timeout_s=env.spec.timeout_s,
            cancel=env.cancel,
        )
    except ToolError as e:
        raise PostProcessFailure(f"strip failed for {path}: {e}") from e

    if not res.ok:
        msg = f"strip exited with {res.returncode} for {path}"
        tail = tail_lines(env.log_path)
        if tail:
            msg += f"\n{tail}"
        raise PostProcessFailure(msg)


strip_debug_symbols = PostProcessStep(name="strip", fn=_strip_debug_symbols)

# Platform-specific transformations, keyed by OS family. Families without a
# row get no post-processing.
POST_PROCESS_TABLE: Mapping[OsFamily, tuple[PostProcessStep, ...]] = MappingProxyType(
    {
        OsFamily.linux: (strip_debug_symbols,),
    }
)


def steps_for(
    family: OsFamily,
    table: Mapping[OsFamily, tuple[PostProcessStep, ...]] = POST_PROCESS_TABLE,
) -> tuple[PostProcessStep, ...]:
    return tuple(table.get(family, ()))
