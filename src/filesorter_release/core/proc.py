from __future__ import annotations

import os
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Sequence

from .errors import RunCancelled, ToolNotFound, ToolTimeout
from .fs import ensure_parent
from .time import monotonic_ms

_POLL_S = 0.2


@dataclass(frozen=True, slots=True)
class ToolResult:
    argv: tuple[str, ...]
    returncode: int
    duration_ms: int
    log_path: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def _kill(proc: subprocess.Popen[bytes]) -> None:
    proc.kill()
    try:
        proc.wait(timeout=5)
    except subprocess.TimeoutExpired:
        pass


def run_tool(
    argv: Sequence[str],
    *,
    cwd: Path,
    log_path: Path,
    env: Mapping[str, str] | None = None,
    timeout_s: float | None = None,
    cancel: threading.Event | None = None,
) -> ToolResult:
    """
    Run an external tool, appending stdout+stderr to `log_path`.

    The call blocks until the tool exits. It is killed when `timeout_s`
    elapses (ToolTimeout) or when `cancel` is set (RunCancelled). A nonzero
    exit is not an error here; callers decide what it means.
    """
    args = tuple(str(a) for a in argv)
    ensure_parent(log_path)

    merged_env = None
    if env:
        merged_env = dict(os.environ)
        merged_env.update(env)

    t0 = monotonic_ms()
    deadline = None if timeout_s is None else t0 + int(timeout_s * 1000)

    with Path(log_path).open("ab") as log:
        log.write(f"$ {' '.join(args)}\n".encode("utf-8"))
        log.flush()
        try:
            proc = subprocess.Popen(
                args,
                cwd=str(cwd),
                env=merged_env,
                stdin=subprocess.DEVNULL,
                stdout=log,
                stderr=subprocess.STDOUT,
            )
        except FileNotFoundError as e:
            raise ToolNotFound(f"Executable not found: {args[0]}") from e
        except PermissionError as e:
            raise ToolNotFound(f"Executable not runnable: {args[0]}") from e

        while True:
            try:
                rc = proc.wait(timeout=_POLL_S)
                break
            except subprocess.TimeoutExpired:
                pass

            if cancel is not None and cancel.is_set():
                _kill(proc)
                raise RunCancelled(f"Cancelled while running {args[0]}")

            if deadline is not None and monotonic_ms() >= deadline:
                _kill(proc)
                raise ToolTimeout(f"{args[0]} timed out after {timeout_s:g} s")

    return ToolResult(
        argv=args,
        returncode=int(rc),
        duration_ms=monotonic_ms() - t0,
        log_path=str(log_path),
    )
