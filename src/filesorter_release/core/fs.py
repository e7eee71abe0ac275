import os
import tempfile
from collections import deque
from pathlib import Path


def ensure_parent(path: Path) -> None:
    Path(path).parent.mkdir(parents=True, exist_ok=True)


def safe_unlink(path: os.PathLike[str] | str) -> None:
    try:
        Path(path).unlink(missing_ok=True)
    except OSError:
        return


def fsync_dir(parent: Path) -> None:
    """
    Ensure directory entry durability after atomic rename.
    No-op on platforms that cannot open directories (Windows).
    """
    try:
        fd = os.open(parent, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _atomic_write(path: Path, data: bytes, *, mode: int) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
        fsync_dir(path.parent)
    finally:
        if tmp_path.exists():
            safe_unlink(tmp_path)


def atomic_write_bytes(path: Path, data: bytes, *, mode: int = 0o644) -> None:
    """
    Atomically write bytes to `path`.

    Readers see either the previous complete file or the new complete file;
    an existing file is replaced in a single rename.
    """
    _atomic_write(path, data, mode=mode)


def atomic_write_text(
    path: Path, text: str, *, encoding: str = "utf-8", mode: int = 0o644
) -> None:
    _atomic_write(path, text.encode(encoding), mode=mode)


def tail_lines(path: Path, n: int = 20) -> str:
    """Last `n` lines of a text log, or "" if it does not exist."""
    p = Path(path)
    if not p.is_file():
        return ""
    with p.open("r", encoding="utf-8", errors="replace") as f:
        return "".join(deque(f, maxlen=n)).rstrip("\n")
