import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from .fs import atomic_write_text


@dataclass(frozen=True)
class FileDigest:
    sha256: str
    bytes: int


def sha256_bytes(b: bytes) -> str:
    return hashlib.sha256(b).hexdigest()


def sha256_file(path: Path, *, chunk_bytes: int = 1024 * 1024) -> FileDigest:
    h = hashlib.sha256()
    total = 0
    with Path(path).open("rb") as f:
        for chunk in iter(lambda: f.read(chunk_bytes), b""):
            h.update(chunk)
            total += len(chunk)
    return FileDigest(sha256=h.hexdigest(), bytes=total)


def write_sha256_sum_txt(path: Path, entries: Mapping[str, str]) -> None:
    """
    `sha256sum -c` compatible listing of published artifact names, sorted.
    """
    atomic_write_text(
        Path(path), "".join(f"{entries[n]}  {n}\n" for n in sorted(entries))
    )
