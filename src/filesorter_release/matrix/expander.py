from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from filesorter_release.core import ConfigurationError
from filesorter_release.registry.models import OsFamily, ReleaseConfig, TargetSpec


@dataclass(frozen=True, slots=True)
class MatrixCell:
    """
    One (operating system, toolchain channel) combination.
    """

    target: TargetSpec
    channel: str

    @property
    def os_id(self) -> str:
        return self.target.os_id

    @property
    def family(self) -> OsFamily:
        return self.target.family

    @property
    def platform_slug(self) -> str:
        return self.target.platform_slug

    @property
    def cell_id(self) -> str:
        return f"{self.target.platform_slug}-{self.channel}"

    def to_dict(self) -> dict[str, str]:
        return {
            "cell_id": self.cell_id,
            "os_id": self.os_id,
            "family": str(self.family),
            "channel": self.channel,
            "platform_slug": self.platform_slug,
            "artifact_filename": self.target.artifact_filename,
        }


def _dupes(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: set[str] = set()
    for v in values:
        if v in seen:
            out.add(v)
        seen.add(v)
    return sorted(out)


def expand_matrix(
    *,
    os_ids: Sequence[str],
    channels: Sequence[str],
    targets: Sequence[TargetSpec],
) -> list[MatrixCell]:
    """
    Cross `os_ids` with `channels`, joining each OS to its TargetSpec.

    Ordering is OS-major, then channel, both in configured order.
    """
    if not os_ids:
        raise ConfigurationError("Matrix has no operating systems")
    if not channels:
        raise ConfigurationError("Matrix has no toolchain channels")

    for label, values in (
        ("operating systems in matrix", list(os_ids)),
        ("toolchain channels in matrix", list(channels)),
        ("platform_slug in join table", [t.platform_slug for t in targets]),
    ):
        dupes = _dupes(values)
        if dupes:
            raise ConfigurationError(f"Duplicate {label}: {dupes}")

    by_os: dict[str, TargetSpec] = {}
    for t in targets:
        if t.os_id in by_os:
            raise ConfigurationError(f"Duplicate join table entry for {t.os_id!r}")
        by_os[t.os_id] = t

    missing = [o for o in os_ids if o not in by_os]
    if missing:
        raise ConfigurationError(
            f"No target entry for operating system(s) {missing}; "
            f"known: {sorted(by_os)}"
        )

    cells: list[MatrixCell] = []
    for os_id in os_ids:
        target = by_os[os_id]
        if not target.artifact_filename or not target.platform_slug:
            raise ConfigurationError(
                f"Target entry for {os_id!r} is missing artifact_filename or platform_slug"
            )
        for channel in channels:
            cells.append(MatrixCell(target=target, channel=channel))

    return cells


def expand_config(cfg: ReleaseConfig) -> list[MatrixCell]:
    return expand_matrix(os_ids=cfg.os, channels=cfg.channels, targets=cfg.targets)


def select_cells(
    cells: Sequence[MatrixCell],
    *,
    os_ids: Sequence[str] | None = None,
    channels: Sequence[str] | None = None,
    families: Sequence[OsFamily] | None = None,
) -> list[MatrixCell]:
    """
    Narrow an expanded matrix, e.g. to the cells of the current CI runner.
    OS and channel values that match no cell are a configuration error, and
    so is a family filter that leaves nothing to build.
    """
    if os_ids:
        unknown = sorted(set(os_ids) - {c.os_id for c in cells})
        if unknown:
            raise ConfigurationError(f"Unknown operating system filter: {unknown}")
    if channels:
        unknown = sorted(set(channels) - {c.channel for c in cells})
        if unknown:
            raise ConfigurationError(f"Unknown channel filter: {unknown}")

    out = [
        c
        for c in cells
        if (not os_ids or c.os_id in os_ids) and (not channels or c.channel in channels)
    ]
    if families:
        out = [c for c in out if c.family in families]
        if not out:
            wanted = sorted(str(f) for f in families)
            raise ConfigurationError(f"No matrix cell targets OS family {wanted}")
    return out
