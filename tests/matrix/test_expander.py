from __future__ import annotations

import pytest
from filesorter_release.core import ConfigurationError
from filesorter_release.matrix import expand_config, expand_matrix, select_cells
from filesorter_release.registry import OsFamily, TargetSpec

LINUX = TargetSpec(
    os_id="ubuntu-latest",
    family="linux",
    artifact_filename="filesorter",
    platform_slug="linux-amd64",
)
WINDOWS = TargetSpec(
    os_id="windows-latest",
    family="windows",
    artifact_filename="filesorter.exe",
    platform_slug="windows-amd64",
)
MACOS = TargetSpec(
    os_id="macos-latest",
    family="macos",
    artifact_filename="filesorter",
    platform_slug="macos-amd64",
)


def test_cardinality_and_unique_naming_keys() -> None:
    os_ids = ["ubuntu-latest", "windows-latest", "macos-latest"]
    channels = ["stable", "beta", "nightly"]
    cells = expand_matrix(os_ids=os_ids, channels=channels, targets=[LINUX, WINDOWS, MACOS])

    assert len(cells) == len(os_ids) * len(channels)
    keys = {(c.platform_slug, c.channel) for c in cells}
    assert len(keys) == len(cells)
    assert len({c.cell_id for c in cells}) == len(cells)


def test_order_is_os_major_and_deterministic() -> None:
    kw = dict(
        os_ids=["windows-latest", "ubuntu-latest"],
        channels=["stable", "nightly"],
        targets=[LINUX, WINDOWS],
    )
    cells = expand_matrix(**kw)
    assert [c.cell_id for c in cells] == [
        "windows-amd64-stable",
        "windows-amd64-nightly",
        "linux-amd64-stable",
        "linux-amd64-nightly",
    ]
    assert expand_matrix(**kw) == cells


def test_cell_carries_join_metadata() -> None:
    (cell,) = expand_matrix(os_ids=["windows-latest"], channels=["stable"], targets=[WINDOWS, LINUX])
    assert cell.os_id == "windows-latest"
    assert cell.target.artifact_filename == "filesorter.exe"
    assert cell.to_dict()["family"] == "windows"


def test_unused_targets_are_fine() -> None:
    cells = expand_matrix(os_ids=["ubuntu-latest"], channels=["stable"], targets=[LINUX, WINDOWS, MACOS])
    assert [c.cell_id for c in cells] == ["linux-amd64-stable"]


def test_os_without_target_fails_loudly() -> None:
    # The case mismatch that silently dropped join fields in the old workflow.
    with pytest.raises(ConfigurationError, match="macOS-latest"):
        expand_matrix(os_ids=["ubuntu-latest", "macOS-latest"], channels=["stable"], targets=[LINUX, MACOS])


@pytest.mark.parametrize(
    "os_ids,channels",
    [
        (["ubuntu-latest", "ubuntu-latest"], ["stable"]),
        (["ubuntu-latest"], ["stable", "stable"]),
        ([], ["stable"]),
        (["ubuntu-latest"], []),
    ],
)
def test_degenerate_axes_rejected(os_ids, channels) -> None:
    with pytest.raises(ConfigurationError):
        expand_matrix(os_ids=os_ids, channels=channels, targets=[LINUX])


def test_duplicate_slug_rejected() -> None:
    clash = TargetSpec(
        os_id="ubuntu-22.04", family="linux", artifact_filename="filesorter", platform_slug="linux-amd64"
    )
    with pytest.raises(ConfigurationError, match="platform_slug"):
        expand_matrix(os_ids=["ubuntu-latest"], channels=["stable"], targets=[LINUX, clash])


def test_empty_join_field_rejected() -> None:
    broken = TargetSpec.model_construct(
        os_id="ubuntu-latest", family="linux", artifact_filename="", platform_slug="linux-amd64"
    )
    with pytest.raises(ConfigurationError, match="artifact_filename"):
        expand_matrix(os_ids=["ubuntu-latest"], channels=["stable"], targets=[broken])


def test_expand_config_and_select(make_config) -> None:
    cfg = make_config(os_ids=["ubuntu-latest", "windows-latest", "macos-latest"], channels=["stable", "nightly"])
    cells = expand_config(cfg)
    assert len(cells) == 6

    mine = select_cells(cells, os_ids=["ubuntu-latest"])
    assert [c.cell_id for c in mine] == ["linux-amd64-stable", "linux-amd64-nightly"]

    mine = select_cells(cells, os_ids=["windows-latest"], channels=["nightly"])
    assert [c.cell_id for c in mine] == ["windows-amd64-nightly"]

    assert select_cells(cells) == cells

    with pytest.raises(ConfigurationError):
        select_cells(cells, channels=["beta"])


def test_select_by_family(make_config) -> None:
    cfg = make_config(os_ids=["ubuntu-latest", "windows-latest", "macos-latest"])
    cells = expand_config(cfg)

    mine = select_cells(cells, families=[OsFamily.macos])
    assert [c.cell_id for c in mine] == ["macos-amd64-stable"]

    with pytest.raises(ConfigurationError, match="No matrix cell targets"):
        select_cells(cells, os_ids=["ubuntu-latest"], families=[OsFamily.windows])
