from __future__ import annotations

from pathlib import Path

from filesorter_release.core import hashing, json


def test_sha256_helpers(tmp_path: Path) -> None:
    assert (
        hashing.sha256_bytes(b"abc")
        == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )

    f = tmp_path / "filesorter"
    f.write_bytes(b"abc")
    digest = hashing.sha256_file(f)
    assert digest.sha256 == hashing.sha256_bytes(b"abc")
    assert digest.bytes == 3

    out = tmp_path / "sha256sums.txt"
    hashing.write_sha256_sum_txt(
        out, {"filesorter-stable-linux-amd64": digest.sha256, "a": "00"}
    )
    assert out.read_text() == (
        "00  a\n" f"{digest.sha256}  filesorter-stable-linux-amd64\n"
    )


def test_json_helpers(tmp_path: Path) -> None:
    obj = {"b": 1, "a": 2}
    out = tmp_path / "run_report.json"
    json.atomic_write_json(out, obj)
    assert json.read_json(out) == {"a": 2, "b": 1}
