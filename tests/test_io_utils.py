from pathlib import Path

import pytest

from runalign.io_utils import read_json, write_json_atomic, write_text_atomic


def test_write_text_atomic_replaces_content(tmp_path: Path) -> None:
    path = tmp_path / "out" / "range.csv"

    write_text_atomic(path, "a,b\n")
    write_text_atomic(path, "c,d\n")

    assert path.read_text(encoding="utf-8") == "c,d\n"
    assert sorted(item.name for item in path.parent.iterdir()) == ["range.csv"]


def test_failed_json_write_leaves_no_temp_file(tmp_path: Path) -> None:
    path = tmp_path / "chart.json"
    write_json_atomic(path, {"labels": [1.0]})

    with pytest.raises(TypeError):
        write_json_atomic(path, {"labels": object()})

    assert read_json(path) == {"labels": [1.0]}
    assert sorted(item.name for item in tmp_path.iterdir()) == ["chart.json"]
