"""Tests for storage helpers."""

from pathlib import Path

import pytest

from scrapejobs import storage
from scrapejobs.errors import IOFailure


class TestRemoveLastLine:
    def test_keeps_earlier_lines_byte_for_byte(self, tmp_path: Path) -> None:
        path = tmp_path / "links.txt"
        path.write_text("u1\nu2\n", encoding="utf-8")
        before = path.read_bytes()

        storage.append_line(path, "u3")
        assert storage.remove_last_line(path) == "u3"
        assert path.read_bytes() == before

    def test_single_line_leaves_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "links.txt"
        path.write_text("only\n", encoding="utf-8")
        assert storage.remove_last_line(path) == "only"
        assert path.read_text(encoding="utf-8") == ""

    def test_empty_and_missing_files(self, tmp_path: Path) -> None:
        path = tmp_path / "links.txt"
        assert storage.remove_last_line(path) is None
        path.write_text("\n\n", encoding="utf-8")
        assert storage.remove_last_line(path) is None


def test_read_lines_skips_blanks(tmp_path: Path) -> None:
    path = tmp_path / "in.txt"
    path.write_text("a\n\n  b  \n\n", encoding="utf-8")
    assert storage.read_lines(path) == ["a", "b"]


def test_write_artifact_creates_parents(tmp_path: Path) -> None:
    path = storage.write_artifact(tmp_path / "deep" / "er" / "x.bin", b"\x00\x01")
    assert path.read_bytes() == b"\x00\x01"


def test_list_directory_missing_is_empty(tmp_path: Path) -> None:
    assert storage.list_directory(tmp_path / "nope") == []


def test_delete_missing_file_is_io_failure(tmp_path: Path) -> None:
    with pytest.raises(IOFailure):
        storage.delete_file(tmp_path / "ghost.txt")


def test_load_csv_reads_header_rows(tmp_path: Path) -> None:
    path = tmp_path / "data.csv"
    path.write_text("Name,Email\nAda,ada@example.com\n", encoding="utf-8")
    assert storage.load_csv(path) == [{"Name": "Ada", "Email": "ada@example.com"}]
