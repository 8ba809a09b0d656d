"""Tests for capture session save/undo/check."""

from pathlib import Path

import pytest

from helpers import FakePage
from scrapejobs.errors import DuplicateEntry, EmptyCapture, IOFailure, JobError, VerificationMismatch
from scrapejobs.session import CaptureSession
from scrapejobs.tabs import TabTracker


def activate(session: CaptureSession, url: str) -> None:
    session.tabs.tabs[session.tabs.active_index].url = url


class TestOpen:
    def test_creates_layout(self, make_session, output_dir: Path) -> None:
        make_session()
        for name in ["data", "images", "img-meta", "browser-session"]:
            assert (output_dir / name).is_dir()
        assert (output_dir / "links.txt").read_text(encoding="utf-8") == ""

    def test_recovers_counters_and_links(self, output_dir: Path, clipboard, prompt) -> None:
        (output_dir / "data").mkdir(parents=True)
        (output_dir / "images").mkdir()
        (output_dir / "data" / "result-00000.txt").write_text("# 0: u1\n\nx", encoding="utf-8")
        (output_dir / "data" / "result-00001.txt").write_text("# 1: u2\n\ny", encoding="utf-8")
        (output_dir / "images" / "00004.png").write_bytes(b"png")
        (output_dir / "links.txt").write_text("u1\nu2\n", encoding="utf-8")

        session = CaptureSession(output_dir, TabTracker(), clipboard=clipboard, prompt=prompt).open()

        assert session.saved_link_count == 2
        assert session.saved_image_count == 5
        assert session.saved_links == {"u1", "u2"}


class TestSave:
    @pytest.mark.asyncio
    async def test_save_writes_artifact_then_index(self, make_session, clipboard, output_dir: Path) -> None:
        session = make_session()
        clipboard.write("hello")

        path = await session.save()

        assert path == output_dir / "data" / "result-00000.txt"
        assert path.read_text(encoding="utf-8") == "# 0: https://u1.example/\n\nhello"
        assert (output_dir / "links.txt").read_text(encoding="utf-8") == "https://u1.example/\n"
        assert "https://u1.example/" in session.saved_links
        assert session.saved_link_count == 1
        assert clipboard.read() == ""

    @pytest.mark.asyncio
    async def test_duplicate_url_is_rejected(self, make_session, clipboard) -> None:
        session = make_session()
        clipboard.write("first")
        await session.save()

        clipboard.write("second")
        with pytest.raises(DuplicateEntry):
            await session.save()
        assert session.saved_link_count == 1
        assert clipboard.read() == "second"

    @pytest.mark.asyncio
    async def test_empty_capture_is_rejected(self, make_session, clipboard, output_dir: Path) -> None:
        session = make_session()
        clipboard.write("   \n")
        with pytest.raises(EmptyCapture):
            await session.save()
        assert list((output_dir / "data").iterdir()) == []

    @pytest.mark.asyncio
    async def test_save_without_tabs_uses_blank_url(self, make_session, clipboard) -> None:
        session = make_session(tabs=[])
        clipboard.write("text")
        path = await session.save()
        assert path.read_text(encoding="utf-8").startswith("# 0: about:blank")

    @pytest.mark.asyncio
    async def test_collision_asks_for_new_number(self, make_session, clipboard, prompt, output_dir: Path) -> None:
        session = make_session()
        (output_dir / "data" / "result-00000.txt").write_text("manual", encoding="utf-8")
        prompt.queue("10")
        clipboard.write("hello")

        path = await session.save()

        assert path.name == "result-00010.txt"
        assert session.saved_link_count == 11
        assert (output_dir / "data" / "result-00000.txt").read_text(encoding="utf-8") == "manual"


class TestUndo:
    @pytest.mark.asyncio
    async def test_save_save_undo_save(self, make_session, clipboard, output_dir: Path) -> None:
        session = make_session()
        data = output_dir / "data"

        activate(session, "u1")
        clipboard.write("hello")
        await session.save()
        activate(session, "u2")
        clipboard.write("world")
        await session.save()
        assert (data / "result-00001.txt").exists()

        deleted = await session.undo()

        assert deleted == data / "result-00001.txt"
        assert not deleted.exists()
        assert (data / "result-00000.txt").exists()
        assert session.saved_links == {"u1"}
        assert session.saved_link_count == 1

        clipboard.write("world again")
        path = await session.save()
        assert path.name == "result-00001.txt"
        assert session.saved_links == {"u1", "u2"}

    @pytest.mark.asyncio
    async def test_undo_restores_index_byte_for_byte(self, make_session, clipboard, output_dir: Path) -> None:
        links = output_dir / "links.txt"
        session = make_session()
        activate(session, "u0")
        clipboard.write("zero")
        await session.save()
        before_links = links.read_bytes()
        before_set = set(session.saved_links)
        before_files = sorted(p.name for p in (output_dir / "data").iterdir())

        activate(session, "u1")
        clipboard.write("one")
        await session.save()
        await session.undo()

        assert links.read_bytes() == before_links
        assert session.saved_links == before_set
        assert sorted(p.name for p in (output_dir / "data").iterdir()) == before_files

    @pytest.mark.asyncio
    async def test_mismatch_keeps_file(self, make_session, clipboard, output_dir: Path) -> None:
        session = make_session()
        activate(session, "u1")
        clipboard.write("hello")
        path = await session.save()
        path.write_text("# 0: somewhere-else\n\nedited by hand", encoding="utf-8")

        with pytest.raises(VerificationMismatch):
            await session.undo()

        assert path.exists()
        assert session.saved_links == set()
        assert (output_dir / "links.txt").read_text(encoding="utf-8") == ""
        assert session.saved_link_count == 0

    @pytest.mark.asyncio
    async def test_missing_file_still_rolls_back_link(self, make_session, clipboard) -> None:
        session = make_session()
        clipboard.write("hello")
        path = await session.save()
        path.unlink()

        with pytest.raises(IOFailure):
            await session.undo()
        assert session.saved_links == set()

    @pytest.mark.asyncio
    async def test_nothing_to_undo(self, make_session) -> None:
        session = make_session()
        with pytest.raises(JobError, match="Nothing to undo"):
            await session.undo()


class TestReadOnly:
    @pytest.mark.asyncio
    async def test_check(self, make_session, clipboard) -> None:
        session = make_session()
        assert await session.check() == ("https://u1.example/", False)
        clipboard.write("x")
        await session.save()
        assert await session.check() == ("https://u1.example/", True)

    def test_view_empty_clipboard(self, make_session) -> None:
        with pytest.raises(EmptyCapture):
            make_session().view()

    def test_input_links_navigation(self, make_session) -> None:
        session = make_session(input_links=["first", "second"])
        assert session.prev_link() is None
        assert session.next_link() == "first"
        assert session.next_link() == "second"
        assert session.next_link() is None
        assert session.prev_link() == "first"
        assert session.next_link() == "second"
