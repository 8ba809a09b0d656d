"""Tests for the numbered artifact allocator."""

from pathlib import Path

import pytest

from helpers import ScriptedPrompt
from scrapejobs.allocator import NumberedArtifactAllocator, pad_number
from scrapejobs.errors import ArtifactCollision

RESULT_PATTERN = r"^result-(\d+)\.txt$"
RESULT_TEMPLATE = "result-{number}.txt"


def results(directory: Path, prompt=None) -> NumberedArtifactAllocator:
    return NumberedArtifactAllocator(directory, RESULT_PATTERN, RESULT_TEMPLATE, prompt=prompt)


def test_pad_number() -> None:
    assert pad_number(7) == "00007"
    assert pad_number(123456) == "123456"


class TestScan:
    def test_empty_or_missing_directory_starts_at_zero(self, tmp_path: Path) -> None:
        assert results(tmp_path / "missing").scan() == 0
        assert results(tmp_path).scan() == 0

    @pytest.mark.asyncio
    async def test_restart_resumes_after_last_written(self, tmp_path: Path) -> None:
        allocator = results(tmp_path)
        allocator.scan()
        for _ in range(4):
            number, path = await allocator.reserve()
            path.write_text("x", encoding="utf-8")
            allocator.commit(number)

        restarted = results(tmp_path)
        assert restarted.scan() == 4

    def test_ignores_files_outside_pattern(self, tmp_path: Path) -> None:
        for name in ["result-00003.txt", "result-abc.txt", "notes.txt", "result-00010.txt.bak"]:
            (tmp_path / name).write_text("x", encoding="utf-8")
        assert results(tmp_path).scan() == 4

    def test_gaps_use_highest_number(self, tmp_path: Path) -> None:
        (tmp_path / "result-00000.txt").write_text("x", encoding="utf-8")
        (tmp_path / "result-00009.txt").write_text("x", encoding="utf-8")
        assert results(tmp_path).scan() == 10


class TestReserve:
    @pytest.mark.asyncio
    async def test_free_slot_uses_counter(self, tmp_path: Path) -> None:
        allocator = results(tmp_path)
        allocator.counter = 3
        number, path = await allocator.reserve()
        assert number == 3
        assert path == tmp_path / "result-00003.txt"
        assert allocator.counter == 3  # not committed yet

    @pytest.mark.asyncio
    async def test_collision_without_prompt_raises(self, tmp_path: Path) -> None:
        (tmp_path / "result-00000.txt").write_text("x", encoding="utf-8")
        allocator = results(tmp_path)
        with pytest.raises(ArtifactCollision):
            await allocator.reserve()

    @pytest.mark.asyncio
    async def test_collision_prompts_until_valid_number(self, tmp_path: Path) -> None:
        (tmp_path / "result-00000.txt").write_text("x", encoding="utf-8")
        (tmp_path / "result-00005.txt").write_text("x", encoding="utf-8")
        prompt = ScriptedPrompt(["abc", "-2", "5", "8"])
        allocator = results(tmp_path, prompt=prompt)

        number, path = await allocator.reserve()

        assert number == 8
        assert path.name == "result-00008.txt"
        assert len(prompt.asked) == 4
        assert (tmp_path / "result-00000.txt").read_text(encoding="utf-8") == "x"

    @pytest.mark.asyncio
    async def test_blank_answer_cancels(self, tmp_path: Path) -> None:
        (tmp_path / "result-00000.txt").write_text("x", encoding="utf-8")
        allocator = results(tmp_path, prompt=ScriptedPrompt([""]))
        with pytest.raises(ArtifactCollision):
            await allocator.reserve()

    @pytest.mark.asyncio
    async def test_same_number_other_extension_collides(self, tmp_path: Path) -> None:
        (tmp_path / "00000.png").write_bytes(b"png")
        images = NumberedArtifactAllocator(tmp_path, r"^(\d+)\.", "{number}.{ext}", prompt=ScriptedPrompt(["1"]))
        number, path = await images.reserve("jpg")
        assert number == 1
        assert path.name == "00001.jpg"


def test_commit_and_rollback(tmp_path: Path) -> None:
    allocator = results(tmp_path)
    assert allocator.rollback() is None
    allocator.commit(6)
    assert allocator.counter == 7
    assert allocator.rollback() == 6
    assert allocator.counter == 6
