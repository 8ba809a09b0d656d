"""Shared pytest fixtures for the scrapejobs test suite.

Fake browser, clipboard and prompt collaborators live in helpers.py.
"""

import sys
from pathlib import Path

import pytest

# Add the tests directory to sys.path so test files can import helpers.py
sys.path.insert(0, str(Path(__file__).parent))

from helpers import FakeContext, FakePage, MemoryClipboard, ScriptedPrompt  # noqa: E402
from scrapejobs.session import CaptureSession  # noqa: E402
from scrapejobs.tabs import TabTracker  # noqa: E402


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "output"


@pytest.fixture
def clipboard() -> MemoryClipboard:
    return MemoryClipboard()


@pytest.fixture
def prompt() -> ScriptedPrompt:
    return ScriptedPrompt()


@pytest.fixture
def pages() -> list:
    return [FakePage("https://a.example/"), FakePage("https://b.example/"), FakePage("https://c.example/")]


@pytest.fixture
def context(pages) -> FakeContext:
    return FakeContext(pages)


@pytest.fixture
def make_session(output_dir, clipboard, prompt):
    """Build and open a CaptureSession over fake tabs."""

    def factory(tabs=None, input_links=None) -> CaptureSession:
        tracker = TabTracker(tabs if tabs is not None else [FakePage("https://u1.example/")])
        return CaptureSession(
            output_dir,
            tracker,
            clipboard=clipboard,
            prompt=prompt,
            input_links=input_links,
        ).open()

    return factory
