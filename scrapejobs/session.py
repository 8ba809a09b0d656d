"""
Capture session: state shared by every command of an interactive run.

Layout of the output directory:

    links.txt         one saved source URL per line
    data/             result-00000.txt, result-00001.txt, ...
    images/           00000.jpg, 00001.png, ...
    img-meta/         00000.txt, ... (source page, image path, caption)
    browser-session/  Chrome profile when Chrome is launched by us
"""

import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Set, Tuple
from rich.markup import escape
from .allocator import NumberedArtifactAllocator
from .browser import ChromeConnection, connect_to_browser, start_chrome
from .config import DEFAULT_CHROME_PORT, Settings
from .errors import DuplicateEntry, EmptyCapture, IOFailure, JobError, VerificationMismatch
from .models import CapturedText
from .tabs import TabTracker
from .terminal import Clipboard, PromptFn, SystemClipboard, ask, console, preview
from . import storage

logger = logging.getLogger(__name__)

RESULT_PATTERN = r"^result-(\d+)\.txt$"
RESULT_TEMPLATE = "result-{number}.txt"
IMAGE_PATTERN = r"^(\d+)\."
IMAGE_TEMPLATE = "{number}.{ext}"


class Mode(str, Enum):
    IDLE = "idle"
    COPY = "copy"
    IMAGE = "image"


class CaptureSession:
    """Counters, duplicate set, output paths and browser handles of one run."""

    def __init__(
        self,
        output_dir: Path,
        tabs: TabTracker,
        clipboard: Optional[Clipboard] = None,
        prompt: PromptFn = ask,
        input_links: Optional[List[str]] = None,
        connection: Optional[ChromeConnection] = None
    ):
        self.output_dir = Path(output_dir)
        self.data_dir = self.output_dir / "data"
        self.images_dir = self.output_dir / "images"
        self.img_meta_dir = self.output_dir / "img-meta"
        self.browser_session_dir = self.output_dir / "browser-session"
        self.links_path = self.output_dir / "links.txt"

        self.tabs = tabs
        self.clipboard = clipboard or SystemClipboard()
        self.prompt = prompt
        self.connection = connection
        self.input_links = list(input_links or [])
        self.input_index = 0
        self.mode = Mode.IDLE

        self.saved_links: Set[str] = set()
        self.results = NumberedArtifactAllocator(
            self.data_dir, RESULT_PATTERN, RESULT_TEMPLATE, label="result", prompt=prompt
        )
        self.images = NumberedArtifactAllocator(
            self.images_dir, IMAGE_PATTERN, IMAGE_TEMPLATE, label="image", prompt=prompt
        )

    @property
    def saved_link_count(self) -> int:
        return self.results.counter

    @property
    def saved_image_count(self) -> int:
        return self.images.counter

    @property
    def context(self):
        return self.connection.context if self.connection else None

    def open(self) -> "CaptureSession":
        """Create output directories and recover counters from disk."""
        console.print("[cyan]Creating output directories...[/cyan]")
        for directory in (self.data_dir, self.images_dir, self.img_meta_dir, self.browser_session_dir):
            storage.ensure_dir(directory)
        self.links_path.touch(exist_ok=True)

        self.saved_links = set(storage.read_lines(self.links_path))
        console.print(f"[cyan]Loaded {len(self.saved_links)} existing links[/cyan]")
        self.results.scan()
        self.images.scan()
        console.print(f"[green]Initialized: {self.saved_link_count} links, {self.saved_image_count} images[/green]")
        return self

    async def close(self) -> None:
        if self.connection:
            await self.connection.close()

    def is_connected(self) -> bool:
        return self.connection is None or self.connection.browser.is_connected()

    async def check(self) -> Tuple[str, bool]:
        """Active tab URL and whether it was already saved."""
        url = await self.tabs.active_url()
        return url, url in self.saved_links

    def view(self) -> str:
        content = self.clipboard.read()
        if not content.strip():
            raise EmptyCapture("Clipboard is empty")
        return content

    async def save(self) -> Path:
        """
        Save the clipboard text for the active tab's URL.

        The artifact is written before its URL is appended to links.txt, so
        an interrupted save leaves at worst an unindexed file.
        """
        url = await self.tabs.active_url()
        if url in self.saved_links:
            raise DuplicateEntry(f"Already saved: {url}")

        content = self.clipboard.read()
        if not content or not content.strip():
            raise EmptyCapture("Clipboard is empty, nothing to save")

        number, path = await self.results.reserve()
        storage.write_artifact(path, CapturedText(number=number, url=url, content=content).render())
        storage.append_line(self.links_path, url)
        self.saved_links.add(url)
        self.results.commit(number)
        self.clipboard.write("")

        console.print(f"[green]Saved to {path.name}:[/green] {escape(preview(content, 100, flatten=True))}")
        return path

    async def undo(self) -> Path:
        """
        Reverse the last save.

        The link is always dropped from links.txt and the duplicate set. The
        result file is deleted only if its header names that same link.
        """
        if self.results.counter == 0:
            raise JobError("Nothing to undo, no saves have been made yet")

        last_url = storage.remove_last_line(self.links_path)
        if last_url is None:
            raise JobError("No links to undo")
        self.saved_links.discard(last_url)

        number = self.results.rollback()
        path = self.results.path(number)
        if not path.exists():
            raise IOFailure(f"Removed link {last_url} but {path.name} was not found")

        try:
            recorded = CapturedText.source_url(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise IOFailure(f"Could not read {path}: {e}") from e

        if recorded != last_url:
            raise VerificationMismatch(
                f"{path.name} records {recorded or 'no URL'}, not {last_url}; "
                f"kept the file and only removed the link"
            )

        storage.delete_file(path)
        console.print(f"[green]Undone: removed {path.name} and link {escape(last_url)}[/green]")
        return path

    def next_link(self) -> Optional[str]:
        if self.input_index >= len(self.input_links):
            return None
        line = self.input_links[self.input_index]
        self.input_index += 1
        return line

    def prev_link(self) -> Optional[str]:
        if self.input_index <= 1:
            return None
        self.input_index -= 1
        return self.input_links[self.input_index - 1]


async def initialize_session(
    settings: Settings,
    clipboard: Optional[Clipboard] = None,
    prompt: PromptFn = ask
) -> CaptureSession:
    """Connect to Chrome (launching it if no port is configured) and open a session."""
    console.print("[cyan]Initializing capture session...[/cyan]")
    port = settings.chrome_port
    if not port:
        port = DEFAULT_CHROME_PORT
        await start_chrome(
            port,
            settings.output_path("browser-session"),
            binary=settings.chrome_binary,
            startup_wait=settings.chrome_startup_wait,
        )
    else:
        console.print(f"[cyan]Using existing Chrome on port {port}[/cyan]")

    connection = await connect_to_browser(port)
    try:
        tabs = await TabTracker.attach_context(connection.context)

        input_links: List[str] = []
        links_file = settings.job_file("links.txt")
        if links_file.exists():
            input_links = storage.read_lines(links_file)

        session = CaptureSession(
            settings.output_dir,
            tabs,
            clipboard=clipboard,
            prompt=prompt,
            input_links=input_links,
            connection=connection,
        )
        return session.open()
    except Exception:
        await connection.close()
        raise
