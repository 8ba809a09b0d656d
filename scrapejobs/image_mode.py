"""
Image mode: download images from the active tab with a caption file each.
"""

import logging
from collections import deque
from pathlib import Path
from typing import Deque, List, Optional
from urllib.parse import urljoin, urlparse
import httpx
from playwright.async_api import Error as PlaywrightError
from rich.markup import escape
from selectolax.parser import HTMLParser
from .browser import open_tab
from .errors import IOFailure, JobError, VerificationMismatch
from .models import ImageMeta, PageImage
from .terminal import ask_async, console
from . import storage

logger = logging.getLogger(__name__)

IMAGE_BINDING = "scrapejobsSaveImage"

INSTALL_JS = """
() => {
  if (window.__scrapejobsImageHandler) return;
  window.__scrapejobsImageHandler = (e) => {
    const target = e.target;
    let img = null;
    if (target.tagName === 'IMG') {
      img = target;
    } else if (target.parentElement && target.parentElement.querySelector('img')) {
      img = target.parentElement.querySelector('img');
    } else {
      img = target.querySelector('img');
    }
    if (img && img.src) window.scrapejobsSaveImage(img.src);
  };
  document.addEventListener('click', window.__scrapejobsImageHandler);
}
"""

REMOVE_JS = """
() => {
  if (!window.__scrapejobsImageHandler) return;
  document.removeEventListener('click', window.__scrapejobsImageHandler);
  delete window.__scrapejobsImageHandler;
}
"""

HELP = """Click on an image in the browser and press Enter, or use sub-commands:
  list        list all images on the page
  open <n>    open the n-th image in a new tab
  save <n>    download the n-th image
  undo        remove the last downloaded image
  leave       leave image mode"""

PROMPT = "\n[list/open/save/undo/leave]: "

HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
}


def image_extension(src: str, default: str = "jpeg") -> str:
    """Extension of the last path segment of an image URL."""
    segment = urlparse(src).path.rsplit("/", 1)[-1]
    dot = segment.rfind(".")
    if 0 < dot < len(segment) - 1:
        return segment[dot + 1:].lower()
    return default


def list_images(html: str, base_url: str) -> List[PageImage]:
    """All <img> elements of a page in document order, with absolute sources."""
    tree = HTMLParser(html)
    images = []
    for index, node in enumerate(tree.css("img")):
        attrs = node.attributes
        src = attrs.get("src") or attrs.get("data-src") or ""
        images.append(PageImage(
            index=index,
            src=urljoin(base_url, src) if src else "",
            alt=attrs.get("alt"),
            width=attrs.get("width"),
            height=attrs.get("height"),
        ))
    return images


async def download_image(url: str, path: Path) -> Path:
    """Fetch an image, following redirects, and write it to `path`."""
    try:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True, headers=HEADERS) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as e:
        raise IOFailure(f"Failed to download image: {e}") from e
    return storage.write_artifact(path, response.content)


class ImageMode:
    """Click-to-save and indexed image downloads for the active tab."""

    def __init__(self, session):
        self.session = session
        self.active = False
        self.page = None
        self.page_url = ""
        self.pending: Deque[str] = deque()
        self._bound_pages: list = []

    async def enter(self) -> bool:
        page = await self.session.tabs.get_active_tab()
        if page is None:
            console.print("[red]No active page found[/red]")
            return False

        try:
            if page not in self._bound_pages:
                await page.expose_binding(IMAGE_BINDING, lambda source, src: self.on_click(src))
                self._bound_pages.append(page)
            await page.evaluate(INSTALL_JS)
        except PlaywrightError as e:
            console.print(f"[red]Failed to initialize image mode: {escape(str(e))}[/red]")
            return False

        self.page = page
        self.page_url = page.url
        self.pending.clear()
        self.active = True
        console.print("\n[cyan]Entering image mode...[/cyan]")
        console.print(HELP)
        return True

    async def leave(self) -> None:
        self.active = False
        self.pending.clear()
        if self.page is not None:
            try:
                await self.page.evaluate(REMOVE_JS)
            except PlaywrightError as e:
                logger.warning("Failed to remove image click handler: %s", e)
        self.page = None

    def on_click(self, src: str) -> None:
        if not self.active or not src:
            return
        self.pending.append(src)
        console.print(f"\n[cyan]Queued image: {escape(src[:60])}... (press Enter to save)[/cyan]")

    async def process_pending(self) -> List[Path]:
        saved = []
        while self.pending:
            saved.append(await self.save_image(self.pending.popleft()))
        return saved

    async def images(self) -> List[PageImage]:
        return list_images(await self.page.content(), self.page.url)

    async def list(self) -> List[PageImage]:
        images = await self.images()
        console.print(f"\n[cyan]Found {len(images)} images:[/cyan]")
        for img in images:
            console.print(f"  [{img.index}] {img.alt} - {img.width}x{img.height}", markup=False)
            console.print(f"      {img.src}", markup=False)
        return images

    async def _image_at(self, arg: str) -> PageImage:
        if not arg.isdigit():
            raise JobError("Invalid index. Usage: open <number> / save <number>")
        index = int(arg)
        images = await self.images()
        if index >= len(images) or not images[index].src:
            raise JobError(f"Image {index} not found")
        return images[index]

    async def open(self, arg: str) -> None:
        img = await self._image_at(arg)
        await open_tab(self.session.context, img.src)
        console.print(f"[green]Opened image {img.index} in new tab[/green]")

    async def save(self, arg: str) -> Path:
        img = await self._image_at(arg)
        return await self.save_image(img.src)

    async def save_image(self, src: str) -> Path:
        """Download one image and record its caption metadata."""
        session = self.session
        console.print(f"\n[cyan]Downloading image: {escape(src[:60])}...[/cyan]")

        number, path = await session.images.reserve(image_extension(src))
        await download_image(src, path)
        session.images.commit(number)
        console.print(f"[green]Downloaded to images/{escape(path.name)}[/green]")

        await ask_async(session.prompt, "Copy the caption and press Enter...")
        meta = ImageMeta(
            number=number,
            page_url=self.page_url,
            image_path=f"images/{path.name}",
            caption=session.clipboard.read(),
        )
        meta_path = self.meta_path(number)
        storage.write_artifact(meta_path, meta.render())
        session.clipboard.write("")
        console.print(f"[green]Saved metadata to img-meta/{escape(meta_path.name)}[/green]")
        return path

    def meta_path(self, number: int) -> Path:
        return self.session.img_meta_dir / f"{self.session.images.pad(number)}.txt"

    async def undo(self) -> Path:
        """
        Delete the last downloaded image and its metadata.

        Nothing is deleted unless the metadata file points at that image.
        """
        images = self.session.images
        number = images.rollback()
        if number is None:
            raise JobError("Nothing to undo, no images have been saved yet")

        image_path = images.find(number)
        meta_path = self.meta_path(number)
        if image_path is None:
            images.commit(number)
            raise IOFailure(f"No image numbered {images.pad(number)} found")

        meta: Optional[ImageMeta] = None
        if meta_path.exists():
            meta = ImageMeta.parse(meta_path.read_text(encoding="utf-8"))
        if meta is None or meta.image_path != f"images/{image_path.name}":
            images.commit(number)
            raise VerificationMismatch(
                f"img-meta/{meta_path.name} does not describe images/{image_path.name}; nothing deleted"
            )

        storage.delete_file(image_path)
        storage.delete_file(meta_path)
        console.print(f"[green]Undone: removed images/{escape(image_path.name)} and img-meta/{escape(meta_path.name)}[/green]")
        return image_path
