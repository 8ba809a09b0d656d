"""
Fetch the <title> of every URL in jobs/<name>/links.txt.

Pages are fetched in windows of BATCH_SIZE; the pages of one window load
concurrently in a headless browser.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional
from selectolax.parser import HTMLParser
from ..browser import BrowserScraper
from ..config import Settings
from ..job import start
from .. import storage

logger = logging.getLogger(__name__)

BATCH_SIZE = 5


@dataclass
class PageTitlesState:
    settings: Settings
    scraper: BrowserScraper


def extract_title(html: str) -> str:
    node = HTMLParser(html).css_first("title")
    return node.text(strip=True) if node else ""


def read_links(state: PageTitlesState) -> List[str]:
    return storage.read_lines(state.settings.job_file("links.txt"))


async def fetch_titles(urls: List[str], offset: int, state: PageTitlesState) -> List[Dict[str, str]]:
    pages = await state.scraper.get_multiple_pages(urls)
    records = []
    for i, (url, html) in enumerate(zip(urls, pages)):
        if isinstance(html, BaseException):
            logger.warning("Link %d (%s) failed: %s", offset + i + 1, url, html)
            html = ""
        records.append({"url": url, "title": extract_title(html)})
    return records


def has_title(record: Dict[str, str], _state, _index) -> Optional[Dict[str, str]]:
    return record if record["title"] else None


async def main(settings: Settings) -> None:
    async with BrowserScraper(headless=settings.headless) as scraper:
        state = PageTitlesState(settings=settings, scraper=scraper)
        await (
            start(read_links, state, output_dir=settings.output_dir)
            .pipe_sliced(fetch_titles, BATCH_SIZE)
            .save_as("titles.json")
            .pipe_each_filtered(has_title)
            .save_as("titles.csv")
            .run()
        )
