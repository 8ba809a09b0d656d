"""
Browser access using Playwright.

Two flavours: a headless `BrowserScraper` for pipeline steps that fetch pages,
and a CDP connection to a visible Chrome the operator drives by hand.
"""

import asyncio
import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union
from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright
from .terminal import console

logger = logging.getLogger(__name__)

DEFAULT_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]


class BrowserScraper:
    """Headless browser for fetching rendered pages."""

    def __init__(self, headless: bool = True):
        self.headless = headless
        self.browser: Optional[Browser] = None
        self.playwright: Optional[Playwright] = None

    async def __aenter__(self):
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(headless=self.headless, args=DEFAULT_ARGS)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self.browser:
            await self.browser.close()
        if self.playwright:
            await self.playwright.stop()

    async def get_html(self, url: str, wait_for: Optional[str] = None, wait_time: int = 5000) -> str:
        """
        Fetch rendered HTML of a URL.

        Args:
            url: URL to fetch
            wait_for: CSS selector to wait for before returning HTML
            wait_time: Maximum time to wait for the selector in milliseconds

        Returns:
            Rendered HTML content
        """
        if not self.browser:
            raise RuntimeError("Browser not initialized. Use async with context manager.")

        page = await self.browser.new_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=30000)
            if wait_for:
                try:
                    await page.wait_for_selector(wait_for, timeout=wait_time)
                except Exception as e:
                    logger.warning("Timeout waiting for selector '%s' on %s: %s", wait_for, url, e)
            return await page.content()
        finally:
            await page.close()

    async def get_multiple_pages(
        self,
        urls: List[str],
        wait_for: Optional[str] = None
    ) -> List[Union[str, BaseException]]:
        """Fetch several pages concurrently; failures come back as exceptions."""
        tasks = [self.get_html(url, wait_for) for url in urls]
        return await asyncio.gather(*tasks, return_exceptions=True)


@dataclass
class ChromeConnection:
    playwright: Playwright
    browser: Browser
    context: BrowserContext

    async def close(self) -> None:
        try:
            await self.browser.close()
        finally:
            await self.playwright.stop()
        console.print("[cyan]Browser connection closed[/cyan]")


async def start_chrome(
    port: int,
    user_data_dir: Path,
    binary: str = "google-chrome",
    startup_wait: float = 3.0
) -> subprocess.Popen:
    """Launch a detached Chrome with remote debugging and a persistent profile."""
    console.print("[cyan]Starting Chrome with remote debugging...[/cyan]")
    Path(user_data_dir).mkdir(parents=True, exist_ok=True)
    process = subprocess.Popen(
        [binary, f"--remote-debugging-port={port}", f"--user-data-dir={user_data_dir}"],
        stdout=subprocess.DEVNULL,
        stderr=subprocess.DEVNULL,
        start_new_session=True,
    )
    await asyncio.sleep(startup_wait)
    console.print(f"[green]Chrome started on port {port}[/green]")
    return process


async def connect_to_browser(port: int) -> ChromeConnection:
    """Attach to Chrome over CDP and use its first context."""
    console.print(f"[cyan]Connecting to Chrome on port {port}...[/cyan]")
    playwright = await async_playwright().start()
    try:
        browser = await playwright.chromium.connect_over_cdp(f"http://localhost:{port}")
    except Exception:
        await playwright.stop()
        console.print(f"[red]Failed to connect to Chrome on port {port}[/red]")
        console.print(f"Start Chrome with: google-chrome --remote-debugging-port={port}")
        raise

    if browser.contexts:
        context = browser.contexts[0]
        console.print("[green]Connected to existing Chrome context[/green]")
    else:
        context = await browser.new_context()
        console.print("[green]Created new Chrome context[/green]")
    return ChromeConnection(playwright=playwright, browser=browser, context=context)


async def open_tab(context: BrowserContext, url: str) -> Page:
    page = await context.new_page()
    await page.goto(url)
    return page
