"""Fake collaborators for the scrapejobs test suite.

Fixtures are in conftest.py. Nothing here touches a real browser, clipboard
or terminal.
"""

from typing import Any, Callable, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from scrapejobs.tabs import FOCUS_BINDING


class FakePage:
    """Stands in for a Playwright Page."""

    def __init__(self, url: str = "about:blank", html: str = "") -> None:
        self.url = url
        self.html = html
        self.front_count = 0
        self.handlers: Dict[str, List[Callable]] = {}
        self.bindings: Dict[str, Callable] = {}
        self.evaluated: List[str] = []
        self.init_scripts: List[str] = []
        self.goto_urls: List[str] = []
        self.closed = False
        self.context: Optional["FakeContext"] = None

    async def bring_to_front(self) -> None:
        self.front_count += 1

    def on(self, event: str, handler: Callable) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def expose_binding(self, name: str, callback: Callable) -> None:
        if name in self.bindings:
            raise PlaywrightError(f'Function "{name}" has been already registered')
        self.bindings[name] = callback

    async def add_init_script(self, script: Optional[str] = None, path: Any = None) -> None:
        self.init_scripts.append(script or "")

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append(expression)
        return None

    async def content(self) -> str:
        return self.html

    async def goto(self, url: str) -> None:
        self.goto_urls.append(url)
        self.url = url

    def is_closed(self) -> bool:
        return self.closed

    def click(self) -> None:
        """Simulate the operator clicking inside the page."""
        self.context.bindings[FOCUS_BINDING]({"page": self})

    def close(self) -> None:
        self.closed = True
        for handler in self.handlers.get("close", []):
            handler(self)

    def __repr__(self) -> str:
        return f"FakePage({self.url!r})"


class FakeContext:
    """Stands in for a Playwright BrowserContext."""

    def __init__(self, pages: Optional[List[FakePage]] = None) -> None:
        self.pages = list(pages or [])
        self.handlers: Dict[str, List[Callable]] = {}
        self.bindings: Dict[str, Callable] = {}
        self.init_scripts: List[str] = []
        for page in self.pages:
            page.context = self

    def on(self, event: str, handler: Callable) -> None:
        self.handlers.setdefault(event, []).append(handler)

    async def expose_binding(self, name: str, callback: Callable) -> None:
        self.bindings[name] = callback

    async def add_init_script(self, script: Optional[str] = None, path: Any = None) -> None:
        self.init_scripts.append(script or "")

    async def new_page(self) -> FakePage:
        page = FakePage()
        self.open(page)
        return page

    def open(self, page: FakePage) -> None:
        """Simulate a tab being opened in the browser."""
        page.context = self
        self.pages.append(page)
        for handler in self.handlers.get("page", []):
            handler(page)


class FakeConnection:
    def __init__(self, context: FakeContext) -> None:
        self.context = context
        self.closed = False
        self.browser = self

    def is_connected(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        self.closed = True


class MemoryClipboard:
    def __init__(self, text: str = "") -> None:
        self.text = text

    def read(self) -> str:
        return self.text

    def write(self, text: str) -> None:
        self.text = text


class ScriptedPrompt:
    """Answers prompts from a queue and records what was asked."""

    def __init__(self, answers: Optional[List[str]] = None) -> None:
        self.answers = list(answers or [])
        self.asked: List[str] = []

    def queue(self, *answers: str) -> None:
        self.answers.extend(answers)

    def __call__(self, text: str) -> str:
        self.asked.append(text)
        if not self.answers:
            raise EOFError("no scripted answer left")
        return self.answers.pop(0)
