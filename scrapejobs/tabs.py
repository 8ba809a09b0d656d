"""
Tracks which browser tab the operator is looking at.

Browsers cannot be asked which tab has focus reliably over CDP, so the browser
context gets a capture-phase click hook that every tab, including ones opened
later, reports back through. Click, open and close events are queued as they
arrive and applied in `drain()`, which every command calls before it reads the
active tab.
"""

import logging
from collections import deque
from typing import Any, Deque, List, Optional, Tuple
from playwright.async_api import Error as PlaywrightError

logger = logging.getLogger(__name__)

FOCUS_BINDING = "scrapejobsFocus"

FOCUS_HOOK_JS = """
() => {
  if (window.__scrapejobsFocusHook) return;
  window.__scrapejobsFocusHook = () => window.scrapejobsFocus();
  document.addEventListener('click', window.__scrapejobsFocusHook, {capture: true});
}
"""

BLANK_URL = "about:blank"


class TabTracker:
    """Open tabs plus the index of the active one."""

    def __init__(self, tabs: Optional[List[Any]] = None):
        self.tabs: List[Any] = list(tabs or [])
        self.active_index = 0
        self._events: Deque[Tuple[str, Any]] = deque()
        self._watched: List[Any] = []

    @classmethod
    async def attach_context(cls, context) -> "TabTracker":
        """Hook every open tab of a browser context and every tab opened later."""
        tracker = cls()
        context.on("page", tracker.post_open)
        try:
            await context.expose_binding(FOCUS_BINDING, lambda source: tracker.post_click(source["page"]))
            await context.add_init_script(script=f"({FOCUS_HOOK_JS})()")
        except PlaywrightError as e:
            logger.warning("Could not attach focus hook to browser context: %s", e)
        for page in list(context.pages):
            await tracker.add_tab(page)
        return tracker

    def _watch(self, page) -> None:
        if page in self._watched:
            return
        self._watched.append(page)
        page.on("close", self.post_close)

    async def add_tab(self, page) -> None:
        self._watch(page)
        if page.is_closed():
            return
        if page not in self.tabs:
            self.tabs.append(page)
        try:
            await page.evaluate(FOCUS_HOOK_JS)
        except PlaywrightError as e:
            logger.warning("Could not attach focus hook to %s: %s", page.url, e)

    def post_click(self, page) -> None:
        self._events.append(("click", page))

    def post_open(self, page) -> None:
        self._watch(page)
        self._events.append(("open", page))

    def post_close(self, page) -> None:
        self._events.append(("close", page))

    @property
    def pending(self) -> int:
        return len(self._events)

    async def drain(self) -> None:
        """Apply queued browser events in arrival order."""
        while self._events:
            kind, page = self._events.popleft()
            if kind == "click":
                self._apply_click(page)
            elif kind == "open":
                await self.add_tab(page)
            elif kind == "close":
                await self._apply_close(page)

    def _apply_click(self, page) -> None:
        if not self.tabs:
            self.active_index = 0
            return
        index = self.tabs.index(page) if page in self.tabs else len(self.tabs)
        self.active_index = min(index, len(self.tabs) - 1)

    async def _apply_close(self, page) -> None:
        if page in self.tabs:
            self.tabs.remove(page)
        if not self.tabs:
            self.active_index = 0
            return
        if self.active_index >= len(self.tabs):
            self.active_index = len(self.tabs) - 1
            await self._bring_to_front(self.tabs[self.active_index])

    async def _bring_to_front(self, page) -> None:
        try:
            await page.bring_to_front()
        except PlaywrightError as e:
            logger.warning("Could not bring tab to front: %s", e)

    async def get_active_tab(self):
        """The active tab, brought to the foreground, or None when no tab is open."""
        await self.drain()
        if not self.tabs:
            self.active_index = 0
            return None
        self.active_index = min(self.active_index, len(self.tabs) - 1)
        tab = self.tabs[self.active_index]
        await self._bring_to_front(tab)
        return tab

    async def active_url(self) -> str:
        tab = await self.get_active_tab()
        if tab is None:
            return BLANK_URL
        return tab.url or BLANK_URL

    async def focus_next_tab(self) -> None:
        await self._step(1)

    async def focus_prev_tab(self) -> None:
        await self._step(-1)

    async def _step(self, delta: int) -> None:
        await self.drain()
        if not self.tabs:
            return
        self.active_index = (self.active_index + delta) % len(self.tabs)
        await self._bring_to_front(self.tabs[self.active_index])
