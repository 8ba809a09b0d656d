"""
Copy mode: pick text out of the page by clicking an element.

A click reports the clicked element and every ancestor up to <body>; the
operator picks one by index, optionally trims it, and saves.
"""

import logging
import shlex
from typing import List
from playwright.async_api import Error as PlaywrightError
from rich.markup import escape
from .errors import EmptyCapture, JobError
from .models import Ancestor
from .terminal import console, preview

logger = logging.getLogger(__name__)

CAPTURE_BINDING = "scrapejobsCapture"

INSTALL_JS = """
() => {
  if (window.__scrapejobsCopyHandler) return;
  window.__scrapejobsCopyHandler = (e) => {
    e.preventDefault();
    e.stopPropagation();
    const ancestors = [];
    let current = e.target;
    let index = 0;
    while (current && current !== document.body.parentElement) {
      const clone = current.cloneNode(true);
      clone.querySelectorAll('script, style, link').forEach(node => node.remove());
      const textContent = (clone.textContent || '').replace(/\\s+/g, ' ').trim();
      let textPreview = textContent.slice(0, 100);
      if (textContent.length > 100) {
        textPreview += '...' + textContent.slice(Math.max(100, textContent.length - 100));
      }
      ancestors.push({index, textContent, textPreview});
      current = current.parentElement;
      index++;
    }
    window.scrapejobsCapture(ancestors);
  };
  document.addEventListener('click', window.__scrapejobsCopyHandler, true);
}
"""

REMOVE_JS = """
() => {
  if (!window.__scrapejobsCopyHandler) return;
  document.removeEventListener('click', window.__scrapejobsCopyHandler, true);
  delete window.__scrapejobsCopyHandler;
}
"""

HELP = """Click on an element in the browser, or use sub-commands:
  save               save the copied text and leave copy mode
  pick <n>           copy the text of the n-th ancestor
  trim <start> [end] trim the copied text (offsets or strings)
  list               show the last captured ancestors again
  view               show the copied text
  leave              leave copy mode without saving"""

PROMPT = "\n[save/pick/trim/list/view/leave]: "


def trim_text(text: str, start: str, end: str = "0") -> str:
    """
    Cut `text` down to the part between `start` and `end`.

    A numeric start is a character offset; any other start cuts before its
    first occurrence. A numeric end is an exclusive offset (0 means the end of
    the text); any other end cuts before its last occurrence.
    """
    if start.isdigit():
        start_idx = int(start)
    else:
        start_idx = text.find(start)
        if start_idx == -1:
            raise JobError(f'Start string "{start}" not found in text')

    if end.isdigit():
        end_idx = int(end) or len(text)
    else:
        end_idx = text.rfind(end)
        if end_idx == -1:
            raise JobError(f'End string "{end}" not found in text')

    if end_idx < start_idx:
        raise JobError(f"End ({end_idx}) is before start ({start_idx})")
    return text[start_idx:end_idx]


class CopyMode:
    """Element-capture buffer for the copy sub-mode."""

    def __init__(self, session):
        self.session = session
        self.active = False
        self.ancestors: List[Ancestor] = []
        self.copied_text = ""
        self.page = None
        self._bound = False

    async def bind(self, context) -> None:
        """Register the capture callback once for the whole browser context."""
        if self._bound or context is None:
            return
        await context.expose_binding(CAPTURE_BINDING, lambda source, data: self.on_capture(data))
        self._bound = True

    def on_capture(self, data) -> None:
        if not self.active:
            return
        self.ancestors = [Ancestor.model_validate(item) for item in data or []]
        console.print(f"\n[cyan]Captured element with {len(self.ancestors)} ancestors[/cyan]")
        self.show_ancestors()

    async def enter(self) -> bool:
        page = await self.session.tabs.get_active_tab()
        if page is None:
            console.print("[red]No active page found[/red]")
            return False

        await self.bind(self.session.context)
        try:
            await page.evaluate(INSTALL_JS)
        except PlaywrightError as e:
            logger.warning("Failed to install copy handler: %s", e)
            console.print(f"[red]Failed to initialize copy mode: {escape(str(e))}[/red]")
            return False

        self.page = page
        self.active = True
        self.ancestors = []
        self.copied_text = ""
        console.print("\n[cyan]Entering copy mode...[/cyan]")
        console.print(HELP)
        return True

    async def leave(self) -> None:
        self.active = False
        if self.page is not None:
            try:
                await self.page.evaluate(REMOVE_JS)
            except PlaywrightError as e:
                logger.warning("Failed to remove copy handler: %s", e)
        self.page = None

    def show_ancestors(self) -> None:
        console.print(f"\n[cyan]Element ancestors ({len(self.ancestors)} total):[/cyan]")
        for ancestor in self.ancestors:
            console.print(f"  [{ancestor.index}] - {len(ancestor.text_content)} chars", markup=False)
            console.print(f"      {ancestor.text_preview}", markup=False)

    def list(self) -> None:
        if not self.ancestors:
            raise JobError("No element captured yet. Click on an element first.")
        self.show_ancestors()

    def view(self) -> str:
        if not self.copied_text.strip():
            raise EmptyCapture("No text has been copied yet")
        console.print(f"\n[cyan]Current copied text ({len(self.copied_text)} chars):[/cyan]")
        console.print(preview(self.copied_text, 500), markup=False)
        return self.copied_text

    def pick(self, arg: str) -> str:
        if not self.ancestors:
            raise JobError("No element captured yet. Click on an element first.")
        if not arg.isdigit():
            raise JobError("Invalid index. Usage: pick <number>")
        index = int(arg)
        match = next((a for a in self.ancestors if a.index == index), None)
        if match is None:
            raise JobError(f'Ancestor {index} not found. Use "list" to see available ancestors.')
        self.copied_text = match.text_content
        console.print(f"[green]Copied {len(self.copied_text)} characters from [{index}][/green]")
        console.print(f"   Preview: {preview(self.copied_text, flatten=True)}", markup=False)
        return self.copied_text

    def trim(self, args: List[str]) -> str:
        if not self.copied_text.strip():
            raise EmptyCapture('No text to trim. Use "pick <n>" first.')
        if not args:
            raise JobError('Usage: trim <start> [end], e.g. trim 0 100 or trim "Chapter" "End"')
        end = args[1] if len(args) > 1 else "0"
        self.copied_text = trim_text(self.copied_text, args[0], end)
        console.print(f"[green]Trimmed to {len(self.copied_text)} characters[/green]")
        console.print(f"   Preview: {preview(self.copied_text, flatten=True)}", markup=False)
        return self.copied_text

    def stage_for_save(self) -> None:
        """Put the copied text where `save` reads captures from."""
        if not self.copied_text.strip():
            raise EmptyCapture('No text has been copied yet. Use "pick <n>" first.')
        self.session.clipboard.write(self.copied_text)


def split_args(line: str) -> List[str]:
    """Split a sub-command line, honouring quotes."""
    try:
        return shlex.split(line)
    except ValueError:
        return line.split()
