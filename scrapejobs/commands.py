"""
Interactive command loop for a capture session.

One command is read and completed before the next prompt. The loop is in one
of three modes (idle, copy, image) and every mode has its own command table.
Errors from a command are reported and the loop carries on in the same mode.
"""

import logging
from typing import Awaitable, Callable, Dict, List
from playwright.async_api import Error as PlaywrightError
from rich.markup import escape
from .copy_mode import CopyMode, split_args, PROMPT as COPY_PROMPT
from .errors import IOFailure, JobError
from .image_mode import ImageMode, PROMPT as IMAGE_PROMPT
from .session import CaptureSession, Mode
from .terminal import ask_async, console, preview

logger = logging.getLogger(__name__)

Handler = Callable[[List[str]], Awaitable[None]]


class CommandLoop:
    """Read-dispatch loop over a CaptureSession."""

    def __init__(self, session: CaptureSession):
        self.session = session
        self.copy_mode = CopyMode(session)
        self.image_mode = ImageMode(session)
        self.running = True
        self._tables: Dict[Mode, Dict[str, Handler]] = {
            Mode.IDLE: self._idle_commands(),
            Mode.COPY: self._copy_commands(),
            Mode.IMAGE: self._image_commands(),
        }

    @property
    def mode(self) -> Mode:
        return self.session.mode

    def hint(self) -> str:
        if self.mode is Mode.COPY:
            return COPY_PROMPT
        if self.mode is Mode.IMAGE:
            return IMAGE_PROMPT
        if self.session.input_links:
            return "\nCommand [next/prev/save/check/view/copy/img/tabs/undo/exit]: "
        return "\nCommand [save/check/view/copy/img/tabs/undo/exit]: "

    async def run(self) -> None:
        """Prompt until `exit`, then close the browser connection."""
        try:
            while self.running:
                line = await ask_async(self.session.prompt, self.hint())
                await self.dispatch(line)
            console.print(f"\n[green]Job completed. Saved {self.session.saved_link_count} links.[/green]")
        except (KeyboardInterrupt, EOFError):
            console.print("\n[yellow]Interrupted[/yellow]")
        except Exception as e:
            console.print(f"[red]Fatal error during processing: {escape(str(e))}[/red]")
            raise
        finally:
            await self.session.close()

    async def dispatch(self, line: str) -> None:
        """Run one command line in the current mode."""
        args = split_args(line.strip())
        if self.mode is Mode.IMAGE:
            # Enter (or any command) first saves images clicked since the last prompt.
            await self._guard(self.image_mode.process_pending)
        if not args:
            return

        name = args[0].lower()
        handler = self._tables[self.mode].get(name)
        if handler is None:
            console.print(f"[red]Unknown command: {escape(name)}. Type 'help' for the list of commands.[/red]")
            return
        await self._guard(handler, args[1:])

    async def _guard(self, fn, *args) -> None:
        try:
            await fn(*args)
        except JobError as e:
            console.print(f"[yellow]{escape(str(e))}[/yellow]")
        except OSError as e:
            console.print(f"[red]{escape(str(IOFailure(str(e))))}[/red]")
        except PlaywrightError as e:
            if not self.session.is_connected():
                raise
            console.print(f"[red]Browser error: {escape(str(e))}[/red]")

    def _idle_commands(self) -> Dict[str, Handler]:
        table = {
            "save": self._save,
            "undo": self._undo,
            "check": self._check,
            "view": self._view,
            "next": self._next,
            "prev": self._prev,
            "copy": self._enter_copy,
            "img": self._enter_image,
            "tabs": self._tabs,
            "tab+": self._tab_next,
            "tab-": self._tab_prev,
            "help": self._help,
            "exit": self._exit,
        }
        aliases = {"s": "save", "u": "undo", "c": "check", "v": "view", "n": "next", "p": "prev",
                   "cp": "copy", "i": "img", "list": "tabs", "l": "tabs", "h": "help", "?": "help", "e": "exit"}
        table.update({alias: table[name] for alias, name in aliases.items()})
        return table

    def _copy_commands(self) -> Dict[str, Handler]:
        table = {
            "save": self._copy_save,
            "pick": self._copy_pick,
            "trim": self._copy_trim,
            "list": self._copy_list,
            "view": self._copy_view,
            "leave": self._leave_copy,
            "help": self._help,
        }
        aliases = {"s": "save", "p": "pick", "t": "trim", "v": "view", "l": "leave", "h": "help"}
        table.update({alias: table[name] for alias, name in aliases.items()})
        return table

    def _image_commands(self) -> Dict[str, Handler]:
        table = {
            "list": self._image_list,
            "open": self._image_open,
            "save": self._image_save,
            "undo": self._image_undo,
            "leave": self._leave_image,
            "help": self._help,
        }
        aliases = {"s": "save", "o": "open", "u": "undo", "l": "leave", "h": "help"}
        table.update({alias: table[name] for alias, name in aliases.items()})
        return table

    # idle

    async def _save(self, args: List[str]) -> None:
        await self.session.save()

    async def _undo(self, args: List[str]) -> None:
        await self.session.undo()

    async def _check(self, args: List[str]) -> None:
        url, saved = await self.session.check()
        if saved:
            console.print(f"[red]Already saved: {escape(url)}[/red]")
        else:
            console.print(f"[green]New URL: {escape(url)}[/green]")

    async def _view(self, args: List[str]) -> None:
        content = self.session.view()
        console.print(f"\n[cyan]Clipboard preview ({len(content)} chars):[/cyan]")
        console.print(preview(content), markup=False)

    async def _next(self, args: List[str]) -> None:
        line = self.session.next_link()
        if line is None:
            raise JobError("No more lines to process. Reached end of file.")
        console.print(f"\nLine #{self.session.input_index}: {line}", markup=False)

    async def _prev(self, args: List[str]) -> None:
        line = self.session.prev_link()
        if line is None:
            raise JobError("No previous line to go back to.")
        console.print(f"\nLine #{self.session.input_index}: {line}", markup=False)

    async def _tabs(self, args: List[str]) -> None:
        tabs = self.session.tabs
        await tabs.drain()
        if not tabs.tabs:
            console.print("[yellow]No open tabs[/yellow]")
            return
        for i, tab in enumerate(tabs.tabs):
            marker = "*" if i == tabs.active_index else " "
            console.print(f" {marker} [{i}] {tab.url}", markup=False)

    async def _tab_next(self, args: List[str]) -> None:
        await self.session.tabs.focus_next_tab()
        await self._tabs(args)

    async def _tab_prev(self, args: List[str]) -> None:
        await self.session.tabs.focus_prev_tab()
        await self._tabs(args)

    async def _enter_copy(self, args: List[str]) -> None:
        if await self.copy_mode.enter():
            self.session.mode = Mode.COPY

    async def _enter_image(self, args: List[str]) -> None:
        if await self.image_mode.enter():
            self.session.mode = Mode.IMAGE

    async def _help(self, args: List[str]) -> None:
        names = sorted(k for k in self._tables[self.mode] if len(k) > 2)
        console.print(f"Commands: {', '.join(names)}")

    async def _exit(self, args: List[str]) -> None:
        console.print("Exiting...")
        self.running = False

    # copy mode

    async def _copy_save(self, args: List[str]) -> None:
        self.copy_mode.stage_for_save()
        await self._leave_copy(args)
        await self.session.save()

    async def _copy_pick(self, args: List[str]) -> None:
        self.copy_mode.pick(args[0] if args else "")

    async def _copy_trim(self, args: List[str]) -> None:
        self.copy_mode.trim(args)

    async def _copy_list(self, args: List[str]) -> None:
        self.copy_mode.list()

    async def _copy_view(self, args: List[str]) -> None:
        self.copy_mode.view()

    async def _leave_copy(self, args: List[str]) -> None:
        console.print("Leaving copy mode...")
        await self.copy_mode.leave()
        self.session.mode = Mode.IDLE

    # image mode

    async def _image_list(self, args: List[str]) -> None:
        await self.image_mode.list()

    async def _image_open(self, args: List[str]) -> None:
        await self.image_mode.open(args[0] if args else "")

    async def _image_save(self, args: List[str]) -> None:
        await self.image_mode.save(args[0] if args else "")

    async def _image_undo(self, args: List[str]) -> None:
        await self.image_mode.undo()

    async def _leave_image(self, args: List[str]) -> None:
        console.print("Leaving image mode...")
        await self.image_mode.leave()
        self.session.mode = Mode.IDLE
