"""
Operator-facing I/O: the shared console, the line prompt and the clipboard.
"""

import asyncio
from typing import Callable, Protocol
import pyperclip
from rich.console import Console
from .errors import IOFailure

console = Console()

PromptFn = Callable[[str], str]


class Clipboard(Protocol):
    def read(self) -> str: ...

    def write(self, text: str) -> None: ...


class SystemClipboard:
    """Clipboard of the desktop session."""

    def read(self) -> str:
        try:
            return pyperclip.paste() or ""
        except pyperclip.PyperclipException as e:
            raise IOFailure(f"Could not read clipboard: {e}") from e

    def write(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            raise IOFailure(f"Could not write clipboard: {e}") from e


def ask(text: str) -> str:
    """Blocking read of one line of operator input."""
    return console.input(text, markup=False)


async def ask_async(prompt: PromptFn, text: str) -> str:
    # Run the blocking read off the event loop so browser events keep arriving.
    return await asyncio.to_thread(prompt, text)


def preview(text: str, limit: int = 200, flatten: bool = False) -> str:
    if flatten:
        text = " ".join(text.split())
    suffix = "..." if len(text) > limit else ""
    return f"{text[:limit]}{suffix}"
