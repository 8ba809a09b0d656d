"""
Collision-safe sequence numbers for artifacts saved into a directory.
"""

import logging
import re
from pathlib import Path
from typing import Optional, Tuple
from rich.markup import escape
from .errors import ArtifactCollision
from .terminal import PromptFn, ask_async, console
from . import storage

logger = logging.getLogger(__name__)

PAD_WIDTH = 5


def pad_number(number: int, width: int = PAD_WIDTH) -> str:
    return str(number).zfill(width)


class NumberedArtifactAllocator:
    """
    Hands out the next free number for a kind of artifact.

    The counter is never stored on its own: `scan()` re-derives it from the
    highest numeric prefix found in the directory.
    """

    def __init__(
        self,
        directory: Path,
        pattern: str,
        template: str,
        label: str = "artifact",
        prompt: Optional[PromptFn] = None,
        width: int = PAD_WIDTH
    ):
        self.directory = Path(directory)
        self.pattern = re.compile(pattern)
        self.template = template
        self.label = label
        self.prompt = prompt
        self.width = width
        self.counter = 0

    def scan(self) -> int:
        """Set the counter to one past the highest number on disk."""
        numbers = [
            int(m.group(1))
            for m in (self.pattern.match(name) for name in storage.list_directory(self.directory))
            if m
        ]
        self.counter = max(numbers) + 1 if numbers else 0
        if numbers:
            console.print(f"[cyan]Found {len(numbers)} existing {self.label} files, last number: {max(numbers)}[/cyan]")
        else:
            console.print(f"[cyan]No numbered {self.label} files found, starting from 0[/cyan]")
        return self.counter

    def pad(self, number: int) -> str:
        return pad_number(number, self.width)

    def filename(self, number: int, ext: Optional[str] = None) -> str:
        return self.template.format(number=self.pad(number), ext=ext)

    def path(self, number: int, ext: Optional[str] = None) -> Path:
        return self.directory / self.filename(number, ext)

    def find(self, number: int) -> Optional[Path]:
        """Existing file carrying this number, whatever its extension."""
        for name in storage.list_directory(self.directory):
            m = self.pattern.match(name)
            if m and int(m.group(1)) == number:
                return self.directory / name
        return None

    def is_taken(self, number: int, ext: Optional[str] = None) -> bool:
        return self.path(number, ext).exists() or self.find(number) is not None

    async def reserve(self, ext: Optional[str] = None) -> Tuple[int, Path]:
        """
        Pick the number for the next write without committing it.

        If the slot is occupied the operator is asked for a replacement
        starting number; without a prompt the collision is an error.
        """
        number = self.counter
        while self.is_taken(number, ext):
            taken = self.path(number, ext)
            if self.prompt is None:
                raise ArtifactCollision(f"{taken.name} already exists")
            number = await self._ask_replacement(taken)
        return number, self.path(number, ext)

    async def _ask_replacement(self, taken: Path) -> int:
        console.print(f"[yellow]{escape(taken.name)} already exists in {self.directory.name}/[/yellow]")
        while True:
            answer = (await ask_async(self.prompt, "Enter a new starting number (blank to cancel): ")).strip()
            if not answer:
                raise ArtifactCollision(f"{taken.name} already exists, save cancelled")
            if not answer.isdigit():
                console.print("[red]Please enter a non-negative whole number[/red]")
                continue
            return int(answer)

    def commit(self, number: int) -> None:
        """Record a successful write at `number`."""
        self.counter = number + 1
        logger.debug("%s counter -> %d", self.label, self.counter)

    def rollback(self) -> Optional[int]:
        """Step the counter back one and return the freed number, or None at zero."""
        if self.counter == 0:
            return None
        self.counter -= 1
        return self.counter
