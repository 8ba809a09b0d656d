"""
Interactive capture: save clipboard text and images from a hand-driven Chrome.
"""

from ..commands import CommandLoop
from ..config import Settings
from ..session import initialize_session
from ..terminal import console


async def main(settings: Settings) -> None:
    console.print("[bold]Starting search-n-save[/bold]")
    session = await initialize_session(settings)
    await CommandLoop(session).run()
