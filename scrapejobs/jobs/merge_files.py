"""
Concatenate every saved result file under the jobs directory into one file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
from rich.markup import escape
from ..config import Settings
from ..job import start
from ..terminal import console
from .. import storage

GLOB_PATTERNS = ["**/result-*.txt"]
OUTPUT_FILE = "out.txt"
SEPARATOR = "\n\n\n"


@dataclass
class MergeState:
    root: Path
    output: Path
    patterns: List[str] = field(default_factory=lambda: list(GLOB_PATTERNS))


def find_files(state: MergeState) -> List[str]:
    if state.output.exists():
        storage.delete_file(state.output)
    return [str(p) for pattern in state.patterns for p in state.root.glob(pattern) if p.is_file()]


def compare_paths(a: str, b: str) -> int:
    return (a > b) - (a < b)


def append_file(path: str, state: MergeState, _index) -> str:
    content = Path(path).read_text(encoding="utf-8")
    storage.append_text(content + SEPARATOR, state.output)
    return path


async def main(settings: Settings) -> None:
    state = MergeState(root=settings.jobs_dir, output=settings.output_path(OUTPUT_FILE))
    merged = await start(find_files, state).sort(compare_paths).pipe_each(append_file).run()
    console.print(f"[green]Merged {len(merged)} files into {escape(str(state.output))}[/green]")
