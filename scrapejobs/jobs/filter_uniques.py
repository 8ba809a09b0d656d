"""
Keep the first row for every email address of jobs/<name>/data.csv.
"""

from typing import Dict, List, Optional, Set
from ..config import Settings
from ..job import start
from .. import storage

KEY_FIELD = "Email"


def load_rows(settings: Settings) -> List[Dict[str, str]]:
    return storage.load_csv(settings.job_file("data.csv"))


def first_by(field: str):
    seen: Set[str] = set()

    def keep_first(row: Dict[str, str], _state, _index) -> Optional[Dict[str, str]]:
        value = (row.get(field) or "").strip()
        if value in seen:
            return None
        seen.add(value)
        return row

    return keep_first


async def main(settings: Settings) -> None:
    await (
        start(load_rows, settings, output_dir=settings.output_dir)
        .pipe_each_filtered(first_by(KEY_FIELD))
        .save_as("filtered.csv")
        .run()
    )
