"""
Built-in jobs. Each job is a coroutine function taking the run's Settings.
"""

from typing import Awaitable, Callable, Dict
from ..config import Settings
from . import filter_uniques, merge_files, page_titles, search_n_save

JobMain = Callable[[Settings], Awaitable[None]]

JOBS: Dict[str, JobMain] = {
    "filter-uniques": filter_uniques.main,
    "merge-files": merge_files.main,
    "page-titles": page_titles.main,
    "search-n-save": search_n_save.main,
}

__all__ = ["JOBS", "JobMain"]
