"""
File persistence used by pipeline checkpoints and the capture session.

Every write creates missing parent directories. OS-level failures surface as
IOFailure so the command loop can report them without knowing about OSError.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from .errors import IOFailure, TypeMismatch

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_dir(path: PathLike) -> Path:
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


def write_artifact(path: PathLike, content: Union[str, bytes]) -> Path:
    """Write a whole artifact, replacing any previous content."""
    path = Path(path)
    try:
        ensure_dir(path.parent)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not write {path}: {e}") from e
    logger.debug("Wrote %s", path)
    return path


def append_line(path: PathLike, line: str) -> None:
    path = Path(path)
    try:
        ensure_dir(path.parent)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line + "\n")
    except OSError as e:
        raise IOFailure(f"Could not append to {path}: {e}") from e


def append_text(data: Any, path: PathLike) -> None:
    """Append a value as text; non-strings are JSON-encoded."""
    content = data if isinstance(data, str) else json.dumps(data, indent=2)
    append_line(path, content)


def read_lines(path: PathLike) -> List[str]:
    """Non-blank, stripped lines of a text file."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not read {path}: {e}") from e
    return [line.strip() for line in content.split("\n") if line.strip()]


def remove_last_line(path: PathLike) -> Optional[str]:
    """
    Drop the last non-blank line of a file in place.

    Everything before that line is kept byte for byte.

    Returns:
        The removed line, or None if the file holds no lines
    """
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        raise IOFailure(f"Could not read {path}: {e}") from e

    body = content.rstrip("\n")
    if not body.strip():
        return None

    cut = body.rfind("\n")
    removed = body[cut + 1:]
    kept = body[:cut + 1] if cut >= 0 else ""
    try:
        path.write_text(kept, encoding="utf-8")
    except OSError as e:
        raise IOFailure(f"Could not rewrite {path}: {e}") from e
    return removed.strip()


def list_directory(path: PathLike) -> List[str]:
    path = Path(path)
    if not path.exists():
        return []
    try:
        return sorted(p.name for p in path.iterdir() if p.is_file())
    except OSError as e:
        raise IOFailure(f"Could not list {path}: {e}") from e


def delete_file(path: PathLike) -> None:
    path = Path(path)
    try:
        path.unlink()
    except OSError as e:
        raise IOFailure(f"Could not delete {path}: {e}") from e
    logger.debug("Deleted %s", path)


def file_exists(path: PathLike) -> bool:
    return Path(path).exists()


def save_to_json(data: Any, path: PathLike, pretty: bool = True) -> Path:
    content = json.dumps(data, indent=2 if pretty else None, ensure_ascii=False)
    return write_artifact(path, content)


def save_to_csv(data: Any, path: PathLike) -> Path:
    """Write a non-empty list of mappings, header taken from the first record."""
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        raise TypeMismatch("CSV export requires a non-empty list of mappings")

    path = Path(path)
    headers = list(data[0].keys())
    try:
        ensure_dir(path.parent)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
            writer.writeheader()
            for row in data:
                writer.writerow({h: "" if row.get(h) is None else row.get(h) for h in headers})
    except OSError as e:
        raise IOFailure(f"Could not write {path}: {e}") from e
    return path


def save_to_txt(data: Any, path: PathLike) -> Path:
    content = data if isinstance(data, str) else json.dumps(data, indent=2, ensure_ascii=False)
    return write_artifact(path, content)


def save_checkpoint(data: Any, path: PathLike) -> Path:
    """Persist data in the format implied by the file extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix == ".json":
        saved = save_to_json(data, path)
    elif suffix == ".csv":
        saved = save_to_csv(data, path)
    else:
        saved = save_to_txt(data, path)
    logger.info("Saved checkpoint %s", saved)
    return saved


def load_json(path: PathLike) -> Any:
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise IOFailure(f"Could not read {path}: {e}") from e


def load_csv(path: PathLike) -> List[Dict[str, str]]:
    """Rows of a CSV file with a header line."""
    path = Path(path)
    try:
        with open(path, newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
    except OSError as e:
        raise IOFailure(f"Could not read {path}: {e}") from e
