"""File handling utilities."""

import re
import unicodedata
from pathlib import Path, PurePath


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The path (for chaining)
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def safe_filename(name: str, max_length: int = 255) -> str:
    """Convert a string to a safe filename.

    Args:
        name: Original filename or string
        max_length: Maximum length of the resulting filename

    Returns:
        Safe filename string
    """
    name = unicodedata.normalize("NFKD", name)
    name = name.encode("ascii", "ignore").decode("ascii")
    name = name.replace(" ", "_")
    name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "", name)
    name = name.strip(". ")

    if len(name) > max_length:
        name = name[:max_length]

    return name or "unnamed"


def submission_dir(full_name: str, user_id: int) -> str:
    """Directory name for one student's files, e.g. ``Ada_Lovelace_12``."""
    return f"{safe_filename(full_name)}_{user_id}"


def resolve_inside(root: Path, relative: PurePath) -> Path:
    """Join ``relative`` under ``root`` and refuse paths that escape it.

    The result must name something strictly below ``root``; an empty or
    ``.`` path would point at ``root`` itself.

    Raises:
        ValueError: If the joined path is ``root`` or not inside it
    """
    root = root.resolve()
    target = (root / relative).resolve()
    if target == root:
        raise ValueError(f"{str(relative)!r} does not name a file under {root}")
    if not target.is_relative_to(root):
        raise ValueError(f"{relative} points outside {root}")
    return target
