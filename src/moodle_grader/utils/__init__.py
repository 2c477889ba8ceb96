"""
Utility module.

Logging setup and helpers for placing downloaded files on disk.
"""

from .logging import setup_logging, get_logger
from .files import ensure_dir, safe_filename, submission_dir, resolve_inside

__all__ = ["setup_logging", "get_logger", "ensure_dir", "safe_filename", "submission_dir", "resolve_inside"]
