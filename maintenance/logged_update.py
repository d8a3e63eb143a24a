"""
Run-once wrapper for maintenance updates.

A completed update records its key in the `updatelog` table; later runs with
the same key are skipped unless forced.
"""

from __future__ import annotations

from typing import Callable, Optional, TypeVar

from .console import info


T = TypeVar("T")


def run_logged_update(
    db,
    key: str,
    update: Callable[[], T],
    *,
    force: bool = False,
    skipped_message: Optional[str] = None,
) -> Optional[T]:
    """Call `update` unless `key` was already applied. Returns None when skipped."""
    if not force and db.has_update_key(key):
        info(skipped_message or f"Update '{key}' already applied; skipping (use --force to run it again).")
        return None

    result = update()
    db.record_update_key(key)
    return result
