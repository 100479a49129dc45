# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Rebuild decisions for SSR entry files."""

import logging
from collections.abc import Iterable
from pathlib import PurePath

from ssrinject.paths import to_posix

logger = logging.getLogger(__name__)


def is_rebuild_required(
    dirty_set: Iterable[str], entry_path: str | PurePath, is_initial_run: bool
) -> bool:
    """Decide whether an entry's artifact is stale.

    Dirty modules are root-relative fragments while entries are absolute, so an
    entry is stale when its posix path contains any dirty fragment. A textual
    containment can match an unrelated module with a similar name.

    Args:
        dirty_set: Modules changed or affected since the last cycle.
        entry_path: Entry file path.
        is_initial_run: Whether no build cycle has completed yet.

    Returns:
        True when the entry must be rebuilt.
    """
    if is_initial_run:
        return True
    entry = to_posix(entry_path) or ""
    return any(fragment and fragment in entry for fragment in dirty_set)
