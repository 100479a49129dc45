"""Path normalization helpers."""

import os
from pathlib import Path, PurePath


def to_posix(path: str | PurePath | None) -> str | None:
    """Convert a path to posix separators.

    Args:
        path: Path text or path object; ``None`` passes through.

    Returns:
        Posix formatted path text, or ``None``.
    """
    if path is None:
        return None
    return str(path).replace(os.sep, "/").replace("\\", "/")


def relative_to_root(path: str | Path, root: Path) -> str:
    """Express ``path`` relative to ``root`` using posix separators.

    The resolved filesystem relation is tried first. When ``path`` does not
    live under ``root`` the text following the root's own text is used, and
    when that is absent too the posix form of ``path`` is returned unchanged.

    Args:
        path: Absolute or working-directory relative path.
        root: Root directory.

    Returns:
        Root-relative posix path text.
    """
    try:
        return Path(path).resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        pass
    posix_path = to_posix(path) or ""
    root_text = (to_posix(root) or "").rstrip("/") + "/"
    if root_text != "/" and root_text in posix_path:
        return posix_path.split(root_text, 1)[1]
    return posix_path
