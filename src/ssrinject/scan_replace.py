# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Concurrent asynchronous pattern replacement over text buffers."""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable

from ssrinject.model import PlaceholderMatch

logger = logging.getLogger(__name__)

Resolver = Callable[[str], Awaitable[str]]


def find_placeholders(buffer: str, pattern: re.Pattern[str]) -> list[PlaceholderMatch]:
    """Find every non-overlapping placeholder occurrence, left to right.

    Args:
        buffer: Text to scan.
        pattern: Compiled placeholder pattern.

    Returns:
        Matches with their literal text and offsets.
    """
    return [
        PlaceholderMatch(
            raw_text=match.group(0),
            start_offset=match.start(),
            end_offset=match.end(),
        )
        for match in pattern.finditer(buffer)
        if match.end() > match.start()
    ]


async def scan_replace(buffer: str, pattern: re.Pattern[str], resolve: Resolver) -> str:
    """Replace every placeholder with the text produced by ``resolve``.

    All resolutions run concurrently. Replacements are placed by the recorded
    match position, so output order follows input order regardless of which
    resolution settles first. A failing resolution is logged and contributes
    an empty string.

    Args:
        buffer: Text containing placeholders.
        pattern: Compiled placeholder pattern.
        resolve: Async callback turning one match text into replacement text.

    Returns:
        Buffer with all placeholders substituted.
    """
    matches = find_placeholders(buffer, pattern)
    if not matches:
        return buffer

    results = await asyncio.gather(
        *(_resolve_isolated(resolve, match) for match in matches)
    )

    parts: list[str] = []
    cursor = 0
    for match, replacement in zip(matches, results):
        parts.append(buffer[cursor : match.start_offset])
        parts.append(replacement)
        cursor = match.end_offset
    parts.append(buffer[cursor:])
    return "".join(parts)


async def _resolve_isolated(resolve: Resolver, match: PlaceholderMatch) -> str:
    try:
        result = await resolve(match.raw_text)
    except Exception as exc:
        logger.error(
            f"Placeholder resolution failed (offset={match.start_offset} "
            f"tag={match.raw_text!r} error={exc})",
            exc_info=True,
        )
        return ""
    return "" if result is None else str(result)
