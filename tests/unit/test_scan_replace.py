# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for concurrent placeholder replacement."""

import asyncio
import logging
import re

import pytest

from ssrinject.model import DEFAULT_TAG_PATTERN, PlaceholderMatch
from ssrinject.scan_replace import find_placeholders, scan_replace


@pytest.mark.asyncio
async def test_scan_001_zero_matches_returns_buffer_unchanged() -> None:
    calls: list[str] = []

    async def resolve(text: str) -> str:
        calls.append(text)
        return "x"

    buffer = "<html><body>No placeholders here</body></html>"

    assert await scan_replace(buffer, DEFAULT_TAG_PATTERN, resolve) == buffer
    assert calls == []


@pytest.mark.asyncio
async def test_scan_002_output_order_follows_input_order_not_completion() -> None:
    second_done = asyncio.Event()
    completion: list[str] = []

    async def resolve(text: str) -> str:
        if 'id="first"' in text:
            await asyncio.wait_for(second_done.wait(), timeout=2)
            completion.append("first")
            return "[one]"
        completion.append("second")
        second_done.set()
        return "[two]"

    buffer = 'A<SSR id="first" />B<SSR id="second" />C'

    result = await scan_replace(buffer, DEFAULT_TAG_PATTERN, resolve)

    assert completion == ["second", "first"]
    assert result == "A[one]B[two]C"


@pytest.mark.asyncio
async def test_scan_003_failing_resolution_is_isolated(
    caplog: pytest.LogCaptureFixture,
) -> None:
    async def resolve(text: str) -> str:
        if "broken" in text:
            raise RuntimeError("boom")
        return "<ok/>"

    buffer = '<SSR src="broken" />|<SSR src="fine" />'

    with caplog.at_level(logging.ERROR, logger="ssrinject.scan_replace"):
        result = await scan_replace(buffer, DEFAULT_TAG_PATTERN, resolve)

    assert result == "|<ok/>"
    assert "boom" in caplog.text


@pytest.mark.asyncio
async def test_scan_004_multiline_tags_are_replaced() -> None:
    async def resolve(text: str) -> str:
        return "R"

    buffer = '<p>\n<SSR\n    src="card.py"\n    args="args.py"\n/>\n</p>'

    assert await scan_replace(buffer, DEFAULT_TAG_PATTERN, resolve) == "<p>\nR\n</p>"


@pytest.mark.asyncio
async def test_scan_005_identical_tags_receive_positional_results() -> None:
    counter = iter(range(1, 10))

    async def resolve(text: str) -> str:
        value = next(counter)
        await asyncio.sleep(0.01 / value)
        return str(value)

    buffer = '<SSR src="a" />-<SSR src="a" />-<SSR src="a" />'

    assert await scan_replace(buffer, DEFAULT_TAG_PATTERN, resolve) == "1-2-3"


@pytest.mark.asyncio
async def test_scan_006_custom_pattern_is_honored() -> None:
    async def resolve(text: str) -> str:
        return text.upper()

    pattern = re.compile(r"\{\{\w+\}\}")

    assert await scan_replace("a {{x}} b", pattern, resolve) == "a {{X}} b"


def test_scan_007_find_placeholders_records_offsets() -> None:
    buffer = 'ab<SSR src="x" />cd'

    matches = find_placeholders(buffer, DEFAULT_TAG_PATTERN)

    assert matches == [
        PlaceholderMatch(raw_text='<SSR src="x" />', start_offset=2, end_offset=17)
    ]


def test_scan_008_default_pattern_allows_markup_inside_quoted_values() -> None:
    buffer = '<SSR src="a.py" wrapperClass="x>y/z" /><div></div>'

    matches = find_placeholders(buffer, DEFAULT_TAG_PATTERN)

    assert [m.raw_text for m in matches] == ['<SSR src="a.py" wrapperClass="x>y/z" />']
