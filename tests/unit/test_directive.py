# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Unit tests for placeholder attribute parsing."""

import pytest

from ssrinject.directive import DirectiveParseError, TagDirective, parse_directive
from ssrinject.model import InvocationStyle


def test_dir_001_tag_without_attributes_returns_empty_mapping() -> None:
    assert parse_directive("<div />") == {}


def test_dir_002_single_attribute() -> None:
    assert parse_directive('<div class="container" />') == {"class": "container"}


def test_dir_003_multiple_attributes() -> None:
    result = parse_directive('<input type="text" id="username" name="user" />')

    assert result == {"type": "text", "id": "username", "name": "user"}


def test_dir_004_values_keep_inner_spaces() -> None:
    result = parse_directive(
        '<img src="https://example.com/image.jpg" alt="An example image" />'
    )

    assert result == {
        "src": "https://example.com/image.jpg",
        "alt": "An example image",
    }


def test_dir_005_multiline_tag_is_whitespace_insensitive() -> None:
    tag = """
            <a
                href="https://example.com"
                title="Example Link"
            />
        """

    assert parse_directive(tag) == {
        "href": "https://example.com",
        "title": "Example Link",
    }


def test_dir_006_duplicate_attribute_last_wins() -> None:
    assert parse_directive('<SSR src="a.py" src="b.py" />') == {"src": "b.py"}


def test_dir_007_keys_are_case_sensitive() -> None:
    result = parse_directive('<SSR wrapperTag="div" wrappertag="span" />')

    assert result == {"wrapperTag": "div", "wrappertag": "span"}


def test_dir_008_unquoted_attributes_raise_parse_error() -> None:
    with pytest.raises(DirectiveParseError):
        parse_directive("<SSR src=card.py />")


def test_dir_009_directive_requires_src_and_args() -> None:
    with pytest.raises(DirectiveParseError, match="args"):
        TagDirective.parse('<SSR src="card.py" />')


def test_dir_010_directive_defaults_and_invocation() -> None:
    directive = TagDirective.parse('<SSR src="card.py" args="card_args.py" />')

    assert directive.wrapper_tag == "div"
    assert directive.wrapper_class == ""
    assert directive.print_data_props is None
    assert directive.invocation == InvocationStyle(export_name=None, spread=False)


def test_dir_011_directive_reads_modifiers() -> None:
    directive = TagDirective.parse(
        '<SSR src="card.py" args="a.py" wrapperTag="section" wrapperClass="card"'
        ' export="render_list" spreadArgs="true" printDataProps="false" />'
    )

    assert directive.wrapper_tag == "section"
    assert directive.wrapper_class == "card"
    assert directive.print_data_props is False
    assert directive.invocation == InvocationStyle(export_name="render_list", spread=True)


def test_dir_012_spread_flag_false_keeps_single_argument() -> None:
    directive = TagDirective.parse(
        '<SSR src="card.py" args="a.py" spreadArgs="false" />'
    )

    assert directive.spread_args is False
