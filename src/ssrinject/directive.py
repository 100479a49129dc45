# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Placeholder tag attribute parsing."""

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

from ssrinject.model import InvocationStyle, ResolutionError

logger = logging.getLogger(__name__)

_TAG_OPEN = re.compile(r"^\s*<[A-Za-z][\w.:-]*")
_TAG_CLOSE = re.compile(r"/?>\s*$")
_WHITESPACE = re.compile(r"\s+")
_ATTRIBUTE = re.compile(r'([A-Za-z_][\w:.-]*)="([^"]*)"')

REQUIRED_ATTRIBUTES: tuple[str, ...] = ("src", "args")


class DirectiveParseError(ResolutionError):
    """Represent malformed placeholder attributes."""


def parse_directive(raw_tag_text: str) -> dict[str, str]:
    """Extract ``key="value"`` attributes from one placeholder tag.

    Args:
        raw_tag_text: Literal tag text, possibly spanning several lines.

    Returns:
        Attribute mapping; later duplicates overwrite earlier ones.

    Raises:
        DirectiveParseError: If the tag carries text but no quoted attribute.
    """
    sanitized = _TAG_OPEN.sub("", raw_tag_text, count=1)
    sanitized = _TAG_CLOSE.sub("", sanitized, count=1)
    sanitized = _WHITESPACE.sub(" ", sanitized).strip()
    if not sanitized:
        return {}

    pairs = _ATTRIBUTE.findall(sanitized)
    if not pairs:
        raise DirectiveParseError(f"No quoted attributes in tag: {raw_tag_text.strip()!r}")
    return {key: value for key, value in pairs}


@dataclass(frozen=True)
class TagDirective:
    """Typed view over a placeholder's attributes.

    Attributes:
        src: Entry file path relative to the asset directory.
        args: Args factory module path relative to the asset directory.
        wrapper_tag: Container element name.
        wrapper_class: Container ``class`` attribute value.
        export: Named member of the default export to call.
        spread_args: Pass argument values positionally.
        print_data_props: Per-tag ``data-props`` override; ``None`` defers to config.
        attributes: Raw attribute mapping.
    """

    src: str
    args: str
    wrapper_tag: str = "div"
    wrapper_class: str = ""
    export: str | None = None
    spread_args: bool = False
    print_data_props: bool | None = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_attributes(cls, attributes: Mapping[str, str]) -> "TagDirective":
        """Build a directive from parsed attributes.

        Raises:
            DirectiveParseError: If a required attribute is missing or empty.
        """
        missing = [key for key in REQUIRED_ATTRIBUTES if not attributes.get(key)]
        if missing:
            raise DirectiveParseError(f"Missing required attributes: {', '.join(missing)}")

        print_data_props: bool | None = None
        if "printDataProps" in attributes:
            print_data_props = attributes["printDataProps"] == "true"

        return cls(
            src=attributes["src"],
            args=attributes["args"],
            wrapper_tag=attributes.get("wrapperTag") or "div",
            wrapper_class=attributes.get("wrapperClass", ""),
            export=attributes.get("export") or None,
            spread_args=attributes.get("spreadArgs", "false") not in ("", "false"),
            print_data_props=print_data_props,
            attributes=dict(attributes),
        )

    @classmethod
    def parse(cls, raw_tag_text: str) -> "TagDirective":
        """Parse tag text straight into a directive."""
        return cls.from_attributes(parse_directive(raw_tag_text))

    @property
    def invocation(self) -> InvocationStyle:
        """Return how the entry's callable is invoked."""
        return InvocationStyle(export_name=self.export, spread=self.spread_args)
