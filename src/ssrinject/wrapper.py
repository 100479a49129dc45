"""Render result wrapping."""

import json
from collections.abc import Mapping
from typing import Any


def wrap_output(
    tag_name: str,
    class_name: str,
    markup: Any,
    props: Mapping[str, Any] | None,
) -> str:
    """Wrap rendered markup in a container element.

    Args:
        tag_name: Container element name.
        class_name: Value of the ``class`` attribute; may be empty.
        markup: Render result. ``None`` renders as empty content.
        props: Arguments serialized into ``data-props`` when not ``None``.

    Returns:
        Container element markup.
    """
    content = "" if markup is None else str(markup)
    data_props = ""
    if props is not None:
        data_props = f" data-props='{serialize_props(props)}'"
    return f'<{tag_name} class="{class_name}"{data_props}>{content}</{tag_name}>'


def serialize_props(props: Mapping[str, Any]) -> str:
    """Serialize props as compact JSON safe inside a single-quoted attribute."""
    payload = json.dumps(
        props, separators=(",", ":"), ensure_ascii=False, default=str
    )
    return payload.replace("'", "\\u0027")
