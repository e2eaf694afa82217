"""Pure conversion of result values to their textual shell representation.

Both renderers go through :func:`format_value`, so a value is spelled
the same way in a table cell and in a CSV field, apart from string
quoting and null visualisation.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from cyphersh.core.models import NodeValue, PathValue, RelationshipValue


def _format_string(value: str, quote: bool) -> str:
    if not quote:
        return value
    return json.dumps(value, ensure_ascii=False)


def _format_properties(properties: Mapping[str, Any]) -> str:
    if not properties:
        return ""
    return " " + _format_map(properties)


def _format_map(mapping: Mapping[str, Any]) -> str:
    entries = ", ".join(
        f"{key}: {format_value(item, quote_strings=True, show_nulls=True)}"
        for key, item in mapping.items()
    )
    return "{" + entries + "}"


def _format_node(node: NodeValue) -> str:
    labels = "".join(f":{label}" for label in node.labels)
    return f"({labels}{_format_properties(node.properties)})"


def _format_relationship(rel: RelationshipValue) -> str:
    return f"[:{rel.type}{_format_properties(rel.properties)}]"


def _format_path(path: PathValue) -> str:
    if not path.nodes:
        return ""
    parts = [_format_node(path.nodes[0])]
    for previous, rel, node in zip(path.nodes, path.relationships, path.nodes[1:]):
        forward = rel.start_id == previous.id
        left, right = ("-", "->") if forward else ("<-", "-")
        parts.append(f"{left}{_format_relationship(rel)}{right}{_format_node(node)}")
    return "".join(parts)


def format_value(value: Any, *, quote_strings: bool, show_nulls: bool) -> str:
    """Render a single result value.

    Parameters
    ----------
    quote_strings:
        Wrap top-level strings in double quotes.  Strings nested in
        lists, maps and properties are always quoted.
    show_nulls:
        Render ``None`` as ``null`` instead of an empty string.
    """
    if value is None:
        return "null" if show_nulls else ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return _format_string(value, quote_strings)
    if isinstance(value, NodeValue):
        return _format_node(value)
    if isinstance(value, RelationshipValue):
        return _format_relationship(value)
    if isinstance(value, PathValue):
        return _format_path(value)
    if isinstance(value, Mapping):
        return _format_map(value)
    if isinstance(value, (list, tuple)):
        inner = ", ".join(
            format_value(item, quote_strings=True, show_nulls=True) for item in value
        )
        return f"[{inner}]"
    if isinstance(value, (bytes, bytearray)):
        return "#" + bytes(value).hex()
    return str(value)
