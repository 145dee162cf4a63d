"""Frontmatter block extraction and serialization."""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

DELIMITER = "---"

Metadata = dict[str, Any]


def strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def parse_value(raw: str) -> str | list[str]:
    value = raw.strip()
    if value.startswith("[") and value.endswith("]"):
        elements = (strip_quotes(part.strip()).strip() for part in value[1:-1].split(","))
        return [element for element in elements if element]
    return strip_quotes(value)


def parse_block(lines: Iterable[str]) -> Metadata:
    metadata: Metadata = {}
    for line in lines:
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        metadata[key] = parse_value(value)
    return metadata


def extract_frontmatter(text: str) -> tuple[Metadata | None, str]:
    """Split a leading ``---`` block from ``text``.

    Returns ``(None, text)`` unchanged when the block is missing or never
    closed.
    """
    lines = text.split("\n")
    start = next((index for index, line in enumerate(lines) if line.strip()), None)
    if start is None or lines[start].strip() != DELIMITER:
        return None, text
    for end in range(start + 1, len(lines)):
        if lines[end].strip() == DELIMITER:
            metadata = parse_block(lines[start + 1 : end])
            return metadata, "\n".join(lines[end + 1 :])
    return None, text


def escape_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def format_value(value: Any, *, escape: bool = False) -> str:
    if isinstance(value, str):
        return f'"{escape_value(value) if escape else value}"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list | tuple):
        inner = ", ".join(format_value(str(element), escape=escape) for element in value)
        return f"[{inner}]"
    if value is None:
        return "null"
    return str(value)


def serialize_frontmatter(metadata: Mapping[str, Any], *, escape: bool = False) -> str:
    """Render ``metadata`` in key order between ``---`` delimiters."""
    lines = [DELIMITER]
    for key, value in metadata.items():
        lines.append(f"{key}: {format_value(value, escape=escape)}")
    lines.append(DELIMITER)
    return "\n".join(lines)
