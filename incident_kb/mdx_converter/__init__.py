"""Incident notes to MDX converter package."""
from __future__ import annotations

from pathlib import Path

from . import (
    converter,
    frontmatter,
    normalize,
    parser,
    renderer,
    slug,
    sources,
    tables,
    tagger,
    validator,
)
from .converter import ConversionResult, InvalidInputError, convert

__all__ = [
    "converter",
    "frontmatter",
    "normalize",
    "parser",
    "renderer",
    "slug",
    "sources",
    "tables",
    "tagger",
    "validator",
    "ConversionResult",
    "InvalidInputError",
    "convert",
    "convert_file",
]


def convert_file(path: Path, **options: str | None) -> ConversionResult:
    """Convenience wrapper converting the notes stored at ``path``."""
    notes = sources.load_notes(path)
    return convert(notes.text, **options)
