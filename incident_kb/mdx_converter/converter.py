"""Conversion of raw incident notes into an MDX document."""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any

from . import normalize, tagger, validator
from .frontmatter import extract_frontmatter, serialize_frontmatter
from .parser import SectionKey, parse_sections
from .renderer import render_body

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when the notes are missing or blank."""


@dataclass
class ConversionResult:
    document: str
    tags: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        data = asdict(self)
        return {"mdx": data["document"], "tags": data["tags"], "warnings": data["warnings"]}


def metadata_tags(metadata: Mapping[str, Any]) -> list[str]:
    tags = metadata.get("tags")
    if isinstance(tags, list | tuple):
        return [str(tag) for tag in tags]
    return []


def convert(
    raw_text: str,
    *,
    title: str | None = None,
    category: str | None = None,
    severity: str | None = None,
    metadata: Mapping[str, Any] | None = None,
    today: date | None = None,
) -> ConversionResult:
    """Structure ``raw_text`` into frontmatter plus the fixed section layout.

    Supplied ``metadata`` (or a frontmatter block found in ``raw_text``) is
    written back unchanged; otherwise the frontmatter is derived from the
    Issue section and ``title``, ``category`` and ``severity``.
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        raise InvalidInputError("Incident notes are required and cannot be empty")

    extracted, body_text = extract_frontmatter(raw_text)
    if metadata is None:
        metadata = extracted
    elif extracted is not None:
        logger.debug("Ignoring frontmatter block in notes in favour of supplied metadata")

    sections = parse_sections(body_text)
    warnings: list[str] = []
    if sections.preamble:
        message = f"Ignored {sections.preamble} line(s) before the first section header"
        logger.info(message)
        warnings.append(message)

    if metadata is not None:
        frontmatter = serialize_frontmatter(metadata)
        tags = metadata_tags(metadata)
    else:
        tags = tagger.extract_tags(body_text)
        synthesized = normalize.synthesize_metadata(
            sections.content_lines(SectionKey.ISSUE),
            tags,
            title=title,
            category=category,
            severity=severity,
            today=today,
        )
        frontmatter = serialize_frontmatter(synthesized, escape=True)

    document = f"{frontmatter}\n\n{render_body(sections)}\n"
    report = validator.validate_mdx(document)
    if not report.is_valid:
        logger.warning("Generated document has %d structural error(s)", len(report.errors))
    warnings.extend(report.findings())
    return ConversionResult(document=document, tags=tags, warnings=warnings)
