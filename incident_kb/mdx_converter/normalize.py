"""Frontmatter synthesis for notes that carry no metadata block."""
from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import UTC, date, datetime

from .frontmatter import Metadata

DEFAULT_TITLE = "Azure Troubleshooting Guide"
DEFAULT_CATEGORY = "azure-troubleshooting"
MAX_TITLE_LENGTH = 80
MAX_DESCRIPTION_LENGTH = 150
ELLIPSIS = "..."

SENTENCE_BREAK_RE = re.compile(r"[.!?]")


def today_iso() -> str:
    return datetime.now(UTC).date().isoformat()


def normalize_whitespace(value: str) -> str:
    return " ".join(value.split())


def split_sentences(text: str) -> list[str]:
    return [part.strip() for part in SENTENCE_BREAK_RE.split(text) if part.strip()]


def derive_title(issue_lines: Iterable[str]) -> str:
    issue_text = " ".join(issue_lines)
    first = SENTENCE_BREAK_RE.split(issue_text, maxsplit=1)[0].strip()
    return first[:MAX_TITLE_LENGTH].rstrip() or DEFAULT_TITLE


def derive_description(issue_lines: Iterable[str], fallback: str = DEFAULT_TITLE) -> str:
    sentences = split_sentences(" ".join(issue_lines))
    summary = ". ".join(sentences[:2]) or fallback
    return summary[:MAX_DESCRIPTION_LENGTH].rstrip() + ELLIPSIS


def synthesize_metadata(
    issue_lines: list[str],
    tags: list[str],
    *,
    title: str | None = None,
    category: str | None = None,
    severity: str | None = None,
    today: date | None = None,
) -> Metadata:
    """Build frontmatter values from the Issue section.

    ``severity`` is only ever copied from the caller, never inferred.
    """
    if title and title.strip():
        final_title = normalize_whitespace(title)
    else:
        final_title = derive_title(issue_lines)
    metadata: Metadata = {
        "title": final_title,
        "description": derive_description(issue_lines, fallback=final_title),
        "date": today.isoformat() if today else today_iso(),
        "tags": list(tags),
        "category": category.strip() if category and category.strip() else DEFAULT_CATEGORY,
    }
    if severity and severity.strip():
        metadata["severity"] = severity.strip()
    return metadata
