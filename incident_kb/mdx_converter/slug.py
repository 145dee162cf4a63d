"""File name helpers for generated documents."""
from __future__ import annotations

import re

MAX_SLUG_LENGTH = 100


def generate_slug(title: str) -> str:
    cleaned = re.sub(r"[\s_]+", "-", title.strip().lower())
    cleaned = re.sub(r"[^\w-]+", "", cleaned)
    cleaned = re.sub(r"-{2,}", "-", cleaned)
    cleaned = cleaned.strip("-")[:MAX_SLUG_LENGTH]
    return cleaned or "untitled"


def generate_filename(title: str) -> str:
    return f"{generate_slug(title)}.mdx"
