"""Structural checks for generated MDX documents."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date

REQUIRED_FIELDS = ("title", "description", "date", "tags", "category")
MIN_BODY_CHARS = 50

FRONTMATTER_RE = re.compile(r"^---\n(?P<block>[\s\S]*?)\n---")
FRONTMATTER_PREFIX_RE = re.compile(r"^---\n[\s\S]*?\n---\n")
DATE_RE = re.compile(r"date:\s*[\"']?(\d{4}-\d{2}-\d{2})[\"']?")
TAG_LIST_RE = re.compile(r"tags:\s*\[.*\]")


@dataclass
class ValidationResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def findings(self) -> list[str]:
        return [*self.errors, *self.warnings]


def check_frontmatter(block: str, result: ValidationResult) -> None:
    for name in REQUIRED_FIELDS:
        if f"{name}:" not in block:
            result.errors.append(f"Front matter missing required field: {name}")
    date_match = DATE_RE.search(block)
    if date_match:
        try:
            date.fromisoformat(date_match.group(1))
        except ValueError:
            result.errors.append("Invalid date format (should be YYYY-MM-DD)")
    if "tags:" in block and not TAG_LIST_RE.search(block):
        result.warnings.append("Tags should be formatted as an array [tag1, tag2]")


def check_code_spans(content: str, result: ValidationResult) -> None:
    fences = content.count("```")
    if fences % 2:
        result.errors.append(f"Unbalanced code fences (found {fences}, should be even)")
    in_code_block = False
    for number, line in enumerate(content.split("\n"), start=1):
        if line.strip().startswith("```"):
            in_code_block = not in_code_block
        if in_code_block or "```" in line:
            continue
        if line.count("`") % 2:
            result.warnings.append(f"Line {number}: Possible unclosed inline code backtick")


def validate_mdx(content: str) -> ValidationResult:
    result = ValidationResult()
    stripped = content.strip()
    if not stripped:
        result.errors.append("MDX content is empty")
        return result
    if not stripped.startswith("---"):
        result.errors.append("Front matter is missing (should start with ---)")
    match = FRONTMATTER_RE.match(content)
    if match:
        check_frontmatter(match.group("block"), result)
    elif stripped.startswith("---"):
        result.errors.append("Front matter is not properly closed (missing closing ---)")
    check_code_spans(content, result)
    body = FRONTMATTER_PREFIX_RE.sub("", content, count=1)
    if len(body.strip()) < MIN_BODY_CHARS:
        result.warnings.append(
            f"Content seems too short (less than {MIN_BODY_CHARS} characters)"
        )
    return result
