"""Line preprocessing and section classification for incident notes."""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType

from .tables import TableBlock, recognize_table

logger = logging.getLogger(__name__)


class SectionKey(StrEnum):
    ISSUE = "issue"
    IMPACT = "impact"
    ROOT_CAUSE = "rootCause"
    FIX = "fix"
    VALIDATION = "validation"
    LESSONS_LEARNED = "lessonsLearned"
    PREVENTION = "prevention"
    FINAL_NOTE = "finalNote"


SECTION_ORDER: tuple[SectionKey, ...] = tuple(SectionKey)

SECTION_TITLES = MappingProxyType(
    {
        SectionKey.ISSUE: "Issue",
        SectionKey.IMPACT: "Impact",
        SectionKey.ROOT_CAUSE: "Root Cause",
        SectionKey.FIX: "Fix",
        SectionKey.VALIDATION: "Validation",
        SectionKey.LESSONS_LEARNED: "Lessons Learned",
        SectionKey.PREVENTION: "Prevention",
        SectionKey.FINAL_NOTE: "Final Note",
    }
)

HEADER_ALIASES = MappingProxyType(
    {
        "issue": SectionKey.ISSUE,
        "impact": SectionKey.IMPACT,
        "root cause": SectionKey.ROOT_CAUSE,
        "resolution": SectionKey.FIX,
        "fix": SectionKey.FIX,
        "validation": SectionKey.VALIDATION,
        "lesson learned": SectionKey.LESSONS_LEARNED,
        "lessons learned": SectionKey.LESSONS_LEARNED,
        "prevention": SectionKey.PREVENTION,
        "final note": SectionKey.FINAL_NOTE,
        "final notes": SectionKey.FINAL_NOTE,
    }
)

HEADER_PREFIX_RE = re.compile(r"^#+\s*")
HEADER_SUFFIX_RE = re.compile(r"[:：]\s*$")

SectionItem = str | TableBlock


@dataclass(frozen=True)
class SectionMarker:
    key: SectionKey


@dataclass(frozen=True)
class ContentLine:
    text: str


@dataclass(frozen=True)
class TableToken:
    block: TableBlock
    line_count: int


Token = SectionMarker | ContentLine | TableToken


@dataclass
class ParsedSections:
    """Items collected per section for a single conversion."""

    items: dict[SectionKey, list[SectionItem]] = field(
        default_factory=lambda: {key: [] for key in SECTION_ORDER}
    )
    preamble: int = 0

    def __getitem__(self, key: SectionKey) -> list[SectionItem]:
        return self.items[key]

    def content_lines(self, key: SectionKey) -> list[str]:
        return [item for item in self.items[key] if isinstance(item, str)]


def detect_section_header(line: str) -> SectionKey | None:
    cleaned = line.strip().lower()
    cleaned = HEADER_PREFIX_RE.sub("", cleaned)
    cleaned = HEADER_SUFFIX_RE.sub("", cleaned).strip()
    return HEADER_ALIASES.get(cleaned)


def collect_candidate_block(lines: Sequence[str], start: int) -> list[str]:
    """Gather the run of non-blank, non-header lines beginning at ``start``."""
    block = [lines[start].strip()]
    index = start + 1
    while index < len(lines):
        stripped = lines[index].strip()
        if not stripped or detect_section_header(stripped):
            break
        block.append(stripped)
        index += 1
    return block


@dataclass(frozen=True)
class LineRule:
    """Preprocessing rule; ``action`` returns emitted tokens and the next index."""

    name: str
    predicate: Callable[[Sequence[str], int], bool]
    action: Callable[[Sequence[str], int], tuple[list[Token], int]]


def _is_blank(lines: Sequence[str], index: int) -> bool:
    return not lines[index].strip()


def _skip_line(lines: Sequence[str], index: int) -> tuple[list[Token], int]:
    return [], index + 1


def _is_header(lines: Sequence[str], index: int) -> bool:
    return detect_section_header(lines[index]) is not None


def _emit_marker(lines: Sequence[str], index: int) -> tuple[list[Token], int]:
    key = detect_section_header(lines[index])
    assert key is not None
    return [SectionMarker(key)], index + 1


def _starts_table(lines: Sequence[str], index: int) -> bool:
    return recognize_table(collect_candidate_block(lines, index)) is not None


def _emit_table(lines: Sequence[str], index: int) -> tuple[list[Token], int]:
    block = collect_candidate_block(lines, index)
    table = recognize_table(block)
    assert table is not None
    return [TableToken(table, len(block))], index + len(block)


def _always(lines: Sequence[str], index: int) -> bool:
    return True


def _emit_content(lines: Sequence[str], index: int) -> tuple[list[Token], int]:
    return [ContentLine(lines[index].strip())], index + 1


# Evaluated in order; the first rule whose predicate holds consumes the line.
LINE_RULES: tuple[LineRule, ...] = (
    LineRule("blank", _is_blank, _skip_line),
    LineRule("section-header", _is_header, _emit_marker),
    LineRule("table-block", _starts_table, _emit_table),
    LineRule("content", _always, _emit_content),
)


def preprocess_lines(lines: Sequence[str]) -> list[Token]:
    tokens: list[Token] = []
    index = 0
    while index < len(lines):
        for rule in LINE_RULES:
            if rule.predicate(lines, index):
                emitted, index = rule.action(lines, index)
                tokens.extend(emitted)
                break
    return tokens


def classify_tokens(tokens: Sequence[Token]) -> ParsedSections:
    sections = ParsedSections()
    current: SectionKey | None = None
    for token in tokens:
        if isinstance(token, SectionMarker):
            current = token.key
            continue
        if current is None:
            sections.preamble += token.line_count if isinstance(token, TableToken) else 1
            continue
        if isinstance(token, TableToken):
            sections[current].append(token.block)
        else:
            sections[current].append(token.text)
    if sections.preamble:
        logger.debug("Discarded %d line(s) before the first section header", sections.preamble)
    return sections


def parse_sections(text: str) -> ParsedSections:
    return classify_tokens(preprocess_lines(text.splitlines()))
