"""Recognition and normalization of tabular blocks pasted into incident notes."""
from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MULTI_SPACE_RE = re.compile(r" {2,}")
MAX_COLUMN_VARIANCE = 1
MIN_COLUMNS = 2
MIN_ROWS = 2


@dataclass(frozen=True)
class TableBlock:
    """Rectangular grid of cells; the first row is the header."""

    rows: tuple[tuple[str, ...], ...]

    @property
    def header(self) -> tuple[str, ...]:
        return self.rows[0]

    @property
    def body(self) -> tuple[tuple[str, ...], ...]:
        return self.rows[1:]

    @property
    def width(self) -> int:
        return len(self.rows[0]) if self.rows else 0

    def to_markdown(self) -> str:
        lines = [format_row(self.header)]
        lines.append(format_row(["---"] * self.width))
        lines.extend(format_row(row) for row in self.body)
        return "\n".join(lines)


def escape_cell(value: str) -> str:
    return value.replace("|", "\\|")


def format_row(cells: Iterable[str]) -> str:
    return "| " + " | ".join(escape_cell(cell) for cell in cells) + " |"


def split_tab_line(line: str) -> list[str]:
    cells = [cell.strip() for cell in line.split("\t")]
    while cells and not cells[-1]:
        cells.pop()
    return cells


def split_space_line(line: str) -> list[str]:
    return [cell.strip() for cell in MULTI_SPACE_RE.split(line) if cell.strip()]


def split_rows(lines: Sequence[str]) -> list[list[str]] | None:
    """Split every line with the delimiter family shared by all of them.

    Tabs take precedence over runs of spaces. Returns ``None`` when the lines
    do not agree on a family.
    """
    if all("\t" in line for line in lines):
        return [split_tab_line(line) for line in lines]
    if all(MULTI_SPACE_RE.search(line) for line in lines):
        return [split_space_line(line) for line in lines]
    return None


def normalize_rows(rows: Iterable[Sequence[str]]) -> list[list[str]]:
    materialized = [list(row) for row in rows]
    if not materialized:
        return []
    width = max(len(row) for row in materialized)
    return [row + [""] * (width - len(row)) for row in materialized]


def recognize_table(lines: Sequence[str]) -> TableBlock | None:
    if len(lines) < MIN_ROWS:
        return None
    rows = split_rows(lines)
    if rows is None:
        return None
    counts = [len(row) for row in rows]
    min_cols, max_cols = min(counts), max(counts)
    if min_cols < MIN_COLUMNS or max_cols - min_cols > MAX_COLUMN_VARIANCE:
        logger.debug(
            "Rejected table candidate of %d lines (columns %d-%d)",
            len(lines),
            min_cols,
            max_cols,
        )
        return None
    logger.debug("Accepted table of %d rows x %d columns", len(rows), max_cols)
    return TableBlock(tuple(tuple(row) for row in normalize_rows(rows)))
