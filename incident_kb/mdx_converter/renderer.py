"""Rendering of parsed incident sections into MDX markup."""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from enum import Enum

from .parser import SECTION_ORDER, SECTION_TITLES, ParsedSections, SectionItem, SectionKey
from .tables import TableBlock

logger = logging.getLogger(__name__)

EMPTY_SECTION_TEXT = "(No data captured in incident notes.)"
EMPTY_PREVENTION_TEXT = "(No prevention steps captured.)"
EMPTY_FIX_TEXT = "(No fix steps captured in incident notes.)"

LIST_ITEM_RE = re.compile(r"^(?:[-*•]\s|\d+\.\s)")
LIST_PREFIX_RE = re.compile(r"^(?:[-*•]\s+|\d+\.\s+)")
HIERARCHY_MARKER_RE = re.compile(r"^(?P<label>.*\S)\s*:\s*$")
STEP_MARKER_RE = re.compile(
    r"^(?:#+\s*)?(?:[-*•]\s*)?STEP\s*\d+\s*:\s*(?P<title>.*\S)\s*$",
    re.IGNORECASE,
)
BARE_STEP_RE = re.compile(r"^(?:#+\s*)?(?:[-*•]\s*)?STEP\s*\d+\s*:\s*$", re.IGNORECASE)


class MarkupBuffer:
    """Accumulates output lines, keeping blocks separated by single blank lines."""

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._block_open = False

    def _separate(self) -> None:
        if self.lines and self.lines[-1] != "":
            self.lines.append("")

    def add_line(self, text: str) -> None:
        if self._block_open:
            self._separate()
            self._block_open = False
        self.lines.append(text)

    def add_block(self, text: str) -> None:
        self._separate()
        self.lines.append(text)
        self._block_open = True

    def add_table_row(self, text: str) -> None:
        if self.lines and not self.lines[-1].startswith("|"):
            self._separate()
        self.lines.append(text)
        self._block_open = True

    def add_heading(self, text: str) -> None:
        self.add_block(text)

    def render(self) -> str:
        return "\n".join(self.lines).strip("\n")


def is_list_item(line: str) -> bool:
    return bool(LIST_ITEM_RE.match(line))


def strip_list_prefix(line: str) -> str:
    return LIST_PREFIX_RE.sub("", line, count=1).strip()


def is_hierarchy_marker(item: SectionItem) -> bool:
    if not isinstance(item, str):
        return False
    if is_list_item(item) or item.startswith("|"):
        return False
    return bool(HIERARCHY_MARKER_RE.match(item))


def opens_group(items: Sequence[SectionItem], index: int) -> bool:
    if not is_hierarchy_marker(items[index]) or index + 1 >= len(items):
        return False
    following = items[index + 1]
    return isinstance(following, str) and not is_hierarchy_marker(following)


def nested_line(line: str) -> str:
    if is_list_item(line):
        return f"  {line}"
    return f"  - {line}"


@dataclass(frozen=True)
class RenderRule:
    """Section rendering rule; ``render`` returns the index after the consumed items."""

    name: str
    applies: Callable[[Sequence[SectionItem], int], bool]
    render: Callable[[Sequence[SectionItem], int, MarkupBuffer], int]


def _render_table(items: Sequence[SectionItem], index: int, out: MarkupBuffer) -> int:
    table = items[index]
    assert isinstance(table, TableBlock)
    out.add_block(table.to_markdown())
    return index + 1


def _render_pipe_row(items: Sequence[SectionItem], index: int, out: MarkupBuffer) -> int:
    out.add_table_row(str(items[index]))
    return index + 1


def _render_verbatim(items: Sequence[SectionItem], index: int, out: MarkupBuffer) -> int:
    out.add_line(str(items[index]))
    return index + 1


def _render_group(items: Sequence[SectionItem], index: int, out: MarkupBuffer) -> int:
    marker = HIERARCHY_MARKER_RE.match(str(items[index]))
    assert marker is not None
    out.add_line(f"- {marker.group('label')}:")
    index += 1
    while index < len(items):
        item = items[index]
        if not isinstance(item, str) or is_hierarchy_marker(item):
            break
        out.add_line(nested_line(item))
        index += 1
    return index


def _render_bullet(items: Sequence[SectionItem], index: int, out: MarkupBuffer) -> int:
    out.add_line(f"- {items[index]}")
    return index + 1


RENDER_RULES: tuple[RenderRule, ...] = (
    RenderRule("table", lambda items, i: isinstance(items[i], TableBlock), _render_table),
    RenderRule("pipe-row", lambda items, i: str(items[i]).startswith("|"), _render_pipe_row),
    RenderRule("list-item", lambda items, i: is_list_item(str(items[i])), _render_verbatim),
    RenderRule("hierarchy-marker", opens_group, _render_group),
    RenderRule("bullet", lambda items, i: True, _render_bullet),
)


def render_section(key: SectionKey, items: Sequence[SectionItem]) -> str:
    if key is SectionKey.FIX:
        return render_fix_section(items)
    if not items:
        if key is SectionKey.PREVENTION:
            return EMPTY_PREVENTION_TEXT
        return EMPTY_SECTION_TEXT
    out = MarkupBuffer()
    index = 0
    while index < len(items):
        for rule in RENDER_RULES:
            if rule.applies(items, index):
                index = rule.render(items, index, out)
                break
    return out.render()


class FixState(Enum):
    SCANNING = "scanning"
    IN_STEP = "in_step"


def classify_fix_item(item: SectionItem) -> str:
    if isinstance(item, TableBlock):
        return "table"
    if step_title(item) is not None:
        return "step"
    return "line"


def step_title(line: str) -> str | None:
    """Return the heading text of a ``STEP n: title`` line, or ``None``."""
    title = None
    match = STEP_MARKER_RE.match(line)
    # pasted notes sometimes repeat the marker ("STEP 1: STEP 1: ...")
    while match:
        title = match.group("title")
        match = STEP_MARKER_RE.match(title)
    if title is not None and BARE_STEP_RE.match(title):
        return None
    return title


def _open_step(item: SectionItem, out: MarkupBuffer) -> None:
    title = step_title(str(item))
    assert title is not None
    out.add_heading(f"### {title}")


def _emit_fix_table(item: SectionItem, out: MarkupBuffer) -> None:
    assert isinstance(item, TableBlock)
    out.add_block(item.to_markdown())


def _emit_fix_line(item: SectionItem, out: MarkupBuffer) -> None:
    text = str(item)
    if text.startswith("|"):
        out.add_table_row(text)
        return
    out.add_line(f"- {strip_list_prefix(text)}")


FixHandler = Callable[[SectionItem, MarkupBuffer], None]

# The state only records whether a step heading is open; the handler for a
# given item kind is the same in both states.
FIX_TRANSITIONS: dict[tuple[FixState, str], tuple[FixHandler, FixState]] = {
    (FixState.SCANNING, "step"): (_open_step, FixState.IN_STEP),
    (FixState.SCANNING, "table"): (_emit_fix_table, FixState.SCANNING),
    (FixState.SCANNING, "line"): (_emit_fix_line, FixState.SCANNING),
    (FixState.IN_STEP, "step"): (_open_step, FixState.IN_STEP),
    (FixState.IN_STEP, "table"): (_emit_fix_table, FixState.IN_STEP),
    (FixState.IN_STEP, "line"): (_emit_fix_line, FixState.IN_STEP),
}


def walk_fix_items(
    items: Sequence[SectionItem],
) -> Iterator[tuple[SectionItem, FixHandler, FixState]]:
    """Yield each Fix item with its handler and the state it was rendered in."""
    state = FixState.SCANNING
    for item in items:
        handler, state = FIX_TRANSITIONS[(state, classify_fix_item(item))]
        yield item, handler, state


def render_fix_section(items: Sequence[SectionItem]) -> str:
    if not items:
        return EMPTY_FIX_TEXT
    out = MarkupBuffer()
    steps = 0
    loose = 0
    for item, handler, state in walk_fix_items(items):
        handler(item, out)
        if handler is _open_step:
            steps += 1
        elif state is FixState.SCANNING:
            loose += 1
    logger.debug(
        "Rendered fix section with %d step heading(s), %d item(s) before the first step",
        steps,
        loose,
    )
    return out.render()


def render_body(sections: ParsedSections) -> str:
    """Join the fixed section sequence into the document body."""
    parts: list[str] = []
    for key in SECTION_ORDER:
        items = sections[key]
        if key is SectionKey.FINAL_NOTE and not items:
            continue
        parts.append(f"## {SECTION_TITLES[key]}\n\n{render_section(key, items)}")
    return "\n\n".join(parts)
