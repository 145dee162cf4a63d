from __future__ import annotations

from incident_kb.mdx_converter import renderer
from incident_kb.mdx_converter.parser import SectionKey, parse_sections
from incident_kb.mdx_converter.renderer import (
    EMPTY_FIX_TEXT,
    EMPTY_PREVENTION_TEXT,
    EMPTY_SECTION_TEXT,
    FixState,
    render_body,
    render_fix_section,
    render_section,
)
from incident_kb.mdx_converter.tables import TableBlock

TAG_TABLE = TableBlock(
    (
        ("Service", "Tags", "Status"),
        ("VM", "None", "Non-compliant"),
    )
)


def test_plain_lines_become_bullets_and_lists_are_kept() -> None:
    rendered = render_section(
        SectionKey.LESSONS_LEARNED,
        ["Document NSG rules.", "- Alert on timeouts", "2. Review runbooks"],
    )
    assert rendered == "- Document NSG rules.\n- Alert on timeouts\n2. Review runbooks"


def test_empty_sections_use_placeholders() -> None:
    assert render_section(SectionKey.IMPACT, []) == EMPTY_SECTION_TEXT
    assert render_section(SectionKey.PREVENTION, []) == EMPTY_PREVENTION_TEXT
    assert render_section(SectionKey.FIX, []) == EMPTY_FIX_TEXT


def test_table_after_bullet_is_separated_by_blank_line() -> None:
    rendered = render_section(
        SectionKey.ROOT_CAUSE,
        ["Tagging was treated as optional during resource creation.", TAG_TABLE],
    )
    assert "creation.\n\n| Service | Tags | Status |" in rendered
    assert not any(line.startswith("- |") for line in rendered.splitlines())


def test_line_after_table_is_separated_by_blank_line() -> None:
    rendered = render_section(SectionKey.IMPACT, [TAG_TABLE, "Billing was affected."])
    assert rendered.startswith("| Service | Tags | Status |")
    assert rendered.endswith("| VM | None | Non-compliant |\n\n- Billing was affected.")


def test_pasted_pipe_rows_are_kept_verbatim() -> None:
    rendered = render_section(
        SectionKey.IMPACT, ["Summary line", "| a | b |", "|---|---|", "| 1 | 2 |"]
    )
    assert rendered == "- Summary line\n\n| a | b |\n|---|---|\n| 1 | 2 |"


def test_hierarchy_marker_nests_following_lines() -> None:
    items = [
        "Tagging was treated as optional during resource creation.",
        "Because of this:",
        "Resource ownership was unclear",
        'Billing reports grouped all costs under "untagged"',
        "Compliance audits failed due to missing metadata",
    ]
    rendered = render_section(SectionKey.ROOT_CAUSE, items)
    lines = rendered.splitlines()
    assert lines[0] == "- Tagging was treated as optional during resource creation."
    assert lines[1] == "- Because of this:"
    assert lines[2] == "  - Resource ownership was unclear"
    assert len([line for line in lines if line.startswith("  - ")]) == 3


def test_hierarchy_group_ends_at_table_and_next_marker() -> None:
    items = [
        "Affected:",
        "gateway",
        TAG_TABLE,
        "Owners:",
        "- ops",
        "1. network",
        "Closing remark.",
    ]
    rendered = render_section(SectionKey.IMPACT, items)
    assert rendered.splitlines()[:2] == ["- Affected:", "  - gateway"]
    assert "  - gateway\n\n| Service | Tags | Status |" in rendered
    assert rendered.endswith("- Owners:\n  - ops\n  1. network\n  - Closing remark.")


def test_marker_without_following_line_is_plain_bullet() -> None:
    assert render_section(SectionKey.ISSUE, ["Summary:"]) == "- Summary:"
    assert render_section(SectionKey.ISSUE, ["Summary:", TAG_TABLE]).startswith("- Summary:\n\n|")
    rendered = render_section(SectionKey.ISSUE, ["First:", "Second:", "detail"])
    assert rendered == "- First:\n- Second:\n  - detail"


def test_fix_steps_render_headings_without_step_prefix() -> None:
    items = ["STEP 1: OPEN PORT", "Details here.", "STEP 2: VERIFY", "More details."]
    rendered = render_fix_section(items)
    assert rendered == "### OPEN PORT\n\n- Details here.\n\n### VERIFY\n\n- More details."
    assert "STEP" not in rendered


def test_fix_step_tables_stay_in_step_body() -> None:
    table = TableBlock((("Tag", "Purpose"), ("Owner", "Contact")))
    items = [
        "STEP 1: DEFINE A TAGGING STANDARD",
        table,
        "STEP 2: ENFORCE TAGS USING AZURE POLICY",
        "Created Azure Policy to deny resources without tags.",
    ]
    rendered = render_fix_section(items)
    assert rendered.startswith("### DEFINE A TAGGING STANDARD\n\n| Tag | Purpose |")
    assert "| Owner | Contact |\n\n### ENFORCE TAGS USING AZURE POLICY" in rendered
    assert rendered.count("###") == 2


def test_fix_lines_without_marker_are_bullets() -> None:
    rendered = render_fix_section(
        ["1. Restarted the gateway", "- Flushed DNS cache", "Opened port 443."]
    )
    assert rendered == "- Restarted the gateway\n- Flushed DNS cache\n- Opened port 443."


def test_fix_marker_variants() -> None:
    assert renderer.step_title("step 3: roll back") == "roll back"
    assert renderer.step_title("## Step 4 : Clear cache") == "Clear cache"
    assert renderer.step_title("STEP 1: STEP 1: Duplicated") == "Duplicated"
    assert renderer.step_title("STEP 2:") is None
    assert render_fix_section(["STEP 2:"]) == "- STEP 2:"


def test_repeated_bare_step_marker_is_plain_line() -> None:
    assert renderer.step_title("STEP 1: STEP 1:") is None
    assert renderer.classify_fix_item("STEP 1: STEP 1:") == "line"
    rendered = render_fix_section(["STEP 1: STEP 1:", "body"])
    assert rendered == "- STEP 1: STEP 1:\n- body"
    assert "###" not in rendered


def test_fix_lines_keep_text_that_only_looks_like_a_prefix() -> None:
    rendered = render_fix_section(
        ["2.5 GB of stale logs were purged.", "*Important* restart pods", "3.  Drained node"]
    )
    assert rendered == (
        "- 2.5 GB of stale logs were purged.\n- *Important* restart pods\n- Drained node"
    )


def test_fix_transition_table() -> None:
    table = renderer.FIX_TRANSITIONS
    assert table[(FixState.SCANNING, "step")][1] is FixState.IN_STEP
    assert table[(FixState.SCANNING, "line")][1] is FixState.SCANNING
    assert table[(FixState.SCANNING, "table")][1] is FixState.SCANNING
    assert table[(FixState.IN_STEP, "table")][1] is FixState.IN_STEP
    assert table[(FixState.IN_STEP, "line")][1] is FixState.IN_STEP
    assert table[(FixState.IN_STEP, "step")][1] is FixState.IN_STEP
    assert renderer.classify_fix_item(TAG_TABLE) == "table"


def test_render_body_orders_sections_and_skips_empty_final_note() -> None:
    body = render_body(parse_sections("PREVENTION\nAdd health checks.\nISSUE\nOutage."))
    headings = [line for line in body.splitlines() if line.startswith("## ")]
    assert headings == [
        "## Issue",
        "## Impact",
        "## Root Cause",
        "## Fix",
        "## Validation",
        "## Lessons Learned",
        "## Prevention",
    ]
    assert body.startswith("## Issue\n\n- Outage.\n\n## Impact\n\n")


def test_render_body_includes_final_note_with_content() -> None:
    body = render_body(parse_sections("FINAL NOTE\nResolved in 45 minutes."))
    assert body.endswith("## Final Note\n\n- Resolved in 45 minutes.")


def test_fix_walk_tracks_open_step() -> None:
    items = ["Paused deployments.", "STEP 1: ROLL BACK", "Reverted the release.", TAG_TABLE]
    states = [state for _, _, state in renderer.walk_fix_items(items)]
    assert states == [
        FixState.SCANNING,
        FixState.IN_STEP,
        FixState.IN_STEP,
        FixState.IN_STEP,
    ]
    rendered = render_fix_section(items)
    assert rendered.startswith("- Paused deployments.\n\n### ROLL BACK\n\n- Reverted the release.")
