from __future__ import annotations

import pytest

from incident_kb.mdx_converter import slug, tagger
from incident_kb.mdx_converter.validator import validate_mdx

VALID_DOCUMENT = """---
title: "Gateway outage"
description: "Gateway returned 502..."
date: "2025-01-02"
tags: ["Azure", "Application Gateway"]
category: "azure-troubleshooting"
---

## Issue

- The application gateway returned 502 for every request after the rollout.
"""


def test_tags_are_unique_with_azure_first() -> None:
    tags = tagger.extract_tags("Our Azure Front Door WAF blocked requests.")
    assert tags == ["Azure", "Front Door", "Security", "WAF"]


def test_tag_matching_is_case_insensitive() -> None:
    assert "Key Vault" in tagger.extract_tags("The KEY VAULT secret expired")


def test_azure_context_alone_yields_azure() -> None:
    assert tagger.extract_tags("Subscription quota reached.") == ["Azure"]


def test_no_match_falls_back_to_general() -> None:
    assert tagger.extract_tags("Printer on floor three is jammed.") == ["Azure", "General"]


def test_tag_rules_are_immutable() -> None:
    assert isinstance(tagger.TAG_RULES, tuple)
    with pytest.raises(AttributeError):
        tagger.TAG_RULES[0].tags = ("Other",)  # type: ignore[misc]


def test_valid_document_has_no_findings() -> None:
    result = validate_mdx(VALID_DOCUMENT)
    assert result.is_valid
    assert result.findings() == []


def test_empty_document_is_invalid() -> None:
    result = validate_mdx("  \n")
    assert result.errors == ["MDX content is empty"]


def test_missing_frontmatter_is_reported() -> None:
    result = validate_mdx("## Issue\n\n- The gateway failed for every request after the rollout.")
    assert "Front matter is missing (should start with ---)" in result.errors


def test_unclosed_frontmatter_is_reported() -> None:
    result = validate_mdx('---\ntitle: "x"\n\n## Issue\n')
    assert "Front matter is not properly closed (missing closing ---)" in result.errors


def test_missing_fields_and_bad_date() -> None:
    document = VALID_DOCUMENT.replace('category: "azure-troubleshooting"\n', "").replace(
        "2025-01-02", "2025-13-45"
    )
    result = validate_mdx(document)
    assert "Front matter missing required field: category" in result.errors
    assert "Invalid date format (should be YYYY-MM-DD)" in result.errors


def test_tags_must_be_inline_list() -> None:
    result = validate_mdx(VALID_DOCUMENT.replace('["Azure", "Application Gateway"]', "Azure"))
    assert "Tags should be formatted as an array [tag1, tag2]" in result.warnings
    assert result.is_valid


def test_code_fence_and_inline_code_checks() -> None:
    document = VALID_DOCUMENT + "\n```\nkubectl get pods `odd\n\nRun `az login first.\n"
    result = validate_mdx(document)
    assert "Unbalanced code fences (found 1, should be even)" in result.errors
    assert result.warnings == []

    document = VALID_DOCUMENT + "\nRun `az login first.\n"
    result = validate_mdx(document)
    assert len(result.warnings) == 1
    assert result.warnings[0].endswith("Possible unclosed inline code backtick")


def test_short_body_warning() -> None:
    result = validate_mdx('---\ntitle: "x"\n---\nshort')
    assert "Content seems too short (less than 50 characters)" in result.warnings


@pytest.mark.parametrize(
    ("title", "expected"),
    [
        ("Customer reported 502 errors", "customer-reported-502-errors"),
        ("  Front Door / WAF: blocked!  ", "front-door-waf-blocked"),
        ("snake_case_title", "snake-case-title"),
        ("!!!", "untitled"),
        ("", "untitled"),
    ],
)
def test_generate_slug(title: str, expected: str) -> None:
    assert slug.generate_slug(title) == expected


def test_slug_length_is_capped_and_filename_has_extension() -> None:
    assert len(slug.generate_slug("word " * 60)) <= slug.MAX_SLUG_LENGTH
    assert slug.generate_filename("Gateway outage") == "gateway-outage.mdx"
