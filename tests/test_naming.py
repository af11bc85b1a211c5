from __future__ import annotations

from datetime import datetime

import pytest

from copy_as_markdown.models import NamingPattern
from copy_as_markdown.naming import (
    MAX_FILE_NAME_LENGTH,
    FileNameContext,
    generate_file_name,
    process_template,
    sanitize_file_name,
    unique_file_name,
    validate_template,
)

MOMENT = datetime(2024, 3, 5, 14, 7, 9).timestamp()


def test_custom_template_with_domain_and_title() -> None:
    context = FileNameContext(title="Hello World!", url="https://Example.com/x")
    name = generate_file_name(NamingPattern.CUSTOM_PREFIX, "{domain}-{title}", context)
    assert name == "example.com-Hello_World"


@pytest.mark.parametrize(
    "raw",
    [
        "Hello World!",
        "  a/b\\c:d*e?f\"g<h>i|j  ",
        "...__leading and trailing__...",
        "émoji 🎉 title",
        "x" * 450,
        "",
    ],
)
def test_sanitize_is_idempotent_and_bounded(raw: str) -> None:
    once = sanitize_file_name(raw)
    assert sanitize_file_name(once) == once
    assert len(once) <= MAX_FILE_NAME_LENGTH
    assert not once.startswith((".", "_"))
    assert not once.endswith((".", "_"))


def test_sanitize_replaces_whitespace_and_drops_unsafe_characters() -> None:
    assert sanitize_file_name("Release  Notes: v1.2 (final)") == "Release_Notes_v1.2_final"


def test_tab_title_pattern_uses_title_only() -> None:
    context = FileNameContext(title="My Page", url="https://www.example.com/a")
    assert generate_file_name(NamingPattern.TAB_TITLE, None, context) == "My_Page"


def test_domain_title_pattern_strips_www() -> None:
    context = FileNameContext(title="My Page", url="https://www.example.com/a")
    assert generate_file_name(NamingPattern.DOMAIN_TITLE, None, context) == "example.com_My_Page"


def test_domain_title_pattern_with_unparsable_url() -> None:
    context = FileNameContext(title="My Page", url="not a url")
    assert generate_file_name(NamingPattern.DOMAIN_TITLE, None, context) == "unknown_My_Page"


def test_timestamp_pattern_prefixes_date() -> None:
    context = FileNameContext(title="Daily Notes", url="https://example.com", timestamp=MOMENT)
    assert generate_file_name(NamingPattern.TIMESTAMP, None, context) == "2024-03-05_Daily_Notes"


def test_custom_prefix_without_template_falls_back_to_title() -> None:
    context = FileNameContext(title="Fallback Title", url="https://example.com")
    assert generate_file_name(NamingPattern.CUSTOM_PREFIX, None, context) == "Fallback_Title"


def test_template_date_parts_and_host() -> None:
    context = FileNameContext(title="Post", url="https://www.news.example.com/p", timestamp=MOMENT)
    result = process_template("{host}_{year}{month}{day}_{time}_{title}", context)
    assert result == "news_20240305_14-07-09_Post"


def test_template_uses_context_domain_when_url_has_none() -> None:
    context = FileNameContext(title="Note", url="", domain="intranet.local")
    assert process_template("{domain}_{title}", context) == "intranet.local_Note"


def test_validate_template_accepts_known_variables() -> None:
    result = validate_template("{date}-{title}")
    assert result.valid
    assert result.errors == []
    assert result.used_variables == ["{date}", "{title}"]


def test_validate_template_rejects_unknown_variable() -> None:
    result = validate_template("{title}-{bogus}")
    assert not result.valid
    assert "Unknown variable: {bogus}" in result.errors


def test_validate_template_requires_a_variable() -> None:
    result = validate_template("static-name")
    assert not result.valid
    assert "Template should include at least one variable" in result.errors


def test_validate_template_rejects_path_characters() -> None:
    result = validate_template("folder/{title}")
    assert not result.valid


def test_validate_template_rejects_empty() -> None:
    assert not validate_template("   ").valid


def test_unique_file_name_suffixes_before_extension() -> None:
    taken = {"Page.md", "Page-2.md", "docs/Page.md"}
    assert unique_file_name("Other.md", taken) == "Other.md"
    assert unique_file_name("Page.md", taken) == "Page-3.md"
    assert unique_file_name("docs/Page.md", taken) == "docs/Page-2.md"
