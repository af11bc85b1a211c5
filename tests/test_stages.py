from __future__ import annotations

import yaml
from bs4 import Comment

from copy_as_markdown.models import (
    CodeBlockStyle,
    ContentFilters,
    ConversionProfile,
    DocumentMetadata,
    EmissionOptions,
    FormattingOptions,
    HeadingStyle,
    ImageHandling,
    ImageStrategy,
    LinkHandling,
    LinkStyle,
    MarkdownFlavor,
)
from copy_as_markdown.page import parse_html
from copy_as_markdown.stages import (
    add_table_of_contents,
    apply_content_filters,
    apply_image_policy,
    apply_link_policy,
    emit_markdown,
    normalize_headings,
    render_front_matter,
    text_length,
    tidy_markdown,
    wrap_markdown,
)


def profile(**overrides) -> ConversionProfile:
    return ConversionProfile(id="test", name="Test", **overrides)


def emit(html: str, **overrides) -> str:
    body, warnings = emit_markdown(parse_html(html), profile(**overrides))
    assert warnings == []
    return tidy_markdown(body)


# filters


def test_include_selectors_keep_matches_and_their_ancestors() -> None:
    soup = parse_html("<div><nav>Menu</nav><article><p>Body text</p></article></div>")
    warnings = apply_content_filters(soup, ContentFilters(include_css=("article",)))
    assert warnings == []
    assert soup.get_text(" ", strip=True) == "Body text"
    assert soup.find("div") is not None


def test_unmatched_include_selectors_keep_page_and_warn() -> None:
    soup = parse_html("<p>Everything</p>")
    warnings = apply_content_filters(soup, ContentFilters(include_css=(".missing",)))
    assert warnings == ["INCLUDE_SELECTORS_UNMATCHED"]
    assert "Everything" in soup.get_text()


def test_default_filters_drop_hidden_comments_scripts_and_iframes() -> None:
    soup = parse_html(
        "<p>Keep</p>"
        "<div hidden>Hidden attr</div>"
        '<span style="display: none">Styled away</span>'
        '<div aria-hidden="true">Aria</div>'
        "<!-- a comment -->"
        "<script>track()</script>"
        "<noscript>Enable JS</noscript>"
        '<iframe src="https://video.example/embed"></iframe>'
        '<div class="ad">Buy now</div>'
    )
    apply_content_filters(soup, ContentFilters(exclude_css=(".ad",)))
    assert soup.get_text(" ", strip=True) == "Keep"
    assert soup.find(string=lambda text: isinstance(text, Comment)) is None
    assert soup.find("iframe") is None


def test_opt_in_flags_keep_hidden_and_iframes() -> None:
    soup = parse_html('<div hidden>Secret</div><iframe src="https://video.example/embed"></iframe>')
    apply_content_filters(
        soup, ContentFilters(exclude_css=(), include_hidden=True, include_iframes=True)
    )
    assert "Secret" in soup.get_text()
    assert soup.find("iframe") is not None


def test_invalid_selector_is_reported_not_raised() -> None:
    soup = parse_html("<p>Text</p>")
    warnings = apply_content_filters(soup, ContentFilters(exclude_css=("p[",)))
    assert warnings == ["INVALID_SELECTOR:p["]
    assert "Text" in soup.get_text()


def test_text_length_collapses_whitespace() -> None:
    assert text_length(parse_html("<p>  one\n two </p><p>three</p>")) == len("one two three")


# headings


def test_headings_deeper_than_limit_become_bold_paragraphs() -> None:
    soup = parse_html("<h1>A</h1><h3>B</h3><h5>C</h5>")
    demoted = normalize_headings(soup, 2)
    assert demoted == 2
    assert soup.find(["h3", "h5"]) is None
    assert [p.strong.get_text() for p in soup.find_all("p")] == ["B", "C"]
    assert soup.find("h1").get_text() == "A"


def test_heading_limit_is_clamped() -> None:
    soup = parse_html("<h6>Deep</h6>")
    assert normalize_headings(soup, 42) == 0
    assert soup.find("h6") is not None


# images


def test_skip_strategy_removes_images_without_double_spaces() -> None:
    soup = parse_html('<p>See <img src="a.jpg" alt="chart"> here</p>')
    assert apply_image_policy(soup, ImageHandling(strategy=ImageStrategy.SKIP)) == 0
    assert soup.find("img") is None
    assert soup.p.get_text() == "See here"


def test_lazy_images_use_data_source_and_fallback_alt() -> None:
    soup = parse_html('<img src="data:image/gif;base64,R0lGOD" data-src="/img/real.png">')
    kept = apply_image_policy(soup, ImageHandling(), base_url="https://example.com/post/")
    image = soup.find("img")
    assert kept == 1
    assert image["src"] == "https://example.com/img/real.png"
    assert image["alt"] == "Image"


def test_srcset_is_used_when_no_source() -> None:
    soup = parse_html('<img srcset="small.png 480w, large.png 1080w" alt="pic">')
    apply_image_policy(soup, ImageHandling())
    assert soup.find("img")["src"] == "small.png"


# links


def test_tracking_params_are_removed_in_order() -> None:
    soup = parse_html(
        '<a href="https://example.com/p?utm_source=x&id=3&fbclid=abc&page=2">x</a>'
    )
    kept, warnings = apply_link_policy(soup, LinkHandling())
    assert kept == 1
    assert warnings == []
    assert soup.a["href"] == "https://example.com/p?id=3&page=2"


def test_relative_links_resolve_against_page_url() -> None:
    soup = parse_html('<a href="/docs">Docs</a><a href="#top">Top</a>')
    apply_link_policy(soup, LinkHandling(), "https://example.com/a/b")
    hrefs = [anchor["href"] for anchor in soup.find_all("a")]
    assert hrefs == ["https://example.com/docs", "#top"]


def test_relative_style_keeps_paths() -> None:
    soup = parse_html('<a href="/docs?utm_medium=mail">Docs</a>')
    apply_link_policy(soup, LinkHandling(style=LinkStyle.RELATIVE), "https://example.com/")
    assert soup.a["href"] == "/docs"


def test_remove_style_unwraps_anchors() -> None:
    soup = parse_html('<p>Read <a href="https://example.com">the docs</a>.</p>')
    kept, _ = apply_link_policy(soup, LinkHandling(style=LinkStyle.REMOVE))
    assert kept == 0
    assert soup.find("a") is None
    assert soup.p.get_text() == "Read the docs."


def test_malformed_href_is_kept_with_warning() -> None:
    soup = parse_html('<a href="http://[::1">broken</a>')
    _, warnings = apply_link_policy(soup, LinkHandling(), "https://example.com/")
    assert soup.a["href"] == "http://[::1"
    assert warnings == ["MALFORMED_URL:http://[::1"]


# emitter


def test_commonmark_drops_strikethrough_and_gfm_keeps_it() -> None:
    html = "<p>a <del>old</del> b</p>"
    assert emit(html) == "a old b"
    assert emit(html, markdown_flavor=MarkdownFlavor.GFM) == "a ~~old~~ b"


def test_tables_only_for_flavors_that_support_them() -> None:
    html = "<table><tr><th>Name</th><th>Qty</th></tr><tr><td>Apple</td><td>3</td></tr></table>"
    gfm = emit(html, markdown_flavor=MarkdownFlavor.GFM)
    assert "| Name | Qty |" in gfm
    assert "| --- | --- |" in gfm
    plain = emit(html)
    assert "|" not in plain
    assert "Apple 3" in plain


def test_setext_headings() -> None:
    markdown = emit("<h1>Title</h1><p>x</p>", emission=EmissionOptions(heading_style=HeadingStyle.SETEXT))
    assert markdown.startswith("Title\n=====")


def test_emphasis_delimiters_follow_emission_options() -> None:
    markdown = emit(
        "<p><strong>bold</strong> and <em>it</em></p>",
        emission=EmissionOptions(strong_delimiter="__", em_delimiter="_"),
    )
    assert markdown == "__bold__ and _it_"


def test_fenced_code_keeps_language() -> None:
    markdown = emit('<pre><code class="language-python">print(1)</code></pre>')
    assert markdown == "```python\nprint(1)\n```"


def test_code_language_omitted_when_syntax_disabled() -> None:
    markdown = emit(
        '<pre><code class="language-python">print(1)</code></pre>',
        formatting=FormattingOptions(code_block_syntax=False),
    )
    assert markdown == "```\nprint(1)\n```"


def test_indented_code_style() -> None:
    markdown = emit(
        "<pre>line one\nline two</pre>",
        emission=EmissionOptions(code_block_style=CodeBlockStyle.INDENTED),
    )
    assert markdown == "    line one\n    line two"


def test_reference_links_are_numbered_and_listed() -> None:
    markdown = emit(
        '<p><a href="https://a.example">A</a> and <a href="https://b.example">B</a>'
        ' and <a href="https://a.example">again</a></p>',
        link_handling=LinkHandling(style=LinkStyle.REFERENCE),
    )
    assert markdown.startswith("[A][1] and [B][2] and [again][1]")
    assert markdown.endswith("[1]: https://a.example\n[2]: https://b.example")


def test_horizontal_rule_style() -> None:
    markdown = emit("<p>a</p><hr><p>b</p>", formatting=FormattingOptions(hr_style="***"))
    assert markdown == "a\n\n***\n\nb"


def test_iframes_become_links() -> None:
    markdown = emit('<iframe src="https://player.example/v1" title="Demo"></iframe>')
    assert markdown == "[Demo](https://player.example/v1)"


def test_dash_runs_in_text_are_escaped() -> None:
    markdown = emit("<p>---</p>")
    assert markdown != "---"
    assert "\\-" in markdown


def test_unconvertible_fragment_is_escaped_with_warning() -> None:
    html = "<div>" * 3000 + "deep" + "</div>" * 3000
    body, warnings = emit_markdown(parse_html(html), profile())
    assert body.strip() == "deep"
    assert warnings == ["FRAGMENT_ESCAPED:div"]


# wrapping and tidying


def test_wrap_respects_width() -> None:
    wrapped = wrap_markdown("word " * 30, 20)
    assert all(len(line) <= 20 for line in wrapped.split("\n"))
    assert wrapped.split() == ["word"] * 30


def test_wrap_leaves_verbatim_blocks_alone() -> None:
    long_line = "x = " + " + ".join(["value"] * 20)
    markdown = f"# A heading that is rather long indeed\n\n```\n{long_line}\n```\n\n| a | b |"
    assert wrap_markdown(markdown, 20) == markdown


def test_wrap_indents_list_continuations() -> None:
    wrapped = wrap_markdown("- " + "alpha " * 10, 20).split("\n")
    assert wrapped[0].startswith("- alpha")
    assert all(line.startswith("  ") for line in wrapped[1:])


def test_wrap_keeps_hard_breaks() -> None:
    wrapped = wrap_markdown("first line  \nsecond line", 40)
    assert wrapped == "first line  \nsecond line"


def test_wrap_keeps_setext_heading_text_on_one_line() -> None:
    title = "A fairly long heading that exceeds twenty"
    markdown = emit(f"<h1>{title}</h1><p>x</p>", emission=EmissionOptions(heading_style=HeadingStyle.SETEXT))
    lines = wrap_markdown(markdown, 20).split("\n")
    assert lines[:2] == [title, "=" * len(title)]


def test_wrapped_lines_never_open_a_block() -> None:
    assert wrap_markdown("aaaa bbbb cccc dddd - eeee ffff", 20) == "aaaa bbbb cccc dddd -\neeee ffff"
    assert wrap_markdown("aaaa bbbb cccc dddd # eeee ffff", 20) == "aaaa bbbb cccc dddd #\neeee ffff"
    assert wrap_markdown("aaaa bbbb cccc dddd 1. eeee ffff", 20) == "aaaa bbbb cccc dddd 1.\neeee ffff"


def test_wrapped_list_item_continuation_does_not_open_a_block() -> None:
    wrapped = wrap_markdown("- aaa bbbb cccc dddd > eeee", 20).split("\n")
    assert wrapped == ["- aaa bbbb cccc dddd >", "  eeee"]


def test_zero_width_disables_wrapping() -> None:
    text = "word " * 40
    assert wrap_markdown(text, 0) == text


def test_tidy_collapses_blank_runs_outside_fences() -> None:
    markdown = "\n\na\n\n\n\nb\n```\n\n\n```\n\n"
    assert tidy_markdown(markdown) == "a\n\nb\n```\n\n\n```"


def test_tidy_rewrites_leading_dash_rule() -> None:
    assert tidy_markdown("\n---\n\nbody\n\n---\n\nmore") == "***\n\nbody\n\n---\n\nmore"
    assert tidy_markdown("***\n\nbody") == "***\n\nbody"


# front matter and table of contents


def test_front_matter_is_valid_yaml() -> None:
    metadata = DocumentMetadata(
        title="Colons: and \"quotes\"",
        url="https://example.com/a",
        converted_at="2024-01-01T00:00:00.000000Z",
        profile="Default",
        converter_version="0.1.0",
        author="Ada",
    )
    rendered = render_front_matter(metadata)
    assert rendered.startswith("---\n")
    assert rendered.endswith("---\n")
    data = yaml.safe_load(rendered.strip().strip("-"))
    assert data["title"] == 'Colons: and "quotes"'
    assert data["author"] == "Ada"
    assert list(data) == ["title", "url", "author", "converted", "profile"]


def test_table_of_contents_links_headings() -> None:
    markdown = "# Intro\n\ntext\n\n## Details *here*\n\n```\n# not a heading\n```\n\n## Details here"
    result = add_table_of_contents(markdown)
    toc, _, rest = result.partition("\n\n# Intro")
    assert toc.split("\n") == [
        "## Table of Contents",
        "",
        "- [Intro](#intro)",
        "  - [Details here](#details-here)",
        "  - [Details here](#details-here-1)",
    ]
    assert rest.endswith("## Details here")


def test_table_of_contents_without_headings_is_noop() -> None:
    assert add_table_of_contents("just text") == "just text"


def test_table_of_contents_includes_setext_headings() -> None:
    markdown = "Intro\n=====\n\ntext\n\nUsage\n-----\n\nmore\n\n---\n\nend"
    toc = add_table_of_contents(markdown).split("\n\nIntro\n=====")[0]
    assert toc.split("\n") == ["## Table of Contents", "", "- [Intro](#intro)", "  - [Usage](#usage)"]
