from __future__ import annotations

import csv
import zipfile
from pathlib import Path

from typer.testing import CliRunner

from copy_as_markdown.cli import app

runner = CliRunner()

PAGE = """<html><head><title>Saved Page</title>
<meta name="author" content="Ada"></head>
<body><h1>Saved Page</h1><p>Some <a href="/next?utm_source=x">text</a>.</p></body></html>"""


def write_config(tmp_path: Path) -> Path:
    config = tmp_path / "config.toml"
    config.write_text(f'[runtime]\noutput_dir = "{(tmp_path / "runs").as_posix()}"\n', encoding="utf-8")
    return config


def write_page(tmp_path: Path, name: str = "page.html", html: str = PAGE) -> Path:
    path = tmp_path / name
    path.write_text(html, encoding="utf-8")
    return path


def test_convert_to_stdout(tmp_path: Path) -> None:
    page = write_page(tmp_path)
    result = runner.invoke(
        app,
        ["convert", str(page), "--url", "https://example.com/a", "--stdout", "--config", str(write_config(tmp_path))],
    )
    assert result.exit_code == 0, result.output
    assert result.output.startswith("---\ntitle: Saved Page\n")
    assert "author: Ada" in result.output
    assert "[text](https://example.com/next)" in result.output


def test_convert_writes_named_file(tmp_path: Path) -> None:
    page = write_page(tmp_path)
    out = tmp_path / "out"
    result = runner.invoke(
        app,
        [
            "convert",
            str(page),
            "--url",
            "https://example.com/a",
            "--naming",
            "custom_prefix",
            "--template",
            "{domain}-{title}",
            "-o",
            str(out),
            "--config",
            str(write_config(tmp_path)),
        ],
    )
    assert result.exit_code == 0, result.output
    written = out / "example.com-Saved_Page.md"
    assert written.exists()
    assert "# Saved Page" in written.read_text(encoding="utf-8")


def test_convert_unknown_profile_fails(tmp_path: Path) -> None:
    page = write_page(tmp_path)
    result = runner.invoke(
        app, ["convert", str(page), "--profile", "missing", "--stdout", "--config", str(write_config(tmp_path))]
    )
    assert result.exit_code == 1
    assert "PROFILE_NOT_FOUND" in result.output


def test_batch_zip_and_summary(tmp_path: Path) -> None:
    config = write_config(tmp_path)
    first = write_page(tmp_path, "one.html")
    second = write_page(tmp_path, "two.html", "<title>Other</title><p>Body</p>")
    out = tmp_path / "batch"
    result = runner.invoke(
        app,
        [
            "batch",
            str(first),
            str(second),
            "--url",
            "https://example.com/1",
            "--url",
            "https://other.org/2",
            "--mode",
            "zip",
            "-o",
            str(out),
            "--config",
            str(config),
        ],
    )
    assert result.exit_code == 0, result.output
    archives = list(out.glob("*.zip"))
    assert len(archives) == 1
    with zipfile.ZipFile(archives[0]) as archive:
        assert set(archive.namelist()) == {"example.com/Saved_Page.md", "other.org/Other.md", "index.md"}
    with (tmp_path / "runs" / "summary.csv").open(encoding="utf-8", newline="") as handle:
        rows = list(csv.reader(handle))
    assert rows[0][:5] == ["batch_id", "timestamp", "total", "successes", "failures"]
    assert rows[1][2:5] == ["2", "2", "0"]


def test_batch_without_url_is_restricted(tmp_path: Path) -> None:
    page = write_page(tmp_path, html="<p>no url here</p>")
    result = runner.invoke(
        app, ["batch", str(page), "-o", str(tmp_path / "out"), "--config", str(write_config(tmp_path))]
    )
    assert result.exit_code == 0, result.output
    assert "RESTRICTED_PAGE" in result.output
    assert not list((tmp_path / "out").glob("*.md"))


def test_match_reports_selected_profile(tmp_path: Path) -> None:
    page = write_page(tmp_path)
    result = runner.invoke(
        app, ["match", str(page), "--url", "https://example.com/a", "--config", str(write_config(tmp_path))]
    )
    assert result.exit_code == 0, result.output
    assert "Selected profile: default (Default)" in result.output


def test_validate_template(tmp_path: Path) -> None:
    ok = runner.invoke(app, ["validate-template", "{domain}_{title}", "--title", "My Page"])
    assert ok.exit_code == 0, ok.output
    assert "Preview: example.com_My_Page.md" in ok.output

    bad = runner.invoke(app, ["validate-template", "{title}-{bogus}"])
    assert bad.exit_code == 1
    assert "Unknown variable: {bogus}" in bad.output


def test_history_lists_conversions(tmp_path: Path) -> None:
    config = write_config(tmp_path)
    empty = runner.invoke(app, ["history", "--config", str(config)])
    assert "No conversions recorded." in empty.output

    page = write_page(tmp_path)
    runner.invoke(app, ["convert", str(page), "--url", "https://example.com/a", "--stdout", "--config", str(config)])
    listed = runner.invoke(app, ["history", "--config", str(config)])
    assert listed.exit_code == 0, listed.output
    assert "Saved Page" in listed.output


def test_batch_separate_mode_keeps_colliding_names(tmp_path: Path) -> None:
    first = write_page(tmp_path, "one.html", "<title>Same</title><p>First body</p>")
    second = write_page(tmp_path, "two.html", "<title>Same</title><p>Second body</p>")
    out = tmp_path / "separate"
    result = runner.invoke(
        app,
        [
            "batch",
            str(first),
            str(second),
            "--url",
            "https://example.com/1",
            "--url",
            "https://example.com/2",
            "-o",
            str(out),
            "--config",
            str(write_config(tmp_path)),
        ],
    )
    assert result.exit_code == 0, result.output
    assert sorted(path.name for path in out.glob("*.md")) == ["Same-2.md", "Same.md"]
    assert "First body" in (out / "Same.md").read_text(encoding="utf-8")
    assert "Second body" in (out / "Same-2.md").read_text(encoding="utf-8")
