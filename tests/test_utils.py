from pathlib import Path

from copy_as_markdown.utils import (
    atomic_write,
    atomic_write_bytes,
    content_checksum,
    generate_run_id,
    normalize_newlines,
    utf8_size,
)


def test_normalize_newlines() -> None:
    text = "line1\r\nline2  \n\n\n"
    assert normalize_newlines(text) == "line1\nline2  \n"


def test_checksum_and_size_use_utf8() -> None:
    assert utf8_size("é") == 2
    assert content_checksum("abc") == content_checksum("abc")
    assert content_checksum("abc") != content_checksum("abd")


def test_atomic_write_creates_parents(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "doc.md"
    atomic_write(target, "# Title\n")
    atomic_write_bytes(tmp_path / "nested" / "blob.bin", b"\x00\x01")
    assert target.read_text(encoding="utf-8") == "# Title\n"
    assert (tmp_path / "nested" / "blob.bin").read_bytes() == b"\x00\x01"


def test_generate_run_id_unique() -> None:
    first = generate_run_id("test")
    second = generate_run_id("test")
    assert first != second
    assert first.startswith("test-")
