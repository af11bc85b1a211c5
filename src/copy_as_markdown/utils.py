from __future__ import annotations

import hashlib
import os
import tempfile
import time
from pathlib import Path


def generate_run_id(prefix: str = "run") -> str:
    epoch_ms = int(time.time() * 1000)
    random_bits = hashlib.sha256(os.urandom(16)).hexdigest()[:8]
    return f"{prefix}-{epoch_ms}-{random_bits}"


def atomic_write(path: Path, data: str, encoding: str = "utf-8") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("w", delete=False, dir=path.parent, encoding=encoding) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile("wb", delete=False, dir=path.parent) as tmp:
        tmp.write(data)
        tmp.flush()
        os.fsync(tmp.fileno())
    os.replace(tmp.name, path)


def normalize_newlines(text: str) -> str:
    """Use ``\\n`` line endings and end with exactly one newline.

    Trailing spaces are kept because two of them mark a Markdown hard break.
    """

    return "\n".join(text.splitlines()).rstrip("\n") + "\n"


def content_checksum(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def utf8_size(content: str) -> int:
    return len(content.encode("utf-8"))


__all__ = [
    "atomic_write",
    "atomic_write_bytes",
    "content_checksum",
    "generate_run_id",
    "normalize_newlines",
    "utf8_size",
]
