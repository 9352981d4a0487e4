"""Shared helpers: slugs, hashing, timestamp formatting, output files."""

import hashlib
import json
import os
import re

from voiceover_pipeline.constants import HASH_LENGTH, INDEX_PAD_WIDTH, SLUG_MAX_LENGTH


def slugify(text: str) -> str:
    """Convert a title to a filesystem-safe slug.

    "Part One: The Hook" → "part-one-the-hook"
    "What's Next?" → "whats-next"
    """
    slug = text.lower()
    slug = re.sub(r"['‘’]", "", slug)
    slug = re.sub(r"[^a-z0-9]+", "-", slug).strip("-")
    return slug[:SLUG_MAX_LENGTH].rstrip("-")


def slug_from_path(path: str) -> str:
    """Slug of a file's base name without extension."""
    basename = os.path.splitext(os.path.basename(path))[0]
    return slugify(basename)


def zero_pad(n: int, width: int = INDEX_PAD_WIDTH) -> str:
    return str(n).zfill(width)


def content_hash(*parts: str) -> str:
    """Truncated sha256 over the given parts.

    Parts are NUL-separated so that ("ab", "c") and ("a", "bc") differ.
    """
    h = hashlib.sha256()
    h.update("\0".join(parts).encode("utf-8"))
    return h.hexdigest()[:HASH_LENGTH]


def _split_seconds(seconds: float) -> tuple[int, int, int]:
    total = int(seconds)
    return total // 3600, (total % 3600) // 60, total % 60


def format_duration(seconds: float) -> str:
    """Seconds → "M:SS", or "H:MM:SS" past the hour.

    This is also the YouTube chapter timestamp format.
    """
    h, m, s = _split_seconds(seconds)
    if h > 0:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"


def format_timestamp(seconds: float) -> str:
    """Seconds → "HH:MM:SS"."""
    h, m, s = _split_seconds(seconds)
    return f"{h:02d}:{m:02d}:{s:02d}"


def srt_timestamp(seconds: float) -> str:
    """Seconds → SRT "HH:MM:SS,mmm"."""
    total_ms = int(round(seconds * 1000))
    h, rem = divmod(total_ms, 3600 * 1000)
    m, rem = divmod(rem, 60 * 1000)
    s, ms = divmod(rem, 1000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def write_output_file(path: str, content: str | bytes) -> str:
    """Write text or bytes to path, creating parent directories.

    Returns the path written.
    """
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    if isinstance(content, bytes):
        with open(path, "wb") as f:
            f.write(content)
    else:
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
    return path


def write_json(path: str, data: dict | list) -> str:
    return write_output_file(path, json.dumps(data, indent=2))


def read_text_file(path: str) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()
