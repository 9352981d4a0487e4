"""Render cache: segment key → last rendered hash, file name and duration.

One JSON manifest per output directory, at segments/.cache.json:

    {"001-intro": {"hash": "9f2c...", "file": "001-intro.wav", "duration": 4.2}}

Loading is tolerant: a missing, unreadable or malformed manifest is a cold
cache, never an error. Entries for segments that left the script are kept.
"""

import json
import logging
import os

from voiceover_pipeline.constants import CACHE_FILENAME, SEGMENTS_DIR
from voiceover_pipeline.models import CacheEntry, Segment
from voiceover_pipeline.utils import write_json, zero_pad

logger = logging.getLogger(__name__)


def cache_manifest_path(output_dir: str) -> str:
    return os.path.join(output_dir, SEGMENTS_DIR, CACHE_FILENAME)


def segment_cache_key(segment: Segment) -> str:
    """Stable per-segment key, e.g. "003-part-two"."""
    return f"{zero_pad(segment.index)}-{segment.slug}"


def _parse_entries(data) -> dict[str, CacheEntry]:
    if not isinstance(data, dict):
        raise ValueError("cache manifest is not an object")
    entries = {}
    for key, raw in data.items():
        entries[str(key)] = CacheEntry(
            hash=str(raw["hash"]),
            file=str(raw["file"]),
            duration=float(raw["duration"]),
        )
    return entries


def load_cache(output_dir: str) -> dict[str, CacheEntry]:
    """Load the cache manifest. Returns {} if missing or corrupt."""
    path = cache_manifest_path(output_dir)
    if not os.path.exists(path):
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            return _parse_entries(json.load(f))
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.debug("Ignoring unreadable cache manifest %s: %s", path, e)
        return {}


def save_cache(output_dir: str, cache: dict[str, CacheEntry]) -> str:
    """Overwrite the cache manifest. Returns its path."""
    data = {key: entry.to_dict() for key, entry in cache.items()}
    return write_json(cache_manifest_path(output_dir), data)
