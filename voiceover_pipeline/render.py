"""Render segments to audio, reusing cached files whose content is unchanged."""

import os

from voiceover_pipeline.cache import load_cache, save_cache, segment_cache_key
from voiceover_pipeline.constants import DEFAULT_LANGUAGE, SEGMENTS_DIR
from voiceover_pipeline.media import probe_duration
from voiceover_pipeline.models import CacheEntry, RenderResult, Segment
from voiceover_pipeline.tts import TTSError
from voiceover_pipeline.utils import write_output_file, zero_pad


class RenderError(Exception):
    """A segment could not be synthesized; the render pass was aborted."""

    def __init__(self, segment: Segment, cause: Exception):
        self.segment = segment
        self.cause = cause
        super().__init__(f'Failed to render segment "{segment.title}": {cause}')


def segment_file_name(segment: Segment, audio_format: str) -> str:
    """e.g. "002-part-one.wav", built from the same parts as the cache key."""
    return f"{zero_pad(segment.index)}-{segment.slug}.{audio_format}"


def is_cache_hit(entry: CacheEntry | None, segment: Segment, file_name: str, file_path: str) -> bool:
    """All of: entry exists, same content hash, same file name, file on disk."""
    return (
        entry is not None
        and entry.hash == segment.hash
        and entry.file == file_name
        and os.path.isfile(file_path)
    )


def render_segments(
    segments: list[Segment],
    client,
    voice_id: str,
    output_dir: str,
    force: bool = False,
    mock: bool = False,
    language: str = DEFAULT_LANGUAGE,
    probe=probe_duration,
) -> list[RenderResult]:
    """Render every segment that isn't a valid cache hit, in order.

    Segments are synthesized one at a time. The first failure raises
    RenderError; files already written stay on disk but the cache is only
    saved after the whole pass succeeds. Results keep segment order.
    """
    seg_dir = os.path.join(output_dir, SEGMENTS_DIR)
    os.makedirs(seg_dir, exist_ok=True)

    cache = load_cache(output_dir)
    results = []
    for seg in segments:
        file_name = segment_file_name(seg, client.audio_format)
        file_path = os.path.join(seg_dir, file_name)
        entry = cache.get(segment_cache_key(seg))
        if not force and is_cache_hit(entry, seg, file_name, file_path):
            results.append(RenderResult(seg, file_path, file_name, cached=True, duration=entry.duration))
        else:
            results.append(RenderResult(seg, file_path, file_name, cached=False))

    total = len(results)
    cached_count = sum(1 for r in results if r.cached)
    mock_label = " [mock]" if mock else ""
    print(f"Rendering {total} segments ({cached_count} cached, {total - cached_count} new){mock_label}")

    for i, result in enumerate(results, start=1):
        if result.cached:
            print(f"  [cached] Segment {i}/{total}: {result.file_name}")
            continue

        seg = result.segment
        print(f"  Rendering segment {i}/{total}: {result.file_name}")
        try:
            response = client.generate_speech(seg.text, voice_id, language=language)
        except TTSError as e:
            print(f"  [failed] {result.file_name}")
            raise RenderError(seg, e) from e

        write_output_file(result.file_path, response.audio_data)

        # Measured length wins over the provider figure.
        probed = probe(result.file_path)
        result.duration = probed if probed is not None else response.duration_seconds

        cache[segment_cache_key(seg)] = CacheEntry(
            hash=seg.hash,
            file=result.file_name,
            duration=result.duration,
        )

    save_cache(output_dir, cache)

    total_duration = sum(r.duration for r in results)
    print(f"All segments rendered: total duration {total_duration:.1f}s")
    return results
