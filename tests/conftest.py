"""Shared fixtures for voiceover pipeline tests."""

import pytest

from voiceover_pipeline.chunking import chunk_script
from voiceover_pipeline.models import RenderResult, Segment, TTSResponse
from voiceover_pipeline.tts import RateLimitedError

VOICE_ID = "d1bf0f33-8e0e-4fbf-acf8-45c3c6262513"

TWO_PART_SCRIPT = """# Launch Video

## Part One
Welcome to the show.

## Part Two
Thanks for watching.
"""


class FakeClient:
    """Stand-in TTS client that records calls and returns fixed audio.

    Raises RateLimitedError for any text containing fail_on.
    """

    audio_format = "wav"

    def __init__(self, duration=1.5, fail_on=None):
        self.duration = duration
        self.fail_on = fail_on
        self.calls = []

    def generate_speech(self, text, voice_id, audio_format=None, language=None, **kwargs):
        self.calls.append(text)
        if self.fail_on and self.fail_on in text:
            raise RateLimitedError("Voice.ai: Rate limited (429). Wait and retry.")
        return TTSResponse(
            audio_data=b"RIFF" + text.encode("utf-8"),
            duration_seconds=self.duration,
            sample_rate=22050,
            format="wav",
        )


def no_probe(path):
    """Probe replacement that never finds a duration."""
    return None


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def two_part_segments():
    """Segments for a two-heading markdown script (preamble dropped: H1 only)."""
    return chunk_script(TWO_PART_SCRIPT, mode="headings", max_chars=1500, voice_id=VOICE_ID)


def make_segment(index=1, title="Intro", text="Hello there.", source="heading"):
    return Segment(
        index=index,
        title=title,
        slug=title.lower().replace(" ", "-"),
        text=text,
        source=source,
        hash=f"hash{index:03d}",
    )


def make_results(durations, titles=None):
    """RenderResults with the given durations, one per segment."""
    results = []
    for i, duration in enumerate(durations, start=1):
        title = titles[i - 1] if titles else f"Part {i}"
        seg = make_segment(index=i, title=title, text=f"Text for {title}.")
        name = f"{i:03d}-{seg.slug}.wav"
        results.append(RenderResult(seg, f"/tmp/{name}", name, cached=False, duration=duration))
    return results
