"""Tests for derived artifacts: timeline, chapters, captions, manifest, review page."""

import json

from conftest import make_results, make_segment
from voiceover_pipeline.models import MuxResult, RenderResult
from voiceover_pipeline.outputs import (
    build_captions_srt,
    build_chapters,
    build_description,
    build_manifest,
    build_review_html,
    build_timeline,
    write_all_outputs,
)


# --- Timeline ---

def test_timeline_offsets():
    """Segments are laid end to end from zero."""
    timeline = build_timeline(make_results([2.0, 3.5, 1.0]))
    assert [e.start for e in timeline.entries] == [0.0, 2.0, 5.5]
    assert [e.end for e in timeline.entries] == [2.0, 5.5, 6.5]
    assert timeline.total_duration == 6.5
    assert timeline.has_durations is True


def test_timeline_zero_duration_flag():
    """Any zero duration marks the timeline as untrustworthy."""
    timeline = build_timeline(make_results([2.0, 0.0]))
    assert timeline.has_durations is False


def test_timeline_empty():
    """No segments: zero total."""
    timeline = build_timeline([])
    assert timeline.entries == []
    assert timeline.total_duration == 0.0


# --- Chapters ---

def test_chapters_lines():
    """One "M:SS Title" line per segment, first at 0:00."""
    results = make_results([2.0, 63.0, 1.0], titles=["Intro", "Main", "Outro"])
    chapters = build_chapters(build_timeline(results))
    assert chapters.split("\n") == ["0:00 Intro", "0:02 Main", "1:05 Outro"]


def test_chapters_none_without_durations():
    """No chapters when durations are unknown."""
    assert build_chapters(build_timeline(make_results([0.0, 2.0]))) is None


# --- Captions ---

def test_captions_srt_blocks():
    """Numbered SRT blocks with comma-millisecond timestamps."""
    results = make_results([2.0, 3.5])
    segments = [r.segment for r in results]
    srt = build_captions_srt(build_timeline(results), segments)
    blocks = srt.strip().split("\n\n")
    assert blocks[0] == "1\n00:00:00,000 --> 00:00:02,000\nText for Part 1."
    assert blocks[1] == "2\n00:00:02,000 --> 00:00:05,500\nText for Part 2."
    assert srt.endswith("\n")


def test_captions_truncate_long_text():
    """Caption text is capped at 200 chars with an ellipsis."""
    seg = make_segment(text="x" * 250)
    results = [RenderResult(seg, "/tmp/001-intro.wav", "001-intro.wav", cached=False, duration=5.0)]
    srt = build_captions_srt(build_timeline(results), [seg])
    caption = srt.strip().split("\n")[2]
    assert len(caption) == 200
    assert caption.endswith("...")


def test_captions_multiparagraph_text_single_cue():
    """Paragraph breaks inside a segment don't split its caption block."""
    results = make_results([2.0, 1.0])
    results[0] = RenderResult(
        make_segment(index=1, title="Part 1", text="First paragraph.\n\nSecond paragraph."),
        "/tmp/001-part-1.wav", "001-part-1.wav", cached=False, duration=2.0,
    )
    srt = build_captions_srt(build_timeline(results), [r.segment for r in results])
    blocks = srt.strip().split("\n\n")
    assert len(blocks) == 2
    assert blocks[0].split("\n")[2] == "First paragraph. Second paragraph."


def test_captions_none_without_durations():
    """No captions when durations are unknown."""
    results = make_results([0.0])
    assert build_captions_srt(build_timeline(results), [r.segment for r in results]) is None


# --- Manifest and description ---

def test_manifest_fields():
    """Manifest records inputs and per-segment outcome."""
    results = make_results([2.0, 3.5])
    manifest = build_manifest("My Video", "voice-1", "Ellie", "youtube", "en", True, results)
    assert manifest["title"] == "My Video"
    assert manifest["voice_name"] == "Ellie"
    assert manifest["template"] == "youtube"
    assert manifest["mock"] is True
    assert manifest["total_duration_seconds"] == 5.5
    assert manifest["pipeline_version"] == "0.1.0"
    assert "created_at" in manifest
    seg = manifest["segments"][1]
    assert seg["index"] == 2
    assert seg["file_path"] == "002-part-2.wav"
    assert seg["text_hash"] == "hash002"
    assert seg["duration_seconds"] == 3.5


def test_description_with_chapters():
    """Description includes the chapter list when there is one."""
    desc = build_description("My Video", "0:00 Intro\n0:05 Main")
    assert desc.startswith("My Video\n========")
    assert "Chapters:\n0:00 Intro\n0:05 Main" in desc


def test_description_without_chapters():
    """No chapter block without chapters."""
    assert "Chapters" not in build_description("My Video", None)


# --- Review page ---

def test_review_html_escapes_text():
    """Titles and script text are HTML-escaped."""
    seg = make_segment(title="<script>alert(1)</script>", text="A & B")
    results = [RenderResult(seg, "/tmp/x.wav", "x.wav", cached=False, duration=1.0)]
    page = build_review_html("Tom & Jerry", results, build_timeline(results), False, "v1", False)
    assert "<script>alert(1)</script>" not in page
    assert "&lt;script&gt;" in page
    assert "Tom &amp; Jerry" in page
    assert "A &amp; B" in page


def test_review_html_master_and_mock_badge():
    """Master player and mock badge appear only when applicable."""
    results = make_results([1.0])
    timeline = build_timeline(results)
    with_master = build_review_html("T", results, timeline, True, "v1", True)
    without = build_review_html("T", results, timeline, False, "v1", False)
    assert 'src="master.wav"' in with_master
    assert "Mock mode" in with_master
    assert 'src="master.wav"' not in without
    assert "Mock mode" not in without


def test_review_html_links_segment_files():
    """Each card plays its file from the segments directory."""
    results = make_results([1.0, 2.0])
    page = build_review_html("T", results, build_timeline(results), False, "v1", False)
    assert 'src="segments/001-part-1.wav"' in page
    assert 'src="segments/002-part-2.wav"' in page


# --- write_all_outputs ---

def test_write_all_outputs_files(tmp_path):
    """With durations every text artifact is written."""
    results = make_results([2.0, 3.5])
    written = write_all_outputs(
        str(tmp_path), title="T", voice_id="v1", language="en", mock=True,
        results=results, segments=[r.segment for r in results], has_master=False,
    )
    assert written == [
        "manifest.json", "timeline.json", "chapters.txt",
        "captions.srt", "description.txt", "review.html",
    ]
    for name in written:
        assert (tmp_path / name).exists()
    assert (tmp_path / "chapters.txt").read_text().endswith("\n")


def test_write_all_outputs_skips_chapters_without_durations(tmp_path):
    """Unknown durations: no chapters or captions files."""
    results = make_results([0.0, 2.0])
    written = write_all_outputs(
        str(tmp_path), title="T", voice_id="v1", language="en", mock=False,
        results=results, segments=[r.segment for r in results], has_master=False,
    )
    assert "chapters.txt" not in written
    assert "captions.srt" not in written
    assert not (tmp_path / "chapters.txt").exists()
    timeline = json.loads((tmp_path / "timeline.json").read_text())
    assert timeline["has_durations"] is False


def test_write_all_outputs_mux_report(tmp_path):
    """A mux result is written as mux_report.json."""
    results = make_results([1.0])
    mux = MuxResult(True, "muxed.mp4", 10.0, 1.0, "pad", "ffmpeg -y")
    written = write_all_outputs(
        str(tmp_path), title="T", voice_id="v1", language="en", mock=False,
        results=results, segments=[r.segment for r in results], has_master=True,
        mux_result=mux,
    )
    assert written[-1] == "mux_report.json"
    report = json.loads((tmp_path / "mux_report.json").read_text())
    assert report["sync_policy"] == "pad"
