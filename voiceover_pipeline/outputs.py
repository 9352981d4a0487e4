"""Output artifacts: manifest, timeline, chapters, captions, description, review page."""

import html
import os
from datetime import datetime, timezone

from voiceover_pipeline.constants import (
    CAPTION_MAX_CHARS,
    MASTER_WAV,
    PROG,
    SEGMENTS_DIR,
    VERSION,
)
from voiceover_pipeline.models import MuxResult, RenderResult, Segment, Timeline, TimelineEntry
from voiceover_pipeline.utils import format_duration, srt_timestamp, write_json, write_output_file


def build_timeline(results: list[RenderResult]) -> Timeline:
    """Lay results end to end starting at 0.

    has_durations is False if any result has no usable duration, in which
    case the offsets are not trustworthy.
    """
    entries = []
    cursor = 0.0
    for r in results:
        entries.append(TimelineEntry(
            index=r.segment.index,
            title=r.segment.title,
            start=cursor,
            duration=r.duration,
            end=cursor + r.duration,
        ))
        cursor += r.duration
    return Timeline(
        entries=entries,
        total_duration=cursor,
        has_durations=all(r.duration > 0 for r in results),
    )


def build_chapters(timeline: Timeline) -> str | None:
    """YouTube chapter list, one "M:SS Title" line per segment.

    None without real durations: made-up chapter marks are worse than none.
    """
    if not timeline.has_durations:
        return None
    return "\n".join(f"{format_duration(e.start)} {e.title}" for e in timeline.entries)


def _caption_text(text: str) -> str:
    # A blank line ends an SRT cue, so the text must be a single line.
    text = " ".join(text.split())
    if len(text) > CAPTION_MAX_CHARS:
        return text[:CAPTION_MAX_CHARS - 3] + "..."
    return text


def build_captions_srt(timeline: Timeline, segments: list[Segment]) -> str | None:
    """One SRT block per segment. None without real durations."""
    if not timeline.has_durations:
        return None
    blocks = []
    for i, entry in enumerate(timeline.entries):
        text = segments[i].text if i < len(segments) else ""
        blocks.append(
            f"{i + 1}\n"
            f"{srt_timestamp(entry.start)} --> {srt_timestamp(entry.end)}\n"
            f"{_caption_text(text)}"
        )
    return "\n\n".join(blocks) + "\n"


def build_manifest(
    title: str,
    voice_id: str,
    voice_name: str | None,
    template: str | None,
    language: str,
    mock: bool,
    results: list[RenderResult],
) -> dict:
    """Complete record of build inputs and per-segment outcome."""
    return {
        "title": title,
        "voice_id": voice_id,
        "voice_name": voice_name,
        "template": template,
        "language": language,
        "mock": mock,
        "segments": [
            {
                "index": r.segment.index,
                "title": r.segment.title,
                "source_text": r.segment.text,
                "text_hash": r.segment.hash,
                "file_path": r.file_name,
                "duration_seconds": r.duration,
            }
            for r in results
        ],
        "created_at": datetime.now(timezone.utc).isoformat(),
        "total_duration_seconds": sum(r.duration for r in results),
        "pipeline_version": VERSION,
    }


def build_description(title: str, chapters: str | None) -> str:
    """Plain-text video/podcast description."""
    parts = [f"{title}\n{'=' * len(title)}\n"]
    if chapters:
        parts.append(f"Chapters:\n{chapters}\n")
    parts.append("---\nVoiceover generated with Voice.ai: https://voice.ai\n")
    return "\n".join(parts)


_REVIEW_CSS = """
    :root { --bg: #0f0f13; --surface: #1a1a24; --border: #2a2a3a; --text: #e8e8f0;
            --dim: #8888a0; --accent: #6c5ce7; --radius: 12px; }
    * { box-sizing: border-box; margin: 0; padding: 0; }
    body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
           background: var(--bg); color: var(--text); line-height: 1.6; padding: 2rem 1rem; }
    .container { max-width: 800px; margin: 0 auto; }
    header { text-align: center; margin-bottom: 2rem; padding: 2rem 1rem;
             background: var(--surface); border: 1px solid var(--border); border-radius: var(--radius); }
    header h1 { font-size: 1.8rem; margin-bottom: 0.5rem; }
    .meta { color: var(--dim); font-size: 0.9rem; }
    .badge-mock { background: #ff9f43; color: #000; padding: 2px 8px; border-radius: 4px;
                  font-size: 0.75rem; font-weight: 600; text-transform: uppercase; margin-left: 0.5rem; }
    .master-section, .segment-card { background: var(--surface); border: 1px solid var(--border);
                                     border-radius: var(--radius); padding: 1.25rem; margin-bottom: 1rem; }
    .segment-card:hover { border-color: var(--accent); }
    .segment-header { display: flex; align-items: center; gap: 0.75rem; margin-bottom: 0.75rem; }
    .segment-num { background: var(--accent); color: #fff; border-radius: 8px; padding: 0.2rem 0.5rem;
                   font-size: 0.8rem; font-weight: 700; }
    .segment-header h3 { flex: 1; font-size: 1rem; }
    .segment-dur { color: var(--dim); font-size: 0.85rem; }
    audio { width: 100%; height: 36px; margin-bottom: 0.5rem; }
    details summary { cursor: pointer; color: var(--dim); font-size: 0.85rem; }
    .segment-text { margin-top: 0.75rem; padding: 1rem; background: var(--bg); border-radius: 8px;
                    font-size: 0.9rem; white-space: pre-wrap; }
    .regen-hint { display: block; margin-top: 0.5rem; padding: 0.5rem 0.75rem; background: var(--bg);
                  border-radius: 6px; font-size: 0.75rem; color: var(--dim); overflow-x: auto; }
    footer { text-align: center; margin-top: 3rem; color: var(--dim); font-size: 0.85rem; }
"""


def _segment_card(result: RenderResult, entry: TimelineEntry | None, voice_id: str) -> str:
    esc = html.escape
    seg = result.segment
    dur = format_duration(entry.duration) if entry else "-"
    return f"""
      <div class="segment-card">
        <div class="segment-header">
          <span class="segment-num">{seg.index:02d}</span>
          <h3>{esc(seg.title)}</h3>
          <span class="segment-dur">{dur}</span>
        </div>
        <audio controls preload="metadata" src="{SEGMENTS_DIR}/{esc(result.file_name)}"></audio>
        <details>
          <summary>View script text</summary>
          <p class="segment-text">{esc(seg.text)}</p>
        </details>
        <code class="regen-hint">{PROG} build --input &lt;script&gt; --voice {esc(voice_id)} --force</code>
      </div>"""


def build_review_html(
    title: str,
    results: list[RenderResult],
    timeline: Timeline,
    has_master: bool,
    voice_id: str,
    mock: bool,
) -> str:
    """Static review page: master player plus one card per segment."""
    esc = html.escape
    by_index = {e.index: e for e in timeline.entries}
    cards = "\n".join(_segment_card(r, by_index.get(r.segment.index), voice_id) for r in results)

    master = ""
    if has_master:
        master = f"""
    <section class="master-section">
      <h2>Master Audio</h2>
      <audio controls preload="metadata" src="{MASTER_WAV}"></audio>
    </section>"""

    badge = '<span class="badge-mock">Mock mode</span>' if mock else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{esc(title)} - Voiceover Review</title>
  <style>{_REVIEW_CSS}  </style>
</head>
<body>
  <div class="container">
    <header>
      <h1>{esc(title)}</h1>
      <p class="meta">
        {len(results)} segments · {format_duration(timeline.total_duration)} total · voice: <code>{esc(voice_id)}</code>
        {badge}
      </p>
    </header>
{master}
    <section>
      <h2>Segments</h2>
{cards}
    </section>

    <footer>
      <p>Generated by {PROG} {VERSION}</p>
    </footer>
  </div>
</body>
</html>
"""


def write_all_outputs(
    output_dir: str,
    title: str,
    voice_id: str,
    language: str,
    mock: bool,
    results: list[RenderResult],
    segments: list[Segment],
    has_master: bool,
    voice_name: str | None = None,
    template: str | None = None,
    mux_result: MuxResult | None = None,
) -> list[str]:
    """Write every derived artifact. Returns the file names written, in order."""
    written = []

    def _write(name, content):
        path = os.path.join(output_dir, name)
        if isinstance(content, (dict, list)):
            write_json(path, content)
        else:
            write_output_file(path, content)
        written.append(name)

    timeline = build_timeline(results)
    chapters = build_chapters(timeline)
    captions = build_captions_srt(timeline, segments)

    _write("manifest.json", build_manifest(title, voice_id, voice_name, template, language, mock, results))
    _write("timeline.json", timeline.to_dict())
    if chapters is not None:
        _write("chapters.txt", chapters + "\n")
    if captions is not None:
        _write("captions.srt", captions)
    _write("description.txt", build_description(title, chapters))
    _write("review.html", build_review_html(title, results, timeline, has_master, voice_id, mock))
    if mux_result is not None:
        _write("mux_report.json", mux_result.to_dict())

    return written
