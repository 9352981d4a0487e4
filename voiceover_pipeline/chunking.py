"""Split a script into numbered, hashed segments.

Markdown scripts split on ## headings; plain text (or markdown without
real headings) is chunked at sentence boundaries.
"""

import os
import re

from voiceover_pipeline.constants import (
    DEFAULT_LANGUAGE,
    PREAMBLE_TITLE,
    TEMPLATE_DIR,
    TEMPLATE_FILES,
)
from voiceover_pipeline.models import Segment
from voiceover_pipeline.utils import content_hash, read_text_file, slugify

_H1_RE = re.compile(r"^#\s+(.+)$")
_H2_RE = re.compile(r"^##\s+(.+)$")

# A sentence is everything up to a run of terminators plus trailing
# whitespace; a final fragment with no terminator is kept as its own unit.
_SENTENCE_RE = re.compile(r"[^.!?]*[.!?]+\s*|[^.!?]+$")


def parse_markdown_headings(content: str) -> list[dict]:
    """Split markdown on ## headings.

    Returns dicts with "title", "text" and "preamble" (True for the section
    before the first ## heading, which takes a leading # heading as title).
    Sections whose body is empty after trimming are dropped.
    """
    sections = []
    current_title = ""
    current_lines: list[str] = []
    h1_title = ""

    def flush():
        if current_title or any(line.strip() for line in current_lines):
            sections.append({
                "title": current_title or h1_title or PREAMBLE_TITLE,
                "text": "\n".join(current_lines).strip(),
                "preamble": not current_title,
            })

    for line in content.split("\n"):
        h2 = _H2_RE.match(line)
        h1 = _H1_RE.match(line)
        if h2:
            flush()
            current_title = h2.group(1).strip()
            current_lines = []
        elif h1 and not current_title and not sections:
            h1_title = h1.group(1).strip()
        else:
            current_lines.append(line)

    flush()
    return [s for s in sections if s["text"]]


def split_sentences(text: str) -> list[str]:
    """Split text into sentence units, keeping trailing whitespace.

    Joining the result reproduces the input exactly.
    """
    return [m.group(0) for m in _SENTENCE_RE.finditer(text) if m.group(0)]


def auto_chunk(content: str, max_chars: int) -> list[dict]:
    """Greedily pack sentences into chunks of at most max_chars.

    A single sentence longer than max_chars becomes its own oversized
    chunk; sentences are never cut.
    """
    text = content.strip()
    if len(text) <= max_chars:
        return [{"title": "Segment 1", "text": text}]

    sentences = split_sentences(text) or [text]
    chunks = []
    current = ""

    for sentence in sentences:
        if current and len(current) + len(sentence) > max_chars:
            chunks.append({"title": f"Segment {len(chunks) + 1}", "text": current.strip()})
            current = ""
        current += sentence

    if current.strip():
        chunks.append({"title": f"Segment {len(chunks) + 1}", "text": current.strip()})

    return chunks


def load_template(template_dir: str, filename: str) -> str | None:
    """Read a template file, or None if it doesn't exist or is blank."""
    path = os.path.join(template_dir, filename)
    if not os.path.isfile(path):
        return None
    text = read_text_file(path).strip()
    return text or None


def _apply_template(sections: list[dict], template: str | None, template_dir: str) -> list[dict]:
    files = TEMPLATE_FILES.get(template or "")
    if not files:
        return sections

    result = list(sections)
    if "intro" in files:
        intro = load_template(template_dir, files["intro"])
        if intro:
            result.insert(0, {"title": "Intro", "text": intro, "source": "template"})
    if "outro" in files:
        outro = load_template(template_dir, files["outro"])
        if outro:
            result.append({"title": "Outro", "text": outro, "source": "template"})
    return result


def chunk_script(
    content: str,
    mode: str,
    max_chars: int,
    voice_id: str,
    language: str | None = None,
    template: str | None = None,
    template_dir: str = TEMPLATE_DIR,
) -> list[Segment]:
    """Full segmenting pipeline: parse → chunk → templates → number & hash."""
    sections: list[dict] = []

    if mode == "headings":
        heading_sections = parse_markdown_headings(content)
        if any(not s["preamble"] for s in heading_sections):
            sections = [
                {"title": s["title"], "text": s["text"], "source": "heading"}
                for s in heading_sections
            ]

    # No real ## headings (or auto mode): chunk by length instead of
    # emitting one monolithic segment.
    if not sections:
        sections = [
            {"title": c["title"], "text": c["text"], "source": "auto"}
            for c in auto_chunk(content, max_chars)
        ]

    sections = _apply_template(sections, template, template_dir)

    lang = language or DEFAULT_LANGUAGE
    segments = []
    for i, section in enumerate(sections, start=1):
        segments.append(Segment(
            index=i,
            title=section["title"],
            slug=slugify(section["title"]) or "segment",
            text=section["text"],
            source=section["source"],
            hash=content_hash(section["text"], voice_id, lang),
        ))
    return segments
