"""Data models for voiceover production."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Segment:
    index: int         # 1-based, document order
    title: str
    slug: str
    text: str
    source: str        # "heading", "auto" or "template"
    hash: str


@dataclass
class CacheEntry:
    hash: str
    file: str
    duration: float

    def to_dict(self) -> dict:
        return {"hash": self.hash, "file": self.file, "duration": self.duration}


@dataclass
class RenderResult:
    segment: Segment
    file_path: str
    file_name: str
    cached: bool
    duration: float = 0.0


@dataclass
class TimelineEntry:
    index: int
    title: str
    start: float
    duration: float
    end: float

    def to_dict(self) -> dict:
        return {
            "index": self.index,
            "title": self.title,
            "start_seconds": self.start,
            "duration_seconds": self.duration,
            "end_seconds": self.end,
        }


@dataclass
class Timeline:
    entries: list[TimelineEntry]
    total_duration: float
    has_durations: bool

    def to_dict(self) -> dict:
        return {
            "segments": [e.to_dict() for e in self.entries],
            "total_duration_seconds": self.total_duration,
            "has_durations": self.has_durations,
        }


@dataclass
class Voice:
    id: str
    name: str
    language: str = "en"
    visibility: str = ""
    status: str = ""
    gender: str = ""
    style: str = ""
    description: str = ""


@dataclass
class TTSResponse:
    audio_data: bytes
    duration_seconds: float
    sample_rate: int
    format: str


@dataclass
class MuxResult:
    success: bool
    output_path: str
    video_duration: float | None
    audio_duration: float | None
    sync_policy: str
    ffmpeg_command: str
    error: str | None = None

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "output_path": self.output_path,
            "video_duration": self.video_duration,
            "audio_duration": self.audio_duration,
            "sync_policy": self.sync_policy,
            "ffmpeg_command": self.ffmpeg_command,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
