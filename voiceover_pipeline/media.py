"""ffmpeg/ffprobe integration: probing, stitching, encoding, muxing.

Nothing here raises on a missing or failing tool. Callers get None, False
or an unsuccessful MuxResult and decide how to degrade.
"""

import logging
import os
import shlex
import shutil
import subprocess

from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError, CouldntEncodeError
from pydub.utils import mediainfo

from voiceover_pipeline.constants import (
    LOUDNORM_FILTER,
    OUTPUT_BITRATE,
    STITCH_SAMPLE_RATE,
    SYNC_POLICIES,
)
from voiceover_pipeline.models import MuxResult
from voiceover_pipeline.utils import write_output_file

logger = logging.getLogger(__name__)


def check_ffmpeg() -> dict:
    """Report which of ffmpeg / ffprobe are on PATH."""
    return {
        "ffmpeg": shutil.which("ffmpeg") is not None,
        "ffprobe": shutil.which("ffprobe") is not None,
    }


def probe_duration(path: str) -> float | None:
    """Duration in seconds via ffprobe, or None if it can't be determined."""
    if not os.path.isfile(path):
        return None
    try:
        info = mediainfo(path)
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        logger.debug("ffprobe unavailable for %s: %s", path, e)
        return None
    try:
        duration = float(info["duration"])
    except (KeyError, TypeError, ValueError):
        return None
    return duration if duration >= 0 else None


def format_command(args: list[str]) -> str:
    """Printable ffmpeg command line."""
    return shlex.join(["ffmpeg", *args])


def _run_ffmpeg(args: list[str]) -> None:
    subprocess.run(["ffmpeg", *args], check=True, capture_output=True)


def stitch_segments(segment_paths: list[str], output_path: str, tmp_dir: str) -> bool:
    """Concatenate segment files into one master file.

    Tries a stream copy first; falls back to re-encoding to a common
    mono 16-bit format when the inputs don't line up.
    """
    concat_file = os.path.join(tmp_dir, "concat.txt")
    lines = []
    for path in segment_paths:
        escaped = os.path.abspath(path).replace("'", "'\\''")
        lines.append(f"file '{escaped}'")
    write_output_file(concat_file, "\n".join(lines) + "\n")

    base = ["-y", "-f", "concat", "-safe", "0", "-i", concat_file]
    try:
        _run_ffmpeg(base + ["-c", "copy", output_path])
        return True
    except (OSError, subprocess.CalledProcessError):
        logger.warning("Stitch with stream copy failed, trying re-encode")
    try:
        _run_ffmpeg(base + ["-ar", STITCH_SAMPLE_RATE, "-ac", "1", "-sample_fmt", "s16", output_path])
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning("Stitch failed: %s", e)
        return False


def encode_to_mp3(input_path: str, output_path: str, title: str | None = None) -> bool:
    """Export an MP3 copy of input_path, tagged with the title if given."""
    tags = {"title": title} if title else None
    try:
        audio = AudioSegment.from_file(input_path)
        audio.export(output_path, format="mp3", bitrate=OUTPUT_BITRATE, tags=tags)
        return True
    except (CouldntDecodeError, CouldntEncodeError, OSError) as e:
        logger.warning("MP3 encode failed: %s", e)
        return False


def normalize_loudness(input_path: str, output_path: str) -> bool:
    """Single-pass EBU R128 loudness normalization to -16 LUFS."""
    try:
        _run_ffmpeg(["-y", "-i", input_path, "-af", LOUDNORM_FILTER, output_path])
        return True
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning("Loudness normalization failed: %s", e)
        return False


def build_mux_args(
    video_path: str,
    audio_path: str,
    output_path: str,
    sync_policy: str,
    video_duration: float | None = None,
) -> list[str]:
    """ffmpeg arguments that replace a video's audio track.

    shortest: stop at the shorter of the two tracks.
    pad:      extend audio with silence up to the video's length.
    trim:     cut audio at the video's length (video is never shortened
              when its duration is known).
    """
    if sync_policy not in SYNC_POLICIES:
        raise ValueError(f"Invalid sync policy: {sync_policy!r}")

    args = [
        "-y", "-i", video_path, "-i", audio_path,
        "-c:v", "copy", "-c:a", "aac", "-b:a", OUTPUT_BITRATE,
        "-map", "0:v:0", "-map", "1:a:0",
    ]
    if sync_policy == "pad":
        args += ["-af", "apad", "-shortest"]
    elif sync_policy == "trim" and video_duration:
        args += ["-t", f"{video_duration:.3f}"]
    else:
        args += ["-shortest"]
    args.append(output_path)
    return args


def mux_audio_video(
    video_path: str,
    audio_path: str,
    output_path: str,
    sync_policy: str,
    probe=probe_duration,
) -> MuxResult:
    """Replace the audio track of video_path with audio_path."""
    video_duration = probe(video_path)
    audio_duration = probe(audio_path)
    args = build_mux_args(video_path, audio_path, output_path, sync_policy, video_duration)
    command = format_command(args)

    def _fmt(d):
        return f"{d:.1f}s" if d is not None else "?"

    print("Muxing audio into video...")
    print(f"  Video: {video_path} ({_fmt(video_duration)})")
    print(f"  Audio: {audio_path} ({_fmt(audio_duration)})")
    print(f"  Sync:  {sync_policy}")

    try:
        _run_ffmpeg(args)
    except (OSError, subprocess.CalledProcessError) as e:
        stderr = getattr(e, "stderr", None)
        if isinstance(stderr, bytes):
            stderr = stderr.decode("utf-8", errors="replace").strip()
        error = stderr or str(e)
        print(f"  Mux failed: {error}")
        return MuxResult(False, output_path, video_duration, audio_duration,
                         sync_policy, command, error=error)

    print(f"  Muxed: {output_path}")
    return MuxResult(True, output_path, video_duration, audio_duration, sync_policy, command)


def _ps_quote(arg: str) -> str:
    return f'"{arg}"' if " " in arg else arg


def generate_mux_scripts(
    video_path: str,
    audio_path: str,
    output_path: str,
    sync_policy: str,
    out_dir: str,
) -> list[str]:
    """Write replace-audio.sh / .ps1 for users who install ffmpeg later.

    Returns the paths of the written scripts.
    """
    args = build_mux_args(video_path, audio_path, output_path, sync_policy)
    ffmpeg_dir = os.path.join(out_dir, "ffmpeg")

    bash = "\n".join([
        "#!/usr/bin/env bash",
        "# Replace the audio track of a video.",
        f"# Sync policy: {sync_policy}",
        "#",
        "# Requires ffmpeg: https://ffmpeg.org/download.html",
        "#   macOS:  brew install ffmpeg",
        "#   Ubuntu: sudo apt install ffmpeg",
        "",
        "set -euo pipefail",
        "",
        format_command(args),
        f"echo {shlex.quote('Done: ' + output_path)}",
        "",
    ])
    ps1 = "\n".join([
        "# Replace the audio track of a video.",
        f"# Sync policy: {sync_policy}",
        "#",
        "# Requires ffmpeg: winget install ffmpeg",
        "",
        '$ErrorActionPreference = "Stop"',
        "",
        "ffmpeg " + " ".join(_ps_quote(a) for a in args),
        f'Write-Host "Done: {output_path}"',
        "",
    ])

    sh_path = write_output_file(os.path.join(ffmpeg_dir, "replace-audio.sh"), bash)
    os.chmod(sh_path, 0o755)
    ps1_path = write_output_file(os.path.join(ffmpeg_dir, "replace-audio.ps1"), ps1)
    return [sh_path, ps1_path]
