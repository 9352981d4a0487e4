"""Tests for ffmpeg integration: probing, stitching, muxing, helper scripts."""

import os
import subprocess
from unittest.mock import patch

import pytest

from voiceover_pipeline.media import (
    build_mux_args,
    check_ffmpeg,
    format_command,
    generate_mux_scripts,
    mux_audio_video,
    normalize_loudness,
    probe_duration,
    stitch_segments,
)


def _fixed_probe(durations):
    def probe(path):
        return durations.get(os.path.basename(path))
    return probe


# --- Tool detection ---

@patch("voiceover_pipeline.media.shutil.which")
def test_check_ffmpeg_missing(mock_which):
    """Both tools reported missing when not on PATH."""
    mock_which.return_value = None
    assert check_ffmpeg() == {"ffmpeg": False, "ffprobe": False}


@patch("voiceover_pipeline.media.shutil.which")
def test_check_ffmpeg_present(mock_which):
    """Both tools reported present when found."""
    mock_which.side_effect = lambda name: f"/usr/bin/{name}"
    assert check_ffmpeg() == {"ffmpeg": True, "ffprobe": True}


# --- Probing ---

def test_probe_missing_file(tmp_path):
    """A missing file has no duration."""
    assert probe_duration(str(tmp_path / "nope.wav")) is None


@patch("voiceover_pipeline.media.mediainfo")
def test_probe_reads_duration(mock_info, tmp_path):
    """ffprobe's duration is returned as a float."""
    path = tmp_path / "a.wav"
    path.write_bytes(b"RIFF")
    mock_info.return_value = {"duration": "3.5"}
    assert probe_duration(str(path)) == 3.5


@patch("voiceover_pipeline.media.mediainfo")
def test_probe_without_ffprobe(mock_info, tmp_path):
    """A missing ffprobe binary gives None instead of raising."""
    path = tmp_path / "a.wav"
    path.write_bytes(b"RIFF")
    mock_info.side_effect = FileNotFoundError("ffprobe")
    assert probe_duration(str(path)) is None


@patch("voiceover_pipeline.media.mediainfo")
def test_probe_no_duration_field(mock_info, tmp_path):
    """Unreadable output gives None."""
    path = tmp_path / "a.wav"
    path.write_bytes(b"RIFF")
    mock_info.return_value = {}
    assert probe_duration(str(path)) is None


# --- Mux arguments ---

def test_mux_args_shortest():
    """shortest stops at the shorter stream."""
    args = build_mux_args("in.mp4", "vo.wav", "out.mp4", "shortest")
    assert args[:5] == ["-y", "-i", "in.mp4", "-i", "vo.wav"]
    assert "-shortest" in args
    assert "apad" not in args
    assert args[-1] == "out.mp4"


def test_mux_args_copy_video_and_map():
    """Video is stream-copied; audio comes from the second input."""
    args = build_mux_args("in.mp4", "vo.wav", "out.mp4", "shortest")
    assert args[args.index("-c:v") + 1] == "copy"
    assert args[args.index("-c:a") + 1] == "aac"
    assert "0:v:0" in args
    assert "1:a:0" in args


def test_mux_args_pad():
    """pad extends audio with silence to the video's length."""
    args = build_mux_args("in.mp4", "vo.wav", "out.mp4", "pad")
    assert args[args.index("-af") + 1] == "apad"
    assert "-shortest" in args


def test_mux_args_trim_with_known_duration():
    """trim cuts output at the video's duration."""
    args = build_mux_args("in.mp4", "vo.wav", "out.mp4", "trim", video_duration=12.5)
    assert args[args.index("-t") + 1] == "12.500"
    assert "-shortest" not in args


def test_mux_args_trim_unknown_duration():
    """trim without a known duration falls back to -shortest."""
    args = build_mux_args("in.mp4", "vo.wav", "out.mp4", "trim")
    assert "-shortest" in args
    assert "-t" not in args


def test_mux_args_invalid_policy():
    """Unknown sync policies are rejected."""
    with pytest.raises(ValueError, match="stretch"):
        build_mux_args("in.mp4", "vo.wav", "out.mp4", "stretch")


def test_format_command_quotes_spaces():
    """Paths with spaces are quoted in the printable command."""
    assert format_command(["-i", "my video.mp4"]) == "ffmpeg -i 'my video.mp4'"


# --- Muxing ---

@patch("voiceover_pipeline.media.subprocess.run")
def test_mux_success(mock_run, tmp_path):
    """A clean ffmpeg run gives a successful result with durations."""
    probe = _fixed_probe({"in.mp4": 10.0, "vo.wav": 8.0})
    result = mux_audio_video("in.mp4", "vo.wav", str(tmp_path / "out.mp4"), "pad", probe=probe)

    assert result.success is True
    assert result.video_duration == 10.0
    assert result.audio_duration == 8.0
    assert result.sync_policy == "pad"
    assert result.ffmpeg_command.startswith("ffmpeg -y -i in.mp4 -i vo.wav")
    assert result.error is None
    assert mock_run.call_args.args[0][0] == "ffmpeg"


@patch("voiceover_pipeline.media.subprocess.run")
def test_mux_failure_reports_stderr(mock_run, tmp_path):
    """ffmpeg failure gives an unsuccessful result carrying stderr."""
    mock_run.side_effect = subprocess.CalledProcessError(1, "ffmpeg", stderr=b"Invalid data found")
    result = mux_audio_video("in.mp4", "vo.wav", str(tmp_path / "out.mp4"), "shortest",
                             probe=_fixed_probe({}))
    assert result.success is False
    assert result.error == "Invalid data found"
    assert result.video_duration is None


@patch("voiceover_pipeline.media.subprocess.run")
def test_mux_missing_binary(mock_run, tmp_path):
    """A missing ffmpeg binary is a failed result, not an exception."""
    mock_run.side_effect = FileNotFoundError("ffmpeg")
    result = mux_audio_video("in.mp4", "vo.wav", str(tmp_path / "out.mp4"), "shortest",
                             probe=_fixed_probe({}))
    assert result.success is False
    assert "ffmpeg" in result.error


@patch("voiceover_pipeline.media.subprocess.run")
def test_mux_trim_uses_probed_video_duration(mock_run, tmp_path):
    """trim passes the probed video length to ffmpeg."""
    probe = _fixed_probe({"in.mp4": 30.0, "vo.wav": 45.0})
    result = mux_audio_video("in.mp4", "vo.wav", str(tmp_path / "out.mp4"), "trim", probe=probe)
    assert "-t 30.000" in result.ffmpeg_command


# --- Stitching ---

@patch("voiceover_pipeline.media.subprocess.run")
def test_stitch_writes_concat_list(mock_run, tmp_path):
    """Segments are listed in order in the concat file."""
    paths = [str(tmp_path / "001-a.wav"), str(tmp_path / "002-b.wav")]
    assert stitch_segments(paths, str(tmp_path / "master.wav"), str(tmp_path / "tmp")) is True
    lines = (tmp_path / "tmp" / "concat.txt").read_text().splitlines()
    assert lines == [f"file '{paths[0]}'", f"file '{paths[1]}'"]
    assert mock_run.call_count == 1
    assert "copy" in mock_run.call_args.args[0]


@patch("voiceover_pipeline.media.subprocess.run")
def test_stitch_falls_back_to_reencode(mock_run, tmp_path):
    """A failed stream copy is retried with re-encoding."""
    mock_run.side_effect = [subprocess.CalledProcessError(1, "ffmpeg"), None]
    ok = stitch_segments([str(tmp_path / "a.wav")], str(tmp_path / "m.wav"), str(tmp_path))
    assert ok is True
    assert mock_run.call_count == 2
    assert "-ar" in mock_run.call_args.args[0]


@patch("voiceover_pipeline.media.subprocess.run")
def test_stitch_total_failure(mock_run, tmp_path):
    """Both attempts failing returns False."""
    mock_run.side_effect = subprocess.CalledProcessError(1, "ffmpeg")
    assert stitch_segments([str(tmp_path / "a.wav")], str(tmp_path / "m.wav"), str(tmp_path)) is False


@patch("voiceover_pipeline.media.subprocess.run")
def test_normalize_loudness_filter(mock_run, tmp_path):
    """Loudness normalization targets -16 LUFS."""
    assert normalize_loudness("in.wav", str(tmp_path / "out.wav")) is True
    args = mock_run.call_args.args[0]
    assert args[args.index("-af") + 1].startswith("loudnorm=I=-16")


# --- Helper scripts ---

def test_generate_mux_scripts(tmp_path):
    """Bash and PowerShell scripts carry the mux command."""
    paths = generate_mux_scripts("in.mp4", "master.wav", "out.mp4", "pad", str(tmp_path))
    sh_path, ps1_path = paths
    assert sh_path == str(tmp_path / "ffmpeg" / "replace-audio.sh")
    bash = open(sh_path).read()
    assert bash.startswith("#!/usr/bin/env bash")
    assert "ffmpeg -y -i in.mp4 -i master.wav" in bash
    assert "apad" in bash
    assert os.access(sh_path, os.X_OK)
    ps1 = open(ps1_path).read()
    assert "ffmpeg -y -i in.mp4 -i master.wav" in ps1
    assert "Sync policy: pad" in ps1
