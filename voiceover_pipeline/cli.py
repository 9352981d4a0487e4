"""CLI interface with subcommand routing and build orchestration."""

import argparse
import os
import sys
import time

from dotenv import load_dotenv

from voiceover_pipeline.chunking import chunk_script
from voiceover_pipeline.constants import (
    CHUNK_MODES,
    DEFAULT_LANGUAGE,
    DEFAULT_MAX_CHARS,
    DEFAULT_SYNC_POLICY,
    MASTER_MP3,
    MASTER_NORMALIZED,
    MASTER_WAV,
    MUXED_VIDEO,
    OUTPUT_DIR,
    PROG,
    SYNC_POLICIES,
    TEMPLATE_DIR,
    TEMPLATE_FILES,
    VERSION,
)
from voiceover_pipeline.media import (
    check_ffmpeg,
    encode_to_mp3,
    generate_mux_scripts,
    mux_audio_video,
    normalize_loudness,
    stitch_segments,
)
from voiceover_pipeline.outputs import write_all_outputs
from voiceover_pipeline.render import RenderError, render_segments
from voiceover_pipeline.tts import EdgeTTSClient, TTSError, VoiceAIClient, get_api_key
from voiceover_pipeline.utils import (
    format_timestamp,
    read_text_file,
    slug_from_path,
    slugify,
    write_json,
)
from voiceover_pipeline.voices import POPULAR_VOICES, resolve_voice_id


def _fail(message: str, *hints: str):
    """Print an error (plus optional hint lines) to stderr and exit 1."""
    print(f"Error: {message}", file=sys.stderr)
    for hint in hints:
        print(hint, file=sys.stderr)
    raise SystemExit(1)


def _warn(message: str) -> None:
    print(f"Warning: {message}", file=sys.stderr)


def _make_client(provider: str, mock: bool):
    """Build the TTS client, exiting if the real Voice.ai API has no key."""
    if mock:
        return VoiceAIClient(mock=True)
    if provider == "edge":
        return EdgeTTSClient()
    api_key = get_api_key()
    if not api_key:
        _fail(
            "VOICE_AI_API_KEY not set.",
            "Set it in .env or your environment, or use --mock for testing.",
        )
    return VoiceAIClient(api_key=api_key)


def _voice_name(voice_id: str) -> str | None:
    for voice in POPULAR_VOICES:
        if voice.id == voice_id:
            return voice.name
    return None


def cmd_build(args):
    """Script → segments → TTS → master → outputs (→ muxed video)."""
    start = time.time()

    # Validate inputs before touching anything
    if not args.input:
        _fail("--input is required. Pass a .txt or .md script file.")
    input_path = os.path.abspath(args.input)
    if not os.path.isfile(input_path):
        _fail(f"Script not found: {input_path}")
    if not args.voice:
        _fail(f"--voice is required. Run '{PROG} voices' to see options.")
    if args.max_chars is not None and args.max_chars <= 0:
        _fail(f"--max-chars must be positive, got {args.max_chars}")

    video_path = os.path.abspath(args.video) if args.video else None
    if args.mux and not video_path:
        _fail("--mux requires --video.")
    if video_path and not os.path.isfile(video_path):
        _fail(f"Video file not found: {video_path}")

    mock = args.mock
    provider = args.provider
    voice_id = resolve_voice_id(args.voice) if provider == "voiceai" or mock else args.voice
    client = _make_client(provider, mock)

    content = read_text_file(input_path)
    if not content.strip():
        _fail(f"Script is empty: {input_path}")

    ext = os.path.splitext(input_path)[1].lower()
    mode = args.mode or ("headings" if ext in (".md", ".markdown") else "auto")
    max_chars = args.max_chars or DEFAULT_MAX_CHARS
    language = args.language or DEFAULT_LANGUAGE
    title = args.title or os.path.splitext(os.path.basename(input_path))[0]
    slug = slugify(args.title) if args.title else slug_from_path(input_path)
    output_dir = os.path.abspath(args.out or os.path.join(OUTPUT_DIR, slug or "untitled"))
    os.makedirs(output_dir, exist_ok=True)
    template_dir = os.path.abspath(TEMPLATE_DIR)

    print(f"{PROG} {VERSION}")
    if mock:
        print("Mock mode: no API calls will be made")
    print(f"  Script:   {input_path}")
    print(f"  Voice:    {voice_id}")
    print(f"  Mode:     {mode} (max {max_chars} chars)")
    if args.template:
        print(f"  Template: {args.template}")
    print(f"  Output:   {output_dir}")
    if video_path:
        print(f"  Video:    {video_path}")

    # Segment
    segments = chunk_script(
        content,
        mode=mode,
        max_chars=max_chars,
        voice_id=voice_id,
        language=language,
        template=args.template,
        template_dir=template_dir,
    )
    print(f"{len(segments)} segments extracted")
    for seg in segments:
        tag = " [template]" if seg.source == "template" else ""
        print(f"  {seg.index:>2}. {seg.title}{tag}")

    # Render
    try:
        results = render_segments(
            segments,
            client,
            voice_id=voice_id,
            output_dir=output_dir,
            force=args.force,
            mock=mock,
            language=language,
        )
    except RenderError as e:
        _fail(str(e), "Segments rendered before the failure were kept; rerun to resume.")

    # Master
    ff = check_ffmpeg()
    has_master = False
    master_wav = os.path.join(output_dir, MASTER_WAV)
    if ff["ffmpeg"]:
        print("Stitching master audio...")
        if stitch_segments([r.file_path for r in results], master_wav, os.path.join(output_dir, "tmp")):
            has_master = True
            print(f"  {MASTER_WAV}")
            if encode_to_mp3(master_wav, os.path.join(output_dir, MASTER_MP3), title=title):
                print(f"  {MASTER_MP3}")
            if normalize_loudness(master_wav, os.path.join(output_dir, MASTER_NORMALIZED)):
                print(f"  {MASTER_NORMALIZED} (loudnorm -16 LUFS)")
        else:
            _warn("Stitching failed. Segments are still available individually.")
    else:
        _warn("ffmpeg not found. Skipping master stitch; segments are in segments/.")

    # Video
    mux_result = None
    if video_path:
        muxed_path = os.path.join(output_dir, MUXED_VIDEO)
        if not ff["ffmpeg"]:
            scripts = generate_mux_scripts(video_path, master_wav, muxed_path, args.sync, output_dir)
            _warn("ffmpeg required for muxing. Helper scripts written:")
            for path in scripts:
                print(f"  {path}", file=sys.stderr)
        elif not has_master:
            _warn("No master audio to mux. Skipping video muxing.")
        else:
            mux_result = mux_audio_video(video_path, master_wav, muxed_path, args.sync)

    # Outputs
    print("Writing output files...")
    written = write_all_outputs(
        output_dir,
        title=title,
        voice_id=voice_id,
        language=language,
        mock=mock,
        results=results,
        segments=segments,
        has_master=has_master,
        voice_name=_voice_name(voice_id),
        template=args.template,
        mux_result=mux_result,
    )
    for name in written:
        print(f"  {name}")

    total_duration = sum(r.duration for r in results)
    print("Build complete")
    print(f"  Output:   {output_dir}")
    print(f"  Segments: {len(results)}")
    print(f"  Duration: {format_timestamp(total_duration)} ({total_duration:.1f}s)")
    print(f"  Time:     {time.time() - start:.1f}s")
    if mux_result is not None and mux_result.success:
        print(f"  Video:    {mux_result.output_path}")
    print(f"  Review:   {os.path.join(output_dir, 'review.html')}")


def cmd_replace_audio(args):
    """Mux an existing audio file into a video."""
    video_path = os.path.abspath(args.video)
    audio_path = os.path.abspath(args.audio)
    if not os.path.isfile(video_path):
        _fail(f"Video not found: {video_path}")
    if not os.path.isfile(audio_path):
        _fail(f"Audio not found: {audio_path}")

    output_path = os.path.abspath(args.out) if args.out else os.path.join(os.path.dirname(audio_path), MUXED_VIDEO)
    os.makedirs(os.path.dirname(output_path), exist_ok=True)

    if not check_ffmpeg()["ffmpeg"]:
        scripts = generate_mux_scripts(video_path, audio_path, output_path, args.sync, os.path.dirname(output_path))
        _warn("ffmpeg not found. Cannot mux directly; helper scripts written:")
        for path in scripts:
            print(f"  {path}", file=sys.stderr)
        print("Install ffmpeg, then run the script for your platform.")
        return

    result = mux_audio_video(video_path, audio_path, output_path, args.sync)
    report_path = os.path.splitext(output_path)[0] + "_mux_report.json"
    write_json(report_path, result.to_dict())
    print(f"  Report: {report_path}")

    if not result.success:
        _fail("Mux failed. Check the report for details.")
    print(f"Done: {result.output_path}")


def cmd_voices(args):
    """List available voices."""
    client = _make_client(args.provider, args.mock)
    try:
        voices, total = client.list_voices(limit=args.limit, query=args.query)
    except TTSError as e:
        _fail(f"Failed to fetch voices: {e}", "Try --mock to see the built-in voices.")

    if not voices:
        print("No voices found.")
        if args.query:
            print('Try a different search, e.g. --query "narrator"')
        return

    id_w = max(4, *(len(v.id) for v in voices))
    name_w = max(4, *(len(v.name) for v in voices))
    print(f"  {'ID':<{id_w}}  {'NAME':<{name_w}}  LANG   DESCRIPTION")
    for v in voices:
        print(f"  {v.id:<{id_w}}  {v.name:<{name_w}}  {v.language:<5}  {v.description or v.style}")
    print(f"Showing {len(voices)} of {total} voices.")
    print(f"Use a voice ID with: {PROG} build --voice <ID> --input <script>")


def main():
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Voiceover pipeline: turn scripts into publishable voiceovers",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # build
    build_parser = subparsers.add_parser("build", help="Render a script into a voiceover")
    build_parser.add_argument("--input", "-i", help="Script file (.txt or .md)")
    build_parser.add_argument("--voice", "-v", help="Voice id or alias (e.g. ellie)")
    build_parser.add_argument("--title", help="Title (default: script file name)")
    build_parser.add_argument("--template", choices=sorted(TEMPLATE_FILES), help="Add template intro/outro")
    build_parser.add_argument("--mode", choices=CHUNK_MODES, help="Segmenting mode (default: headings for .md)")
    build_parser.add_argument("--max-chars", type=int, help=f"Max chars per auto segment (default {DEFAULT_MAX_CHARS})")
    build_parser.add_argument("--language", help=f"Language code (default {DEFAULT_LANGUAGE})")
    build_parser.add_argument("--video", help="Video file to mux the voiceover into")
    build_parser.add_argument("--mux", action="store_true", help="Mux into --video")
    build_parser.add_argument("--sync", choices=SYNC_POLICIES, default=DEFAULT_SYNC_POLICY, help="Audio/video sync policy")
    build_parser.add_argument("--force", action="store_true", help="Re-render every segment, ignoring the cache")
    build_parser.add_argument("--mock", action="store_true", help="No API calls; generate placeholder audio")
    build_parser.add_argument("--provider", choices=("voiceai", "edge"), default="voiceai", help="TTS provider")
    build_parser.add_argument("--out", "-o", help=f"Output directory (default {OUTPUT_DIR}/<title-slug>)")
    build_parser.set_defaults(func=cmd_build)

    # replace-audio
    replace_parser = subparsers.add_parser("replace-audio", help="Mux an audio file into a video")
    replace_parser.add_argument("--video", required=True, help="Input video file")
    replace_parser.add_argument("--audio", required=True, help="Audio file to mux in")
    replace_parser.add_argument("--out", "-o", help="Output video path")
    replace_parser.add_argument("--sync", choices=SYNC_POLICIES, default=DEFAULT_SYNC_POLICY, help="Audio/video sync policy")
    replace_parser.set_defaults(func=cmd_replace_audio)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--limit", type=int, default=20, help="Max voices to show")
    voices_parser.add_argument("--query", help="Filter by name, style, description or gender")
    voices_parser.add_argument("--mock", action="store_true", help="Show built-in voices without an API call")
    voices_parser.add_argument("--provider", choices=("voiceai", "edge"), default="voiceai", help="TTS provider")
    voices_parser.set_defaults(func=cmd_voices)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    args.func(args)


if __name__ == "__main__":
    main()
