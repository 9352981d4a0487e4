"""TTS providers: the Voice.ai HTTP API (with a no-network mock mode) and edge-tts.

Both clients expose the same surface used by the renderer:

    client.audio_format                      # file extension of produced audio
    client.generate_speech(text, voice_id, language=...) -> TTSResponse
    client.list_voices(limit=..., query=...) -> (voices, total)
"""

import asyncio
import io
import logging
import os
import tempfile
import time

import edge_tts
import requests
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError
from pydub.generators import Sine

from voiceover_pipeline.constants import (
    API_BASE_ENV_VAR,
    API_BASE_URL,
    API_KEY_ENV_VARS,
    API_MAX_TEXT_LENGTH,
    API_TIMEOUT_SECONDS,
    API_VERSION,
    AUDIO_FORMAT,
    DEFAULT_LANGUAGE,
    EDGE_AUDIO_FORMAT,
    MIN_ESTIMATED_SECONDS,
    MOCK_CUE_HZ,
    MOCK_CUE_MS,
    MOCK_SAMPLE_RATE,
    MOCK_TONE_HZ,
    MODEL_MULTILINGUAL,
    MODEL_TTS,
    RESPONSE_SAMPLE_RATE,
    TTS_RATE,
    TTS_RETRY_BASE_DELAY,
    TTS_RETRY_COUNT,
    USER_AGENT,
    WORDS_PER_SECOND,
)
from voiceover_pipeline.chunking import split_sentences
from voiceover_pipeline.models import TTSResponse, Voice
from voiceover_pipeline.voices import POPULAR_VOICES, VoiceCatalogCache, filter_voices

logger = logging.getLogger(__name__)


class TTSError(Exception):
    """Any failure to synthesize speech."""


class UnauthorizedError(TTSError):
    pass


class InsufficientCreditsError(TTSError):
    pass


class RateLimitedError(TTSError):
    pass


class TTSHTTPError(TTSError):
    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Voice.ai TTS error {status}: {body}")


def error_for_status(status: int, body: str = "") -> TTSError:
    """Map an HTTP failure status to a provider error."""
    if status == 401:
        return UnauthorizedError("Voice.ai: Invalid or missing API key (401).")
    if status == 402:
        return InsufficientCreditsError("Voice.ai: Insufficient credits (402). Check your dashboard.")
    if status == 429:
        return RateLimitedError("Voice.ai: Rate limited (429). Wait and retry.")
    return TTSHTTPError(status, body)


def get_api_key() -> str | None:
    """Read the Voice.ai API key from the environment (either spelling)."""
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


def estimate_duration(text: str) -> float:
    """Rough spoken duration: ~2.5 words per second, at least 0.5s."""
    words = len(text.split())
    return max(MIN_ESTIMATED_SECONDS, words / WORDS_PER_SECOND)


def _split_words(text: str, max_len: int) -> list[str]:
    chunks = []
    current = ""
    for word in text.split():
        if current and len(current) + 1 + len(word) > max_len:
            chunks.append(current)
            current = ""
        current = f"{current} {word}" if current else word
    if current:
        chunks.append(current)
    return chunks or [text[:max_len]]


def split_text_for_api(text: str, max_len: int = API_MAX_TEXT_LENGTH) -> list[str]:
    """Split text into request-sized pieces at sentence boundaries.

    A sentence that alone exceeds max_len is split at word boundaries, so
    every piece fits.
    """
    if len(text) <= max_len:
        return [text]

    sentences = split_sentences(text)
    if len(sentences) <= 1:
        return _split_words(text, max_len)

    chunks = []
    current = ""
    for sentence in sentences:
        if len(sentence.strip()) > max_len:
            if current.strip():
                chunks.append(current.strip())
            current = ""
            chunks.extend(_split_words(sentence, max_len))
            continue
        if current and len(current) + len(sentence) > max_len:
            chunks.append(current.strip())
            current = ""
        current += sentence
    if current.strip():
        chunks.append(current.strip())
    return chunks


def _decoded_duration(audio_data: bytes, fmt: str) -> float | None:
    try:
        return AudioSegment.from_file(io.BytesIO(audio_data), format=fmt).duration_seconds
    except (CouldntDecodeError, OSError, ValueError, EOFError):
        return None


def concat_audio(buffers: list[bytes], fmt: str) -> bytes:
    """Join audio returned for consecutive text pieces.

    WAV is decoded and re-exported so the header describes the whole
    stream; compressed frame formats (mp3) are concatenated as-is.
    """
    if len(buffers) == 1:
        return buffers[0]
    if fmt != "wav":
        return b"".join(buffers)

    combined = AudioSegment.empty()
    for buf in buffers:
        try:
            combined += AudioSegment.from_wav(io.BytesIO(buf))
        except (CouldntDecodeError, OSError, ValueError, EOFError) as e:
            raise TTSError(f"Could not decode WAV chunk from provider: {e}") from e
    out = io.BytesIO()
    combined.export(out, format="wav")
    return out.getvalue()


def generate_mock_wav(duration_seconds: float, sample_rate: int = MOCK_SAMPLE_RATE) -> bytes:
    """Synthesize an audible placeholder clip.

    A soft tone with fades and a short higher cue at the start, so segment
    boundaries are easy to hear in a stitched master.
    """
    duration_ms = int(duration_seconds * 1000)
    tone = Sine(MOCK_TONE_HZ, sample_rate=sample_rate).to_audio_segment(
        duration=duration_ms, volume=-14.0,
    )
    tone = tone.fade_in(50).fade_out(max(1, duration_ms // 10))
    cue = Sine(MOCK_CUE_HZ, sample_rate=sample_rate).to_audio_segment(
        duration=min(MOCK_CUE_MS, duration_ms), volume=-16.0,
    ).fade_in(20).fade_out(100)
    audio = tone.overlay(cue).set_channels(1).set_sample_width(2)

    out = io.BytesIO()
    audio.export(out, format="wav")
    return out.getvalue()


class VoiceAIClient:
    """Voice.ai API client. All HTTP calls live here.

    With mock=True no request is made: speech is a generated tone clip and
    the voice list is the built-in popular voices.
    """

    audio_format = AUDIO_FORMAT

    def __init__(
        self,
        api_key: str | None = None,
        mock: bool = False,
        base_url: str | None = None,
        catalog_cache: VoiceCatalogCache | None = None,
    ):
        self.api_key = api_key
        self.mock = mock
        self.base_url = base_url or os.environ.get(API_BASE_ENV_VAR, API_BASE_URL)
        self.catalog_cache = catalog_cache if catalog_cache is not None else VoiceCatalogCache()

    def _endpoint(self, path: str) -> str:
        return f"{self.base_url}/api/{API_VERSION}{path}"

    def _headers(self) -> dict:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "User-Agent": USER_AGENT,
        }

    # --- Voices ---

    def list_voices(
        self,
        limit: int | None = None,
        query: str | None = None,
    ) -> tuple[list[Voice], int]:
        """List voices, filtered by query and capped at limit.

        The full catalog is fetched and cached; limit and query are applied
        locally so later calls within the TTL see every voice.
        """
        if self.mock:
            return filter_voices(POPULAR_VOICES, limit=limit, query=query)

        cached = self.catalog_cache.get()
        if cached is not None:
            return filter_voices(cached, limit=limit, query=query)

        try:
            res = requests.get(
                self._endpoint("/tts/voices"),
                headers=self._headers(),
                timeout=API_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            raise TTSError(f"Voice.ai request failed: {e}") from e
        if not res.ok:
            raise error_for_status(res.status_code, res.text)

        voices = [
            Voice(
                id=str(v.get("voice_id") or v.get("id") or ""),
                name=str(v.get("name") or "Unnamed"),
                language=str(v.get("language") or DEFAULT_LANGUAGE),
                visibility=str(v.get("visibility") or ""),
                status=str(v.get("status") or ""),
            )
            for v in res.json().get("voices", [])
        ]
        self.catalog_cache.put(voices)
        return filter_voices(voices, limit=limit, query=query)

    # --- Speech ---

    def generate_speech(
        self,
        text: str,
        voice_id: str,
        audio_format: str | None = None,
        language: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
    ) -> TTSResponse:
        """Synthesize text, splitting it across calls when over the length limit."""
        if self.mock:
            return self._mock_speech(text)

        fmt = audio_format or self.audio_format
        lang = language or DEFAULT_LANGUAGE
        model = model or (MODEL_TTS if lang == "en" else MODEL_MULTILINGUAL)

        buffers = []
        for chunk in split_text_for_api(text):
            buffers.append(self._post_speech(chunk, voice_id, fmt, lang, model, temperature, top_p))

        audio = concat_audio(buffers, fmt)
        duration = _decoded_duration(audio, fmt) if fmt == "wav" else None
        return TTSResponse(
            audio_data=audio,
            duration_seconds=duration if duration else estimate_duration(text),
            sample_rate=RESPONSE_SAMPLE_RATE,
            format=fmt,
        )

    def _post_speech(self, text, voice_id, fmt, language, model, temperature, top_p) -> bytes:
        body = {"text": text, "audio_format": fmt, "language": language, "model": model}
        if voice_id:
            body["voice_id"] = voice_id
        if temperature is not None:
            body["temperature"] = temperature
        if top_p is not None:
            body["top_p"] = top_p

        try:
            res = requests.post(
                self._endpoint("/tts/speech"),
                json=body,
                headers=self._headers(),
                timeout=API_TIMEOUT_SECONDS,
            )
        except requests.exceptions.RequestException as e:
            raise TTSError(f"Voice.ai request failed: {e}") from e
        if not res.ok:
            raise error_for_status(res.status_code, res.text)
        return res.content

    def _mock_speech(self, text: str) -> TTSResponse:
        duration = estimate_duration(text)
        return TTSResponse(
            audio_data=generate_mock_wav(duration),
            duration_seconds=duration,
            sample_rate=MOCK_SAMPLE_RATE,
            format="wav",
        )


class EdgeTTSClient:
    """Microsoft Edge read-aloud voices via edge-tts. No API key needed."""

    audio_format = EDGE_AUDIO_FORMAT
    mock = False

    def __init__(self, rate: str = TTS_RATE, catalog_cache: VoiceCatalogCache | None = None):
        self.rate = rate
        self.catalog_cache = catalog_cache if catalog_cache is not None else VoiceCatalogCache()

    def _save(self, text: str, voice: str, output_path: str) -> None:
        """Save one clip with retry logic.

        Retries on any edge-tts failure or a 0-byte output file, with
        exponential backoff between attempts.
        """
        last_error = None
        for attempt in range(TTS_RETRY_COUNT):
            try:
                communicate = edge_tts.Communicate(text, voice, rate=self.rate)
                asyncio.run(communicate.save(output_path))

                if os.path.exists(output_path) and os.path.getsize(output_path) > 0:
                    return

                last_error = TTSError(f"edge-tts produced 0-byte file for: {text[:50]}...")
            except Exception as e:
                last_error = e

            if attempt < TTS_RETRY_COUNT - 1:
                logger.warning("edge-tts attempt %d failed: %s", attempt + 1, last_error)
                time.sleep(TTS_RETRY_BASE_DELAY * (2 ** attempt))

        if isinstance(last_error, TTSError):
            raise last_error
        raise TTSError(f"edge-tts failed after {TTS_RETRY_COUNT} attempts: {last_error}") from last_error

    def generate_speech(
        self,
        text: str,
        voice_id: str,
        audio_format: str | None = None,
        language: str | None = None,
        **kwargs,
    ) -> TTSResponse:
        # The edge voice name already fixes the language.
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, f"speech.{self.audio_format}")
            self._save(text, voice_id, path)
            with open(path, "rb") as f:
                audio = f.read()

        duration = _decoded_duration(audio, self.audio_format)
        return TTSResponse(
            audio_data=audio,
            duration_seconds=duration if duration else estimate_duration(text),
            sample_rate=24000,
            format=self.audio_format,
        )

    def list_voices(
        self,
        limit: int | None = None,
        query: str | None = None,
    ) -> tuple[list[Voice], int]:
        voices = self.catalog_cache.get()
        if voices is None:
            try:
                raw = asyncio.run(edge_tts.list_voices())
            except Exception as e:
                raise TTSError(f"edge-tts voice list failed: {e}") from e
            voices = [
                Voice(
                    id=v["ShortName"],
                    name=v.get("FriendlyName", v["ShortName"]),
                    language=v.get("Locale", ""),
                    gender=v.get("Gender", "").lower(),
                )
                for v in raw
            ]
            self.catalog_cache.put(voices)
        return filter_voices(voices, limit=limit, query=query)
