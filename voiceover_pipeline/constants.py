"""All magic numbers and configuration constants."""

DEFAULT_MAX_CHARS = 1500            # chars — auto-chunking target per segment
DEFAULT_LANGUAGE = "en"
DEFAULT_SYNC_POLICY = "shortest"
SYNC_POLICIES = ("shortest", "pad", "trim")
CHUNK_MODES = ("headings", "auto")
PREAMBLE_TITLE = "Preamble"         # title for text before the first ## heading
CAPTION_MAX_CHARS = 200             # longer segment text is cut with "..."
SLUG_MAX_LENGTH = 60
INDEX_PAD_WIDTH = 3                 # 7 → "007"
HASH_LENGTH = 16                    # hex chars kept from sha256

API_BASE_URL = "https://dev.voice.ai"
API_VERSION = "v1"
API_KEY_ENV_VARS = ("VOICE_AI_API_KEY", "VOICEAI_API_KEY")
API_BASE_ENV_VAR = "VOICEAI_API_BASE"
API_MAX_TEXT_LENGTH = 490           # provider limit is 500; keep a small margin
API_TIMEOUT_SECONDS = 60
MODEL_TTS = "voiceai-tts-v1-latest"
MODEL_MULTILINGUAL = "voiceai-tts-multilingual-v1-latest"
AUDIO_FORMAT = "wav"
RESPONSE_SAMPLE_RATE = 32000
VOICE_CATALOG_TTL_SECONDS = 600     # 10 min in-memory voice list cache

MOCK_SAMPLE_RATE = 22050
MOCK_TONE_HZ = 180
MOCK_CUE_HZ = 440
MOCK_CUE_MS = 150
WORDS_PER_SECOND = 2.5              # duration heuristic when nothing better exists
MIN_ESTIMATED_SECONDS = 0.5

TTS_RETRY_COUNT = 3                 # edge-tts: max attempts per call
TTS_RETRY_BASE_DELAY = 1.0          # seconds — base delay for exponential backoff
TTS_RATE = "+0%"                    # edge-tts speech rate
EDGE_AUDIO_FORMAT = "mp3"

OUTPUT_BITRATE = "192k"             # MP3 / AAC output bitrate
LOUDNORM_FILTER = "loudnorm=I=-16:TP=-1.5:LRA=11"   # -16 LUFS for YouTube/podcast
STITCH_SAMPLE_RATE = "22050"

OUTPUT_DIR = "out"
TEMPLATE_DIR = "templates"
SEGMENTS_DIR = "segments"
CACHE_FILENAME = ".cache.json"
MASTER_WAV = "master.wav"
MASTER_MP3 = "master.mp3"
MASTER_NORMALIZED = "master_normalized.wav"
MUXED_VIDEO = "muxed.mp4"

TEMPLATE_FILES = {
    "youtube": {"intro": "youtube_intro.txt", "outro": "youtube_outro.txt"},
    "podcast": {"intro": "podcast_intro.txt"},
    "shortform": {"intro": "shortform_hook.txt"},
}

PROG = "voiceai-vo"
USER_AGENT = "voiceover-pipeline/0.1.0"
VERSION = "0.1.0"
