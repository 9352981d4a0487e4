"""Voice catalog: popular Voice.ai voices, aliases, and the voice list cache."""

import time

from voiceover_pipeline.constants import VOICE_CATALOG_TTL_SECONDS
from voiceover_pipeline.models import Voice

# Hardcoded popular voices (usable in mock mode without a network call)
POPULAR_VOICES = [
    Voice(id="d1bf0f33-8e0e-4fbf-acf8-45c3c6262513", name="Ellie", gender="female",
          style="Youthful, vibrant fashion vlogger",
          description="Youthful, vibrant. Suits vlogs and social content."),
    Voice(id="f9e6a5eb-a7fd-4525-9e92-75125249c933", name="Oliver", gender="male",
          style="Friendly British, conversational",
          description="Friendly British tone for narration and tutorials."),
    Voice(id="4388040c-8812-42f4-a264-f457a6b2b5b9", name="Lilith", gender="female",
          style="Soft, feminine",
          description="Soft and calm. Suits ASMR and relaxed content."),
    Voice(id="dbb271df-db25-4225-abb0-5200ba1426bc", name="Smooth Calm Voice", gender="male",
          style="Deep, smooth narrator",
          description="Deep, smooth narrator for documentaries and audiobooks."),
    Voice(id="72d2a864-b236-402e-a166-a838ccc2c273", name="Corpse Husband", gender="male",
          style="Deep, distinctive YouTuber",
          description="Deep and distinctive. Gaming and entertainment."),
    Voice(id="559d3b72-3e79-4f11-9b62-9ec702a6c057", name="Skadi", gender="female",
          style="Anime, Arknights character",
          description="Anime-style character voice."),
    Voice(id="ed751d4d-e633-4bb0-8f5e-b5c8ddb04402", name="Zhongli", gender="male",
          style="Deep, Genshin Impact character",
          description="Deep and authoritative for dramatic content."),
    Voice(id="a931a6af-fb01-42f0-a8c0-bd14bc302bb1", name="Flora", gender="female",
          style="High pitch, cheerful",
          description="Cheerful and upbeat for kids content and promos."),
    Voice(id="bd35e4e6-6283-46b9-86b6-7cfa3dd409b9", name="Master Chief", gender="male",
          style="Deep heroic, Halo character",
          description="Heroic and commanding for action content."),
]

# Shorthand name → voice id
VOICE_ALIASES = {
    "ellie": "d1bf0f33-8e0e-4fbf-acf8-45c3c6262513",
    "oliver": "f9e6a5eb-a7fd-4525-9e92-75125249c933",
    "lilith": "4388040c-8812-42f4-a264-f457a6b2b5b9",
    "smooth": "dbb271df-db25-4225-abb0-5200ba1426bc",
    "corpse": "72d2a864-b236-402e-a166-a838ccc2c273",
    "skadi": "559d3b72-3e79-4f11-9b62-9ec702a6c057",
    "zhongli": "ed751d4d-e633-4bb0-8f5e-b5c8ddb04402",
    "flora": "a931a6af-fb01-42f0-a8c0-bd14bc302bb1",
    "chief": "bd35e4e6-6283-46b9-86b6-7cfa3dd409b9",
}


def resolve_voice_id(name_or_id: str) -> str:
    """Resolve an alias ("ellie") to its id; anything else passes through."""
    return VOICE_ALIASES.get(name_or_id.lower(), name_or_id)


class VoiceCatalogCache:
    """Holds one fetched voice list until it expires.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self, ttl_seconds: float = VOICE_CATALOG_TTL_SECONDS, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.data: list[Voice] | None = None
        self.expires_at = 0.0

    def get(self) -> list[Voice] | None:
        if self.data is not None and self._clock() < self.expires_at:
            return self.data
        return None

    def put(self, data: list[Voice]) -> None:
        self.data = data
        self.expires_at = self._clock() + self.ttl_seconds


def _matches(voice: Voice, query: str) -> bool:
    fields = (voice.name, voice.style, voice.description, voice.gender)
    return any(query in (f or "").lower() for f in fields)


def filter_voices(
    voices: list[Voice],
    limit: int | None = None,
    query: str | None = None,
) -> tuple[list[Voice], int]:
    """Filter by case-insensitive query, then cap at limit.

    Returns (voices, total matches before the limit).
    """
    result = list(voices)
    if query:
        q = query.lower()
        result = [v for v in result if _matches(v, q)]
    total = len(result)
    if limit:
        result = result[:limit]
    return result, total
