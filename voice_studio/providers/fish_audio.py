"""Fish-Audio binding — a model lookup lists recorded samples; the first one wins.

Fish-Audio models carry no structured language/gender fields, so lookup()
reads them from the model's languages list, its title and its free-form tags.
"""

from __future__ import annotations

from typing import Any

import httpx

from playback.errors import NoSampleAvailable

from ..config import Settings
from ..models import VoiceDetails
from .base import VoiceProvider

LANGUAGE_TAGS = {
    "portuguese", "english", "spanish", "french", "german",
    "italian", "chinese", "japanese", "korean",
}
GENDER_TAGS = {"masculino", "feminino", "male", "female"}
TITLE_LANGUAGES = ("portuguese", "english", "spanish")


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [v for v in value if isinstance(v, str) and v]


def _guess_language(data: dict[str, Any]) -> str:
    languages = _strings(data.get("languages"))
    if languages:
        return languages[0]
    title = data.get("title")
    title = title.lower() if isinstance(title, str) else ""
    for lang in TITLE_LANGUAGES:
        if lang in title:
            return lang.capitalize()
    for tag in _strings(data.get("tags")):
        if tag.lower() in LANGUAGE_TAGS:
            return tag
    return "English"


def _guess_gender(data: dict[str, Any]) -> str:
    for tag in _strings(data.get("tags")):
        if tag.lower() in GENDER_TAGS:
            return tag
    return ""


def _first_sample(data: dict[str, Any]) -> str:
    samples = data.get("samples") or []
    if not samples:
        return ""
    first = samples[0]
    return (first.get("audio") or "") if isinstance(first, dict) else ""


class FishAudioProvider(VoiceProvider):
    @property
    def platform(self) -> str:
        return "Fish-Audio"

    def base_url(self, config: Settings) -> str:
        return config.fish_audio_api_url.rstrip("/")

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {api_key}"}

    async def sample_url(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> str:
        data = await self._get_json(client, f"{base_url}/model/{voice_id}", api_key)
        if not data.get("samples"):
            raise NoSampleAvailable("No audio sample available for this Fish-Audio voice")
        url = _first_sample(data)
        if not url:
            raise NoSampleAvailable("Fish-Audio sample has no audio URL")
        return url

    async def lookup(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> VoiceDetails:
        data = await self._get_json(client, f"{base_url}/model/{voice_id}", api_key)
        return VoiceDetails(
            provider_voice_id=data.get("_id") or voice_id,
            name=data.get("title") or voice_id,
            language=_guess_language(data),
            gender=_guess_gender(data),
            preview_url=_first_sample(data),
        )
