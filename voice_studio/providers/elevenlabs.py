"""ElevenLabs binding — one voice lookup carries a ready-made preview_url."""

from __future__ import annotations

import httpx

from playback.errors import NoSampleAvailable

from ..config import Settings
from ..models import VoiceDetails
from .base import VoiceProvider


class ElevenLabsProvider(VoiceProvider):
    @property
    def platform(self) -> str:
        return "ElevenLabs"

    def base_url(self, config: Settings) -> str:
        return config.elevenlabs_api_url.rstrip("/")

    def auth_headers(self, api_key: str) -> dict[str, str]:
        return {"xi-api-key": api_key}

    async def sample_url(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> str:
        data = await self._get_json(client, f"{base_url}/voices/{voice_id}", api_key)
        preview = data.get("preview_url")
        if not preview:
            raise NoSampleAvailable("No audio preview available for this ElevenLabs voice")
        return preview

    async def lookup(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> VoiceDetails:
        data = await self._get_json(client, f"{base_url}/voices/{voice_id}", api_key)
        labels = data.get("labels") or {}
        return VoiceDetails(
            provider_voice_id=data.get("voice_id") or voice_id,
            name=data.get("name") or voice_id,
            language=labels.get("accent") or labels.get("language") or "English",
            gender=labels.get("gender") or "",
            preview_url=data.get("preview_url") or "",
        )
