"""Base class for voice platform bindings.

Each provider declares its platform name, auth header and which Settings
field holds its API root, then implements async sample_url() and lookup()
against the platform's REST API. HTTP plumbing (status checks, JSON
decoding) lives here so the bindings only deal with payload shapes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

import httpx

from playback.errors import ProviderError

from ..models import VoiceDetails

if TYPE_CHECKING:
    from ..config import Settings


class VoiceProvider(ABC):
    """Abstract binding for one voice-cloning platform."""

    @property
    @abstractmethod
    def platform(self) -> str:
        """Platform name as stored on voice records (e.g. 'ElevenLabs')."""

    @abstractmethod
    def base_url(self, config: Settings) -> str:
        """API root for this platform, read from config."""

    @abstractmethod
    def auth_headers(self, api_key: str) -> dict[str, str]:
        """Headers that authenticate a request to this platform."""

    @abstractmethod
    async def sample_url(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> str:
        """Return a playable sample URL. Raises NoSampleAvailable when none exists."""

    @abstractmethod
    async def lookup(
        self, client: httpx.AsyncClient, base_url: str, voice_id: str, api_key: str
    ) -> VoiceDetails:
        """Fetch display metadata for a voice."""

    async def _get_json(
        self, client: httpx.AsyncClient, url: str, api_key: str
    ) -> dict[str, Any]:
        headers = {"Accept": "application/json", **self.auth_headers(api_key)}
        resp = await client.get(url, headers=headers)
        if not resp.is_success:
            raise ProviderError(resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(resp.status_code, resp.text, reason=f"{self.platform} returned invalid JSON") from e
        if not isinstance(data, dict):
            raise ProviderError(resp.status_code, resp.text, reason=f"{self.platform} returned an unexpected payload")
        return data
