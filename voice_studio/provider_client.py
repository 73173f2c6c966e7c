"""External voice provider client — routes lookups to the right platform binding.

Resolution order for every call:
  1. platform -> registered provider (UnsupportedPlatform otherwise)
  2. platform -> stored API key (MissingCredentials otherwise)
  3. authenticated GET against the platform's configured API root;
     transport failures surface as ProviderError with no status code

There are no retries; every retry is a new user action.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from playback.errors import MissingCredentials, ProviderError, UnsupportedPlatform
from playback.voice_test import CredentialSource

from .config import Settings, settings
from .models import VoiceDetails
from .providers import get_provider
from .providers.base import VoiceProvider

log = logging.getLogger("providers")


class VoiceProviderClient:
    """Owns the httpx client used for all voice platform calls."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, config: Optional[Settings] = None) -> None:
        self._client = client
        self._cfg = config or settings

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._cfg.provider_timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _resolve(self, platform: str, credentials: CredentialSource) -> tuple[VoiceProvider, str]:
        provider = get_provider(platform)
        if provider is None:
            raise UnsupportedPlatform(platform)
        api_key = credentials.get_api_key(provider.platform)
        if not api_key:
            raise MissingCredentials(provider.platform)
        return provider, api_key

    async def resolve_sample_url(
        self, platform: str, provider_voice_id: str, credentials: CredentialSource
    ) -> str:
        """Return a playable sample URL for provider_voice_id on platform."""
        provider, api_key = self._resolve(platform, credentials)
        client = await self._get_client()
        try:
            url = await provider.sample_url(
                client, provider.base_url(self._cfg), provider_voice_id, api_key
            )
        except httpx.HTTPError as e:
            log.warning("%s sample lookup failed: %s", provider.platform, e)
            raise ProviderError(None, str(e) or type(e).__name__) from e
        log.info("%s sample for %s: %s", provider.platform, provider_voice_id, url[:120])
        return url

    async def lookup_voice(
        self, platform: str, provider_voice_id: str, credentials: CredentialSource
    ) -> VoiceDetails:
        """Fetch voice metadata to pre-fill the add-voice form."""
        provider, api_key = self._resolve(platform, credentials)
        client = await self._get_client()
        try:
            return await provider.lookup(
                client, provider.base_url(self._cfg), provider_voice_id, api_key
            )
        except httpx.HTTPError as e:
            log.warning("%s voice lookup failed: %s", provider.platform, e)
            raise ProviderError(None, str(e) or type(e).__name__) from e

    def auth_headers(self, platform: str, credentials: CredentialSource) -> dict[str, str]:
        """Auth headers for platform, or {} when unknown or no key is stored."""
        provider = get_provider(platform)
        if provider is None:
            return {}
        api_key = credentials.get_api_key(provider.platform)
        return provider.auth_headers(api_key) if api_key else {}

    async def download(self, url: str, headers: dict[str, str]) -> bytes:
        """GET url and return the body. Raises ProviderError on failure."""
        client = await self._get_client()
        try:
            resp = await client.get(
                url,
                headers={"Accept": "audio/mpeg, audio/*", **headers},
                timeout=self._cfg.download_timeout,
                follow_redirects=True,
            )
        except httpx.HTTPError as e:
            raise ProviderError(None, str(e) or type(e).__name__) from e
        if not resp.is_success:
            raise ProviderError(resp.status_code, resp.text[:300])
        return resp.content
