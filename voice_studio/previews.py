"""Preview mirroring — keep a local copy of each voice's sample audio.

Provider preview URLs are often signed and expire, so when a voice is saved
we fetch a fresh sample URL, download the audio and keep it under
preview_dir. Mirroring is best effort: any failure leaves the voice with
its original URL and no local file.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from playback.errors import StudioError
from playback.voice_test import CredentialSource

from .provider_client import VoiceProviderClient

log = logging.getLogger("previews")

_UNSAFE_RE = re.compile(r"[^a-zA-Z0-9]")


def preview_filename(voice_name: str, provider_voice_id: str, now: Optional[datetime] = None) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return f"{_UNSAFE_RE.sub('_', voice_name)}_{_UNSAFE_RE.sub('_', provider_voice_id)}_{stamp}.mp3"


class PreviewMirror:
    """Downloads voice previews into a local directory."""

    def __init__(self, client: VoiceProviderClient, credentials: CredentialSource, directory: Path) -> None:
        self._client = client
        self._credentials = credentials
        self._dir = Path(directory)

    @property
    def directory(self) -> Path:
        return self._dir

    async def mirror(
        self, platform: str, provider_voice_id: str, voice_name: str, preview_url: str
    ) -> tuple[str, Optional[str]]:
        """Return (preview_url, local file name or None)."""
        url = preview_url
        try:
            url = await self._client.resolve_sample_url(platform, provider_voice_id, self._credentials)
        except StudioError as e:
            log.warning("Could not refresh preview URL for %s, using submitted one: %s",
                        provider_voice_id, e.reason)

        try:
            headers = self._client.auth_headers(platform, self._credentials)
            audio = await self._client.download(url, headers)
        except StudioError as e:
            log.warning("Preview download failed for %s: %s", provider_voice_id, e.reason)
            return url, None

        if not audio:
            log.warning("Preview download for %s returned an empty body", provider_voice_id)
            return url, None

        self._dir.mkdir(parents=True, exist_ok=True)
        name = preview_filename(voice_name, provider_voice_id)
        (self._dir / name).write_bytes(audio)
        log.info("Preview mirrored: %s (%d bytes)", name, len(audio))
        return url, name

    def remove(self, file_name: Optional[str]) -> None:
        if not file_name:
            return
        path = self._dir / Path(file_name).name
        try:
            path.unlink()
            log.info("Preview removed: %s", path.name)
        except FileNotFoundError:
            log.warning("Preview file already gone: %s", path.name)
        except OSError as e:
            log.warning("Could not remove preview %s: %s", path.name, e)
