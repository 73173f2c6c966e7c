"""Local CRUD store — channels, voices and API credentials in one JSON file.

Every mutation rewrites the file (write to temp, then rename), which is
plenty for a single-operator studio with a few dozen records.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from playback.errors import InvalidRequest, RecordNotFound

from .models import ApiCredential, Channel, StoreData, VoiceRecord

log = logging.getLogger("store")


def _require(value: str, field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise InvalidRequest(f"{field} is required")
    return value


class LocalStore:
    """JSON-file backed store. Pass path=None for a purely in-memory store."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = Path(path) if path else None
        if self._path and self._path.exists():
            self._data = StoreData.model_validate_json(self._path.read_text())
            log.info(
                "Loaded store %s: %d channels, %d voices, %d credentials",
                self._path, len(self._data.channels), len(self._data.voices),
                len(self._data.credentials),
            )
        else:
            self._data = StoreData()

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(self._data.model_dump_json(indent=2))
        tmp.replace(self._path)

    def _next_id(self) -> int:
        nid = self._data.next_id
        self._data.next_id += 1
        return nid

    # ── Channels ──────────────────────────────────────────────

    def list_channels(self) -> list[Channel]:
        return sorted(self._data.channels, key=lambda c: (c.created_at, c.id), reverse=True)

    def get_channel(self, channel_id: int) -> Channel:
        for channel in self._data.channels:
            if channel.id == channel_id:
                return channel
        raise RecordNotFound(f"Channel {channel_id} not found")

    def find_channel(self, name: str) -> Optional[Channel]:
        for channel in self._data.channels:
            if channel.name == name:
                return channel
        return None

    def add_channel(
        self,
        name: str,
        script_prompt: str = "",
        title_prompt: str = "",
        preferred_voice_id: Optional[int] = None,
    ) -> Channel:
        name = _require(name, "Channel name")
        if preferred_voice_id is not None:
            self.get_voice(preferred_voice_id)
        channel = Channel(
            id=self._next_id(),
            name=name,
            script_prompt=script_prompt,
            title_prompt=title_prompt,
            preferred_voice_id=preferred_voice_id,
        )
        self._data.channels.append(channel)
        self._save()
        log.info("Channel added: %s (id=%d)", name, channel.id)
        return channel

    def update_prompts(self, name: str, title_prompt: str, script_prompt: str) -> Channel:
        """Store reviewed prompts for a channel, creating it if needed."""
        channel = self.find_channel(_require(name, "Channel name"))
        if channel is None:
            return self.add_channel(name, script_prompt=script_prompt, title_prompt=title_prompt)
        channel.title_prompt = title_prompt
        channel.script_prompt = script_prompt
        self._save()
        return channel

    def record_script_length(self, channel_id: int, chars: int) -> None:
        channel = self.get_channel(channel_id)
        channel.avg_chars = chars
        self._save()

    def delete_channel(self, channel_id: int) -> Channel:
        channel = self.get_channel(channel_id)
        self._data.channels.remove(channel)
        self._save()
        return channel

    # ── Voices ────────────────────────────────────────────────

    def list_voices(self, platform: Optional[str] = None) -> list[VoiceRecord]:
        voices = self._data.voices
        if platform:
            voices = [v for v in voices if v.platform.lower() == platform.lower()]
        return sorted(voices, key=lambda v: v.display_name.lower())

    def get_voice(self, voice_id: int) -> VoiceRecord:
        for voice in self._data.voices:
            if voice.id == voice_id:
                return voice
        raise RecordNotFound(f"Voice {voice_id} not found")

    def add_voice(
        self,
        display_name: str,
        provider_voice_id: str,
        platform: str,
        language: Optional[str] = None,
        gender: Optional[str] = None,
        preview_url: Optional[str] = None,
        audio_file_path: Optional[str] = None,
    ) -> VoiceRecord:
        voice = VoiceRecord(
            id=self._next_id(),
            display_name=_require(display_name, "Voice name"),
            provider_voice_id=_require(provider_voice_id, "Voice ID"),
            platform=_require(platform, "Platform"),
            language=language or None,
            gender=gender or None,
            preview_url=preview_url or None,
            audio_file_path=audio_file_path,
        )
        self._data.voices.append(voice)
        self._save()
        log.info("Voice added: %s [%s] (id=%d)", voice.display_name, voice.platform, voice.id)
        return voice

    def delete_voice(self, voice_id: int) -> VoiceRecord:
        voice = self.get_voice(voice_id)
        self._data.voices.remove(voice)
        for channel in self._data.channels:
            if channel.preferred_voice_id == voice_id:
                channel.preferred_voice_id = None
        self._save()
        return voice

    def voice_counts(self) -> dict[str, int]:
        counts = {"total": len(self._data.voices)}
        for voice in self._data.voices:
            counts[voice.platform] = counts.get(voice.platform, 0) + 1
        return counts

    # ── Credentials ───────────────────────────────────────────

    def list_credentials(self) -> list[ApiCredential]:
        return sorted(self._data.credentials, key=lambda c: (c.created_at, c.id), reverse=True)

    def add_credential(self, platform: str, api_key: str) -> ApiCredential:
        """Store the key for platform, replacing any previous one."""
        platform = _require(platform, "Platform")
        api_key = _require(api_key, "API key")
        self._data.credentials = [
            c for c in self._data.credentials if c.platform.lower() != platform.lower()
        ]
        cred = ApiCredential(id=self._next_id(), platform=platform, api_key=api_key)
        self._data.credentials.append(cred)
        self._save()
        log.info("API key stored for %s", platform)
        return cred

    def delete_credential(self, credential_id: int) -> ApiCredential:
        for cred in self._data.credentials:
            if cred.id == credential_id:
                self._data.credentials.remove(cred)
                self._save()
                return cred
        raise RecordNotFound(f"Credential {credential_id} not found")

    def get_api_key(self, platform: str) -> Optional[str]:
        for cred in self._data.credentials:
            if cred.platform.lower() == platform.lower():
                return cred.api_key
        return None
