"""Records kept by the local store and values returned by provider lookups."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Channel(BaseModel):
    id: int
    name: str
    script_prompt: str = ""
    title_prompt: str = ""
    preferred_voice_id: Optional[int] = None
    avg_chars: Optional[int] = None
    created_at: datetime = Field(default_factory=_now)


class VoiceRecord(BaseModel):
    id: int
    display_name: str
    provider_voice_id: str
    platform: str
    language: Optional[str] = None
    gender: Optional[str] = None
    preview_url: Optional[str] = None
    audio_file_path: Optional[str] = None
    created_at: datetime = Field(default_factory=_now)


class ApiCredential(BaseModel):
    id: int
    platform: str
    api_key: str
    created_at: datetime = Field(default_factory=_now)

    def masked(self) -> dict:
        key = self.api_key
        hint = f"{key[:4]}…{key[-4:]}" if len(key) > 8 else "…"
        return {"id": self.id, "platform": self.platform, "api_key": hint,
                "created_at": self.created_at.isoformat()}


class VoiceDetails(BaseModel):
    """Voice metadata fetched from a provider to pre-fill the add-voice form."""
    provider_voice_id: str
    name: str
    language: str = ""
    gender: str = ""
    preview_url: str = ""


class StoreData(BaseModel):
    channels: list[Channel] = []
    voices: list[VoiceRecord] = []
    credentials: list[ApiCredential] = []
    next_id: int = 1
