"""Provider registry — explicit imports, keyed by lower-cased platform name.

No auto-discovery. Each binding is imported and registered explicitly so
the set of supported platforms is easy to read.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .base import VoiceProvider

# Global registry: platform.lower() -> VoiceProvider instance
PROVIDER_REGISTRY: dict[str, VoiceProvider] = {}


def register_provider(provider: VoiceProvider) -> VoiceProvider:
    PROVIDER_REGISTRY[provider.platform.lower()] = provider
    return provider


def get_provider(platform: str) -> Optional[VoiceProvider]:
    """Look up a provider by platform name (case-insensitive)."""
    return PROVIDER_REGISTRY.get((platform or "").strip().lower())


def platform_names() -> list[str]:
    return [p.platform for p in PROVIDER_REGISTRY.values()]


# ── Explicit registration ─────────────────────────────────────

from .elevenlabs import ElevenLabsProvider
from .fish_audio import FishAudioProvider

register_provider(ElevenLabsProvider())
register_provider(FishAudioProvider())
