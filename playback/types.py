"""Shared data types for the playback core."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .handle import AudioHandle


@dataclass(frozen=True)
class PlaybackState:
    """The single active playback record."""
    identifier: str
    handle: AudioHandle


@dataclass(frozen=True)
class PlaybackEvent:
    """Notification published by the controller.

    kind is one of: started, stopped, ended, error.
    """
    kind: str
    identifier: str
    detail: str = ""


class VoiceTestOutcome(str, Enum):
    PLAYING = "playing"      # sample resolved and playback started
    STOPPED = "stopped"      # re-click on a playing test
    PENDING = "pending"      # duplicate request while a lookup is in flight
    DISCARDED = "discarded"  # lookup finished after a reset
