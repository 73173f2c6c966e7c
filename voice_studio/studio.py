"""Studio — the one object that owns every long-lived service.

Created once per process (by the gateway or the REPL) and handed to every
consumer. The playback controller inside it is the single audio slot for
the whole process; nothing else creates one.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from playback.controller import PlaybackController
from playback.handle import HandleFactory, subprocess_handle_factory
from playback.types import PlaybackEvent
from playback.voice_test import VoiceTester

from .config import Settings, settings
from .previews import PreviewMirror
from .provider_client import VoiceProviderClient
from .store import LocalStore
from .webhooks import WebhookClient

log = logging.getLogger("studio")


class Studio:
    def __init__(
        self,
        config: Optional[Settings] = None,
        store: Optional[LocalStore] = None,
        handle_factory: Optional[HandleFactory] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or settings
        self.store = store or LocalStore(self.config.data_file)
        self.providers = VoiceProviderClient(http_client, self.config)
        self.webhooks = WebhookClient(http_client, self.config)
        self.controller = PlaybackController(
            handle_factory
            or subprocess_handle_factory(self.config.player_command, self.config.player_start_grace)
        )
        self.tester = VoiceTester(self.controller, self.providers, self.store)
        self.previews = PreviewMirror(self.providers, self.store, self.config.preview_dir)
        self.last_playback_error: str = ""
        self.controller.subscribe(self._on_playback_event)

    def _on_playback_event(self, event: PlaybackEvent) -> None:
        if event.kind == "error":
            self.last_playback_error = event.detail
        elif event.kind == "started":
            self.last_playback_error = ""

    def playback_status(self) -> dict:
        return {
            "playing": self.controller.current_identifier,
            "pending": sorted(self.tester.pending),
            "last_error": self.last_playback_error or None,
        }

    async def close(self) -> None:
        await self.tester.reset()
        await self.providers.close()
        await self.webhooks.close()
        log.info("Studio closed")
