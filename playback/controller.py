"""Playback controller — mutual exclusion over audio output.

Owns at most one active AudioHandle for the whole process:
  1. play() retires whatever is active (stop + release) before starting
  2. the new handle is recorded only once its start succeeded
  3. a watcher task clears the record when the media ends on its own

play() calls are serialized, so two overlapping requests hand off strictly
(the old handle's stop completes before the new handle's start) and the
last request wins.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from .errors import PlaybackError
from .handle import AudioHandle, HandleFactory, subprocess_handle_factory
from .types import PlaybackEvent, PlaybackState

log = logging.getLogger("playback")

Listener = Callable[[PlaybackEvent], None]


class PlaybackController:
    """Process-wide single-slot audio player."""

    def __init__(self, handle_factory: Optional[HandleFactory] = None) -> None:
        self._factory = handle_factory or subprocess_handle_factory()
        self._state: Optional[PlaybackState] = None
        self._starting: Optional[AudioHandle] = None
        self._watcher: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()
        self._listeners: list[Listener] = []

    @property
    def state(self) -> Optional[PlaybackState]:
        return self._state

    @property
    def current_identifier(self) -> Optional[str]:
        return self._state.identifier if self._state else None

    def is_playing(self, identifier: str) -> bool:
        return self._state is not None and self._state.identifier == identifier

    # ── Events ────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, kind: str, identifier: str, detail: str = "") -> None:
        event = PlaybackEvent(kind=kind, identifier=identifier, detail=detail)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log.exception("Playback listener failed on %s", kind)

    # ── Commands ──────────────────────────────────────────────

    async def play(self, identifier: str, source_url: str) -> bool:
        """Stop anything active, then start source_url under identifier.

        Returns False if a concurrent stop() retired the handle before its
        start finished. Raises PlaybackError when the media cannot start.
        """
        async with self._lock:
            await self._retire()

            handle = self._factory(identifier, source_url)
            self._starting = handle
            log.info("Starting %s: %s", identifier, source_url[:120])
            try:
                await handle.start()
            except PlaybackError as e:
                superseded = self._starting is not handle
                self._starting = None
                await handle.stop()
                if superseded:
                    return False
                log.warning("Playback failed to start for %s: %s", identifier, e.reason)
                self._emit("error", identifier, e.reason)
                raise

            if self._starting is not handle:
                # stop() ran while we were starting
                await handle.stop()
                return False

            self._starting = None
            self._state = PlaybackState(identifier=identifier, handle=handle)
            self._watcher = asyncio.create_task(self._watch(handle))
            self._emit("started", identifier)
            return True

    async def stop(self) -> None:
        """Stop the active handle (and one still starting). No-op when idle."""
        starting, self._starting = self._starting, None
        if starting is not None:
            await starting.stop()
        await self._retire()

    async def toggle(self, identifier: str, source_url: str) -> bool:
        """Stop identifier if it is playing, otherwise play it.

        Returns True when playback is running afterwards.
        """
        if self.is_playing(identifier):
            await self.stop()
            return False
        return await self.play(identifier, source_url)

    # ── Internals ─────────────────────────────────────────────

    async def _retire(self) -> None:
        state, self._state = self._state, None
        if state is None:
            return
        if self._watcher is not None:
            self._watcher.cancel()
            self._watcher = None
        await state.handle.stop()
        log.info("Stopped %s", state.identifier)
        self._emit("stopped", state.identifier)

    async def _watch(self, handle: AudioHandle) -> None:
        """Clear the slot when handle reaches end of media on its own."""
        error = await handle.wait_ended()
        if self._state is None or self._state.handle is not handle:
            return
        self._state = None
        self._watcher = None
        await handle.stop()
        if error:
            log.warning("Playback error for %s: %s", handle.identifier, error)
            self._emit("error", handle.identifier, error)
        else:
            log.info("Finished %s", handle.identifier)
            self._emit("ended", handle.identifier)
