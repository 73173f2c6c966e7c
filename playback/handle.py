"""Audio handles — one owned, startable/stoppable media resource per URL.

The controller only talks to the AudioHandle interface. The concrete
SubprocessAudioHandle streams the URL through an external player binary
(ffplay by default), which is what a headless studio box has available.
"""

from __future__ import annotations

import asyncio
import logging
import shlex
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Optional

from .errors import PlaybackError

log = logging.getLogger("playback.handle")

DEFAULT_PLAYER = "ffplay -nodisp -autoexit -loglevel error"
STOP_TIMEOUT = 2.0
STDERR_CHUNK = 4096
STDERR_KEEP_CHUNKS = 4


class AudioHandle(ABC):
    """Abstract playable-media resource bound to one identifier and URL."""

    def __init__(self, identifier: str, source_url: str):
        self.identifier = identifier
        self.source_url = source_url

    @abstractmethod
    async def start(self) -> None:
        """Begin playback. Raises PlaybackError if the media cannot start."""

    @abstractmethod
    async def stop(self) -> None:
        """Stop, rewind and release. Safe to call more than once."""

    @abstractmethod
    async def wait_ended(self) -> Optional[str]:
        """Wait for end of media.

        Returns None on a natural end, or an error description when the
        media failed mid-playback.
        """


HandleFactory = Callable[[str, str], AudioHandle]


class SubprocessAudioHandle(AudioHandle):
    """Plays a URL by spawning a player process.

    Start succeeds once the process has survived the start grace period
    (or exited cleanly inside it, for very short clips). The player's
    stderr is drained while it runs; only the tail is kept for error
    reports.
    """

    def __init__(
        self,
        identifier: str,
        source_url: str,
        command: str = DEFAULT_PLAYER,
        start_grace: float = 0.3,
    ):
        super().__init__(identifier, source_url)
        self._argv = shlex.split(command) + [source_url]
        self._start_grace = start_grace
        self._proc: Optional[asyncio.subprocess.Process] = None
        self._stderr: deque[bytes] = deque(maxlen=STDERR_KEEP_CHUNKS)
        self._stderr_task: Optional[asyncio.Task] = None
        self._stopped = False

    async def start(self) -> None:
        try:
            self._proc = await asyncio.create_subprocess_exec(
                *self._argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise PlaybackError(f"Cannot launch player {self._argv[0]!r}: {e}") from e
        self._stderr_task = asyncio.create_task(self._drain_stderr(self._proc.stderr))

        try:
            code = await asyncio.wait_for(self._proc.wait(), timeout=self._start_grace)
        except asyncio.TimeoutError:
            log.debug("Player pid=%d running for %s", self._proc.pid, self.identifier)
            return

        if code != 0 and not self._stopped:
            raise PlaybackError(f"Player exited with code {code}: {await self._stderr_tail()}")

    async def stop(self) -> None:
        self._stopped = True
        proc = self._proc
        if proc is None or proc.returncode is not None:
            return
        proc.terminate()
        try:
            await asyncio.wait_for(proc.wait(), timeout=STOP_TIMEOUT)
        except asyncio.TimeoutError:
            log.warning("Player pid=%d ignored SIGTERM, killing", proc.pid)
            proc.kill()
            await proc.wait()

    async def wait_ended(self) -> Optional[str]:
        if self._proc is None:
            return None
        code = await self._proc.wait()
        if code == 0 or self._stopped:
            return None
        return f"Player exited with code {code}: {await self._stderr_tail()}"

    async def _drain_stderr(self, stream: Optional[asyncio.StreamReader]) -> None:
        if stream is None:
            return
        while True:
            chunk = await stream.read(STDERR_CHUNK)
            if not chunk:
                return
            self._stderr.append(chunk)

    async def _stderr_tail(self) -> str:
        if self._stderr_task is not None:
            try:
                await asyncio.wait_for(asyncio.shield(self._stderr_task), timeout=STOP_TIMEOUT)
            except asyncio.TimeoutError:
                log.debug("Player stderr still open for %s", self.identifier)
        data = b"".join(self._stderr)
        return data.decode("utf-8", errors="replace").strip()[-300:]


def subprocess_handle_factory(command: str = DEFAULT_PLAYER, start_grace: float = 0.3) -> HandleFactory:
    """Factory producing SubprocessAudioHandle instances with fixed settings."""

    def factory(identifier: str, source_url: str) -> AudioHandle:
        return SubprocessAudioHandle(identifier, source_url, command, start_grace)

    return factory
