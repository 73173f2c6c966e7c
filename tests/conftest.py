import asyncio
from typing import Callable, Optional

import httpx
import pytest

from playback.controller import PlaybackController
from playback.errors import PlaybackError
from playback.handle import AudioHandle
from voice_studio.config import Settings
from voice_studio.store import LocalStore


class FakeHandle(AudioHandle):
    """In-memory AudioHandle that appends (event, identifier) to a shared log."""

    def __init__(self, identifier: str, source_url: str, log: list, fail_start: bool = False,
                 start_delay: float = 0.0):
        super().__init__(identifier, source_url)
        self.log = log
        self.fail_start = fail_start
        self.start_delay = start_delay
        self.started = False
        self.released = False
        self.position = 0.0
        self._ended = asyncio.Event()
        self._error: Optional[str] = None

    async def start(self) -> None:
        if self.start_delay:
            await asyncio.sleep(self.start_delay)
        if self.fail_start:
            self.log.append(("start-failed", self.identifier))
            raise PlaybackError("cannot decode media")
        self.started = True
        self.position = 0.5
        self.log.append(("start", self.identifier))

    async def stop(self) -> None:
        if self.started:
            self.log.append(("stop", self.identifier))
        self.started = False
        self.released = True
        self.position = 0.0

    async def wait_ended(self) -> Optional[str]:
        await self._ended.wait()
        return self._error

    def finish(self, error: Optional[str] = None) -> None:
        """Simulate the media reaching its end (or failing mid-playback)."""
        self._error = error
        self._ended.set()


class FakeFactory:
    def __init__(self):
        self.log: list = []
        self.handles: list[FakeHandle] = []
        self.fail_urls: set[str] = set()
        self.start_delay = 0.0

    def __call__(self, identifier: str, source_url: str) -> FakeHandle:
        handle = FakeHandle(identifier, source_url, self.log,
                            fail_start=source_url in self.fail_urls,
                            start_delay=self.start_delay)
        self.handles.append(handle)
        return handle

    def active(self) -> list[FakeHandle]:
        return [h for h in self.handles if h.started]

    def max_concurrent(self) -> int:
        """Replay the log and return the peak number of started handles."""
        running: set[str] = set()
        peak = 0
        for event, identifier in self.log:
            if event == "start":
                running.add(identifier)
            elif event == "stop":
                running.discard(identifier)
            peak = max(peak, len(running))
        return peak


async def wait_until(predicate: Callable[[], bool], timeout: float = 1.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.001)


@pytest.fixture()
def factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture()
def controller(factory: FakeFactory) -> PlaybackController:
    return PlaybackController(factory)


@pytest.fixture()
def settle():
    return wait_until


@pytest.fixture()
def store() -> LocalStore:
    s = LocalStore()
    s.add_credential("ElevenLabs", "el-secret-key")
    s.add_credential("Fish-Audio", "fish-secret-key")
    return s


@pytest.fixture()
def settings_for(tmp_path):
    def make(**overrides) -> Settings:
        values = {
            "data_file": tmp_path / "studio.json",
            "preview_dir": tmp_path / "previews",
            "auth_token": "test-token",
            "script_webhook_url": "https://hooks.test/script",
            "audio_webhook_url": "https://hooks.test/audio",
            "training_webhook_url": "https://hooks.test/training",
            "prompt_update_webhook_url": "https://hooks.test/prompts",
        }
        values.update(overrides)
        return Settings(**values)
    return make


class Recorder:
    """httpx.MockTransport handler that records requests and routes by host+path."""

    def __init__(self, routes: Optional[dict] = None):
        self.routes = routes or {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(f"{request.url.host}{request.url.path}")
        if route is None:
            return httpx.Response(404, json={"error": "no route"})
        if callable(route):
            return route(request)
        return route

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture()
def recorder() -> Recorder:
    return Recorder()
