"""Generation webhooks — script, audio and channel-training workflows.

Each call is a single JSON POST that waits for the workflow to finish.
Workflows answer either with an object or with a one-element list wrapping
it; both shapes are accepted everywhere.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from playback.errors import InvalidRequest, WebhookError

from .config import Settings, settings
from .models import Channel
from .training import TrainingRequest

log = logging.getLogger("webhooks")

AUDIO_URL_KEYS = ("response", "url", "audio_url")
MISSING_TITLE_PROMPT = "Title prompt not found"
MISSING_SCRIPT_PROMPT = "Script prompt not found"


@dataclass
class ScriptResult:
    output: str
    cont_chars: Optional[int] = None


@dataclass
class ChannelPrompts:
    channel_name: str
    title_prompt: str
    script_prompt: str


def _unwrap(payload: Any) -> Any:
    """Workflows often wrap their answer in a list; take the first item."""
    if isinstance(payload, list):
        return payload[0] if payload else None
    return payload


def extract_audio_url(text: str) -> str:
    """Pull the audio URL out of an audio-workflow response body."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        raise WebhookError(None, text[:300], reason="Audio webhook returned invalid JSON") from e
    item = _unwrap(payload)
    if isinstance(item, dict):
        for key in AUDIO_URL_KEYS:
            value = item.get(key)
            if isinstance(value, str) and value:
                return value
    raise WebhookError(None, text[:300], reason="Audio URL not found in webhook response")


class WebhookClient:
    """Posts to the configured generation workflows."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, config: Optional[Settings] = None) -> None:
        self._client = client
        self._cfg = config or settings

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._cfg.webhook_timeout)
        return self._client

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _post(self, name: str, url: str, payload: dict) -> httpx.Response:
        if not url:
            raise InvalidRequest(f"The {name} webhook is not configured")
        client = await self._get_client()
        log.info("POST %s webhook (%d fields)", name, len(payload))
        try:
            resp = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            log.error("%s webhook unreachable: %s", name, e)
            raise WebhookError(None, str(e) or type(e).__name__) from e
        log.debug("%s webhook answered %d", name, resp.status_code)
        if not resp.is_success:
            raise WebhookError(resp.status_code, resp.text)
        return resp

    @staticmethod
    def _json(name: str, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise WebhookError(resp.status_code, resp.text[:300],
                               reason=f"The {name} webhook returned invalid JSON") from e

    async def generate_script(
        self, channel: Channel, idea: str, model: str = "", language: str = ""
    ) -> ScriptResult:
        payload = {
            "channel_id": channel.id,
            "channel_name": channel.name,
            "script_prompt": channel.script_prompt,
            "idea": idea,
            "model": model or self._cfg.default_model,
            "language": language or self._cfg.default_language,
        }
        resp = await self._post("script", self._cfg.script_webhook_url, payload)
        item = _unwrap(self._json("script", resp))
        output = item.get("output") if isinstance(item, dict) else None
        if not isinstance(output, str) or not output.strip():
            raise WebhookError(resp.status_code, resp.text[:300],
                               reason="Script webhook returned no output")
        chars = item.get("cont_chars")
        return ScriptResult(output=output, cont_chars=int(chars) if isinstance(chars, (int, float)) else None)

    async def generate_audio(
        self, text: str, provider_voice_id: str, platform: str, speed: float = 1.0
    ) -> str:
        if not text.strip():
            raise InvalidRequest("Generate a script before requesting audio")
        payload = {
            "text": text,
            "voice_id": provider_voice_id,
            "platform": platform,
            "speed": speed,
        }
        resp = await self._post("audio", self._cfg.audio_webhook_url, payload)
        url = extract_audio_url(resp.text)
        log.info("Audio generated: %s", url[:120])
        return url

    async def train_channel(self, request: TrainingRequest) -> ChannelPrompts:
        payload = {
            "channel_name": request.channel_name,
            "model": request.model,
            "scripts": [s.model_dump() for s in request.scripts],
        }
        resp = await self._post("training", self._cfg.training_webhook_url, payload)
        item = _unwrap(self._json("training", resp))
        if not isinstance(item, dict):
            item = {}
        return ChannelPrompts(
            channel_name=request.channel_name,
            title_prompt=item.get("prompt_titulo") or item.get("title_prompt") or MISSING_TITLE_PROMPT,
            script_prompt=item.get("prompt_roteiro") or item.get("script_prompt") or MISSING_SCRIPT_PROMPT,
        )

    async def update_prompts(self, channel_name: str, title_prompt: str, script_prompt: str) -> None:
        payload = {
            "channel_name": channel_name,
            "title_prompt": title_prompt,
            "script_prompt": script_prompt,
        }
        await self._post("prompt update", self._cfg.prompt_update_webhook_url, payload)
