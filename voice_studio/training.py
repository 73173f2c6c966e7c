"""Training input — example scripts typed in or uploaded as text files."""

from __future__ import annotations

from pydantic import BaseModel

from playback.errors import InvalidRequest

MAX_SCRIPTS = 3


class TrainingScript(BaseModel):
    title: str = ""
    text: str = ""


class TrainingRequest(BaseModel):
    channel_name: str
    scripts: list[TrainingScript]
    model: str


def decode_upload(data: bytes) -> str:
    """Read an uploaded script file as text. Undecodable bytes are replaced."""
    if data.startswith(b"\xef\xbb\xbf"):
        data = data[3:]
    return data.decode("utf-8", errors="replace")


def build_training_request(channel_name: str, scripts: list[TrainingScript], model: str) -> TrainingRequest:
    channel_name = (channel_name or "").strip()
    if not channel_name:
        raise InvalidRequest("Channel name is required")
    if len(scripts) > MAX_SCRIPTS:
        raise InvalidRequest(f"At most {MAX_SCRIPTS} example scripts are accepted")
    if not any(s.text.strip() for s in scripts):
        raise InvalidRequest("Add at least one example script")
    return TrainingRequest(channel_name=channel_name, scripts=scripts, model=model)
