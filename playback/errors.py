"""Error taxonomy shared by the playback core, provider clients and gateway.

Every error carries a human-readable ``reason`` and the HTTP status the
gateway answers with. None of them are fatal to the process.
"""

from __future__ import annotations


class StudioError(Exception):
    http_status = 500

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason)
        self.reason = reason or self.__class__.__name__


class VoiceTestFailed(StudioError):
    """A voice sample could not be resolved."""
    http_status = 502


class UnsupportedPlatform(VoiceTestFailed):
    http_status = 400

    def __init__(self, platform: str) -> None:
        super().__init__(f"Unsupported voice platform: {platform!r}")
        self.platform = platform


class MissingCredentials(VoiceTestFailed):
    http_status = 409

    def __init__(self, platform: str) -> None:
        super().__init__(f"No API key stored for {platform}")
        self.platform = platform


class NoSampleAvailable(VoiceTestFailed):
    http_status = 404


class ProviderError(VoiceTestFailed):
    """Non-2xx answer or transport failure from an external service.

    status_code is None when the request never got a response.
    """

    def __init__(self, status_code: int | None, body: str = "", reason: str = "") -> None:
        if not reason:
            if status_code is None:
                reason = f"Provider unreachable: {body}"
            else:
                reason = f"Provider error {status_code}: {body[:300]}"
        super().__init__(reason)
        self.status_code = status_code
        self.body = body


class WebhookError(ProviderError):
    """Generation webhook failed or returned an unusable payload."""


class PlaybackError(StudioError):
    """Media failed to start or errored during playback."""


class RecordNotFound(StudioError):
    http_status = 404


class InvalidRequest(StudioError):
    http_status = 400
