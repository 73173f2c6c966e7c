"""Settings for the voice studio backend.

Uses pydantic-settings to load from the project's .env file,
with type validation and defaults suited to a single local operator.
"""

from pathlib import Path

from pydantic_settings import BaseSettings

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    # Gateway
    host: str = "0.0.0.0"
    port: int = 8080
    auth_token: str = "devtoken"

    # Local data
    data_file: Path = PROJECT_ROOT / "data" / "studio.json"
    preview_dir: Path = PROJECT_ROOT / "data" / "previews"
    mirror_previews: bool = True

    # Voice providers
    elevenlabs_api_url: str = "https://api.elevenlabs.io/v1"
    fish_audio_api_url: str = "https://api.fish.audio"
    provider_timeout: float = 15.0
    download_timeout: float = 30.0

    # Generation webhooks (empty = not configured)
    script_webhook_url: str = ""
    audio_webhook_url: str = ""
    training_webhook_url: str = ""
    prompt_update_webhook_url: str = ""
    webhook_timeout: float = 180.0

    # Generation defaults
    default_model: str = "GPT-5"
    default_language: str = "pt-BR"

    # Local playback
    player_command: str = "ffplay -nodisp -autoexit -loglevel error"
    player_start_grace: float = 0.3

    model_config = {
        "env_file": str(PROJECT_ROOT / ".env"),
        "extra": "ignore",
    }


settings = Settings()
