"""Gateway server — JSON API for the studio dashboard."""

import logging
from pathlib import Path
from typing import Any, Optional

from aiohttp import web
from dotenv import load_dotenv
from pydantic import ValidationError

load_dotenv()  # Must be before voice_studio imports so settings see .env vars

from playback.errors import InvalidRequest, StudioError, UnsupportedPlatform
from playback.voice_test import GENERATED_AUDIO_ID, PREVIEW_PREFIX, TEST_PREFIX, make_identifier
from voice_studio.config import settings
from voice_studio.providers import get_provider, platform_names
from voice_studio.studio import Studio
from voice_studio.training import TrainingScript, build_training_request, decode_upload

log = logging.getLogger("gateway")

STUDIO_KEY = web.AppKey("studio", Studio)

PUBLIC_PATHS = {"/", "/api/health"}
CONTEXT_PREFIXES = {"test": TEST_PREFIX, "preview": PREVIEW_PREFIX}


# ── Helpers ───────────────────────────────────────────────────

def _studio(request: web.Request) -> Studio:
    return request.app[STUDIO_KEY]


async def _body(request: web.Request) -> dict:
    if not request.can_read_body:
        return {}
    try:
        data = await request.json()
    except ValueError as e:
        raise InvalidRequest("Request body must be JSON") from e
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return data


def _int(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequest(f"{field} must be an integer") from None


def _dump(model) -> dict:
    return model.model_dump(mode="json")


# ── Middlewares ───────────────────────────────────────────────

@web.middleware
async def error_middleware(request: web.Request, handler):
    try:
        return await handler(request)
    except StudioError as e:
        log.info("%s %s -> %d %s", request.method, request.path, e.http_status, e.reason)
        return web.json_response({"error": e.reason}, status=e.http_status)


@web.middleware
async def auth_middleware(request: web.Request, handler):
    if request.path in PUBLIC_PATHS or request.path.startswith("/previews/"):
        return await handler(request)
    token = _studio(request).config.auth_token
    header = request.headers.get("Authorization", "")
    if header != f"Bearer {token}":
        return web.json_response({"error": "Bad token"}, status=401)
    return await handler(request)


# ── Status ────────────────────────────────────────────────────

async def handle_index(request: web.Request) -> web.Response:
    return web.json_response({"service": "voice-studio", "platforms": platform_names()})


async def handle_health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


async def handle_dashboard(request: web.Request) -> web.Response:
    studio = _studio(request)
    return web.json_response({
        "channels": len(studio.store.list_channels()),
        "voices": studio.store.voice_counts(),
        "credentials": [c.platform for c in studio.store.list_credentials()],
        "playback": studio.playback_status(),
    })


# ── Channels ──────────────────────────────────────────────────

async def handle_list_channels(request: web.Request) -> web.Response:
    channels = _studio(request).store.list_channels()
    return web.json_response([_dump(c) for c in channels])


async def handle_add_channel(request: web.Request) -> web.Response:
    body = await _body(request)
    voice = body.get("preferred_voice_id")
    channel = _studio(request).store.add_channel(
        body.get("name", ""),
        script_prompt=body.get("script_prompt", ""),
        title_prompt=body.get("title_prompt", ""),
        preferred_voice_id=_int(voice, "preferred_voice_id") if voice is not None else None,
    )
    return web.json_response(_dump(channel), status=201)


async def handle_delete_channel(request: web.Request) -> web.Response:
    channel_id = _int(request.match_info["channel_id"], "channel_id")
    _studio(request).store.delete_channel(channel_id)
    return web.json_response({"deleted": channel_id})


# ── Voices ────────────────────────────────────────────────────

async def handle_list_voices(request: web.Request) -> web.Response:
    voices = _studio(request).store.list_voices(request.query.get("platform"))
    return web.json_response([_dump(v) for v in voices])


async def handle_lookup_voice(request: web.Request) -> web.Response:
    body = await _body(request)
    studio = _studio(request)
    provider_voice_id = (body.get("provider_voice_id") or "").strip()
    if not provider_voice_id:
        raise InvalidRequest("provider_voice_id is required")
    details = await studio.providers.lookup_voice(
        body.get("platform", ""), provider_voice_id, studio.store
    )
    return web.json_response(_dump(details))


async def handle_add_voice(request: web.Request) -> web.Response:
    body = await _body(request)
    studio = _studio(request)
    name = (body.get("display_name") or "").strip()
    provider_voice_id = (body.get("provider_voice_id") or "").strip()
    platform = (body.get("platform") or "").strip()
    if not name or not provider_voice_id or not platform:
        raise InvalidRequest("Voice ID, voice name and platform are required")
    if get_provider(platform) is None:
        raise UnsupportedPlatform(platform)

    preview_url = body.get("preview_url") or ""
    file_name: Optional[str] = None
    if preview_url and studio.config.mirror_previews:
        preview_url, file_name = await studio.previews.mirror(
            platform, provider_voice_id, name, preview_url
        )

    try:
        voice = studio.store.add_voice(
            name,
            provider_voice_id,
            platform,
            language=body.get("language"),
            gender=body.get("gender"),
            preview_url=preview_url,
            audio_file_path=file_name,
        )
    except Exception:
        studio.previews.remove(file_name)
        raise
    return web.json_response(_dump(voice), status=201)


async def handle_delete_voice(request: web.Request) -> web.Response:
    studio = _studio(request)
    voice_id = _int(request.match_info["voice_id"], "voice_id")
    voice = studio.store.delete_voice(voice_id)
    studio.previews.remove(voice.audio_file_path)
    return web.json_response({"deleted": voice_id})


async def handle_test_voice(request: web.Request) -> web.Response:
    studio = _studio(request)
    voice = studio.store.get_voice(_int(request.match_info["voice_id"], "voice_id"))
    body = await _body(request)
    context = str(body.get("context", "test"))
    prefix = CONTEXT_PREFIXES.get(context)
    if prefix is None:
        raise InvalidRequest(f"Unknown test context: {context!r}")
    outcome = await studio.tester.test_record(voice, prefix)
    identifier = make_identifier(voice.id, prefix)
    return web.json_response({
        "identifier": identifier,
        "outcome": outcome.value,
        "status": studio.tester.status(identifier),
    })


# ── Credentials ───────────────────────────────────────────────

async def handle_list_credentials(request: web.Request) -> web.Response:
    creds = _studio(request).store.list_credentials()
    return web.json_response([c.masked() for c in creds])


async def handle_add_credential(request: web.Request) -> web.Response:
    body = await _body(request)
    cred = _studio(request).store.add_credential(body.get("platform", ""), body.get("api_key", ""))
    return web.json_response(cred.masked(), status=201)


async def handle_delete_credential(request: web.Request) -> web.Response:
    credential_id = _int(request.match_info["credential_id"], "credential_id")
    _studio(request).store.delete_credential(credential_id)
    return web.json_response({"deleted": credential_id})


# ── Playback ──────────────────────────────────────────────────

async def handle_playback_status(request: web.Request) -> web.Response:
    return web.json_response(_studio(request).playback_status())


async def handle_playback_stop(request: web.Request) -> web.Response:
    studio = _studio(request)
    await studio.controller.stop()
    return web.json_response(studio.playback_status())


async def handle_playback_reset(request: web.Request) -> web.Response:
    """Called by the dashboard when it leaves a screen that owns playback."""
    studio = _studio(request)
    await studio.tester.reset()
    return web.json_response(studio.playback_status())


async def handle_play_generated(request: web.Request) -> web.Response:
    body = await _body(request)
    url = (body.get("url") or "").strip()
    if not url:
        raise InvalidRequest("url is required")
    studio = _studio(request)
    playing = await studio.controller.toggle(GENERATED_AUDIO_ID, url)
    return web.json_response({"identifier": GENERATED_AUDIO_ID, "playing": playing})


# ── Generation ────────────────────────────────────────────────

async def handle_generate_script(request: web.Request) -> web.Response:
    body = await _body(request)
    studio = _studio(request)
    channel = studio.store.get_channel(_int(body.get("channel_id"), "channel_id"))
    idea = (body.get("idea") or "").strip()
    result = await studio.webhooks.generate_script(
        channel, idea, body.get("model", ""), body.get("language", "")
    )
    if result.cont_chars is not None:
        studio.store.record_script_length(channel.id, result.cont_chars)
    return web.json_response({"output": result.output, "cont_chars": result.cont_chars})


async def handle_generate_audio(request: web.Request) -> web.Response:
    body = await _body(request)
    studio = _studio(request)
    voice = studio.store.get_voice(_int(body.get("voice_id"), "voice_id"))
    try:
        speed = float(body.get("speed", 1.0))
    except (TypeError, ValueError):
        raise InvalidRequest("speed must be a number") from None
    url = await studio.webhooks.generate_audio(
        body.get("text") or "", voice.provider_voice_id, voice.platform, speed
    )
    return web.json_response({"url": url})


async def handle_training(request: web.Request) -> web.Response:
    """Accepts JSON ({channel_name, model, scripts: [{title, text}]}) or a
    multipart form with channel_name, model, titleN and scriptN text/file parts."""
    studio = _studio(request)
    if request.content_type.startswith("multipart/"):
        channel_name, model, scripts = await _read_training_form(request)
    else:
        body = await _body(request)
        channel_name = body.get("channel_name", "")
        model = body.get("model") or ""
        try:
            scripts = [TrainingScript.model_validate(s) for s in body.get("scripts") or []]
        except ValidationError as e:
            raise InvalidRequest(f"Invalid scripts: {e.error_count()} problem(s)") from e
    training = build_training_request(channel_name, scripts, model or studio.config.default_model)
    prompts = await studio.webhooks.train_channel(training)
    return web.json_response({
        "channel_name": prompts.channel_name,
        "title_prompt": prompts.title_prompt,
        "script_prompt": prompts.script_prompt,
    })


async def _read_training_form(request: web.Request) -> tuple[str, str, list[TrainingScript]]:
    fields: dict[str, str] = {}
    reader = await request.multipart()
    async for part in reader:
        if part.name is None:
            continue
        raw = await part.read()
        fields[part.name] = decode_upload(raw) if part.filename else raw.decode("utf-8", errors="replace")
    scripts = []
    for n in (1, 2, 3):
        title = fields.get(f"title{n}", "")
        text = fields.get(f"script{n}", "")
        if title or text:
            scripts.append(TrainingScript(title=title, text=text))
    return fields.get("channel_name", ""), fields.get("model", ""), scripts


async def handle_update_prompts(request: web.Request) -> web.Response:
    body = await _body(request)
    studio = _studio(request)
    name = (body.get("channel_name") or "").strip()
    title_prompt = body.get("title_prompt") or ""
    script_prompt = body.get("script_prompt") or ""
    if not name:
        raise InvalidRequest("Channel name is required")
    if studio.config.prompt_update_webhook_url:
        await studio.webhooks.update_prompts(name, title_prompt, script_prompt)
    channel = studio.store.update_prompts(name, title_prompt, script_prompt)
    return web.json_response(_dump(channel))


# ── App setup ─────────────────────────────────────────────────

async def _close_studio(app: web.Application) -> None:
    await app[STUDIO_KEY].close()


def create_app(studio: Optional[Studio] = None) -> web.Application:
    studio = studio or Studio()

    app = web.Application(middlewares=[error_middleware, auth_middleware])
    app[STUDIO_KEY] = studio
    app.on_cleanup.append(_close_studio)

    app.router.add_get("/", handle_index)
    app.router.add_get("/api/health", handle_health)
    app.router.add_get("/api/dashboard", handle_dashboard)

    app.router.add_get("/api/channels", handle_list_channels)
    app.router.add_post("/api/channels", handle_add_channel)
    app.router.add_delete("/api/channels/{channel_id}", handle_delete_channel)

    app.router.add_get("/api/voices", handle_list_voices)
    app.router.add_post("/api/voices", handle_add_voice)
    app.router.add_post("/api/voices/lookup", handle_lookup_voice)
    app.router.add_delete("/api/voices/{voice_id}", handle_delete_voice)
    app.router.add_post("/api/voices/{voice_id}/test", handle_test_voice)

    app.router.add_get("/api/credentials", handle_list_credentials)
    app.router.add_post("/api/credentials", handle_add_credential)
    app.router.add_delete("/api/credentials/{credential_id}", handle_delete_credential)

    app.router.add_get("/api/playback", handle_playback_status)
    app.router.add_post("/api/playback/stop", handle_playback_stop)
    app.router.add_post("/api/playback/reset", handle_playback_reset)
    app.router.add_post("/api/playback/generated", handle_play_generated)

    app.router.add_post("/api/scripts", handle_generate_script)
    app.router.add_post("/api/audio", handle_generate_audio)
    app.router.add_post("/api/training", handle_training)
    app.router.add_post("/api/training/prompts", handle_update_prompts)

    preview_dir: Path = studio.config.preview_dir
    preview_dir.mkdir(parents=True, exist_ok=True)
    app.router.add_static("/previews", preview_dir, show_index=False)
    return app


LOG_DIR = Path(__file__).resolve().parent.parent / "logs"


if __name__ == "__main__":
    LOG_DIR.mkdir(exist_ok=True)
    log_file = LOG_DIR / "server.log"

    fmt = logging.Formatter("%(asctime)s %(name)-12s %(levelname)-8s %(message)s")

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(fmt)

    filelog = logging.FileHandler(log_file)
    filelog.setLevel(logging.INFO)
    filelog.setFormatter(fmt)

    logging.basicConfig(level=logging.INFO, handlers=[console, filelog])

    # Silence per-request client logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    log.info("Logging to %s", log_file)
    app = create_app()

    log.info("Serving on http://%s:%d", settings.host, settings.port)
    web.run_app(app, host=settings.host, port=settings.port)
