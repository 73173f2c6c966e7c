import json

import httpx
import pytest

from playback.errors import InvalidRequest, ProviderError, WebhookError
from voice_studio.models import Channel
from voice_studio.training import TrainingScript, build_training_request
from voice_studio.webhooks import WebhookClient, extract_audio_url


@pytest.mark.parametrize("body,url", [
    ('{"response": "https://a/1.mp3", "url": "https://a/2.mp3"}', "https://a/1.mp3"),
    ('[{"url": "https://a/2.mp3"}]', "https://a/2.mp3"),
    ('{"audio_url": "https://a/3.mp3"}', "https://a/3.mp3"),
    ('[{"response": "", "audio_url": "https://a/4.mp3"}]', "https://a/4.mp3"),
])
def test_extract_audio_url(body, url):
    assert extract_audio_url(body) == url


@pytest.mark.parametrize("body", ["not json", "[]", '{"status": "done"}', '"https://a/1.mp3"'])
def test_extract_audio_url_failures(body):
    with pytest.raises(ProviderError):
        extract_audio_url(body)


@pytest.fixture()
def channel():
    return Channel(id=4, name="Dark History", script_prompt="Write like a documentary")


async def test_generate_script_from_list_response(recorder, settings_for, channel):
    recorder.routes["hooks.test/script"] = httpx.Response(200, json=[{"output": "Once upon", "cont_chars": 9}])
    hooks = WebhookClient(recorder.client(), settings_for())

    result = await hooks.generate_script(channel, "fall of Rome", "GPT-5", "en")

    assert result.output == "Once upon"
    assert result.cont_chars == 9
    sent = json.loads(recorder.requests[0].content)
    assert sent == {
        "channel_id": 4,
        "channel_name": "Dark History",
        "script_prompt": "Write like a documentary",
        "idea": "fall of Rome",
        "model": "GPT-5",
        "language": "en",
    }


async def test_generate_script_uses_defaults(recorder, settings_for, channel):
    recorder.routes["hooks.test/script"] = httpx.Response(200, json={"output": "Text"})
    hooks = WebhookClient(recorder.client(), settings_for(default_model="claude", default_language="pt-BR"))

    result = await hooks.generate_script(channel, "idea")

    assert result.cont_chars is None
    sent = json.loads(recorder.requests[0].content)
    assert sent["model"] == "claude"
    assert sent["language"] == "pt-BR"


async def test_generate_script_without_output(recorder, settings_for, channel):
    recorder.routes["hooks.test/script"] = httpx.Response(200, json={"result": "?"})
    with pytest.raises(WebhookError):
        await WebhookClient(recorder.client(), settings_for()).generate_script(channel, "idea")


async def test_non_2xx_is_webhook_error(recorder, settings_for, channel):
    recorder.routes["hooks.test/script"] = httpx.Response(500, text="workflow crashed")
    with pytest.raises(WebhookError) as exc:
        await WebhookClient(recorder.client(), settings_for()).generate_script(channel, "idea")
    assert exc.value.status_code == 500
    assert exc.value.body == "workflow crashed"


async def test_unconfigured_webhook(recorder, settings_for, channel):
    hooks = WebhookClient(recorder.client(), settings_for(script_webhook_url=""))
    with pytest.raises(InvalidRequest):
        await hooks.generate_script(channel, "idea")
    assert recorder.requests == []


async def test_generate_audio(recorder, settings_for):
    recorder.routes["hooks.test/audio"] = httpx.Response(200, text='[{"response": "https://cdn/out.mp3"}]')
    hooks = WebhookClient(recorder.client(), settings_for())

    url = await hooks.generate_audio("Hello there", "abc", "ElevenLabs", 1.2)

    assert url == "https://cdn/out.mp3"
    assert json.loads(recorder.requests[0].content) == {
        "text": "Hello there", "voice_id": "abc", "platform": "ElevenLabs", "speed": 1.2,
    }


async def test_generate_audio_requires_text(recorder, settings_for):
    with pytest.raises(InvalidRequest):
        await WebhookClient(recorder.client(), settings_for()).generate_audio("  ", "abc", "ElevenLabs")


async def test_train_channel(recorder, settings_for):
    recorder.routes["hooks.test/training"] = httpx.Response(
        200, json=[{"prompt_titulo": "Titles like...", "prompt_roteiro": "Scripts like..."}]
    )
    request = build_training_request("Dark History", [TrainingScript(title="Ep 1", text="Rome fell")], "GPT-5")

    prompts = await WebhookClient(recorder.client(), settings_for()).train_channel(request)

    assert prompts.title_prompt == "Titles like..."
    assert prompts.script_prompt == "Scripts like..."
    sent = json.loads(recorder.requests[0].content)
    assert sent["scripts"] == [{"title": "Ep 1", "text": "Rome fell"}]


async def test_train_channel_fills_missing_prompts(recorder, settings_for):
    recorder.routes["hooks.test/training"] = httpx.Response(200, json=[])
    request = build_training_request("Dark History", [TrainingScript(text="Rome fell")], "GPT-5")

    prompts = await WebhookClient(recorder.client(), settings_for()).train_channel(request)

    assert prompts.title_prompt == "Title prompt not found"
    assert prompts.script_prompt == "Script prompt not found"


async def test_update_prompts(recorder, settings_for):
    recorder.routes["hooks.test/prompts"] = httpx.Response(200, json={"ok": True})
    await WebhookClient(recorder.client(), settings_for()).update_prompts("Dark History", "T", "S")
    assert json.loads(recorder.requests[0].content) == {
        "channel_name": "Dark History", "title_prompt": "T", "script_prompt": "S",
    }
