from __future__ import annotations

import base64
from types import SimpleNamespace

import httpx
import pytest
from google.genai import errors as genai_errors
from openai import APIStatusError

from projectproof.config import Settings
from projectproof.errors import StreamInterrupted, UpstreamRejected
from projectproof.llm.providers import GeminiProvider, OpenAICompatibleProvider, ProviderConfig, ProviderPool
from projectproof.types import Answer, Reasoning

MEDIA = base64.b64encode(b"fake-jpeg").decode("ascii")


class FakeModelsAPI:
    def __init__(self, fn):
        self._fn = fn

    def generate_content_stream(self, **kwargs):
        return self._fn(**kwargs)


class FakeCompletionsAPI:
    def __init__(self, fn):
        self._fn = fn

    def create(self, **kwargs):
        return self._fn(**kwargs)


def _gemini_chunk(*parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=list(parts)))])


def _openai_chunk(**delta):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(**delta))])


def _gemini_with(fn) -> GeminiProvider:
    provider = GeminiProvider(
        ProviderConfig(
            name="gemini",
            model="gemini-test",
            api_key="dummy",
            timeout_sec=5,
            temperature=0.7,
            thinking_level="high",
        )
    )
    provider.client = SimpleNamespace(models=FakeModelsAPI(fn))
    return provider


def _openai_with(fn) -> OpenAICompatibleProvider:
    provider = OpenAICompatibleProvider(
        ProviderConfig(
            name="openai",
            model="gpt-test",
            api_key="dummy",
            timeout_sec=5,
            temperature=0.7,
            base_url="http://localhost:9999/v1",
        )
    )
    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletionsAPI(fn)))
    return provider


def _stream(provider, media_type: str = "image/jpeg") -> list:
    return list(
        provider.stream_analysis(media=MEDIA, media_type=media_type, prompt="describe", system_instruction="be brief")
    )


def test_gemini_splits_thought_parts_from_answer_parts() -> None:
    captured = {}

    def fn(**kwargs):
        captured.update(kwargs)
        return iter(
            [
                _gemini_chunk(SimpleNamespace(text="Spotting the Arduino", thought=True)),
                _gemini_chunk(SimpleNamespace(text='{"title": ', thought=None), SimpleNamespace(text=None, thought=None)),
                _gemini_chunk(SimpleNamespace(text='"Blinker"}', thought=False)),
                SimpleNamespace(candidates=None),
            ]
        )

    fragments = _stream(_gemini_with(fn))

    assert fragments == [Reasoning("Spotting the Arduino"), Answer('{"title": '), Answer('"Blinker"}')]
    assert captured["model"] == "gemini-test"
    config = captured["config"]
    assert config.thinking_config.include_thoughts is True
    media_part = captured["contents"][0].parts[0]
    assert media_part.inline_data.data == b"fake-jpeg"
    assert media_part.inline_data.mime_type == "image/jpeg"


def test_gemini_client_error_is_upstream_rejected() -> None:
    def fn(**kwargs):
        raise genai_errors.ClientError(
            400, {"error": {"code": 400, "message": "Unsupported MIME type", "status": "INVALID_ARGUMENT"}}
        )

    with pytest.raises(UpstreamRejected):
        _stream(_gemini_with(fn))


def test_gemini_failure_mid_stream_is_stream_interrupted() -> None:
    def chunks():
        yield _gemini_chunk(SimpleNamespace(text="partial", thought=False))
        raise ConnectionError("socket closed")

    with pytest.raises(StreamInterrupted):
        _stream(_gemini_with(lambda **kwargs: chunks()))


def test_openai_reasoning_content_is_reasoning() -> None:
    captured = {}

    def fn(**kwargs):
        captured.update(kwargs)
        return iter(
            [
                _openai_chunk(reasoning_content="Counting resistors", content=None),
                _openai_chunk(reasoning_content=None, reasoning="Checking voltage", content=None),
                _openai_chunk(reasoning_content=None, content='{"title": "Blinker"}'),
                SimpleNamespace(choices=[]),
            ]
        )

    fragments = _stream(_openai_with(fn))

    assert fragments == [
        Reasoning("Counting resistors"),
        Reasoning("Checking voltage"),
        Answer('{"title": "Blinker"}'),
    ]
    assert captured["stream"] is True
    image_part = captured["messages"][1]["content"][0]
    assert image_part["image_url"]["url"] == f"data:image/jpeg;base64,{MEDIA}"


def test_openai_rejects_video_before_calling_out() -> None:
    called = {"value": False}

    def fn(**kwargs):
        called["value"] = True
        return iter([])

    with pytest.raises(UpstreamRejected):
        _stream(_openai_with(fn), media_type="video/mp4")
    assert called["value"] is False


@pytest.mark.parametrize("status_code,expected", [(400, UpstreamRejected), (503, StreamInterrupted)])
def test_openai_status_errors_are_mapped(status_code: int, expected: type) -> None:
    request = httpx.Request("POST", "http://localhost:9999/v1/chat/completions")
    response = httpx.Response(status_code, request=request)

    def fn(**kwargs):
        raise APIStatusError("upstream said no", response=response, body=None)

    with pytest.raises(expected):
        _stream(_openai_with(fn))


def test_provider_pool_requires_gemini_key() -> None:
    pool = ProviderPool(Settings(analysis_provider="gemini", gemini_api_key=""))

    with pytest.raises(ValueError):
        pool.default()


def test_provider_pool_selects_openai() -> None:
    pool = ProviderPool(Settings(analysis_provider="openai", openai_api_key="dummy"))

    provider = pool.default()

    assert isinstance(provider, OpenAICompatibleProvider)
    assert pool.default() is provider
