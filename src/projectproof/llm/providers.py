from __future__ import annotations

import base64
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Protocol

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
from openai import APIStatusError, OpenAI

from projectproof.config import Settings
from projectproof.errors import StreamInterrupted, UpstreamRejected
from projectproof.types import Answer, Fragment, Reasoning

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProviderConfig:
    name: str
    model: str
    api_key: str
    timeout_sec: int
    temperature: float
    base_url: str = ""
    thinking_level: str = ""


class AnalysisProvider(Protocol):
    config: ProviderConfig

    def stream_analysis(
        self,
        *,
        media: str,
        media_type: str,
        prompt: str,
        system_instruction: str,
    ) -> Iterator[Fragment]: ...


class GeminiProvider:
    """Streams Gemini output with thought summaries enabled."""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = genai.Client(
            api_key=config.api_key,
            http_options=genai_types.HttpOptions(timeout=config.timeout_sec * 1000),
        )

    def stream_analysis(
        self,
        *,
        media: str,
        media_type: str,
        prompt: str,
        system_instruction: str,
    ) -> Iterator[Fragment]:
        contents = [
            genai_types.Content(
                role="user",
                parts=[
                    genai_types.Part.from_bytes(data=base64.b64decode(media), mime_type=media_type),
                    genai_types.Part(text=prompt),
                ],
            )
        ]
        config = genai_types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=self.config.temperature,
            thinking_config=self._thinking_config(),
        )

        logger.info("Opening gemini stream model=%s media_type=%s", self.config.model, media_type)
        try:
            stream = self.client.models.generate_content_stream(
                model=self.config.model,
                contents=contents,
                config=config,
            )
            for chunk in stream:
                yield from self._fragments(chunk)
        except genai_errors.ClientError as exc:
            raise UpstreamRejected(f"gemini rejected the request: {exc}") from exc
        except Exception as exc:
            raise StreamInterrupted(f"gemini stream aborted: {exc}") from exc

    def _thinking_config(self) -> genai_types.ThinkingConfig:
        if self.config.thinking_level:
            return genai_types.ThinkingConfig(
                include_thoughts=True,
                thinking_level=self.config.thinking_level.upper(),
            )
        return genai_types.ThinkingConfig(include_thoughts=True)

    @staticmethod
    def _fragments(chunk: Any) -> Iterator[Fragment]:
        candidates = getattr(chunk, "candidates", None) or []
        if not candidates:
            return

        content = getattr(candidates[0], "content", None)
        parts = getattr(content, "parts", None) or []
        for part in parts:
            text = getattr(part, "text", None)
            if not text:
                continue
            if getattr(part, "thought", None):
                yield Reasoning(text)
            else:
                yield Answer(text)


class OpenAICompatibleProvider:
    """Chat-completions stream for OpenAI or any compatible server.

    Servers that expose model reasoning stream it as ``reasoning_content`` (or
    ``reasoning``) on the delta; everything in ``content`` is the answer.
    """

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.client = OpenAI(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout=float(config.timeout_sec),
        )

    def stream_analysis(
        self,
        *,
        media: str,
        media_type: str,
        prompt: str,
        system_instruction: str,
    ) -> Iterator[Fragment]:
        if not media_type.startswith("image/"):
            raise UpstreamRejected(f"provider {self.config.name} does not accept {media_type}")

        messages = [
            {"role": "system", "content": system_instruction},
            {
                "role": "user",
                "content": [
                    {"type": "image_url", "image_url": {"url": f"data:{media_type};base64,{media}"}},
                    {"type": "text", "text": prompt},
                ],
            },
        ]

        logger.info("Opening %s stream model=%s media_type=%s", self.config.name, self.config.model, media_type)
        try:
            stream = self.client.chat.completions.create(
                model=self.config.model,
                messages=messages,
                temperature=self.config.temperature,
                stream=True,
            )
            for chunk in stream:
                yield from self._fragments(chunk)
        except APIStatusError as exc:
            if exc.status_code < 500:
                raise UpstreamRejected(f"{self.config.name} rejected the request: {exc}") from exc
            raise StreamInterrupted(f"{self.config.name} stream aborted: {exc}") from exc
        except Exception as exc:
            raise StreamInterrupted(f"{self.config.name} stream aborted: {exc}") from exc

    @staticmethod
    def _fragments(chunk: Any) -> Iterator[Fragment]:
        choices = getattr(chunk, "choices", None) or []
        if not choices:
            return

        delta = getattr(choices[0], "delta", None)
        if delta is None:
            return

        reasoning = getattr(delta, "reasoning_content", None) or getattr(delta, "reasoning", None)
        if reasoning:
            yield Reasoning(str(reasoning))

        content = getattr(delta, "content", None)
        if content:
            yield Answer(str(content))


class ProviderPool:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._gemini: GeminiProvider | None = None
        self._openai: OpenAICompatibleProvider | None = None

    def gemini(self) -> GeminiProvider:
        if self._gemini is None:
            self._gemini = GeminiProvider(
                ProviderConfig(
                    name="gemini",
                    model=self.settings.gemini_model,
                    api_key=self.settings.gemini_api_key,
                    timeout_sec=self.settings.gemini_timeout_sec,
                    temperature=self.settings.gemini_temperature,
                    thinking_level=self.settings.gemini_thinking_level,
                )
            )
        return self._gemini

    def openai(self) -> OpenAICompatibleProvider:
        if self._openai is None:
            self._openai = OpenAICompatibleProvider(
                ProviderConfig(
                    name="openai",
                    model=self.settings.openai_model,
                    api_key=self.settings.openai_api_key,
                    timeout_sec=self.settings.openai_timeout_sec,
                    temperature=self.settings.openai_temperature,
                    base_url=self.settings.openai_base_url,
                )
            )
        return self._openai

    def default(self) -> AnalysisProvider:
        if self.settings.analysis_provider == "openai":
            return self.openai()
        if not self.settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is not configured")
        return self.gemini()
