from __future__ import annotations

import logging
from collections.abc import Callable

from projectproof.core.cancellation import CancelToken
from projectproof.errors import EmptyResponse, PipelineError, StreamInterrupted
from projectproof.llm.prompts import ANALYSIS_SYSTEM_INSTRUCTION, ANALYSIS_USER_PROMPT
from projectproof.llm.providers import AnalysisProvider
from projectproof.types import Answer, Reasoning, Thought

logger = logging.getLogger(__name__)


class AnalysisRequester:
    def __init__(
        self,
        provider: AnalysisProvider,
        *,
        prompt: str = ANALYSIS_USER_PROMPT,
        system_instruction: str = ANALYSIS_SYSTEM_INSTRUCTION,
    ):
        self.provider = provider
        self.prompt = prompt
        self.system_instruction = system_instruction

    def request(
        self,
        *,
        media: str,
        media_type: str,
        on_thought: Callable[[Thought], None],
        cancel_token: CancelToken | None = None,
    ) -> str:
        """Stream one analysis call and return the concatenated answer text.

        Reasoning fragments go straight to ``on_thought`` as ``process``
        thoughts; answer fragments are only accumulated.
        """
        answer_parts: list[str] = []
        reasoning_count = 0
        stream = self.provider.stream_analysis(
            media=media,
            media_type=media_type,
            prompt=self.prompt,
            system_instruction=self.system_instruction,
        )

        try:
            for fragment in stream:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled("the analysis stream finished")

                if isinstance(fragment, Reasoning):
                    reasoning_count += 1
                    on_thought(Thought(text=fragment.text, type="process"))
                elif isinstance(fragment, Answer):
                    answer_parts.append(fragment.text)
                else:
                    raise StreamInterrupted(f"unexpected fragment {type(fragment).__name__}")
        except PipelineError:
            raise
        except Exception as exc:
            raise StreamInterrupted(f"analysis stream aborted: {exc}") from exc
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        raw_answer = "".join(answer_parts)
        logger.info(
            "Analysis stream finished provider=%s reasoning_fragments=%s answer_chars=%s",
            self.provider.config.name,
            reasoning_count,
            len(raw_answer),
        )
        if not raw_answer.strip():
            raise EmptyResponse("model returned no answer text")
        return raw_answer
