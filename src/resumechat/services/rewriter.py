"""History-aware reformulation of follow-up questions."""

from __future__ import annotations

import time
from concurrent.futures import Executor
from typing import Sequence

from resumechat.metrics.observability import PipelineMetrics, get_logger
from resumechat.models import ConversationTurn
from resumechat.services.generation import GenerationBackend, build_generation_executor, invoke_generator
from resumechat.services.prompts import CONTEXTUALIZE_QUESTION_PROMPT


class QueryRewriter:
    """Turn the latest question into one that stands on its own.

    The model's output is trusted as-is; nothing checks that it is a question
    rather than an answer.
    """

    def __init__(
        self,
        generator: GenerationBackend,
        *,
        system_prompt: str = CONTEXTUALIZE_QUESTION_PROMPT,
        timeout: float | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._generator = generator
        self._system_prompt = system_prompt
        self._timeout = timeout
        if timeout is not None and executor is None:
            executor = build_generation_executor(2, name="rewrite")
        self._executor = executor
        self._logger = get_logger("rewrite")

    def rewrite(self, history: Sequence[ConversationTurn], question: str) -> str:
        if not history:
            return question
        conversation = (*tuple(history), ConversationTurn.user(question))
        start = time.perf_counter()
        rewritten = invoke_generator(
            self._generator,
            system_instructions=self._system_prompt,
            conversation=conversation,
            timeout=self._timeout,
            executor=self._executor,
        ).strip()
        duration = time.perf_counter() - start
        PipelineMetrics.observe_rewrite(duration)
        self._logger.info(
            "rewrite.complete",
            history_turns=len(history),
            duration_seconds=duration,
            changed=rewritten != question,
        )
        return rewritten or question
