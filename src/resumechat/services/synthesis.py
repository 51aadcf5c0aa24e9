"""Context-grounded answer generation."""

from __future__ import annotations

import time
from dataclasses import dataclass
from concurrent.futures import Executor
from typing import Sequence

from resumechat.metrics.observability import PipelineMetrics, get_logger
from resumechat.models import ConversationTurn, RetrievedChunk
from resumechat.services.generation import GenerationBackend, build_generation_executor, invoke_generator
from resumechat.services.prompts import ANSWER_PROMPT, CONTEXT_HEADER


@dataclass(frozen=True)
class PromptBuilderConfig:
    """Configuration for prompt construction."""

    citation_prefix: str = "["
    citation_suffix: str = "]"


class PromptBuilder:
    """Builds the system prompt handed to the generation backend."""

    def __init__(self, config: PromptBuilderConfig | None = None, *, instructions: str = ANSWER_PROMPT) -> None:
        self._config = config or PromptBuilderConfig()
        self._instructions = instructions

    def build_context(self, chunks: Sequence[RetrievedChunk]) -> str:
        if not chunks:
            return ""
        lines = []
        for index, item in enumerate(chunks, start=1):
            prefix = f"{self._config.citation_prefix}{index}{self._config.citation_suffix}"
            lines.append(f"{prefix} {item.chunk.text.strip()}")
        return "\n\n".join(lines)

    def build_system_prompt(self, chunks: Sequence[RetrievedChunk]) -> str:
        return f"{self._instructions}\n\n{CONTEXT_HEADER}\n{self.build_context(chunks)}"


class AnswerSynthesizer:
    """Answer the question from retrieved chunks, with history for continuity only."""

    def __init__(
        self,
        generator: GenerationBackend,
        prompt_builder: PromptBuilder | None = None,
        *,
        timeout: float | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._generator = generator
        self._prompt_builder = prompt_builder or PromptBuilder()
        self._timeout = timeout
        if timeout is not None and executor is None:
            executor = build_generation_executor(2, name="synthesis")
        self._executor = executor
        self._logger = get_logger("synthesis")

    def synthesize(
        self,
        chunks: Sequence[RetrievedChunk],
        history: Sequence[ConversationTurn],
        question: str,
    ) -> str:
        system_prompt = self._prompt_builder.build_system_prompt(chunks)
        conversation = (*tuple(history), ConversationTurn.user(question))
        start = time.perf_counter()
        answer = invoke_generator(
            self._generator,
            system_instructions=system_prompt,
            conversation=conversation,
            timeout=self._timeout,
            executor=self._executor,
        )
        duration = time.perf_counter() - start
        PipelineMetrics.observe_generation(duration)
        self._logger.info(
            "generation.complete",
            duration_seconds=duration,
            context_chunks=len(chunks),
            history_turns=len(history),
        )
        return answer.strip()
