"""Generation backends for ResumeChat."""

from __future__ import annotations

import contextvars
import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Protocol, Sequence

from resumechat.errors import GenerationError
from resumechat.models import ConversationTurn, Role
from resumechat.services.prompts import CONTEXT_HEADER

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationConfig:
    """Configuration for text generation."""

    model: str = "Qwen/Qwen2.5-1.8B-Instruct"
    max_new_tokens: int = 512
    temperature: float = 0.5
    use_model: bool = False
    device: str | None = None


class GenerationBackend(Protocol):
    """Protocol describing generation behaviour."""

    def generate(self, *, system_instructions: str, conversation: Sequence[ConversationTurn]) -> str:
        """Return the model's reply to ``conversation`` under ``system_instructions``."""


def invoke_generator(
    backend: GenerationBackend,
    *,
    system_instructions: str,
    conversation: Sequence[ConversationTurn],
    timeout: float | None = None,
    executor: Executor | None = None,
) -> str:
    """Call ``backend`` once, mapping failures and timeouts to :class:`GenerationError`.

    With a ``timeout`` the call runs on ``executor`` in a copy of the caller's
    context, so bound log fields follow it. A timed out call keeps its worker
    thread until the backend returns; it cannot be interrupted.
    """

    if timeout is not None and executor is None:
        raise ValueError("A timeout requires an executor to run the call on")
    snapshot = tuple(conversation)

    def _call() -> str:
        return backend.generate(system_instructions=system_instructions, conversation=snapshot)

    future = None
    try:
        if timeout is None:
            text = _call()
        else:
            future = executor.submit(contextvars.copy_context().run, _call)
            text = future.result(timeout=timeout)
    except GenerationError:
        raise
    except FuturesTimeoutError as exc:
        if future is not None:
            future.cancel()
        raise GenerationError(f"Generation timed out after {timeout}s") from exc
    except Exception as exc:
        raise GenerationError(f"Generation failed: {exc}") from exc
    return "" if text is None else str(text)


def _split_context(system_instructions: str) -> str | None:
    marker = f"{CONTEXT_HEADER}\n"
    if marker not in system_instructions:
        return None
    return system_instructions.split(marker, 1)[1].strip()


class TemplateGenerator:
    """Simple deterministic generator used for tests and offline environments.

    With a context block it answers from the first snippet; without one it
    anchors the latest user turn to the previous assistant reply, which is
    enough to act as a question rewriter.
    """

    def generate(self, *, system_instructions: str, conversation: Sequence[ConversationTurn]) -> str:
        question = next((turn.content for turn in reversed(conversation) if turn.role is Role.USER), "")
        context = _split_context(system_instructions)
        if context is None:
            return self._rewrite(question, conversation)
        if not context:
            return "The document does not provide enough information to answer that question."
        first_snippet = context.split("\n\n", 1)[0]
        if first_snippet.startswith("[") and "] " in first_snippet:
            first_snippet = first_snippet.split("] ", 1)[1]
        return f"Based on the document: {first_snippet.strip()}"

    @staticmethod
    def _rewrite(question: str, conversation: Sequence[ConversationTurn]) -> str:
        previous = next(
            (turn.content for turn in reversed(conversation[:-1]) if turn.role is Role.ASSISTANT),
            None,
        )
        if not previous:
            return question
        return f"{question} (regarding: {previous.strip().rstrip('.')})"


class TransformersGenerator:
    """Generator that optionally calls into a local chat model via Transformers."""

    def __init__(self, config: GenerationConfig | None = None, fallback: GenerationBackend | None = None) -> None:
        self._config = config or GenerationConfig()
        self._fallback = fallback or TemplateGenerator()
        self._tokenizer = None
        self._model = None
        if not self._config.use_model:
            LOGGER.info("TransformersGenerator running in template-only mode.")
            return
        try:
            from transformers import AutoModelForCausalLM, AutoTokenizer

            self._tokenizer = AutoTokenizer.from_pretrained(
                self._config.model,
                trust_remote_code=True,
            )
            self._model = AutoModelForCausalLM.from_pretrained(
                self._config.model,
                trust_remote_code=True,
            )
            if self._tokenizer.pad_token is None and self._tokenizer.eos_token is not None:
                self._tokenizer.pad_token = self._tokenizer.eos_token
            if getattr(self._model.config, "pad_token_id", None) is None and self._tokenizer.pad_token_id is not None:
                self._model.config.pad_token_id = self._tokenizer.pad_token_id
            if self._config.device:
                self._model.to(self._config.device)
            LOGGER.info("Loaded generation model %s", self._config.model)
        except Exception as exc:  # pragma: no cover - optional model dependencies
            LOGGER.warning("Falling back to template generator: %s", exc)
            self._tokenizer = None
            self._model = None

    def generate(self, *, system_instructions: str, conversation: Sequence[ConversationTurn]) -> str:
        if self._tokenizer is None or self._model is None:
            return self._fallback.generate(system_instructions=system_instructions, conversation=conversation)
        messages = [{"role": "system", "content": system_instructions}]
        messages.extend(turn.as_message() for turn in conversation)
        if getattr(self._tokenizer, "chat_template", None):
            prompt = self._tokenizer.apply_chat_template(
                messages,
                tokenize=False,
                add_generation_prompt=True,
            )
        else:
            prompt = self._build_prompt(messages)
        import torch

        tokenized = self._tokenizer(
            prompt,
            return_tensors="pt",
            padding=True,
        )
        input_ids = tokenized.input_ids
        attention_mask = tokenized.attention_mask
        prompt_length = input_ids.shape[1]
        if self._config.device:
            input_ids = input_ids.to(self._config.device)
            attention_mask = attention_mask.to(self._config.device)
        with torch.no_grad():
            output = self._model.generate(
                input_ids,
                attention_mask=attention_mask,
                max_new_tokens=self._config.max_new_tokens,
                do_sample=self._config.temperature > 0,
                temperature=self._config.temperature if self._config.temperature > 0 else None,
            )
        generated_tokens = output[0][prompt_length:]
        generated = self._tokenizer.decode(generated_tokens, skip_special_tokens=True)
        return generated.strip()

    @staticmethod
    def _build_prompt(messages: Sequence[dict[str, str]]) -> str:
        lines = [f"{message['role'].capitalize()}: {message['content']}" for message in messages]
        lines.append("Assistant:")
        return "\n\n".join(lines)


def build_generation_executor(max_workers: int, name: str = "generation") -> ThreadPoolExecutor:
    """Worker pool for timed generation calls; one per rewriter or synthesizer."""

    if max_workers < 1:
        raise ValueError("max_workers must be >= 1")
    return ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
