"""Conversational turn orchestration: rewrite, retrieve, then synthesize."""

from __future__ import annotations

import threading
import time
from typing import Sequence

from resumechat.errors import InvalidRequestError, TurnCancelledError
from resumechat.metrics.observability import get_logger
from resumechat.models import ConversationTurn, TurnResult
from resumechat.retrieval.service import Retriever
from resumechat.services.rewriter import QueryRewriter
from resumechat.services.synthesis import AnswerSynthesizer


class ConversationalQueryService:
    """Runs one chat turn against a namespace; holds no conversation state.

    Steps run strictly in sequence and any failure propagates unchanged. The
    caller's history is copied before use, so nothing here can mutate it.
    Cancellation is honoured between steps; once an answer has been generated
    the turn completes.
    """

    def __init__(
        self,
        rewriter: QueryRewriter,
        retriever: Retriever,
        synthesizer: AnswerSynthesizer,
        *,
        top_k: int | None = None,
    ) -> None:
        self._rewriter = rewriter
        self._retriever = retriever
        self._synthesizer = synthesizer
        self._top_k = top_k
        self._logger = get_logger("query")

    def run_turn(
        self,
        question: str,
        namespace: str,
        history: Sequence[ConversationTurn] = (),
        *,
        cancel_event: threading.Event | None = None,
    ) -> TurnResult:
        if not question or not question.strip():
            raise InvalidRequestError("Question and namespace are required.")
        if not namespace or not namespace.strip():
            raise InvalidRequestError("Question and namespace are required.")
        snapshot = tuple(history)

        start = time.perf_counter()
        _check_cancelled(cancel_event)
        standalone = self._rewriter.rewrite(snapshot, question)

        _check_cancelled(cancel_event)
        retrieval_start = time.perf_counter()
        chunks = self._retriever.retrieve(standalone, namespace, self._top_k)
        retrieval_ms = (time.perf_counter() - retrieval_start) * 1000

        _check_cancelled(cancel_event)
        generation_start = time.perf_counter()
        answer = self._synthesizer.synthesize(chunks, snapshot, question)
        generation_ms = (time.perf_counter() - generation_start) * 1000

        latency_ms = (time.perf_counter() - start) * 1000
        self._logger.info(
            "turn.complete",
            namespace=namespace,
            history_turns=len(snapshot),
            chunk_count=len(chunks),
            latency_ms=latency_ms,
        )
        return TurnResult(
            answer=answer,
            standalone_question=standalone,
            chunks=tuple(chunks),
            latency_ms=latency_ms,
            retrieval_ms=retrieval_ms,
            generation_ms=generation_ms,
        )


def _check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise TurnCancelledError("Turn cancelled by caller")
