"""Conversation session: owns one namespace and its ordered history."""

from __future__ import annotations

import threading
from enum import Enum
from pathlib import Path

from resumechat.errors import InvalidRequestError, ResumeChatError, SessionStateError, TurnCancelledError
from resumechat.ingestion.service import IngestionPipeline
from resumechat.metrics.observability import PipelineMetrics, get_logger
from resumechat.models import ConversationHistory, ConversationTurn, TurnOutcome, TurnStatus
from resumechat.services.prompts import FAILED_TURN_MESSAGE
from resumechat.services.query import ConversationalQueryService


class SessionState(str, Enum):
    AWAITING_DOCUMENT = "awaiting_document"
    READY = "ready"
    THINKING = "thinking"


class ConversationSession:
    """State machine ``AWAITING_DOCUMENT -> READY -> THINKING -> READY``.

    History only grows by complete (user, assistant) pairs. A failed or
    cancelled turn leaves it exactly as it was, so retrying a question is safe.
    """

    def __init__(
        self,
        query_service: ConversationalQueryService,
        *,
        ingestion: IngestionPipeline | None = None,
        failure_message: str = FAILED_TURN_MESSAGE,
    ) -> None:
        self._query_service = query_service
        self._ingestion = ingestion
        self._failure_message = failure_message
        self._state = SessionState.AWAITING_DOCUMENT
        self._namespace: str | None = None
        self._history: list[ConversationTurn] = []
        self._turn_lock = threading.Lock()
        self._logger = get_logger("session")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def namespace(self) -> str | None:
        return self._namespace

    @property
    def history(self) -> ConversationHistory:
        return tuple(self._history)

    def load_document(self, path: Path) -> str:
        """Ingest ``path`` and start a conversation about it."""

        if self._ingestion is None:
            raise SessionStateError("This session has no ingestion pipeline")
        if self._state is not SessionState.AWAITING_DOCUMENT:
            raise SessionStateError("Start a new conversation before loading another document")
        namespace = self._ingestion.ingest(Path(path))
        self.attach(namespace)
        return namespace

    def attach(self, namespace: str) -> None:
        """Start a conversation about an already ingested namespace."""

        if not namespace or not namespace.strip():
            raise InvalidRequestError("A namespace is required")
        if self._state is not SessionState.AWAITING_DOCUMENT:
            raise SessionStateError("Start a new conversation before attaching another namespace")
        self._namespace = namespace
        self._history = []
        self._state = SessionState.READY
        self._logger.info("session.ready", namespace=namespace)

    def reset(self) -> None:
        """Forget the namespace and history; the indexed vectors are left in place."""

        if not self._turn_lock.acquire(blocking=False):
            raise SessionStateError("Cannot start a new conversation while a question is being answered")
        try:
            self._logger.info("session.reset", namespace=self._namespace, history_turns=len(self._history))
            self._namespace = None
            self._history = []
            self._state = SessionState.AWAITING_DOCUMENT
        finally:
            self._turn_lock.release()

    def ask(self, question: str, *, cancel_event: threading.Event | None = None) -> TurnOutcome:
        if not self._turn_lock.acquire(blocking=False):
            raise SessionStateError("A question is already being answered in this session")
        try:
            if self._state is not SessionState.READY or self._namespace is None:
                raise SessionStateError("Load a document before asking questions")
            self._state = SessionState.THINKING
            try:
                return self._run_turn(question, self._namespace, cancel_event)
            finally:
                self._state = SessionState.READY
        finally:
            self._turn_lock.release()

    def _run_turn(self, question: str, namespace: str, cancel_event: threading.Event | None) -> TurnOutcome:
        try:
            result = self._query_service.run_turn(
                question,
                namespace,
                tuple(self._history),
                cancel_event=cancel_event,
            )
        except InvalidRequestError:
            raise
        except TurnCancelledError as exc:
            PipelineMetrics.count_turn(TurnStatus.CANCELLED.value)
            self._logger.info("turn.cancelled", namespace=namespace)
            return TurnOutcome(status=TurnStatus.CANCELLED, answer="", error=exc)
        except ResumeChatError as exc:
            PipelineMetrics.count_turn(TurnStatus.FAILED.value)
            self._logger.error(
                "turn.failed",
                namespace=namespace,
                error_type=type(exc).__name__,
                detail=str(exc),
            )
            return TurnOutcome(status=TurnStatus.FAILED, answer=self._failure_message, error=exc)

        self._history.append(ConversationTurn.user(question))
        self._history.append(ConversationTurn.assistant(result.answer))
        PipelineMetrics.count_turn(TurnStatus.ANSWERED.value)
        return TurnOutcome(
            status=TurnStatus.ANSWERED,
            answer=result.answer,
            standalone_question=result.standalone_question,
            chunks=result.chunks,
        )
