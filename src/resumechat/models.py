"""Shared domain models used across the ResumeChat pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence, Tuple


@dataclass(frozen=True)
class Document:
    """An uploaded file and the plain text extracted from it."""

    document_id: str
    source_path: str
    media_type: str
    text: str
    page_count: int = 1


@dataclass(frozen=True)
class Chunk:
    """Contiguous span of document text, the unit of retrieval."""

    chunk_id: str
    text: str
    document_id: str
    order: int
    start_index: int = 0

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.text)


@dataclass(frozen=True)
class EmbeddedChunk:
    """Chunk paired with its vector representation."""

    chunk: Chunk
    vector: Tuple[float, ...]


@dataclass(frozen=True)
class RetrievedChunk:
    """Chunk returned from the vector index during retrieval."""

    chunk: Chunk
    score: float


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """One message of a conversation."""

    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ConversationTurn":
        return cls(role=Role.ASSISTANT, content=content)

    def as_message(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


ConversationHistory = Tuple[ConversationTurn, ...]


class TurnStatus(str, Enum):
    ANSWERED = "answered"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class TurnResult:
    """Output of one successful rewrite -> retrieve -> synthesize pass."""

    answer: str
    standalone_question: str
    chunks: Sequence[RetrievedChunk]
    latency_ms: float
    retrieval_ms: float | None = None
    generation_ms: float | None = None


@dataclass(frozen=True)
class TurnOutcome:
    """What a conversation session reports back for a submitted question."""

    status: TurnStatus
    answer: str
    standalone_question: str | None = None
    chunks: Sequence[RetrievedChunk] = field(default_factory=tuple)
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is TurnStatus.ANSWERED
