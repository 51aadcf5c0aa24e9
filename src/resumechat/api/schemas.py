"""Pydantic models for the ResumeChat API."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field, field_validator

from resumechat.models import ConversationTurn, Role

_ROLE_ALIASES = {
    "user": Role.USER,
    "human": Role.USER,
    "assistant": Role.ASSISTANT,
    "ai": Role.ASSISTANT,
}


class HistoryMessage(BaseModel):
    role: Literal["user", "human", "assistant", "ai"] = Field(..., description="Speaker of the message")
    content: str = Field(..., description="Message text")

    def to_turn(self) -> ConversationTurn:
        return ConversationTurn(role=_ROLE_ALIASES[self.role], content=self.content)


class ChatRequest(BaseModel):
    question: str = Field(default="", description="Latest user question")
    namespace: str = Field(default="", description="Namespace returned by the upload endpoint")
    history: List[HistoryMessage] = Field(default_factory=list, description="Earlier turns, oldest first")

    @field_validator("question", "namespace", mode="before")
    @classmethod
    def _blank_when_missing(cls, value: object) -> object:
        # null behaves like an absent field
        return "" if value is None else value

    @field_validator("history", mode="before")
    @classmethod
    def _empty_when_missing(cls, value: object) -> object:
        return [] if value is None else value

    def history_turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(message.to_turn() for message in self.history)


class ChatResponse(BaseModel):
    answer: str


class UploadResponse(BaseModel):
    namespace: str = Field(..., description="Identifier scoping the uploaded document's chunks")
    message: str = Field(..., description="Human readable status")
    chunk_count: int = Field(..., ge=0)


class NamespaceStats(BaseModel):
    namespace: str
    chunks: int


class IndexStatsResponse(BaseModel):
    collection: str
    total_chunks: int
    namespaces: List[NamespaceStats]
