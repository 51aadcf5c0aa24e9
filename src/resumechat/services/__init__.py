"""Service layer orchestrations for ResumeChat."""

from .generation import (
    GenerationBackend,
    GenerationConfig,
    TemplateGenerator,
    TransformersGenerator,
    build_generation_executor,
    invoke_generator,
)
from .query import ConversationalQueryService
from .rewriter import QueryRewriter
from .session import ConversationSession, SessionState
from .synthesis import AnswerSynthesizer, PromptBuilder, PromptBuilderConfig

__all__ = [
    "AnswerSynthesizer",
    "ConversationSession",
    "ConversationalQueryService",
    "GenerationBackend",
    "GenerationConfig",
    "PromptBuilder",
    "PromptBuilderConfig",
    "QueryRewriter",
    "SessionState",
    "TemplateGenerator",
    "TransformersGenerator",
    "build_generation_executor",
    "invoke_generator",
]
