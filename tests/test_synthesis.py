from __future__ import annotations

from typing import List, Sequence

import pytest

from resumechat.errors import GenerationError
from resumechat.models import Chunk, ConversationTurn, RetrievedChunk, Role
from resumechat.services.generation import TemplateGenerator
from resumechat.services.prompts import ANSWER_PROMPT, CONTEXT_HEADER
from resumechat.services.synthesis import AnswerSynthesizer, PromptBuilder


class RecordingGenerator:
    def __init__(self, reply: str = "Jane studied computer science.") -> None:
        self.reply = reply
        self.calls: List[dict] = []

    def generate(self, *, system_instructions: str, conversation: Sequence[ConversationTurn]) -> str:
        self.calls.append({"system": system_instructions, "conversation": tuple(conversation)})
        return self.reply


class FailingGenerator:
    def generate(self, *, system_instructions, conversation):
        raise ConnectionError("provider unavailable")


def _retrieved(*texts: str) -> List[RetrievedChunk]:
    return [
        RetrievedChunk(
            chunk=Chunk(chunk_id=f"doc-{i}", text=text, document_id="doc", order=i, start_index=0),
            score=1.0 - i * 0.1,
        )
        for i, text in enumerate(texts)
    ]


def test_prompt_lists_chunks_in_retrieval_order():
    builder = PromptBuilder()

    prompt = builder.build_system_prompt(_retrieved("Studied at State University.", "Worked at Acme Corp."))

    assert prompt.startswith(ANSWER_PROMPT)
    assert f"{CONTEXT_HEADER}\n[1] Studied at State University.\n\n[2] Worked at Acme Corp." in prompt


def test_synthesizer_passes_context_history_and_question():
    generator = RecordingGenerator("  Jane studied computer science.  ")
    history = (
        ConversationTurn.user("Where did Jane work?"),
        ConversationTurn.assistant("Acme Corp."),
    )

    answer = AnswerSynthesizer(generator).synthesize(
        _retrieved("BSc in Computer Science, State University."),
        history,
        "What did she study?",
    )

    assert answer == "Jane studied computer science."
    call = generator.calls[0]
    assert "BSc in Computer Science" in call["system"]
    assert call["conversation"][:2] == history
    assert call["conversation"][-1] == ConversationTurn(role=Role.USER, content="What did she study?")


def test_empty_context_still_calls_generator_with_empty_block():
    generator = RecordingGenerator()

    AnswerSynthesizer(generator).synthesize([], (), "What is her salary?")

    assert generator.calls[0]["system"].endswith(f"{CONTEXT_HEADER}\n")


def test_template_generator_declines_without_context():
    answer = AnswerSynthesizer(TemplateGenerator()).synthesize([], (), "What is her salary?")
    assert "does not provide" in answer


def test_template_generator_answers_from_first_chunk():
    answer = AnswerSynthesizer(TemplateGenerator()).synthesize(
        _retrieved("Jane worked at Acme Corp.", "Hobbies: chess."),
        (),
        "Where did Jane work?",
    )
    assert answer == "Based on the document: Jane worked at Acme Corp."


def test_generator_failure_becomes_generation_error():
    with pytest.raises(GenerationError):
        AnswerSynthesizer(FailingGenerator()).synthesize(_retrieved("text"), (), "question?")
