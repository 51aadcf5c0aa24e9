"""Character-based chunking of extracted document text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from langchain_text_splitters import RecursiveCharacterTextSplitter

from resumechat.models import Chunk

# Highest priority first: paragraph, line, sentence end, word, character.
DEFAULT_SEPARATORS: Sequence[str] = (
    r"\n\n",
    r"\n",
    r"(?<=[.!?])\s+",
    r" ",
    "",
)

_WHITESPACE = re.compile(r"\s")


@dataclass(frozen=True)
class ChunkerConfig:
    """Configuration for the chunker, measured in characters."""

    chunk_size: int = 1000
    chunk_overlap: int = 100
    separators: Sequence[str] = DEFAULT_SEPARATORS


class Chunker:
    """Split text into overlapping chunks that are exact substrings of the source.

    The splitter cuts the text into contiguous pieces of at most
    ``chunk_size - chunk_overlap`` characters at the best available separator.
    Every piece after the first is then extended backwards by up to
    ``chunk_overlap`` characters of the preceding text, starting after a
    whitespace where one is available. Adjacent chunks therefore always share
    between 1 and ``chunk_overlap`` characters, no chunk exceeds
    ``chunk_size``, and the unique parts concatenate back to the source.
    """

    def __init__(self, config: ChunkerConfig | None = None) -> None:
        self._config = config or ChunkerConfig()
        if self._config.chunk_overlap < 0:
            raise ValueError("chunk_overlap must be >= 0")
        if self._config.chunk_size <= self._config.chunk_overlap:
            raise ValueError("chunk_size must be greater than chunk_overlap")
        self._splitter = RecursiveCharacterTextSplitter(
            separators=list(self._config.separators),
            is_separator_regex=True,
            keep_separator=True,
            chunk_size=self._config.chunk_size - self._config.chunk_overlap,
            chunk_overlap=0,
            add_start_index=True,
            strip_whitespace=False,
        )

    @property
    def config(self) -> ChunkerConfig:
        return self._config

    def split(self, text: str, document_id: str = "") -> List[Chunk]:
        if not text:
            return []
        spans = self._piece_spans(text)
        chunks: List[Chunk] = []
        for order, (start, end) in enumerate(spans):
            if order > 0:
                start -= self._lead_in(text, start, spans[order - 1][0])
            chunks.append(
                Chunk(
                    chunk_id=f"{document_id or 'chunk'}-{order}",
                    text=text[start:end],
                    document_id=document_id,
                    order=order,
                    start_index=start,
                ),
            )
        return chunks

    def _piece_spans(self, text: str) -> List[Tuple[int, int]]:
        spans: List[Tuple[int, int]] = []
        for piece in self._splitter.create_documents([text]):
            start = int(piece.metadata.get("start_index", 0))
            spans.append((start, start + len(piece.page_content)))
        return spans

    def _lead_in(self, text: str, start: int, previous_start: int) -> int:
        """Number of preceding characters to repeat at the head of a chunk."""

        width = min(self._config.chunk_overlap, start - previous_start)
        if width <= 0:
            return 0
        window = text[start - width : start]
        boundary = _WHITESPACE.search(window)
        if boundary is not None and boundary.end() < len(window):
            return len(window) - boundary.end()
        return width
