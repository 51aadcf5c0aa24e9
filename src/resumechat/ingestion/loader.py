"""Text extraction for uploaded documents."""

from __future__ import annotations

import re
import unicodedata
from pathlib import Path
from typing import Mapping, Protocol, Sequence
from uuid import uuid4

from langchain_community.document_loaders import Docx2txtLoader, PyPDFLoader, TextLoader
from langchain_community.document_loaders.base import BaseLoader
from langchain_core.documents import Document as LCDocument

from resumechat.errors import DocumentLoadError
from resumechat.models import Document

PAGE_SEPARATOR = "\n\n"


class DocumentLoader(Protocol):
    """Protocol for text extraction implementations."""

    def load(self, path: Path) -> Document:
        """Extract the plain text of the file at ``path``."""


def normalize_text(raw: str) -> str:
    """Normalize unicode and horizontal whitespace while keeping line structure."""

    normalized = unicodedata.normalize("NFKC", raw)
    normalized = normalized.replace("\u00a0", " ").replace("\r\n", "\n").replace("\r", "\n")
    normalized = re.sub(r"[ \t\f\v]+", " ", normalized)
    normalized = re.sub(r" *\n *", "\n", normalized)
    normalized = re.sub(r"\n{3,}", PAGE_SEPARATOR, normalized)
    return normalized.strip()


class LangChainDocumentLoader:
    """Extract text via LangChain community loaders."""

    _LOADERS: Mapping[str, type[BaseLoader]] = {
        ".pdf": PyPDFLoader,
        ".docx": Docx2txtLoader,
        ".txt": TextLoader,
        ".md": TextLoader,
    }

    def __init__(self, encoding: str = "utf-8") -> None:
        self._encoding = encoding

    @classmethod
    def supported_extensions(cls) -> tuple[str, ...]:
        return tuple(cls._LOADERS)

    def load(self, path: Path) -> Document:
        path = Path(path)
        suffix = path.suffix.lower()
        loader_cls = self._LOADERS.get(suffix)
        if loader_cls is None:
            raise DocumentLoadError(f"Unsupported document type: {suffix or '<none>'}")
        if not path.is_file():
            raise DocumentLoadError(f"Document not found: {path}")
        try:
            pages = self._build_loader(loader_cls, path).load()
        except Exception as exc:
            raise DocumentLoadError(f"Failed to load {path.name}: {exc}") from exc

        text = self._join_pages(pages)
        if not text:
            raise DocumentLoadError(f"No extractable text in {path.name}")
        return Document(
            document_id=uuid4().hex,
            source_path=str(path),
            media_type=suffix.lstrip("."),
            text=text,
            page_count=len(pages),
        )

    def _build_loader(self, loader_cls: type[BaseLoader], path: Path) -> BaseLoader:
        if loader_cls is TextLoader:
            return loader_cls(str(path), encoding=self._encoding)
        return loader_cls(str(path))

    @staticmethod
    def _join_pages(pages: Sequence[LCDocument]) -> str:
        texts = [normalize_text(page.page_content) for page in pages]
        return PAGE_SEPARATOR.join(text for text in texts if text)
