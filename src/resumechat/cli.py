"""Command line entry point: ingest a document, chat about it, evict old namespaces."""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import Callable, Sequence, TextIO

from resumechat.config import Settings, get_settings
from resumechat.dependencies import AppDependencies, build_dependencies, build_index
from resumechat.errors import ResumeChatError
from resumechat.services.session import ConversationSession

EXIT_COMMANDS = {"exit", "quit"}


def run_ingest(path: Path, deps: AppDependencies, out: TextIO = sys.stdout) -> int:
    try:
        result = deps.ingestion.ingest_document(path)
    except ResumeChatError as exc:
        print(f"Ingestion failed: {exc}", file=sys.stderr)
        return 1
    print(f"Ingested {result.chunk_count} chunks from {result.source_path}", file=sys.stderr)
    print(result.namespace, file=out)
    return 0


def run_chat(
    session: ConversationSession,
    *,
    read_line: Callable[[str], str] = input,
    out: TextIO = sys.stdout,
) -> int:
    print('Chatbot initialized. Ask questions about the document! Type "exit" to quit.', file=out)
    while True:
        try:
            question = read_line("You: ").strip()
        except EOFError:
            break
        if not question:
            continue
        if question.lower() in EXIT_COMMANDS:
            break
        if question.lower() == "/new":
            session.reset()
            print("Conversation cleared. Load a new document to continue.", file=out)
            return 0
        outcome = session.ask(question)
        print(f"AI: {outcome.answer}", file=out)
    print("Goodbye!", file=out)
    return 0


def run_evict(settings: Settings, older_than_hours: float | None, out: TextIO = sys.stdout) -> int:
    hours = older_than_hours if older_than_hours is not None else settings.namespace_ttl_hours
    if hours is None:
        print("No TTL given and RESUMECHAT_NAMESPACE_TTL_HOURS is unset; nothing to do.", file=sys.stderr)
        return 2
    cutoff = time.time() - hours * 3600
    evicted = build_index(settings).evict_older_than(cutoff)
    for namespace in evicted:
        print(namespace, file=out)
    print(f"Evicted {len(evicted)} namespace(s) older than {hours:g}h", file=sys.stderr)
    return 0


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="resumechat", description="Chat with an uploaded resume.")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Index a document and print its namespace")
    ingest.add_argument("path", type=Path, help="PDF, DOCX, TXT or Markdown file")

    chat = sub.add_parser("chat", help="Interactive conversation about a document")
    target = chat.add_mutually_exclusive_group(required=True)
    target.add_argument("--namespace", type=str, help="Namespace printed by `resumechat ingest`")
    target.add_argument("--file", type=Path, help="Ingest this file first, then chat about it")

    evict = sub.add_parser("evict", help="Delete namespaces older than a TTL")
    evict.add_argument("--older-than-hours", type=float, default=None, help="Override the configured TTL")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = get_settings()

    if args.command == "evict":
        return run_evict(settings, args.older_than_hours)

    deps = build_dependencies(settings)
    if args.command == "ingest":
        return run_ingest(args.path, deps)

    session = deps.new_session()
    try:
        if args.file is not None:
            session.load_document(args.file)
        else:
            session.attach(args.namespace)
    except ResumeChatError as exc:
        print(f"Could not start the conversation: {exc}", file=sys.stderr)
        return 1
    return run_chat(session)


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
