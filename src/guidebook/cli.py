"""Command-line entry point for looking up guidance and requesting reviews."""

from __future__ import annotations

import argparse
import logging
import re
import sys
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from .review import PromptOnlyReviewer, Reviewer, build_reviewer_from_env
from .selector import KeywordSelector
from .store import DocumentStore, LoadError

logger = logging.getLogger(__name__)

SEPARATOR = "\n" + "-" * 72 + "\n"

_LOWER_TO_UPPER = re.compile(r"([a-z0-9])([A-Z])")
_ACRONYM_TO_WORD = re.compile(r"([A-Z]+)([A-Z][a-z])")

EXIT_OK = 0
EXIT_LOAD_ERROR = 1
EXIT_INPUT_ERROR = 2


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError("must be zero or positive")
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="guidebook", description="Look up bundled code-review guidance.")
    parser.add_argument(
        "--guides",
        default=None,
        help="Directory holding index.json and guidance bodies (default: $GUIDEBOOK_PATH or bundled guides)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lookup = subparsers.add_parser("lookup", help="Print the guidance documents matching a query.")
    lookup.add_argument("query", nargs="*", help="Free-text query or topic tags; empty prints everything.")
    lookup.add_argument("--top-k", type=_non_negative_int, default=None, help="Maximum number of documents to print.")

    subparsers.add_parser("topics", help="List every guidance topic with its tags.")

    review = subparsers.add_parser("review", help="Review a source file against the matching guidance.")
    review.add_argument("file", help="Source file to review.")
    review.add_argument(
        "--query",
        default=None,
        help="Query used to select guidance (default: derived from the file name).",
    )
    review.add_argument(
        "--top-k",
        type=_non_negative_int,
        default=None,
        help="Maximum number of guidance documents to include.",
    )
    review.add_argument(
        "--offline",
        action="store_true",
        help="Print the review prompt instead of calling an LLM provider.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, *, reviewer: Reviewer | None = None) -> int:
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    store = DocumentStore.from_directory(args.guides) if args.guides else DocumentStore.from_env()
    try:
        documents = store.load()
    except LoadError as exc:
        print(f"error: {exc}", file=sys.stderr)  # noqa: T201
        return EXIT_LOAD_ERROR

    selector = KeywordSelector(documents)

    if args.command == "lookup":
        return _lookup(selector, " ".join(args.query), args.top_k)
    if args.command == "topics":
        for document in documents:
            print(document.summary())  # noqa: T201
        return EXIT_OK
    return _review(selector, args, reviewer)


def _lookup(selector: KeywordSelector, query: str, top_k: int | None) -> int:
    matches = selector.select(query, top_k=top_k)
    logger.debug("Query %r matched %d documents", query, len(matches))
    if not matches:
        print(f"No guidance matches '{query}'.", file=sys.stderr)  # noqa: T201
        return EXIT_OK
    print(SEPARATOR.join(document.body.rstrip() for document in matches))  # noqa: T201
    return EXIT_OK


def _review(selector: KeywordSelector, args: argparse.Namespace, reviewer: Reviewer | None) -> int:
    path = Path(args.file)
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"error: cannot read {path}: {exc}", file=sys.stderr)  # noqa: T201
        return EXIT_INPUT_ERROR

    query = args.query if args.query is not None else _query_from_path(path)
    documents = selector.select(query, top_k=args.top_k)
    if reviewer is None:
        reviewer = PromptOnlyReviewer() if args.offline else build_reviewer_from_env()

    result = reviewer.review(source, documents, file_name=path.name)
    if result.topics:
        print(f"Guidance applied: {', '.join(result.topics)}\n")  # noqa: T201
    print(result.content)  # noqa: T201
    return EXIT_OK


def _query_from_path(path: Path) -> str:
    """Turn ``URLSessionView.swift`` into ``url session view swift``."""
    stem = path.stem.replace("_", " ").replace("-", " ")
    stem = _LOWER_TO_UPPER.sub(r"\1 \2", stem)
    stem = _ACRONYM_TO_WORD.sub(r"\1 \2", stem)
    words = stem.split()
    suffix = path.suffix.lstrip(".")
    if suffix:
        words.append(suffix)
    return " ".join(word.lower() for word in words)


if __name__ == "__main__":
    raise SystemExit(main())
