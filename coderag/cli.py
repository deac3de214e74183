from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List

from .config import ConfigError, Settings
from .context import build_context
from .ingest import scan_files
from .rag import CodeAgent
from .retrieval import retrieve_candidates
from .types import RetrievedHit


def _format_sources(hits: List[RetrievedHit]) -> str:
    if not hits:
        return "No sources."
    lines = ["Sources:"]
    for hit in hits:
        lines.append(
            f"- {hit.rel_path} [chunk_id={hit.id}, score={hit.score:.4f}, "
            f"bm25={hit.bm25_score:.4f}, coverage={hit.query_coverage:.4f}, path={hit.path_boost:.4f}]"
        )
    return "\n".join(lines)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def handle_ask(settings: Settings, project_dir: str, task: str) -> int:
    files = scan_files(project_dir, settings.scan_extensions, settings.ignore_dirs)
    agent = CodeAgent(settings)
    response = agent.answer(task, project_dir, files)
    print(response.answer)
    return 0


def handle_retrieve(
    settings: Settings,
    project_dir: str,
    task: str,
    variants: List[str],
    as_json: bool,
    max_chars: int | None = None,
) -> int:
    files = scan_files(project_dir, settings.scan_extensions, settings.ignore_dirs)
    hits = retrieve_candidates(project_dir, files, task, variants, settings=settings)
    context = build_context(hits, max_chars or settings.context_max_chars)
    if as_json:
        print(json.dumps({"hits": [hit.to_dict() for hit in hits], "context": context}, indent=2, ensure_ascii=False))
        return 0
    print(_format_sources(hits))
    print()
    print(context)
    return 0


def _parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Code retrieval agent with multi-query BM25 and LLM rerank")
    parser.add_argument("--verbose", action="store_true", help="Log debug details to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    ask_parser = subparsers.add_parser("ask", help="Answer a task about a project")
    ask_parser.add_argument("project_dir", help="Project root directory")
    ask_parser.add_argument("task", nargs="+", help="Task description")

    retrieve_parser = subparsers.add_parser("retrieve", help="Show retrieved chunks without calling the LLM")
    retrieve_parser.add_argument("project_dir", help="Project root directory")
    retrieve_parser.add_argument("task", nargs="+", help="Task description")
    retrieve_parser.add_argument("--variant", action="append", default=[], help="Extra query variant")
    retrieve_parser.add_argument("--top-k", type=int, help="Number of hits to keep")
    retrieve_parser.add_argument("--recall-k", type=int, help="Candidates per query before fusion")
    retrieve_parser.add_argument("--max-chars", type=int, help="Context character budget")
    retrieve_parser.add_argument("--json", action="store_true", help="Print hits and context as JSON")

    return parser.parse_args(argv)


def main(argv: List[str] | None = None) -> int:
    try:
        args = _parse_args(sys.argv[1:] if argv is None else argv)
    except SystemExit as exc:
        # argparse already printed usage; --help exits 0
        return 0 if exc.code in (0, None) else 1

    try:
        _configure_logging(args.verbose)
        settings = Settings.from_env()
        task = " ".join(args.task)

        if args.command == "ask":
            return handle_ask(settings, args.project_dir, task)
        if args.command == "retrieve":
            overrides = {}
            if args.top_k is not None:
                overrides["top_k"] = args.top_k
            if args.recall_k is not None:
                overrides["recall_k"] = args.recall_k
            if overrides:
                settings = settings.replace(**overrides)
            if args.max_chars is not None and args.max_chars <= 0:
                raise ConfigError(f"'--max-chars' must be a positive integer, got {args.max_chars}")
            return handle_retrieve(
                settings, args.project_dir, task, args.variant, args.json, max_chars=args.max_chars
            )

        raise ValueError("Unknown command.")
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
