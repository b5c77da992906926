"""Command line interface for indexing and searching product embeddings."""

import argparse
import json
import logging
import sys

import uvicorn

from vector_search.config import Settings, settings as default_settings
from vector_search.exceptions import VectorSearchError
from vector_search.services.vector_search import VectorSearchService, build_service

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vector-search",
        description="Manage product embeddings and run similarity searches",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index = subparsers.add_parser("index", help="Index all catalog products")
    index.add_argument("--batch-size", type=int, default=None, help="Products per page")
    index.add_argument("--force", action="store_true", help="Re-embed unchanged products")

    search = subparsers.add_parser("search", help="Search products by similarity")
    search.add_argument("query", help="Free text query")
    search.add_argument("--limit", type=int, default=None, help="Maximum results")
    search.add_argument("--threshold", type=float, default=None, help="Minimum similarity")
    search.add_argument("--verbose", action="store_true", help="Show the indexed text of each match")

    clear = subparsers.add_parser("clear", help="Delete all embeddings")
    clear.add_argument("--force", action="store_true", help="Skip the confirmation prompt")

    subparsers.add_parser("status", help="Show indexing coverage and provider health")
    subparsers.add_parser("debug", help="Show database and provider diagnostics")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=None, help="Bind address (defaults to settings)")
    serve.add_argument("--port", type=int, default=None, help="Port (defaults to settings)")

    return parser


def run_index(service: VectorSearchService, args: argparse.Namespace) -> int:
    result = service.index_all(args.batch_size, args.force)
    print(result.message)
    print(f"  Total products: {result.total_items}")
    print(f"  Indexed:        {result.indexed}")
    print(f"  Skipped:        {result.skipped}")
    print(f"  Errors:         {result.errors}")
    print(f"  Pages:          {result.pages} (batch size {result.batch_size})")
    return 1 if result.errors else 0


def run_search(service: VectorSearchService, args: argparse.Namespace) -> int:
    results = service.search(args.query, args.limit, args.threshold)
    if not results:
        print("No results")
        return 0

    print(f"{len(results)} results for {args.query!r}")
    for rank, match in enumerate(results, start=1):
        print(f"{rank:>3}. {match.product_id}  similarity={match.similarity:.4f}")
        if args.verbose:
            print(f"     {match.content_text}")
    return 0


def run_clear(service: VectorSearchService, args: argparse.Namespace) -> int:
    if not args.force:
        answer = input("Delete all product embeddings? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            return 0
    deleted = service.clear_all()
    print(f"Deleted {deleted} embeddings")
    return 0


def run_status(service: VectorSearchService, args: argparse.Namespace) -> int:
    status = service.status()
    print(f"Backend:          {status.backend}")
    print(f"Embedding mode:   {status.embedding_mode}")
    print(f"Provider healthy: {'yes' if status.provider_healthy else 'no'}")
    print(f"Products:         {status.total_items}")
    print(f"Indexed:          {status.indexed_items} ({status.coverage_percent}%)")
    return 0


def run_debug(service: VectorSearchService, args: argparse.Namespace) -> int:
    print(json.dumps(service.diagnostics(), indent=2, default=str))
    return 0


COMMANDS = {
    "index": run_index,
    "search": run_search,
    "clear": run_clear,
    "status": run_status,
    "debug": run_debug,
}


def main(
    argv: list[str] | None = None,
    settings: Settings | None = None,
    service: VectorSearchService | None = None,
) -> int:
    settings = settings or default_settings
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        uvicorn.run(
            "vector_search.main:app",
            host=args.host or settings.host,
            port=args.port or settings.port,
            log_level=settings.log_level.lower(),
        )
        return 0

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    owned = service is None
    try:
        if service is None:
            service = build_service(settings)
        return COMMANDS[args.command](service, args)
    except VectorSearchError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if owned and service is not None:
            service.close()


if __name__ == "__main__":
    sys.exit(main())
