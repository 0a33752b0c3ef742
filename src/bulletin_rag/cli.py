"""Command-line entry point.

Examples
--------
    bulletin-rag check
    bulletin-rag ingest --source-dir public/bulletin --strategy semantic --verify
    bulletin-rag search "intro to programming" -k 3
    bulletin-rag inspect --limit 5
    bulletin-rag serve --port 3001
"""

from __future__ import annotations

import argparse
import logging
import sys

from bulletin_rag.config import Settings
from bulletin_rag.errors import BulletinRagError

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 100


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {
        "source_dir": getattr(args, "source_dir", None),
        "chunk_strategy": getattr(args, "strategy", None),
        "concurrency": getattr(args, "concurrency", None),
        "chroma_collection": getattr(args, "collection", None),
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def cmd_ingest(args: argparse.Namespace) -> int:
    from bulletin_rag.ingestion.pipeline import run_ingestion

    cfg = _settings_from_args(args)
    summary = run_ingestion(cfg, reset=args.reset, verify=args.verify)
    print(f"Vectorization complete: {summary}")
    for stats in summary.per_document.values():
        line = f"  {stats.source}: {stats.succeeded}/{stats.total} added, {stats.failed} failed"
        if stats.error:
            line += f" ({stats.error})"
        print(line)
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    from bulletin_rag.retrieval.search import SearchService
    from bulletin_rag.serving.presentation import relevance_percent

    cfg = _settings_from_args(args)
    outcome = SearchService.from_settings(cfg).search(args.query, k=args.k)
    if not outcome.hits:
        print("No results found.")
        return 0
    for rank, hit in enumerate(outcome.hits, 1):
        relevance = relevance_percent(hit.distance, outcome.distance_metric)
        score = f"{relevance}%" if relevance is not None else f"distance={hit.distance}"
        print(f"\n{rank}. [{hit.metadata.get('source', 'unknown')}] {hit.id} ({score})")
        if "course_code" in hit.metadata:
            print(f"   Course: {hit.metadata['course_code']} {hit.metadata.get('title', '')}".rstrip())
        print(f"   {hit.text[:PREVIEW_CHARS]}...")
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    from bulletin_rag.ingestion.embedder import EmbeddingClient
    from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

    cfg = _settings_from_args(args)
    ok = True

    print("--- Testing ChromaDB ---")
    print(f"Address: {cfg.chroma_host}:{cfg.chroma_port}")
    try:
        chroma_ok = ChromaVectorStore(cfg).health_check()
    except BulletinRagError as exc:
        logger.debug("Chroma client construction failed", exc_info=True)
        print(f"ChromaDB connection failed: {exc.message}")
        chroma_ok = False
    print("ChromaDB connection successful!" if chroma_ok else "ChromaDB is not reachable.")
    ok &= chroma_ok

    print("\n--- Testing embedding service ---")
    print(f"URL: {cfg.embedding_base_url}")
    embedder = EmbeddingClient(cfg)
    embed_ok = embedder.health_check()
    if embed_ok:
        models = embedder.available_models()
        print("Embedding service connection successful! Available models:")
        for name in models:
            print(f"- {name}")
        if cfg.embedding_model not in models:
            print(f"Warning: configured model {cfg.embedding_model!r} is not installed.")
    else:
        print("Embedding service is not reachable.")
    ok &= embed_ok
    return 0 if ok else 1


def cmd_inspect(args: argparse.Namespace) -> int:
    from bulletin_rag.retrieval.chroma_store import ChromaVectorStore

    cfg = _settings_from_args(args)
    store = ChromaVectorStore(cfg)
    handle = store.ensure_collection(cfg.chroma_collection, distance_metric=cfg.distance_metric)
    print(f"Collection {handle.name!r} ({handle.distance_metric}, dim={handle.dimension})")
    print(f"Collection contains {store.count(handle)} documents")
    for i, hit in enumerate(store.peek(handle, limit=args.limit), 1):
        print(f"\nDocument {i}:")
        print(f"ID: {hit.id}")
        print(f"Metadata: {hit.metadata}")
        print(f"Content preview: {hit.text[:PREVIEW_CHARS]}...")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("bulletin_rag.serving.app:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bulletin-rag", description="Course-bulletin RAG ingestion and search")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--collection", help="Override the Chroma collection name")
    sub = parser.add_subparsers(dest="command", required=True)

    ingest = sub.add_parser("ingest", help="Chunk, embed and upsert source documents")
    ingest.add_argument("--source-dir", help="Directory of .txt source documents")
    ingest.add_argument("--strategy", choices=["semantic", "fixed"], help="Chunking strategy")
    ingest.add_argument("--concurrency", type=int, help="Documents processed at once")
    ingest.add_argument("--reset", action="store_true", help="Drop and recreate the collection first")
    ingest.add_argument("--verify", action="store_true", help="Run a sample query afterwards")
    ingest.set_defaults(func=cmd_ingest)

    search = sub.add_parser("search", help="Semantic search over the collection")
    search.add_argument("query", help="Natural-language query")
    search.add_argument("-k", type=int, default=None, help="Number of results")
    search.set_defaults(func=cmd_search)

    check = sub.add_parser("check", help="Test connectivity to Chroma and the embedding service")
    check.set_defaults(func=cmd_check)

    inspect = sub.add_parser("inspect", help="Show collection size and sample documents")
    inspect.add_argument("--limit", type=int, default=3, help="Number of sample documents")
    inspect.set_defaults(func=cmd_inspect)

    serve = sub.add_parser("serve", help="Run the search API")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=3001)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return args.func(args)
    except BulletinRagError as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
