"""
Batch ingestion of statute files into the LegalBot vector index.

Loads every .txt / .pdf file in a directory, detects the statute it belongs
to, segments it into provisions, embeds them and upserts them:
- Segmenter: ProvisionSegmenter with the chosen language's markers
- Embeddings: EMBEDDING_PROVIDER (OpenAI text-embedding-3-small by default)
- Storage: PostgreSQL + pgvector, or the local JSON store if unreachable

Usage:
    python ingest_statutes.py --dir data/laws/
    python ingest_statutes.py --dir data/laws/ --clear --language es
    python ingest_statutes.py --dir data/laws/ --backend local --no-overlap
"""

import sys
import time
import argparse
import logging
from pathlib import Path
from dotenv import load_dotenv

# Ensure project root is on path
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))
load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    arg_parser = argparse.ArgumentParser(description="Ingest statute documents")
    arg_parser.add_argument(
        "--dir",
        type=str,
        default="data/laws",
        help="Directory containing .txt and/or .pdf statute files (default: data/laws)",
    )
    arg_parser.add_argument(
        "--clear",
        action="store_true",
        help="Remove every stored provision before ingesting",
    )
    arg_parser.add_argument(
        "--no-overlap",
        action="store_true",
        help="Embed provisions without neighbour context",
    )
    arg_parser.add_argument(
        "--backend",
        choices=["auto", "local"],
        default="auto",
        help="auto: try pgvector, fall back to local JSON; local: skip the probe",
    )
    arg_parser.add_argument(
        "--language",
        choices=["en", "es"],
        default="es",
        help="Language of the statute texts (default: es)",
    )
    args = arg_parser.parse_args()

    from execution.legalbot.document_loader import load_documents_from_directory
    from execution.legalbot.embeddings import get_embedding_service
    from execution.legalbot.ingestion import ingest_document
    from execution.legalbot.language_config import LanguageConfig
    from execution.legalbot.segmenter import ProvisionSegmenter
    from execution.legalbot.vector_store import VectorStoreConfig, init_vector_store

    input_dir = Path(args.dir)
    if not input_dir.is_dir():
        logger.error(f"Directory not found: {input_dir}")
        sys.exit(1)

    documents = load_documents_from_directory(input_dir)
    if not documents:
        logger.error(f"No .txt or .pdf files found in {input_dir} (e.g. {input_dir / 'LAU.txt'})")
        sys.exit(1)

    language_config = LanguageConfig.for_language(args.language)
    segmenter = ProvisionSegmenter(language_config=language_config)
    embedding_service = get_embedding_service(language_config=language_config)

    selection = init_vector_store(VectorStoreConfig(
        backend=args.backend,
        embedding_dimensions=embedding_service.dimensions,
    ))
    store = selection.store

    if selection.is_fallback:
        logger.warning(f"Using local store: {selection.fallback_reason}")

    logger.info(f"Pipeline initialized ({language_config.name}):")
    logger.info(f"  Backend: {selection.backend}")
    logger.info(f"  Embedding model: {embedding_service.config.model}")
    logger.info(f"  Overlap context: {'off' if args.no_overlap else 'on'}")

    if args.clear:
        logger.info("Clearing existing provisions...")
        store.clear()

    start_time = time.time()
    total_provisions = 0
    success_count = 0
    fail_count = 0

    for i, document in enumerate(documents):
        logger.info(f"[{i+1}/{len(documents)}] Processing: {document.filename}")
        try:
            n_provisions = ingest_document(
                document,
                segmenter,
                embedding_service,
                store,
                use_overlap=not args.no_overlap,
            )
            total_provisions += n_provisions
            success_count += 1
            logger.info(f"  -> {n_provisions} provisions")
        except Exception as e:
            fail_count += 1
            logger.error(f"  FAILED: {e}")

    elapsed = time.time() - start_time
    stored = store.stats()["count"]
    store.close()

    # Summary
    print("\n" + "=" * 60)
    print("INGESTION COMPLETE")
    print("=" * 60)
    print(f"Files processed:    {success_count}/{len(documents)} ({fail_count} failed)")
    print(f"Provisions created: {total_provisions}")
    print(f"Provisions stored:  {stored}")
    print(f"Backend:            {selection.backend}")
    print(f"Time elapsed:       {elapsed:.1f}s")
    print("=" * 60)

    if fail_count:
        sys.exit(1)


if __name__ == "__main__":
    main()
