"""
Statute ingestion: segment -> (overlap) -> embed -> upsert, one document at a time.
"""

import logging

from .document_loader import LoadedDocument, detect_source
from .embeddings import BaseEmbeddingService
from .segmenter import ProvisionSegmenter
from .vector_store import BaseVectorStore

logger = logging.getLogger(__name__)


def ingest_document(
    document: LoadedDocument,
    segmenter: ProvisionSegmenter,
    embedding_service: BaseEmbeddingService,
    store: BaseVectorStore,
    use_overlap: bool = True,
    replace_existing: bool = False,
) -> int:
    """
    Ingest a single statute document.

    Args:
        document: Loaded document
        segmenter: Segmenter configured for the document's language
        embedding_service: Service producing provision vectors
        store: Target vector store
        use_overlap: Wrap provisions with neighbour context before embedding
        replace_existing: Delete the statute's stored provisions first

    Returns:
        Number of provisions stored
    """
    source = detect_source(document.filename, document.content)
    logger.info(f"Detected statute: {source.group_code} - {source.group_full_name}")

    provisions = segmenter.segment(document.content, source, document.filename)
    if not provisions:
        logger.warning(f"Skipping {document.filename}: no provisions produced")
        return 0

    if use_overlap:
        provisions = segmenter.add_overlap_context(provisions)

    embedded = embedding_service.embed_many(provisions)

    if replace_existing:
        store.delete_by_group(source.group_code)

    store.upsert(embedded)
    logger.info(f"Stored {len(embedded)} provisions from {document.filename}")
    return len(embedded)
