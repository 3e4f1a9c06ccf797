"""
Tests for execution/legalbot/ingestion.py

Runs segment -> overlap -> embed -> upsert against the local store with a
deterministic embedding service.
"""

from unittest.mock import MagicMock

import pytest

from tests.conftest import SAMPLE_LAU_TEXT, make_embedded


def _document(filename="LAU.txt", content=SAMPLE_LAU_TEXT):
    from execution.legalbot.document_loader import LoadedDocument
    return LoadedDocument(filename=filename, content=content, format="txt")


class TestIngestDocument:

    def test_stores_every_provision(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        count = ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store)

        assert count == 4
        assert local_store.stats() == {"count": 4}

    def test_overlap_context_embedded(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store)
        results = local_store.search([1.0] * 8, top_k=10, metadata_filter={"label": "Artículo 8"})

        assert results[0].text.startswith("[Contexto anterior: ...")
        assert "[Contexto siguiente: " in results[0].text

    def test_without_overlap(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store, use_overlap=False)
        results = local_store.search([1.0] * 8, top_k=10, metadata_filter={"label": "Artículo 8"})

        assert results[0].text.startswith("[TÍTULO II]\n[CAPÍTULO I]\nArtículo 8.")

    def test_group_detected_from_filename(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store)
        results = local_store.search([1.0] * 8, top_k=10)
        assert {r.metadata.group for r in results} == {"LAU"}
        assert {r.metadata.source_file for r in results} == {"LAU.txt"}

    def test_reingest_is_idempotent(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store)
        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store)
        assert local_store.stats() == {"count": 4}

    def test_replace_existing_drops_stale_provisions(self, spanish_segmenter, mock_embedding_service, local_store):
        from execution.legalbot.ingestion import ingest_document

        local_store.upsert([
            make_embedded("LAU-art-99", [0.5] * 8),
            make_embedded("LPH-art-5", [0.5] * 8, group="LPH"),
        ])
        ingest_document(_document(), spanish_segmenter, mock_embedding_service, local_store,
                        replace_existing=True)

        ids = {r.id for r in local_store.search([1.0] * 8, top_k=10)}
        assert "LAU-art-99" not in ids
        assert "LPH-art-5" in ids
        assert local_store.stats() == {"count": 5}

    def test_empty_document_stores_nothing(self, spanish_segmenter, mock_embedding_service):
        from execution.legalbot.ingestion import ingest_document

        store = MagicMock()
        count = ingest_document(_document(content="  \n "), spanish_segmenter, mock_embedding_service, store)

        assert count == 0
        store.upsert.assert_not_called()
        assert mock_embedding_service.document_calls == 0

    def test_embedding_failure_leaves_store_untouched(self, spanish_segmenter, local_store):
        from execution.legalbot.exceptions import EmbeddingError
        from execution.legalbot.ingestion import ingest_document

        local_store.upsert([make_embedded("LAU-art-99", [0.5] * 8)])
        service = MagicMock()
        service.embed_many.side_effect = EmbeddingError("quota exceeded")

        with pytest.raises(EmbeddingError, match="quota exceeded"):
            ingest_document(_document(), spanish_segmenter, service, local_store, replace_existing=True)

        assert local_store.stats() == {"count": 1}
