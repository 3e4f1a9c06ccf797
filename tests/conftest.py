"""
Shared fixtures and test utilities for LegalBot tests.

Provides a deterministic embedding service, sample statute texts and
provision factories so that all tests run without API keys, databases,
or external network access.
"""

import sys
import hashlib
from pathlib import Path

import pytest
from dotenv import load_dotenv

# ---------------------------------------------------------------------------
# Path setup - ensure the execution package is importable
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

load_dotenv(PROJECT_ROOT / ".env")

# ---------------------------------------------------------------------------
# Sample statute texts
# ---------------------------------------------------------------------------
SAMPLE_LAU_TEXT = """
LEY 29/1994, de 24 de noviembre, de Arrendamientos Urbanos

TÍTULO I
Ámbito de la ley

Artículo 1. Ámbito de aplicación.
La presente ley establece el régimen jurídico aplicable a los arrendamientos
de fincas urbanas que se destinen a vivienda o a usos distintos del de vivienda.

TÍTULO II
De los arrendamientos de vivienda

CAPÍTULO I
Normas generales

Artículo 8. Cesión del contrato y subarriendo.
1. El contrato no se podrá ceder por el arrendatario sin el consentimiento
escrito del arrendador.
2. La vivienda arrendada sólo se podrá subarrendar de forma parcial y previo
consentimiento escrito del arrendador.

CAPÍTULO II
De la duración del contrato

Artículo 9. Plazo mínimo.
1. La duración del arrendamiento será libremente pactada por las partes.

Artículo 10. Prórroga del contrato.
1. Si llegada la fecha de vencimiento del contrato ninguna de las partes
hubiese notificado a la otra su voluntad de no renovarlo, el contrato se
prorrogará obligatoriamente por plazos anuales.
"""

SAMPLE_ENGLISH_TEXT = """
Title I
General provisions

Article 1. Scope
This Act governs leases of urban property used as a dwelling.

Chapter I
Duration

Article 9. Minimum term
The duration of the lease shall be freely agreed by the parties.

Article 9 bis - Extension
If neither party gives notice, the lease is extended for one year.

Article 10
Tenants may sublet only with the written consent of the landlord.
"""


# ---------------------------------------------------------------------------
# Mock embedding service
# ---------------------------------------------------------------------------

class MockEmbeddingService:
    """Deterministic mock embedding service -- never calls external APIs."""

    def __init__(self, dimensions=8, vectors=None):
        self._dimensions = dimensions
        # text -> fixed vector, for tests that need controlled similarities
        self._vectors = vectors or {}
        self.config = type("Config", (), {"model": "mock-model", "dimensions": dimensions})()
        self.query_calls = 0
        self.document_calls = 0

    def embed_one(self, text):
        self.query_calls += 1
        return self._embedding(text)

    def embed_texts(self, texts, batch_size=None):
        self.document_calls += 1
        return [self._embedding(t) for t in texts]

    def embed_many(self, provisions, batch_size=None):
        from execution.legalbot.models import EmbeddedProvision
        vectors = self.embed_texts([p.text for p in provisions], batch_size=batch_size)
        return [EmbeddedProvision(provision=p, vector=v) for p, v in zip(provisions, vectors)]

    def _embedding(self, text):
        if text in self._vectors:
            return list(self._vectors[text])
        h = hashlib.sha256(text.encode()).hexdigest()
        seed = int(h[:8], 16)
        return [((seed + i) % 1000) / 1000.0 + 0.001 for i in range(self._dimensions)]

    @property
    def dimensions(self):
        return self._dimensions


@pytest.fixture
def mock_embedding_service():
    return MockEmbeddingService(dimensions=8)


# ---------------------------------------------------------------------------
# Provision factories
# ---------------------------------------------------------------------------

def make_provision(provision_id, text="Texto del artículo.", group="LAU", label=None, heading=""):
    """Build a Provision with sensible metadata defaults."""
    from execution.legalbot.models import Provision, ProvisionMetadata
    return Provision(
        id=provision_id,
        text=text,
        metadata=ProvisionMetadata(
            group=group,
            group_full_name=f"{group} full name",
            label=label or f"Artículo {provision_id.rsplit('-', 1)[-1]}",
            heading=heading,
            source_file=f"{group}.txt",
        ),
    )


def make_embedded(provision_id, vector, **kwargs):
    from execution.legalbot.models import EmbeddedProvision
    return EmbeddedProvision(provision=make_provision(provision_id, **kwargs), vector=list(vector))


def make_result(provision_id, score, **kwargs):
    from execution.legalbot.models import SearchResult
    return SearchResult(provision=make_provision(provision_id, **kwargs), score=score)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def lau_source():
    from execution.legalbot.models import SourceDescriptor
    return SourceDescriptor(
        group_code="LAU",
        group_full_name="Ley 29/1994, de 24 de noviembre, de Arrendamientos Urbanos",
    )


@pytest.fixture
def spanish_segmenter():
    from execution.legalbot.language_config import LanguageConfig
    from execution.legalbot.segmenter import ProvisionSegmenter
    return ProvisionSegmenter(language_config=LanguageConfig.for_language("es"))


@pytest.fixture
def english_segmenter():
    from execution.legalbot.segmenter import ProvisionSegmenter
    return ProvisionSegmenter()


@pytest.fixture
def local_store(tmp_path):
    from execution.legalbot.local_vector_store import LocalVectorStore
    return LocalVectorStore(str(tmp_path / "vector_store.json"))
