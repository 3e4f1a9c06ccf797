"""
Error taxonomy for the LegalBot retrieval core.

Segmentation and reranking only raise on contract violations. Embedding and
index errors surface to the caller, which owns retry policy.
"""


class LegalBotError(Exception):
    """Base class for all retrieval-core errors."""


class SegmentationError(LegalBotError):
    """A segmentation invariant was violated (empty group code, duplicate ids)."""


class EmbeddingError(LegalBotError):
    """The embedding service returned no usable vector, or dimensions disagree."""


class IndexUnavailableError(LegalBotError):
    """The remote vector index could not be reached at initialization."""


class DimensionMismatch(LegalBotError, ValueError):
    """Similarity requested over vectors of unequal length."""

    def __init__(self, left: int, right: int):
        super().__init__(f"Vector length mismatch: {left} != {right}")
        self.left = left
        self.right = right
