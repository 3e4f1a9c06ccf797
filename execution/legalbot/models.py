"""
Data model for the retrieval core: provisions, their embeddings and
scored search results.
"""

from dataclasses import dataclass, field, asdict


@dataclass
class SourceDescriptor:
    """Statute a document belongs to."""
    group_code: str          # e.g. "LAU"
    group_full_name: str     # e.g. "Ley 29/1994, de 24 de noviembre, de Arrendamientos Urbanos"


@dataclass
class ProvisionMetadata:
    """Citation metadata carried by every provision."""
    group: str
    group_full_name: str
    label: str               # short locator, e.g. "Article 9"
    heading: str = ""
    title: str = ""          # enclosing Title marker, "" when none
    chapter: str = ""        # enclosing Chapter marker, "" when none
    source_file: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ProvisionMetadata":
        return cls(
            group=str(data.get("group", "")),
            group_full_name=str(data.get("group_full_name", "")),
            label=str(data.get("label", "")),
            heading=str(data.get("heading", "") or ""),
            title=str(data.get("title", "") or ""),
            chapter=str(data.get("chapter", "") or ""),
            source_file=str(data.get("source_file", "") or ""),
        )


@dataclass
class Provision:
    """One addressable unit of legal text, the atomic retrieval unit."""
    id: str
    text: str
    metadata: ProvisionMetadata

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Provision":
        return cls(
            id=data["id"],
            text=data["text"],
            metadata=ProvisionMetadata.from_dict(data.get("metadata", {})),
        )


@dataclass
class EmbeddedProvision:
    """A provision together with its embedding vector."""
    provision: Provision
    vector: list[float] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.provision.id

    def to_dict(self) -> dict:
        return {**self.provision.to_dict(), "vector": list(self.vector)}

    @classmethod
    def from_dict(cls, data: dict) -> "EmbeddedProvision":
        return cls(
            provision=Provision.from_dict(data),
            vector=[float(v) for v in data.get("vector", [])],
        )


@dataclass
class SearchResult:
    """A candidate provision with its similarity score (higher is better)."""
    provision: Provision
    score: float

    @property
    def id(self) -> str:
        return self.provision.id

    @property
    def text(self) -> str:
        return self.provision.text

    @property
    def metadata(self) -> ProvisionMetadata:
        return self.provision.metadata

    def to_dict(self) -> dict:
        return {
            "provision": self.provision.to_dict(),
            "score": self.score,
        }
