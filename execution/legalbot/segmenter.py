"""
Statute-Aware Provision Segmenter

Splits statute text into provisions (one per numbered article) while
preserving the Title / Chapter hierarchy each article sits in.

Two strategies:
- Boundary parsing: scan line-anchored article, title and chapter markers,
  each article body running to the next marker of any kind.
- Paragraph packing: used only when no article marker is found, so that any
  non-empty document still yields retrievable fragments.
"""

import re
import logging
from bisect import bisect_right
from dataclasses import dataclass, replace
from typing import Optional

from .exceptions import SegmentationError
from .language_config import LanguageConfig
from .language_patterns import PROVISION_MARKERS, SECTION_MARKERS, LABELS
from .models import Provision, ProvisionMetadata, SourceDescriptor

logger = logging.getLogger(__name__)

PROVISION = "provision"
TITLE = "title"
CHAPTER = "chapter"


@dataclass
class SegmenterConfig:
    """Configuration for segmentation parameters."""
    # Character budget per fallback fragment
    fallback_max_chars: int = 1500
    # Characters borrowed from each neighbour by add_overlap_context()
    overlap_chars: int = 200


@dataclass
class Marker:
    """A boundary found by the marker scan."""
    kind: str        # "provision", "title" or "chapter"
    start: int
    end: int
    label: str       # full marker line for titles/chapters
    number: str = ""
    heading: str = ""


def normalize_text(text: str) -> str:
    """Unify line endings, collapse blank-line runs and horizontal whitespace, trim."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = re.sub(r"[^\S\n]+", " ", text)
    # Lines are trimmed so that line-anchored markers survive indentation
    text = "\n".join(line.strip() for line in text.split("\n"))
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


class ProvisionSegmenter:
    """
    Segments statute text into ordered provisions.

    Marker words and labels come from the language tables, so the same
    scanner handles "Article 9. Minimum term" and "Artículo 9. Plazo mínimo."
    """

    def __init__(
        self,
        config: Optional[SegmenterConfig] = None,
        language_config: Optional[LanguageConfig] = None,
    ):
        """Initialize segmenter with optional configuration and language support."""
        self.config = config or SegmenterConfig()
        self._language_config = language_config or LanguageConfig.for_language("en")
        self._lang = self._language_config.language

        self._provision_pattern = PROVISION_MARKERS.get(self._lang, PROVISION_MARKERS["en"])
        sections = SECTION_MARKERS.get(self._lang, SECTION_MARKERS["en"])
        self._title_pattern = sections[TITLE]
        self._chapter_pattern = sections[CHAPTER]
        self._labels = LABELS.get(self._lang, LABELS["en"])

    def segment(
        self,
        text: str,
        source: SourceDescriptor,
        source_file: str,
    ) -> list[Provision]:
        """
        Segment a raw document into provisions.

        Args:
            text: Raw document text
            source: Statute the document belongs to
            source_file: Originating file name, kept in metadata

        Returns:
            Ordered provisions; empty only when the text is empty
        """
        normalized = normalize_text(text or "")
        if not normalized:
            return []

        if not (source.group_code or "").strip():
            raise SegmentationError(f"Source for {source_file!r} has no group code")

        provisions = self._segment_by_markers(normalized, source, source_file)

        if not provisions:
            logger.info(
                f"No article markers in {source_file}, falling back to paragraph fragments"
            )
            provisions = self._segment_by_paragraphs(normalized, source, source_file)

        self._validate(provisions)
        logger.info(f"Segmented {source_file} ({source.group_code}) into {len(provisions)} provisions")
        return provisions

    # =========================================================================
    # Marker scan
    # =========================================================================

    def scan_markers(self, normalized: str) -> list[Marker]:
        """
        Find every article, title and chapter marker, ordered by offset.

        Args:
            normalized: Text already passed through normalize_text()
        """
        markers = []

        for match in self._provision_pattern.finditer(normalized):
            markers.append(Marker(
                kind=PROVISION,
                start=match.start(),
                end=match.end(),
                label=match.group(0).strip(),
                number=re.sub(r"\s+", " ", match.group("number")).strip(),
                heading=(match.group("heading") or "").strip(),
            ))

        for kind, pattern in ((TITLE, self._title_pattern), (CHAPTER, self._chapter_pattern)):
            for match in pattern.finditer(normalized):
                markers.append(Marker(
                    kind=kind,
                    start=match.start(),
                    end=match.end(),
                    label=match.group(0).strip(),
                ))

        markers.sort(key=lambda m: m.start)
        return markers

    @staticmethod
    def section_at(offset: int, positions: list[tuple[int, str]]) -> str:
        """Label of the nearest marker at or before offset, "" if none precedes it."""
        offsets = [position for position, _ in positions]
        index = bisect_right(offsets, offset)
        return positions[index - 1][1] if index else ""

    def _segment_by_markers(
        self,
        normalized: str,
        source: SourceDescriptor,
        source_file: str,
    ) -> list[Provision]:
        """Boundary parsing: one provision per article marker with a non-empty body."""
        markers = self.scan_markers(normalized)
        titles = [(m.start, m.label) for m in markers if m.kind == TITLE]
        chapters = [(m.start, m.label) for m in markers if m.kind == CHAPTER]

        provisions = []
        seen_ids: dict[str, int] = {}

        for i, marker in enumerate(markers):
            if marker.kind != PROVISION:
                continue

            body_end = markers[i + 1].start if i + 1 < len(markers) else len(normalized)
            content = normalized[marker.end:body_end].strip()
            if not marker.number or not content:
                continue

            metadata = ProvisionMetadata(
                group=source.group_code,
                group_full_name=source.group_full_name,
                label=self._labels["provision"].format(number=marker.number),
                heading=marker.heading,
                title=self.section_at(marker.start, titles),
                chapter=self.section_at(marker.start, chapters),
                source_file=source_file,
            )

            # Repeated article numbers get an occurrence suffix
            number_slug = re.sub(r"\s+", "", marker.number)
            base_id = f"{source.group_code}-art-{number_slug}"
            count = seen_ids.get(base_id, 0)
            seen_ids[base_id] = count + 1
            provision_id = base_id if count == 0 else f"{base_id}-{count}"

            provisions.append(Provision(
                id=provision_id,
                text=self._build_provision_text(metadata, content),
                metadata=metadata,
            ))

        return provisions

    def _build_provision_text(self, metadata: ProvisionMetadata, content: str) -> str:
        """Prefix the body with bracketed hierarchy lines and the article header."""
        parts = []
        if metadata.title:
            parts.append(f"[{metadata.title}]")
        if metadata.chapter:
            parts.append(f"[{metadata.chapter}]")
        parts.append(f"{metadata.label}. {metadata.heading}".rstrip())
        parts.append("")
        parts.append(content)
        return "\n".join(parts)

    # =========================================================================
    # Fallback
    # =========================================================================

    def _segment_by_paragraphs(
        self,
        normalized: str,
        source: SourceDescriptor,
        source_file: str,
    ) -> list[Provision]:
        """Greedily pack blank-line separated paragraphs into fixed-budget fragments."""
        max_chars = self.config.fallback_max_chars
        provisions = []
        current = ""

        def emit(body: str) -> None:
            index = len(provisions)
            provisions.append(Provision(
                id=f"{source.group_code}-chunk-{index}",
                text=body.strip(),
                metadata=ProvisionMetadata(
                    group=source.group_code,
                    group_full_name=source.group_full_name,
                    label=self._labels["fragment"].format(index=index + 1),
                    heading=self._labels["fragment_heading"],
                    source_file=source_file,
                ),
            ))

        for paragraph in re.split(r"\n\n+", normalized):
            if not paragraph.strip():
                continue
            if current and len(current) + len(paragraph) > max_chars:
                emit(current)
                current = ""
            current += paragraph + "\n\n"

        if current.strip():
            emit(current)

        return provisions

    # =========================================================================
    # Post-processing
    # =========================================================================

    def add_overlap_context(
        self,
        provisions: list[Provision],
        overlap_chars: Optional[int] = None,
    ) -> list[Provision]:
        """
        Wrap each provision with slices of its neighbours.

        Helps retrieval when an answer spans two adjacent articles. Returns new
        provisions; ids and metadata are unchanged and slices are always taken
        from the neighbours' original text.

        Args:
            provisions: Ordered provisions from segment()
            overlap_chars: Slice length, defaults to config.overlap_chars
        """
        size = self.config.overlap_chars if overlap_chars is None else overlap_chars
        if size <= 0:
            return list(provisions)

        preceding = self._labels["preceding_context"]
        following = self._labels["following_context"]
        result = []

        for i, provision in enumerate(provisions):
            parts = []
            if i > 0:
                parts.append(f"[{preceding}: ...{provisions[i - 1].text[-size:]}]")
                parts.append("")

            parts.append(provision.text)

            if i < len(provisions) - 1:
                parts.append("")
                parts.append(f"[{following}: {provisions[i + 1].text[:size]}...]")

            result.append(replace(provision, text="\n".join(parts)))

        return result

    def _validate(self, provisions: list[Provision]) -> None:
        """Enforce provision invariants before handing results out."""
        ids = set()
        for provision in provisions:
            if provision.id in ids:
                raise SegmentationError(f"Duplicate provision id: {provision.id}")
            if not provision.text.strip() or not provision.metadata.label:
                raise SegmentationError(f"Provision {provision.id} has empty text or label")
            ids.add(provision.id)


# CLI for testing
if __name__ == "__main__":
    import sys
    from pathlib import Path

    if len(sys.argv) < 3:
        print("Usage: python -m execution.legalbot.segmenter <txt_path> <group_code> [language]")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO)

    path = Path(sys.argv[1])
    language = sys.argv[3] if len(sys.argv) > 3 else "es"
    segmenter = ProvisionSegmenter(language_config=LanguageConfig.for_language(language))
    provisions = segmenter.segment(
        path.read_text(encoding="utf-8"),
        SourceDescriptor(group_code=sys.argv[2], group_full_name=path.stem),
        path.name,
    )

    print(f"\nCreated {len(provisions)} provisions:")
    for provision in provisions[:5]:
        print(f"\n--- {provision.id} ({provision.metadata.label}) ---")
        print(f"Title: {provision.metadata.title or '-'}")
        print(f"Chapter: {provision.metadata.chapter or '-'}")
        print(f"Preview: {provision.text[:200]}...")
