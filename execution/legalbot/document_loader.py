"""
Statute Document Loader

Reads .txt and .pdf statute files (BOE consolidated texts) and works out
which statute each file belongs to using a static registry.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .models import SourceDescriptor

logger = logging.getLogger(__name__)

TXT = "txt"
PDF = "pdf"

# Characters of content inspected by detect_source()
DETECTION_WINDOW = 2000


@dataclass
class LoadedDocument:
    """Raw text of one statute file."""
    filename: str
    content: str
    format: str  # "txt" or "pdf"


# Known statutes: code -> full name and content keywords
STATUTE_REGISTRY = {
    "LAU": {
        "full_name": "Ley 29/1994, de 24 de noviembre, de Arrendamientos Urbanos",
        "patterns": ["arrendamientos", "alquiler", "inquilino", "arrendador"],
    },
    "LPH": {
        "full_name": "Ley 49/1960, de 21 de julio, sobre Propiedad Horizontal",
        "patterns": ["propiedad horizontal", "comunidad", "propietarios"],
    },
    "CC": {
        "full_name": "Código Civil - Libro IV, Título II (Contratos)",
        "patterns": ["código civil", "contrato", "obligaciones"],
    },
    "ITP": {
        "full_name": "Real Decreto Legislativo 1/1993, de 24 de septiembre, ITP/AJD",
        "patterns": ["transmisiones patrimoniales", "itp", "ajd", "impuesto"],
    },
}


def load_text_file(path: Union[str, Path]) -> LoadedDocument:
    """Load a UTF-8 text file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    return LoadedDocument(
        filename=path.name,
        content=path.read_text(encoding="utf-8"),
        format=TXT,
    )


def load_pdf_file(path: Union[str, Path]) -> LoadedDocument:
    """Extract the text layer of a PDF with PyMuPDF, pages joined by newlines."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")

    import fitz  # PyMuPDF

    with fitz.open(str(path)) as doc:
        content = "\n".join(page.get_text() for page in doc)

    return LoadedDocument(filename=path.name, content=content, format=PDF)


def load_documents_from_directory(directory: Union[str, Path]) -> list[LoadedDocument]:
    """
    Load every .txt and .pdf file in a directory, sorted by name.

    Files that fail to load are logged and skipped; other extensions are ignored.

    Raises:
        FileNotFoundError: if the directory does not exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Directory not found: {directory}")

    loaders = {".txt": load_text_file, ".pdf": load_pdf_file}
    documents = []

    for path in sorted(directory.iterdir()):
        loader = loaders.get(path.suffix.lower())
        if loader is None or not path.is_file():
            continue
        try:
            documents.append(loader(path))
        except Exception as e:
            logger.warning(f"Failed to load {path.name}: {e}")

    logger.info(f"Loaded {len(documents)} documents from {directory}")
    return documents


def detect_source(filename: str, content: str) -> SourceDescriptor:
    """
    Work out which statute a document belongs to.

    Checks registry codes against the filename first, then registry keywords
    against the start of the content. Unknown documents get the upper-cased
    file stem as their code.
    """
    lower_filename = filename.lower()
    for code, info in STATUTE_REGISTRY.items():
        if code.lower() in lower_filename:
            return SourceDescriptor(group_code=code, group_full_name=info["full_name"])

    lower_content = (content or "")[:DETECTION_WINDOW].lower()
    for code, info in STATUTE_REGISTRY.items():
        if any(pattern in lower_content for pattern in info["patterns"]):
            return SourceDescriptor(group_code=code, group_full_name=info["full_name"])

    return SourceDescriptor(
        group_code=Path(filename).stem.upper(),
        group_full_name=f"Document: {filename}",
    )
