"""Plain-text extraction for uploaded documents (.txt, .md, .pdf)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from live_context.exceptions import ExtractionFailedException, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

Extractor = Callable[[Path], str]


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise UnsupportedFileTypeError(f"{path.name} is not UTF-8 text") from exc


def _read_pdf(path: Path) -> str:
    try:
        from PyPDF2 import PdfReader
    except ImportError as exc:
        raise UnsupportedFileTypeError(
            "PDF support requires the 'pdf' extra (PyPDF2)"
        ) from exc

    reader = PdfReader(str(path))
    pages = [page.extract_text() or "" for page in reader.pages]
    return "\n\n".join(pages)


EXTRACTORS: dict[str, Extractor] = {
    ".txt": _read_text,
    ".md": _read_text,
    ".pdf": _read_pdf,
}


def extract_text(path: str | Path) -> str:
    """Return the plain text of *path*.

    Unknown suffixes are attempted as UTF-8 text.  Every failure surfaces
    as :class:`ExtractionFailedException` (or its subclass).
    """
    path = Path(path)
    extractor = EXTRACTORS.get(path.suffix.lower(), _read_text)
    try:
        return extractor(path)
    except ExtractionFailedException:
        raise
    except Exception as exc:
        raise ExtractionFailedException(f"{path.name}: {exc}") from exc
