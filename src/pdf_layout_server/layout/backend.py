"""Rendering backend contract and its PyMuPDF implementation."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path

import fitz  # PyMuPDF

from ..logger import logger
from .errors import InvalidPasswordError, OperationFailedError
from .models import (
    BoundingBox,
    NativeLink,
    NativeLinkKind,
    OutlineEntry,
    TextChar,
    TextRun,
)

_LINK_KINDS = {
    fitz.LINK_NONE: NativeLinkKind.NONE,
    fitz.LINK_GOTO: NativeLinkKind.GOTO,
    fitz.LINK_URI: NativeLinkKind.URI,
    fitz.LINK_LAUNCH: NativeLinkKind.LAUNCH,
    fitz.LINK_NAMED: NativeLinkKind.NAMED,
    fitz.LINK_GOTOR: NativeLinkKind.GOTO_REMOTE,
}

# Metadata keys PyMuPDF adds that are not part of the document's Info dictionary
_DERIVED_METADATA_KEYS = frozenset({"format", "encryption"})


class RenderBackend(ABC):
    """Read-only view of a parsed document as needed by the layout engine."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        """Number of pages in the document."""

    @property
    def encrypted(self) -> bool:
        """Whether opening the document required a password."""
        return False

    @abstractmethod
    def page_height(self, page_index: int) -> float:
        """Height of a page in points; stable for the lifetime of the page."""

    @abstractmethod
    def render_text_runs(self, page_index: int) -> list[TextRun]:
        """Run the page's content through a text-collecting device.

        Returns:
            The page's text runs in reading order, boxes in PDF space.

        Raises:
            OperationFailedError: If the page content could not be processed.
        """

    @abstractmethod
    def load_outline(self) -> list[OutlineEntry] | None:
        """Return the top-level outline entries, or None without an outline."""

    @abstractmethod
    def resolve_page_number(self, destination: str | int | None) -> int:
        """Map a goto destination to a zero-based page index.

        Raises:
            OperationFailedError: If the destination does not name a page.
        """

    @abstractmethod
    def page_links(self, page_index: int) -> list[NativeLink]:
        """Return the page's unresolved links with boxes in PDF space."""

    @abstractmethod
    def metadata(self) -> dict[str, str]:
        """Return the document information dictionary."""

    def close(self) -> None:
        pass


def _to_pdf_space(bbox: Sequence[float], page_height: float) -> BoundingBox:
    """Convert a PyMuPDF (top-down) box to PDF space (bottom-up)."""
    x0, y0, x1, y1 = bbox
    return BoundingBox(x0=x0, y0=page_height - y1, x1=x1, y1=page_height - y0)


def _native_link(info: dict, bbox: BoundingBox | None = None) -> NativeLink:
    """Convert a PyMuPDF link or outline destination dict."""
    kind = _LINK_KINDS.get(info.get("kind"), NativeLinkKind.NONE)
    if kind is NativeLinkKind.URI:
        destination = info.get("uri")
    else:
        destination = info.get("page")
    return NativeLink(kind=kind, destination=destination, bbox=bbox)


class PyMuPDFBackend(RenderBackend):
    """Backend reading pages, outline and links through PyMuPDF."""

    def __init__(self, document: fitz.Document, encrypted: bool = False):
        self._doc = document
        self._encrypted = encrypted

    @classmethod
    def open(
        cls, file_path: str | Path, password: str | None = None
    ) -> "PyMuPDFBackend":
        """Open a PDF file, authenticating if it is encrypted.

        Raises:
            FileNotFoundError: If the file does not exist.
            OperationFailedError: If the file cannot be parsed.
            InvalidPasswordError: If the password is missing or wrong.
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"PDF file not found: {file_path}")

        try:
            document = fitz.open(file_path)
        except RuntimeError as e:
            logger.error("failed to open pdf", file_path=str(file_path), error=str(e))
            raise OperationFailedError(f"Cannot open document: {file_path}") from e

        encrypted = document.needs_pass
        if encrypted:
            if password is None or not document.authenticate(password):
                document.close()
                raise InvalidPasswordError(f"Invalid password for {file_path}")

        return cls(document, encrypted=encrypted)

    @property
    def encrypted(self) -> bool:
        return self._encrypted

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    def page_height(self, page_index: int) -> float:
        return self._doc[page_index].rect.height

    def render_text_runs(self, page_index: int) -> list[TextRun]:
        page = self._doc[page_index]
        height = page.rect.height

        try:
            raw = page.get_text("rawdict")
        except RuntimeError as e:
            raise OperationFailedError(
                f"Text extraction failed on page {page_index}"
            ) from e

        runs: list[TextRun] = []
        for block in raw.get("blocks", []):
            if block.get("type") != 0:  # Skip image blocks
                continue

            for line in block.get("lines", []):
                spans = line.get("spans", [])
                for position, span in enumerate(spans):
                    characters = [
                        TextChar(
                            code_point=ord(char["c"][0]),
                            bbox=_to_pdf_space(char["bbox"], height),
                        )
                        for char in span.get("chars", [])
                        if char.get("c")
                    ]
                    runs.append(
                        TextRun(
                            characters=characters,
                            ends_line=position == len(spans) - 1,
                        )
                    )

        return runs

    def load_outline(self) -> list[OutlineEntry] | None:
        toc = self._doc.get_toc(simple=False)
        if not toc:
            return None

        roots: list[OutlineEntry] = []
        # Innermost open entry per level, outermost first
        parents: list[OutlineEntry] = []
        for level, title, _page, dest in toc:
            entry = OutlineEntry(title=title or "", link=_native_link(dest))
            del parents[level - 1 :]
            if parents:
                parents[-1].children.append(entry)
            else:
                roots.append(entry)
            parents.append(entry)
        return roots

    def resolve_page_number(self, destination: str | int | None) -> int:
        if isinstance(destination, int) and 0 <= destination < self._doc.page_count:
            return destination
        raise OperationFailedError(f"Unresolvable destination: {destination!r}")

    def page_links(self, page_index: int) -> list[NativeLink]:
        page = self._doc[page_index]
        height = page.rect.height

        return [
            _native_link(link, _to_pdf_space(link["from"], height))
            for link in page.get_links()
        ]

    def metadata(self) -> dict[str, str]:
        return {
            key: value
            for key, value in (self._doc.metadata or {}).items()
            if key not in _DERIVED_METADATA_KEYS and isinstance(value, str) and value
        }

    def close(self) -> None:
        self._doc.close()
