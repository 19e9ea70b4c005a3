"""Document and page lifecycle for the layout engine."""

from pathlib import Path

from ..logger import logger
from .backend import PyMuPDFBackend, RenderBackend
from .errors import InvalidArgumentsError
from .models import DocumentInformationEntry, DocumentInformationType, IndexNode
from .outline import generate_index
from .page import TextPage

_INFORMATION_TYPES = {
    "title": DocumentInformationType.TITLE,
    "author": DocumentInformationType.AUTHOR,
    "subject": DocumentInformationType.SUBJECT,
    "creator": DocumentInformationType.CREATOR,
    "producer": DocumentInformationType.PRODUCER,
    "creationDate": DocumentInformationType.CREATION_DATE,
    "modDate": DocumentInformationType.MODIFICATION_DATE,
}


class LayoutDocument:
    """An open document with its page cache."""

    def __init__(self, backend: RenderBackend, file_path: str | None = None):
        if backend is None:
            raise InvalidArgumentsError("document requires a backend")

        self.backend = backend
        self.file_path = file_path
        self._pages: dict[int, TextPage] = {}

    @property
    def page_count(self) -> int:
        return self.backend.page_count

    @property
    def encrypted(self) -> bool:
        return self.backend.encrypted

    def page(self, index: int) -> TextPage:
        """Return the page at ``index``, initializing it on first access."""
        if index < 0 or index >= self.page_count:
            raise InvalidArgumentsError(
                f"Page index {index} out of range (0-{self.page_count - 1})"
            )

        page = self._pages.get(index)
        if page is None:
            page = TextPage(self.backend, index)
            self._pages[index] = page
        return page

    def clear_page(self, index: int) -> None:
        """Drop a page and its extracted text."""
        page = self._pages.pop(index, None)
        if page is not None:
            page.clear()

    def index(self) -> IndexNode:
        return generate_index(self.backend)

    def information(self) -> list[DocumentInformationEntry]:
        """Translate the document's metadata into typed entries."""
        return [
            DocumentInformationEntry(
                type=_INFORMATION_TYPES.get(key, DocumentInformationType.OTHER),
                value=value,
            )
            for key, value in self.backend.metadata().items()
            if isinstance(value, str) and value
        ]

    def close(self) -> None:
        for index in list(self._pages):
            self.clear_page(index)
        self.backend.close()

    def __enter__(self) -> "LayoutDocument":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def open_document(file_path: str | Path, password: str | None = None) -> LayoutDocument:
    """Open a PDF file for searching, text extraction and index generation.

    Raises:
        FileNotFoundError: If the file does not exist.
        OperationFailedError: If the file cannot be parsed.
        InvalidPasswordError: If the document is encrypted and the password
            is missing or wrong.
    """
    backend = PyMuPDFBackend.open(file_path, password)
    logger.info(
        "document opened", file_path=str(file_path), page_count=backend.page_count
    )
    return LayoutDocument(backend, str(file_path))
