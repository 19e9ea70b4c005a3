"""Per-page text state: lazily extracted runs plus the queries over them."""

import time
from enum import Enum

from ..logger import logger
from .backend import RenderBackend
from .errors import InvalidArgumentsError, OperationFailedError
from .links import page_links
from .models import Link, Rectangle, TextRun
from .text_spans import extract_text, search_text


class ExtractionState(str, Enum):
    NOT_EXTRACTED = "not_extracted"
    EXTRACTED = "extracted"


class TextPage:
    """Text model of one page.

    The text runs are pulled from the backend on the first search or text
    extraction and reused afterwards, until the page is cleared. The page
    does not lock itself: callers serialize access to a given page.
    """

    def __init__(self, backend: RenderBackend, index: int):
        if backend is None:
            raise InvalidArgumentsError("page requires a document backend")

        self.backend = backend
        self.index = index
        self.height = backend.page_height(index)
        self.state = ExtractionState.NOT_EXTRACTED
        self.runs: list[TextRun] = []

    @property
    def extracted(self) -> bool:
        return self.state is ExtractionState.EXTRACTED

    def extract(self) -> list[TextRun]:
        """Run the one-time extraction pass and return the page's runs.

        Raises:
            OperationFailedError: If the backend fails; the page stays
                unextracted so a later call retries the pass.
        """
        if self.state is ExtractionState.EXTRACTED:
            return self.runs

        start = time.perf_counter()
        try:
            runs = self.backend.render_text_runs(self.index)
        except OperationFailedError as e:
            logger.error("text extraction failed", page_index=self.index, error=str(e))
            raise

        self.runs = runs
        self.state = ExtractionState.EXTRACTED

        logger.info(
            "page text extracted",
            page_index=self.index,
            runs=len(runs),
            characters=sum(len(run.characters) for run in runs),
            duration_ms=round((time.perf_counter() - start) * 1000, 1),
        )
        return self.runs

    def search(self, pattern: str) -> list[Rectangle]:
        """Return a highlight rectangle for every occurrence of ``pattern``."""
        if pattern is None:
            raise InvalidArgumentsError("search requires a pattern")

        results = search_text(self.extract(), pattern, self.height)
        logger.debug(
            "page searched", page_index=self.index, pattern=pattern, matches=len(results)
        )
        return results

    def get_text(self, rectangle: Rectangle) -> str | None:
        """Return the text inside a document-space rectangle, or None."""
        if rectangle is None:
            raise InvalidArgumentsError("text extraction requires a rectangle")
        return extract_text(self.extract(), rectangle, self.height)

    def links(self) -> list[Link]:
        return page_links(self.backend, self.index, self.height)

    def clear(self) -> None:
        self.runs = []
        self.state = ExtractionState.NOT_EXTRACTED
