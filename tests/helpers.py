"""Test doubles shared by the layout tests."""

from pdf_layout_server.layout import (
    BoundingBox,
    NativeLink,
    OperationFailedError,
    OutlineEntry,
    RenderBackend,
    TextChar,
    TextRun,
)


def make_run(
    text: str,
    ends_line: bool = False,
    x: float = 50.0,
    y: float = 100.0,
    width: float = 10.0,
    height: float = 12.0,
) -> TextRun:
    """Build a run of equally wide characters on one baseline (PDF space)."""
    characters = []
    for i, c in enumerate(text):
        x0 = x + i * width
        characters.append(
            TextChar(
                code_point=ord(c),
                bbox=BoundingBox(x0=x0, y0=y, x1=x0 + width, y1=y + height),
            )
        )
    return TextRun(characters=characters, ends_line=ends_line)


class StubBackend(RenderBackend):
    """In-memory backend that counts extraction passes."""

    def __init__(
        self,
        runs: list[TextRun] | None = None,
        page_count: int = 3,
        height: float = 800.0,
        outline: list[OutlineEntry] | None = None,
        links: list[NativeLink] | None = None,
        metadata: dict[str, str] | None = None,
        fail: bool = False,
    ):
        self.runs = runs or []
        self._page_count = page_count
        self.height = height
        self.outline = outline
        self.links = links or []
        self.info = metadata or {}
        self.fail = fail
        self.render_calls = 0
        self.closed = False

    @property
    def page_count(self) -> int:
        return self._page_count

    def page_height(self, page_index: int) -> float:
        return self.height

    def render_text_runs(self, page_index: int) -> list[TextRun]:
        self.render_calls += 1
        if self.fail:
            raise OperationFailedError("content stream error")
        return list(self.runs)

    def load_outline(self) -> list[OutlineEntry] | None:
        return self.outline

    def resolve_page_number(self, destination) -> int:
        if isinstance(destination, int) and 0 <= destination < self._page_count:
            return destination
        raise OperationFailedError(f"Unresolvable destination: {destination!r}")

    def page_links(self, page_index: int) -> list[NativeLink]:
        return self.links

    def metadata(self) -> dict[str, str]:
        return self.info

    def close(self) -> None:
        self.closed = True
