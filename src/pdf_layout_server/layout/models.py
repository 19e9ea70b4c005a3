"""Data model shared by the text search engine and the outline builder."""

from enum import Enum

from pydantic import BaseModel, Field


class BoundingBox(BaseModel):
    """A box in PDF space (origin bottom-left, y grows upward)."""

    x0: float
    y0: float
    x1: float
    y1: float


class TextChar(BaseModel):
    """A single positioned character emitted by the rendering backend."""

    code_point: int
    bbox: BoundingBox


class TextRun(BaseModel):
    """A contiguous run of characters in reading order.

    A run with ``ends_line`` set closes a visual line; the flattened text
    stream carries one virtual space after its last character.
    """

    characters: list[TextChar] = Field(default_factory=list)
    ends_line: bool = False

    @property
    def text(self) -> str:
        return "".join(chr(c.code_point) for c in self.characters)


class Rectangle(BaseModel):
    """Axis-aligned rectangle given by two corners.

    Search results are returned in document space (origin top-left).
    """

    x1: float = 0.0
    y1: float = 0.0
    x2: float = 0.0
    y2: float = 0.0


class LinkType(str, Enum):
    URI = "uri"
    GOTO_DEST = "goto_dest"


class Link(BaseModel):
    """A resolved link target, either an external URI or a page in the document."""

    type: LinkType
    rectangle: Rectangle = Field(default_factory=Rectangle)
    uri: str | None = None
    page_number: int | None = None


class NativeLinkKind(str, Enum):
    """Link kinds as reported by the rendering backend."""

    NONE = "none"
    GOTO = "goto"
    URI = "uri"
    LAUNCH = "launch"
    NAMED = "named"
    GOTO_REMOTE = "gotor"


class NativeLink(BaseModel):
    """An unresolved link straight from the document.

    ``destination`` is a URI string for URI links and a backend-specific page
    reference for goto links.
    """

    kind: NativeLinkKind
    destination: str | int | None = None
    bbox: BoundingBox | None = None


class OutlineEntry(BaseModel):
    """One bookmark of the document's native outline forest."""

    title: str
    link: NativeLink | None = None
    children: list["OutlineEntry"] = Field(default_factory=list)


class IndexNode(BaseModel):
    """A node of the navigable index tree handed to the viewer."""

    title: str
    link: Link | None = None
    children: list["IndexNode"] = Field(default_factory=list)

    def append(self, title: str, link: Link | None = None) -> "IndexNode":
        node = IndexNode(title=title, link=link)
        self.children.append(node)
        return node


class DocumentInformationType(str, Enum):
    TITLE = "title"
    AUTHOR = "author"
    SUBJECT = "subject"
    CREATOR = "creator"
    PRODUCER = "producer"
    CREATION_DATE = "creation_date"
    MODIFICATION_DATE = "modification_date"
    OTHER = "other"


class DocumentInformationEntry(BaseModel):
    type: DocumentInformationType
    value: str
