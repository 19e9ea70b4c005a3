from .backend import PyMuPDFBackend, RenderBackend
from .document import LayoutDocument, open_document
from .errors import (
    InvalidArgumentsError,
    InvalidPasswordError,
    LayoutError,
    OperationFailedError,
    OutOfMemoryError,
)
from .links import page_links, resolve_link
from .models import (
    BoundingBox,
    DocumentInformationEntry,
    DocumentInformationType,
    IndexNode,
    Link,
    LinkType,
    NativeLink,
    NativeLinkKind,
    OutlineEntry,
    Rectangle,
    TextChar,
    TextRun,
)
from .outline import build_index, generate_index
from .page import ExtractionState, TextPage
from .text_spans import char_at, extract_text, match_at, search_text, text_length

__all__ = [
    # Models
    "BoundingBox",
    "TextChar",
    "TextRun",
    "Rectangle",
    "Link",
    "LinkType",
    "NativeLink",
    "NativeLinkKind",
    "OutlineEntry",
    "IndexNode",
    "DocumentInformationEntry",
    "DocumentInformationType",
    # Errors
    "LayoutError",
    "InvalidArgumentsError",
    "InvalidPasswordError",
    "OperationFailedError",
    "OutOfMemoryError",
    # Text search
    "char_at",
    "text_length",
    "match_at",
    "search_text",
    "extract_text",
    # Outline and links
    "build_index",
    "generate_index",
    "resolve_link",
    "page_links",
    # Backend
    "RenderBackend",
    "PyMuPDFBackend",
    # Pages and documents
    "ExtractionState",
    "TextPage",
    "LayoutDocument",
    "open_document",
]
