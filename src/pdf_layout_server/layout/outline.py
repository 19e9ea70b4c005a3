"""Conversion of a document outline into a navigable index tree."""

from collections.abc import Sequence

from ..logger import logger
from .backend import RenderBackend
from .errors import InvalidArgumentsError, OperationFailedError
from .links import resolve_link
from .models import IndexNode, OutlineEntry

ROOT_TITLE = "ROOT"


def build_index(
    backend: RenderBackend,
    entries: Sequence[OutlineEntry],
    root: IndexNode,
) -> None:
    """Append the outline entries below ``root``, depth first.

    An entry whose link is unsupported or cannot be resolved is left out
    together with all of its children; its siblings are still converted.

    Raises:
        InvalidArgumentsError: If backend or root is missing.
    """
    if backend is None or root is None:
        raise InvalidArgumentsError("index building requires a backend and a root node")

    for entry in entries or ():
        link = resolve_link(backend, entry.link)
        if link is None:
            logger.debug(
                "skipping outline entry",
                title=entry.title,
                kind=entry.link.kind.value if entry.link else None,
            )
            continue

        node = root.append(entry.title, link)
        if entry.children:
            build_index(backend, entry.children, node)


def _count_nodes(node: IndexNode) -> int:
    return sum(1 + _count_nodes(child) for child in node.children)


def generate_index(backend: RenderBackend) -> IndexNode:
    """Build the index tree of a document.

    Returns:
        A synthetic root node without link holding the converted outline.

    Raises:
        InvalidArgumentsError: If no backend is given.
        OperationFailedError: If the document has no outline.
    """
    if backend is None:
        raise InvalidArgumentsError("index generation requires a document")

    outline = backend.load_outline()
    if outline is None:
        raise OperationFailedError("Document has no outline")

    root = IndexNode(title=ROOT_TITLE)
    build_index(backend, outline, root)

    logger.info(
        "index generated",
        top_level_entries=len(outline),
        index_nodes=_count_nodes(root),
    )
    return root
