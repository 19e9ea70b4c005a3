"""Resolution of native links into viewer links."""

from ..logger import logger
from .backend import RenderBackend
from .errors import OperationFailedError
from .models import Link, LinkType, NativeLink, NativeLinkKind, Rectangle


def resolve_link(
    backend: RenderBackend,
    native: NativeLink | None,
    rectangle: Rectangle | None = None,
) -> Link | None:
    """Turn a native link into a URI or page link.

    Returns:
        The resolved link, or None for unsupported kinds and goto links whose
        page cannot be resolved.
    """
    if native is None:
        return None

    rectangle = rectangle if rectangle is not None else Rectangle()

    if native.kind is NativeLinkKind.URI:
        if native.destination is None:
            return None
        return Link(type=LinkType.URI, uri=str(native.destination), rectangle=rectangle)

    if native.kind is NativeLinkKind.GOTO:
        try:
            page_number = backend.resolve_page_number(native.destination)
        except OperationFailedError as e:
            logger.debug(
                "goto destination not resolved",
                destination=native.destination,
                error=str(e),
            )
            return None
        return Link(
            type=LinkType.GOTO_DEST, page_number=page_number, rectangle=rectangle
        )

    return None


def page_links(
    backend: RenderBackend, page_index: int, page_height: float
) -> list[Link]:
    """Resolve the links placed on a page.

    Link areas are flipped into top-down document space. Links of other
    kinds than URI and goto are left out.
    """
    links = []
    for native in backend.page_links(page_index):
        rectangle = Rectangle()
        if native.bbox is not None:
            rectangle = Rectangle(
                x1=native.bbox.x0,
                x2=native.bbox.x1,
                y1=page_height - native.bbox.y1,
                y2=page_height - native.bbox.y0,
            )

        link = resolve_link(backend, native, rectangle)
        if link is None:
            logger.debug(
                "skipping page link", page_index=page_index, kind=native.kind.value
            )
            continue
        links.append(link)

    return links
