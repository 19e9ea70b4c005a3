"""Character-level search over a page's text runs.

The runs of a page are addressed as one flattened character stream in
which every run that ends a visual line is followed by a virtual space.
The stream is never materialized; every lookup walks the runs.
"""

from collections.abc import Sequence

from .errors import InvalidArgumentsError, OutOfMemoryError
from .models import BoundingBox, Rectangle, TextRun

SPACE = 0x20
NO_CHARACTER = 0
CONTROL_REPLACEMENT = "?"


def _fold(code_point: int) -> int:
    """ASCII-only lower casing."""
    if 0x41 <= code_point <= 0x5A:
        return code_point + 0x20
    return code_point


def char_at(runs: Sequence[TextRun], index: int) -> int:
    """Return the code point at a virtual index.

    Line-end positions read as a space. Indices past the end of the stream
    return ``NO_CHARACTER``.
    """
    if index < 0:
        return NO_CHARACTER

    offset = 0
    for run in runs:
        length = len(run.characters)
        if index < offset + length:
            return run.characters[index - offset].code_point

        if run.ends_line:
            if index == offset + length:
                return SPACE
            offset += 1

        offset += length

    return NO_CHARACTER


def text_length(runs: Sequence[TextRun]) -> int:
    """Length of the virtual stream: all characters plus one per line end."""
    length = 0
    for run in runs:
        length += len(run.characters)
        if run.ends_line:
            length += 1
    return length


def _char_box(runs: Sequence[TextRun], index: int) -> BoundingBox | None:
    # Virtual spaces have no box of their own.
    if index < 0:
        return None

    offset = 0
    for run in runs:
        length = len(run.characters)
        if index < offset + length:
            return run.characters[index - offset].bbox

        if run.ends_line:
            if index == offset + length:
                return None
            offset += 1

        offset += length

    return None


def _add_char(rectangle: Rectangle, runs: Sequence[TextRun], index: int) -> None:
    """Fold the box of the character at ``index`` into ``rectangle``.

    The left edge and the bottom edge are taken from the first character
    that sets them; the right and top edges grow to the extremes seen.
    """
    box = _char_box(runs, index)
    if box is None:
        return

    if rectangle.x1 == 0:
        rectangle.x1 = box.x0

    if box.x1 > rectangle.x2:
        rectangle.x2 = box.x1

    if box.y1 > rectangle.y1:
        rectangle.y1 = box.y1

    if rectangle.y2 == 0:
        rectangle.y2 = box.y0


def match_at(
    runs: Sequence[TextRun],
    pattern: str,
    start_index: int,
    rectangle: Rectangle,
) -> int:
    """Try to match ``pattern`` at ``start_index`` of the virtual stream.

    Matching is ASCII case-insensitive. A space in the pattern consumes a
    whole run of consecutive spaces in the stream, so line ends and wide
    gaps match a single space. Matched characters are folded into
    ``rectangle`` as they are consumed, also on a failed attempt.

    Returns:
        The number of stream positions consumed, or 0 when there is no match.
    """
    if runs is None or pattern is None or rectangle is None:
        return 0

    index = start_index
    for character in pattern:
        code_point = ord(character)

        if code_point == SPACE and char_at(runs, index) == SPACE:
            while char_at(runs, index) == SPACE:
                _add_char(rectangle, runs, index)
                index += 1
            continue

        current = char_at(runs, index)
        if current == NO_CHARACTER or _fold(code_point) != _fold(current):
            return 0

        _add_char(rectangle, runs, index)
        index += 1

    return index - start_index


def search_text(
    runs: Sequence[TextRun], pattern: str, page_height: float
) -> list[Rectangle]:
    """Find every occurrence of ``pattern`` and return its highlight rectangle.

    Every start position is tried, so overlapping occurrences are all
    reported. Rectangles are flipped into top-down document space.

    Raises:
        InvalidArgumentsError: If runs or pattern is missing.
        OutOfMemoryError: If the result list could not be built.
    """
    if runs is None or pattern is None:
        raise InvalidArgumentsError("search requires text runs and a pattern")

    results: list[Rectangle] = []
    try:
        for i in range(text_length(runs)):
            rectangle = Rectangle()
            if match_at(runs, pattern, i, rectangle) == 0:
                continue

            rectangle.y1 = page_height - rectangle.y1
            rectangle.y2 = page_height - rectangle.y2
            results.append(rectangle)
    except MemoryError as e:
        raise OutOfMemoryError("out of memory while collecting search results") from e

    return results


def extract_text(
    runs: Sequence[TextRun], rectangle: Rectangle, page_height: float
) -> str | None:
    """Collect the characters whose boxes fall inside a document-space rectangle.

    Control characters are replaced with ``?``. A newline follows every
    line-ending run that contributed at least one character.

    Returns:
        The collected text, or None when no character was hit.
    """
    if runs is None or rectangle is None:
        raise InvalidArgumentsError("text extraction requires text runs and a rectangle")

    parts: list[str] = []
    for run in runs:
        seen = False

        for char in run.characters:
            box = char.bbox
            if (
                box.x1 >= rectangle.x1
                and box.x0 <= rectangle.x2
                and page_height - box.y1 >= rectangle.y1
                and page_height - box.y0 <= rectangle.y2
            ):
                if char.code_point < 32:
                    parts.append(CONTROL_REPLACEMENT)
                else:
                    parts.append(chr(char.code_point))
                seen = True

        if seen and run.ends_line:
            parts.append("\n")

    if not parts:
        return None
    return "".join(parts)
