"""
Position Estimator - turn a character offset into an on-page rectangle.

Page text arrives without glyph coordinates, so the rectangle is an
estimate: a fixed left margin, one 20pt line step per 100 characters of
normalized text from a 700pt top baseline, and a 6pt average glyph width.
It is stable and monotonic in the offset, which is enough to draw a visible
mark, but it does not follow the true text layout.
"""

from typing import Tuple

from ..models import EstimatedRect

LEFT_MARGIN = 50.0
TOP_MARGIN = 700.0
BOTTOM_MARGIN = 50.0
TOP_INSET = 50.0
CHARS_PER_LINE = 100
LINE_STEP = 20.0
AVERAGE_GLYPH_WIDTH = 6.0
LINE_HEIGHT = 12.0

# US Letter, used when the caller does not know the page size
DEFAULT_PAGE_SIZE: Tuple[float, float] = (612.0, 792.0)


def estimate(page_number: int, char_offset: int, matched_substring: str,
             page_size: Tuple[float, float] = DEFAULT_PAGE_SIZE) -> EstimatedRect:
    """
    Estimate where matched text sits on its page.

    Args:
        page_number: 1-based page number
        char_offset: Offset of the match in the page's normalized text
        matched_substring: The matched text (only its length is used)
        page_size: (width, height) of the page in points

    Returns:
        EstimatedRect in bottom-left-origin page coordinates
    """
    _, page_height = page_size
    y = TOP_MARGIN - (max(0, char_offset) // CHARS_PER_LINE) * LINE_STEP

    upper = max(BOTTOM_MARGIN, page_height - TOP_INSET)
    y = min(max(y, BOTTOM_MARGIN), upper)

    return EstimatedRect(
        page_number=page_number,
        x=LEFT_MARGIN,
        y=y,
        width=len(matched_substring) * AVERAGE_GLYPH_WIDTH,
        height=LINE_HEIGHT,
    )
