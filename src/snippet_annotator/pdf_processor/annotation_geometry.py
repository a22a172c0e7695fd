"""
Annotation Geometry Builder - derive drawable primitives from an annotation
kind and an estimated rectangle.

Shapes per kind:
- highlight: one filled rectangle padded by 2pt around the text
- underline: one 1.5pt line 2pt below the text baseline
- comment: a 140x60 callout box in the right margin, a thin connector line
  from the end of the text to the box, and up to 5 word-wrapped text lines

Coordinates use the bottom-left page origin, like EstimatedRect.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import fitz  # PyMuPDF

from ..models import AnnotationKind, AnnotationSpec, EstimatedRect, InvalidSpecError
from .position_estimator import DEFAULT_PAGE_SIZE

RGB = Tuple[float, float, float]
BLACK: RGB = (0.0, 0.0, 0.0)

HIGHLIGHT_PADDING = 2.0
HIGHLIGHT_DEFAULT_OPACITY = 0.3

UNDERLINE_OFFSET = 2.0
UNDERLINE_THICKNESS = 1.5
UNDERLINE_DEFAULT_OPACITY = 1.0

CALLOUT_WIDTH = 140.0
CALLOUT_HEIGHT = 60.0
CALLOUT_RIGHT_OFFSET = 150.0  # box starts this far left of the page's right edge
CALLOUT_DEFAULT_OPACITY = 0.8
CALLOUT_BORDER_WIDTH = 1.0
CALLOUT_TEXT_PADDING = 5.0
CALLOUT_FIRST_LINE_OFFSET = 45.0  # from the bottom of the box
CALLOUT_LINE_SPACING = 10.0
CALLOUT_MAX_LINES = 5
CONNECTOR_ANCHOR_RISE = 6.0
CONNECTOR_THICKNESS = 0.5
CONNECTOR_OPACITY = 0.5

COMMENT_FONT_NAME = "helv"  # PyMuPDF built-in Helvetica
COMMENT_FONT_SIZE = 8.0


@dataclass(frozen=True)
class RectPrimitive:
    x: float
    y: float
    width: float
    height: float
    fill: RGB
    opacity: float
    border_color: Optional[RGB] = None
    border_width: float = 0.0


@dataclass(frozen=True)
class LinePrimitive:
    start: Tuple[float, float]
    end: Tuple[float, float]
    thickness: float
    color: RGB
    opacity: float


@dataclass(frozen=True)
class TextPrimitive:
    x: float
    y: float
    text: str
    font_size: float = COMMENT_FONT_SIZE
    font_name: str = COMMENT_FONT_NAME
    color: RGB = BLACK


Primitive = Union[RectPrimitive, LinePrimitive, TextPrimitive]


def measure_text(text: str, font_size: float = COMMENT_FONT_SIZE,
                 font_name: str = COMMENT_FONT_NAME) -> float:
    return fitz.get_text_length(text, fontname=font_name, fontsize=font_size)


def wrap_comment_text(text: str, max_width: float = CALLOUT_WIDTH - 2 * CALLOUT_TEXT_PADDING,
                      font_size: float = COMMENT_FONT_SIZE,
                      font_name: str = COMMENT_FONT_NAME) -> List[str]:
    """
    Greedy word wrap: keep adding words to the current line while the line
    stays narrower than max_width. A single word wider than max_width gets a
    line of its own.
    """
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if measure_text(candidate, font_size, font_name) < max_width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def _highlight(spec: AnnotationSpec, rect: EstimatedRect) -> List[Primitive]:
    color = spec.effective_color
    return [RectPrimitive(
        x=rect.x - HIGHLIGHT_PADDING,
        y=rect.y - HIGHLIGHT_PADDING,
        width=rect.width + 2 * HIGHLIGHT_PADDING,
        height=rect.height + 2 * HIGHLIGHT_PADDING,
        fill=color.rgb,
        opacity=color.opacity(HIGHLIGHT_DEFAULT_OPACITY),
    )]


def _underline(spec: AnnotationSpec, rect: EstimatedRect) -> List[Primitive]:
    color = spec.effective_color
    y = rect.y - UNDERLINE_OFFSET
    return [LinePrimitive(
        start=(rect.x, y),
        end=(rect.x + rect.width, y),
        thickness=UNDERLINE_THICKNESS,
        color=color.rgb,
        opacity=color.opacity(UNDERLINE_DEFAULT_OPACITY),
    )]


def _comment(spec: AnnotationSpec, rect: EstimatedRect, page_width: float) -> List[Primitive]:
    body = (spec.comment_body or "").strip()
    if not body:
        raise InvalidSpecError("Comment annotation requires a non-empty comment body")

    color = spec.effective_color
    box_x = page_width - CALLOUT_RIGHT_OFFSET
    box_top = rect.y
    box_bottom = box_top - CALLOUT_HEIGHT

    primitives: List[Primitive] = [
        RectPrimitive(
            x=box_x,
            y=box_bottom,
            width=CALLOUT_WIDTH,
            height=CALLOUT_HEIGHT,
            fill=color.rgb,
            opacity=color.opacity(CALLOUT_DEFAULT_OPACITY),
            border_color=BLACK,
            border_width=CALLOUT_BORDER_WIDTH,
        ),
        LinePrimitive(
            start=(rect.x + rect.width, rect.y + CONNECTOR_ANCHOR_RISE),
            end=(box_x, box_top - CALLOUT_HEIGHT / 2),
            thickness=CONNECTOR_THICKNESS,
            color=BLACK,
            opacity=CONNECTOR_OPACITY,
        ),
    ]

    # Lines past the fifth do not fit the box and are dropped
    lines = wrap_comment_text(body)[:CALLOUT_MAX_LINES]
    for index, line in enumerate(lines):
        primitives.append(TextPrimitive(
            x=box_x + CALLOUT_TEXT_PADDING,
            y=box_bottom + CALLOUT_FIRST_LINE_OFFSET - index * CALLOUT_LINE_SPACING,
            text=line,
        ))
    return primitives


def build(spec: AnnotationSpec, rect: EstimatedRect,
          page_width: float = DEFAULT_PAGE_SIZE[0]) -> List[Primitive]:
    """
    Build the primitives for one annotation.

    Raises:
        InvalidSpecError: for a comment without a comment body
    """
    if spec.kind is AnnotationKind.HIGHLIGHT:
        return _highlight(spec, rect)
    if spec.kind is AnnotationKind.UNDERLINE:
        return _underline(spec, rect)
    if spec.kind is AnnotationKind.COMMENT:
        return _comment(spec, rect, page_width)
    raise InvalidSpecError(f"Unsupported annotation type: {spec.kind}")
