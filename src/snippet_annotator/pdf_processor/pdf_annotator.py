"""
PDF Annotator - draw located annotations into PDF files
This module uses PyMuPDF (fitz) to render highlight, underline and comment
primitives onto the pages they were located on.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import fitz  # PyMuPDF

from ..models import AnnotationReport, AnnotationResult, AnnotationSpec, MatchOptions
from .annotation_geometry import LinePrimitive, Primitive, RectPrimitive, TextPrimitive
from .annotation_mapper import EventSink, build_report, run
from .text_extractor import ExtractedDocument, extract_document

logger = logging.getLogger(__name__)


class PDFAnnotator:
    """Class to handle drawing annotations into PDF files"""

    def __init__(self, pdf_path: str):
        self.pdf_path = Path(pdf_path)
        self.doc: Optional[fitz.Document] = None

    def open_pdf(self) -> bool:
        """
        Open the PDF file for processing

        Returns:
            True if successful, False otherwise
        """
        try:
            self.doc = fitz.open(str(self.pdf_path))
            return True
        except Exception as e:
            logger.error(f"Error opening PDF {self.pdf_path}: {e}")
            return False

    def close_pdf(self):
        """Close the PDF document"""
        if self.doc:
            self.doc.close()
            self.doc = None

    def extract_pages(self) -> ExtractedDocument:
        if not self.doc:
            raise RuntimeError("PDF document not opened")
        return extract_document(self.doc)

    def apply_results(self, results: Iterable[AnnotationResult]) -> int:
        """
        Draw every successfully located annotation

        Args:
            results: Results from the annotation mapper

        Returns:
            Number of annotations drawn
        """
        if not self.doc:
            logger.error("PDF document not opened")
            return 0

        added_count = 0
        for result in results:
            if not result.is_ok:
                continue
            try:
                if self._draw_result(result):
                    added_count += 1
            except Exception as e:
                logger.warning(f"Failed to draw {result.spec.kind.value} annotation: {e}")
                continue

        logger.info(f"Drew {added_count} annotations into {self.pdf_path.name}")
        return added_count

    def _draw_result(self, result: AnnotationResult) -> bool:
        page_index = result.rect.page_number - 1
        if page_index < 0 or page_index >= len(self.doc):
            logger.warning(f"Invalid page number: {result.rect.page_number}")
            return False

        page = self.doc[page_index]
        for primitive in result.primitives:
            self._draw_primitive(page, primitive)
        return True

    def _draw_primitive(self, page: fitz.Page, primitive: Primitive):
        # Primitives use a bottom-left origin, PyMuPDF a top-left one
        page_height = page.rect.height

        if isinstance(primitive, RectPrimitive):
            rect = fitz.Rect(
                primitive.x,
                page_height - (primitive.y + primitive.height),
                primitive.x + primitive.width,
                page_height - primitive.y,
            )
            shape = page.new_shape()
            shape.draw_rect(rect)
            shape.finish(
                color=primitive.border_color,
                fill=primitive.fill,
                width=primitive.border_width,
                fill_opacity=primitive.opacity,
            )
            shape.commit()
        elif isinstance(primitive, LinePrimitive):
            shape = page.new_shape()
            shape.draw_line(
                fitz.Point(primitive.start[0], page_height - primitive.start[1]),
                fitz.Point(primitive.end[0], page_height - primitive.end[1]),
            )
            shape.finish(
                color=primitive.color,
                width=primitive.thickness,
                stroke_opacity=primitive.opacity,
            )
            shape.commit()
        elif isinstance(primitive, TextPrimitive):
            page.insert_text(
                fitz.Point(primitive.x, page_height - primitive.y),
                primitive.text,
                fontname=primitive.font_name,
                fontsize=primitive.font_size,
                color=primitive.color,
            )
        else:
            raise TypeError(f"Unsupported primitive: {primitive!r}")

    def save_pdf(self, output_path: Optional[str] = None) -> bool:
        if not self.doc:
            logger.error("No document to save")
            return False

        save_path = Path(output_path) if output_path else self.default_output_path()

        try:
            self.doc.save(str(save_path), garbage=4, deflate=True, clean=True)
            logger.info(f"PDF saved to {save_path}")
            return True
        except Exception as e:
            logger.error(f"Error saving PDF to {save_path}: {e}")
            return False

    def default_output_path(self) -> Path:
        return self.pdf_path.with_name(f"{self.pdf_path.stem}_annotated.pdf")


def annotate_pdf_file(pdf_path: str, specs: List[AnnotationSpec],
                      output_path: Optional[str] = None,
                      options: Optional[MatchOptions] = None,
                      event_sink: Optional[EventSink] = None) -> AnnotationReport:
    """
    Locate and draw annotations in a PDF file.

    Args:
        pdf_path: Path to the input PDF file.
        specs: Annotation instructions, applied in order.
        output_path: Optional path to write the annotated PDF. If None, writes next to input.
        options: Matching options for the whole run.
        event_sink: Optional callable receiving one event per strategy attempt.

    Returns:
        AnnotationReport. The annotated PDF is only written when at least one
        annotation was drawn; `output_path` on the report is set on save.
    """
    annotator = PDFAnnotator(pdf_path)
    if not annotator.open_pdf():
        raise FileNotFoundError(f"Failed to open PDF: {pdf_path}")

    try:
        document = annotator.extract_pages()
        results = run(specs or [], document.pages, options, document.page_sizes, event_sink)
        report = build_report(results, options)

        added = annotator.apply_results(results)
        if added <= 0:
            logger.warning("No annotations were added to the PDF; not saving output.")
            return report

        save_path = output_path or str(annotator.default_output_path())
        if annotator.save_pdf(save_path):
            report.output_path = save_path
        return report
    finally:
        annotator.close_pdf()
