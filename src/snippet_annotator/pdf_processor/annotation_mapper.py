"""
Annotation Mapper - map annotation instructions onto page text and geometry.

For each instruction, in input order: validate it, locate the snippet with
the strategy chain, estimate its rectangle and build the primitives to draw.
One instruction failing never stops the others; every instruction gets
exactly one AnnotationResult.
"""

import logging
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import (
    AnnotationKind,
    AnnotationReport,
    AnnotationResult,
    AnnotationSpec,
    InvalidSpecError,
    MatchAttemptEvent,
    MatchCandidate,
    MatchOptions,
    PageText,
    ResultStatus,
    StrategyName,
)
from ..text_matcher.strategies import SnippetQuery, search_pages, select_pages
from .annotation_geometry import build
from .position_estimator import DEFAULT_PAGE_SIZE, estimate

logger = logging.getLogger(__name__)

EventSink = Callable[[MatchAttemptEvent], None]


def log_match_event(event: MatchAttemptEvent) -> None:
    """Event sink that forwards strategy attempts to the logging module."""
    outcome = "hit" if event.success else "miss"
    extra = f" (distance {event.edit_distance})" if event.edit_distance is not None else ""
    logger.debug(f"instruction #{event.spec_index}: {event.strategy.value} on page "
                 f"{event.page_number}: {outcome}{extra}")


class AnnotationMapper:
    """Maps annotation instructions to located, drawable annotations"""

    def __init__(self, pages: Sequence[PageText],
                 page_sizes: Optional[Mapping[int, Tuple[float, float]]] = None,
                 options: Optional[MatchOptions] = None,
                 event_sink: Optional[EventSink] = None):
        self.pages: List[PageText] = sorted(pages, key=lambda p: p.page_number)
        self.page_sizes: Dict[int, Tuple[float, float]] = dict(page_sizes or {})
        self.options = options or MatchOptions()
        self.event_sink = event_sink

    @property
    def total_pages(self) -> int:
        # Page numbers may have gaps when the caller passes a subset of pages
        return max((p.page_number for p in self.pages), default=0)

    def page_size(self, page_number: int) -> Tuple[float, float]:
        return self.page_sizes.get(page_number, DEFAULT_PAGE_SIZE)

    def map_annotations(self, specs: Iterable[AnnotationSpec]) -> List[AnnotationResult]:
        """
        Locate and lay out every instruction.

        Args:
            specs: Annotation instructions, processed in order

        Returns:
            One AnnotationResult per instruction, in input order
        """
        results = []
        for index, spec in enumerate(specs):
            result = self._map_single_annotation(index, spec)
            results.append(result)

            if result.is_ok:
                logger.info(f"Located {spec.kind.value} #{index} on page {result.rect.page_number} "
                            f"via {result.strategy.value}")
            elif result.status is ResultStatus.INVALID_SPEC:
                logger.warning(f"Rejected {spec.kind.value} #{index}: {result.error}")
            elif spec.match_options(self.options).log_not_found:
                logger.warning(f"Failed to locate {spec.kind.value} #{index} "
                               f"\"{spec.source_text[:50]}\": {result.error}")

        found = sum(1 for r in results if r.is_ok)
        logger.info(f"Annotation mapping complete: {found}/{len(results)} located")
        return results

    def _map_single_annotation(self, index: int, spec: AnnotationSpec) -> AnnotationResult:
        options = spec.match_options(self.options)
        try:
            self._validate(spec, options)
        except InvalidSpecError as e:
            return AnnotationResult.invalid(spec, str(e))

        query = SnippetQuery.from_text(spec.source_text)
        if query.is_empty:
            return AnnotationResult.not_found(spec, "Empty snippet text")

        permitted = select_pages(self.pages, options)
        if not permitted:
            return AnnotationResult.not_found(spec)
        if len(query.normalized) > max(len(p.normalized_text) for p in permitted):
            return AnnotationResult.not_found(spec, "Snippet is longer than the text of any searched page")

        candidate = search_pages(permitted, query, options, self._attempt_callback(index))
        if candidate is None:
            return AnnotationResult.not_found(spec)

        return self._lay_out(spec, candidate)

    def _validate(self, spec: AnnotationSpec, options: MatchOptions) -> None:
        if spec.kind is AnnotationKind.COMMENT and not (spec.comment_body or "").strip():
            raise InvalidSpecError("Comment annotation requires a non-empty comment body")

        page = options.restrict_to_page
        if page is not None and not 1 <= page <= self.total_pages:
            raise InvalidSpecError(f"Invalid page number: {page}. "
                                   f"Document has {self.total_pages} pages.")

    def _attempt_callback(self, index: int):
        if self.event_sink is None:
            return None

        def on_attempt(page_number: int, strategy: StrategyName,
                       candidate: Optional[MatchCandidate]) -> None:
            self.event_sink(MatchAttemptEvent(
                spec_index=index,
                page_number=page_number,
                strategy=strategy,
                success=candidate is not None,
                edit_distance=candidate.edit_distance if candidate is not None else None,
            ))

        return on_attempt

    def _lay_out(self, spec: AnnotationSpec, candidate: MatchCandidate) -> AnnotationResult:
        page_width, page_height = self.page_size(candidate.page_number)
        rect = estimate(candidate.page_number, candidate.char_offset,
                        candidate.matched_substring, (page_width, page_height))
        try:
            primitives = build(spec, rect, page_width)
        except InvalidSpecError as e:
            return AnnotationResult.invalid(spec, str(e))

        return AnnotationResult(
            spec=spec,
            status=ResultStatus.OK,
            rect=rect,
            matched_text=candidate.matched_substring,
            strategy=candidate.strategy,
            candidate=candidate,
            primitives=primitives,
        )


def run(specs: Iterable[AnnotationSpec], pages: Sequence[PageText],
        options: Optional[MatchOptions] = None,
        page_sizes: Optional[Mapping[int, Tuple[float, float]]] = None,
        event_sink: Optional[EventSink] = None) -> List[AnnotationResult]:
    """Convenience wrapper: map `specs` against `pages` with one AnnotationMapper."""
    return AnnotationMapper(pages, page_sizes, options, event_sink).map_annotations(specs)


def build_report(results: List[AnnotationResult], options: Optional[MatchOptions] = None,
                 output_path: Optional[str] = None) -> AnnotationReport:
    """
    Collect results into a report. Failed instructions become warnings unless
    the run-wide options ask to skip not-found instructions; rejected
    instructions always do.
    """
    options = options or MatchOptions()
    warnings = []
    for result in results:
        if result.is_ok:
            continue
        if result.status is ResultStatus.NOT_FOUND and options.skip_not_found:
            continue
        warnings.append(f"Failed to apply {result.spec.kind.value} annotation for text "
                        f"\"{result.spec.source_text}\": {result.error}")
    return AnnotationReport(results=results, warnings=warnings, output_path=output_path)
