"""
Tests for mapping annotation instructions onto page text.

Covers validation (comment bodies, page restrictions), degenerate input,
page selection, per-instruction failure isolation and match events.
"""

import logging
import unittest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from snippet_annotator.models import (
    AnnotationKind,
    AnnotationSpec,
    MatchAttemptEvent,
    MatchOptions,
    PageText,
    ResultStatus,
    StrategyName,
)
from snippet_annotator.pdf_processor.annotation_geometry import LinePrimitive, RectPrimitive, TextPrimitive
from snippet_annotator.pdf_processor.annotation_mapper import (
    AnnotationMapper,
    build_report,
    log_match_event,
    run,
)

TWO_PAGES = [
    PageText(1, "Quarterly results.\nThe report shows total revenue of $5M for the year."),
    PageText(2, "Outlook.\nManagement expects growth in all regions next year."),
]


def _highlight(text, **kwargs):
    return AnnotationSpec(AnnotationKind.HIGHLIGHT, text, **kwargs)


class TestEndToEnd(unittest.TestCase):

    def test_results_in_input_order(self):
        specs = [
            _highlight("total revenue"),
            _highlight("zebras migrating across the savanna at dawn"),
            AnnotationSpec(AnnotationKind.COMMENT, "growth in all regions", comment_body="Optimistic?"),
        ]

        results = run(specs, TWO_PAGES, MatchOptions())

        self.assertEqual(len(results), 3)
        self.assertEqual([r.status for r in results],
                         [ResultStatus.OK, ResultStatus.NOT_FOUND, ResultStatus.OK])
        self.assertEqual([r.spec for r in results], specs)

        first, second, third = results
        self.assertEqual(first.rect.page_number, 1)
        self.assertEqual(first.matched_text, "total revenue")
        self.assertIs(first.strategy, StrategyName.EXACT)
        self.assertIsInstance(first.primitives[0], RectPrimitive)

        self.assertIsNone(second.rect)
        self.assertEqual(second.primitives, [])

        self.assertEqual(third.rect.page_number, 2)
        self.assertIsInstance(third.primitives[0], RectPrimitive)
        self.assertIsInstance(third.primitives[1], LinePrimitive)
        self.assertIsInstance(third.primitives[2], TextPrimitive)

    def test_failure_does_not_stop_later_instructions(self):
        specs = [
            AnnotationSpec(AnnotationKind.COMMENT, "total revenue", comment_body=""),
            _highlight("growth"),
        ]
        results = run(specs, TWO_PAGES)

        self.assertIs(results[0].status, ResultStatus.INVALID_SPEC)
        self.assertTrue(results[1].is_ok)


class TestValidation(unittest.TestCase):

    def test_empty_comment_body_is_invalid(self):
        spec = AnnotationSpec(AnnotationKind.COMMENT, "total revenue", comment_body="  ")
        result = run([spec], TWO_PAGES)[0]

        self.assertIs(result.status, ResultStatus.INVALID_SPEC)
        self.assertIn("comment body", result.error)

    def test_restrict_to_page_out_of_range(self):
        for page in (0, 3, -1):
            result = run([_highlight("total revenue")], TWO_PAGES, MatchOptions(restrict_to_page=page))[0]
            self.assertIs(result.status, ResultStatus.INVALID_SPEC, page)
            self.assertIn("Invalid page number", result.error)

    def test_spec_page_overrides_options(self):
        result = run([_highlight("total revenue", page_number=5)], TWO_PAGES)[0]
        self.assertIs(result.status, ResultStatus.INVALID_SPEC)

        result = run([_highlight("total revenue", page_number=2)], TWO_PAGES,
                     MatchOptions(tolerance_fraction=0.0))[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)

    def test_comment_checked_before_page(self):
        spec = AnnotationSpec(AnnotationKind.COMMENT, "x", comment_body="", page_number=9)
        result = run([spec], TWO_PAGES)[0]
        self.assertIn("comment body", result.error)

    def test_spec_case_sensitivity_override(self):
        options = MatchOptions(tolerance_fraction=0.0)
        self.assertTrue(run([_highlight("TOTAL REVENUE")], TWO_PAGES, options)[0].is_ok)

        result = run([_highlight("TOTAL REVENUE", case_sensitive=True)], TWO_PAGES, options)[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)


class TestDegenerateInput(unittest.TestCase):

    def test_empty_snippet_is_not_found(self):
        result = run([_highlight(" \n\t ")], TWO_PAGES)[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)
        self.assertEqual(result.error, "Empty snippet text")

    def test_snippet_longer_than_every_page(self):
        result = run([_highlight("total revenue " * 20)], TWO_PAGES)[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)

    def test_no_pages(self):
        result = run([_highlight("anything")], [])[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)


class TestPageSelection(unittest.TestCase):

    PAGES = [
        PageText(1, "Introduction to the survey."),
        PageText(2, "Section two repeats the key phrase: net promoter score."),
        PageText(3, "Nothing relevant here."),
        PageText(4, "Section four repeats the key phrase: net promoter score."),
    ]

    def test_first_match_reports_lowest_page(self):
        result = run([_highlight("net promoter score")], self.PAGES)[0]
        self.assertEqual(result.rect.page_number, 2)

    def test_restricted_to_later_page(self):
        result = run([_highlight("net promoter score")], self.PAGES, MatchOptions(restrict_to_page=4))[0]
        self.assertEqual(result.rect.page_number, 4)

    def test_gap_in_page_numbers(self):
        pages = [self.PAGES[0], self.PAGES[1], self.PAGES[3]]
        self.assertEqual(AnnotationMapper(pages).total_pages, 4)

        result = run([_highlight("net promoter score")], pages, MatchOptions(restrict_to_page=4))[0]
        self.assertTrue(result.is_ok)
        self.assertEqual(result.rect.page_number, 4)

        result = run([_highlight("net promoter score")], pages, MatchOptions(restrict_to_page=3))[0]
        self.assertIs(result.status, ResultStatus.NOT_FOUND)

    def test_page_size_used_for_layout(self):
        mapper = AnnotationMapper(self.PAGES, page_sizes={2: (842.0, 595.0)})
        self.assertEqual(mapper.page_size(2), (842.0, 595.0))
        self.assertEqual(mapper.page_size(3), (612.0, 792.0))

        spec = AnnotationSpec(AnnotationKind.COMMENT, "net promoter score", comment_body="NPS")
        result = mapper.map_annotations([spec])[0]
        self.assertEqual(result.primitives[0].x, 842.0 - 150)
        self.assertEqual(result.rect.y, 595.0 - 50)


class TestEvents(unittest.TestCase):

    def test_one_event_per_attempt(self):
        events = []
        pages = [PageText(1, "Cover."), PageText(2, "The important findings are here.")]

        run([_highlight("important findings")], pages, MatchOptions(tolerance_fraction=0.0),
            event_sink=events.append)

        self.assertEqual(
            [(e.spec_index, e.page_number, e.strategy, e.success) for e in events],
            [
                (0, 1, StrategyName.EXACT, False),
                (0, 1, StrategyName.RAW_FALLBACK, False),
                (0, 2, StrategyName.EXACT, True),
            ],
        )

    def test_fuzzy_event_carries_distance(self):
        events = []
        pages = [PageText(1, "The important findings are here.")]

        run([_highlight("importnt findngs")], pages, MatchOptions(tolerance_fraction=0.2),
            event_sink=events.append)

        self.assertTrue(events[-1].success)
        self.assertIs(events[-1].strategy, StrategyName.FUZZY)
        self.assertEqual(events[-1].edit_distance, 2)

    def test_no_events_for_rejected_instructions(self):
        events = []
        run([AnnotationSpec(AnnotationKind.COMMENT, "x")], TWO_PAGES, event_sink=events.append)
        self.assertEqual(events, [])

    def test_log_match_event(self):
        event = MatchAttemptEvent(spec_index=3, page_number=2, strategy=StrategyName.FUZZY,
                                  success=True, edit_distance=1)
        with self.assertLogs("snippet_annotator.pdf_processor.annotation_mapper", level=logging.DEBUG) as logs:
            log_match_event(event)
        self.assertIn("instruction #3: Fuzzy on page 2: hit (distance 1)", logs.output[0])


class TestReport(unittest.TestCase):

    def setUp(self):
        self.results = run(
            [
                _highlight("total revenue"),
                _highlight("zebras migrating across the savanna at dawn"),
                AnnotationSpec(AnnotationKind.COMMENT, "growth"),
            ],
            TWO_PAGES,
        )

    def test_not_found_skipped_by_default(self):
        report = build_report(self.results)

        self.assertEqual(report.applied_count, 1)
        self.assertTrue(report.success)
        self.assertEqual(len(report.warnings), 1)
        self.assertIn("comment", report.warnings[0])

    def test_not_found_reported_on_request(self):
        report = build_report(self.results, MatchOptions(skip_not_found=False))
        self.assertEqual(len(report.warnings), 2)
        self.assertTrue(any("zebras" in w for w in report.warnings))

    def test_to_dict(self):
        data = build_report(self.results, output_path="out.pdf").to_dict()

        self.assertEqual(data["applied"], 1)
        self.assertEqual(data["total"], 3)
        self.assertEqual(data["output_path"], "out.pdf")
        self.assertEqual(data["results"][0]["strategy"], "Exact")
        self.assertEqual(data["results"][0]["instruction"], {"type": "highlight", "text": "total revenue"})
        self.assertEqual(data["results"][1]["status"], "not_found")
        self.assertEqual(data["results"][2]["status"], "invalid_spec")


if __name__ == '__main__':
    unittest.main()
