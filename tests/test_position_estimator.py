"""Tests for the offset-to-rectangle estimate."""

import unittest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from snippet_annotator.pdf_processor.position_estimator import (
    AVERAGE_GLYPH_WIDTH,
    BOTTOM_MARGIN,
    LEFT_MARGIN,
    LINE_HEIGHT,
    estimate,
)


class TestEstimate(unittest.TestCase):

    def test_first_line(self):
        rect = estimate(1, 0, "total revenue")

        self.assertEqual(rect.page_number, 1)
        self.assertEqual(rect.x, LEFT_MARGIN)
        self.assertEqual(rect.y, 700)
        self.assertEqual(rect.width, len("total revenue") * AVERAGE_GLYPH_WIDTH)
        self.assertEqual(rect.height, LINE_HEIGHT)

    def test_one_line_step_per_hundred_characters(self):
        self.assertEqual(estimate(1, 99, "x").y, 700)
        self.assertEqual(estimate(1, 100, "x").y, 680)
        self.assertEqual(estimate(1, 250, "x").y, 660)

    def test_clamped_to_bottom_margin(self):
        self.assertEqual(estimate(1, 1_000_000, "x").y, BOTTOM_MARGIN)

    def test_clamped_below_top_of_short_page(self):
        rect = estimate(1, 0, "x", page_size=(400, 300))
        self.assertEqual(rect.y, 250)

    def test_monotonic_in_offset(self):
        ys = [estimate(2, offset, "abc").y for offset in range(0, 5000, 37)]
        self.assertEqual(ys, sorted(ys, reverse=True))

    def test_deterministic(self):
        self.assertEqual(estimate(3, 1234, "snippet"), estimate(3, 1234, "snippet"))

    def test_to_dict(self):
        self.assertEqual(
            estimate(1, 0, "ab").to_dict(),
            {"page_number": 1, "x": 50.0, "y": 700.0, "width": 12.0, "height": 12.0},
        )


if __name__ == '__main__':
    unittest.main()
