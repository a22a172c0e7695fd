"""
Edit-Distance Scorer - bounded Levenshtein distance and the sliding-window
fuzzy locator built on it.
"""

import logging
from typing import Optional, Tuple

from rapidfuzz.distance import Levenshtein

from ..models import MatchCandidate, StrategyName

logger = logging.getLogger(__name__)

# Windows at or below this distance end the scan immediately
GOOD_ENOUGH_DISTANCE = 2

# The scan covers at most len(pattern) * SCAN_FACTOR window offsets
SCAN_FACTOR = 100


def levenshtein_distance(source: str, target: str, max_distance: Optional[int] = None) -> int:
    """
    Levenshtein distance between two strings (insert, delete, substitute = 1).

    Args:
        source: First string
        target: Second string
        max_distance: Optional bound. Once the distance is known to exceed it
            the computation stops and ``max_distance + 1`` is returned, so
            callers only learn that the bound was exceeded.

    Returns:
        The edit distance, or ``max_distance + 1`` when the bound is exceeded
    """
    return Levenshtein.distance(source, target, score_cutoff=max_distance)


def max_allowed_distance(pattern: str, tolerance_fraction: float) -> int:
    return int(len(pattern) * tolerance_fraction)


def _best_window_at(page_text: str, offset: int, pattern: str, bound: int) -> Optional[Tuple[int, int]]:
    """
    Best window starting at `offset` whose distance to `pattern` is <= bound.

    Window lengths range over len(pattern) +/- bound so that dropped or extra
    characters in the pattern do not push the match out of tolerance. Among
    equal distances the length closest to len(pattern) wins.

    Returns:
        (distance, window_length), or None when no window is within bound
    """
    pattern_length = len(pattern)
    longest = min(pattern_length + bound, len(page_text) - offset)
    lengths = range(max(1, pattern_length - bound), longest + 1)

    best: Optional[Tuple[int, int]] = None
    # Closest lengths first, so a later window only wins with a smaller distance
    for length in sorted(lengths, key=lambda n: abs(n - pattern_length)):
        distance = levenshtein_distance(page_text[offset:offset + length], pattern, bound)
        if distance > bound:
            continue
        if best is None or distance < best[0]:
            best = (distance, length)
            if distance == 0:
                break
    return best


def fuzzy_locate(page_text: str, pattern: str, tolerance_fraction: float,
                 page_number: int = 1) -> Optional[MatchCandidate]:
    """
    Slide a window over page_text and return the window with the smallest
    edit distance to pattern, provided it is within
    floor(len(pattern) * tolerance_fraction).

    The scan covers window starts 0 .. min(len(page_text) - len(pattern),
    len(pattern) * 100) and stops at the first qualifying window whose
    distance is 2 or less. Both texts must already be normalized and case
    folded by the caller.

    Returns:
        A Fuzzy MatchCandidate, or None when no window qualifies
    """
    if not pattern or len(pattern) > len(page_text) or tolerance_fraction <= 0:
        return None

    max_distance = max_allowed_distance(pattern, tolerance_fraction)
    last_offset = min(len(page_text) - len(pattern), len(pattern) * SCAN_FACTOR)

    best_offset = -1
    best_length = 0
    best_distance = max_distance + 1
    for offset in range(last_offset + 1):
        # Only windows strictly better than the current best are interesting
        window = _best_window_at(page_text, offset, pattern, best_distance - 1)
        if window is None:
            continue
        best_offset = offset
        best_distance, best_length = window
        if best_distance <= GOOD_ENOUGH_DISTANCE:
            break

    if best_offset < 0:
        return None

    logger.debug(f"Fuzzy window at offset {best_offset} with distance {best_distance} "
                 f"(allowed {max_distance})")
    return MatchCandidate(
        strategy=StrategyName.FUZZY,
        page_number=page_number,
        char_offset=best_offset,
        matched_substring=page_text[best_offset:best_offset + best_length],
        edit_distance=best_distance,
    )
