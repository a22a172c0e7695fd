"""
Match Strategies - the ordered chain of matchers tried on every page.

Strategy order (first hit on a page wins):
1. Exact match on normalized text
2. Partial match on the first 50 normalized characters (pattern > 50 chars)
3. Partial match on the first 30 normalized characters (pattern > 30 chars)
4. Fuzzy match with bounded Levenshtein distance (tolerance > 0)
5. Raw fallback: exact match on the un-normalized texts

Every candidate reports offsets into the page's normalized text, whichever
text the strategy actually searched.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from ..models import MatchCandidate, MatchOptions, PageText, StrategyName
from .edit_distance import fuzzy_locate
from .normalizer import fold_case, normalize_text, normalized_offset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnippetQuery:
    """A snippet to locate, kept in both raw and normalized form."""

    raw: str
    normalized: str

    @classmethod
    def from_text(cls, text: str) -> "SnippetQuery":
        return cls(raw=text or "", normalized=normalize_text(text or ""))

    @property
    def is_empty(self) -> bool:
        return not self.normalized


def _candidate_from_offset(strategy: StrategyName, page: PageText, offset: int,
                           length: int, edit_distance: Optional[int] = None) -> MatchCandidate:
    # Folding is length-preserving, so the original-case slice lines up
    return MatchCandidate(
        strategy=strategy,
        page_number=page.page_number,
        char_offset=offset,
        matched_substring=page.normalized_text[offset:offset + length],
        edit_distance=edit_distance,
    )


def _find_prefix(page: PageText, query: SnippetQuery, options: MatchOptions,
                 strategy: StrategyName, length: Optional[int] = None) -> Optional[MatchCandidate]:
    needle = query.normalized if length is None else query.normalized[:length]
    if not needle:
        return None
    haystack = fold_case(page.normalized_text, options.case_sensitive)
    index = haystack.find(fold_case(needle, options.case_sensitive))
    if index < 0:
        return None
    return _candidate_from_offset(strategy, page, index, len(needle))


def find_exact(page: PageText, query: SnippetQuery, options: MatchOptions) -> Optional[MatchCandidate]:
    return _find_prefix(page, query, options, StrategyName.EXACT)


def find_partial_50(page: PageText, query: SnippetQuery, options: MatchOptions) -> Optional[MatchCandidate]:
    return _find_prefix(page, query, options, StrategyName.PARTIAL_50, 50)


def find_partial_30(page: PageText, query: SnippetQuery, options: MatchOptions) -> Optional[MatchCandidate]:
    return _find_prefix(page, query, options, StrategyName.PARTIAL_30, 30)


def find_fuzzy(page: PageText, query: SnippetQuery, options: MatchOptions) -> Optional[MatchCandidate]:
    folded = fuzzy_locate(
        fold_case(page.normalized_text, options.case_sensitive),
        fold_case(query.normalized, options.case_sensitive),
        options.tolerance_fraction,
        page_number=page.page_number,
    )
    if folded is None:
        return None
    return _candidate_from_offset(
        StrategyName.FUZZY, page, folded.char_offset,
        len(folded.matched_substring), folded.edit_distance,
    )


def find_raw(page: PageText, query: SnippetQuery, options: MatchOptions) -> Optional[MatchCandidate]:
    """Exact search on the un-normalized texts, for inputs normalization harmed."""
    if not query.raw:
        return None
    raw_page = fold_case(page.raw_text, options.case_sensitive)
    raw_index = raw_page.find(fold_case(query.raw, options.case_sensitive))
    if raw_index < 0:
        return None

    # Leading whitespace of the query is trimmed away by normalization
    start = raw_index + len(query.raw) - len(query.raw.lstrip())
    offset = normalized_offset(page.raw_text, start)
    length = len(normalize_text(page.raw_text[start:raw_index + len(query.raw)]))
    length = min(length, len(page.normalized_text) - offset)
    if length <= 0:
        return None
    return _candidate_from_offset(StrategyName.RAW_FALLBACK, page, offset, length)


@dataclass(frozen=True)
class MatchStrategy:
    name: StrategyName
    find: Callable[[PageText, SnippetQuery, MatchOptions], Optional[MatchCandidate]]
    applies: Callable[[SnippetQuery, MatchOptions], bool]


STRATEGY_CHAIN: List[MatchStrategy] = [
    MatchStrategy(StrategyName.EXACT, find_exact, lambda q, o: True),
    MatchStrategy(StrategyName.PARTIAL_50, find_partial_50, lambda q, o: len(q.normalized) > 50),
    MatchStrategy(StrategyName.PARTIAL_30, find_partial_30, lambda q, o: len(q.normalized) > 30),
    MatchStrategy(StrategyName.FUZZY, find_fuzzy, lambda q, o: o.tolerance_fraction > 0),
    MatchStrategy(StrategyName.RAW_FALLBACK, find_raw, lambda q, o: True),
]

# (page_number, strategy, candidate or None) for every strategy actually attempted
AttemptCallback = Callable[[int, StrategyName, Optional[MatchCandidate]], None]


def locate(page: PageText, query: SnippetQuery, options: MatchOptions,
           on_attempt: Optional[AttemptCallback] = None,
           chain: Sequence[MatchStrategy] = STRATEGY_CHAIN) -> Optional[MatchCandidate]:
    """
    Run the strategy chain on a single page.

    Returns:
        The candidate of the first strategy that succeeds, or None
    """
    if query.is_empty:
        return None

    for strategy in chain:
        if not strategy.applies(query, options):
            continue
        candidate = strategy.find(page, query, options)
        if on_attempt is not None:
            on_attempt(page.page_number, strategy.name, candidate)
        if candidate is not None:
            logger.debug(f"✓ {strategy.name.value} match on page {page.page_number} "
                         f"at offset {candidate.char_offset}")
            return candidate
        logger.debug(f"✗ {strategy.name.value} failed on page {page.page_number}")
    return None


def select_pages(pages: Iterable[PageText], options: MatchOptions) -> List[PageText]:
    """Pages permitted by the options, in ascending page-number order."""
    ordered = sorted(pages, key=lambda p: p.page_number)
    if options.restrict_to_page is not None:
        return [p for p in ordered if p.page_number == options.restrict_to_page]
    return ordered


def search_pages(pages: Iterable[PageText], query: SnippetQuery, options: MatchOptions,
                 on_attempt: Optional[AttemptCallback] = None) -> Optional[MatchCandidate]:
    """
    Search the permitted pages for the snippet.

    With first_match_only the first page yielding any candidate wins. Otherwise
    every page is searched and the candidate of the highest-ranked strategy is
    kept, ties going to the lowest page number.
    """
    best: Optional[MatchCandidate] = None
    for page in select_pages(pages, options):
        candidate = locate(page, query, options, on_attempt)
        if candidate is None:
            continue
        if options.first_match_only:
            return candidate
        if best is None or candidate.strategy.rank < best.strategy.rank:
            best = candidate
    return best
