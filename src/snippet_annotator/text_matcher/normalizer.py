"""
Text Normalizer - canonicalize extracted text before comparison.

PDF text extraction breaks lines mid-sentence, doubles spaces and keeps
typographic punctuation, while snippets written by people or language models
usually do not. Both sides go through `normalize_text` before matching.
Case folding is kept separate so a case-sensitive caller still sees the
original casing of the matched text.
"""

import re

_WHITESPACE_RUN = re.compile(r"\s+")

# Curly single quotes -> apostrophe, curly double quotes -> '"', en/em dash -> '-'
_PUNCTUATION_MAP = str.maketrans({
    "\u2018": "'",
    "\u2019": "'",
    "\u201c": '"',
    "\u201d": '"',
    "\u2013": "-",
    "\u2014": "-",
})


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text)


def normalize_text(text: str) -> str:
    """
    Normalize text for matching:
    - collapse every whitespace run (newlines, tabs, CR included) to one space
    - map curly quotes to ASCII quotes
    - map en/em dashes to '-'
    - trim leading and trailing whitespace

    Idempotent: normalize_text(normalize_text(x)) == normalize_text(x).
    """
    if not text:
        return ""
    text = collapse_whitespace(text)
    text = text.translate(_PUNCTUATION_MAP)
    return text.strip()


def fold_case(text: str, case_sensitive: bool) -> str:
    """
    Lower-case `text` unless `case_sensitive` is set.

    Characters whose lower-case form is longer than one character are kept
    as-is, so offsets in the folded text are valid in the original text.
    """
    if case_sensitive:
        return text
    folded = text.lower()
    if len(folded) == len(text):
        return folded
    return "".join(ch if len(ch.lower()) != 1 else ch.lower() for ch in text)


def normalized_offset(raw_text: str, raw_offset: int) -> int:
    """
    Translate an offset into `raw_text` into the matching offset of
    normalize_text(raw_text).

    Punctuation mapping is length-preserving, so only whitespace collapsing
    and the leading trim move offsets.
    """
    prefix = collapse_whitespace(raw_text[:raw_offset]).lstrip()
    return min(len(prefix), len(normalize_text(raw_text)))
