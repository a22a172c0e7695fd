"""
Data model for snippet location and annotation placement.

All coordinates are PDF points with the origin at the bottom-left corner of
the page. Page numbers are 1-based throughout.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Any, Dict, List, Optional, Tuple

from .text_matcher.normalizer import normalize_text


class InvalidSpecError(ValueError):
    """Raised when an annotation instruction violates the caller contract."""


class AnnotationKind(str, Enum):
    HIGHLIGHT = "highlight"
    UNDERLINE = "underline"
    COMMENT = "comment"

    @classmethod
    def parse(cls, value: Any) -> "AnnotationKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidSpecError(f"Unknown annotation type: {value!r}") from None


class StrategyName(str, Enum):
    """Match strategies, declared in the order they are attempted."""

    EXACT = "Exact"
    PARTIAL_50 = "Partial50"
    PARTIAL_30 = "Partial30"
    FUZZY = "Fuzzy"
    RAW_FALLBACK = "RawFallback"

    @property
    def rank(self) -> int:
        return list(StrategyName).index(self)


class ResultStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID_SPEC = "invalid_spec"


@dataclass(frozen=True)
class AnnotationColor:
    """RGB color with optional alpha, every channel in [0, 1]"""

    r: float
    g: float
    b: float
    a: Optional[float] = None

    def __post_init__(self):
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if value is None and name == "a":
                continue
            if not 0.0 <= float(value) <= 1.0:
                raise InvalidSpecError(f"Color channel {name}={value} outside [0, 1]")

    @property
    def rgb(self) -> Tuple[float, float, float]:
        return (self.r, self.g, self.b)

    def opacity(self, default: float) -> float:
        """Alpha channel, or `default` when the caller left it unset."""
        return self.a if self.a is not None else default

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnnotationColor":
        try:
            return cls(
                r=float(data["r"]),
                g=float(data["g"]),
                b=float(data["b"]),
                a=float(data["a"]) if data.get("a") is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidSpecError(f"Invalid color {data!r}: {e}") from None

    def to_dict(self) -> Dict[str, Any]:
        return {"r": self.r, "g": self.g, "b": self.b, "a": self.a}


DEFAULT_COLORS: Dict[AnnotationKind, AnnotationColor] = {
    AnnotationKind.HIGHLIGHT: AnnotationColor(1.0, 1.0, 0.0, 0.3),  # yellow
    AnnotationKind.UNDERLINE: AnnotationColor(1.0, 0.0, 0.0, 1.0),  # red
    AnnotationKind.COMMENT: AnnotationColor(0.0, 0.5, 1.0, 0.8),  # blue
}


@dataclass(frozen=True)
class PageText:
    """Extracted plain text of one page. `normalized_text` is computed once."""

    page_number: int
    raw_text: str

    def __post_init__(self):
        if int(self.page_number) < 1:
            raise ValueError(f"Page numbers are 1-based, got {self.page_number}")

    @cached_property
    def normalized_text(self) -> str:
        return normalize_text(self.raw_text)


@dataclass(frozen=True)
class MatchOptions:
    """
    Options controlling how snippets are matched against page text.

    tolerance_fraction: maximum edit distance as a fraction of pattern length
    case_sensitive: compare without case folding
    first_match_only: stop at the first page that yields any candidate
    restrict_to_page: only search this page (1-based)
    skip_not_found: do not turn not-found instructions into report warnings
    log_not_found: log not-found instructions at WARNING level
    """

    tolerance_fraction: float = 0.15
    case_sensitive: bool = False
    first_match_only: bool = True
    restrict_to_page: Optional[int] = None
    skip_not_found: bool = True
    log_not_found: bool = True

    def __post_init__(self):
        if not 0.0 <= self.tolerance_fraction <= 1.0:
            raise ValueError(f"tolerance_fraction must be in [0, 1], got {self.tolerance_fraction}")


@dataclass(frozen=True)
class MatchCandidate:
    strategy: StrategyName
    page_number: int
    char_offset: int
    matched_substring: str
    edit_distance: Optional[int] = None

    @property
    def end_offset(self) -> int:
        return self.char_offset + len(self.matched_substring)


@dataclass(frozen=True)
class EstimatedRect:
    page_number: int
    x: float
    y: float
    width: float
    height: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_number": self.page_number,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
        }


@dataclass(frozen=True)
class AnnotationSpec:
    """
    One annotation instruction supplied by the caller.

    `page_number` and `case_sensitive`, when set, override the run-wide
    MatchOptions for this instruction only.
    """

    kind: AnnotationKind
    source_text: str
    color: Optional[AnnotationColor] = None
    comment_body: Optional[str] = None
    page_number: Optional[int] = None
    case_sensitive: Optional[bool] = None

    @property
    def effective_color(self) -> AnnotationColor:
        return self.color if self.color is not None else DEFAULT_COLORS[self.kind]

    def match_options(self, options: MatchOptions) -> MatchOptions:
        overrides: Dict[str, Any] = {}
        if self.page_number is not None:
            overrides["restrict_to_page"] = self.page_number
        if self.case_sensitive is not None:
            overrides["case_sensitive"] = self.case_sensitive
        if not overrides:
            return options
        return replace(options, **overrides)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.kind.value, "text": self.source_text}
        if self.color is not None:
            data["color"] = self.color.to_dict()
        if self.comment_body is not None:
            data["comment"] = self.comment_body
        if self.page_number is not None:
            data["page"] = self.page_number
        if self.case_sensitive is not None:
            data["caseSensitive"] = self.case_sensitive
        return data


@dataclass(frozen=True)
class MatchAttemptEvent:
    """One strategy attempt on one page, emitted for observability."""

    spec_index: int
    page_number: int
    strategy: StrategyName
    success: bool
    edit_distance: Optional[int] = None


@dataclass
class AnnotationResult:
    spec: AnnotationSpec
    status: ResultStatus
    rect: Optional[EstimatedRect] = None
    matched_text: Optional[str] = None
    strategy: Optional[StrategyName] = None
    candidate: Optional[MatchCandidate] = None
    primitives: List[Any] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def is_ok(self) -> bool:
        return self.status is ResultStatus.OK

    @classmethod
    def not_found(cls, spec: AnnotationSpec, reason: str = "Text not found in document") -> "AnnotationResult":
        return cls(spec=spec, status=ResultStatus.NOT_FOUND, error=reason)

    @classmethod
    def invalid(cls, spec: AnnotationSpec, reason: str) -> "AnnotationResult":
        return cls(spec=spec, status=ResultStatus.INVALID_SPEC, error=reason)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "instruction": self.spec.to_dict(),
            "status": self.status.value,
            "success": self.is_ok,
        }
        if self.is_ok:
            data["matched_text"] = self.matched_text
            data["strategy"] = self.strategy.value if self.strategy else None
            data["position"] = self.rect.to_dict() if self.rect else None
            if self.candidate is not None and self.candidate.edit_distance is not None:
                data["edit_distance"] = self.candidate.edit_distance
        else:
            data["error"] = self.error
        return data


@dataclass
class AnnotationReport:
    """Outcome of one annotation run over a document."""

    results: List[AnnotationResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    output_path: Optional[str] = None

    @property
    def applied_count(self) -> int:
        return sum(1 for r in self.results if r.is_ok)

    @property
    def success(self) -> bool:
        return self.applied_count > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "applied": self.applied_count,
            "total": len(self.results),
            "output_path": self.output_path,
            "warnings": list(self.warnings),
            "results": [r.to_dict() for r in self.results],
        }
