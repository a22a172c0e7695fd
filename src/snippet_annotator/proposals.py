"""
Annotation proposals - turn instruction JSON into AnnotationSpec values.

Two sources are supported:
- literal instruction lists supplied by a caller (strict: bad items raise)
- free-form responses of a language model asked to propose annotations
  (lenient: bad items are logged and skipped)

Calling the model itself is left to the surrounding application.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from .models import AnnotationColor, AnnotationKind, AnnotationSpec, InvalidSpecError

logger = logging.getLogger(__name__)

_CODE_FENCE_START = re.compile(r"^```(?:json)?\s*")
_CODE_FENCE_END = re.compile(r"\s*```$")
_JSON_ARRAY = re.compile(r"\[\s*\{[\s\S]*\}\s*\]")

MODEL_SYSTEM_PROMPT = (
    "You are a PDF annotation assistant. Your task is to analyze document content and suggest annotations.\n"
    "You MUST respond with ONLY a valid JSON array (no markdown, no code blocks, just plain JSON).\n"
    "Each annotation must have: page (number), text (string snippet to annotate), "
    "action (one of: 'highlight', 'underline', 'comment').\n"
    "Optional: comment (string) for the 'comment' action.\n"
    'Example format: [{"page": 1, "text": "important phrase", "action": "highlight"}]'
)


def _first_present(item: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if item.get(key) is not None:
            return item[key]
    return None


def parse_instruction(item: Dict[str, Any]) -> AnnotationSpec:
    """
    Convert one instruction dict into an AnnotationSpec.

    Accepted keys: type/action, text, page/pageNumber, comment, color,
    caseSensitive.

    Raises:
        InvalidSpecError: if the item is malformed
    """
    if not isinstance(item, dict):
        raise InvalidSpecError(f"Instruction must be an object, got {type(item).__name__}")

    kind = AnnotationKind.parse(_first_present(item, "type", "action"))

    text = item.get("text")
    if not isinstance(text, str):
        raise InvalidSpecError("Instruction text must be a string")

    page = _first_present(item, "page", "pageNumber", "page_number")
    if page is not None:
        if isinstance(page, bool) or not isinstance(page, (int, float)) or int(page) != page:
            raise InvalidSpecError(f"Invalid page number: {page!r}")
        page = int(page)

    color = item.get("color")
    comment = item.get("comment")
    case_sensitive = _first_present(item, "caseSensitive", "case_sensitive")

    return AnnotationSpec(
        kind=kind,
        source_text=text,
        color=AnnotationColor.from_dict(color) if color is not None else None,
        comment_body=str(comment) if comment is not None else None,
        page_number=page,
        case_sensitive=bool(case_sensitive) if case_sensitive is not None else None,
    )


def parse_instructions(items: Iterable[Dict[str, Any]]) -> List[AnnotationSpec]:
    """Convert a list of instruction dicts, failing on the first bad one."""
    specs = []
    for index, item in enumerate(items):
        try:
            specs.append(parse_instruction(item))
        except InvalidSpecError as e:
            raise InvalidSpecError(f"Instruction #{index}: {e}") from None
    return specs


def load_instructions(payload: Any) -> List[AnnotationSpec]:
    """
    Accept either a bare list of instructions or an object with an
    ``instructions`` list, as posted by clients.
    """
    if isinstance(payload, dict):
        payload = payload.get("instructions")
    if not isinstance(payload, list):
        raise InvalidSpecError("Expected a list of annotation instructions")
    return parse_instructions(payload)


def _strip_code_fences(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _CODE_FENCE_START.sub("", cleaned)
        cleaned = _CODE_FENCE_END.sub("", cleaned)
    return cleaned


def _validate_model_item(item: Any, total_pages: int) -> Optional[AnnotationSpec]:
    if not isinstance(item, dict):
        logger.warning(f"Skipping invalid annotation: {item!r}")
        return None

    page, text, action = item.get("page"), item.get("text"), item.get("action")
    if isinstance(page, bool) or not isinstance(page, (int, float)) \
            or not isinstance(text, str) or not isinstance(action, str):
        logger.warning(f"Skipping invalid annotation: {item!r}")
        return None

    if page < 1 or page > total_pages or int(page) != page:
        logger.warning(f"Skipping annotation with invalid page number: {page}")
        return None

    if not text.strip():
        logger.warning("Skipping annotation with empty text")
        return None

    try:
        kind = AnnotationKind.parse(action)
    except InvalidSpecError:
        logger.warning(f"Skipping annotation with invalid action: {action}")
        return None

    comment = item.get("comment")
    comment_body = None
    if kind is AnnotationKind.COMMENT and comment:
        comment_body = str(comment).strip()

    return AnnotationSpec(kind=kind, source_text=text.strip(), comment_body=comment_body,
                          page_number=int(page))


def parse_model_response(response_text: str, total_pages: int) -> List[AnnotationSpec]:
    """
    Parse a model's proposed annotations.

    The response may wrap the JSON in Markdown code fences or surround it with
    prose; the first JSON array of objects is used. Items with a missing or
    out-of-range page, empty text or an unknown action are skipped.

    Raises:
        ValueError: if no JSON array is present or it does not parse
    """
    cleaned = _strip_code_fences(response_text or "")
    match = _JSON_ARRAY.search(cleaned)
    if not match:
        raise ValueError("No valid JSON array found in response")

    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in model response: {e}") from e

    specs = []
    for item in parsed:
        spec = _validate_model_item(item, total_pages)
        if spec is not None:
            specs.append(spec)

    logger.info(f"Converted {len(specs)} of {len(parsed)} proposed annotations")
    return specs


def build_model_prompt(document_text: str, user_prompt: str) -> str:
    """User message to pair with MODEL_SYSTEM_PROMPT."""
    return (f"DOCUMENT CONTENT:\n\n{document_text}\n\n"
            f"User request: {user_prompt}\n\n"
            f"Please identify and suggest annotations. Return only the JSON array.")
