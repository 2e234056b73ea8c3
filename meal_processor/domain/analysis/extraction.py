"""
Structured result extraction from raw backend replies.

The backend is told to answer with bare JSON but may wrap it in prose or a
markdown fence, or truncate it. Recovery is an ordered chain of independent
strategies; each returns the parsed value or ``None`` and the first success
wins. Full strict parses always run before speculative substring parses.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from meal_processor.domain.analysis.requests import AnalysisKind
from meal_processor.domain.analysis.results import (
    DishDetectionResult,
    ExtractedResult,
    GroceryListResult,
    MealPlanResult,
)
from meal_processor.domain.shared.errors import ExtractionError

logger = structlog.get_logger(__name__)

_FENCE_OPEN = re.compile(r"^```[\w+-]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```\s*$")

RESULT_MODELS: Dict[AnalysisKind, Type[BaseModel]] = {
    AnalysisKind.IMAGE: DishDetectionResult,
    AnalysisKind.TEXT: DishDetectionResult,
    AnalysisKind.CORRECTION: DishDetectionResult,
    AnalysisKind.GROCERY_LIST: GroceryListResult,
    AnalysisKind.MEAL_PLAN: MealPlanResult,
}

Strategy = Callable[[str], Optional[Any]]


# ═══════════════════════════════════════════════════════════
# STRATEGIES
# ═══════════════════════════════════════════════════════════


def strip_fence(text: str) -> str:
    """Remove a leading/trailing markdown fence when the text starts with one."""
    trimmed = text.strip()
    if not trimmed.startswith("```"):
        return trimmed
    return _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", trimmed)).strip()


def _loads(text: str) -> Optional[Any]:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None


def parse_strict(text: str) -> Optional[Any]:
    """Whole text as JSON."""
    return _loads(text)


def _balanced_span(text: str) -> Optional[Tuple[int, int]]:
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return start, i + 1
    return None


def parse_balanced_object(text: str) -> Optional[Any]:
    """First ``{`` up to its matching ``}``; braces inside strings are ignored."""
    span = _balanced_span(text)
    if span is None:
        return None
    return _loads(text[span[0] : span[1]])


def parse_outer_slice(text: str) -> Optional[Any]:
    """First ``{`` to last ``}``."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return _loads(text[first : last + 1])


STRATEGIES: List[Tuple[str, Strategy]] = [
    ("strict", parse_strict),
    ("balanced_braces", parse_balanced_object),
    ("outer_slice", parse_outer_slice),
]


def extract_json(raw: str) -> Tuple[Any, str]:
    """
    Recover one JSON value from arbitrary text.

    Args:
        raw: Backend reply text (untrusted)

    Returns:
        Tuple of (parsed value, name of the strategy that succeeded)

    Raises:
        ExtractionError: If no strategy yields a value (bounded preview only)

    Example:
        >>> extract_json('Sure! ```json\\n{"a":1}\\n```')
        ({'a': 1}, 'balanced_braces')
    """
    candidate = strip_fence(raw or "")
    for name, strategy in STRATEGIES:
        value = strategy(candidate)
        if value is not None:
            return value, name
    raise ExtractionError.from_reply(raw)


# ═══════════════════════════════════════════════════════════
# EXTRACTOR
# ═══════════════════════════════════════════════════════════


class ResponseExtractor:
    """Parse a reply and validate it against the result schema of its kind."""

    def __init__(self, models: Optional[Dict[AnalysisKind, Type[BaseModel]]] = None) -> None:
        self._models = models or RESULT_MODELS

    def extract(self, raw: str, kind: AnalysisKind) -> ExtractedResult:
        """
        Extract the typed result for ``kind`` from ``raw``.

        Raises:
            ExtractionError: No JSON found, JSON is not an object, or the
                object does not fit the schema
        """
        value, strategy = extract_json(raw)

        if not isinstance(value, dict):
            raise ExtractionError.from_reply(raw, reason=f"expected an object, got {type(value).__name__}")

        model = self._models[kind]
        try:
            result = model.model_validate(value)
        except PydanticValidationError as exc:
            fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors()[:3])
            raise ExtractionError.from_reply(raw, reason=f"schema mismatch at {fields}") from exc

        logger.debug(
            "reply_extracted",
            kind=kind.value,
            strategy=strategy,
            schema=model.__name__,
        )
        return result  # type: ignore[return-value]
