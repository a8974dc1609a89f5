"""
Input Validation Module

Checks a submitted webtoon payload before it reaches the store. All rules run
on every payload so the caller sees each problem in one response.
"""

from typing import Any, Dict, List, Optional
import structlog
from pydantic import ValidationError

from src.models.webtoon import ValidationResult, Violation, WebtoonCandidate
from src.utils.security import escape_markup


logger = structlog.get_logger(__name__)

INVALID_VALUE = "Invalid value"
CHARACTERS_NOT_ARRAY = "Characters must be an array"


def coerce_text(value: Any) -> Optional[str]:
    """Return the text form of a scalar, or None for anything else."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    return None


class WebtoonValidator:
    """
    Validates and normalizes webtoon payloads.

    Rules:
    - title: present, text, non-empty after trimming; stored trimmed and escaped
    - description: same as title
    - characters: must be an array (empty is fine)
    """

    TEXT_FIELDS = ("title", "description")

    def validate(self, payload: Any) -> ValidationResult:
        """Run every rule against ``payload`` and collect the violations."""
        data: Dict[str, Any] = payload if isinstance(payload, dict) else {}

        violations: List[Violation] = []
        cleaned: Dict[str, Any] = {}

        for field in self.TEXT_FIELDS:
            text = self._clean_text(data.get(field))
            if text is None:
                violations.append(self._violation(data, field, INVALID_VALUE))
            else:
                cleaned[field] = text

        characters = data.get("characters")
        if not isinstance(characters, list):
            violations.append(self._violation(data, "characters", CHARACTERS_NOT_ARRAY))
        else:
            cleaned["characters"] = [self._cast_item(item) for item in characters]

        if violations:
            logger.debug("webtoon_payload_rejected", fields=[v.field for v in violations])
            return ValidationResult(violations=violations)

        return ValidationResult(candidate=self._build_candidate(cleaned))

    def _clean_text(self, value: Any) -> Optional[str]:
        text = coerce_text(value)
        if text is None:
            return None
        text = text.strip()
        if not text:
            return None
        return escape_markup(text)

    @staticmethod
    def _cast_item(item: Any) -> Any:
        """Scalars become text; objects and lists are left for the candidate to refuse."""
        text = coerce_text(item)
        return item if text is None else text

    def _build_candidate(self, cleaned: Dict[str, Any]) -> Optional[WebtoonCandidate]:
        # Passing the rules does not guarantee the list items are text
        try:
            return WebtoonCandidate(**cleaned)
        except ValidationError as e:
            logger.info("webtoon_candidate_rejected", error_count=e.error_count())
            return None

    @staticmethod
    def _violation(data: Dict[str, Any], field: str, message: str) -> Violation:
        return Violation(
            field=field,
            message=message,
            value=data.get(field),
            has_value=field in data
        )
