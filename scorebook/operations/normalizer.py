"""
Field Normalizer

Coerces a raw, loosely-typed game record into typed scalar fields. Records
arrive with several historical field-name spellings (see FieldAliases); any
field that cannot be coerced rejects the record with a reason instead of
raising.
"""

import math
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

from scorebook.config import Config
from scorebook.constants import FieldAliases, ScoreConstants
from scorebook.data_models.records import NormalizedRecord, NormalizationResult


ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')

# Accepted date layouts, tried in order. Slash dates are month-first.
DATE_FORMATS = (
    '%Y-%m-%d',
    '%m/%d/%Y',
    '%m/%d/%y',
    '%Y/%m/%d',
    '%m-%d-%Y',
    '%Y.%m.%d',
    '%B %d, %Y',
    '%b %d, %Y',
    '%B %d %Y',
    '%b %d %Y',
    '%d %B %Y',
    '%d %b %Y',
    '%a %b %d %Y',
)


def _first_present(raw: Mapping[str, Any], aliases: Tuple[str, ...]) -> Any:
    """Return the first alias value that is present and not None"""
    for alias in aliases:
        value = raw.get(alias)
        if value is not None:
            return value
    return None


def normalize_date(value: Any) -> Optional[str]:
    """
    Normalize a date value to ISO yyyy-mm-dd.
    
    Examples:
        "2026-02-12" -> "2026-02-12"  # Already ISO, unchanged
        "2/12/2026" -> "2026-02-12"
        "Feb 12, 2026" -> "2026-02-12"
        "2026-02-12T19:30:00Z" -> "2026-02-12"
        "someday" -> None
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
    if not isinstance(value, str):
        return None
    
    text = value.strip()
    if not text:
        return None
    if ISO_DATE_PATTERN.match(text):
        return text
    
    parsed = None
    for date_format in DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, date_format)
            break
        except ValueError:
            continue
    
    if parsed is None:
        # ISO timestamps, with or without a trailing Z
        try:
            parsed = datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None
    
    return f"{parsed.year:04d}-{parsed.month:02d}-{parsed.day:02d}"


def normalize_name(value: Any) -> Optional[str]:
    """Trim a name and collapse internal whitespace runs; None if nothing is left"""
    if not isinstance(value, str):
        return None
    name = ' '.join(value.split())
    return name or None


def _in_stored_range(number: int) -> Optional[int]:
    if ScoreConstants.MIN_STORED_INTEGER <= number <= ScoreConstants.MAX_STORED_INTEGER:
        return number
    return None


def normalize_score(value: Any) -> Optional[int]:
    """
    Coerce a score to an integer, truncating toward zero.
    
    Accepts numbers and numeric strings. Booleans, blanks, non-numeric text,
    non-finite values and integers outside the stored 64-bit range yield None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return _in_stored_range(value)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return _in_stored_range(math.trunc(number))


def normalize_location(value: Any) -> str:
    """Normalize a location, substituting the default when absent or blank"""
    location = normalize_name(value)
    return location if location is not None else Config.DEFAULT_LOCATION


def normalize_record(raw: Any, index: int) -> NormalizationResult:
    """
    Normalize one raw record.
    
    Args:
        raw: Raw record, normally a mapping decoded from JSON
        index: Position of the record in the submitted list
        
    Returns:
        NormalizationResult holding the record, or the rejection reason
    """
    if not isinstance(raw, Mapping):
        return NormalizationResult(index=index, reason="not an object")
    
    game_date = normalize_date(_first_present(raw, FieldAliases.DATE))
    if game_date is None:
        reason = "missing date" if _first_present(raw, FieldAliases.DATE) is None else "invalid date"
        return NormalizationResult(index=index, reason=reason)
    
    player = normalize_name(_first_present(raw, FieldAliases.PLAYER))
    opponent = normalize_name(_first_present(raw, FieldAliases.OPPONENT))
    if player is None or opponent is None:
        return NormalizationResult(index=index, reason="missing player or opponent name")
    
    raw_scores = (
        _first_present(raw, FieldAliases.PLAYER_SCORE),
        _first_present(raw, FieldAliases.OPPONENT_SCORE),
    )
    if any(value is None or (isinstance(value, str) and not value.strip()) for value in raw_scores):
        return NormalizationResult(index=index, reason="missing score")
    player_score, opponent_score = (normalize_score(value) for value in raw_scores)
    if player_score is None or opponent_score is None:
        return NormalizationResult(index=index, reason="invalid score")
    
    record = NormalizedRecord(
        date=game_date,
        location=normalize_location(_first_present(raw, FieldAliases.LOCATION)),
        player=player,
        opponent=opponent,
        player_score=player_score,
        opponent_score=opponent_score,
        sequence_hint=normalize_score(_first_present(raw, FieldAliases.SEQUENCE_HINT)),
        index=index,
    )
    return NormalizationResult(index=index, record=record)
