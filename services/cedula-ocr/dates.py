"""Birth and issue date resolution for cedula OCR text.

Each target field has an ordered list of patterns, from label-adjacent dates
down to bare dates with no context. The first pattern producing a valid date
wins and its position decides the confidence tier. When no birth-date pattern
matches, every date in the text is collected and the most plausible one is
picked (see ``find_birth_date_fallback``).
"""

import logging
import re
from dataclasses import dataclass
from datetime import date

from classifier import fold_accents
from confidence import NO_MATCH, FieldMatch, tier_for_rank, tier_rank
from models import ConfidenceLevel

logger = logging.getLogger(__name__)

MIN_YEAR = 1900
CONTEXT_RADIUS = 50
TWO_DIGIT_YEAR_PIVOT = 50
FALLBACK_RECENT_YEAR = 2010

MONTHS: dict[str, int] = {
    "ENE": 1, "FEB": 2, "MAR": 3, "ABR": 4, "MAY": 5, "JUN": 6,
    "JUL": 7, "AGO": 8, "SEP": 9, "OCT": 10, "NOV": 11, "DIC": 12,
    "ENERO": 1, "FEBRERO": 2, "MARZO": 3, "ABRIL": 4, "MAYO": 5, "JUNIO": 6,
    "JULIO": 7, "AGOSTO": 8, "SEPTIEMBRE": 9, "SETIEMBRE": 9, "OCTUBRE": 10,
    "NOVIEMBRE": 11, "DICIEMBRE": 12,
}

_DAYS_IN_MONTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

ISSUE_KEYWORDS: tuple[str, ...] = ("EXPEDICION", "LUGAR")
BIRTH_KEYWORDS: tuple[str, ...] = ("NACIMIENTO", "NACIDO")
ISSUE_LABELS: tuple[str, ...] = ("FECHA Y LUGAR DE EXPEDICION", "EXPEDICION")

_EXP = r"EXPEDICI[OÓ]N"


@dataclass(frozen=True)
class DatePattern:
    regex: re.Pattern[str]
    numeric_month: bool = False
    # A match is skipped when one of these is no farther from it than every prefer_near keyword.
    exclude_near: tuple[str, ...] = ()
    prefer_near: tuple[str, ...] = ()


def _p(source: str, **kwargs) -> DatePattern:
    return DatePattern(re.compile(source, re.IGNORECASE), **kwargs)


# Unlabelled dates that belong to the other field's label
_NOT_ISSUE = {"exclude_near": ("EXPEDICION",), "prefer_near": BIRTH_KEYWORDS}
_NOT_BIRTH = {"exclude_near": BIRTH_KEYWORDS, "prefer_near": ISSUE_LABELS}


BIRTH_PATTERNS: tuple[DatePattern, ...] = (
    _p(r"FECHA\s+DE\s+NACIMIENTO\s+(\d{1,2})\s+([A-Z]{3})\s+(\d{4})"),
    _p(r"FECHA\s+DE\s+NACIMIENTO\s+(\d{1,2})-([A-Z]{3})-(\d{4})"),
    _p(r"FECHA\s+DE\s+NACIMIENTO:?\s*(\d{1,2})[/-](\d{1,2})[/-](\d{4})", numeric_month=True),
    _p(r"NACIMIENTO\s+(\d{1,2})-([A-Z]{3})-(\d{4})"),
    _p(r"NACIDO[:\s]+(\d{1,2})-([A-Z]+)-(\d{2,4})"),
    _p(r"FECHA\s*DE\s*NACIMIENTO[:\s]*(\d{1,2})\s*-?\s*([A-Z]{3})\s*-?\s*(\d{4})"),
    _p(r"NACIMIENTO[:\s]*(\d{1,2})\s*-?\s*([A-Z]{3})\s*-?\s*(\d{4})"),
    _p(r"NACIMIENTO:?\s*(\d{1,2})[/-](\d{1,2})[/-](\d{4})", numeric_month=True),
    _p(r"(\d{1,2})\s*-\s*([A-Z]{3})\s*-\s*(\d{4})", **_NOT_ISSUE),
    _p(r"(\d{1,2})\s+([A-Z]{3})\s+(\d{4})", **_NOT_ISSUE),
    _p(r"(\d{1,2})[\s-]+([A-Z]{4,10})[\s-]+(\d{4})", **_NOT_ISSUE),
)

ISSUE_PATTERNS: tuple[DatePattern, ...] = (
    _p(rf"FECHA\s+Y\s+LUGAR\s+DE\s+{_EXP}\s+(\d{{1,2}})\s+([A-Z]{{3}})\s+(\d{{4}})"),
    _p(rf"FECHA\s+Y\s+LUGAR\s+DE\s+{_EXP}\s+(\d{{1,2}})-([A-Z]{{3}})-(\d{{4}})"),
    _p(rf"FECHA\s+DE\s+{_EXP}:?\s*(\d{{1,2}})[/-](\d{{1,2}})[/-](\d{{4}})", numeric_month=True),
    _p(rf"(?:LUGAR\s+DE\s+)?{_EXP}\s+(\d{{1,2}})-([A-Z]{{3}})-(\d{{4}})"),
    _p(rf"{_EXP}\s+(\d{{1,2}})\s+([A-Z]{{3}})\s+(\d{{4}})"),
    _p(rf"{_EXP}:?\s*(\d{{1,2}})[/-](\d{{1,2}})[/-](\d{{4}})", numeric_month=True),
    _p(r"(\d{1,2})\s+([A-Z]{3})\s+(\d{4})\s+[A-ZÁÉÍÓÚÑ\s]{2,}?\s+D\.?C\.?", **_NOT_BIRTH),
    _p(r"(\d{1,2})-([A-Z]{3})-(\d{4})\s+[A-ZÁÉÍÓÚÑ]{2,}", **_NOT_BIRTH),
    _p(r"(\d{1,2})\s+([A-Z]{3})\s+(\d{4})\s+[A-ZÁÉÍÓÚÑ]{2,}", **_NOT_BIRTH),
    _p(r"(\d{1,2})-([A-Z]+)-(\d{2,4})\s+LUGAR[:\s]+[A-Z]+", **_NOT_BIRTH),
    _p(r"(\d{1,2})-([A-Z]{3})-(\d{4})", **_NOT_BIRTH),
)

FALLBACK_PATTERNS: tuple[DatePattern, ...] = (
    _p(r"(\d{1,2})\s*-\s*([A-Z]{3})\s*-\s*(\d{4})"),
    _p(r"(\d{1,2})\s+([A-Z]{3})\s+(\d{4})"),
    _p(r"(\d{1,2})[/-](\d{1,2})[/-](\d{4})", numeric_month=True),
)


def is_leap_year(year: int) -> bool:
    return year % 4 == 0 and (year % 100 != 0 or year % 400 == 0)


def days_in_month(month: int, year: int) -> int:
    if month == 2 and is_leap_year(year):
        return 29
    return _DAYS_IN_MONTH[month - 1]


def is_valid_date(day: int, month: int, year: int, max_year: int | None = None) -> bool:
    """Accept a day/month/year triple within [1900, current year]."""
    if max_year is None:
        max_year = date.today().year
    if year < MIN_YEAR or year > max_year:
        return False
    if month < 1 or month > 12:
        return False
    return 1 <= day <= days_in_month(month, year)


def resolve_month(token: str) -> int | None:
    return MONTHS.get(fold_accents(token.upper()))


def expand_year(token: str) -> int:
    year = int(token)
    if len(token) == 2:
        return 1900 + year if year > TWO_DIGIT_YEAR_PIVOT else 2000 + year
    return year


def to_iso(day: int, month: int, year: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _date_parts(match: re.Match[str], pattern: DatePattern) -> tuple[int, int, int] | None:
    day_raw, month_raw, year_raw = match.group(1), match.group(2), match.group(3)
    month = int(month_raw) if pattern.numeric_month else resolve_month(month_raw)
    if month is None:
        return None
    return int(day_raw), month, expand_year(year_raw)


def _context(text: str, match: re.Match[str]) -> str:
    start = max(0, match.start() - CONTEXT_RADIUS)
    return fold_accents(text[start:match.end() + CONTEXT_RADIUS])


def _keyword_distance(text: str, match: re.Match[str], keywords: tuple[str, ...]) -> int | None:
    """Characters between the match and the nearest keyword within the context window."""
    offset = max(0, match.start() - CONTEXT_RADIUS)
    window = fold_accents(text[offset:match.end() + CONTEXT_RADIUS])
    nearest = None
    for keyword in keywords:
        for found in re.finditer(re.escape(keyword), window):
            start, end = found.start() + offset, found.end() + offset
            if end <= match.start():
                distance = match.start() - end
            elif start >= match.end():
                distance = start - match.end()
            else:
                distance = 0
            if nearest is None or distance < nearest:
                nearest = distance
    return nearest


def _belongs_elsewhere(text: str, match: re.Match[str], pattern: DatePattern) -> bool:
    excluded = _keyword_distance(text, match, pattern.exclude_near)
    if excluded is None:
        return False
    preferred = _keyword_distance(text, match, pattern.prefer_near)
    return preferred is None or excluded <= preferred


def _first_match(text: str, pattern: DatePattern) -> re.Match[str] | None:
    if not pattern.exclude_near:
        return pattern.regex.search(text)
    for match in pattern.regex.finditer(text):
        if not _belongs_elsewhere(text, match, pattern):
            return match
    return None


def _resolve(
    text: str,
    patterns: tuple[DatePattern, ...],
    label: str,
    max_year: int | None,
) -> FieldMatch:
    for index, pattern in enumerate(patterns):
        match = _first_match(text, pattern)
        if match is None:
            continue

        parts = _date_parts(match, pattern)
        if parts is None or not is_valid_date(*parts, max_year=max_year):
            logger.debug("%s pattern %d matched an invalid date", label, index + 1)
            continue

        confidence = tier_for_rank(index, len(patterns))
        logger.debug("%s pattern %d matched (confidence=%s)", label, index + 1, confidence.value)
        return FieldMatch(to_iso(*parts), confidence)

    return NO_MATCH


def resolve_birth_date(text: str, max_year: int | None = None) -> FieldMatch:
    """Resolve the birth date, falling back to whole-text date ranking."""
    result = _resolve(text, BIRTH_PATTERNS, "birth date", max_year)
    if result.value is not None:
        return result
    logger.debug("no birth date pattern matched, ranking all dates in text")
    return find_birth_date_fallback(text, max_year=max_year)


def resolve_issue_date(text: str, max_year: int | None = None) -> FieldMatch:
    return _resolve(text, ISSUE_PATTERNS, "issue date", max_year)


def find_birth_date_fallback(text: str, max_year: int | None = None) -> FieldMatch:
    """Pick the most plausible birth date among every date in the text.

    Dates near issuance or place keywords are dropped. The rest rank by
    confidence (near "NACIMIENTO" > year before 2010 > none), then oldest
    year first, since older dates on a cedula are more often birth dates.
    This is a heuristic: a card with no labels and two old dates can still
    resolve to the wrong one.
    """
    candidates: list[tuple[ConfidenceLevel, int, str]] = []

    for pattern in FALLBACK_PATTERNS:
        for match in pattern.regex.finditer(text):
            parts = _date_parts(match, pattern)
            if parts is None or not is_valid_date(*parts, max_year=max_year):
                continue

            context = _context(text, match)
            if any(keyword in context for keyword in ISSUE_KEYWORDS):
                continue

            year = parts[2]
            if "NACIMIENTO" in context:
                confidence = ConfidenceLevel.HIGH
            elif year < FALLBACK_RECENT_YEAR:
                confidence = ConfidenceLevel.MEDIUM
            else:
                confidence = ConfidenceLevel.LOW
            candidates.append((confidence, year, to_iso(*parts)))

    if not candidates:
        return NO_MATCH

    candidates.sort(key=lambda c: (-tier_rank(c[0]), c[1]))
    confidence, _, value = candidates[0]
    logger.debug("fallback picked birth date among %d candidates", len(candidates))
    return FieldMatch(value, confidence)
