"""Document number and name extraction cascades for cedula OCR text.

All functions expect text already passed through ``normalize_text``.
Strategies are plain functions tried in order; the first one that yields
a value wins and results are never combined across strategies.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from confidence import NO_MATCH, FieldMatch, tier_for_rank
from models import ConfidenceLevel

logger = logging.getLogger(__name__)

MIN_NUMBER_DIGITS = 8
MAX_NUMBER_DIGITS = 10
MAX_NAME_PARTS = 2

_DOTTED = r"\d{1,3}(?:\.\d{3})*\.\d{3}"

# Most specific (labelled, dotted) first, bare digit run last.
NUMBER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"NUIP\s*({_DOTTED})"),
    re.compile(rf"N[UÚ]MERO\s+({_DOTTED})"),
    re.compile(rf"NO\.?\s*({_DOTTED})"),
    re.compile(r"NO\.\s*(\d{2}\.\d{3}\.\d{3})"),
    re.compile(rf"(?:C[EÉ]DULA|CC|CE)\s*:?\s*({_DOTTED})"),
    re.compile(r"(\d{1,3}\.\d{3}\.\d{3})"),
    re.compile(r"(\d{2}\.\d{3}\.\d{3})"),
    re.compile(r"(?<!\d)(\d{8,10})(?!\d)"),
)

_REPEATED_DIGIT_RE = re.compile(r"(\d)\1+")

_NAME = r"[A-ZÁÉÍÓÚÜÑ\s]"
_NEXT_LABEL = r"NACIONALIDAD|SEXO|FECHA|FIRMA|NUIP"

# Words printed on the card that are never part of a name.
LABEL_WORDS: frozenset[str] = frozenset({
    "APELLIDOS", "NOMBRES", "NACIONALIDAD", "SEXO", "FECHA", "FIRMA", "NUIP",
    "NACIDO", "NUMERO", "NÚMERO", "ESTATURA", "LUGAR", "REPUBLICA", "REPÚBLICA",
    "COLOMBIA", "IDENTIFICACION", "IDENTIFICACIÓN", "PERSONAL", "CEDULA", "CÉDULA",
    "CIUDADANIA", "CIUDADANÍA",
})

_HISTORICAL_FULL_RE = re.compile(
    rf"N[UÚ]MERO\s+{_DOTTED}\s+({_NAME}+?)\s+APELLIDOS\s+({_NAME}+?)\s+NOMBRES"
)
_HISTORICAL_SURNAMES_RE = re.compile(rf"N[UÚ]MERO\s+{_DOTTED}\s+({_NAME}+?)(?=\s*APELLIDOS)")

_MODERN_SURNAMES_RE = re.compile(rf"APELLIDOS\s+({_NAME}+?)(?=\s*(?:NOMBRES|{_NEXT_LABEL})\b|\s*$)")
_MODERN_NAMES_RE = re.compile(rf"NOMBRES\s+({_NAME}+?)(?=\s*(?:{_NEXT_LABEL})\b|\s*$)")

_OLD_SURNAMES_RE = re.compile(rf"APELLIDOS[:\s]+({_NAME}+?)(?=\s*(?:NOMBRES|NACIDO|{_NEXT_LABEL})\b|\s*$)")
_OLD_NAMES_RE = re.compile(rf"NOMBRES[:\s]+({_NAME}+?)(?=\s*(?:NACIDO|{_NEXT_LABEL})\b|\s*NO\.|\s*$)")

_LOOSE_SURNAMES_RE = re.compile(r"APELLIDOS[:\s]*([A-ZÁÉÍÓÚÜÑ][A-ZÁÉÍÓÚÜÑ\s]*)")
_LOOSE_NAMES_RE = re.compile(r"NOMBRES[:\s]*([A-ZÁÉÍÓÚÜÑ][A-ZÁÉÍÓÚÜÑ\s]*)")


def is_valid_document_number(number: str) -> bool:
    """8-10 digits, not a single repeated digit."""
    if not MIN_NUMBER_DIGITS <= len(number) <= MAX_NUMBER_DIGITS:
        return False
    if not number.isdigit():
        return False
    return _REPEATED_DIGIT_RE.fullmatch(number) is None


def extract_document_number(text: str) -> FieldMatch:
    for index, pattern in enumerate(NUMBER_PATTERNS):
        for match in pattern.finditer(text):
            number = re.sub(r"[.\s]", "", match.group(1))
            if is_valid_document_number(number):
                confidence = tier_for_rank(index, len(NUMBER_PATTERNS))
                logger.debug("document number matched pattern %d (confidence=%s)", index + 1, confidence.value)
                return FieldMatch(number, confidence)

    logger.debug("no valid document number found")
    return NO_MATCH


@dataclass
class NameMatch:
    surnames: list[str] = field(default_factory=list)
    names: list[str] = field(default_factory=list)
    confidence: ConfidenceLevel = ConfidenceLevel.LOW

    def found(self) -> bool:
        return bool(self.surnames or self.names)


def capitalize_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


def split_names(span: str) -> list[str]:
    """Tokenize a name span: drop single letters, capitalize, keep two."""
    tokens = [capitalize_word(token) for token in span.split() if len(token) > 1]
    return tokens[:MAX_NAME_PARTS]


def _span(pattern: re.Pattern[str], text: str) -> list[str]:
    match = pattern.search(text)
    return split_names(match.group(1)) if match else []


def _paired_confidence(surnames: list[str], names: list[str]) -> ConfidenceLevel:
    return ConfidenceLevel.HIGH if surnames and names else ConfidenceLevel.MEDIUM


def historical_layout(text: str) -> NameMatch | None:
    """NUMERO 1.020.742.434 <surnames> APELLIDOS <names> NOMBRES.

    Older cards print the value above its label, so spans precede labels.
    """
    match = _HISTORICAL_FULL_RE.search(text)
    if match:
        result = NameMatch(split_names(match.group(1)), split_names(match.group(2)), ConfidenceLevel.HIGH)
    else:
        result = NameMatch(_span(_HISTORICAL_SURNAMES_RE, text), [], ConfidenceLevel.HIGH)
    return result if result.found() else None


def modern_layout(text: str) -> NameMatch | None:
    """Apellidos <surnames> Nombres <names>."""
    surnames = _span(_MODERN_SURNAMES_RE, text)
    names = _span(_MODERN_NAMES_RE, text)
    if not (surnames or names):
        return None
    return NameMatch(surnames, names, _paired_confidence(surnames, names))


def old_layout(text: str) -> NameMatch | None:
    """APELLIDOS: <surnames> NOMBRES: <names>."""
    surnames = _span(_OLD_SURNAMES_RE, text)
    names = _span(_OLD_NAMES_RE, text)
    if not (surnames or names):
        return None
    return NameMatch(surnames, names, _paired_confidence(surnames, names))


def _loose_span(pattern: re.Pattern[str], text: str) -> list[str]:
    match = pattern.search(text)
    if not match:
        return []
    words = []
    for word in match.group(1).split():
        if word in LABEL_WORDS:
            break
        words.append(word)
    return split_names(" ".join(words))


def generic_labels(text: str) -> NameMatch | None:
    """Any SURNAMES/NAMES label, taking the letters that follow it."""
    surnames = _loose_span(_LOOSE_SURNAMES_RE, text)
    names = _loose_span(_LOOSE_NAMES_RE, text)
    if not (surnames or names):
        return None
    return NameMatch(surnames, names, ConfidenceLevel.MEDIUM)


NameStrategy = Callable[[str], NameMatch | None]

NAME_STRATEGIES: tuple[tuple[str, NameStrategy], ...] = (
    ("historical", historical_layout),
    ("modern", modern_layout),
    ("old", old_layout),
    ("generic", generic_labels),
)


def extract_names(text: str) -> NameMatch:
    for label, strategy in NAME_STRATEGIES:
        result = strategy(text)
        if result is not None and result.found():
            logger.debug(
                "name strategy %r matched %d surname(s), %d name(s) (confidence=%s)",
                label, len(result.surnames), len(result.names), result.confidence.value,
            )
            return result

    logger.debug("no name strategy matched")
    return NameMatch()
