"""Text normalization and front/back classification of cedula OCR text."""

import logging
import re
import unicodedata

from models import DocumentType

logger = logging.getLogger(__name__)

# Indicator hits needed before a side counts as present.
MIN_INDICATOR_MATCHES = 2

FRONT_INDICATORS: tuple[str, ...] = (
    "REPUBLICA DE COLOMBIA",
    "CEDULA DE CIUDADANIA",
    "CEDULA DE EXTRANJERIA",
    "APELLIDOS",
    "NOMBRES",
    "NUMERO",
    "IDENTIFICACION PERSONAL",
)

BACK_INDICATORS: tuple[str, ...] = (
    "FECHA DE NACIMIENTO",
    "LUGAR DE NACIMIENTO",
    "FECHA Y LUGAR DE EXPEDICION",
    "GRUPO SANGUINEO",
    "ESTATURA",
    "CUNDINAMARCA",
    "BOGOTA",
)

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """Uppercase, unify line endings, collapse whitespace and trim."""
    if not text:
        return ""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return _WHITESPACE_RE.sub(" ", text).strip().upper()


def fold_accents(text: str) -> str:
    """Drop combining marks so "CÉDULA" matches "CEDULA"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def count_indicators(text: str, indicators: tuple[str, ...]) -> int:
    return sum(1 for indicator in indicators if indicator in text)


def classify_document(normalized_text: str) -> DocumentType:
    """Decide whether the text is the front, back, or both sides of a card."""
    folded = fold_accents(normalized_text)
    front_count = count_indicators(folded, FRONT_INDICATORS)
    back_count = count_indicators(folded, BACK_INDICATORS)
    logger.debug("indicator counts: front=%d back=%d", front_count, back_count)

    if front_count >= MIN_INDICATOR_MATCHES and back_count >= MIN_INDICATOR_MATCHES:
        return DocumentType.FULL
    if front_count >= MIN_INDICATOR_MATCHES:
        return DocumentType.FRONT
    if back_count >= MIN_INDICATOR_MATCHES:
        return DocumentType.BACK
    return DocumentType.UNKNOWN
