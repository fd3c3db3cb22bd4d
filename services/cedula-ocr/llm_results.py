"""Parse structured cedula results returned by an upstream LLM extractor.

The model answers with one JSON object per image holding each field plus a
``<field>_confianza`` score from 0 to 100. Scores are mapped to tiers and kept
for merge tie-breaks. Document numbers and dates get the same checks as
values read from OCR text; anything failing them is dropped.
"""

import json
import logging
import re

from confidence import tier_from_score
from dates import is_valid_date, to_iso
from merger import capitalize_name
from models import (
    FIELD_NAMES,
    NAME_FIELDS,
    DocumentType,
    ExtractedFields,
    FieldConfidence,
    ImageExtraction,
    NumericConfidence,
)
from strategies import is_valid_document_number

logger = logging.getLogger(__name__)

SCORE_SUFFIX = "_confianza"

# CC = cedula de ciudadania, CE = cedula de extranjeria. Both name the front.
FRONT_DOCUMENT_CODES = frozenset({"CC", "CE"})

DATE_FIELDS = frozenset({"fecha_nacimiento", "fecha_expedicion_documento"})

_ISO_DATE_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})")
_DMY_DATE_RE = re.compile(r"(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})")


def try_parse_json(raw: str) -> dict | None:
    """Try to extract a JSON object from the model output.

    Handles: direct JSON, markdown fences, preamble text and <think> blocks.
    """
    if not raw:
        return None

    cleaned = re.sub(r"<think>.*?</think>", "", raw, flags=re.DOTALL).strip()

    try:
        result = json.loads(cleaned)
        if isinstance(result, dict):
            return result
    except json.JSONDecodeError:
        pass

    match = re.search(r"```(?:json)?\s*\n?(.*?)\n?```", cleaned, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(1).strip())
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    match = re.search(r"\{.*\}", cleaned, re.DOTALL)
    if match:
        try:
            result = json.loads(match.group(0))
            if isinstance(result, dict):
                return result
        except json.JSONDecodeError:
            pass

    logger.warning("Could not parse JSON from model response (%d chars)", len(cleaned))
    return None


def _clean_value(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def _clean_score(value: object) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return None
    return max(0, min(100, score))


def _clean_date(value: str) -> str | None:
    """Accept YYYY-MM-DD or DD/MM/YYYY and return a valid ISO date, else None."""
    match = _ISO_DATE_RE.fullmatch(value)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _DMY_DATE_RE.fullmatch(value)
        if not match:
            return None
        day, month, year = (int(part) for part in match.groups())

    if not is_valid_date(day, month, year):
        return None
    return to_iso(day, month, year)


def parse_llm_output(raw: str, source_name: str | None = None) -> ImageExtraction | None:
    """Convert one model answer into an ImageExtraction, or None if unparseable."""
    parsed = try_parse_json(raw)
    if parsed is None:
        return None

    fields = ExtractedFields()
    confidence = FieldConfidence()
    numeric = NumericConfidence()

    for name in FIELD_NAMES:
        value = _clean_value(parsed.get(name))
        if value is None:
            continue
        if name == "numero_cedula":
            value = re.sub(r"\D", "", value)
            if not is_valid_document_number(value):
                logger.debug("dropping invalid document number from model output (%d digits)", len(value))
                continue
        elif name in DATE_FIELDS:
            value = _clean_date(value)
            if value is None:
                logger.debug("dropping unparseable or out-of-range %s from model output", name)
                continue
        elif name in NAME_FIELDS:
            value = capitalize_name(value)

        score = _clean_score(parsed.get(name + SCORE_SUFFIX))
        setattr(fields, name, value)
        setattr(confidence, name, tier_from_score(score))
        setattr(numeric, name, score)

    code = str(parsed.get("tipo_documento") or "").strip().upper()
    document_type = DocumentType.FRONT if code in FRONT_DOCUMENT_CODES else DocumentType.UNKNOWN

    return ImageExtraction(
        fields=fields,
        confidence=confidence,
        numeric_confidence=numeric,
        document_type=document_type,
        source_name=source_name,
    )
