"""Per-image pipeline: normalize, classify, then run the field cascades."""

import logging

from classifier import classify_document, normalize_text
from dates import resolve_birth_date, resolve_issue_date
from models import DocumentType, ImageExtraction
from strategies import extract_document_number, extract_names

logger = logging.getLogger(__name__)

FRONT_TYPES = frozenset({DocumentType.FRONT, DocumentType.FULL})
BACK_TYPES = frozenset({DocumentType.BACK, DocumentType.FULL})


def parse_cedula_text(
    raw_text: str | None,
    source_name: str | None = None,
    max_year: int | None = None,
) -> ImageExtraction:
    """Extract cedula fields from one OCR text blob.

    Never raises: empty or unrecognised text gives an all-null result with
    low confidence. Front fields (number, names) only run for front/full
    text, dates only for back/full text.
    """
    text = normalize_text(raw_text)
    result = ImageExtraction(source_name=source_name)
    if not text:
        return result

    result.document_type = classify_document(text)
    logger.debug("document %s classified as %s", source_name or "<text>", result.document_type.value)

    if result.document_type in FRONT_TYPES:
        _apply_front_fields(text, result)
    if result.document_type in BACK_TYPES:
        _apply_back_fields(text, result, max_year)

    return result


def _apply_front_fields(text: str, result: ImageExtraction) -> None:
    fields, confidence = result.fields, result.confidence

    number = extract_document_number(text)
    if number.value is not None:
        fields.numero_cedula = number.value
        confidence.numero_cedula = number.confidence

    names = extract_names(text)
    if names.surnames:
        fields.primer_apellido = names.surnames[0]
        confidence.primer_apellido = names.confidence
        if len(names.surnames) > 1:
            fields.segundo_apellido = names.surnames[1]
            confidence.segundo_apellido = names.confidence
    if names.names:
        fields.primer_nombre = names.names[0]
        confidence.primer_nombre = names.confidence
        if len(names.names) > 1:
            fields.segundo_nombre = names.names[1]
            confidence.segundo_nombre = names.confidence


def _apply_back_fields(text: str, result: ImageExtraction, max_year: int | None) -> None:
    fields, confidence = result.fields, result.confidence

    birth = resolve_birth_date(text, max_year=max_year)
    if birth.value is not None:
        fields.fecha_nacimiento = birth.value
        confidence.fecha_nacimiento = birth.confidence

    issue = resolve_issue_date(text, max_year=max_year)
    if issue.value is not None:
        fields.fecha_expedicion_documento = issue.value
        confidence.fecha_expedicion_documento = issue.confidence
