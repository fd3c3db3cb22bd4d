"""Extraction orchestrator: OCR text or model output -> merged cedula record.

Upstream failures become response warnings; nothing here raises for an
unreadable document.
"""

import logging
import time
from dataclasses import dataclass

from cedula_parser import parse_cedula_text
from config import settings
from llm_results import parse_llm_output
from merger import merge_extractions
from models import ExtractionResponse, ImageExtraction, OCRDocument, SourceImageType
from preprocessing import preprocess
from vision_client import VisionClient, VisionServiceError, VisionServiceUnavailable

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"
NO_FIELDS_WARNING = (
    "Could not extract any cedula fields. "
    "The image may be unclear or may not show a Colombian cedula."
)


@dataclass
class UploadedDocument:
    name: str
    content: bytes
    content_type: str

    @property
    def source_image_type(self) -> SourceImageType:
        return SourceImageType.PDF if self.content_type == PDF_MIME_TYPE else SourceImageType.IMAGE


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def _build_response(
    results: list[ImageExtraction],
    warnings: list[str],
    start: float,
) -> ExtractionResponse:
    merged = merge_extractions(results)
    success = bool(results)
    if success and not merged.found_fields():
        warnings.append(NO_FIELDS_WARNING)

    return ExtractionResponse(
        success=success,
        fields=merged.fields,
        confidence=merged.confidence,
        document_type=merged.document_type,
        warnings=warnings,
        processing_time_ms=_elapsed_ms(start),
    )


def extract_from_texts(documents: list[OCRDocument], max_year: int | None = None) -> ExtractionResponse:
    """Parse each document's OCR text independently, then merge."""
    start = time.monotonic()
    results: list[ImageExtraction] = []
    warnings: list[str] = []

    if not documents:
        warnings.append("No documents to process")

    for document in documents:
        if not document.raw_text or not document.raw_text.strip():
            warnings.append(f"{document.name}: no text detected")
            continue
        result = parse_cedula_text(document.raw_text, source_name=document.name, max_year=max_year)
        logger.info(
            "Parsed %s (%s): type=%s fields=%d",
            document.name,
            document.source_image_type.value,
            result.document_type.value,
            len(result.found_fields()),
        )
        results.append(result)

    return _build_response(results, warnings, start)


def extract_from_llm_outputs(outputs: list[str]) -> ExtractionResponse:
    """Merge structured per-image answers from an upstream LLM extractor."""
    start = time.monotonic()
    results: list[ImageExtraction] = []
    warnings: list[str] = []

    if not outputs:
        warnings.append("No model outputs to process")

    for index, raw in enumerate(outputs, start=1):
        result = parse_llm_output(raw, source_name=f"output {index}")
        if result is None:
            warnings.append(f"output {index}: could not parse model response")
            continue
        results.append(result)

    return _build_response(results, warnings, start)


def extract_from_files(
    files: list[UploadedDocument],
    vision_client: VisionClient,
    preprocess_images: bool | None = None,
) -> ExtractionResponse:
    """OCR each uploaded file, then run the text pipeline on what came back."""
    start = time.monotonic()
    if preprocess_images is None:
        preprocess_images = settings.PREPROCESS_IMAGES

    documents: list[OCRDocument] = []
    warnings: list[str] = []

    if not files:
        warnings.append("No files to process")

    for upload in files:
        content = upload.content
        if preprocess_images and upload.source_image_type is SourceImageType.IMAGE:
            content = preprocess(content)
            logger.info("Preprocessed %s: %d bytes -> %d bytes", upload.name, len(upload.content), len(content))

        try:
            text = vision_client.detect_text(content)
        except VisionServiceUnavailable as e:
            logger.error("Vision API unavailable after retries for %s: %s", upload.name, e)
            warnings.append(f"{upload.name}: text detection service unavailable: {e}")
            continue
        except VisionServiceError as e:
            logger.error("Vision API error for %s: %s", upload.name, e)
            warnings.append(f"{upload.name}: text detection failed: {e}")
            continue

        logger.info("Text detected in %s: %d chars", upload.name, len(text))
        documents.append(
            OCRDocument(name=upload.name, raw_text=text, source_image_type=upload.source_image_type)
        )

    if not documents:
        return _build_response([], warnings, start)

    response = extract_from_texts(documents)
    response.warnings = warnings + response.warnings
    response.processing_time_ms = _elapsed_ms(start)
    return response
