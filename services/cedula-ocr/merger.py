"""Field-by-field merge of per-image extraction results.

For each field the non-null candidates compete: higher confidence tier wins,
then higher numeric score when both candidates carry one, then the earlier
source. Only that last step depends on input order.
"""

import logging
import re
from dataclasses import dataclass

from confidence import tier_rank
from models import (
    FIELD_NAMES,
    NAME_FIELDS,
    ConfidenceLevel,
    DocumentType,
    ImageExtraction,
)

logger = logging.getLogger(__name__)

# Front-derived types win because number and names originate there.
DOCUMENT_TYPE_PRIORITY: tuple[DocumentType, ...] = (
    DocumentType.FRONT,
    DocumentType.FULL,
    DocumentType.BACK,
    DocumentType.UNKNOWN,
)


@dataclass(frozen=True)
class MergeCandidate:
    source_index: int
    value: str
    confidence: ConfidenceLevel
    score: int | None = None

    def beats(self, other: "MergeCandidate") -> bool:
        """Strictly better than ``other``; ties keep the earlier candidate."""
        if tier_rank(self.confidence) != tier_rank(other.confidence):
            return tier_rank(self.confidence) > tier_rank(other.confidence)
        if self.score is not None and other.score is not None:
            return self.score > other.score
        return False


def capitalize_name(value: str) -> str:
    """Title-case every word: "DE LA HOZ" -> "De La Hoz"."""
    return re.sub(r"\w+", lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), value)


def merge_document_types(types: list[DocumentType]) -> DocumentType:
    for preferred in DOCUMENT_TYPE_PRIORITY:
        if preferred in types:
            return preferred
    return DocumentType.UNKNOWN


def merge_extractions(results: list[ImageExtraction]) -> ImageExtraction:
    """Combine per-image results into one. A single result is returned as-is."""
    if not results:
        return ImageExtraction()
    if len(results) == 1:
        return results[0]

    merged = ImageExtraction(document_type=merge_document_types([r.document_type for r in results]))

    for name in FIELD_NAMES:
        best: MergeCandidate | None = None
        for index, result in enumerate(results):
            value = getattr(result.fields, name)
            if value is None or not value.strip():
                continue
            candidate = MergeCandidate(
                source_index=index,
                value=value,
                confidence=getattr(result.confidence, name),
                score=getattr(result.numeric_confidence, name),
            )
            if best is None or candidate.beats(best):
                best = candidate

        if best is None:
            continue

        value = capitalize_name(best.value) if name in NAME_FIELDS else best.value
        setattr(merged.fields, name, value)
        setattr(merged.confidence, name, best.confidence)
        setattr(merged.numeric_confidence, name, best.score)
        logger.debug(
            "merged %s from source %d (confidence=%s)", name, best.source_index + 1, best.confidence.value,
        )

    logger.info(
        "merged %d results: %d fields found, document type %s",
        len(results), len(merged.found_fields()), merged.document_type.value,
    )
    return merged
