"""Pydantic models for cedula extraction results and the HTTP envelope."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

FIELD_NAMES: tuple[str, ...] = (
    "numero_cedula",
    "primer_nombre",
    "segundo_nombre",
    "primer_apellido",
    "segundo_apellido",
    "fecha_nacimiento",
    "fecha_expedicion_documento",
)

NAME_FIELDS: frozenset[str] = frozenset({
    "primer_nombre",
    "segundo_nombre",
    "primer_apellido",
    "segundo_apellido",
})


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DocumentType(str, Enum):
    FRONT = "front"
    BACK = "back"
    FULL = "full"
    UNKNOWN = "unknown"


class SourceImageType(str, Enum):
    IMAGE = "image"
    PDF = "pdf"


class ExtractedFields(BaseModel):
    """Seven nullable fields. None means "not found", never an empty string."""

    numero_cedula: str | None = None
    primer_nombre: str | None = None
    segundo_nombre: str | None = None
    primer_apellido: str | None = None
    segundo_apellido: str | None = None
    fecha_nacimiento: str | None = None  # YYYY-MM-DD
    fecha_expedicion_documento: str | None = None  # YYYY-MM-DD


class FieldConfidence(BaseModel):
    numero_cedula: ConfidenceLevel = ConfidenceLevel.LOW
    primer_nombre: ConfidenceLevel = ConfidenceLevel.LOW
    segundo_nombre: ConfidenceLevel = ConfidenceLevel.LOW
    primer_apellido: ConfidenceLevel = ConfidenceLevel.LOW
    segundo_apellido: ConfidenceLevel = ConfidenceLevel.LOW
    fecha_nacimiento: ConfidenceLevel = ConfidenceLevel.LOW
    fecha_expedicion_documento: ConfidenceLevel = ConfidenceLevel.LOW


class NumericConfidence(BaseModel):
    """Upstream 0-100 scores, only present for sources that supply them."""

    numero_cedula: int | None = None
    primer_nombre: int | None = None
    segundo_nombre: int | None = None
    primer_apellido: int | None = None
    segundo_apellido: int | None = None
    fecha_nacimiento: int | None = None
    fecha_expedicion_documento: int | None = None


class ImageExtraction(BaseModel):
    """Result for one source image, or the merged result of several."""

    fields: ExtractedFields = Field(default_factory=ExtractedFields)
    confidence: FieldConfidence = Field(default_factory=FieldConfidence)
    numeric_confidence: NumericConfidence = Field(default_factory=NumericConfidence)
    document_type: DocumentType = DocumentType.UNKNOWN
    source_name: str | None = None

    def found_fields(self) -> list[str]:
        return [name for name in FIELD_NAMES if getattr(self.fields, name) is not None]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OCRDocument(_CamelModel):
    name: str
    raw_text: str
    source_image_type: SourceImageType = SourceImageType.IMAGE


class TextExtractionRequest(_CamelModel):
    documents: list[OCRDocument]


class StructuredExtractionRequest(_CamelModel):
    outputs: list[str]


class ExtractionResponse(_CamelModel):
    success: bool
    fields: ExtractedFields
    confidence: FieldConfidence
    document_type: DocumentType
    warnings: list[str] = []
    processing_time_ms: int = 0
