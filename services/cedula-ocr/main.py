"""FastAPI cedula OCR service: Colombian ID card field extraction.

Accepts card photos/PDFs (OCR via Google Cloud Vision), raw OCR text, or
structured answers from an upstream LLM, and returns one merged record.
Privacy: no image or text content is logged, only sizes and counts.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, UploadFile
from fastapi.responses import JSONResponse

from config import settings
from extraction import (
    UploadedDocument,
    extract_from_files,
    extract_from_llm_outputs,
    extract_from_texts,
)
from models import ExtractionResponse, StructuredExtractionRequest, TextExtractionRequest
from vision_client import VisionClient

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_vision_client: VisionClient | None = None
_ocr_available: bool = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the Vision client on startup if an API key is configured."""
    global _vision_client, _ocr_available

    if not settings.GOOGLE_VISION_API_KEY:
        logger.info("Vision API not configured (GOOGLE_VISION_API_KEY is empty), image extraction disabled")
        _ocr_available = False
    else:
        logger.info("Using Vision API at %s", settings.VISION_API_URL)
        _vision_client = VisionClient()
        _ocr_available = True

    yield

    if _vision_client is not None:
        _vision_client.close()


app = FastAPI(title="Cedula OCR", version="1.0.0", lifespan=lifespan)


def _bad_request(detail: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"detail": detail})


@app.post("/api/v1/extract", response_model=ExtractionResponse)
async def extract(files: list[UploadFile] = File(...)):
    """Extract cedula fields from 1-2 uploaded images or PDFs (front and back)."""
    if not _ocr_available or _vision_client is None:
        return _bad_request("Image extraction is not available - no Vision API key configured", 503)

    if not files:
        return _bad_request("No files uploaded")
    if len(files) > settings.MAX_FILES:
        return _bad_request(f"At most {settings.MAX_FILES} files allowed (front and back)")

    uploads: list[UploadedDocument] = []
    for file in files:
        content_type = file.content_type or ""
        if content_type not in settings.ALLOWED_MIME_TYPES:
            return _bad_request(
                f"Unsupported file type: {content_type or 'unknown'}. Allowed: JPG, PNG, PDF", 415,
            )

        content = await file.read()
        if not content:
            return _bad_request(f"Empty file uploaded: {file.filename}")
        if len(content) > settings.MAX_FILE_SIZE_BYTES:
            return _bad_request(
                f"File too large: {file.filename}. Maximum {settings.MAX_FILE_SIZE_BYTES // (1024 * 1024)}MB per file"
            )

        uploads.append(UploadedDocument(name=file.filename or "upload", content=content, content_type=content_type))

    logger.info(
        "Processing extraction: files=%d sizes=%s",
        len(uploads),
        [len(u.content) for u in uploads],
    )
    return extract_from_files(uploads, _vision_client)


@app.post("/api/v1/extract/text", response_model=ExtractionResponse)
async def extract_text(request: TextExtractionRequest):
    """Extract cedula fields from OCR text already obtained by the caller."""
    if not request.documents:
        return _bad_request("No documents to process")
    if len(request.documents) > settings.MAX_FILES:
        return _bad_request(f"At most {settings.MAX_FILES} documents allowed (front and back)")

    logger.info("Processing text extraction: documents=%d", len(request.documents))
    return extract_from_texts(request.documents)


@app.post("/api/v1/extract/structured", response_model=ExtractionResponse)
async def extract_structured(request: StructuredExtractionRequest):
    """Merge per-image JSON answers produced by an upstream LLM extractor."""
    if not request.outputs:
        return _bad_request("No model outputs to process")
    if len(request.outputs) > settings.MAX_FILES:
        return _bad_request(f"At most {settings.MAX_FILES} outputs allowed (front and back)")

    logger.info("Processing structured extraction: outputs=%d", len(request.outputs))
    return extract_from_llm_outputs(request.outputs)


@app.get("/health")
async def health():
    """Return service status and OCR availability."""
    return {
        "status": "healthy",
        "ocr_available": _ocr_available,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
