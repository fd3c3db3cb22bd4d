"""Shared test fixtures for cedula OCR tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path so we can import the modules
sys.path.insert(0, str(Path(__file__).parent.parent))

FRONT_TEXT = """REPÚBLICA DE COLOMBIA
IDENTIFICACIÓN PERSONAL
CÉDULA DE CIUDADANÍA
NUIP 1.020.742.434
Apellidos
PÉREZ GÓMEZ
Nombres
JUAN CARLOS
Nacionalidad COL
"""

HISTORICAL_FRONT_TEXT = """REPUBLICA DE COLOMBIA
IDENTIFICACION PERSONAL
CEDULA DE CIUDADANIA
NUMERO 1.020.742.434
CANAL SCHLESINGER
APELLIDOS
JAIME
NOMBRES
FIRMA
"""

BACK_TEXT = """FECHA DE NACIMIENTO 15 ABR 2004
LUGAR DE NACIMIENTO
MEDELLIN (ANTIOQUIA)
ESTATURA 1.72 G.S. RH O+ SEXO M
FECHA Y LUGAR DE EXPEDICION 20 ABR 2022 BOGOTA D.C.
"""


@pytest.fixture
def front_text() -> str:
    """OCR text of a modern cedula front (labels before values)."""
    return FRONT_TEXT


@pytest.fixture
def historical_front_text() -> str:
    """OCR text of an older cedula front (values printed above labels)."""
    return HISTORICAL_FRONT_TEXT


@pytest.fixture
def back_text() -> str:
    """OCR text of a cedula back with labelled dates."""
    return BACK_TEXT


@pytest.fixture
def full_text() -> str:
    """Both sides of a cedula scanned on one page."""
    return FRONT_TEXT + "\n" + BACK_TEXT


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Generate a minimal valid JPEG image for testing."""
    import cv2

    img = np.zeros((300, 200, 3), dtype=np.uint8)
    img[:] = (240, 240, 240)

    # Dark rectangles simulate text regions
    cv2.rectangle(img, (20, 30), (180, 50), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 70), (160, 90), (30, 30, 30), -1)
    cv2.rectangle(img, (20, 110), (140, 130), (30, 30, 30), -1)

    _, buf = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, 90])
    return buf.tobytes()


@pytest.fixture
def large_image_bytes() -> bytes:
    """Generate a larger image that will trigger a downscale."""
    import cv2

    img = np.zeros((2000, 3000, 3), dtype=np.uint8)
    img[:] = (200, 200, 200)
    _, buf = cv2.imencode(".jpg", img)
    return buf.tobytes()


@pytest.fixture
def invalid_bytes() -> bytes:
    """Non-image bytes for testing graceful degradation."""
    return b"this is not an image file at all"


@pytest.fixture
def llm_front_response() -> str:
    """Structured answer for the front of a card."""
    return """{
  "tipo_documento": "CC",
  "numero_cedula": "1.020.742.434",
  "numero_cedula_confianza": 95,
  "primer_nombre": "JUAN",
  "primer_nombre_confianza": 90,
  "segundo_nombre": "CARLOS",
  "segundo_nombre_confianza": 85,
  "primer_apellido": "PÉREZ",
  "primer_apellido_confianza": 92,
  "segundo_apellido": "GÓMEZ",
  "segundo_apellido_confianza": 60,
  "fecha_nacimiento": null,
  "fecha_nacimiento_confianza": 0,
  "fecha_expedicion_documento": null,
  "fecha_expedicion_documento_confianza": 0
}"""


@pytest.fixture
def llm_back_response() -> str:
    """Structured answer for the back of a card, wrapped in a code fence."""
    return """```json
{
  "tipo_documento": "desconocido",
  "numero_cedula": null,
  "numero_cedula_confianza": 0,
  "fecha_nacimiento": "2004-04-15",
  "fecha_nacimiento_confianza": 88,
  "fecha_expedicion_documento": "2022-04-20",
  "fecha_expedicion_documento_confianza": 45
}
```"""
