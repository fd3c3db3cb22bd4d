"""Tests for the HTTP endpoints."""

import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

sys.path.insert(0, str(Path(__file__).parent.parent))

import main
from config import settings


@pytest.fixture
def client():
    return TestClient(main.app)


@pytest.fixture
def vision_client(monkeypatch, front_text: str):
    """Install a fake Vision client as if an API key were configured."""
    fake = MagicMock()
    fake.detect_text.return_value = front_text
    monkeypatch.setattr(main, "_vision_client", fake)
    monkeypatch.setattr(main, "_ocr_available", True)
    monkeypatch.setattr(settings, "PREPROCESS_IMAGES", False)
    return fake


class TestHealth:
    def test_health_without_api_key(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(main, "_ocr_available", False)
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "healthy", "ocr_available": False}

    def test_lifespan_without_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "GOOGLE_VISION_API_KEY", "")
        with TestClient(main.app) as client:
            assert client.get("/health").json()["ocr_available"] is False


class TestExtractFiles:
    def test_ocr_unavailable(self, client: TestClient, monkeypatch, sample_image_bytes: bytes):
        monkeypatch.setattr(main, "_ocr_available", False)
        resp = client.post("/api/v1/extract", files=[("files", ("front.jpg", sample_image_bytes, "image/jpeg"))])
        assert resp.status_code == 503
        assert "not available" in resp.json()["detail"]

    def test_success(self, client: TestClient, vision_client: MagicMock, sample_image_bytes: bytes):
        resp = client.post("/api/v1/extract", files=[("files", ("front.jpg", sample_image_bytes, "image/jpeg"))])
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["documentType"] == "front"
        assert body["fields"]["numero_cedula"] == "1020742434"
        assert body["confidence"]["numero_cedula"] == "high"
        assert body["fields"]["fecha_nacimiento"] is None
        assert "processingTimeMs" in body
        vision_client.detect_text.assert_called_once_with(sample_image_bytes)

    def test_too_many_files(self, client: TestClient, vision_client: MagicMock, sample_image_bytes: bytes):
        files = [("files", (f"{i}.jpg", sample_image_bytes, "image/jpeg")) for i in range(3)]
        resp = client.post("/api/v1/extract", files=files)
        assert resp.status_code == 400
        assert "At most 2" in resp.json()["detail"]
        vision_client.detect_text.assert_not_called()

    def test_unsupported_type(self, client: TestClient, vision_client: MagicMock):
        resp = client.post("/api/v1/extract", files=[("files", ("notes.txt", b"hola", "text/plain"))])
        assert resp.status_code == 415
        assert "Unsupported file type" in resp.json()["detail"]

    def test_empty_file(self, client: TestClient, vision_client: MagicMock):
        resp = client.post("/api/v1/extract", files=[("files", ("front.jpg", b"", "image/jpeg"))])
        assert resp.status_code == 400
        assert "Empty file" in resp.json()["detail"]

    def test_file_too_large(self, client: TestClient, vision_client: MagicMock, monkeypatch):
        monkeypatch.setattr(settings, "MAX_FILE_SIZE_BYTES", 10)
        resp = client.post("/api/v1/extract", files=[("files", ("front.jpg", b"x" * 11, "image/jpeg"))])
        assert resp.status_code == 400
        assert "File too large" in resp.json()["detail"]


class TestExtractText:
    def test_front_and_back(self, client: TestClient, front_text: str, back_text: str):
        resp = client.post(
            "/api/v1/extract/text",
            json={
                "documents": [
                    {"name": "front.jpg", "rawText": front_text, "sourceImageType": "image"},
                    {"name": "back.pdf", "rawText": back_text, "sourceImageType": "pdf"},
                ]
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["documentType"] == "front"
        assert body["fields"] == {
            "numero_cedula": "1020742434",
            "primer_nombre": "Juan",
            "segundo_nombre": "Carlos",
            "primer_apellido": "Pérez",
            "segundo_apellido": "Gómez",
            "fecha_nacimiento": "2004-04-15",
            "fecha_expedicion_documento": "2022-04-20",
        }
        assert set(body["confidence"].values()) == {"high"}
        assert body["warnings"] == []

    def test_empty_documents(self, client: TestClient):
        resp = client.post("/api/v1/extract/text", json={"documents": []})
        assert resp.status_code == 400

    def test_too_many_documents(self, client: TestClient):
        docs = [{"name": f"{i}.jpg", "rawText": "APELLIDOS"} for i in range(3)]
        resp = client.post("/api/v1/extract/text", json={"documents": docs})
        assert resp.status_code == 400

    def test_invalid_body(self, client: TestClient):
        resp = client.post("/api/v1/extract/text", json={"documents": [{"name": "a.jpg"}]})
        assert resp.status_code == 422


class TestExtractStructured:
    def test_outputs_merged(self, client: TestClient, llm_front_response: str, llm_back_response: str):
        resp = client.post("/api/v1/extract/structured", json={"outputs": [llm_front_response, llm_back_response]})
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["documentType"] == "front"
        assert body["fields"]["primer_apellido"] == "Pérez"
        assert body["confidence"]["segundo_apellido"] == "medium"
        assert body["fields"]["fecha_expedicion_documento"] == "2022-04-20"

    def test_empty_outputs(self, client: TestClient):
        resp = client.post("/api/v1/extract/structured", json={"outputs": []})
        assert resp.status_code == 400
