"""Tests for text normalization and front/back classification."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from classifier import MIN_INDICATOR_MATCHES, classify_document, fold_accents, normalize_text
from models import DocumentType


class TestNormalizeText:
    def test_collapses_whitespace_and_uppercases(self):
        assert normalize_text("  Apellidos\r\nPérez\rGómez \t x ") == "APELLIDOS PÉREZ GÓMEZ X"

    def test_empty_and_none(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""
        assert normalize_text(" \n\t ") == ""


class TestFoldAccents:
    def test_strips_diacritics(self):
        assert fold_accents("REPÚBLICA CÉDULA CIUDADANÍA") == "REPUBLICA CEDULA CIUDADANIA"

    def test_plain_text_unchanged(self):
        assert fold_accents("BOGOTA D.C.") == "BOGOTA D.C."


class TestClassifyDocument:
    def test_threshold_is_two(self):
        assert MIN_INDICATOR_MATCHES == 2

    def test_front(self):
        assert classify_document("REPUBLICA DE COLOMBIA APELLIDOS PEREZ") == DocumentType.FRONT

    def test_front_with_accents(self):
        text = normalize_text("República de Colombia\nCédula de Ciudadanía")
        assert classify_document(text) == DocumentType.FRONT

    def test_back(self):
        assert classify_document("ESTATURA 1.70 GRUPO SANGUINEO O+") == DocumentType.BACK

    def test_full(self):
        text = "CEDULA DE CIUDADANIA NOMBRES JUAN FECHA DE NACIMIENTO 01 ENE 1990 ESTATURA 1.70"
        assert classify_document(text) == DocumentType.FULL

    def test_single_indicators_are_unknown(self):
        """One front and one back indicator is not enough for either side."""
        assert classify_document("APELLIDOS ESTATURA") == DocumentType.UNKNOWN

    def test_unrelated_text(self):
        assert classify_document("FACTURA ELECTRONICA DE VENTA") == DocumentType.UNKNOWN

    def test_empty(self):
        assert classify_document("") == DocumentType.UNKNOWN

    def test_sample_cards(self, front_text: str, historical_front_text: str, back_text: str, full_text: str):
        assert classify_document(normalize_text(front_text)) == DocumentType.FRONT
        assert classify_document(normalize_text(historical_front_text)) == DocumentType.FRONT
        assert classify_document(normalize_text(back_text)) == DocumentType.BACK
        assert classify_document(normalize_text(full_text)) == DocumentType.FULL
