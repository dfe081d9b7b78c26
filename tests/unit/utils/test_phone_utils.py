"""Tests unitarios para las utilidades de teléfonos iraquíes."""

from app.utils.phone_utils import (
    format_international_phone,
    is_valid_international_phone,
    is_valid_local_phone,
    normalize_phone,
    strip_phones,
    to_local_format,
)


class TestNormalizePhone:
    """Tests para la normalización a los últimos 10 dígitos."""

    def test_normalizes_common_formats(self):
        """Debe producir el mismo valor para los formatos habituales."""
        assert normalize_phone("07701234567") == "7701234567"
        assert normalize_phone("+9647701234567") == "7701234567"
        assert normalize_phone("00964 770 123 4567") == "7701234567"

    def test_arabic_digits(self):
        """Debe convertir dígitos arábigo-índicos."""
        assert normalize_phone("٠٧٧٠١٢٣٤٥٦٧") == "7701234567"

    def test_empty_values(self):
        """Debe retornar cadena vacía para None o vacío."""
        assert normalize_phone(None) == ""
        assert normalize_phone("") == ""


class TestPhoneFormats:
    """Tests para validación y conversión de formatos."""

    def test_local_validation(self):
        """Debe validar prefijos 075/077/078/079."""
        assert is_valid_local_phone("07701234567")
        assert is_valid_local_phone("0790 123 4567")
        assert not is_valid_local_phone("07601234567")
        assert not is_valid_local_phone("12345")

    def test_international_format(self):
        """Debe convertir a +9647XXXXXXXXX."""
        assert format_international_phone("07701234567") == "+9647701234567"
        assert format_international_phone("009647701234567") == "+9647701234567"
        assert format_international_phone("7701234567") == "+9647701234567"
        assert format_international_phone("") == ""
        assert is_valid_international_phone("+9647701234567")

    def test_local_format(self):
        """Debe devolver el formato local 07XXXXXXXXX."""
        assert to_local_format("+9647701234567") == "07701234567"
        assert to_local_format(None) == ""

    def test_strip_phones(self):
        """Debe eliminar teléfonos de un texto libre."""
        assert "0770" not in strip_phones("بغداد الكرادة 07701234567")
