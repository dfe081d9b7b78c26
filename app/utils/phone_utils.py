"""
Utilidades para números de teléfono iraquíes.

Los clientes escriben el teléfono en muchas formas (07XX..., 7XX..., +9647XX...,
00964...). Para comparar pedidos del mismo cliente se usan los últimos 10
dígitos; para los socios de entrega se usa el formato internacional.
"""

import re

LOCAL_PHONE_PATTERN = re.compile(r"^07[5789]\d{8,9}$")
INTERNATIONAL_PHONE_PATTERN = re.compile(r"^\+9647\d{9}$")
PHONE_IN_TEXT_PATTERN = re.compile(r"(?:\+?964|0)?7[5789]\d{8}")

_NON_DIGITS = re.compile(r"\D")

# Dígitos arábigo-índicos y persas a ASCII
_DIGIT_TRANSLATION = str.maketrans("٠١٢٣٤٥٦٧٨٩۰۱۲۳۴۵۶۷۸۹", "01234567890123456789")


def to_ascii_digits(text: str) -> str:
    """Convierte dígitos árabes (٠-٩) a dígitos ASCII."""
    return text.translate(_DIGIT_TRANSLATION)


def digits_only(phone: str | None) -> str:
    if not phone:
        return ""
    return _NON_DIGITS.sub("", to_ascii_digits(str(phone)))


def normalize_phone(phone: str | None) -> str:
    """
    Normaliza un teléfono a sus últimos 10 dígitos.

    Ejemplos:
        "07701234567"    -> "7701234567"
        "+9647701234567" -> "7701234567"
        "770 123 4567"   -> "7701234567"
    """
    digits = digits_only(phone)
    return digits[-10:] if len(digits) > 10 else digits


def to_local_format(phone: str | None) -> str:
    """Devuelve el teléfono en formato local 07XXXXXXXXX."""
    normalized = normalize_phone(phone)
    if not normalized:
        return ""
    return f"0{normalized}" if not normalized.startswith("0") else normalized


def is_valid_local_phone(phone: str | None) -> bool:
    """Valida el formato local iraquí (07[5789] seguido de 8 o 9 dígitos)."""
    return bool(LOCAL_PHONE_PATTERN.match(digits_only(phone)))


def format_international_phone(phone: str | None) -> str:
    """
    Convierte un teléfono al formato internacional +9647XXXXXXXXX.

    Args:
        phone: Teléfono en cualquier formato

    Returns:
        str: Teléfono formateado, o cadena vacía si no hay dígitos
    """
    digits = digits_only(phone)
    if not digits:
        return ""

    if digits.startswith("00964"):
        digits = digits[2:]
    if digits.startswith("964"):
        return f"+{digits}"
    if digits.startswith("07"):
        digits = digits[1:]
    return f"+964{digits}"


def is_valid_international_phone(phone: str | None) -> bool:
    return bool(phone and INTERNATIONAL_PHONE_PATTERN.match(phone))


def strip_phones(text: str) -> str:
    """Elimina números de teléfono iraquíes de un texto libre."""
    return PHONE_IN_TEXT_PATTERN.sub("", to_ascii_digits(text))
