"""Input validators shared by services: UUIDs, CPF, reference months."""

import re
from datetime import date

UUID4_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
REFERENCE_MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_valid_uuid(value) -> bool:
    """True if value is a version-4 UUID string."""
    return isinstance(value, str) and bool(UUID4_RE.match(value))


def unformat_cpf(value: str) -> str:
    return re.sub(r"\D", "", value or "")


def format_cpf(value: str) -> str:
    """Render up to 11 digits as ``000.000.000-00``; partial input is kept partial."""
    digits = unformat_cpf(value)[:11]
    digits = re.sub(r"(\d{3})(\d)", r"\1.\2", digits, count=1)
    digits = re.sub(r"(\d{3})(\d)", r"\1.\2", digits, count=1)
    return re.sub(r"(\d{3})(\d{1,2})$", r"\1-\2", digits, count=1)


def _cpf_check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * (weight_start - i) for i, d in enumerate(digits))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(value: str) -> bool:
    """Validate a Brazilian CPF number (formatting characters ignored)."""
    cpf = unformat_cpf(value)
    if len(cpf) != 11 or cpf == cpf[0] * 11:
        return False
    if _cpf_check_digit(cpf[:9], 10) != int(cpf[9]):
        return False
    return _cpf_check_digit(cpf[:10], 11) == int(cpf[10])


def month_delta_installments(start: date, end: date) -> int:
    """Number of monthly installments between two dates, both months inclusive."""
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def reference_months(start: date, count: int) -> list[str]:
    """``YYYY-MM`` labels for ``count`` consecutive months starting at ``start``."""
    months = []
    for offset in range(count):
        year, month = divmod(start.month - 1 + offset, 12)
        months.append(f"{start.year + year:04d}-{month + 1:02d}")
    return months


def is_reference_month(value: str) -> bool:
    return bool(REFERENCE_MONTH_RE.match(value or ""))
