"""Form-level validation of Brazilian identifiers and masks."""
import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")
_PLATE_OLD = re.compile(r"^[A-Z]{3}[0-9]{4}$")
_PLATE_MERCOSUL = re.compile(r"^[A-Z]{3}[0-9][A-Z][0-9]{2}$")


def only_digits(value: Optional[str]) -> str:
    return _NON_DIGITS.sub("", value or "")


def is_valid_cpf(value: str) -> bool:
    """CPF: 11 digits, not all equal, both check digits correct. Accepts masked input."""
    digits = only_digits(value)
    if len(digits) != 11 or digits == digits[0] * 11:
        return False
    for size in (9, 10):
        total = sum(int(d) * w for d, w in zip(digits[:size], range(size + 1, 1, -1)))
        check = (total * 10) % 11
        if check == 10:
            check = 0
        if check != int(digits[size]):
            return False
    return True


def is_valid_saram(value: str) -> bool:
    return len(only_digits(value)) == 7


def is_valid_phone(value: str) -> bool:
    """DDD + 8 (landline) or 9 (mobile) digits."""
    return len(only_digits(value)) in (10, 11)


def normalize_plate(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9]", "", value or "").upper()


def is_valid_plate(value: str) -> bool:
    plate = normalize_plate(value)
    return bool(_PLATE_OLD.match(plate) or _PLATE_MERCOSUL.match(plate))


def validate_cpf(value: Optional[str]) -> Optional[str]:
    """Pydantic helper: returns the CPF digits or raises ValueError."""
    if value is None or value == "":
        return None
    if not is_valid_cpf(value):
        raise ValueError("CPF inválido")
    return only_digits(value)


def validate_saram(value: str) -> str:
    if not is_valid_saram(value):
        raise ValueError("SARAM deve conter 7 dígitos")
    return only_digits(value)


def validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    if not is_valid_phone(value):
        raise ValueError("Telefone deve conter DDD e 8 ou 9 dígitos")
    return only_digits(value)
