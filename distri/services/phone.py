# French phone numbers: validation and "06 12 34 56 78" formatting

import re

_SEPARATORS = re.compile(r"[\s\-.()]")
_VALID_PATTERNS = (
    re.compile(r"^\+33\d{9}$"),
    re.compile(r"^0033\d{9}$"),
    re.compile(r"^0[1-9]\d{8}$"),
    re.compile(r"^[1-9]\d{8}$"),
)


def clean_phone(phone: str) -> str:
    return _SEPARATORS.sub("", phone or "")


def is_valid_french_phone(phone: str) -> bool:
    """+33XXXXXXXXX, 0033XXXXXXXXX, 0XXXXXXXXX or the 9 national digits."""
    cleaned = clean_phone(phone)
    return any(p.match(cleaned) for p in _VALID_PATTERNS)


def to_national(phone: str) -> str:
    cleaned = clean_phone(phone)
    if cleaned.startswith("+33"):
        return "0" + cleaned[3:]
    if cleaned.startswith("0033"):
        return "0" + cleaned[4:]
    if len(cleaned) == 9 and cleaned[:1] in "123456789":
        return "0" + cleaned
    return cleaned


def format_french_phone(phone: str) -> str:
    """Pairs of digits in national form; anything unrecognised is returned unchanged."""
    national = to_national(phone)
    if len(national) == 10 and national.isdigit() and national.startswith("0"):
        return " ".join(national[i : i + 2] for i in range(0, 10, 2))
    return phone
