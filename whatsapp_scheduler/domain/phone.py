"""Phone normalization for Brazilian WhatsApp numbers.

Client phones are free text from several intake flows ("(11) 98765-4321",
"+55 11 98765 4321", "11987654321"...), so nothing is assumed about format.
"""

import re
from typing import Optional

MIN_PHONE_DIGITS = 10  # DDD + 8-digit landline
BRAZIL_COUNTRY_CODE = "55"

_NON_DIGITS = re.compile(r"\D")


def to_e164_brazil(phone: Optional[str]) -> Optional[str]:
    """Normalize to ``+55...`` or return None when the number is unusable."""
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) < MIN_PHONE_DIGITS:
        return None
    if digits.startswith(BRAZIL_COUNTRY_CODE):
        return f"+{digits}"
    return f"+{BRAZIL_COUNTRY_CODE}{digits}"


def to_provider_digits(e164_phone: str) -> str:
    """Providers expect bare digits, not E.164."""
    return re.sub(r"[+\s]", "", e164_phone)
