"""
Phone number normalization - E.164 format using the phonenumbers library.
Clients are deduplicated per business on the normalized number, so
"(11) 98765-4321" and "+55 11 98765 4321" resolve to the same client.
"""
import logging
from typing import Optional

import phonenumbers

logger = logging.getLogger(__name__)


def normalize_phone_e164(phone: str, default_region: str = "BR") -> Optional[str]:
    """
    Normalize a phone number to E.164 format.

    Handles:
    - (11) 98765-4321   → +5511987654321  (region BR)
    - +55 11 98765 4321 → +5511987654321
    - (555) 123-4567    → +15551234567    (region US)

    Returns None if the number cannot be parsed or is not a possible number.
    """
    if not phone or not phone.strip():
        return None

    try:
        parsed = phonenumbers.parse(phone.strip(), default_region)
    except phonenumbers.NumberParseException:
        return None

    # "Possible" rather than "valid": accept numbers from ranges not yet assigned
    if not phonenumbers.is_possible_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def mask_phone(phone: Optional[str]) -> str:
    """Mask all but the last 4 digits for logging."""
    if not phone:
        return "***"
    return f"***{phone[-4:]}"
