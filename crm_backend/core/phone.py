"""
Phone number utilities.
Phone keys are E.164 strings and identify customers across leads and orders.
"""
import re
from typing import Optional

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

from crm_backend.config import settings

# Gulf country codes that are often written without the leading "+"
GCC_DIAL_CODES = ("971", "966", "965", "973", "968", "974")

# ISO region -> internal country code
REGION_TO_COUNTRY = {
    "AE": "UAE",
    "SA": "KSA",
    "KW": "KWT",
    "BH": "BHR",
    "OM": "OMN",
    "QA": "QAT",
}

_NON_DIALABLE = re.compile(r"[\s\-().]")


def normalize_phone_key(phone: Optional[str], default_region: Optional[str] = None) -> str:
    """
    Normalize a phone number to E.164.

    Examples (default region AE):
        +971501234567  -> +971501234567
        00971501234567 -> +971501234567
        971501234567   -> +971501234567
        0501234567     -> +971501234567

    Numbers that do not parse as valid are returned cleaned; local numbers
    of 10+ digits are assumed to belong to the UAE.
    """
    if not phone:
        return ""

    region = default_region or settings.DEFAULT_PHONE_REGION
    cleaned = _NON_DIALABLE.sub("", phone.strip())

    if cleaned.startswith("00"):
        cleaned = "+" + cleaned[2:]

    if not cleaned.startswith("+") and cleaned.startswith(GCC_DIAL_CODES):
        cleaned = "+" + cleaned

    try:
        parsed = phonenumbers.parse(cleaned, region)
        if phonenumbers.is_valid_number(parsed):
            return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)
    except NumberParseException:
        pass

    if not cleaned.startswith("+") and len(cleaned) >= 10:
        return "+971" + cleaned.lstrip("0")

    return cleaned


def is_valid_phone(phone: str, default_region: Optional[str] = None) -> bool:
    """Check whether a phone number is valid."""
    try:
        parsed = phonenumbers.parse(phone, default_region or settings.DEFAULT_PHONE_REGION)
    except NumberParseException:
        return False
    return phonenumbers.is_valid_number(parsed)


def country_from_phone(phone: str) -> Optional[str]:
    """Internal country code (UAE, KSA, ...) for an E.164 number, if known."""
    try:
        parsed = phonenumbers.parse(phone, None)
    except NumberParseException:
        return None
    region = phonenumbers.region_code_for_number(parsed)
    return REGION_TO_COUNTRY.get(region, region)
