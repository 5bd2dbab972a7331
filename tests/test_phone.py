import pytest

from crm_backend.core.phone import normalize_phone_key, is_valid_phone, country_from_phone


@pytest.mark.parametrize("raw", [
    "+971501234567",
    "00971501234567",
    "971501234567",
    "0501234567",
    "050 123 4567",
    "+971 (50) 123-4567",
])
def test_uae_numbers_normalize_to_e164(raw):
    assert normalize_phone_key(raw) == "+971501234567"


def test_other_gcc_number_keeps_its_country_code():
    assert normalize_phone_key("966501234567") == "+966501234567"


def test_empty_phone_gives_empty_key():
    assert normalize_phone_key("") == ""
    assert normalize_phone_key(None) == ""


def test_unparseable_long_local_number_falls_back_to_uae():
    assert normalize_phone_key("1234567890") == "+9711234567890"


def test_is_valid_phone():
    assert is_valid_phone("+971501234567")
    assert not is_valid_phone("12")


def test_country_from_phone():
    assert country_from_phone("+971501234567") == "UAE"
    assert country_from_phone("+966501234567") == "KSA"
    assert country_from_phone("not a phone") is None
