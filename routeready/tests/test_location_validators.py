import pytest

from routeready.core.errors import InputFormatError
from routeready.features.locations.validators import (
    is_zip_or_postal_code,
    sanitize_input,
    validate_location,
)


@pytest.mark.parametrize("value", ["10001", "10001-1234", "K1A 0B1", "k1a0b1", "M5V-3L9"])
def test_accepts_zip_and_postal_codes(value):
    assert is_zip_or_postal_code(value)


@pytest.mark.parametrize("value", ["1000", "100011", "ABCDE", "K1A 0B", "10001-12", "Chicago"])
def test_rejects_other_formats(value):
    assert not is_zip_or_postal_code(value)


def test_strict_mode_names_the_field():
    with pytest.raises(InputFormatError) as exc:
        validate_location("Chicago, IL", field="destination")
    assert exc.value.field == "destination"
    assert exc.value.code == "invalid_location"
    assert exc.value.status_code == 422


def test_lenient_mode_accepts_place_names():
    assert validate_location("  Chicago, IL ", strict=False) == "Chicago, IL"


@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_is_rejected(value):
    with pytest.raises(InputFormatError):
        validate_location(value, field="departure")


def test_too_long_is_rejected_in_both_modes():
    with pytest.raises(InputFormatError):
        validate_location("a" * 101, strict=False)


def test_postal_code_is_normalized():
    assert validate_location("k1a-0b1") == "K1A 0B1"
    assert validate_location(" 10001 ") == "10001"


def test_sanitize_strips_markup_and_control_chars():
    assert sanitize_input("<script>Denver\x00</script>") == "scriptDenver/script"
    assert sanitize_input("x" * 50, max_length=10) == "x" * 10
