import pytest

from freshleap.utils.validators import (
    validate_contact_number,
    validate_password_strength,
    validate_username,
    validate_verification_code,
)


@pytest.mark.parametrize("password,message", [
    ("password1!", "uppercase"),
    ("PASSWORD1!", "lowercase"),
    ("Password!", "digit"),
    ("Password1", "special"),
])
def test_password_strength_rejects_weak_passwords(password, message):
    with pytest.raises(ValueError) as exc:
        validate_password_strength(password)
    assert message in str(exc.value)


def test_password_strength_accepts_strong_password():
    assert validate_password_strength("Str0ng!Pass") == "Str0ng!Pass"


def test_username_rules():
    assert validate_username("  farmer_joe ") == "farmer_joe"
    with pytest.raises(ValueError):
        validate_username("ab")
    with pytest.raises(ValueError):
        validate_username("joe smith")


def test_contact_number():
    assert validate_contact_number("+1 (555) 010-0199") == "+1 (555) 010-0199"
    with pytest.raises(ValueError):
        validate_contact_number("call me")


def test_verification_code():
    assert validate_verification_code(" 123456 ") == "123456"
    for bad in ("12345", "1234567", "abcdef"):
        with pytest.raises(ValueError):
            validate_verification_code(bad)
