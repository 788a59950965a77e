from __future__ import annotations

import pytest

from portal.core.exceptions import ValidationError
from portal.core.validation import (
    is_valid_email,
    is_valid_kenyan_phone,
    normalize_phone,
    parse_age,
    validate_checkout,
    validate_login,
    validate_profile_update,
    validate_registration,
)


def registration_form(**overrides):
    form = {
        "first_name": "Jane",
        "last_name": "Wanjiru",
        "email": "jane@example.com",
        "phone_no": "0712 345 678",
        "password": "secret1",
        "confirm_password": "secret1",
        "gender": "Female",
    }
    form.update(overrides)
    return form


def test_registration_payload_uses_backend_field_names_and_defaults():
    payload = validate_registration(registration_form(), ["Massage", "Massage", " Events "])
    assert payload["firstName"] == "Jane"
    assert payload["lastName"] == "Wanjiru"
    assert payload["phoneNo"] == "254712345678"
    assert payload["services"] == ["Massage", "Events"]
    assert payload["sexualOrientation"] == "Straight"
    assert payload["age"] == 25
    assert payload["nationality"] == "Kenyan"
    assert payload["location"] == "Nairobi"


@pytest.mark.parametrize(
    "overrides, services, message",
    [
        ({"first_name": ""}, ["Massage"], "first name is required"),
        ({"gender": "  "}, ["Massage"], "gender is required"),
        ({}, [], "Please select at least one service you offer"),
        ({"email": "jane@example"}, ["Massage"], "Please enter a valid email address"),
        ({"phone_no": "0812345678"}, ["Massage"], "valid Kenyan phone number"),
        ({"password": "abc", "confirm_password": "abc"}, ["Massage"], "at least 6 characters"),
        ({"confirm_password": "secret2"}, ["Massage"], "Passwords do not match"),
        ({"age": "17"}, ["Massage"], "Age must be between 18 and 100"),
    ],
)
def test_registration_rejects_invalid_input(overrides, services, message):
    with pytest.raises(ValidationError) as excinfo:
        validate_registration(registration_form(**overrides), services)
    assert message in str(excinfo.value)


def test_email_and_phone_patterns():
    assert is_valid_email("a@b.co")
    assert not is_valid_email("a b@c.co")
    assert is_valid_kenyan_phone("254112345678")
    assert is_valid_kenyan_phone("0712345678")
    assert not is_valid_kenyan_phone("+254712345678")
    assert not is_valid_kenyan_phone("07123456")


def test_normalize_phone_variants():
    assert normalize_phone("0712345678") == "254712345678"
    assert normalize_phone("+254712345678") == "254712345678"
    assert normalize_phone("254 712 345 678") == "254712345678"


def test_parse_age_bounds():
    assert parse_age("") is None
    assert parse_age("18") == 18
    assert parse_age(100) == 100
    with pytest.raises(ValidationError):
        parse_age("101")
    with pytest.raises(ValidationError):
        parse_age("old")


def test_login_requires_both_fields():
    assert validate_login(" jane@example.com ", "pw") == ("jane@example.com", "pw")
    with pytest.raises(ValidationError):
        validate_login("jane@example.com", "")


def test_checkout_requires_plan_and_phone():
    assert validate_checkout("basic", "0712345678") == ("basic", "254712345678")
    with pytest.raises(ValidationError, match="select a subscription plan"):
        validate_checkout("", "0712345678")
    with pytest.raises(ValidationError, match="phone number"):
        validate_checkout("basic", "   ")


def test_profile_update_requires_names_and_keeps_optional_blanks():
    fields = validate_profile_update({"first_name": "Jane", "last_name": "W", "age": ""}, ["A", "A"])
    assert fields["age"] is None
    assert fields["phone_no"] == ""
    assert fields["services"] == ["A"]
    with pytest.raises(ValidationError, match="First name and last name"):
        validate_profile_update({"first_name": "Jane"}, [])
