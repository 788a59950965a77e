"""Form checks run before any backend call is made."""
from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from portal.core.exceptions import ValidationError

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
KENYAN_PHONE_RE = re.compile(r"^(254|0)[17]\d{8}$")
MIN_PASSWORD_LENGTH = 6
MIN_AGE = 18
MAX_AGE = 100

REGISTER_REQUIRED = (
    ("first_name", "first name"),
    ("last_name", "last name"),
    ("email", "email"),
    ("phone_no", "phone no"),
    ("password", "password"),
    ("confirm_password", "confirm password"),
    ("gender", "gender"),
)

REGISTER_DEFAULTS = {
    "sexual_orientation": "Straight",
    "age": 25,
    "nationality": "Kenyan",
    "location": "Nairobi",
}


def clean_phone(phone: str) -> str:
    return re.sub(r"\s+", "", phone or "")


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_kenyan_phone(phone: str) -> bool:
    return bool(KENYAN_PHONE_RE.match(clean_phone(phone)))


def normalize_phone(phone: str) -> str:
    """Convert `07…`/`+2547…` numbers to the `2547…` form MPESA expects."""
    cleaned = clean_phone(phone)
    if cleaned.startswith("0"):
        return "254" + cleaned[1:]
    if cleaned.startswith("+254"):
        return cleaned[1:]
    return cleaned


def parse_age(raw: Any) -> Optional[int]:
    """Return the age as an int, None when blank, or raise when out of range."""
    if raw is None or str(raw).strip() == "":
        return None
    try:
        age = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    if age < MIN_AGE or age > MAX_AGE:
        raise ValidationError(f"Age must be between {MIN_AGE} and {MAX_AGE}")
    return age


def unique_services(services: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for service in services:
        service = (service or "").strip()
        if service and service not in seen:
            seen.append(service)
    return seen


def validate_registration(form: Mapping[str, Any], services: Iterable[str]) -> dict[str, Any]:
    """
    Validate the registration form and return the backend payload fields.

    Checks run in the same order the form shows its messages: required fields,
    services, email, phone, password, then age.
    """
    for field, label in REGISTER_REQUIRED:
        if not str(form.get(field) or "").strip():
            raise ValidationError(f"{label} is required")

    selected = unique_services(services)
    if not selected:
        raise ValidationError("Please select at least one service you offer")

    email = str(form["email"]).strip()
    if not is_valid_email(email):
        raise ValidationError("Please enter a valid email address")

    if not is_valid_kenyan_phone(str(form["phone_no"])):
        raise ValidationError(
            "Please enter a valid Kenyan phone number (e.g., 0712345678 or 254712345678)"
        )

    password = str(form["password"])
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if password != str(form["confirm_password"]):
        raise ValidationError("Passwords do not match")

    age = parse_age(form.get("age"))

    return {
        "firstName": str(form["first_name"]).strip(),
        "lastName": str(form["last_name"]).strip(),
        "email": email,
        "phoneNo": normalize_phone(str(form["phone_no"])),
        "password": password,
        "gender": str(form["gender"]).strip(),
        "sexualOrientation": str(form.get("sexual_orientation") or "").strip()
        or REGISTER_DEFAULTS["sexual_orientation"],
        "age": age if age is not None else REGISTER_DEFAULTS["age"],
        "nationality": str(form.get("nationality") or "").strip() or REGISTER_DEFAULTS["nationality"],
        "location": str(form.get("location") or "").strip() or REGISTER_DEFAULTS["location"],
        "services": selected,
    }


def validate_login(email: str, password: str) -> tuple[str, str]:
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Please enter both email and password.")
    return email, password


def validate_checkout(plan_id: str, phone: str) -> tuple[str, str]:
    """A plan and an MPESA phone number must both be supplied."""
    if not (plan_id or "").strip():
        raise ValidationError("Please select a subscription plan")
    if not (phone or "").strip():
        raise ValidationError("Please enter your phone number for MPESA payment")
    return plan_id.strip(), normalize_phone(phone)


def validate_profile_update(form: Mapping[str, Any], services: Iterable[str]) -> dict[str, Any]:
    first_name = str(form.get("first_name") or "").strip()
    last_name = str(form.get("last_name") or "").strip()
    if not first_name or not last_name:
        raise ValidationError("First name and last name are required")

    phone = str(form.get("phone_no") or "").strip()
    if phone and not is_valid_kenyan_phone(phone):
        raise ValidationError(
            "Please enter a valid Kenyan phone number (e.g., 0712345678 or 254712345678)"
        )

    return {
        "first_name": first_name,
        "last_name": last_name,
        "phone_no": normalize_phone(phone) if phone else "",
        "location": str(form.get("location") or "").strip(),
        "gender": str(form.get("gender") or "").strip(),
        "sexual_orientation": str(form.get("sexual_orientation") or "").strip(),
        "age": parse_age(form.get("age")),
        "nationality": str(form.get("nationality") or "").strip(),
        "services": unique_services(services),
    }
