from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_PROFILE_IMAGES = 5


def _split_services(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return [str(item).strip() for item in value if item and str(item).strip()]


def _lift_id(data: Any) -> Any:
    if isinstance(data, dict) and not data.get("id") and data.get("_id"):
        data = {**data, "id": data["_id"]}
    return data


class Provider(BaseModel):
    """A row of the public provider directory (`GET /users`)."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    full_name: str = ""
    phone_no: str = ""
    image_url: str = ""
    services: list[str] = Field(default_factory=list)
    location: str = ""
    has_subscription: bool = False

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        data = _lift_id(data)
        if isinstance(data, dict) and not data.get("full_name"):
            first = data.get("first_name") or ""
            last = data.get("last_name") or ""
            data = {**data, "full_name": f"{first} {last}".strip()}
        return data

    @field_validator("services", mode="before")
    @classmethod
    def parse_services(cls, value: Any) -> list[str]:
        return _split_services(value)

    @field_validator("id", "full_name", "phone_no", "image_url", "location", mode="before")
    @classmethod
    def none_to_blank(cls, value: Any) -> str:
        return "" if value is None else str(value)


class UserProfile(BaseModel):
    """Full user record as returned by `/auth/me`, `/user/:id` and `/admin/users/:id`."""

    model_config = ConfigDict(extra="ignore")

    id: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone_no: str = ""
    location: str = ""
    gender: str = ""
    sexual_orientation: str = ""
    age: Optional[int] = None
    nationality: str = ""
    services: list[str] = Field(default_factory=list)
    price: Optional[float] = None
    image_url: str = ""
    images: list[str] = Field(default_factory=list)
    is_active: bool = False
    has_subscription: bool = False
    subscription_expiry: Optional[datetime] = None
    role: str = "user"
    created_at: Optional[datetime] = None

    @model_validator(mode="before")
    @classmethod
    def normalize(cls, data: Any) -> Any:
        data = _lift_id(data)
        if not isinstance(data, dict):
            return data
        if not data.get("first_name") and data.get("full_name"):
            first, _, last = str(data["full_name"]).partition(" ")
            data = {**data, "first_name": first, "last_name": data.get("last_name") or last}
        if not data.get("images") and data.get("image_url"):
            data = {**data, "images": [data["image_url"]]}
        return data

    @field_validator("services", mode="before")
    @classmethod
    def parse_services(cls, value: Any) -> list[str]:
        return _split_services(value)

    @field_validator("images", mode="before")
    @classmethod
    def parse_images(cls, value: Any) -> list[str]:
        if not value:
            return []
        return [str(item) for item in value if item]

    @field_validator("age", mode="before")
    @classmethod
    def zero_age_is_unknown(cls, value: Any) -> Any:
        if value in (0, "0", ""):
            return None
        return value

    @field_validator("subscription_expiry", "created_at", mode="before")
    @classmethod
    def zero_time_is_unknown(cls, value: Any) -> Any:
        # The backend serialises unset timestamps as year 1.
        if isinstance(value, str) and value.startswith("0001-01-01"):
            return None
        return value or None

    @field_validator(
        "id",
        "first_name",
        "last_name",
        "email",
        "phone_no",
        "location",
        "gender",
        "sexual_orientation",
        "nationality",
        "image_url",
        mode="before",
    )
    @classmethod
    def none_to_blank(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def photo_slots_left(self, limit: int = MAX_PROFILE_IMAGES) -> int:
        return max(limit - len(self.images), 0)

    @property
    def subscription_state(self) -> str:
        """One of `none`, `expired` or `subscribed`."""
        if not self.has_subscription:
            return "none"
        if self.subscription_expiry:
            expiry = self.subscription_expiry
            if expiry.tzinfo is None:
                expiry = expiry.replace(tzinfo=timezone.utc)
            if expiry < datetime.now(timezone.utc):
                return "expired"
        return "subscribed"

    def session_summary(self) -> dict[str, Any]:
        """Small, cookie-safe copy of the user kept in the session."""
        return {
            "id": self.id,
            "name": self.full_name,
            "email": self.email,
            "role": self.role,
            "is_active": self.is_active,
        }


class ProfileUpdate(BaseModel):
    first_name: str
    last_name: str
    phone_no: str = ""
    location: str = ""
    gender: str = ""
    sexual_orientation: str = ""
    age: Optional[int] = None
    nationality: str = ""
    services: list[str] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        """Drop blank values so the backend keeps what is already stored."""
        payload = self.model_dump()
        return {key: value for key, value in payload.items() if value not in ("", None, 0, [])}
