from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PaymentStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    TIMEOUT = "timeout"

    @property
    def is_terminal(self) -> bool:
        return self in (PaymentStatus.ACTIVE, PaymentStatus.FAILED)

    @classmethod
    def from_backend(cls, value: Any) -> "PaymentStatus":
        """Map a subscription status string to a poll state; unknown values stay pending."""
        normalized = str(value or "").strip().lower()
        if normalized == "active":
            return cls.ACTIVE
        if normalized in ("failed", "cancelled", "canceled"):
            return cls.FAILED
        return cls.PENDING


class SubscriptionPlan(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    name: str
    description: str = ""
    amount: float = 0
    duration_days: int = 0
    features: list[str] = Field(default_factory=list)
    is_popular: bool = False

    @model_validator(mode="before")
    @classmethod
    def resolve_id(cls, data: Any) -> Any:
        # Plans may carry `id`, `_id` or neither; the name is the last resort key.
        if isinstance(data, dict) and not data.get("id"):
            data = {**data, "id": data.get("_id") or data.get("name") or ""}
        return data

    @field_validator("features", mode="before")
    @classmethod
    def none_features(cls, value: Any) -> list[str]:
        return list(value or [])


class Subscription(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    user_id: str = ""
    plan_id: str = ""
    checkout_id: str = ""
    status: str = "pending"
    amount_paid: float = 0
    phone_used: str = ""
    mpesa_receipt: str = ""
    start_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    notes: str = ""

    @model_validator(mode="before")
    @classmethod
    def lift_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id") and data.get("_id"):
            data = {**data, "id": data["_id"]}
        return data

    @field_validator("start_date", "expiry_date", "created_at", mode="before")
    @classmethod
    def zero_time_is_unknown(cls, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("0001-01-01"):
            return None
        return value or None

    @field_validator(
        "id", "user_id", "plan_id", "checkout_id", "status", "phone_used", "mpesa_receipt", "notes",
        mode="before",
    )
    @classmethod
    def none_to_blank(cls, value: Any) -> str:
        return "" if value is None else str(value)


class CheckoutResult(BaseModel):
    """Response of `POST /auth/subscribe`."""

    model_config = ConfigDict(extra="ignore")

    checkout_id: str
    subscription_id: str = ""
    message: str = "Payment initiated! Check your phone to complete MPESA payment."
    amount: float = 0
    phone_used: str = ""
    customer_message: str = ""


class SubscriptionStatus(BaseModel):
    """Response of `GET /auth/subscription/status`."""

    model_config = ConfigDict(extra="ignore")

    has_subscription: bool = False
    days_remaining: int = 0
    subscription: Optional[Subscription] = None
    plan: Optional[SubscriptionPlan] = None
    message: str = ""

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_flag(cls, data: Any) -> Any:
        if isinstance(data, dict) and "has_subscription" not in data:
            data = {**data, "has_subscription": bool(data.get("has_active_subscription"))}
        return data

    @field_validator("plan", mode="before")
    @classmethod
    def empty_plan(cls, value: Any) -> Any:
        # An unmatched plan comes back as a zero-valued document.
        if isinstance(value, dict) and not value.get("name"):
            return None
        return value


class PaymentCheck(BaseModel):
    """Response of `GET /auth/subscription/check-status`."""

    model_config = ConfigDict(extra="ignore")

    status: PaymentStatus = PaymentStatus.PENDING
    data: Optional[Subscription] = None

    @field_validator("status", mode="before")
    @classmethod
    def map_status(cls, value: Any) -> PaymentStatus:
        return PaymentStatus.from_backend(value)
