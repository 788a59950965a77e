from __future__ import annotations

import calendar
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portal.schemas.subscription import Subscription
from portal.schemas.user import UserProfile


class Pagination(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    page: int = 1
    limit: int = 20
    total_pages: int = 0

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


class UserPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    users: list[UserProfile] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @field_validator("users", mode="before")
    @classmethod
    def null_users(cls, value: Any) -> Any:
        return value or []


class SubscriptionPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    subscriptions: list[Subscription] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @field_validator("subscriptions", mode="before")
    @classmethod
    def null_subscriptions(cls, value: Any) -> Any:
        return value or []


class UserDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    user: UserProfile
    active_subscriptions: list[Subscription] = Field(default_factory=list)
    subscription_history: list[Subscription] = Field(default_factory=list)

    @field_validator("active_subscriptions", "subscription_history", mode="before")
    @classmethod
    def null_lists(cls, value: Any) -> Any:
        return value or []


class UserStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    active: int = 0
    inactive: int = 0
    today: int = 0
    yesterday: int = 0
    growth_rate: float = 0


class SubscriptionStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    active: int = 0
    expired: int = 0
    total: int = 0


class RecentActivity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    users: list[UserProfile] = Field(default_factory=list)
    subscriptions: list[Subscription] = Field(default_factory=list)

    @field_validator("users", "subscriptions", mode="before")
    @classmethod
    def null_lists(cls, value: Any) -> Any:
        return value or []


class DashboardStats(BaseModel):
    model_config = ConfigDict(extra="ignore")

    users: UserStats = Field(default_factory=UserStats)
    subscriptions: SubscriptionStats = Field(default_factory=SubscriptionStats)
    recent: RecentActivity = Field(default_factory=RecentActivity)


class ReportRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    year: int
    month: int
    count: int = 0
    total_amount: Optional[float] = None

    @property
    def label(self) -> str:
        return f"{calendar.month_abbr[self.month]} {self.year}"


class Report(BaseModel):
    """Monthly aggregate from `/admin/reports/*`."""

    model_config = ConfigDict(extra="ignore")

    type: str = ""
    period: str = ""
    data: list[ReportRow] = Field(default_factory=list)

    @field_validator("data", mode="before")
    @classmethod
    def null_data(cls, value: Any) -> Any:
        return value or []

    @property
    def total_count(self) -> int:
        return sum(row.count for row in self.data)

    @property
    def total_amount(self) -> float:
        return sum(row.total_amount or 0 for row in self.data)
