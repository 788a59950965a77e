from __future__ import annotations

from datetime import date, datetime
from typing import Any
from urllib.parse import unquote, urlparse


def format_kes(amount: Any) -> str:
    """Format a shilling amount the way the plans page shows it, e.g. `KES 1,500`."""
    try:
        value = float(amount)
    except (TypeError, ValueError):
        value = 0.0
    return f"KES {value:,.0f}"


def mask_phone(phone: str, reveal: bool = False) -> str:
    if not phone or reveal or len(phone) <= 12:
        return phone or ""
    return f"{phone[:4]}****{phone[-4:]}"


def format_date(value: Any) -> str:
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if isinstance(value, (datetime, date)):
        return f"{value:%b} {value.day}, {value.year}"
    return str(value)


def image_filename(url: str) -> str:
    """Last path segment of an image URL; the backend deletes uploads by this name."""
    path = urlparse(url or "").path
    return unquote(path.rsplit("/", 1)[-1]) if path else ""
