"""Jinja2 rendering and session-backed flash messages."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

from fastapi import Request
from fastapi.templating import Jinja2Templates

from portal.config import settings
from portal.core.formatting import format_date, format_kes, image_filename, mask_phone
from portal.core.security import current_user, session_role

FLASH_KEY = "_flashes"

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.filters["kes"] = format_kes
templates.env.filters["mask_phone"] = mask_phone
templates.env.filters["date"] = format_date
templates.env.filters["filename"] = image_filename


def flash(request: Request, message: str, category: str = "info") -> None:
    messages = list(request.session.get(FLASH_KEY) or [])
    messages.append({"message": message, "category": category})
    request.session[FLASH_KEY] = messages


def pop_flashes(request: Request) -> List[Dict[str, str]]:
    return list(request.session.pop(FLASH_KEY, None) or [])


def render(
    request: Request,
    name: str,
    context: Dict[str, Any] | None = None,
    status_code: int = 200,
):
    ctx: Dict[str, Any] = {
        "settings": settings,
        "session_user": current_user(request),
        "is_admin": session_role(request) == "admin",
        "flashes": pop_flashes(request),
    }
    ctx.update(context or {})
    return templates.TemplateResponse(request, name, ctx, status_code=status_code)
