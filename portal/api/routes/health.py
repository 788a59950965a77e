"""
Health API Routes
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from portal.api.dependencies import get_backend
from portal.config import settings
from portal.core.exceptions import BackendError
from portal.integrations.backend import BackendClient

router = APIRouter()


@router.get("/health")
async def health_check(backend: BackendClient = Depends(get_backend)) -> JSONResponse:
    """Portal and backend health"""
    try:
        plans = await backend.list_plans()
        upstream = {"ok": True, "url": backend.base_url, "plans": len(plans)}
    except BackendError as exc:
        upstream = {"ok": False, "url": backend.base_url, "error": exc.message}

    ok = bool(upstream["ok"])
    return JSONResponse(
        status_code=status.HTTP_200_OK if ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if ok else "degraded",
            "name": settings.app_name,
            "environment": settings.app_env,
            "backend": upstream,
        },
    )
