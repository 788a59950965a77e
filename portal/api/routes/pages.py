"""
Public pages: marketing home with the provider directory, and provider profiles.
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from portal.api.dependencies import get_backend
from portal.core.exceptions import BackendError
from portal.integrations.backend import BackendClient
from portal.services.directory import DirectoryFilters, derive_facets, filter_providers
from portal.templating import render

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def home(
    request: Request,
    q: str = "",
    location: str = "",
    service: str = "",
    backend: BackendClient = Depends(get_backend),
):
    """Home page with the searchable provider grid."""
    filters = DirectoryFilters(query=q, location=location, service=service)
    error = ""
    providers = []
    try:
        providers = await backend.list_providers()
    except BackendError as exc:
        logger.warning("Directory fetch failed: %s", exc.message)
        error = exc.message

    return render(
        request,
        "home.html",
        {
            "providers": filter_providers(providers, filters),
            "total": len(providers),
            "facets": derive_facets(providers),
            "filters": filters,
            "error": error,
        },
    )


@router.get("/provider/{provider_id}")
async def provider_profile(
    request: Request,
    provider_id: str,
    show_phone: bool = False,
    backend: BackendClient = Depends(get_backend),
):
    try:
        provider = await backend.get_provider(provider_id)
    except BackendError as exc:
        status_code = 502
        if not exc.is_transport_error and exc.status_code >= 400:
            status_code = exc.status_code
        return render(
            request,
            "error.html",
            {
                "title": "Provider unavailable",
                "message": exc.message or "Failed to load provider profile",
                "retry_url": request.url.path,
            },
            status_code=status_code,
        )

    return render(
        request,
        "provider.html",
        {"provider": provider, "show_phone": show_phone},
    )
