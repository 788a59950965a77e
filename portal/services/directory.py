"""Provider directory search over the list fetched from `GET /users`."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from portal.schemas.user import Provider


@dataclass
class DirectoryFacets:
    locations: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)


@dataclass
class DirectoryFilters:
    query: str = ""
    location: str = ""
    service: str = ""

    @property
    def active(self) -> bool:
        return bool(self.query.strip() or self.location.strip() or self.service.strip())


def derive_facets(providers: Iterable[Provider]) -> DirectoryFacets:
    """Unique, sorted, non-blank locations and services across the fetched list."""
    locations: set[str] = set()
    services: set[str] = set()
    for provider in providers:
        if provider.location and provider.location.strip():
            locations.add(provider.location)
        for service in provider.services:
            if service and service.strip():
                services.add(service)
    return DirectoryFacets(locations=sorted(locations), services=sorted(services))


def _matches_query(provider: Provider, term: str) -> bool:
    return (
        term in provider.full_name.lower()
        or term in provider.location.lower()
        or any(term in service.lower() for service in provider.services)
    )


def filter_providers(providers: Sequence[Provider], filters: DirectoryFilters) -> List[Provider]:
    """Case-insensitive substring filtering; blank criteria are ignored."""
    filtered = list(providers)

    term = filters.query.strip().lower()
    if term:
        filtered = [p for p in filtered if _matches_query(p, term)]

    location = filters.location.strip().lower()
    if location:
        filtered = [p for p in filtered if location in p.location.lower()]

    service = filters.service.strip().lower()
    if service:
        filtered = [p for p in filtered if any(service in s.lower() for s in p.services)]

    return filtered
