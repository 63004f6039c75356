from fastapi import Request

from release_catalog.core.config import Settings
from release_catalog.domain.resolver import CatalogResolver
from release_catalog.storage.entity_store import EntityStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_resolver(request: Request) -> CatalogResolver:
    return CatalogResolver(get_store(request))
