"""
HTTP routes for browsing the catalog.

Each route parses its path segments into a ``CatalogScope``, asks the resolver
for the subtree and wraps it in the response envelope. Failures are raised as
``CatalogError`` and turned into responses by ``catalog_error_handler``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import FileResponse, JSONResponse

from release_catalog.core.config import Settings
from release_catalog.core.dependencies import get_resolver, get_settings
from release_catalog.domain.errors import CatalogError
from release_catalog.domain.models import CatalogEntity, CatalogResponse
from release_catalog.domain.resolver import CatalogResolver
from release_catalog.domain.scope import CatalogScope

logger = logging.getLogger(__name__)
router = APIRouter()


def envelope(entity: CatalogEntity) -> JSONResponse:
    body = CatalogResponse(response_code=0, data=entity)
    return JSONResponse(status_code=200, content=body.model_dump(mode="json"))


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    """Map a lookup failure to its status code and error envelope."""
    if exc.is_defect:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    else:
        logger.debug(f"{request.method} {request.url.path}: {exc}")

    body = CatalogResponse(response_code=exc.response_code, data=str(exc))
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Tree lookups
# ---------------------------------------------------------------------------


@router.get("/{repository}")
def get_repository(
    repository: str,
    resolver: CatalogResolver = Depends(get_resolver),
) -> JSONResponse:
    """A repository with every channel, release and artifact below it."""
    return envelope(resolver.resolve(CatalogScope.parse(repository)))


@router.get("/{repository}/{channel}")
def get_channel(
    repository: str,
    channel: str,
    resolver: CatalogResolver = Depends(get_resolver),
) -> JSONResponse:
    return envelope(resolver.resolve(CatalogScope.parse(repository, channel)))


@router.get("/{repository}/{channel}/{release}")
def get_release(
    repository: str,
    channel: str,
    release: str,
    resolver: CatalogResolver = Depends(get_resolver),
) -> JSONResponse:
    return envelope(resolver.resolve(CatalogScope.parse(repository, channel, release)))


@router.get("/{repository}/{channel}/{release}/{artifact}")
def get_artifact(
    repository: str,
    channel: str,
    release: str,
    artifact: str,
    resolver: CatalogResolver = Depends(get_resolver),
) -> JSONResponse:
    scope = CatalogScope.parse(repository, channel, release, artifact)
    return envelope(resolver.resolve(scope))


# ---------------------------------------------------------------------------
# Artifact download
# ---------------------------------------------------------------------------


def artifact_file(files_dir: Path, storage_path: str) -> Path:
    """
    Map an artifact storage path onto the files directory.

    Storage paths look like ``/downloads/stable/7.1/client.jar`` and are taken
    relative to ``files_dir``. Anything that resolves outside of it is refused.
    """
    base = files_dir.resolve()
    target = (base / storage_path.lstrip("/")).resolve()
    if target != base and base not in target.parents:
        raise HTTPException(status_code=404, detail="Artifact file not found")
    return target


@router.get("/{repository}/{channel}/{release}/{artifact}/download")
def download_artifact(
    repository: str,
    channel: str,
    release: str,
    artifact: str,
    resolver: CatalogResolver = Depends(get_resolver),
    settings: Settings = Depends(get_settings),
) -> FileResponse:
    """Stream the file behind an artifact."""
    scope = CatalogScope.parse(repository, channel, release, artifact)
    found = resolver.resolve(scope)

    served_path = artifact_file(settings.files_dir, found.path)
    if not served_path.is_file():
        logger.warning(f"Artifact {scope} points at missing file {served_path}")
        raise HTTPException(status_code=404, detail="Artifact file not found on disk")

    return FileResponse(
        path=str(served_path),
        filename=served_path.name,
        media_type="application/octet-stream",
    )
