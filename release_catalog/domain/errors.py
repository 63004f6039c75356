"""
Error taxonomy for catalog lookups.

Every failure a lookup can produce is one of four kinds. Each kind knows how it
is reported over HTTP and whether it indicates a defect worth logging.
"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from release_catalog.domain.scope import CatalogScope


class CatalogError(Exception):
    """Base class for all catalog lookup failures."""

    status_code: int = 500
    response_code: int = 100
    is_defect: bool = True

    def __init__(self, message: str, scope: Optional["CatalogScope"] = None):
        super().__init__(message)
        self.message = message
        self.scope = scope

    def __str__(self) -> str:
        if self.scope is not None:
            return f"{self.message} ({self.scope})"
        return self.message


class InvalidScope(CatalogError):
    """A path segment is malformed. Raised before the store is touched."""

    status_code = 400
    response_code = 2
    is_defect = False


class NotFound(CatalogError):
    """The identifiers are well formed but no row exists along that ancestor chain."""

    status_code = 404
    response_code = 4
    is_defect = False


class Corrupt(CatalogError):
    """A stored row exists but breaks a schema invariant."""

    status_code = 500
    response_code = 50


class Unavailable(CatalogError):
    """The backing store cannot be reached or initialized."""

    status_code = 503
    response_code = 100
