"""
Pydantic models for the release catalog.

This module defines:
- ``ArtifactKind``, the closed set of artifact types and their stored codes
- Record models, one per stored row, as returned by the entity store
- The resolved tree (``Repository`` -> ``Channel`` -> ``Release`` -> ``Artifact``)
- The response envelope used by the HTTP API
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Artifact kinds
# ---------------------------------------------------------------------------


class UnknownArtifactKind(ValueError):
    """A stored artifact kind code is not part of ``ArtifactKind``."""

    def __init__(self, code: Any):
        super().__init__(f"unknown artifact kind code {code!r}")
        self.code = code


class ArtifactKind(str, Enum):
    """
    Type of a downloadable artifact.

    Serialized by name on the wire and stored as a small integer code.
    """

    CLIENT_ARCHIVE = "client-archive"
    SERVER_ARCHIVE = "server-archive"
    MANIFEST = "manifest"
    INSTALLER_BUNDLE = "installer-bundle"
    OTHER = "other"

    @property
    def code(self) -> int:
        return _KIND_TO_CODE[self]

    @classmethod
    def from_code(cls, code: Any) -> "ArtifactKind":
        """Decode a stored code. Anything outside the known set is an error."""
        if isinstance(code, bool) or not isinstance(code, int):
            raise UnknownArtifactKind(code)
        try:
            return _CODE_TO_KIND[code]
        except KeyError:
            raise UnknownArtifactKind(code) from None


_CODE_TO_KIND: Dict[int, ArtifactKind] = {
    0: ArtifactKind.CLIENT_ARCHIVE,
    1: ArtifactKind.SERVER_ARCHIVE,
    2: ArtifactKind.MANIFEST,
    3: ArtifactKind.INSTALLER_BUNDLE,
    4: ArtifactKind.OTHER,
}
_KIND_TO_CODE: Dict[ArtifactKind, int] = {kind: code for code, kind in _CODE_TO_KIND.items()}


# ---------------------------------------------------------------------------
# Stored rows
# ---------------------------------------------------------------------------
# Records keep the parent keys exactly as stored so the resolver can check
# them against the scope it asked for.


class _Record(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)


class RepositoryRecord(_Record):
    id: str


class ChannelRecord(_Record):
    id: str
    repository_id: str
    name: Optional[str] = None


class ReleaseRecord(_Record):
    id: int = Field(ge=0)
    repository_id: str
    channel_id: str
    name: str
    created_at: int = Field(ge=0, description="Creation time in unix seconds.")


class ArtifactRecord(_Record):
    id: int = Field(ge=0)
    repository_id: str
    channel_id: str
    release_id: int
    name: str
    path: str = Field(description="Storage path of the file, relative to the files directory.")
    kind: ArtifactKind


# ---------------------------------------------------------------------------
# Resolved tree
# ---------------------------------------------------------------------------


class Artifact(BaseModel):
    """A single downloadable file belonging to a release."""

    id: int
    name: str
    path: str
    kind: ArtifactKind

    @classmethod
    def from_record(cls, record: ArtifactRecord) -> "Artifact":
        return cls(id=record.id, name=record.name, path=record.path, kind=record.kind)


class Release(BaseModel):
    """A named, timestamped version within a channel, with all of its artifacts."""

    id: int
    name: str
    created_at: int
    artifacts: List[Artifact] = Field(default_factory=list)


class Channel(BaseModel):
    """A release track within a repository, with all of its releases."""

    id: str
    name: Optional[str] = None
    releases: List[Release] = Field(default_factory=list)


class Repository(BaseModel):
    """Top-level namespace for a distributable product, with all of its channels."""

    id: str
    channels: List[Channel] = Field(default_factory=list)


CatalogEntity = Union[Repository, Channel, Release, Artifact]


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class CatalogResponse(BaseModel):
    """
    Envelope for every catalog response.

    ``response_code`` is 0 on success. On failure it is the code of the error
    kind and ``data`` holds the error message.
    """

    response_code: int = Field(default=0, description="0 on success, error code otherwise.")
    data: Union[Repository, Channel, Release, Artifact, str, None] = None
