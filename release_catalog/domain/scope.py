"""
Identifier scopes.

A scope is a validated key path into the catalog tree::

    repository_id [/ channel_id [/ release_id [/ artifact_id]]]

Repository and channel ids are non-empty strings, release and artifact ids are
unsigned 32-bit integers. Channel, release and artifact ids are unique only
within their parent, so a lookup always needs the whole path, never just the
leaf id.

Raw segments are compared verbatim against stored keys: no trimming and no
case folding.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from release_catalog.domain.errors import InvalidScope

MAX_NUMERIC_ID = 2**32 - 1

LEVELS = ("repository", "channel", "release", "artifact")

_DIGITS = re.compile(r"[0-9]+")

Segment = Union[str, int]


def _parse_string_id(value: Any, level: str) -> str:
    if not isinstance(value, str):
        raise InvalidScope(f"{level} id must be a string, got {type(value).__name__}")
    if value == "":
        raise InvalidScope(f"{level} id must not be empty")
    return value


def _parse_numeric_id(value: Any, level: str) -> int:
    # bool is an int subclass; True is not a release id.
    if isinstance(value, bool):
        raise InvalidScope(f"{level} id must be numeric, got {value!r}")
    if isinstance(value, int):
        number = value
    elif isinstance(value, str):
        if not _DIGITS.fullmatch(value):
            raise InvalidScope(f"{level} id must be numeric, got {value!r}")
        number = int(value)
    else:
        raise InvalidScope(f"{level} id must be numeric, got {type(value).__name__}")

    if number < 0 or number > MAX_NUMERIC_ID:
        raise InvalidScope(f"{level} id {number} is out of range")
    return number


def parse_repository_id(value: Any) -> str:
    return _parse_string_id(value, "repository")


def parse_channel_id(value: Any) -> str:
    return _parse_string_id(value, "channel")


def parse_release_id(value: Any) -> int:
    return _parse_numeric_id(value, "release")


def parse_artifact_id(value: Any) -> int:
    return _parse_numeric_id(value, "artifact")


class CatalogScope(BaseModel):
    """
    A validated path of identifiers, one to four levels deep.

    Each field that is set implies every shallower field is set: there is no
    channel id without a repository id, no release id without a channel id.
    Invalid input raises ``InvalidScope`` (never a pydantic ``ValidationError``).
    """

    model_config = ConfigDict(frozen=True)

    repository_id: str
    channel_id: Optional[str] = None
    release_id: Optional[int] = None
    artifact_id: Optional[int] = None

    @field_validator("repository_id", mode="before")
    @classmethod
    def _check_repository(cls, value: Any) -> str:
        return parse_repository_id(value)

    @field_validator("channel_id", mode="before")
    @classmethod
    def _check_channel(cls, value: Any) -> Optional[str]:
        return None if value is None else parse_channel_id(value)

    @field_validator("release_id", mode="before")
    @classmethod
    def _check_release(cls, value: Any) -> Optional[int]:
        return None if value is None else parse_release_id(value)

    @field_validator("artifact_id", mode="before")
    @classmethod
    def _check_artifact(cls, value: Any) -> Optional[int]:
        return None if value is None else parse_artifact_id(value)

    @model_validator(mode="after")
    def _check_chain(self) -> "CatalogScope":
        if self.release_id is not None and self.channel_id is None:
            raise InvalidScope("release id given without a channel id")
        if self.artifact_id is not None and self.release_id is None:
            raise InvalidScope("artifact id given without a release id")
        return self

    @classmethod
    def parse(
        cls,
        repository: Segment,
        channel: Optional[Segment] = None,
        release: Optional[Segment] = None,
        artifact: Optional[Segment] = None,
    ) -> "CatalogScope":
        """Build a scope from raw path segments."""
        return cls(
            repository_id=repository,
            channel_id=channel,
            release_id=release,
            artifact_id=artifact,
        )

    @property
    def depth(self) -> int:
        return len(self.path())

    @property
    def level(self) -> str:
        return LEVELS[self.depth - 1]

    def path(self) -> Tuple[Segment, ...]:
        ids = (self.repository_id, self.channel_id, self.release_id, self.artifact_id)
        return tuple(i for i in ids if i is not None)

    def child(self, segment: Segment) -> "CatalogScope":
        """Return the scope one level below this one."""
        if self.depth == len(LEVELS):
            raise InvalidScope("artifact scopes have no children", scope=self)
        return CatalogScope.parse(*self.path(), segment)

    def parent(self) -> Optional["CatalogScope"]:
        if self.depth == 1:
            return None
        return CatalogScope.parse(*self.path()[:-1])

    def __str__(self) -> str:
        return "/".join(str(i) for i in self.path())
