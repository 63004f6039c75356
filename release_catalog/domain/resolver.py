"""
Hierarchical resolver.

Expands a scope into a fully populated subtree by walking the entity store top
down, depth first. Each child is fetched again through the ancestor-checked
lookup for its full path, and the parent keys on every returned record are
compared with the scope that reached it.

Outcomes:

* the leaf that was asked for does not exist -> ``NotFound``
* a child listed under a parent cannot be fetched under that parent, carries
  other parent keys, or the listing is duplicated/out of order -> ``Corrupt``
* the store cannot be reached -> ``Unavailable`` (raised by the store)

A resolve either returns the whole subtree or raises. It never returns a
subset of the children.
"""

from __future__ import annotations

import logging
from typing import List, Sequence, Union

from release_catalog.domain.errors import Corrupt, InvalidScope, NotFound
from release_catalog.domain.models import (
    Artifact,
    ArtifactRecord,
    CatalogEntity,
    Channel,
    ChannelRecord,
    Release,
    ReleaseRecord,
    Repository,
)
from release_catalog.domain.scope import CatalogScope, Segment
from release_catalog.storage.entity_store import EntityStore

logger = logging.getLogger(__name__)


class CatalogResolver:
    def __init__(self, store: EntityStore):
        self.store = store

    # ------------------------------------------------------------------
    # Public entry points
    # ------------------------------------------------------------------

    def resolve(self, scope: CatalogScope) -> CatalogEntity:
        """Resolve whatever level ``scope`` points at."""
        if scope.artifact_id is not None:
            return self._artifact(scope, expanding=False)
        if scope.release_id is not None:
            return self._release(scope, expanding=False)
        if scope.channel_id is not None:
            return self._channel(scope, expanding=False)
        return self._repository(scope)

    def resolve_repository(self, repository_id: Segment) -> Repository:
        return self._repository(CatalogScope.parse(repository_id))

    def resolve_channel(self, repository_id: Segment, channel_id: Segment) -> Channel:
        return self._channel(CatalogScope.parse(repository_id, channel_id), expanding=False)

    def resolve_release(
        self, repository_id: Segment, channel_id: Segment, release_id: Segment
    ) -> Release:
        scope = CatalogScope.parse(repository_id, channel_id, release_id)
        return self._release(scope, expanding=False)

    def resolve_artifact(
        self,
        repository_id: Segment,
        channel_id: Segment,
        release_id: Segment,
        artifact_id: Segment,
    ) -> Artifact:
        scope = CatalogScope.parse(repository_id, channel_id, release_id, artifact_id)
        return self._artifact(scope, expanding=False)

    # ------------------------------------------------------------------
    # Levels
    # ------------------------------------------------------------------

    def _repository(self, scope: CatalogScope) -> Repository:
        record = self.store.find_repository(scope.repository_id)
        if record is None:
            raise NotFound("repository not found", scope=scope)
        self._check_link(scope, record.id == scope.repository_id, "repository id")

        children = self._children(scope, self.store.list_channel_ids(scope.repository_id))
        channels = [self._channel(child, expanding=True) for child in children]
        return Repository(id=record.id, channels=channels)

    def _channel(self, scope: CatalogScope, expanding: bool) -> Channel:
        record = self.store.find_channel(scope.repository_id, scope.channel_id)
        if record is None:
            self._missing(scope, expanding)
        self._check_channel(scope, record)

        children = self._children(
            scope, self.store.list_release_ids(scope.repository_id, scope.channel_id)
        )
        releases = [self._release(child, expanding=True) for child in children]
        return Channel(id=record.id, name=record.name, releases=releases)

    def _release(self, scope: CatalogScope, expanding: bool) -> Release:
        record = self.store.find_release(scope.repository_id, scope.channel_id, scope.release_id)
        if record is None:
            self._missing(scope, expanding)
        self._check_release(scope, record)

        children = self._children(
            scope,
            self.store.list_artifact_ids(scope.repository_id, scope.channel_id, scope.release_id),
        )
        artifacts = [self._artifact(child, expanding=True) for child in children]
        return Release(
            id=record.id,
            name=record.name,
            created_at=record.created_at,
            artifacts=artifacts,
        )

    def _artifact(self, scope: CatalogScope, expanding: bool) -> Artifact:
        record = self.store.find_artifact(
            scope.repository_id, scope.channel_id, scope.release_id, scope.artifact_id
        )
        if record is None:
            self._missing(scope, expanding)
        self._check_artifact(scope, record)
        return Artifact.from_record(record)

    # ------------------------------------------------------------------
    # Consistency checks
    # ------------------------------------------------------------------

    def _missing(self, scope: CatalogScope, expanding: bool) -> None:
        if expanding:
            # Listed under its parent but not reachable through it.
            self._corrupt(scope, f"{scope.level} listed under {scope.parent()} cannot be found there")
        raise NotFound(f"{scope.level} not found", scope=scope)

    def _children(self, scope: CatalogScope, ids: Sequence[Union[str, int]]) -> List[CatalogScope]:
        """Turn a child id listing into child scopes, rejecting malformed listings."""
        ids = list(ids)
        for previous, current in zip(ids, ids[1:]):
            if previous == current:
                self._corrupt(scope, f"child id {current!r} is listed twice")
            if current < previous:
                self._corrupt(scope, "child ids are not in ascending order")

        children = []
        for child_id in ids:
            try:
                children.append(scope.child(child_id))
            except InvalidScope as e:
                self._corrupt(scope, f"stored child id is invalid: {e}")
        return children

    def _check_channel(self, scope: CatalogScope, record: ChannelRecord) -> None:
        self._check_link(scope, record.id == scope.channel_id, "channel id")
        self._check_link(scope, record.repository_id == scope.repository_id, "parent repository")

    def _check_release(self, scope: CatalogScope, record: ReleaseRecord) -> None:
        self._check_link(scope, record.id == scope.release_id, "release id")
        self._check_link(scope, record.channel_id == scope.channel_id, "parent channel")
        self._check_link(scope, record.repository_id == scope.repository_id, "parent repository")

    def _check_artifact(self, scope: CatalogScope, record: ArtifactRecord) -> None:
        self._check_link(scope, record.id == scope.artifact_id, "artifact id")
        self._check_link(scope, record.release_id == scope.release_id, "parent release")
        self._check_link(scope, record.channel_id == scope.channel_id, "parent channel")
        self._check_link(scope, record.repository_id == scope.repository_id, "parent repository")

    def _check_link(self, scope: CatalogScope, matches: bool, what: str) -> None:
        if not matches:
            self._corrupt(scope, f"stored {what} does not match the requested path")

    def _corrupt(self, scope: CatalogScope, message: str) -> None:
        logger.warning(f"Inconsistent catalog data at {scope}: {message}")
        raise Corrupt(message, scope=scope)
