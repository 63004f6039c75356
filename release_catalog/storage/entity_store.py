from abc import ABC, abstractmethod
from typing import List, Optional

from release_catalog.domain.models import (
    ArtifactRecord,
    ChannelRecord,
    ReleaseRecord,
    RepositoryRecord,
)


class EntityStore(ABC):
    """
    Abstract base class for the relational backing store.

    Every ``find_*`` lookup takes the full ancestor path and returns exactly one
    record, or ``None`` when no row exists along that path. An id that exists
    but belongs to another parent is reported as ``None`` too.

    Implementations raise ``Corrupt`` for rows they cannot decode and
    ``Unavailable`` when the store cannot be reached.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Prepare the storage subsystem (e.g. create the schema)."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release every connection held by the store."""
        pass

    @abstractmethod
    def ping(self) -> None:
        """Raise ``Unavailable`` if the store cannot answer a trivial query."""
        pass

    @abstractmethod
    def find_repository(self, repository_id: str) -> Optional[RepositoryRecord]:
        pass

    @abstractmethod
    def find_channel(self, repository_id: str, channel_id: str) -> Optional[ChannelRecord]:
        pass

    @abstractmethod
    def find_release(
        self, repository_id: str, channel_id: str, release_id: int
    ) -> Optional[ReleaseRecord]:
        pass

    @abstractmethod
    def find_artifact(
        self, repository_id: str, channel_id: str, release_id: int, artifact_id: int
    ) -> Optional[ArtifactRecord]:
        pass

    @abstractmethod
    def list_channel_ids(self, repository_id: str) -> List[str]:
        """Ids of the channels stored under a repository, ascending."""
        pass

    @abstractmethod
    def list_release_ids(self, repository_id: str, channel_id: str) -> List[int]:
        """Ids of the releases stored under a channel, ascending."""
        pass

    @abstractmethod
    def list_artifact_ids(
        self, repository_id: str, channel_id: str, release_id: int
    ) -> List[int]:
        """Ids of the artifacts stored under a release, ascending."""
        pass
