from release_catalog.storage.entity_store import EntityStore
from release_catalog.storage.sqlite_store import SqliteEntityStore

__all__ = ["EntityStore", "SqliteEntityStore"]
