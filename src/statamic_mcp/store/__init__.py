"""Content store adapters."""

from statamic_mcp.store.base import ContentStore, Record
from statamic_mcp.store.flatfile import FlatFileContentStore
from statamic_mcp.store.memory import InMemoryContentStore

__all__ = ["ContentStore", "Record", "FlatFileContentStore", "InMemoryContentStore", "create_store"]


def create_store(kind: str, project_root=None) -> ContentStore:
    """Build a store from its configured name (``memory`` or ``flatfile``)."""
    if kind == "memory":
        return InMemoryContentStore()
    if kind == "flatfile":
        return FlatFileContentStore(project_root or ".")
    raise ValueError(f"Unknown content store: {kind}")
