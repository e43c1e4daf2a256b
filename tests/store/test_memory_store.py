"""Tests for the in-memory content store."""

import pytest

from statamic_mcp.core.errors import (
    ErrorCode,
    InvalidArgumentError,
    ResourceConflictError,
    ResourceNotFoundError,
)
from statamic_mcp.store import ContentStore, InMemoryContentStore, create_store
from statamic_mcp.store.memory import slugify


class TestProtocol:
    """Store construction."""

    def test_implements_protocol(self, memory_store):
        """The memory store satisfies ContentStore."""
        assert isinstance(memory_store, ContentStore)

    def test_create_store(self):
        """The factory builds stores by name."""
        assert isinstance(create_store("memory"), InMemoryContentStore)
        with pytest.raises(ValueError):
            create_store("database")


class TestEntries:
    """Collection and entry records."""

    def test_lookup_by_slug_or_id(self, seeded_store):
        """Entries are found by id or slug."""
        entry = seeded_store.get_entry("blog", "hello-world")
        assert entry["data"] == {"title": "Hello World"}
        assert seeded_store.get_entry("blog", entry["id"])["slug"] == "hello-world"

    def test_slug_from_title(self, seeded_store):
        """Without a slug the title is slugified."""
        entry = seeded_store.create_entry("blog", {"title": "Second Post!"})
        assert entry["slug"] == "second-post"
        assert entry["site"] == "default"

    def test_duplicate_slug(self, seeded_store):
        """A second entry with the same slug conflicts."""
        with pytest.raises(ResourceConflictError):
            seeded_store.create_entry("blog", {"title": "x"}, slug="hello-world")

    def test_needs_slug_or_title(self, seeded_store):
        """Entries without slug or title are rejected."""
        with pytest.raises(InvalidArgumentError):
            seeded_store.create_entry("blog", {"body": "text"})

    def test_update_merges_data(self, seeded_store):
        """Updates merge into existing data."""
        updated = seeded_store.update_entry("blog", "hello-world", {"body": "Hi"}, published=False)
        assert updated["data"] == {"title": "Hello World", "body": "Hi"}
        assert updated["published"] is False

    def test_missing_entry_suggests(self, seeded_store):
        """Missing entries raise with the specific code."""
        with pytest.raises(ResourceNotFoundError) as exc:
            seeded_store.get_entry("blog", "nope")
        assert exc.value.code is ErrorCode.ENTRY_NOT_FOUND

    def test_missing_collection(self, memory_store):
        """Entries of an unknown collection fail on the collection."""
        with pytest.raises(ResourceNotFoundError) as exc:
            memory_store.list_entries("blgo")
        assert exc.value.code is ErrorCode.COLLECTION_NOT_FOUND

    def test_deleting_collection_drops_entries(self, seeded_store):
        """Entries go with their collection."""
        seeded_store.delete_collection("blog")
        seeded_store.create_collection("blog", {"title": "Blog"})
        assert seeded_store.list_entries("blog") == []

    def test_records_are_copies(self, seeded_store):
        """Mutating a returned record does not change the store."""
        entry = seeded_store.get_entry("blog", "hello-world")
        entry["data"]["title"] = "Changed"
        assert seeded_store.get_entry("blog", "hello-world")["data"]["title"] == "Hello World"


class TestOtherResources:
    """Blueprints, terms, assets, users and roles."""

    def test_blueprint_namespace_filter(self, seeded_store):
        """Namespace filters include nested namespaces."""
        seeded_store.create_blueprint("taxonomies.tags", "tag", {"title": "Tag"})
        assert [bp["handle"] for bp in seeded_store.list_blueprints("collections")] == ["article"]

    def test_suggestions_on_missing(self, seeded_store):
        """Close handles are suggested."""
        with pytest.raises(ResourceNotFoundError) as exc:
            seeded_store.get_collection("blgo")
        assert exc.value.suggestions == ["blog"]

    def test_term_crud(self, seeded_store):
        """Terms live under their taxonomy."""
        seeded_store.create_term("tags", "news", {"title": "News"})
        assert seeded_store.update_term("tags", "news", {"color": "red"})["data"] == {
            "title": "News",
            "color": "red",
        }
        seeded_store.delete_term("tags", "news")
        assert seeded_store.list_terms("tags") == []

    def test_asset_move_and_copy(self, memory_store):
        """Assets keep their meta when copied or moved."""
        memory_store.create_asset_container("images", {"title": "Images"})
        memory_store.create_asset("images", "a.jpg", b"123", {"alt": "A"})
        copied = memory_store.copy_asset("images", "a.jpg", "b.jpg")
        assert copied["meta"] == {"alt": "A"}
        memory_store.move_asset("images", "a.jpg", "c/a.jpg")
        assert sorted(a["path"] for a in memory_store.list_assets("images")) == ["b.jpg", "c/a.jpg"]

    def test_user_lookup_by_email(self, memory_store):
        """Users are found by id or email and keep their identity fields."""
        user = memory_store.create_user("ada@example.com", {"name": "Ada"})
        assert memory_store.get_user("ada@example.com")["id"] == user["id"]
        updated = memory_store.update_user(user["id"], {"email": "x@example.com", "name": "Ada L."})
        assert updated["email"] == "ada@example.com"
        assert updated["name"] == "Ada L."

    def test_remove_user_role(self, memory_store):
        """Roles are removed by handle; unknown users raise."""
        memory_store.create_user("ada@example.com", {"roles": ["editor", "author"]})
        assert memory_store.remove_user_role("ada@example.com", "editor")["roles"] == ["author"]
        with pytest.raises(ResourceNotFoundError):
            memory_store.remove_user_role("nobody@example.com", "editor")

    def test_role_default_title(self, memory_store):
        """Roles get a title from their handle."""
        assert memory_store.create_role("content_editor", {})["title"] == "Content Editor"

    def test_stache_and_health(self, seeded_store):
        """Maintenance calls report state."""
        seeded_store.clear_stache()
        assert seeded_store.stache_clears == 1
        health = seeded_store.health()
        assert health["status"] == "healthy"
        assert health["counts"]["entries"] == 1


def test_slugify():
    """Slugs collapse punctuation into single dashes."""
    assert slugify("  Hello,  World! ") == "hello-world"
