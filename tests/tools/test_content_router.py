"""Tests for the content router."""

import pytest

from statamic_mcp.tools.content import ContentRouter


@pytest.fixture
def router(testing_config, seeded_store, memory_cache):
    return ContentRouter(seeded_store, config=testing_config, cache=memory_cache)


class TestEntries:
    """Entry CRUD."""

    def test_list(self, router):
        """Entries are listed with pagination info."""
        result = router.execute({"action": "list", "type": "entry", "collection": "blog"})
        assert result["success"] is True
        assert [e["slug"] for e in result["data"]["items"]] == ["hello-world"]
        assert result["data"]["pagination"] == {"total": 1, "limit": 50, "offset": 0, "has_more": False}

    def test_pagination(self, router, seeded_store):
        """Limit and offset slice the listing."""
        for title in ("Two", "Three", "Four"):
            seeded_store.create_entry("blog", {"title": title})
        result = router.execute(
            {"action": "list", "type": "entry", "collection": "blog", "limit": "2", "offset": 1}
        )
        assert len(result["data"]["items"]) == 2
        assert result["data"]["pagination"]["total"] == 4
        assert result["data"]["pagination"]["has_more"] is True

    def test_page_size_is_clamped(self, router):
        """Oversized pages fall back to the maximum."""
        result = router.execute({"action": "list", "type": "entry", "collection": "blog", "limit": 10000})
        assert result["data"]["pagination"]["limit"] == 500

    def test_list_needs_collection(self, router):
        """Entry listings require a collection."""
        result = router.execute({"action": "list", "type": "entry"})
        assert result["success"] is False
        assert result["error"] == "INVALID_INPUT"
        assert result["errors"] == ["Action failed: Missing required parameter: collection"]

    def test_get_by_slug(self, router):
        """Entries resolve by slug."""
        result = router.execute({"action": "get", "type": "entry", "collection": "blog", "id": "hello-world"})
        assert result["data"]["entry"]["data"] == {"title": "Hello World"}

    def test_get_unknown(self, router):
        """Unknown entries report ENTRY_NOT_FOUND."""
        result = router.execute({"action": "get", "type": "entry", "collection": "blog", "id": "nope"})
        assert result["error"] == "ENTRY_NOT_FOUND"
        assert result["meta"]["action"] == "get"

    def test_unknown_collection(self, router):
        """Unknown collections report COLLECTION_NOT_FOUND."""
        result = router.execute({"action": "list", "type": "entry", "collection": "news"})
        assert result["error"] == "COLLECTION_NOT_FOUND"

    def test_create(self, router, seeded_store):
        """Entries get a slug from their title."""
        result = router.execute(
            {"action": "create", "type": "entry", "collection": "blog", "data": {"title": "Second Post"}}
        )
        assert result["success"] is True
        assert result["data"]["created"] is True
        assert result["data"]["entry"]["slug"] == "second-post"
        assert result["meta"]["action"] == "create"
        assert result["meta"]["dry_run"] is False
        assert seeded_store.get_entry("blog", "second-post")["published"] is True

    def test_create_duplicate_slug(self, router):
        """Creating over an existing slug conflicts."""
        result = router.execute(
            {"action": "create", "type": "entry", "collection": "blog", "data": {"title": "Hello World"}}
        )
        assert result["error"] == "CONFLICT"

    def test_create_dry_run(self, router, seeded_store):
        """Dry runs leave the store untouched."""
        result = router.execute({
            "action": "create", "type": "entry", "collection": "blog",
            "data": {"title": "Draft"}, "dry_run": True,
        })
        assert result["simulation"] is True
        assert result["would_execute"] == "create"
        assert result["data"]["preview"] == "Would execute create on entry in blog"
        assert len(seeded_store.list_entries("blog")) == 1

    def test_update_merges_data(self, router, seeded_store):
        """Updates merge into existing field values."""
        result = router.execute({
            "action": "update", "type": "entry", "collection": "blog",
            "id": "hello-world", "data": {"body": "Hi"},
        })
        assert result["data"]["updated"] is True
        assert seeded_store.get_entry("blog", "hello-world")["data"] == {"title": "Hello World", "body": "Hi"}

    def test_delete(self, router, seeded_store):
        """Deleted entries disappear."""
        result = router.execute({"action": "delete", "type": "entry", "collection": "blog", "id": "hello-world"})
        assert result["data"] == {"deleted": True, "type": "entry", "target": "hello-world"}
        assert seeded_store.list_entries("blog") == []

    def test_delete_needs_id(self, router):
        """Entry deletes need an id or slug."""
        result = router.execute({"action": "delete", "type": "entry", "collection": "blog"})
        assert result["errors"] == ["Action failed: Missing required parameter: id"]


class TestPublishing:
    """Publish and unpublish."""

    def test_unpublish_and_publish(self, router, seeded_store):
        """Publishing toggles the entry state."""
        result = router.execute({"action": "unpublish", "type": "entry", "collection": "blog", "id": "hello-world"})
        assert result["data"]["published"] is False
        assert seeded_store.get_entry("blog", "hello-world")["published"] is False

        router.execute({"action": "publish", "type": "entry", "collection": "blog", "id": "hello-world"})
        assert seeded_store.get_entry("blog", "hello-world")["published"] is True

    def test_only_entries(self, router):
        """Terms cannot be published."""
        result = router.execute({"action": "publish", "type": "term", "taxonomy": "tags", "slug": "php"})
        assert result["success"] is False
        assert result["errors"] == ["Action failed: Only entries can be published or unpublished"]

    def test_publish_is_gated_in_production(self, production_config, seeded_store, memory_cache):
        """Publishing is destructive outside testing."""
        router = ContentRouter(seeded_store, config=production_config, cache=memory_cache)
        result = router.execute({"action": "unpublish", "type": "entry", "collection": "blog", "id": "hello-world"})
        assert result["error"] == "safety_protocol_required"
        assert seeded_store.get_entry("blog", "hello-world")["published"] is True


class TestTermsAndGlobals:
    """Terms and global sets."""

    def test_term_lifecycle(self, router, seeded_store):
        """Terms are created, listed and deleted by slug."""
        created = router.execute(
            {"action": "create", "type": "term", "taxonomy": "tags", "slug": "php", "data": {"title": "PHP"}}
        )
        assert created["data"]["term"] == {"slug": "php", "taxonomy": "tags", "data": {"title": "PHP"}}

        listed = router.execute({"action": "list", "type": "term", "taxonomy": "tags"})
        assert [t["slug"] for t in listed["data"]["items"]] == ["php"]

        router.execute({"action": "delete", "type": "term", "taxonomy": "tags", "slug": "php"})
        assert seeded_store.list_terms("tags") == []

    def test_term_slug_must_be_a_handle(self, router):
        """Term slugs are checked before reaching the store."""
        result = router.execute(
            {"action": "create", "type": "term", "taxonomy": "tags", "slug": "../etc", "data": {}}
        )
        assert result["success"] is False

    def test_global_create_titles_handle(self, router):
        """Globals default their title from the handle."""
        result = router.execute(
            {"action": "create", "type": "global", "handle": "site_settings", "data": {"phone": "123"}}
        )
        assert result["data"]["global"]["title"] == "Site Settings"

    def test_global_update(self, router, seeded_store):
        """Global updates merge values."""
        seeded_store.create_global("settings", "Settings", {"phone": "1"})
        router.execute({"action": "update", "type": "global", "handle": "settings", "data": {"email": "a@b.c"}})
        assert seeded_store.get_global("settings")["data"] == {"phone": "1", "email": "a@b.c"}

    def test_global_unknown(self, router):
        """Unknown globals report GLOBAL_NOT_FOUND."""
        result = router.execute({"action": "get", "type": "global", "handle": "missing"})
        assert result["error"] == "GLOBAL_NOT_FOUND"


class TestDescribeTarget:
    """Preview wording."""

    @pytest.mark.parametrize(
        "arguments,expected",
        [
            ({"type": "entry", "id": "hello-world", "collection": "blog"}, "entry 'hello-world' in blog"),
            ({"type": "term", "slug": "php", "taxonomy": "tags"}, "term 'php' in tags"),
            ({"type": "global"}, "global"),
        ],
    )
    def test_describe_target(self, router, arguments, expected):
        """Targets name the item and its parent."""
        assert router.describe_target(arguments) == expected


class TestSafetyScenario:
    """Refuse, preview, then confirm a delete."""

    @pytest.fixture
    def production_router(self, production_config, seeded_store, memory_cache):
        seeded_store.create_global("test", "Test", {"phone": "1"})
        return ContentRouter(seeded_store, config=production_config, cache=memory_cache)

    def test_unflagged_delete_is_refused_before_type_check(self, production_router, seeded_store):
        """A delete without flags is refused even when the type is missing."""
        result = production_router.execute({"action": "delete", "handle": "test"})
        assert result["success"] is False
        assert result["error"] == "safety_protocol_required"
        guidance = result["details"]["safety_guidance"]
        assert "dry_run" in guidance["preview"]
        assert "confirm" in guidance["execute"]
        assert seeded_store.get_global("test")["handle"] == "test"

    def test_dry_run_without_type_simulates(self, production_router, seeded_store):
        """A dry run without a type still simulates and warns about the type."""
        result = production_router.execute({"action": "delete", "handle": "test", "dry_run": True})
        assert result["success"] is True
        assert result["simulation"] is True
        assert result["would_execute"] == "delete"
        assert result["warnings"] == ["Type is required for this action"]
        assert result["data"]["preview"] == "Would execute delete on content 'test'"
        assert seeded_store.get_global("test")["handle"] == "test"

    def test_dry_run_unknown_type_warns(self, production_router):
        """Unknown types are simulation warnings too."""
        result = production_router.execute({"action": "delete", "type": "page", "handle": "test", "dry_run": True})
        assert result["simulation"] is True
        assert result["warnings"] == ["Unknown type 'page' for content"]

    def test_confirmed_delete_checks_type(self, production_router, seeded_store):
        """Confirmed calls validate the type before executing."""
        result = production_router.execute({"action": "delete", "handle": "test", "confirm": True})
        assert result["error"] == "VALIDATION_ERROR"
        assert seeded_store.get_global("test")["handle"] == "test"

    def test_confirmed_delete_executes(self, production_router, seeded_store):
        """A confirmed, typed delete runs for real."""
        result = production_router.execute({"action": "delete", "type": "global", "handle": "test", "confirm": True})
        assert result["success"] is True
        assert result["meta"]["action"] == "delete"
        assert result["meta"]["dry_run"] is False
        assert result["meta"]["safety_checked"] is True
        assert "test" not in [g["handle"] for g in seeded_store.list_globals()]
