"""Tests for the flat-file content store."""

import pytest
import yaml

from statamic_mcp.core.errors import (
    ErrorCode,
    ResourceConflictError,
    ResourceNotFoundError,
    SecurityViolationError,
    StatamicMCPError,
)
from statamic_mcp.store import FlatFileContentStore
from statamic_mcp.store.flatfile import dump_front_matter, parse_front_matter


@pytest.fixture
def site(tmp_path):
    """A minimal Statamic project layout."""
    (tmp_path / "content/collections").mkdir(parents=True)
    (tmp_path / "resources/blueprints/collections/blog").mkdir(parents=True)
    (tmp_path / "content/collections/blog.yaml").write_text("title: Blog\n", encoding="utf-8")
    (tmp_path / "resources/blueprints/collections/blog/article.yaml").write_text(
        yaml.safe_dump({"title": "Article", "fields": [{"handle": "title", "field": {"type": "text"}}]}),
        encoding="utf-8",
    )
    return tmp_path


@pytest.fixture
def store(site):
    return FlatFileContentStore(site)


class TestFrontMatter:
    """Markdown front matter parsing."""

    def test_parse(self):
        """Header and body are split."""
        fm, body = parse_front_matter("---\ntitle: Hi\n---\nBody text\n")
        assert fm == {"title": "Hi"}
        assert body == "Body text"

    def test_no_header(self):
        """Documents without a header are all body."""
        assert parse_front_matter("just text") == ({}, "just text")

    def test_unterminated(self):
        """An unterminated header is an error."""
        with pytest.raises(ValueError):
            parse_front_matter("---\ntitle: Hi\n")

    def test_dump_round_trip(self):
        """Dumped documents parse back."""
        text = dump_front_matter({"id": "1", "title": "Hi"}, "Body")
        assert parse_front_matter(text) == ({"id": "1", "title": "Hi"}, "Body")


class TestBlueprints:
    """Blueprint YAML files."""

    def test_list_and_get(self, store):
        """Namespaces come from the directory layout."""
        blueprints = store.list_blueprints()
        assert [(bp["namespace"], bp["handle"]) for bp in blueprints] == [("collections.blog", "article")]
        assert store.get_blueprint("collections.blog", "article")["title"] == "Article"

    def test_create_writes_file(self, store, site):
        """New blueprints land in the namespace directory."""
        store.create_blueprint("taxonomies.tags", "tag", {"title": "Tag", "handle": "ignored"})
        path = site / "resources/blueprints/taxonomies/tags/tag.yaml"
        assert yaml.safe_load(path.read_text(encoding="utf-8")) == {"title": "Tag"}

    def test_blueprint_files(self, store, site):
        """Scanned files are absolute paths."""
        assert store.blueprint_files() == [
            str((site / "resources/blueprints/collections/blog/article.yaml").resolve())
        ]

    def test_invalid_yaml(self, store, site):
        """Broken YAML is a file system error."""
        (site / "resources/blueprints/collections/blog/broken.yaml").write_text("a: [", encoding="utf-8")
        with pytest.raises(StatamicMCPError) as exc:
            store.get_blueprint("collections.blog", "broken")
        assert exc.value.code is ErrorCode.FILE_SYSTEM_ERROR


class TestEntries:
    """Markdown entries."""

    def test_create_and_read(self, store, site):
        """Entries are written as front matter documents."""
        entry = store.create_entry("blog", {"title": "Hello", "content": "Body"}, published=False)
        path = site / "content/collections/blog/hello.md"
        assert path.is_file()
        fm, body = parse_front_matter(path.read_text(encoding="utf-8"))
        assert fm["id"] == entry["id"]
        assert fm["published"] is False
        assert body == "Body"
        loaded = store.get_entry("blog", "hello")
        assert loaded["data"] == {"title": "Hello", "content": "Body"}
        assert loaded["published"] is False

    def test_conflict(self, store):
        """Duplicate slugs conflict."""
        store.create_entry("blog", {"title": "Hello"})
        with pytest.raises(ResourceConflictError):
            store.create_entry("blog", {"title": "Hello"})

    def test_update_and_delete(self, store):
        """Updates rewrite the file and deletes remove it."""
        entry = store.create_entry("blog", {"title": "Hello"})
        store.update_entry("blog", entry["id"], {"title": "Changed"})
        assert store.get_entry("blog", "hello")["data"]["title"] == "Changed"
        store.delete_entry("blog", "hello")
        assert store.list_entries("blog") == []

    def test_missing_entry(self, store):
        """Missing entries raise ENTRY_NOT_FOUND."""
        with pytest.raises(ResourceNotFoundError) as exc:
            store.get_entry("blog", "nope")
        assert exc.value.code is ErrorCode.ENTRY_NOT_FOUND


class TestSandbox:
    """Paths stay inside the project root."""

    def test_traversal_handle(self, store):
        """Handles that escape the root are rejected."""
        with pytest.raises(SecurityViolationError) as exc:
            store.get_collection("../../../etc/passwd")
        assert exc.value.code is ErrorCode.PATH_TRAVERSAL

    def test_asset_path_traversal(self, store):
        """Asset paths cannot leave their container."""
        store.create_asset_container("images", {"title": "Images"})
        with pytest.raises(SecurityViolationError):
            store.create_asset("images", "../../outside.txt", b"x")


class TestAssetsUsersRoles:
    """Asset files, user files and the roles file."""

    def test_asset_meta_sidecar(self, store, site):
        """Asset meta is stored in a sidecar file."""
        store.create_asset_container("images", {"title": "Images"})
        asset = store.create_asset("images", "hero.jpg", b"jpeg", {"alt": "Hero"})
        assert asset == {"container": "images", "path": "hero.jpg", "size": 4, "meta": {"alt": "Hero"}}
        assert (site / "public/images/.meta/hero.jpg.yaml").is_file()
        moved = store.move_asset("images", "hero.jpg", "banners/hero.jpg")
        assert moved["meta"] == {"alt": "Hero"}
        assert [a["path"] for a in store.list_assets("images")] == ["banners/hero.jpg"]

    def test_users_hide_password(self, store, site):
        """Stored password hashes are never loaded into records."""
        user = store.create_user("ada@example.com", {"name": "Ada", "password": "hash"})
        assert "password" not in user
        assert store.get_user(user["id"])["email"] == "ada@example.com"
        assert (site / "users/ada@example.com.yaml").is_file()

    def test_remove_user_role(self, store, site):
        """Removing a role rewrites the user file without it."""
        store.create_user("ada@example.com", {"roles": ["editor", "author"]})
        user = store.remove_user_role("ada@example.com", "editor")
        assert user["roles"] == ["author"]
        stored = yaml.safe_load((site / "users/ada@example.com.yaml").read_text(encoding="utf-8"))
        assert stored["roles"] == ["author"]

    def test_roles_file(self, store):
        """Roles share a single YAML file."""
        store.create_role("editor", {"permissions": ["view entries"]})
        store.create_role("author", {})
        assert [r["handle"] for r in store.list_roles()] == ["author", "editor"]
        store.delete_role("author")
        with pytest.raises(ResourceNotFoundError):
            store.get_role("author")

    def test_sites_default(self, store, site):
        """Without sites.yaml there is one default site."""
        assert store.list_sites()[0]["handle"] == "default"
        (site / "resources/sites.yaml").write_text(
            "en:\n  name: English\n  url: /\nfr:\n  name: French\n  url: /fr/\n", encoding="utf-8"
        )
        assert [s["handle"] for s in store.list_sites()] == ["en", "fr"]

    def test_health(self, store):
        """Health reports missing directories as degraded."""
        health = store.health()
        assert health["checks"]["content_dir"] is True
        assert health["status"] == "healthy"
