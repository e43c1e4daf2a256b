"""In-memory content store.

Backs the test suite and ``store = "memory"`` deployments. Records are
deep-copied on the way in and out so callers can never alias stored state.
"""

import copy
import difflib
import threading
import uuid
from typing import Any, Dict, Iterable, List, Optional

from statamic_mcp.core.errors import InvalidArgumentError, ResourceConflictError, ResourceNotFoundError
from statamic_mcp.store.base import Record

DEFAULT_SITE = {"handle": "default", "name": "Default", "url": "/", "locale": "en_US"}


def suggest(identifier: str, candidates: Iterable[str], limit: int = 3) -> List[str]:
    """Closest handles to a missing identifier."""
    return difflib.get_close_matches(str(identifier), list(candidates), n=limit, cutoff=0.6)


class InMemoryContentStore:
    """Dict-backed ``ContentStore``."""

    name = "memory"

    def __init__(self, sites: Optional[List[Record]] = None):
        self._buckets: Dict[str, Dict[str, Record]] = {}
        self._asset_bytes: Dict[str, bytes] = {}
        self._sites = [dict(s) for s in (sites or [DEFAULT_SITE])]
        self._lock = threading.RLock()
        self.stache_clears = 0

    # -- generic bucket helpers ---------------------------------------------

    def _bucket(self, name: str) -> Dict[str, Record]:
        return self._buckets.setdefault(name, {})

    def _list(self, bucket: str) -> List[Record]:
        with self._lock:
            items = self._bucket(bucket)
            return [copy.deepcopy(items[key]) for key in sorted(items)]

    def _get(self, bucket: str, key: str, resource: str) -> Record:
        with self._lock:
            items = self._bucket(bucket)
            if key not in items:
                raise ResourceNotFoundError(resource, key, suggestions=suggest(key, items))
            return copy.deepcopy(items[key])

    def _create(self, bucket: str, key: str, record: Record, resource: str) -> Record:
        with self._lock:
            items = self._bucket(bucket)
            if key in items:
                raise ResourceConflictError(f"{resource.capitalize()} '{key}' already exists")
            items[key] = copy.deepcopy(record)
            return copy.deepcopy(record)

    def _update(self, bucket: str, key: str, changes: Record, resource: str) -> Record:
        with self._lock:
            items = self._bucket(bucket)
            if key not in items:
                raise ResourceNotFoundError(resource, key, suggestions=suggest(key, items))
            items[key].update(copy.deepcopy(changes))
            return copy.deepcopy(items[key])

    def _delete(self, bucket: str, key: str, resource: str) -> None:
        with self._lock:
            items = self._bucket(bucket)
            if key not in items:
                raise ResourceNotFoundError(resource, key, suggestions=suggest(key, items))
            del items[key]

    # -- blueprints ------------------------------------------------------------

    def list_blueprints(self, namespace: Optional[str] = None) -> List[Record]:
        blueprints = self._list("blueprints")
        if namespace is None:
            return blueprints
        return [
            bp for bp in blueprints
            if bp["namespace"] == namespace or bp["namespace"].startswith(f"{namespace}.")
        ]

    def get_blueprint(self, namespace: str, handle: str) -> Record:
        with self._lock:
            items = self._bucket("blueprints")
            key = f"{namespace}/{handle}"
            if key not in items:
                siblings = [bp["handle"] for bp in items.values() if bp["namespace"] == namespace]
                raise ResourceNotFoundError("blueprint", handle, suggestions=suggest(handle, siblings))
            return copy.deepcopy(items[key])

    def create_blueprint(self, namespace: str, handle: str, contents: Record) -> Record:
        record = {**contents, "handle": handle, "namespace": namespace}
        return self._create("blueprints", f"{namespace}/{handle}", record, "blueprint")

    def update_blueprint(self, namespace: str, handle: str, contents: Record) -> Record:
        return self._update("blueprints", f"{namespace}/{handle}", contents, "blueprint")

    def delete_blueprint(self, namespace: str, handle: str) -> None:
        self._delete("blueprints", f"{namespace}/{handle}", "blueprint")

    def blueprint_files(self) -> List[str]:
        return []

    # -- collections and entries -------------------------------------------------

    def list_collections(self) -> List[Record]:
        return self._list("collections")

    def get_collection(self, handle: str) -> Record:
        return self._get("collections", handle, "collection")

    def create_collection(self, handle: str, config: Record) -> Record:
        return self._create("collections", handle, {**config, "handle": handle}, "collection")

    def update_collection(self, handle: str, config: Record) -> Record:
        return self._update("collections", handle, config, "collection")

    def delete_collection(self, handle: str) -> None:
        with self._lock:
            self._delete("collections", handle, "collection")
            self._buckets.pop(f"entries:{handle}", None)

    def list_entries(self, collection: str, site: Optional[str] = None) -> List[Record]:
        self.get_collection(collection)
        entries = self._list(f"entries:{collection}")
        if site:
            entries = [e for e in entries if e.get("site") == site]
        return entries

    def get_entry(self, collection: str, entry_id: str) -> Record:
        self.get_collection(collection)
        with self._lock:
            items = self._bucket(f"entries:{collection}")
            for key, entry in items.items():
                if key == entry_id or entry.get("slug") == entry_id:
                    return copy.deepcopy(entry)
            raise ResourceNotFoundError("entry", entry_id, suggestions=suggest(entry_id, items))

    def create_entry(self, collection: str, data: Record, *, slug: Optional[str] = None,
                     site: Optional[str] = None, published: bool = True) -> Record:
        self.get_collection(collection)
        entry_slug = slug or slugify(str(data.get("title", "")))
        if not entry_slug:
            raise InvalidArgumentError("Entry needs a slug or a title")
        with self._lock:
            if any(e.get("slug") == entry_slug for e in self._bucket(f"entries:{collection}").values()):
                raise ResourceConflictError(f"Entry '{entry_slug}' already exists in {collection}")
            entry_id = str(uuid.uuid4())
            record = {
                "id": entry_id,
                "collection": collection,
                "slug": entry_slug,
                "site": site or self._sites[0]["handle"],
                "published": published,
                "data": dict(data),
            }
            return self._create(f"entries:{collection}", entry_id, record, "entry")

    def update_entry(self, collection: str, entry_id: str, data: Record,
                     published: Optional[bool] = None) -> Record:
        current = self.get_entry(collection, entry_id)
        changes: Record = {"data": {**current["data"], **data}}
        if published is not None:
            changes["published"] = published
        return self._update(f"entries:{collection}", current["id"], changes, "entry")

    def delete_entry(self, collection: str, entry_id: str) -> None:
        current = self.get_entry(collection, entry_id)
        self._delete(f"entries:{collection}", current["id"], "entry")

    # -- taxonomies and terms ----------------------------------------------------

    def list_taxonomies(self) -> List[Record]:
        return self._list("taxonomies")

    def get_taxonomy(self, handle: str) -> Record:
        return self._get("taxonomies", handle, "taxonomy")

    def create_taxonomy(self, handle: str, config: Record) -> Record:
        return self._create("taxonomies", handle, {**config, "handle": handle}, "taxonomy")

    def update_taxonomy(self, handle: str, config: Record) -> Record:
        return self._update("taxonomies", handle, config, "taxonomy")

    def delete_taxonomy(self, handle: str) -> None:
        with self._lock:
            self._delete("taxonomies", handle, "taxonomy")
            self._buckets.pop(f"terms:{handle}", None)

    def list_terms(self, taxonomy: str) -> List[Record]:
        self.get_taxonomy(taxonomy)
        return self._list(f"terms:{taxonomy}")

    def get_term(self, taxonomy: str, slug: str) -> Record:
        self.get_taxonomy(taxonomy)
        return self._get(f"terms:{taxonomy}", slug, "term")

    def create_term(self, taxonomy: str, slug: str, data: Record) -> Record:
        self.get_taxonomy(taxonomy)
        record = {"slug": slug, "taxonomy": taxonomy, "data": dict(data)}
        return self._create(f"terms:{taxonomy}", slug, record, "term")

    def update_term(self, taxonomy: str, slug: str, data: Record) -> Record:
        current = self.get_term(taxonomy, slug)
        return self._update(f"terms:{taxonomy}", slug, {"data": {**current["data"], **data}}, "term")

    def delete_term(self, taxonomy: str, slug: str) -> None:
        self.get_taxonomy(taxonomy)
        self._delete(f"terms:{taxonomy}", slug, "term")

    # -- globals -------------------------------------------------------------------

    def list_globals(self) -> List[Record]:
        return self._list("globals")

    def get_global(self, handle: str) -> Record:
        return self._get("globals", handle, "global")

    def create_global(self, handle: str, title: str, data: Record) -> Record:
        record = {"handle": handle, "title": title, "data": dict(data)}
        return self._create("globals", handle, record, "global")

    def update_global(self, handle: str, data: Record) -> Record:
        current = self.get_global(handle)
        return self._update("globals", handle, {"data": {**current["data"], **data}}, "global")

    def delete_global(self, handle: str) -> None:
        self._delete("globals", handle, "global")

    # -- navigations and forms ---------------------------------------------------

    def list_navigations(self) -> List[Record]:
        return self._list("navigations")

    def get_navigation(self, handle: str) -> Record:
        return self._get("navigations", handle, "navigation")

    def create_navigation(self, handle: str, config: Record) -> Record:
        return self._create("navigations", handle, {**config, "handle": handle}, "navigation")

    def update_navigation(self, handle: str, config: Record) -> Record:
        return self._update("navigations", handle, config, "navigation")

    def delete_navigation(self, handle: str) -> None:
        self._delete("navigations", handle, "navigation")

    def list_forms(self) -> List[Record]:
        return self._list("forms")

    def get_form(self, handle: str) -> Record:
        return self._get("forms", handle, "form")

    def create_form(self, handle: str, config: Record) -> Record:
        return self._create("forms", handle, {**config, "handle": handle}, "form")

    # -- assets --------------------------------------------------------------------

    def list_asset_containers(self) -> List[Record]:
        return self._list("containers")

    def get_asset_container(self, handle: str) -> Record:
        return self._get("containers", handle, "container")

    def create_asset_container(self, handle: str, config: Record) -> Record:
        return self._create("containers", handle, {**config, "handle": handle}, "container")

    def delete_asset_container(self, handle: str) -> None:
        with self._lock:
            self._delete("containers", handle, "container")
            for key in [k for k in self._asset_bytes if k.startswith(f"{handle}::")]:
                del self._asset_bytes[key]
            self._buckets.pop(f"assets:{handle}", None)

    def list_assets(self, container: str) -> List[Record]:
        self.get_asset_container(container)
        return self._list(f"assets:{container}")

    def get_asset(self, container: str, path: str) -> Record:
        self.get_asset_container(container)
        return self._get(f"assets:{container}", path, "asset")

    def create_asset(self, container: str, path: str, content: bytes, meta: Optional[Record] = None) -> Record:
        self.get_asset_container(container)
        record = {"container": container, "path": path, "size": len(content), "meta": dict(meta or {})}
        created = self._create(f"assets:{container}", path, record, "asset")
        self._asset_bytes[f"{container}::{path}"] = bytes(content)
        return created

    def update_asset(self, container: str, path: str, meta: Record) -> Record:
        current = self.get_asset(container, path)
        return self._update(f"assets:{container}", path, {"meta": {**current["meta"], **meta}}, "asset")

    def move_asset(self, container: str, path: str, destination: str) -> Record:
        with self._lock:
            moved = self.copy_asset(container, path, destination)
            self.delete_asset(container, path)
            return moved

    def copy_asset(self, container: str, path: str, destination: str) -> Record:
        with self._lock:
            current = self.get_asset(container, path)
            content = self._asset_bytes.get(f"{container}::{path}", b"")
            return self.create_asset(container, destination, content, current["meta"])

    def delete_asset(self, container: str, path: str) -> None:
        self.get_asset_container(container)
        self._delete(f"assets:{container}", path, "asset")
        self._asset_bytes.pop(f"{container}::{path}", None)

    # -- users and roles -----------------------------------------------------------

    def list_users(self) -> List[Record]:
        return self._list("users")

    def _find_user_key(self, identifier: str) -> str:
        items = self._bucket("users")
        for key, user in items.items():
            if identifier in (key, user.get("email")):
                return key
        raise ResourceNotFoundError(
            "user", identifier, suggestions=suggest(identifier, [u.get("email", "") for u in items.values()])
        )

    def get_user(self, identifier: str) -> Record:
        with self._lock:
            return self._get("users", self._find_user_key(identifier), "user")

    def create_user(self, email: str, data: Record) -> Record:
        with self._lock:
            if any(u.get("email") == email for u in self._bucket("users").values()):
                raise ResourceConflictError(f"User '{email}' already exists")
            user_id = str(uuid.uuid4())
            record = {
                "name": "",
                "roles": [],
                "super": False,
                "status": "active",
                **data,
                "id": user_id,
                "email": email,
            }
            return self._create("users", user_id, record, "user")

    def update_user(self, identifier: str, data: Record) -> Record:
        with self._lock:
            changes = {k: v for k, v in data.items() if k not in ("id", "email")}
            return self._update("users", self._find_user_key(identifier), changes, "user")

    def delete_user(self, identifier: str) -> None:
        with self._lock:
            self._delete("users", self._find_user_key(identifier), "user")

    def remove_user_role(self, identifier: str, role: str) -> Record:
        with self._lock:
            key = self._find_user_key(identifier)
            roles = [r for r in self._bucket("users")[key].get("roles") or [] if r != role]
            return self._update("users", key, {"roles": roles}, "user")

    def list_roles(self) -> List[Record]:
        return self._list("roles")

    def get_role(self, handle: str) -> Record:
        return self._get("roles", handle, "role")

    def create_role(self, handle: str, config: Record) -> Record:
        record = {"title": handle.replace("_", " ").title(), "permissions": [], **config, "handle": handle}
        return self._create("roles", handle, record, "role")

    def update_role(self, handle: str, config: Record) -> Record:
        return self._update("roles", handle, config, "role")

    def delete_role(self, handle: str) -> None:
        self._delete("roles", handle, "role")

    # -- sites and maintenance -----------------------------------------------------

    def list_sites(self) -> List[Record]:
        return [dict(s) for s in self._sites]

    def clear_stache(self) -> None:
        self.stache_clears += 1

    def health(self) -> Dict[str, Any]:
        with self._lock:
            counts = {}
            for bucket, items in self._buckets.items():
                kind = bucket.split(":", 1)[0]
                counts[kind] = counts.get(kind, 0) + len(items)
        return {"status": "healthy", "store": self.name, "counts": counts}


def slugify(value: str) -> str:
    cleaned = "".join(c if c.isalnum() else "-" for c in value.lower())
    return "-".join(part for part in cleaned.split("-") if part)
