"""
Flat-file content store.

Reads and writes a Statamic project's files directly, using the layout a
stock install ships with:

    resources/blueprints/{namespace as path}/{handle}.yaml
    content/collections/{handle}.yaml
    content/collections/{handle}/{slug}.md          (default site)
    content/collections/{handle}/{site}/{slug}.md   (other sites)
    content/taxonomies/{handle}.yaml
    content/taxonomies/{handle}/{slug}.yaml
    content/globals/{handle}.yaml
    content/navigation/{handle}.yaml
    content/trees/navigation/{handle}.yaml
    content/assets/{container}.yaml
    resources/forms/{handle}.yaml
    resources/users/roles.yaml
    resources/sites.yaml
    users/{email}.yaml

Every path is resolved inside the project root; a handle that would escape
it raises ``SecurityViolationError``.
"""

import logging
import shutil
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from statamic_mcp.core.errors import (
    ErrorCode,
    InvalidArgumentError,
    ResourceConflictError,
    ResourceNotFoundError,
    StatamicMCPError,
)
from statamic_mcp.core.security import resolve_within
from statamic_mcp.store.base import Record
from statamic_mcp.store.memory import DEFAULT_SITE, slugify, suggest

logger = logging.getLogger(__name__)

STACHE_DIR = "storage/framework/cache/data/stache"


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """Split a ``---`` delimited YAML header from the document body."""
    lines = text.splitlines(keepends=False)
    if not lines or lines[0].strip() != "---":
        return {}, text

    fm_lines: List[str] = []
    idx = 1
    while idx < len(lines) and lines[idx].strip() != "---":
        fm_lines.append(lines[idx])
        idx += 1

    if idx >= len(lines):
        raise ValueError("YAML front matter must end with a '---' line")

    fm = yaml.safe_load("\n".join(fm_lines)) or {}
    if not isinstance(fm, dict):
        raise ValueError("YAML front matter must parse to a mapping")
    return fm, "\n".join(lines[idx + 1 :]).strip("\n")


def dump_front_matter(fm: Dict[str, Any], body: str = "") -> str:
    text = "---\n" + yaml.safe_dump(fm, sort_keys=False, allow_unicode=True) + "---\n"
    if body:
        text += body.rstrip("\n") + "\n"
    return text


class FlatFileContentStore:
    """``ContentStore`` over a Statamic project directory."""

    name = "flatfile"

    def __init__(self, project_root):
        self.root = Path(project_root).resolve()
        self._lock = threading.RLock()

    # -- file helpers ----------------------------------------------------------

    def _path(self, *parts: str) -> Path:
        return resolve_within(self.root, Path(*parts))

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            raise StatamicMCPError(
                f"Invalid YAML in {path.relative_to(self.root)}: {exc}",
                code=ErrorCode.FILE_SYSTEM_ERROR,
            ) from exc
        if not isinstance(data, dict):
            raise StatamicMCPError(
                f"Expected a mapping in {path.relative_to(self.root)}",
                code=ErrorCode.FILE_SYSTEM_ERROR,
            )
        return data

    def _write_yaml(self, path: Path, data: Dict[str, Any]) -> None:
        self._write_text(path, yaml.safe_dump(data, sort_keys=False, allow_unicode=True))

    def _write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(path)

    @staticmethod
    def _stems(directory: Path, pattern: str = "*.yaml") -> List[str]:
        if not directory.is_dir():
            return []
        return sorted(p.stem for p in directory.glob(pattern) if p.is_file())

    def _require(self, path: Path, resource: str, identifier: str, siblings: List[str]) -> Path:
        if not path.is_file():
            raise ResourceNotFoundError(resource, identifier, suggestions=suggest(identifier, siblings))
        return path

    # Simple "one YAML file per handle" resources share these helpers.

    def _config_list(self, directory: str) -> List[Record]:
        base = self._path(directory)
        return [self._config_get(directory, stem, "") for stem in self._stems(base)]

    def _config_get(self, directory: str, handle: str, resource: str) -> Record:
        path = self._path(directory, f"{handle}.yaml")
        self._require(path, resource, handle, self._stems(path.parent))
        return {**self._read_yaml(path), "handle": handle}

    def _config_create(self, directory: str, handle: str, config: Record, resource: str) -> Record:
        with self._lock:
            path = self._path(directory, f"{handle}.yaml")
            if path.exists():
                raise ResourceConflictError(f"{resource.capitalize()} '{handle}' already exists")
            stored = {k: v for k, v in config.items() if k != "handle"}
            self._write_yaml(path, stored)
            return {**stored, "handle": handle}

    def _config_update(self, directory: str, handle: str, config: Record, resource: str) -> Record:
        with self._lock:
            current = self._config_get(directory, handle, resource)
            current.update(config)
            current.pop("handle", None)
            self._write_yaml(self._path(directory, f"{handle}.yaml"), current)
            return {**current, "handle": handle}

    def _config_delete(self, directory: str, handle: str, resource: str) -> Path:
        path = self._path(directory, f"{handle}.yaml")
        self._require(path, resource, handle, self._stems(path.parent))
        path.unlink()
        return path

    # -- blueprints ------------------------------------------------------------

    def _blueprint_path(self, namespace: str, handle: str) -> Path:
        return self._path("resources/blueprints", *namespace.split("."), f"{handle}.yaml")

    def list_blueprints(self, namespace: Optional[str] = None) -> List[Record]:
        base = self._path("resources/blueprints")
        results = []
        for path in sorted(base.rglob("*.yaml")) if base.is_dir() else []:
            ns = ".".join(path.relative_to(base).parent.parts)
            if namespace is None or ns == namespace or ns.startswith(f"{namespace}."):
                results.append({**self._read_yaml(path), "handle": path.stem, "namespace": ns})
        return results

    def get_blueprint(self, namespace: str, handle: str) -> Record:
        path = self._blueprint_path(namespace, handle)
        self._require(path, "blueprint", handle, self._stems(path.parent))
        return {**self._read_yaml(path), "handle": handle, "namespace": namespace}

    def create_blueprint(self, namespace: str, handle: str, contents: Record) -> Record:
        with self._lock:
            path = self._blueprint_path(namespace, handle)
            if path.exists():
                raise ResourceConflictError(f"Blueprint '{namespace}.{handle}' already exists")
            stored = {k: v for k, v in contents.items() if k not in ("handle", "namespace")}
            self._write_yaml(path, stored)
            return {**stored, "handle": handle, "namespace": namespace}

    def update_blueprint(self, namespace: str, handle: str, contents: Record) -> Record:
        with self._lock:
            current = self.get_blueprint(namespace, handle)
            current.update(contents)
            stored = {k: v for k, v in current.items() if k not in ("handle", "namespace")}
            self._write_yaml(self._blueprint_path(namespace, handle), stored)
            return {**stored, "handle": handle, "namespace": namespace}

    def delete_blueprint(self, namespace: str, handle: str) -> None:
        path = self._blueprint_path(namespace, handle)
        self._require(path, "blueprint", handle, self._stems(path.parent))
        path.unlink()

    def blueprint_files(self) -> List[str]:
        base = self._path("resources/blueprints")
        if not base.is_dir():
            return []
        return [str(p) for p in sorted(base.rglob("*.yaml"))]

    # -- collections and entries ------------------------------------------------

    def list_collections(self) -> List[Record]:
        return self._config_list("content/collections")

    def get_collection(self, handle: str) -> Record:
        return self._config_get("content/collections", handle, "collection")

    def create_collection(self, handle: str, config: Record) -> Record:
        record = self._config_create("content/collections", handle, config, "collection")
        self._path("content/collections", handle).mkdir(parents=True, exist_ok=True)
        return record

    def update_collection(self, handle: str, config: Record) -> Record:
        return self._config_update("content/collections", handle, config, "collection")

    def delete_collection(self, handle: str) -> None:
        with self._lock:
            self._config_delete("content/collections", handle, "collection")
            entries_dir = self._path("content/collections", handle)
            if entries_dir.is_dir():
                shutil.rmtree(entries_dir)

    def _default_site(self) -> str:
        return self.list_sites()[0]["handle"]

    def _entry_files(self, collection: str) -> List[Tuple[Path, str]]:
        base = self._path("content/collections", collection)
        if not base.is_dir():
            return []
        default = self._default_site()
        files = [(p, default) for p in sorted(base.glob("*.md"))]
        for site_dir in sorted(d for d in base.iterdir() if d.is_dir()):
            files.extend((p, site_dir.name) for p in sorted(site_dir.glob("*.md")))
        return files

    def _load_entry(self, path: Path, collection: str, site: str) -> Record:
        fm, body = parse_front_matter(path.read_text(encoding="utf-8"))
        published = fm.pop("published", True)
        entry_id = str(fm.pop("id", path.stem))
        data = dict(fm)
        if body:
            data["content"] = body
        return {
            "id": entry_id,
            "collection": collection,
            "slug": path.stem,
            "site": site,
            "published": bool(published),
            "data": data,
        }

    def _save_entry(self, path: Path, entry: Record) -> None:
        data = dict(entry["data"])
        body = data.pop("content", "")
        fm: Dict[str, Any] = {"id": entry["id"]}
        if not entry["published"]:
            fm["published"] = False
        fm.update(data)
        if not isinstance(body, str):
            fm["content"] = body
            body = ""
        self._write_text(path, dump_front_matter(fm, body))

    def _find_entry(self, collection: str, entry_id: str) -> Tuple[Path, Record]:
        self.get_collection(collection)
        files = self._entry_files(collection)
        for path, site in files:
            entry = self._load_entry(path, collection, site)
            if entry_id in (entry["id"], entry["slug"]):
                return path, entry
        raise ResourceNotFoundError("entry", entry_id, suggestions=suggest(entry_id, [p.stem for p, _ in files]))

    def list_entries(self, collection: str, site: Optional[str] = None) -> List[Record]:
        self.get_collection(collection)
        entries = [self._load_entry(p, collection, s) for p, s in self._entry_files(collection)]
        if site:
            entries = [e for e in entries if e["site"] == site]
        return entries

    def get_entry(self, collection: str, entry_id: str) -> Record:
        return self._find_entry(collection, entry_id)[1]

    def create_entry(self, collection: str, data: Record, *, slug: Optional[str] = None,
                     site: Optional[str] = None, published: bool = True) -> Record:
        with self._lock:
            self.get_collection(collection)
            entry_slug = slug or slugify(str(data.get("title", "")))
            if not entry_slug:
                raise InvalidArgumentError("Entry needs a slug or a title")
            site = site or self._default_site()
            parts = ["content/collections", collection]
            if site != self._default_site():
                parts.append(site)
            path = self._path(*parts, f"{entry_slug}.md")
            if path.exists():
                raise ResourceConflictError(f"Entry '{entry_slug}' already exists in {collection}")
            entry = {
                "id": str(uuid.uuid4()),
                "collection": collection,
                "slug": entry_slug,
                "site": site,
                "published": published,
                "data": dict(data),
            }
            self._save_entry(path, entry)
            return entry

    def update_entry(self, collection: str, entry_id: str, data: Record,
                     published: Optional[bool] = None) -> Record:
        with self._lock:
            path, entry = self._find_entry(collection, entry_id)
            entry["data"].update(data)
            if published is not None:
                entry["published"] = published
            self._save_entry(path, entry)
            return entry

    def delete_entry(self, collection: str, entry_id: str) -> None:
        with self._lock:
            path, _ = self._find_entry(collection, entry_id)
            path.unlink()

    # -- taxonomies and terms ----------------------------------------------------

    def list_taxonomies(self) -> List[Record]:
        return self._config_list("content/taxonomies")

    def get_taxonomy(self, handle: str) -> Record:
        return self._config_get("content/taxonomies", handle, "taxonomy")

    def create_taxonomy(self, handle: str, config: Record) -> Record:
        return self._config_create("content/taxonomies", handle, config, "taxonomy")

    def update_taxonomy(self, handle: str, config: Record) -> Record:
        return self._config_update("content/taxonomies", handle, config, "taxonomy")

    def delete_taxonomy(self, handle: str) -> None:
        with self._lock:
            self._config_delete("content/taxonomies", handle, "taxonomy")
            terms_dir = self._path("content/taxonomies", handle)
            if terms_dir.is_dir():
                shutil.rmtree(terms_dir)

    def _term_path(self, taxonomy: str, slug: str) -> Path:
        self.get_taxonomy(taxonomy)
        return self._path("content/taxonomies", taxonomy, f"{slug}.yaml")

    def list_terms(self, taxonomy: str) -> List[Record]:
        self.get_taxonomy(taxonomy)
        return [self.get_term(taxonomy, s) for s in self._stems(self._path("content/taxonomies", taxonomy))]

    def get_term(self, taxonomy: str, slug: str) -> Record:
        path = self._term_path(taxonomy, slug)
        self._require(path, "term", slug, self._stems(path.parent))
        return {"slug": slug, "taxonomy": taxonomy, "data": self._read_yaml(path)}

    def create_term(self, taxonomy: str, slug: str, data: Record) -> Record:
        with self._lock:
            path = self._term_path(taxonomy, slug)
            if path.exists():
                raise ResourceConflictError(f"Term '{slug}' already exists in {taxonomy}")
            self._write_yaml(path, dict(data))
            return {"slug": slug, "taxonomy": taxonomy, "data": dict(data)}

    def update_term(self, taxonomy: str, slug: str, data: Record) -> Record:
        with self._lock:
            term = self.get_term(taxonomy, slug)
            term["data"].update(data)
            self._write_yaml(self._term_path(taxonomy, slug), term["data"])
            return term

    def delete_term(self, taxonomy: str, slug: str) -> None:
        path = self._term_path(taxonomy, slug)
        self._require(path, "term", slug, self._stems(path.parent))
        path.unlink()

    # -- globals -------------------------------------------------------------------

    def list_globals(self) -> List[Record]:
        return [self.get_global(h) for h in self._stems(self._path("content/globals"))]

    def get_global(self, handle: str) -> Record:
        raw = self._config_get("content/globals", handle, "global")
        return {"handle": handle, "title": raw.get("title", handle), "data": dict(raw.get("data") or {})}

    def create_global(self, handle: str, title: str, data: Record) -> Record:
        self._config_create("content/globals", handle, {"title": title, "data": dict(data)}, "global")
        return {"handle": handle, "title": title, "data": dict(data)}

    def update_global(self, handle: str, data: Record) -> Record:
        with self._lock:
            current = self.get_global(handle)
            current["data"].update(data)
            self._write_yaml(
                self._path("content/globals", f"{handle}.yaml"),
                {"title": current["title"], "data": current["data"]},
            )
            return current

    def delete_global(self, handle: str) -> None:
        self._config_delete("content/globals", handle, "global")

    # -- navigations and forms ---------------------------------------------------

    def _tree_path(self, handle: str) -> Path:
        return self._path("content/trees/navigation", f"{handle}.yaml")

    def list_navigations(self) -> List[Record]:
        return [self.get_navigation(h) for h in self._stems(self._path("content/navigation"))]

    def get_navigation(self, handle: str) -> Record:
        record = self._config_get("content/navigation", handle, "navigation")
        tree_path = self._tree_path(handle)
        record["tree"] = self._read_yaml(tree_path).get("tree", []) if tree_path.is_file() else []
        return record

    def create_navigation(self, handle: str, config: Record) -> Record:
        with self._lock:
            tree = config.get("tree", [])
            record = self._config_create(
                "content/navigation", handle, {k: v for k, v in config.items() if k != "tree"}, "navigation"
            )
            self._write_yaml(self._tree_path(handle), {"tree": tree})
            return {**record, "tree": tree}

    def update_navigation(self, handle: str, config: Record) -> Record:
        with self._lock:
            self.get_navigation(handle)
            settings = {k: v for k, v in config.items() if k != "tree"}
            if settings:
                self._config_update("content/navigation", handle, settings, "navigation")
            if "tree" in config:
                self._write_yaml(self._tree_path(handle), {"tree": config["tree"]})
            return self.get_navigation(handle)

    def delete_navigation(self, handle: str) -> None:
        with self._lock:
            self._config_delete("content/navigation", handle, "navigation")
            tree_path = self._tree_path(handle)
            if tree_path.exists():
                tree_path.unlink()

    def list_forms(self) -> List[Record]:
        return self._config_list("resources/forms")

    def get_form(self, handle: str) -> Record:
        return self._config_get("resources/forms", handle, "form")

    def create_form(self, handle: str, config: Record) -> Record:
        return self._config_create("resources/forms", handle, config, "form")

    # -- assets --------------------------------------------------------------------

    def list_asset_containers(self) -> List[Record]:
        return self._config_list("content/assets")

    def get_asset_container(self, handle: str) -> Record:
        return self._config_get("content/assets", handle, "container")

    def create_asset_container(self, handle: str, config: Record) -> Record:
        record = self._config_create("content/assets", handle, {"disk": "assets", **config}, "container")
        self._container_root(handle).mkdir(parents=True, exist_ok=True)
        return record

    def delete_asset_container(self, handle: str) -> None:
        self._config_delete("content/assets", handle, "container")

    def _container_root(self, container: str) -> Path:
        return self._path("public", container)

    def _asset_path(self, container: str, path: str) -> Path:
        self.get_asset_container(container)
        return resolve_within(self._container_root(container), path)

    def _meta_path(self, asset_path: Path) -> Path:
        return asset_path.parent / ".meta" / f"{asset_path.name}.yaml"

    def _load_asset(self, container: str, asset_path: Path) -> Record:
        meta_path = self._meta_path(asset_path)
        meta = self._read_yaml(meta_path).get("data", {}) if meta_path.is_file() else {}
        rel = asset_path.relative_to(self._container_root(container)).as_posix()
        return {"container": container, "path": rel, "size": asset_path.stat().st_size, "meta": meta}

    def _require_asset(self, container: str, path: str) -> Path:
        asset_path = self._asset_path(container, path)
        if not asset_path.is_file():
            known = [a["path"] for a in self.list_assets(container)]
            raise ResourceNotFoundError("asset", path, suggestions=suggest(path, known))
        return asset_path

    def list_assets(self, container: str) -> List[Record]:
        self.get_asset_container(container)
        root = self._container_root(container)
        if not root.is_dir():
            return []
        return [
            self._load_asset(container, p)
            for p in sorted(root.rglob("*"))
            if p.is_file() and ".meta" not in p.relative_to(root).parts
        ]

    def get_asset(self, container: str, path: str) -> Record:
        return self._load_asset(container, self._require_asset(container, path))

    def create_asset(self, container: str, path: str, content: bytes, meta: Optional[Record] = None) -> Record:
        with self._lock:
            asset_path = self._asset_path(container, path)
            if asset_path.exists():
                raise ResourceConflictError(f"Asset '{path}' already exists in {container}")
            asset_path.parent.mkdir(parents=True, exist_ok=True)
            asset_path.write_bytes(content)
            if meta:
                self._write_yaml(self._meta_path(asset_path), {"data": dict(meta)})
            return self._load_asset(container, asset_path)

    def update_asset(self, container: str, path: str, meta: Record) -> Record:
        with self._lock:
            asset = self.get_asset(container, path)
            asset_path = self._asset_path(container, path)
            self._write_yaml(self._meta_path(asset_path), {"data": {**asset["meta"], **meta}})
            return self._load_asset(container, asset_path)

    def move_asset(self, container: str, path: str, destination: str) -> Record:
        with self._lock:
            source = self._require_asset(container, path)
            target = self._asset_path(container, destination)
            if target.exists():
                raise ResourceConflictError(f"Asset '{destination}' already exists in {container}")
            target.parent.mkdir(parents=True, exist_ok=True)
            source.replace(target)
            meta = self._meta_path(source)
            if meta.exists():
                self._meta_path(target).parent.mkdir(parents=True, exist_ok=True)
                meta.replace(self._meta_path(target))
            return self._load_asset(container, target)

    def copy_asset(self, container: str, path: str, destination: str) -> Record:
        with self._lock:
            source = self._require_asset(container, path)
            return self.create_asset(container, destination, source.read_bytes(), self.get_asset(container, path)["meta"])

    def delete_asset(self, container: str, path: str) -> None:
        with self._lock:
            asset_path = self._require_asset(container, path)
            asset_path.unlink()
            meta = self._meta_path(asset_path)
            if meta.exists():
                meta.unlink()

    # -- users and roles -----------------------------------------------------------

    def _user_files(self) -> List[Path]:
        base = self._path("users")
        return sorted(base.glob("*.yaml")) if base.is_dir() else []

    def _load_user(self, path: Path) -> Record:
        data = self._read_yaml(path)
        return {
            "name": data.get("name", ""),
            "roles": list(data.get("roles") or []),
            "super": bool(data.get("super", False)),
            "status": data.get("status", "active"),
            **{k: v for k, v in data.items() if k not in ("password",)},
            "id": str(data.get("id", path.stem)),
            "email": path.stem,
        }

    def _find_user(self, identifier: str) -> Path:
        for path in self._user_files():
            if path.stem == identifier or str(self._read_yaml(path).get("id")) == identifier:
                return path
        raise ResourceNotFoundError(
            "user", identifier, suggestions=suggest(identifier, [p.stem for p in self._user_files()])
        )

    def list_users(self) -> List[Record]:
        return [self._load_user(p) for p in self._user_files()]

    def get_user(self, identifier: str) -> Record:
        return self._load_user(self._find_user(identifier))

    def create_user(self, email: str, data: Record) -> Record:
        with self._lock:
            path = self._path("users", f"{email}.yaml")
            if path.exists():
                raise ResourceConflictError(f"User '{email}' already exists")
            stored = {k: v for k, v in data.items() if k not in ("id", "email")}
            self._write_yaml(path, {"id": str(uuid.uuid4()), **stored})
            return self._load_user(path)

    def update_user(self, identifier: str, data: Record) -> Record:
        with self._lock:
            path = self._find_user(identifier)
            stored = self._read_yaml(path)
            stored.update({k: v for k, v in data.items() if k not in ("id", "email")})
            self._write_yaml(path, stored)
            return self._load_user(path)

    def delete_user(self, identifier: str) -> None:
        with self._lock:
            self._find_user(identifier).unlink()

    def remove_user_role(self, identifier: str, role: str) -> Record:
        with self._lock:
            path = self._find_user(identifier)
            stored = self._read_yaml(path)
            stored["roles"] = [r for r in stored.get("roles") or [] if r != role]
            self._write_yaml(path, stored)
            return self._load_user(path)

    def _roles_path(self) -> Path:
        return self._path("resources/users/roles.yaml")

    def _roles(self) -> Dict[str, Any]:
        path = self._roles_path()
        return self._read_yaml(path) if path.is_file() else {}

    def list_roles(self) -> List[Record]:
        return [{**(cfg or {}), "handle": h} for h, cfg in sorted(self._roles().items())]

    def get_role(self, handle: str) -> Record:
        roles = self._roles()
        if handle not in roles:
            raise ResourceNotFoundError("role", handle, suggestions=suggest(handle, roles))
        return {**(roles[handle] or {}), "handle": handle}

    def create_role(self, handle: str, config: Record) -> Record:
        with self._lock:
            roles = self._roles()
            if handle in roles:
                raise ResourceConflictError(f"Role '{handle}' already exists")
            stored = {"title": handle.replace("_", " ").title(), "permissions": [], **config}
            stored.pop("handle", None)
            roles[handle] = stored
            self._write_yaml(self._roles_path(), roles)
            return {**stored, "handle": handle}

    def update_role(self, handle: str, config: Record) -> Record:
        with self._lock:
            roles = self._roles()
            current = self.get_role(handle)
            current.update(config)
            current.pop("handle", None)
            roles[handle] = current
            self._write_yaml(self._roles_path(), roles)
            return {**current, "handle": handle}

    def delete_role(self, handle: str) -> None:
        with self._lock:
            roles = self._roles()
            self.get_role(handle)
            del roles[handle]
            self._write_yaml(self._roles_path(), roles)

    # -- sites and maintenance -----------------------------------------------------

    def list_sites(self) -> List[Record]:
        path = self._path("resources/sites.yaml")
        if not path.is_file():
            return [dict(DEFAULT_SITE)]
        sites = self._read_yaml(path)
        return [{**(cfg or {}), "handle": h} for h, cfg in sites.items()] or [dict(DEFAULT_SITE)]

    def clear_stache(self) -> None:
        stache = self._path(STACHE_DIR)
        if stache.is_dir():
            shutil.rmtree(stache)
            logger.info("Cleared stache at %s", stache)

    def health(self) -> Dict[str, Any]:
        checks = {
            "project_root": self.root.is_dir(),
            "content_dir": self._path("content").is_dir(),
            "blueprints_dir": self._path("resources/blueprints").is_dir(),
        }
        status = "healthy" if all(checks.values()) else "degraded"
        return {"status": status, "store": self.name, "root": str(self.root), "checks": checks}
