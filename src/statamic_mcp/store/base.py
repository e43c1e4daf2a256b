"""
Content store interface.

Routers never touch the CMS directly; they talk to a ``ContentStore``.
Records are plain dicts. Every mutating call returns the stored record,
raises ``ResourceNotFoundError`` when the target does not exist, and
``ResourceConflictError`` when creating over an existing handle.

Record shapes:

    blueprint   {"handle", "namespace", "title", "tabs" | "sections" | "fields", ...}
    collection  {"handle", "title", "route", "sites", "blueprints", ...}
    entry       {"id", "collection", "slug", "site", "published", "data": {...}}
    taxonomy    {"handle", "title", ...}
    term        {"slug", "taxonomy", "data": {...}}
    global      {"handle", "title", "data": {...}}
    navigation  {"handle", "title", "tree": [...], ...}
    form        {"handle", "title", ...}
    container   {"handle", "title", "disk", ...}
    asset       {"container", "path", "size", "meta": {...}}
    user        {"id", "email", "name", "roles": [...], "super", "status"}
    role        {"handle", "title", "permissions": [...]}
    site        {"handle", "name", "url", "locale"}
"""

from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

Record = Dict[str, Any]


@runtime_checkable
class ContentStore(Protocol):
    """CRUD capability over a Statamic site's content and structure."""

    name: str

    # Blueprints
    def list_blueprints(self, namespace: Optional[str] = None) -> List[Record]: ...
    def get_blueprint(self, namespace: str, handle: str) -> Record: ...
    def create_blueprint(self, namespace: str, handle: str, contents: Record) -> Record: ...
    def update_blueprint(self, namespace: str, handle: str, contents: Record) -> Record: ...
    def delete_blueprint(self, namespace: str, handle: str) -> None: ...
    def blueprint_files(self) -> List[str]: ...

    # Collections and entries
    def list_collections(self) -> List[Record]: ...
    def get_collection(self, handle: str) -> Record: ...
    def create_collection(self, handle: str, config: Record) -> Record: ...
    def update_collection(self, handle: str, config: Record) -> Record: ...
    def delete_collection(self, handle: str) -> None: ...
    def list_entries(self, collection: str, site: Optional[str] = None) -> List[Record]: ...
    def get_entry(self, collection: str, entry_id: str) -> Record: ...
    def create_entry(self, collection: str, data: Record, *, slug: Optional[str] = None,
                     site: Optional[str] = None, published: bool = True) -> Record: ...
    def update_entry(self, collection: str, entry_id: str, data: Record,
                     published: Optional[bool] = None) -> Record: ...
    def delete_entry(self, collection: str, entry_id: str) -> None: ...

    # Taxonomies and terms
    def list_taxonomies(self) -> List[Record]: ...
    def get_taxonomy(self, handle: str) -> Record: ...
    def create_taxonomy(self, handle: str, config: Record) -> Record: ...
    def update_taxonomy(self, handle: str, config: Record) -> Record: ...
    def delete_taxonomy(self, handle: str) -> None: ...
    def list_terms(self, taxonomy: str) -> List[Record]: ...
    def get_term(self, taxonomy: str, slug: str) -> Record: ...
    def create_term(self, taxonomy: str, slug: str, data: Record) -> Record: ...
    def update_term(self, taxonomy: str, slug: str, data: Record) -> Record: ...
    def delete_term(self, taxonomy: str, slug: str) -> None: ...

    # Globals
    def list_globals(self) -> List[Record]: ...
    def get_global(self, handle: str) -> Record: ...
    def create_global(self, handle: str, title: str, data: Record) -> Record: ...
    def update_global(self, handle: str, data: Record) -> Record: ...
    def delete_global(self, handle: str) -> None: ...

    # Navigations and forms
    def list_navigations(self) -> List[Record]: ...
    def get_navigation(self, handle: str) -> Record: ...
    def create_navigation(self, handle: str, config: Record) -> Record: ...
    def update_navigation(self, handle: str, config: Record) -> Record: ...
    def delete_navigation(self, handle: str) -> None: ...
    def list_forms(self) -> List[Record]: ...
    def get_form(self, handle: str) -> Record: ...
    def create_form(self, handle: str, config: Record) -> Record: ...

    # Assets
    def list_asset_containers(self) -> List[Record]: ...
    def get_asset_container(self, handle: str) -> Record: ...
    def create_asset_container(self, handle: str, config: Record) -> Record: ...
    def delete_asset_container(self, handle: str) -> None: ...
    def list_assets(self, container: str) -> List[Record]: ...
    def get_asset(self, container: str, path: str) -> Record: ...
    def create_asset(self, container: str, path: str, content: bytes, meta: Optional[Record] = None) -> Record: ...
    def update_asset(self, container: str, path: str, meta: Record) -> Record: ...
    def move_asset(self, container: str, path: str, destination: str) -> Record: ...
    def copy_asset(self, container: str, path: str, destination: str) -> Record: ...
    def delete_asset(self, container: str, path: str) -> None: ...

    # Users and roles
    def list_users(self) -> List[Record]: ...
    def get_user(self, identifier: str) -> Record: ...
    def create_user(self, email: str, data: Record) -> Record: ...
    def update_user(self, identifier: str, data: Record) -> Record: ...
    def delete_user(self, identifier: str) -> None: ...
    def remove_user_role(self, identifier: str, role: str) -> Record: ...
    def list_roles(self) -> List[Record]: ...
    def get_role(self, handle: str) -> Record: ...
    def create_role(self, handle: str, config: Record) -> Record: ...
    def update_role(self, handle: str, config: Record) -> Record: ...
    def delete_role(self, handle: str) -> None: ...

    # Sites and maintenance
    def list_sites(self) -> List[Record]: ...
    def clear_stache(self) -> None: ...
    def health(self) -> Dict[str, Any]: ...
