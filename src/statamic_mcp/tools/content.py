"""Content router: entries, taxonomy terms and global sets."""

import logging
from typing import Any, Dict, List, Mapping, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.security import require_handle
from statamic_mcp.tools.base import ArgumentSpec, compact, get_int, require_arguments
from statamic_mcp.tools.router import ActionSpec, BaseRouter, TypeSpec

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 500


def _paginate(items: List[Dict[str, Any]], arguments: Mapping[str, Any]) -> Dict[str, Any]:
    limit = get_int(arguments, "limit", 50, min_value=1, max_value=MAX_PAGE_SIZE)
    offset = get_int(arguments, "offset", 0, min_value=0)
    page = items[offset:offset + limit]
    return {
        "items": page,
        "pagination": {"total": len(items), "limit": limit, "offset": offset, "has_more": offset + limit < len(items)},
    }


class ContentRouter(BaseRouter):
    domain = "content"
    actions = (
        ActionSpec("list", "List content", "Browse entries, terms or globals", optional=("collection", "taxonomy", "site", "limit", "offset"),
                   examples=({"action": "list", "type": "entry", "collection": "blog", "limit": 10},)),
        ActionSpec("get", "Get one item", "Read an entry, term or global", optional=("id", "slug", "handle"),
                   examples=({"action": "get", "type": "entry", "collection": "blog", "id": "hello-world"},)),
        ActionSpec("create", "Create content", "Add an entry, term or global", required=("data",),
                   optional=("collection", "taxonomy", "slug", "handle", "site", "published"),
                   examples=({"action": "create", "type": "entry", "collection": "blog",
                              "data": {"title": "Hello"}, "confirm": True},)),
        ActionSpec("update", "Update content", "Merge new field values", required=("data",),
                   optional=("collection", "taxonomy", "id", "slug", "handle", "published"),
                   risks=("Field values are overwritten; previous values are not versioned",)),
        ActionSpec("delete", "Delete content", "Remove an entry, term or global",
                   optional=("collection", "taxonomy", "id", "slug", "handle"),
                   risks=("Deleted content cannot be restored without a backup",
                          "Relationship fields pointing at this item will dangle")),
        ActionSpec("publish", "Publish an entry", "Make an entry visible on the site", destructive=True,
                   optional=("collection", "id")),
        ActionSpec("unpublish", "Unpublish an entry", "Hide an entry from the site", destructive=True,
                   optional=("collection", "id"),
                   risks=("The entry URL will return 404 for visitors",)),
    )
    types = (
        TypeSpec("entry", "Collection entries", ("id", "slug", "site", "published", "data"), ("collection", "blueprint"),
                 ({"type": "entry", "collection": "blog"},)),
        TypeSpec("term", "Taxonomy terms", ("slug", "data"), ("taxonomy",), ({"type": "term", "taxonomy": "tags"},)),
        TypeSpec("global", "Global sets", ("handle", "title", "data"), (), ({"type": "global", "handle": "settings"},)),
    )
    router_arguments = (
        ArgumentSpec("collection", "string", "Collection handle (entries)"),
        ArgumentSpec("taxonomy", "string", "Taxonomy handle (terms)"),
        ArgumentSpec("handle", "string", "Global set handle"),
        ArgumentSpec("id", "string", "Entry id or slug"),
        ArgumentSpec("slug", "string", "Entry or term slug"),
        ArgumentSpec("title", "string", "Global set title"),
        ArgumentSpec("site", "string", "Site handle"),
        ArgumentSpec("data", "object", "Field values"),
        ArgumentSpec("published", "boolean", "Entry published state"),
        ArgumentSpec("limit", "integer", "Page size for list"),
        ArgumentSpec("offset", "integer", "Page offset for list"),
    )
    features = ("entry CRUD", "term CRUD", "global set CRUD", "publish workflow", "pagination")
    primary_use = "Read and edit the content stored in collections, taxonomies and global sets"
    decision_tree = {
        "blog post or page": "type=entry",
        "tag or category": "type=term",
        "site-wide setting": "type=global",
    }
    context_awareness = {
        "before_create": "Fetch the blueprint with statamic-blueprints get to know valid fields",
        "multisite": "Pass site to list or create entries for a non-default site",
    }
    workflow_integration = {
        "publish_flow": ["create with published=false", "review", "publish with confirm=true"],
    }
    related_tools = ("statamic-blueprints", "statamic-structures")
    common_patterns = {
        "list_entries": {"action": "list", "type": "entry", "collection": "blog"},
        "draft_entry": {"action": "create", "type": "entry", "collection": "blog",
                        "data": {"title": "Draft"}, "published": False, "dry_run": True},
    }

    def describe_target(self, arguments: Mapping[str, Any]) -> str:
        kind = arguments.get("type", "content")
        target = arguments.get("id") or arguments.get("slug") or arguments.get("handle")
        parent = arguments.get("collection") or arguments.get("taxonomy")
        where = f" in {parent}" if parent else ""
        return f"{kind} '{target}'{where}" if target else f"{kind}{where}"

    def _entry_target(self, arguments: Dict[str, Any]) -> str:
        require_arguments(arguments, ["collection"])
        target = arguments.get("id") or arguments.get("slug")
        if not target:
            raise InvalidArgumentError("Missing required parameter: id", details={"field": "id"})
        return str(target)

    def _term_target(self, arguments: Dict[str, Any]) -> str:
        require_arguments(arguments, ["taxonomy", "slug"])
        return require_handle(arguments["slug"], "slug")

    def action_list(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        kind = arguments["type"]
        if kind == "entry":
            require_arguments(arguments, ["collection"])
            items = store.list_entries(arguments["collection"], site=arguments.get("site"))
        elif kind == "term":
            require_arguments(arguments, ["taxonomy"])
            items = store.list_terms(arguments["taxonomy"])
        else:
            items = store.list_globals()
        return _paginate(items, arguments)

    def action_get(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        kind = arguments["type"]
        if kind == "entry":
            target = self._entry_target(arguments)
            return {"entry": store.get_entry(arguments["collection"], target)}
        if kind == "term":
            target = self._term_target(arguments)
            return {"term": store.get_term(arguments["taxonomy"], target)}
        require_arguments(arguments, ["handle"])
        return {"global": store.get_global(arguments["handle"])}

    def action_create(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        kind = arguments["type"]
        data = arguments["data"]
        if kind == "entry":
            require_arguments(arguments, ["collection"])
            entry = store.create_entry(
                arguments["collection"],
                data,
                slug=require_handle(arguments["slug"], "slug") if arguments.get("slug") else None,
                site=arguments.get("site"),
                published=arguments.get("published", True),
            )
            return {"entry": entry, "created": True}
        if kind == "term":
            slug = self._term_target(arguments)
            term = store.create_term(arguments["taxonomy"], slug, data)
            return {"term": term, "created": True}
        require_arguments(arguments, ["handle"])
        handle = require_handle(arguments["handle"])
        title = arguments.get("title") or handle.replace("_", " ").title()
        return {"global": store.create_global(handle, title, data), "created": True}

    def action_update(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        kind = arguments["type"]
        data = arguments["data"]
        if kind == "entry":
            target = self._entry_target(arguments)
            entry = store.update_entry(arguments["collection"], target, data, published=arguments.get("published"))
            return {"entry": entry, "updated": True}
        if kind == "term":
            slug = self._term_target(arguments)
            return {"term": store.update_term(arguments["taxonomy"], slug, data), "updated": True}
        require_arguments(arguments, ["handle"])
        return {"global": store.update_global(arguments["handle"], data), "updated": True}

    def action_delete(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        kind = arguments["type"]
        if kind == "entry":
            target = self._entry_target(arguments)
            store.delete_entry(arguments["collection"], target)
        elif kind == "term":
            target = self._term_target(arguments)
            store.delete_term(arguments["taxonomy"], target)
        else:
            require_arguments(arguments, ["handle"])
            target = arguments["handle"]
            store.delete_global(target)
        return {"deleted": True, "type": kind, "target": target}

    def _set_published(self, arguments: Dict[str, Any], published: bool) -> Dict[str, Any]:
        if arguments["type"] != "entry":
            raise InvalidArgumentError("Only entries can be published or unpublished", details={"type": arguments["type"]})
        target = self._entry_target(arguments)
        entry = self.require_store().update_entry(arguments["collection"], target, {}, published=published)
        return {"entry": entry, "published": published}

    def action_publish(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._set_published(arguments, True)

    def action_unpublish(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._set_published(arguments, False)


def register_content_router(mcp: FastMCP, router: ContentRouter) -> None:
    """Register the consolidated content tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_content(
        action: str,
        type: Optional[str] = None,
        collection: Optional[str] = None,
        taxonomy: Optional[str] = None,
        handle: Optional[str] = None,
        id: Optional[str] = None,
        slug: Optional[str] = None,
        title: Optional[str] = None,
        site: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        published: Optional[bool] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Manage entries, terms and globals via the `action` parameter."""
        return router.execute(compact(
            action=action, type=type, collection=collection, taxonomy=taxonomy, handle=handle, id=id,
            slug=slug, title=title, site=site, data=data, published=published, limit=limit, offset=offset,
            help_topic=help_topic, dry_run=dry_run, confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
