"""Structures router: collections, taxonomies, navigations, sites and forms."""

import logging
from typing import Any, Callable, Dict, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.security import require_handle
from statamic_mcp.tools.base import ArgumentSpec, compact, require_arguments
from statamic_mcp.tools.router import ActionSpec, BaseRouter, TypeSpec

logger = logging.getLogger(__name__)

# Which actions each structure type supports
TYPE_ACTIONS = {
    "collection": ("list", "get", "create", "update", "delete"),
    "taxonomy": ("list", "get", "create", "update", "delete"),
    "navigation": ("list", "get", "create", "update", "delete"),
    "site": ("list", "get"),
    "form": ("list", "get", "create"),
}


class StructuresRouter(BaseRouter):
    domain = "structures"
    actions = (
        ActionSpec("list", "List structures", "Enumerate collections, taxonomies, navigations, sites or forms",
                   examples=({"action": "list", "type": "collection"},)),
        ActionSpec("get", "Get one structure", "Read a structure's configuration", required=("handle",),
                   examples=({"action": "get", "type": "collection", "handle": "blog"},)),
        ActionSpec("create", "Create a structure", "Add a collection, taxonomy, navigation or form",
                   required=("handle",), optional=("title", "config"),
                   examples=({"action": "create", "type": "collection", "handle": "news",
                              "title": "News", "config": {"route": "/news/{slug}"}, "dry_run": True},)),
        ActionSpec("update", "Update a structure", "Merge configuration changes", required=("handle", "config"),
                   risks=("Changing routes or sites affects every entry URL in the structure",)),
        ActionSpec("delete", "Delete a structure", "Remove a collection, taxonomy or navigation", required=("handle",),
                   risks=("Deleting a collection or taxonomy deletes all of its entries or terms",
                          "Templates referencing the structure will break")),
    )
    types = (
        TypeSpec("collection", "Entry containers with routes and blueprints",
                 ("handle", "title", "route", "sites", "dated", "structure"), ("entries", "blueprints"),
                 ({"type": "collection", "handle": "blog"},)),
        TypeSpec("taxonomy", "Term groupings", ("handle", "title", "sites"), ("terms", "collections"),
                 ({"type": "taxonomy", "handle": "tags"},)),
        TypeSpec("navigation", "Menus with a page tree", ("handle", "title", "collections", "max_depth", "tree"),
                 ("collections",), ({"type": "navigation", "handle": "main"},)),
        TypeSpec("site", "Multi-site definitions (read-only)", ("handle", "name", "url", "locale"), (),
                 ({"type": "site"},)),
        TypeSpec("form", "Front-end forms", ("handle", "title", "honeypot", "email"), ("blueprints",),
                 ({"type": "form", "handle": "contact"},)),
    )
    router_arguments = (
        ArgumentSpec("handle", "string", "Structure handle"),
        ArgumentSpec("title", "string", "Display title for create"),
        ArgumentSpec("config", "object", "Configuration values"),
    )
    features = ("collection CRUD", "taxonomy CRUD", "navigation CRUD", "site listing", "form listing and creation")
    primary_use = "Shape the content model: where entries live and how they are routed"
    decision_tree = {
        "new content section": "type=collection, action=create",
        "tagging or categories": "type=taxonomy",
        "menu": "type=navigation",
        "languages or domains": "type=site (read-only)",
        "contact form": "type=form",
    }
    context_awareness = {
        "after_create": "Create a blueprint for the new collection with statamic-blueprints",
    }
    workflow_integration = {
        "new_section": ["structures create collection", "blueprints generate", "blueprints create", "content create entry"],
    }
    related_tools = ("statamic-blueprints", "statamic-content")
    common_patterns = {
        "list_collections": {"action": "list", "type": "collection"},
        "new_collection": {"action": "create", "type": "collection", "handle": "news", "confirm": True},
    }

    def _ensure_supported(self, arguments: Dict[str, Any]) -> str:
        kind = arguments["type"]
        action = arguments["action"]
        if action not in TYPE_ACTIONS[kind]:
            raise InvalidArgumentError(
                f"Action '{action}' is not supported for type '{kind}'",
                details={"type": kind, "supported_actions": list(TYPE_ACTIONS[kind])},
            )
        return kind

    def _call(self, verb: str, kind: str) -> Callable[..., Any]:
        return getattr(self.require_store(), f"{verb}_{kind}")

    def action_list(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        kind = self._ensure_supported(arguments)
        listing = {
            "collection": "list_collections",
            "taxonomy": "list_taxonomies",
            "navigation": "list_navigations",
            "site": "list_sites",
            "form": "list_forms",
        }[kind]
        items = getattr(self.require_store(), listing)()
        return {"items": items, "count": len(items), "type": kind}

    def action_get(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        kind = self._ensure_supported(arguments)
        handle = arguments["handle"]
        if kind == "site":
            sites = {site["handle"]: site for site in self.require_store().list_sites()}
            if handle not in sites:
                raise InvalidArgumentError(
                    f"Unknown site '{handle}'", details={"available_sites": sorted(sites)}
                )
            return {kind: sites[handle]}
        return {kind: self._call("get", kind)(handle)}

    def action_create(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        kind = self._ensure_supported(arguments)
        handle = require_handle(arguments["handle"])
        config = dict(arguments.get("config") or {})
        config.setdefault("title", arguments.get("title") or handle.replace("_", " ").replace("-", " ").title())
        return {kind: self._call("create", kind)(handle, config), "created": True}

    def action_update(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        kind = self._ensure_supported(arguments)
        require_arguments(arguments, ["config"])
        return {kind: self._call("update", kind)(arguments["handle"], arguments["config"]), "updated": True}

    def action_delete(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        kind = self._ensure_supported(arguments)
        self._call("delete", kind)(arguments["handle"])
        return {"deleted": True, "type": kind, "handle": arguments["handle"]}


def register_structures_router(mcp: FastMCP, router: StructuresRouter) -> None:
    """Register the consolidated structures tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_structures(
        action: str,
        type: Optional[str] = None,
        handle: Optional[str] = None,
        title: Optional[str] = None,
        config: Optional[Dict[str, Any]] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Manage collections, taxonomies, navigations, sites and forms via the `action` parameter."""
        return router.execute(compact(
            action=action, type=type, handle=handle, title=title, config=config,
            help_topic=help_topic, dry_run=dry_run, confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
