"""Blueprints router: list, inspect, create and scan Statamic blueprints."""

import logging
import re
from collections import Counter
from typing import Any, Dict, List, Optional

import yaml
from mcp.server.fastmcp import FastMCP

from statamic_mcp.antlers.validator import normalize_blueprint_fields
from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.security import require_handle
from statamic_mcp.tools.base import ArgumentSpec, compact, get_bool, require_arguments
from statamic_mcp.tools.router import ActionSpec, BaseRouter, TypeSpec

logger = logging.getLogger(__name__)

FIELD_TYPES = {
    "text": "Single line of text",
    "textarea": "Multi-line plain text",
    "markdown": "Markdown editor",
    "bard": "Rich text editor with sets",
    "replicator": "Repeating sets of fields",
    "grid": "Table of repeating rows",
    "assets": "One or more assets from a container",
    "entries": "Relationship to entries",
    "terms": "Relationship to taxonomy terms",
    "users": "Relationship to users",
    "date": "Date and optional time",
    "toggle": "Boolean switch",
    "select": "Dropdown of options",
    "checkboxes": "Multiple choice",
    "radio": "Single choice",
    "integer": "Whole number",
    "float": "Decimal number",
    "slug": "URL-safe handle",
    "link": "URL or entry link",
    "code": "Code editor",
    "color": "Color picker",
    "yaml": "Raw YAML",
    "section": "Visual section heading",
}

# Blueprint type -> namespace root; collections and taxonomies nest by handle
NAMESPACES = {
    "collections": "collections",
    "taxonomies": "taxonomies",
    "globals": "globals",
    "forms": "forms",
    "assets": "assets",
    "users": "user",
}
_FIELD_HANDLE = re.compile(r"^[a-z][a-z0-9_]*$")
RESERVED_FIELD_HANDLES = frozenset({"id", "content_type", "elseif", "endif", "if", "unless", "length", "value"})


def blueprint_namespace(resource_type: str, parent: Optional[str]) -> str:
    root = NAMESPACES[resource_type]
    if resource_type in ("collections", "taxonomies"):
        if not parent:
            raise InvalidArgumentError(
                f"Missing required parameter: namespace ({resource_type[:-1]} handle)",
                details={"field": "namespace"},
            )
        return f"{root}.{require_handle(parent, 'namespace')}"
    return root


def generate_blueprint(title: str, fields: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Blueprint contents with every field in one ``main`` tab."""
    entries = []
    for item in fields:
        if not isinstance(item, dict) or not item.get("handle"):
            raise InvalidArgumentError("Each field needs a handle", details={"field": item})
        config = {"type": item.get("type", "text"), "display": item.get("display") or item["handle"].replace("_", " ").title()}
        if item.get("required"):
            config["validate"] = ["required"]
        for key, value in item.items():
            if key not in ("handle", "type", "display", "required"):
                config[key] = value
        entries.append({"handle": item["handle"], "field": config})
    return {"title": title, "tabs": {"main": {"display": "Main", "sections": [{"fields": entries}]}}}


def validate_blueprint(contents: Dict[str, Any]) -> Dict[str, Any]:
    errors: List[str] = []
    warnings: List[str] = []
    if not contents.get("title"):
        warnings.append("Blueprint has no title")

    seen: Counter = Counter()
    raw_fields = _raw_fields(contents)
    if not raw_fields:
        warnings.append("Blueprint defines no fields")
    for item in raw_fields:
        handle = item.get("handle")
        if not handle:
            errors.append("Field without a handle")
            continue
        seen[handle] += 1
        if not _FIELD_HANDLE.match(str(handle)):
            errors.append(f"Field handle '{handle}' must be snake_case")
        if handle in RESERVED_FIELD_HANDLES:
            errors.append(f"Field handle '{handle}' is reserved")
        config = item.get("field")
        if isinstance(config, dict):
            field_type = config.get("type")
            if not field_type:
                errors.append(f"Field '{handle}' has no type")
            elif field_type not in FIELD_TYPES:
                warnings.append(f"Field '{handle}' uses unknown type '{field_type}'")
        elif not isinstance(config, str):  # string references an imported fieldset field
            errors.append(f"Field '{handle}' has no configuration")
    for handle, count in seen.items():
        if count > 1:
            errors.append(f"Field handle '{handle}' is used {count} times")
    return {"valid": not errors, "errors": errors, "warnings": warnings, "field_count": len(raw_fields)}


def _raw_fields(contents: Dict[str, Any]) -> List[Dict[str, Any]]:
    fields: List[Dict[str, Any]] = []
    containers: List[Any] = []
    for key in ("tabs", "sections"):
        value = contents.get(key) or {}
        containers.extend(value.values() if isinstance(value, dict) else value)
    for container in containers:
        if not isinstance(container, dict):
            continue
        fields.extend(f for f in container.get("fields", []) or [] if isinstance(f, dict))
        for section in container.get("sections", []) or []:
            if isinstance(section, dict):
                fields.extend(f for f in section.get("fields", []) or [] if isinstance(f, dict))
    if isinstance(contents.get("fields"), list):
        fields.extend(f for f in contents["fields"] if isinstance(f, dict))
    return fields


def summarize_blueprint(blueprint: Dict[str, Any]) -> Dict[str, Any]:
    fields = normalize_blueprint_fields(blueprint) or {}
    return {
        "handle": blueprint.get("handle"),
        "namespace": blueprint.get("namespace"),
        "title": blueprint.get("title") or blueprint.get("handle"),
        "field_count": len(fields),
        "fields": {handle: (config or {}).get("type", "text") for handle, config in fields.items()},
    }


class BlueprintsRouter(BaseRouter):
    domain = "blueprints"
    actions = (
        ActionSpec("list", "List blueprints", "Browse blueprints, optionally by type", optional=("type", "namespace"),
                   requires_type=False, examples=({"action": "list", "type": "collections"},)),
        ActionSpec("get", "Get a blueprint", "Inspect fields and configuration", required=("handle",),
                   optional=("namespace",),
                   examples=({"action": "get", "type": "collections", "namespace": "blog", "handle": "article"},)),
        ActionSpec("create", "Create a blueprint", "Define a new content schema", required=("handle",),
                   optional=("namespace", "data", "fields", "title"),
                   risks=("Entries using a new blueprint are validated against its fields",)),
        ActionSpec("update", "Update a blueprint", "Change fields or settings", required=("handle", "data"),
                   optional=("namespace",),
                   risks=("Removing or retyping fields can orphan existing content values",)),
        ActionSpec("delete", "Delete a blueprint", "Remove an unused schema", required=("handle",),
                   optional=("namespace",),
                   risks=("Content using this blueprint falls back to the default blueprint",)),
        ActionSpec("scan", "Scan all blueprint files", "Field inventory across the site", requires_type=False),
        ActionSpec("generate", "Generate blueprint YAML", "Draft a blueprint from a field list",
                   required=("fields",), optional=("title",), requires_type=False,
                   examples=({"action": "generate", "title": "Article",
                              "fields": [{"handle": "title", "type": "text", "required": True}]},)),
        ActionSpec("types", "List field types", "Pick field types for new fields", requires_type=False),
        ActionSpec("validate", "Validate a blueprint", "Check a blueprint before saving",
                   optional=("handle", "namespace", "data"), requires_type=False),
    )
    types = (
        TypeSpec("collections", "Entry blueprints, namespaced by collection", ("title", "tabs"), ("collection",)),
        TypeSpec("taxonomies", "Term blueprints, namespaced by taxonomy", ("title", "tabs"), ("taxonomy",)),
        TypeSpec("globals", "Global set blueprints", ("title", "tabs")),
        TypeSpec("forms", "Form field blueprints", ("title", "tabs")),
        TypeSpec("assets", "Asset container meta blueprints", ("title", "tabs")),
        TypeSpec("users", "The user blueprint", ("title", "tabs")),
    )
    router_arguments = (
        ArgumentSpec("handle", "string", "Blueprint handle"),
        ArgumentSpec("namespace", "string", "Collection or taxonomy handle for namespaced blueprints"),
        ArgumentSpec("title", "string", "Blueprint title"),
        ArgumentSpec("data", "object", "Blueprint contents (title, tabs)"),
        ArgumentSpec("fields", "array", "Field list: [{handle, type, display, required}]"),
        ArgumentSpec("include_fields", "boolean", "Include field details in list results"),
    )
    features = ("blueprint CRUD", "mtime-cached site scan", "blueprint generation", "structure validation")
    primary_use = "Design and inspect the content schemas that entries, terms and globals use"
    decision_tree = {
        "need field names for a template": "get",
        "overview of all schemas": "scan",
        "new content type": "generate, then create",
    }
    related_tools = ("statamic-content", "statamic-structures", "statamic.development.antlers_validate")
    common_patterns = {
        "inspect": {"action": "get", "type": "collections", "namespace": "blog", "handle": "article"},
        "scan": {"action": "scan"},
    }

    def _namespace(self, arguments: Dict[str, Any]) -> str:
        return blueprint_namespace(arguments["type"], arguments.get("namespace"))

    def action_list(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        namespace = None
        if arguments.get("type"):
            namespace = NAMESPACES[arguments["type"]]
            if arguments.get("namespace"):
                namespace = self._namespace(arguments)
        blueprints = self.require_store().list_blueprints(namespace)
        if get_bool(arguments, "include_fields"):
            items = [summarize_blueprint(bp) for bp in blueprints]
        else:
            items = [{"handle": bp["handle"], "namespace": bp["namespace"], "title": bp.get("title")} for bp in blueprints]
        return {"blueprints": items, "total": len(items)}

    def action_get(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        blueprint = self.require_store().get_blueprint(self._namespace(arguments), require_handle(arguments["handle"]))
        return {"blueprint": blueprint, "summary": summarize_blueprint(blueprint)}

    def action_create(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        handle = require_handle(arguments["handle"])
        if arguments.get("fields"):
            contents = generate_blueprint(arguments.get("title") or handle.replace("_", " ").title(), arguments["fields"])
        else:
            contents = dict(arguments.get("data") or {})
            contents.setdefault("title", arguments.get("title") or handle.replace("_", " ").title())
        report = validate_blueprint(contents)
        if not report["valid"]:
            raise InvalidArgumentError("Blueprint is invalid", details={"validation": report})
        blueprint = self.require_store().create_blueprint(self._namespace(arguments), handle, contents)
        return {"blueprint": blueprint, "created": True}

    def action_update(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        namespace = self._namespace(arguments)
        handle = require_handle(arguments["handle"])
        store = self.require_store()
        merged = {**store.get_blueprint(namespace, handle), **arguments["data"]}
        report = validate_blueprint(merged)
        if not report["valid"]:
            raise InvalidArgumentError("Blueprint is invalid", details={"validation": report})
        return {"blueprint": store.update_blueprint(namespace, handle, arguments["data"]), "updated": True}

    def action_delete(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        namespace = self._namespace(arguments)
        handle = require_handle(arguments["handle"])
        self.require_store().delete_blueprint(namespace, handle)
        return {"deleted": True, "handle": handle, "namespace": namespace}

    def action_scan(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        files = store.blueprint_files()
        cached = self.cache.get_cached_blueprint_scan(self.name, files) if files else None
        if cached is not None:
            return {**cached, "cached": True}

        summaries = [summarize_blueprint(bp) for bp in store.list_blueprints()]
        field_types: Counter = Counter()
        for summary in summaries:
            field_types.update(summary["fields"].values())
        result = {
            "blueprints": summaries,
            "total": len(summaries),
            "field_types": dict(field_types),
        }
        if files:
            self.cache.cache_blueprint_scan(self.name, result, files)
        return {**result, "cached": False}

    def action_generate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        contents = generate_blueprint(arguments.get("title") or "Untitled", arguments["fields"])
        return {
            "blueprint": contents,
            "yaml": yaml.safe_dump(contents, sort_keys=False),
            "validation": validate_blueprint(contents),
        }

    def action_types(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return {"field_types": dict(FIELD_TYPES), "total": len(FIELD_TYPES)}

    def action_validate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        if arguments.get("data"):
            return validate_blueprint(arguments["data"])
        require_arguments(arguments, ["type", "handle"])
        blueprint = self.require_store().get_blueprint(self._namespace(arguments), require_handle(arguments["handle"]))
        return validate_blueprint(blueprint)


def register_blueprints_router(mcp: FastMCP, router: BlueprintsRouter) -> None:
    """Register the consolidated blueprints tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_blueprints(
        action: str,
        type: Optional[str] = None,
        handle: Optional[str] = None,
        namespace: Optional[str] = None,
        title: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        fields: Optional[List[Dict[str, Any]]] = None,
        include_fields: Optional[bool] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Manage blueprints via the `action` parameter."""
        return router.execute(compact(
            action=action, type=type, handle=handle, namespace=namespace, title=title, data=data,
            fields=fields, include_fields=include_fields, help_topic=help_topic, dry_run=dry_run,
            confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
