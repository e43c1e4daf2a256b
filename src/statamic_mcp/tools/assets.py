"""Assets router: asset containers and the files inside them."""

import base64
import binascii
import logging
import posixpath
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.core.errors import ErrorCode, InvalidArgumentError, SecurityViolationError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.security import (
    contains_suspicious_patterns,
    require_handle,
    sanitize_filename,
    validate_file_extension,
)
from statamic_mcp.tools.base import ArgumentSpec, compact, require_arguments
from statamic_mcp.tools.router import ActionSpec, BaseRouter, TypeSpec

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = (
    "jpg", "jpeg", "png", "gif", "webp", "svg", "avif",
    "pdf", "txt", "csv", "json", "md",
    "mp3", "mp4", "webm", "mov", "zip",
)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024

CONTAINER_ACTIONS = ("list", "get", "create", "delete")


def clean_asset_path(value: Any, field: str = "path") -> str:
    """Normalize a container-relative asset path.

    Raises:
        InvalidArgumentError: empty path
        SecurityViolationError: traversal sequences
    """
    if not isinstance(value, str) or not value.strip("/ "):
        raise InvalidArgumentError(f"Missing required parameter: {field}", details={"field": field})
    if contains_suspicious_patterns(value) or ".." in value.split("/"):
        raise SecurityViolationError(
            f"Path traversal attempt detected: {value}", code=ErrorCode.PATH_TRAVERSAL
        )
    return posixpath.normpath(value.strip().lstrip("/"))


def decode_content(content: str, encoding: str) -> bytes:
    if encoding == "base64":
        try:
            return base64.b64decode(content, validate=True)
        except (binascii.Error, ValueError):
            raise InvalidArgumentError("Content is not valid base64", details={"field": "content"}) from None
    return content.encode("utf-8")


class AssetsRouter(BaseRouter):
    domain = "assets"
    actions = (
        ActionSpec("list", "List containers or assets", "Browse asset containers and their files",
                   examples=({"action": "list", "type": "asset", "container": "assets"},)),
        ActionSpec("get", "Get one container or asset", "Read metadata",
                   examples=({"action": "get", "type": "asset", "container": "assets", "path": "img/hero.jpg"},)),
        ActionSpec("create", "Create a container or upload an asset", "Add files or containers",
                   optional=("container", "path", "content", "encoding", "meta", "handle"),
                   examples=({"action": "create", "type": "asset", "container": "assets", "path": "notes/readme.txt",
                              "content": "Hello", "confirm": True},)),
        ActionSpec("update", "Update asset metadata", "Set alt text, focus points and other meta",
                   required=("container", "path", "meta"), requires_type=False),
        ActionSpec("delete", "Delete a container or asset", "Remove files or containers",
                   risks=("Deleting a container removes every asset inside it",
                          "Entries referencing the asset keep a dangling path")),
        ActionSpec("move", "Move an asset", "Relocate an asset within its container",
                   required=("container", "path", "destination"), requires_type=False,
                   risks=("Entries referencing the old path are not rewritten",)),
        ActionSpec("copy", "Copy an asset", "Duplicate an asset within its container",
                   required=("container", "path", "destination"), requires_type=False, mutates=True),
        ActionSpec("rename", "Rename an asset", "Change an asset's filename in place",
                   required=("container", "path", "new_name"), requires_type=False,
                   risks=("Entries referencing the old filename are not rewritten",)),
    )
    types = (
        TypeSpec("container", "Asset containers (disks)", ("handle", "title", "disk"), ("assets", "blueprints"),
                 ({"type": "container", "handle": "assets"},)),
        TypeSpec("asset", "Files in a container", ("container", "path", "size", "meta"), ("container",),
                 ({"type": "asset", "container": "assets", "path": "img/hero.jpg"},)),
    )
    router_arguments = (
        ArgumentSpec("container", "string", "Asset container handle"),
        ArgumentSpec("handle", "string", "Container handle for container actions"),
        ArgumentSpec("title", "string", "Container title"),
        ArgumentSpec("path", "string", "Asset path inside the container"),
        ArgumentSpec("destination", "string", "Target path for move or copy"),
        ArgumentSpec("new_name", "string", "New filename for rename"),
        ArgumentSpec("content", "string", "File content for upload"),
        ArgumentSpec("encoding", "string", "Content encoding", default="utf-8", enum=("utf-8", "base64")),
        ArgumentSpec("meta", "object", "Asset metadata such as alt or focus"),
        ArgumentSpec("config", "object", "Container configuration"),
    )
    features = ("container management", "uploads", "metadata editing", "move, copy and rename")
    primary_use = "Manage images, documents and other files referenced by content"
    decision_tree = {
        "new storage location": "type=container, action=create",
        "upload a file": "type=asset, action=create",
        "alt text": "action=update with meta",
    }
    context_awareness = {
        "uploads": f"Allowed extensions: {', '.join(ALLOWED_EXTENSIONS)}",
        "binary_files": "Send encoding=base64 for non-text content",
    }
    workflow_integration = {
        "replace_image": ["assets create new file", "content update entry field", "assets delete old file"],
    }
    related_tools = ("statamic-content", "statamic-blueprints")
    common_patterns = {
        "list_assets": {"action": "list", "type": "asset", "container": "assets"},
        "set_alt": {"action": "update", "container": "assets", "path": "img/hero.jpg",
                    "meta": {"alt": "Hero image"}, "confirm": True},
    }

    def describe_target(self, arguments: Dict[str, Any]) -> str:
        if arguments.get("path"):
            return f"asset '{arguments['path']}' in {arguments.get('container', '?')}"
        return super().describe_target(arguments)

    def _is_container(self, arguments: Dict[str, Any]) -> bool:
        if arguments.get("type") != "container":
            return False
        if arguments["action"] not in CONTAINER_ACTIONS:
            raise InvalidArgumentError(
                f"Action '{arguments['action']}' is not supported for type 'container'",
                details={"type": "container", "supported_actions": list(CONTAINER_ACTIONS)},
            )
        return True

    def action_list(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_container(arguments):
            items = store.list_asset_containers()
        else:
            require_arguments(arguments, ["container"])
            items = store.list_assets(arguments["container"])
        return {"items": items, "count": len(items)}

    def action_get(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_container(arguments):
            require_arguments(arguments, ["handle"])
            return {"container": store.get_asset_container(arguments["handle"])}
        require_arguments(arguments, ["container"])
        return {"asset": store.get_asset(arguments["container"], clean_asset_path(arguments.get("path")))}

    def action_create(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_container(arguments):
            handle = require_handle(arguments.get("handle"))
            config = dict(arguments.get("config") or {})
            config.setdefault("title", arguments.get("title") or handle.replace("_", " ").title())
            config.setdefault("disk", handle)
            return {"container": store.create_asset_container(handle, config), "created": True}

        require_arguments(arguments, ["container", "content"])
        path = clean_asset_path(arguments.get("path"))
        validate_file_extension(path, ALLOWED_EXTENSIONS)
        content = decode_content(arguments["content"], arguments.get("encoding", "utf-8"))
        if len(content) > MAX_UPLOAD_BYTES:
            raise InvalidArgumentError(
                f"File exceeds the {MAX_UPLOAD_BYTES // (1024 * 1024)} MB upload limit",
                details={"size": len(content)},
            )
        asset = store.create_asset(arguments["container"], path, content, arguments.get("meta"))
        return {"asset": asset, "created": True}

    def action_update(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = clean_asset_path(arguments["path"])
        asset = self.require_store().update_asset(arguments["container"], path, arguments["meta"])
        return {"asset": asset, "updated": True}

    def action_delete(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_container(arguments):
            require_arguments(arguments, ["handle"])
            store.delete_asset_container(arguments["handle"])
            return {"deleted": True, "container": arguments["handle"]}
        require_arguments(arguments, ["container"])
        path = clean_asset_path(arguments.get("path"))
        store.delete_asset(arguments["container"], path)
        return {"deleted": True, "container": arguments["container"], "path": path}

    def _relocate(self, arguments: Dict[str, Any], copy: bool) -> Dict[str, Any]:
        path = clean_asset_path(arguments["path"])
        destination = clean_asset_path(arguments["destination"], "destination")
        validate_file_extension(destination, ALLOWED_EXTENSIONS)
        store = self.require_store()
        relocate = store.copy_asset if copy else store.move_asset
        asset = relocate(arguments["container"], path, destination)
        return {"asset": asset, "from": path, "to": destination}

    def action_move(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._relocate(arguments, copy=False)

    def action_copy(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._relocate(arguments, copy=True)

    def action_rename(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = clean_asset_path(arguments["path"])
        new_name = sanitize_filename(arguments["new_name"])
        validate_file_extension(new_name, ALLOWED_EXTENSIONS)
        folder = posixpath.dirname(path)
        destination = posixpath.join(folder, new_name) if folder else new_name
        asset = self.require_store().move_asset(arguments["container"], path, destination)
        return {"asset": asset, "from": path, "to": destination}


def register_assets_router(mcp: FastMCP, router: AssetsRouter) -> None:
    """Register the consolidated assets tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_assets(
        action: str,
        type: Optional[str] = None,
        container: Optional[str] = None,
        handle: Optional[str] = None,
        title: Optional[str] = None,
        path: Optional[str] = None,
        destination: Optional[str] = None,
        new_name: Optional[str] = None,
        content: Optional[str] = None,
        encoding: Optional[str] = None,
        meta: Optional[Dict[str, Any]] = None,
        config: Optional[Dict[str, Any]] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Manage asset containers and files via the `action` parameter."""
        return router.execute(compact(
            action=action, type=type, container=container, handle=handle, title=title, path=path,
            destination=destination, new_name=new_name, content=content, encoding=encoding, meta=meta,
            config=config, help_topic=help_topic, dry_run=dry_run, confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
