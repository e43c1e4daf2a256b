"""Users router: user accounts and roles."""

import logging
import re
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.core.security import require_handle
from statamic_mcp.tools.base import ArgumentSpec, compact, require_arguments
from statamic_mcp.tools.router import ActionSpec, BaseRouter, TypeSpec

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Never returned to callers
SECRET_USER_FIELDS = frozenset({"password", "password_hash", "remember_token", "api_token"})


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in user.items() if key not in SECRET_USER_FIELDS}


def require_email(value: Any) -> str:
    if not isinstance(value, str) or not _EMAIL.match(value):
        raise InvalidArgumentError(f"Invalid email address: {value}", details={"field": "email"})
    return value.lower()


class UsersRouter(BaseRouter):
    domain = "users"
    actions = (
        ActionSpec("list", "List users or roles", "Browse accounts and permission roles",
                   examples=({"action": "list", "type": "user"},)),
        ActionSpec("get", "Get a user or role", "Read one account or role",
                   examples=({"action": "get", "type": "user", "id": "editor@example.com"},)),
        ActionSpec("create", "Create a user or role", "Add accounts or roles",
                   examples=({"action": "create", "type": "user", "email": "new@example.com",
                              "data": {"name": "New Editor"}, "roles": ["editor"], "dry_run": True},)),
        ActionSpec("update", "Update a user or role", "Change profile data or role permissions",
                   risks=("Permission changes take effect on the user's next request",)),
        ActionSpec("delete", "Delete a user or role", "Remove accounts or roles",
                   risks=("Deleted users lose access immediately",
                          "Entries authored by the user keep a dangling author reference")),
        ActionSpec("activate", "Activate a user", "Allow a user to sign in", required=("id",),
                   requires_type=False, mutates=True),
        ActionSpec("deactivate", "Deactivate a user", "Block a user from signing in", required=("id",),
                   requires_type=False, destructive=True,
                   risks=("The user is signed out and cannot sign in until reactivated",)),
        ActionSpec("assign_role", "Assign a role", "Grant a role to a user", required=("id", "role"),
                   requires_type=False, mutates=True),
        ActionSpec("remove_role", "Remove a role", "Revoke a role from a user", required=("id", "role"),
                   requires_type=False, mutates=True,
                   risks=("The user loses the role's permissions on their next request",)),
    )
    types = (
        TypeSpec("user", "Control panel accounts", ("id", "email", "name", "roles", "super", "status"),
                 ("roles", "entries"), ({"type": "user", "id": "editor@example.com"},)),
        TypeSpec("role", "Permission bundles", ("handle", "title", "permissions"), ("users",),
                 ({"type": "role", "handle": "editor"},)),
    )
    router_arguments = (
        ArgumentSpec("id", "string", "User id or email"),
        ArgumentSpec("email", "string", "Email for a new user"),
        ArgumentSpec("handle", "string", "Role handle"),
        ArgumentSpec("title", "string", "Role title"),
        ArgumentSpec("role", "string", "Role handle for assign_role and remove_role"),
        ArgumentSpec("roles", "array", "Roles for a new user"),
        ArgumentSpec("permissions", "array", "Permissions for a role"),
        ArgumentSpec("data", "object", "User profile fields"),
        ArgumentSpec("super_user", "boolean", "Super user flag"),
    )
    features = ("user CRUD", "role CRUD", "activation", "role assignment", "role removal")
    primary_use = "Manage who can sign in to the control panel and what they can do"
    decision_tree = {
        "new editor": "type=user, action=create",
        "new permission set": "type=role, action=create",
        "lock an account": "action=deactivate",
    }
    context_awareness = {
        "secrets": "Password hashes and tokens are never returned",
        "super_users": "Super users bypass every permission check; grant sparingly",
    }
    workflow_integration = {
        "onboard_editor": ["users create role", "users create user", "users assign_role"],
    }
    related_tools = ("statamic-system",)
    common_patterns = {
        "list_users": {"action": "list", "type": "user"},
        "assign_editor": {"action": "assign_role", "id": "someone@example.com", "role": "editor", "confirm": True},
    }

    def _is_role(self, arguments: Dict[str, Any]) -> bool:
        return arguments.get("type") == "role"

    def action_list(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_role(arguments):
            items = store.list_roles()
        else:
            items = [public_user(user) for user in store.list_users()]
        return {"items": items, "count": len(items)}

    def action_get(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_role(arguments):
            require_arguments(arguments, ["handle"])
            return {"role": store.get_role(arguments["handle"])}
        require_arguments(arguments, ["id"])
        return {"user": public_user(store.get_user(arguments["id"]))}

    def _role_config(self, arguments: Dict[str, Any], handle: str) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        if arguments.get("title") or arguments["action"] == "create":
            config["title"] = arguments.get("title") or handle.replace("_", " ").title()
        if "permissions" in arguments:
            permissions = arguments["permissions"]
            if not isinstance(permissions, list):
                raise InvalidArgumentError("permissions must be a list", details={"field": "permissions"})
            config["permissions"] = [str(p) for p in permissions]
        return config

    def _check_roles(self, roles: List[Any]) -> List[str]:
        store = self.require_store()
        for role in roles:
            store.get_role(str(role))
        return [str(role) for role in roles]

    def action_create(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_role(arguments):
            handle = require_handle(arguments.get("handle"))
            config = self._role_config(arguments, handle)
            config.setdefault("permissions", [])
            return {"role": store.create_role(handle, config), "created": True}

        require_arguments(arguments, ["email"])
        email = require_email(arguments["email"])
        data = {k: v for k, v in dict(arguments.get("data") or {}).items() if k not in SECRET_USER_FIELDS}
        data["roles"] = self._check_roles(arguments.get("roles") or [])
        if "super_user" in arguments:
            data["super"] = bool(arguments["super_user"])
        return {"user": public_user(store.create_user(email, data)), "created": True}

    def action_update(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_role(arguments):
            require_arguments(arguments, ["handle"])
            config = self._role_config(arguments, arguments["handle"])
            return {"role": store.update_role(arguments["handle"], config), "updated": True}

        require_arguments(arguments, ["id"])
        data = {k: v for k, v in dict(arguments.get("data") or {}).items() if k not in SECRET_USER_FIELDS}
        if "roles" in arguments:
            data["roles"] = self._check_roles(arguments["roles"])
        if "super_user" in arguments:
            data["super"] = bool(arguments["super_user"])
        return {"user": public_user(store.update_user(arguments["id"], data)), "updated": True}

    def action_delete(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        if self._is_role(arguments):
            require_arguments(arguments, ["handle"])
            store.delete_role(arguments["handle"])
            return {"deleted": True, "role": arguments["handle"]}
        require_arguments(arguments, ["id"])
        store.delete_user(arguments["id"])
        return {"deleted": True, "user": arguments["id"]}

    def _set_status(self, arguments: Dict[str, Any], status: str) -> Dict[str, Any]:
        user = self.require_store().update_user(arguments["id"], {"status": status})
        return {"user": public_user(user), "status": status}

    def action_activate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._set_status(arguments, "active")

    def action_deactivate(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        return self._set_status(arguments, "inactive")

    def action_assign_role(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        role = self._check_roles([arguments["role"]])[0]
        user = store.get_user(arguments["id"])
        roles = list(user.get("roles") or [])
        already = role in roles
        if not already:
            roles.append(role)
            user = store.update_user(arguments["id"], {"roles": roles})
        return {"user": public_user(user), "role": role, "already_assigned": already}

    def action_remove_role(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        store = self.require_store()
        role = str(arguments["role"])
        user = store.get_user(arguments["id"])
        assigned = role in (user.get("roles") or [])
        if assigned:
            user = store.remove_user_role(arguments["id"], role)
        return {"user": public_user(user), "role": role, "removed": assigned}


def register_users_router(mcp: FastMCP, router: UsersRouter) -> None:
    """Register the consolidated users tool."""

    @canonical_tool(mcp, canonical_name=router.name, description=router.description)
    def statamic_users(
        action: str,
        type: Optional[str] = None,
        id: Optional[str] = None,
        email: Optional[str] = None,
        handle: Optional[str] = None,
        title: Optional[str] = None,
        role: Optional[str] = None,
        roles: Optional[List[str]] = None,
        permissions: Optional[List[str]] = None,
        data: Optional[Dict[str, Any]] = None,
        super_user: Optional[bool] = None,
        help_topic: Optional[str] = None,
        dry_run: Optional[bool] = None,
        confirm: Optional[bool] = None,
    ) -> dict:
        """Manage users and roles via the `action` parameter."""
        return router.execute(compact(
            action=action, type=type, id=id, email=email, handle=handle, title=title, role=role,
            roles=roles, permissions=permissions, data=data, super_user=super_user, help_topic=help_topic,
            dry_run=dry_run, confirm=confirm,
        ))

    logger.debug("Registered %s", router.name)
