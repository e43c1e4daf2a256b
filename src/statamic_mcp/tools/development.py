"""Single-purpose development tools: Antlers validation and Blade linting."""

import logging
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from statamic_mcp.antlers import AntlersValidator, BladeLinter
from statamic_mcp.core.errors import InvalidArgumentError
from statamic_mcp.core.naming import canonical_tool
from statamic_mcp.store.base import ContentStore
from statamic_mcp.tools.base import ArgumentSpec, BaseTool, compact, get_bool

logger = logging.getLogger(__name__)

MAX_TEMPLATE_LENGTH = 500_000


def _check_template(template: str) -> None:
    if len(template) > MAX_TEMPLATE_LENGTH:
        raise InvalidArgumentError(
            f"Template exceeds {MAX_TEMPLATE_LENGTH} characters",
            details={"field": "template", "length": len(template)},
        )


class AntlersValidateTool(BaseTool):
    name = "statamic.development.antlers_validate"
    description = (
        "Validate an Antlers template: tag pairing, unknown tags and modifiers, "
        "required tag parameters and blueprint field usage."
    )
    domain = "development"
    arguments = (
        ArgumentSpec("template", "string", "Antlers template source", required=True),
        ArgumentSpec("blueprint", "object", "Blueprint or {handle: config} field map to check variables against"),
        ArgumentSpec("blueprint_handle", "string", "Load the blueprint from the site instead"),
        ArgumentSpec("blueprint_namespace", "string", "Namespace of blueprint_handle, e.g. collections.blog"),
        ArgumentSpec("strict", "boolean", "Treat warnings as errors", default=False),
        ArgumentSpec("include_tree", "boolean", "Include the parsed tag tree", default=False),
    )

    def __init__(self, store: Optional[ContentStore] = None, *, validator: Optional[AntlersValidator] = None,
                 **kwargs: Any):
        super().__init__(**kwargs)
        self.store = store
        self.validator = validator or AntlersValidator()

    def _blueprint(self, arguments: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if arguments.get("blueprint") is not None:
            return arguments["blueprint"]
        handle = arguments.get("blueprint_handle")
        if not handle:
            return None
        namespace = arguments.get("blueprint_namespace")
        if not namespace:
            raise InvalidArgumentError(
                "Missing required parameter: blueprint_namespace",
                details={"field": "blueprint_namespace"},
            )
        if self.store is None:
            raise InvalidArgumentError("No content store is configured to load blueprints from")
        return self.store.get_blueprint(namespace, handle)

    def handle(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        template = arguments["template"]
        _check_template(template)
        return self.validator.validate(
            template,
            blueprint=self._blueprint(arguments),
            strict=get_bool(arguments, "strict"),
            include_tree=get_bool(arguments, "include_tree"),
        )


class BladeLintTool(BaseTool):
    name = "statamic.development.blade_lint"
    description = "Lint a Blade template against Statamic conventions: no inline PHP, facades or queries in views."
    domain = "development"
    arguments = (
        ArgumentSpec("template", "string", "Blade template source", required=True),
        ArgumentSpec("strict_mode", "boolean", "Add stricter checks and treat warnings as errors", default=False),
        ArgumentSpec("policy", "object", "Override the default lint policy"),
    )

    def handle(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        template = arguments["template"]
        _check_template(template)
        linter = BladeLinter(policy=arguments.get("policy"), strict=get_bool(arguments, "strict_mode"))
        return linter.lint(template)


def register_antlers_validate_tool(mcp: FastMCP, tool: AntlersValidateTool) -> None:
    """Register the Antlers validation tool."""

    @canonical_tool(mcp, canonical_name=tool.name, description=tool.description)
    def antlers_validate(
        template: str,
        blueprint: Optional[Dict[str, Any]] = None,
        blueprint_handle: Optional[str] = None,
        blueprint_namespace: Optional[str] = None,
        strict: bool = False,
        include_tree: bool = False,
    ) -> dict:
        """Validate an Antlers template."""
        return tool.execute(compact(
            template=template, blueprint=blueprint, blueprint_handle=blueprint_handle,
            blueprint_namespace=blueprint_namespace, strict=strict, include_tree=include_tree,
        ))

    logger.debug("Registered %s", tool.name)


def register_blade_lint_tool(mcp: FastMCP, tool: BladeLintTool) -> None:
    """Register the Blade lint tool."""

    @canonical_tool(mcp, canonical_name=tool.name, description=tool.description)
    def blade_lint(
        template: str,
        strict_mode: bool = False,
        policy: Optional[Dict[str, Any]] = None,
    ) -> dict:
        """Lint a Blade template."""
        return tool.execute(compact(template=template, strict_mode=strict_mode, policy=policy))

    logger.debug("Registered %s", tool.name)
