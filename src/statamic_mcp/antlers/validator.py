"""Runs the Antlers validation strategies over a template."""

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from statamic_mcp.antlers.parser import parse
from statamic_mcp.antlers.strategies import DEFAULT_STRATEGIES, ValidationContext, ValidationStrategy

logger = logging.getLogger(__name__)


def normalize_blueprint_fields(blueprint: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Dict[str, Any]]]:
    """Flatten a blueprint (tabs/sections/fields) or a field map to ``{handle: config}``.

    Accepts a plain ``{handle: config}`` mapping, a list of handles, or a
    blueprint record as stored in ``resources/blueprints``.
    """
    if blueprint is None:
        return None
    if isinstance(blueprint, (list, tuple)):
        return {str(handle): {} for handle in blueprint}

    fields: Dict[str, Dict[str, Any]] = {}

    def collect(items: Iterable[Any]) -> None:
        for item in items or []:
            if isinstance(item, dict) and "handle" in item:
                config = item.get("field")
                fields[item["handle"]] = config if isinstance(config, dict) else {}

    if any(key in blueprint for key in ("tabs", "sections", "fields")):
        containers = []
        for key in ("tabs", "sections"):
            value = blueprint.get(key) or {}
            containers.extend(value.values() if isinstance(value, dict) else value)
        for container in containers:
            if not isinstance(container, dict):
                continue
            collect(container.get("fields", []))
            for section in container.get("sections", []) or []:
                if isinstance(section, dict):
                    collect(section.get("fields", []))
        collect(blueprint.get("fields", []) if isinstance(blueprint.get("fields"), list) else [])
        return fields

    return {str(k): (v if isinstance(v, dict) else {}) for k, v in blueprint.items()}


class AntlersValidator:
    """Parse once, then let each applicable strategy report findings."""

    def __init__(self, strategies: Optional[List[ValidationStrategy]] = None):
        self.strategies = strategies if strategies is not None else [cls() for cls in DEFAULT_STRATEGIES]

    def validate(
        self,
        template: str,
        *,
        blueprint: Optional[Mapping[str, Any]] = None,
        strict: bool = False,
        include_tree: bool = False,
    ) -> Dict[str, Any]:
        parsed = parse(template)
        ctx = ValidationContext(
            template=template,
            parsed=parsed,
            blueprint_fields=normalize_blueprint_fields(blueprint),
            strict=strict,
        )

        errors: List[Dict[str, Any]] = []
        warnings: List[Dict[str, Any]] = []
        applied: List[str] = []
        for strategy in self.strategies:
            if not strategy.applies(ctx):
                continue
            applied.append(strategy.name)
            for item in strategy.validate(ctx):
                if item.get("severity") == "error" or (strict and item.get("severity") == "warning"):
                    errors.append(item)
                else:
                    warnings.append(item)

        logger.debug(
            "Validated template: %d tags, %d errors, %d warnings",
            len(parsed.tags), len(errors), len(warnings),
        )
        result: Dict[str, Any] = {
            "valid": not errors,
            "errors": errors,
            "warnings": warnings,
            "stats": {
                "total_errors": len(errors),
                "total_warnings": len(warnings),
                "strategies_applied": applied,
                "tags": len(parsed.tags),
                "comments": parsed.comments,
                "max_depth": parsed.max_depth,
            },
        }
        if include_tree:
            result["tree"] = [node.to_dict() for node in parsed.tree]
        return result
