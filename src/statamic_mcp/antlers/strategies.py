"""
Validation strategies for Antlers templates.

A strategy decides whether it applies to a validation context and, when it
does, returns finding dicts with ``severity`` set to ``error`` or
``warning``. New checks are added by appending a strategy to the list the
validator runs.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from statamic_mcp.antlers.parser import CONDITIONAL, VARIABLE, ParseResult, Tag

KNOWN_TAGS = frozenset({
    "collection", "taxonomy", "nav", "form", "glide", "partial", "section", "yield",
    "if", "elseif", "else", "unless", "foreach", "for", "while", "user",
    "users", "entries", "assets", "terms", "redirect", "layout",
})

KNOWN_MODIFIERS = frozenset({
    "format", "markdown", "strip_tags", "truncate", "upper", "lower", "title",
    "slugify", "relative", "count", "length", "first", "last", "limit",
    "offset", "sort_by", "group_by", "where", "pluck", "unique", "reverse",
    "shuffle", "sum", "average", "min", "max", "join", "split", "replace",
    "contains", "starts_with", "ends_with", "trim", "ltrim", "rtrim",
    "urlencode", "urldecode", "json", "to_json", "from_json", "base64_encode",
    "base64_decode", "md5", "sha1", "sha256", "is_past", "is_future",
    "is_today", "is_yesterday", "is_tomorrow", "add_query_param", "remove_query_param",
    "nl2br", "widont", "raw", "entities", "sanitize", "ucfirst", "word_count",
})

# Tag -> (required, optional). A parameter in ``alternatives`` satisfies the
# requirement when the tag is namespaced (``collection:blog`` implies ``from``).
TAG_PARAMETERS: Dict[str, Dict[str, Sequence[str]]] = {
    "collection": {
        "required": ("from",),
        "optional": (
            "limit", "offset", "sort", "filter", "paginate", "as", "site", "taxonomy",
            "show_future", "show_past", "since", "until", "scope", "query_scope", "not_from",
        ),
    },
    "taxonomy": {
        "required": ("from",),
        "optional": ("limit", "offset", "sort", "collection", "min_count", "as", "site"),
    },
    "glide": {
        "required": ("src",),
        "optional": (
            "width", "height", "quality", "format", "fit", "crop", "w", "h", "q",
            "fm", "blur", "filter", "dpr", "absolute", "tag", "alt", "class",
        ),
    },
}

FIELD_TYPE_MODIFIERS = {
    "text": {"upper", "lower", "title", "truncate", "strip_tags", "contains", "starts_with", "ends_with"},
    "textarea": {"markdown", "strip_tags", "truncate", "nl2br"},
    "markdown": {"markdown", "strip_tags", "truncate"},
    "date": {"format", "relative", "is_past", "is_future", "is_today"},
    "integer": {"format", "sum", "average", "min", "max"},
    "float": {"format", "sum", "average", "min", "max"},
    "assets": {"count", "first", "last", "limit", "offset"},
    "entries": {"count", "first", "last", "limit", "offset", "sort_by", "where"},
    "taxonomy": {"count", "first", "last", "pluck"},
}
UNIVERSAL_MODIFIERS = {"count", "length", "first", "last"}

# Variables every Statamic view has regardless of blueprint
SYSTEM_VARIABLES = frozenset({
    "id", "title", "slug", "url", "uri", "permalink", "date", "content", "site",
    "current_url", "current_uri", "now", "today", "csrf_token", "csrf_field",
    "environment", "config", "segment_1", "segment_2", "segment_3", "locale",
    "homepage", "is_homepage", "logged_in", "current_user", "collection",
    "blueprint", "published", "status", "last_modified", "updated_at", "updated_by",
})

MAX_SUGGESTIONS = 3
MAX_DISTANCE = 2


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + (ca != cb)))
        previous = current
    return previous[-1]


def similar(name: str, candidates, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Candidates within edit distance 2, closest first."""
    scored = sorted(
        (levenshtein(name, c), c) for c in candidates if levenshtein(name, c) <= MAX_DISTANCE
    )
    return [c for _, c in scored[:limit]]


@dataclass
class ValidationContext:
    template: str
    parsed: ParseResult
    blueprint_fields: Optional[Dict[str, Dict[str, Any]]] = None
    strict: bool = False


def finding(tag: Optional[Tag], code: str, message: str, severity: str, type_: str, **extra) -> Dict[str, Any]:
    data = {
        "type": type_,
        "code": code,
        "message": message,
        "line": tag.line if tag else None,
        "column": tag.column if tag else None,
        "severity": severity,
    }
    data.update(extra)
    return data


class ValidationStrategy:
    """Base class for pluggable template checks."""

    name = "base"

    def applies(self, ctx: ValidationContext) -> bool:
        return True

    def validate(self, ctx: ValidationContext) -> List[Dict[str, Any]]:
        raise NotImplementedError


class SyntaxStrategy(ValidationStrategy):
    """Tokenizer and pairing issues plus quote balance per tag."""

    name = "syntax_validation"

    def applies(self, ctx: ValidationContext) -> bool:
        return isinstance(ctx.template, str)

    def validate(self, ctx: ValidationContext) -> List[Dict[str, Any]]:
        results = [issue.to_dict() for issue in ctx.parsed.issues]
        for tag in ctx.parsed.tags:
            for quote, label in (("'", "single"), ('"', "double")):
                if tag.content.count(quote) % 2:
                    results.append(finding(
                        tag, "unmatched_quotes", f"Unmatched {label} quotes in Antlers tag",
                        "error", "syntax_error",
                    ))
        return results


class TagStrategy(ValidationStrategy):
    """Unknown tags and modifiers, tag parameter checks."""

    name = "tag_validation"

    def applies(self, ctx: ValidationContext) -> bool:
        return bool(ctx.parsed.tags)

    def validate(self, ctx: ValidationContext) -> List[Dict[str, Any]]:
        fields = ctx.blueprint_fields or {}
        results: List[Dict[str, Any]] = []
        for tag in ctx.parsed.tags:
            if tag.closing:
                continue
            if tag.name in KNOWN_TAGS:
                results.extend(self._check_parameters(tag))
            elif tag.namespace is not None:
                # Namespaced tags from addons are valid; only flag likely typos
                suggestions = similar(tag.name, KNOWN_TAGS)
                if suggestions and tag.name not in fields:
                    results.append(finding(
                        tag, "unknown_tag", f"Unknown tag or variable: '{tag.name}'",
                        "warning", "unknown_tag", suggestions=suggestions,
                    ))
            elif tag.kind == VARIABLE and tag.name not in fields and tag.name not in SYSTEM_VARIABLES:
                suggestions = similar(tag.name, KNOWN_TAGS)
                if suggestions:
                    results.append(finding(
                        tag, "unknown_tag", f"Unknown tag or variable: '{tag.name}'",
                        "warning", "unknown_tag", suggestions=suggestions,
                    ))

            for modifier in tag.modifiers:
                if modifier not in KNOWN_MODIFIERS:
                    results.append(finding(
                        tag, "unknown_modifier", f"Unknown modifier: '{modifier}'",
                        "warning", "unknown_modifier", suggestions=similar(modifier, KNOWN_MODIFIERS),
                    ))
        return results

    def _check_parameters(self, tag: Tag) -> List[Dict[str, Any]]:
        spec = TAG_PARAMETERS.get(tag.name)
        if spec is None or tag.kind == CONDITIONAL:
            return []
        results = []
        if tag.namespace is None:
            for required in spec["required"]:
                if required not in tag.params:
                    results.append(finding(
                        tag, "missing_required_parameter",
                        f"Required parameter '{required}' is missing for tag '{tag.name}'",
                        "error", "missing_parameter",
                    ))
        valid = set(spec["required"]) | set(spec["optional"])
        for param in tag.params:
            # field conditions such as title:contains="x"
            if ":" in param or param in valid:
                continue
            results.append(finding(
                tag, "unknown_parameter", f"Unknown parameter '{param}' for tag '{tag.name}'",
                "warning", "unknown_parameter", suggestions=similar(param, valid),
            ))
        return results


class BlueprintFieldStrategy(ValidationStrategy):
    """Top-level variables checked against the supplied blueprint fields."""

    name = "blueprint_field_validation"

    def applies(self, ctx: ValidationContext) -> bool:
        return ctx.blueprint_fields is not None

    def validate(self, ctx: ValidationContext) -> List[Dict[str, Any]]:
        fields = ctx.blueprint_fields or {}
        results: List[Dict[str, Any]] = []
        for tag in ctx.parsed.tags:
            # Inside loops variables belong to the looped items
            if tag.closing or tag.kind != VARIABLE or tag.depth > 0:
                continue
            if tag.name in KNOWN_TAGS or tag.name in SYSTEM_VARIABLES:
                continue
            field_config = fields.get(tag.name)
            if field_config is None:
                results.append(finding(
                    tag, "unknown_field", f"Variable '{tag.name}' is not a field in the blueprint",
                    "warning", "blueprint_field", suggestions=similar(tag.name, fields),
                ))
                continue
            field_type = (field_config or {}).get("type", "text")
            allowed = FIELD_TYPE_MODIFIERS.get(field_type, set()) | UNIVERSAL_MODIFIERS
            for modifier in tag.modifiers:
                if modifier in KNOWN_MODIFIERS and modifier not in allowed:
                    results.append(finding(
                        tag, "incompatible_modifier",
                        f"Modifier '{modifier}' is not compatible with field type '{field_type}'",
                        "warning", "compatibility_error",
                    ))
        return results


DEFAULT_STRATEGIES = (SyntaxStrategy, TagStrategy, BlueprintFieldStrategy)
