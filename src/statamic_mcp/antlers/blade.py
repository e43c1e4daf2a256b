"""
Blade policy linter.

Line-oriented checks that keep data fetching and PHP out of views. A policy
mapping controls which rules run; strict mode adds pedantic checks and
promotes every warning to an error.
"""

import copy
import re
from typing import Any, Dict, List, Optional

DEFAULT_POLICY: Dict[str, Any] = {
    "forbid": {
        "inline_php": True,
        "facades": ["Statamic", "DB", "Http", "Cache", "Storage"],
        "models_in_view": True,
    },
    "prefer": {
        "tags": True,
        "components": True,
    },
}

_INLINE_PHP = [
    (re.compile(r"@php(\s|$)"), "@php directive found"),
    (re.compile(r"<\?php"), "PHP opening tag found"),
    (re.compile(r"\?>"), "PHP closing tag found"),
]
_MODEL_CALLS = [
    (re.compile(r"\\App\\Models\\"), "Direct model usage in view"),
    (re.compile(r"Model::"), "Static model method call"),
    (re.compile(r"->where\("), "Query builder usage in view"),
    (re.compile(r"::query\(\)"), "Eloquent query in view"),
]
_DB_CALLS = [
    (re.compile(r"\bDB::"), "Direct database query"),
    (re.compile(r"->select\("), "Raw SQL select"),
    (re.compile(r"->insert\("), "Raw SQL insert"),
    (re.compile(r"->update\("), "Raw SQL update"),
    (re.compile(r"->delete\("), "Raw SQL delete"),
]
_HTTP_CALLS = [
    (re.compile(r"\bHttp::"), "HTTP client usage"),
    (re.compile(r"curl_"), "cURL function usage"),
    (re.compile(r"file_get_contents\("), "file_get_contents for HTTP"),
]
_TAG_ANTIPATTERNS = [
    (re.compile(r"Entry::whereCollection"), "Use <x-statamic:entries> instead of Entry::whereCollection"),
    (re.compile(r"Collection::findByHandle"), "Use <x-statamic:collection> instead of Collection::findByHandle"),
    (re.compile(r"Taxonomy::findByHandle"), "Use <x-statamic:taxonomy> instead of Taxonomy::findByHandle"),
    (re.compile(r"Asset::whereContainer"), "Use <x-statamic:assets> instead of Asset::whereContainer"),
]
_DIRECTIVES = ("if", "unless", "foreach", "forelse", "for", "while", "switch", "section", "push", "component")


class BladeLinter:
    def __init__(self, policy: Optional[Dict[str, Any]] = None, strict: bool = False):
        self.policy = copy.deepcopy(policy if policy is not None else DEFAULT_POLICY)
        self.strict = strict
        self.violations: List[Dict[str, Any]] = []
        self.warnings: List[Dict[str, Any]] = []

    def lint(self, template: str) -> Dict[str, Any]:
        self.violations = []
        self.warnings = []
        lines = template.split("\n")
        for number, line in enumerate(lines, 1):
            self._lint_line(line, number)
        self._check_directives(lines)
        return {
            "ok": not self.violations,
            "violations": self.violations,
            "warnings": self.warnings,
            "stats": {
                "lines_analyzed": len(lines),
                "violation_count": len(self.violations),
                "warning_count": len(self.warnings),
                "strict_mode": self.strict,
            },
        }

    def _add(self, rule: str, message: str, line: int, column: int = 1, severity: str = "error") -> None:
        if severity == "warning" and self.strict:
            severity = "error"
        item = {"rule": rule, "message": message, "line": line, "column": column, "severity": severity}
        (self.violations if severity == "error" else self.warnings).append(item)

    def _scan(self, patterns, line: int, text: str, rule: str, suffix: str, severity: str = "error") -> None:
        for pattern, message in patterns:
            match = pattern.search(text)
            if match:
                self._add(rule, f"{message}{suffix}", line, match.start() + 1, severity)

    def _lint_line(self, text: str, line: int) -> None:
        forbid = self.policy.get("forbid", {})
        prefer = self.policy.get("prefer", {})

        if forbid.get("inline_php"):
            self._scan(_INLINE_PHP, line, text, "inline_php", ". Use Blade components or move logic to controllers.")
        for facade in forbid.get("facades", []):
            escaped = re.escape(facade)
            facade_patterns = [
                (re.compile(rf"\\{escaped}\\Facades\\"), f"Direct {facade} facade call"),
                (re.compile(rf"\\{escaped}\\"), f"{facade} namespace usage"),
                (re.compile(rf"use\s+{escaped}\\"), f"{facade} import statement"),
            ]
            self._scan(facade_patterns, line, text, "facade_call", ". Use Statamic Blade components instead.")
        if forbid.get("models_in_view"):
            self._scan(_MODEL_CALLS, line, text, "models_in_view", ". Move data fetching to controllers or view composers.")
        self._scan(_DB_CALLS, line, text, "database_calls", " in view. Move to controller or service layer.")
        self._scan(_HTTP_CALLS, line, text, "http_calls", " in view. Move HTTP requests to controllers.")
        if prefer.get("tags"):
            self._scan(_TAG_ANTIPATTERNS, line, text, "prefer_statamic_tags", "", "warning")

        match = re.search(r"\{!!\s*\$", text)
        if match:
            self._add(
                "unescaped_output",
                "Unescaped output detected. Ensure content is safe or use {{ }} for auto-escaping.",
                line, match.start() + 1,
            )
        match = re.search(r"<img(?![^>]*alt=)[^>]*>", text)
        if match:
            self._add(
                "missing_alt_text", "Image missing alt attribute. Add alt text for accessibility.",
                line, match.start() + 1, "warning",
            )

        if self.strict:
            match = re.search(r"https?://[^\s\"']+", text)
            if match:
                self._add(
                    "hardcoded_url", "Hardcoded URL found. Consider using config values or relative URLs.",
                    line, match.start() + 1,
                )
            match = re.search(r"\{\{[^}]{50,}\}\}", text)
            if match:
                self._add(
                    "complex_expression", "Complex expression in template. Consider moving logic to controller.",
                    line, match.start() + 1,
                )

    def _check_directives(self, lines: List[str]) -> None:
        open_directives: List[Dict[str, Any]] = []
        for number, text in enumerate(lines, 1):
            for directive in _DIRECTIVES:
                if re.search(rf"@{directive}(?:\s|$|\()", text):
                    open_directives.append({"directive": directive, "line": number})
                if re.search(rf"@end{directive}\b", text):
                    for i in range(len(open_directives) - 1, -1, -1):
                        if open_directives[i]["directive"] == directive:
                            del open_directives[i]
                            break
                    else:
                        self._add(
                            "unmatched_directive",
                            f"Closing @end{directive} without matching @{directive}",
                            number,
                        )
        for item in open_directives:
            self._add("unclosed_directive", f"Unclosed @{item['directive']} directive", item["line"])
