"""
Antlers template tokenizer and tree builder.

The tokenizer walks a template once, yielding every ``{{ ... }}`` tag with
its line and column, skipping ``{{# ... #}}`` comments. Each tag's content
is split into name, namespace, parameters, modifiers and a closing flag.
The tree builder then pairs opening and closing tags with a stack so that
unbalanced and cross-nested pairs can be reported.
"""

import bisect
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Tag kinds
CONDITIONAL = "conditional"
LOOP = "loop"
NAMESPACED_TAG = "namespaced_tag"
VARIABLE = "variable"

CONDITIONAL_TAGS = frozenset({"if", "elseif", "else", "unless", "endif", "endunless"})
LOOP_TAGS = frozenset({"foreach", "for", "while"})
PAIR_TAGS = frozenset({
    "if", "unless", "foreach", "for", "while", "collection", "taxonomy",
    "entries", "users", "assets", "terms", "nav", "form", "section",
})
# Legacy closers that end a pair without a leading slash
END_ALIASES = {"endif": "if", "endunless": "unless"}

_PARAM_RE = re.compile(
    r"""(?P<key>[A-Za-z_][\w:.\-]*)\s*=\s*(?:"(?P<dq>[^"]*)"|'(?P<sq>[^']*)'|(?P<bare>[^\s|]+))"""
    r"""|(?P<flag>[A-Za-z_][\w:.\-]*)"""
)


@dataclass
class Tag:
    """One ``{{ ... }}`` occurrence."""

    raw: str  # Full text including delimiters
    content: str  # Text between the delimiters, stripped
    line: int
    column: int
    offset: int
    name: str = ""
    namespace: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    modifiers: List[str] = field(default_factory=list)
    closing: bool = False
    self_closing: bool = False
    kind: str = VARIABLE
    depth: int = 0  # Set by the tree builder

    @property
    def identifier(self) -> str:
        return f"{self.name}:{self.namespace}" if self.namespace else self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "params": dict(self.params),
            "modifiers": list(self.modifiers),
            "closing": self.closing,
            "kind": self.kind,
            "line": self.line,
            "column": self.column,
        }


@dataclass
class Issue:
    """A syntax finding raised while tokenizing or pairing."""

    code: str
    message: str
    line: int
    column: int
    severity: str = "error"
    type: str = "syntax_error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "code": self.code,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "severity": self.severity,
        }


@dataclass
class Node:
    """A tag in the tree; pair tags hold their children and closing tag."""

    tag: Tag
    children: List["Node"] = field(default_factory=list)
    closing_tag: Optional[Tag] = None

    @property
    def is_pair(self) -> bool:
        return self.closing_tag is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"tag": self.tag.identifier, "line": self.tag.line}
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        if self.closing_tag is not None:
            data["closed_at"] = self.closing_tag.line
        return data


@dataclass
class ParseResult:
    tags: List[Tag]
    tree: List[Node]
    issues: List[Issue]
    comments: int = 0

    @property
    def max_depth(self) -> int:
        return max((tag.depth for tag in self.tags), default=0)


class _Positions:
    """Offset -> (line, column) lookup, both 1-based."""

    def __init__(self, text: str):
        self._starts = [0] + [m.end() for m in re.finditer("\n", text)]

    def __call__(self, offset: int):
        index = bisect.bisect_right(self._starts, offset) - 1
        return index + 1, offset - self._starts[index] + 1


def _split_modifiers(content: str) -> List[str]:
    """Split on ``|`` outside quotes (``||`` is an operator, not a pipe)."""
    parts, current, quote = [], [], None
    i = 0
    while i < len(content):
        char = content[i]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == "|":
            if i + 1 < len(content) and content[i + 1] == "|":
                current.append("||")
                i += 2
                continue
            parts.append("".join(current))
            current = []
            i += 1
            continue
        current.append(char)
        i += 1
    parts.append("".join(current))
    return parts


def parse_tag_content(tag: Tag) -> Tag:
    """Fill name, namespace, params, modifiers, closing flag and kind."""
    content = tag.content
    if content.startswith("/"):
        tag.closing = True
        content = content[1:].strip()
    if content.endswith("/"):
        tag.self_closing = True
        content = content[:-1].strip()

    head, *modifiers = _split_modifiers(content)
    tag.modifiers = [m.strip().split(":", 1)[0].strip() for m in modifiers if m.strip()]

    head = head.strip()
    first, _, rest = head.partition(" ")
    name, _, namespace = first.partition(":")
    tag.name = name
    tag.namespace = namespace or None

    if tag.name in END_ALIASES:
        tag.closing = True
        tag.name = END_ALIASES[tag.name]

    if tag.name in CONDITIONAL_TAGS:
        tag.kind = CONDITIONAL
    elif tag.name in LOOP_TAGS:
        tag.kind = LOOP
    elif tag.namespace:
        tag.kind = NAMESPACED_TAG
    else:
        tag.kind = VARIABLE

    # Conditions hold expressions, not parameters
    if tag.kind != CONDITIONAL and rest:
        for match in _PARAM_RE.finditer(rest):
            if match.group("key"):
                value = next(
                    (match.group(g) for g in ("dq", "sq", "bare") if match.group(g) is not None), ""
                )
                tag.params[match.group("key")] = value
            else:
                tag.params[match.group("flag")] = True
    return tag


def tokenize(template: str):
    """Return ``(tags, issues, comment_count)`` for a template string."""
    position = _Positions(template)
    tags: List[Tag] = []
    issues: List[Issue] = []
    comments = 0
    cursor = 0

    while True:
        start = template.find("{{", cursor)
        stray = template.find("}}", cursor, start if start != -1 else len(template))
        if stray != -1:
            line, column = position(stray)
            issues.append(Issue(
                "malformed_tag", "Closing braces '}}' without an opening '{{'", line, column, "warning"
            ))
        if start == -1:
            break
        line, column = position(start)

        if template.startswith("{{#", start):
            end = template.find("#}}", start + 3)
            if end == -1:
                issues.append(Issue("unclosed_comment", "Antlers comment is never closed - missing #}}", line, column))
                break
            comments += 1
            cursor = end + 3
            continue

        end = template.find("}}", start + 2)
        if end == -1:
            issues.append(Issue("unclosed_tag", "Unclosed Antlers tag detected - missing closing }}", line, column))
            break

        inner_open = template.find("{{", start + 2, end)
        if inner_open != -1:
            nested_line, nested_column = position(inner_open)
            issues.append(Issue("nested_tags", "Nested Antlers tags are not allowed", nested_line, nested_column))
            cursor = inner_open
            continue

        raw = template[start:end + 2]
        content = raw[2:-2].strip()
        if not content:
            issues.append(Issue("empty_tag", "Empty Antlers tag found", line, column, "warning"))
        else:
            tags.append(parse_tag_content(Tag(raw=raw, content=content, line=line, column=column, offset=start)))
        cursor = end + 2

    return tags, issues, comments


def _closes(opening: Tag, closing: Tag) -> bool:
    return closing.identifier in (opening.identifier, opening.name)


def build_tree(tags: List[Tag]):
    """Pair tags with a stack. Returns ``(roots, issues)``."""
    closing_ids = {t.identifier for t in tags if t.closing}
    roots: List[Node] = []
    stack: List[Node] = []
    issues: List[Issue] = []

    def attach(node: Node) -> None:
        node.tag.depth = len(stack)
        (stack[-1].children if stack else roots).append(node)

    for tag in tags:
        if not tag.closing:
            node = Node(tag)
            attach(node)
            opens = not tag.self_closing and (
                tag.name in PAIR_TAGS or (tag.namespace is not None and tag.identifier in closing_ids)
            )
            if opens and tag.name not in ("else", "elseif"):
                stack.append(node)
            continue

        match_index = next(
            (i for i in range(len(stack) - 1, -1, -1) if _closes(stack[i].tag, tag)), None
        )
        if match_index is None:
            tag.depth = len(stack)
            issues.append(Issue(
                "unmatched_closing_tag",
                f"Closing tag '{tag.identifier}' has no matching opening tag",
                tag.line, tag.column,
            ))
            continue

        for crossed in reversed(stack[match_index + 1:]):
            issues.append(Issue(
                "cross_nested_tags",
                f"Tag '{crossed.tag.identifier}' opened on line {crossed.tag.line} is still open "
                f"when '{tag.identifier}' closes",
                crossed.tag.line, crossed.tag.column,
            ))
        opener = stack[match_index]
        del stack[match_index:]
        opener.closing_tag = tag
        tag.depth = len(stack)

    for node in stack:
        issues.append(Issue(
            "unclosed_tag_pair",
            f"Opening tag '{node.tag.identifier}' is never closed",
            node.tag.line, node.tag.column,
        ))
    return roots, issues


def parse(template: str) -> ParseResult:
    tags, issues, comments = tokenize(template)
    tree, pairing_issues = build_tree(tags)
    return ParseResult(tags=tags, tree=tree, issues=issues + pairing_issues, comments=comments)
