"""Tests for the Antlers tokenizer and tree builder."""

from statamic_mcp.antlers.parser import CONDITIONAL, LOOP, NAMESPACED_TAG, VARIABLE, parse


def codes(result):
    return [issue.code for issue in result.issues]


class TestTokenizer:
    """Tag extraction."""

    def test_variable(self):
        """A bare variable is one tag with no issues."""
        result = parse("<h1>{{ title }}</h1>")
        assert [t.name for t in result.tags] == ["title"]
        assert result.tags[0].kind == VARIABLE
        assert result.issues == []

    def test_positions_are_one_based(self):
        """Lines and columns count from one."""
        result = parse("<div>\n  {{ title }}\n</div>")
        assert (result.tags[0].line, result.tags[0].column) == (2, 3)

    def test_namespace_and_params(self):
        """Namespaced tags carry their parameters."""
        tag = parse('{{ collection:blog limit="3" sort=\'date:desc\' paginate }}').tags[0]
        assert tag.name == "collection"
        assert tag.namespace == "blog"
        assert tag.kind == NAMESPACED_TAG
        assert tag.params == {"limit": "3", "sort": "date:desc", "paginate": True}

    def test_modifiers(self):
        """Pipes split modifiers and drop their arguments."""
        tag = parse("{{ title | upper | truncate:20 }}").tags[0]
        assert tag.name == "title"
        assert tag.modifiers == ["upper", "truncate"]

    def test_logical_or_is_not_a_modifier(self):
        """A double pipe inside a condition is an operator."""
        tag = parse("{{ if featured || pinned }}").tags[0]
        assert tag.kind == CONDITIONAL
        assert tag.modifiers == []
        assert tag.params == {}

    def test_loop_kind(self):
        """Loop tags are classified as loops."""
        assert parse("{{ foreach:items }}{{ /foreach:items }}").tags[0].kind == LOOP

    def test_comments_are_skipped(self):
        """Comments are counted, not tokenized."""
        result = parse("{{# {{ ignored }} #}}{{ title }}")
        assert result.comments == 1
        assert [t.name for t in result.tags] == ["title"]

    def test_unclosed_tag(self):
        """A tag without closing braces is reported."""
        assert codes(parse("<p>{{ title</p>")) == ["unclosed_tag"]

    def test_unclosed_comment(self):
        """A comment without its terminator is reported."""
        assert codes(parse("{{# note")) == ["unclosed_comment"]

    def test_nested_tags(self):
        """Braces opened inside a tag are an error."""
        assert "nested_tags" in codes(parse("{{ title {{ slug }} }}"))

    def test_empty_tag(self):
        """Empty tags produce a warning."""
        result = parse("{{ }}")
        assert codes(result) == ["empty_tag"]
        assert result.issues[0].severity == "warning"

    def test_stray_closing_braces(self):
        """Closing braces without an opener are flagged."""
        assert codes(parse("text }} more")) == ["malformed_tag"]


class TestTreeBuilder:
    """Pairing of opening and closing tags."""

    def test_pair_with_children(self):
        """Pair tags hold the tags between them."""
        result = parse("{{ collection:blog }}{{ title }}{{ /collection:blog }}")
        assert result.issues == []
        assert len(result.tree) == 1
        node = result.tree[0]
        assert node.is_pair
        assert [child.tag.name for child in node.children] == ["title"]
        assert result.max_depth == 1

    def test_legacy_endif(self):
        """endif closes an if without a slash."""
        assert parse("{{ if a }}x{{ endif }}").issues == []

    def test_else_does_not_open(self):
        """else branches do not need their own closer."""
        assert parse("{{ if a }}x{{ else }}y{{ /if }}").issues == []

    def test_unclosed_pair(self):
        """An opened pair that never closes is reported."""
        assert codes(parse("{{ if a }}x")) == ["unclosed_tag_pair"]

    def test_unmatched_closing(self):
        """A closer with no opener is reported."""
        assert codes(parse("{{ /collection:blog }}")) == ["unmatched_closing_tag"]

    def test_cross_nesting(self):
        """Closing an outer pair while an inner one is open is reported."""
        result = parse("{{ if a }}{{ foreach:items }}{{ /if }}{{ /foreach:items }}")
        assert codes(result) == ["cross_nested_tags", "unmatched_closing_tag"]

    def test_tree_dict(self):
        """Nodes serialize with their children and closing line."""
        node = parse("{{ nav:main }}\n{{ title }}\n{{ /nav:main }}").tree[0]
        assert node.to_dict() == {
            "tag": "nav:main",
            "line": 1,
            "children": [{"tag": "title", "line": 2}],
            "closed_at": 3,
        }
