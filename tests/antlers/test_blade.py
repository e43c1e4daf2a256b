"""Tests for the Blade policy linter."""

from statamic_mcp.antlers import BladeLinter


def rules(items):
    return [item["rule"] for item in items]


class TestBladeLinter:
    """Policy checks over Blade templates."""

    def test_clean_template(self):
        """Plain markup passes."""
        result = BladeLinter().lint("<h1>{{ $title }}</h1>\n@if($show)\n<p>x</p>\n@endif")
        assert result["ok"] is True
        assert result["violations"] == []
        assert result["stats"]["lines_analyzed"] == 4

    def test_inline_php(self):
        """PHP blocks are forbidden by default."""
        result = BladeLinter().lint("@php $x = 1; @endphp")
        assert result["ok"] is False
        assert "inline_php" in rules(result["violations"])

    def test_policy_can_allow_php(self):
        """A policy can switch the PHP rule off."""
        result = BladeLinter(policy={"forbid": {"inline_php": False}}).lint("@php $x = 1; @endphp")
        assert "inline_php" not in rules(result["violations"])

    def test_facade_call(self):
        """Forbidden facades are violations."""
        result = BladeLinter().lint("{{ \\Statamic\\Facades\\Entry::all() }}")
        assert "facade_call" in rules(result["violations"])

    def test_prefer_tags_is_a_warning(self):
        """Query antipatterns are warnings outside strict mode."""
        result = BladeLinter().lint("@foreach(Entry::whereCollection('blog') as $e)\n@endforeach")
        assert rules(result["warnings"]) == ["prefer_statamic_tags"]
        assert result["ok"] is True

    def test_strict_promotes_and_adds_checks(self):
        """Strict mode makes warnings errors and adds pedantic rules."""
        template = "<a href=\"https://example.com\">x</a>\n<img src=\"a.jpg\">"
        relaxed = BladeLinter().lint(template)
        assert relaxed["ok"] is True
        assert rules(relaxed["warnings"]) == ["missing_alt_text"]
        strict = BladeLinter(strict=True).lint(template)
        assert sorted(rules(strict["violations"])) == ["hardcoded_url", "missing_alt_text"]
        assert strict["stats"]["strict_mode"] is True

    def test_unescaped_output(self):
        """Raw echo of a variable is flagged."""
        result = BladeLinter().lint("{!! $body !!}")
        assert rules(result["violations"]) == ["unescaped_output"]
        assert result["violations"][0]["column"] == 1

    def test_unclosed_directive(self):
        """Opened control directives must be closed."""
        result = BladeLinter().lint("@foreach($items as $item)\n<li>{{ $item }}</li>")
        assert rules(result["violations"]) == ["unclosed_directive"]
        assert result["violations"][0]["line"] == 1

    def test_unmatched_directive(self):
        """A closer without an opener is flagged."""
        result = BladeLinter().lint("<p>x</p>\n@endif")
        assert rules(result["violations"]) == ["unmatched_directive"]
        assert result["violations"][0]["line"] == 2
