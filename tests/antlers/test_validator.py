"""Tests for Antlers validation strategies."""

from statamic_mcp.antlers import AntlersValidator
from statamic_mcp.antlers.strategies import levenshtein, similar
from statamic_mcp.antlers.validator import normalize_blueprint_fields


def finding_codes(items):
    return [item["code"] for item in items]


class TestSimilarity:
    """Edit distance suggestions."""

    def test_levenshtein(self):
        """Distances count single-character edits."""
        assert levenshtein("colection", "collection") == 1
        assert levenshtein("abc", "abc") == 0
        assert levenshtein("", "abc") == 3

    def test_similar_limits_distance(self):
        """Only candidates within two edits are suggested."""
        assert similar("colection", ["collection", "taxonomy"]) == ["collection"]
        assert similar("zzzz", ["collection"]) == []


class TestValidator:
    """Validation results."""

    def test_clean_template(self):
        """System variables and known tags validate cleanly."""
        result = AntlersValidator().validate("<h1>{{ title }}</h1><p>{{ url }}</p>")
        assert result["valid"] is True
        assert result["errors"] == []
        assert result["warnings"] == []
        assert result["stats"]["strategies_applied"] == ["syntax_validation", "tag_validation"]

    def test_missing_required_parameter(self):
        """A bare collection tag needs a source."""
        result = AntlersValidator().validate("{{ collection }}{{ title }}{{ /collection }}")
        assert result["valid"] is False
        assert finding_codes(result["errors"]) == ["missing_required_parameter"]

    def test_namespace_satisfies_source(self):
        """collection:blog implies the from parameter."""
        result = AntlersValidator().validate('{{ collection:blog limit="5" }}{{ /collection:blog }}')
        assert result["valid"] is True

    def test_unknown_parameter(self):
        """Misspelled parameters are suggested."""
        result = AntlersValidator().validate('{{ glide src="a.jpg" widht="100" }}')
        warning = result["warnings"][0]
        assert warning["code"] == "unknown_parameter"
        assert "width" in warning["suggestions"]

    def test_unknown_tag_typo(self):
        """Near-miss tag names are warned about."""
        result = AntlersValidator().validate("{{ colection:blog }}{{ /colection:blog }}")
        assert result["valid"] is True
        assert finding_codes(result["warnings"]) == ["unknown_tag"]
        assert result["warnings"][0]["suggestions"] == ["collection"]

    def test_strict_promotes_warnings(self):
        """Strict mode turns warnings into errors."""
        result = AntlersValidator().validate("{{ colection:blog }}{{ /colection:blog }}", strict=True)
        assert result["valid"] is False
        assert finding_codes(result["errors"]) == ["unknown_tag"]
        assert result["warnings"] == []

    def test_unknown_modifier(self):
        """Unknown modifiers are suggested."""
        result = AntlersValidator().validate("{{ title | uppper }}")
        warning = result["warnings"][0]
        assert warning["code"] == "unknown_modifier"
        assert warning["suggestions"][0] == "upper"

    def test_unmatched_quotes(self):
        """Odd quote counts are syntax errors."""
        result = AntlersValidator().validate('{{ glide src="a.jpg }}')
        assert "unmatched_quotes" in finding_codes(result["errors"])

    def test_syntax_errors_invalidate(self):
        """Pairing problems make the template invalid."""
        result = AntlersValidator().validate("{{ if a }}")
        assert result["valid"] is False
        assert result["errors"][0]["line"] == 1

    def test_include_tree(self):
        """The tag tree is only returned on request."""
        template = "{{ nav:main }}{{ title }}{{ /nav:main }}"
        assert "tree" not in AntlersValidator().validate(template)
        tree = AntlersValidator().validate(template, include_tree=True)["tree"]
        assert tree[0]["tag"] == "nav:main"

    def test_stats(self):
        """Stats count tags, comments and depth."""
        stats = AntlersValidator().validate("{{# c #}}{{ nav:main }}{{ title }}{{ /nav:main }}")["stats"]
        assert stats["tags"] == 3
        assert stats["comments"] == 1
        assert stats["max_depth"] == 1


class TestBlueprintFields:
    """Variables checked against blueprint fields."""

    BLUEPRINT = {
        "tabs": {
            "main": {
                "sections": [
                    {
                        "fields": [
                            {"handle": "hero_image", "field": {"type": "assets"}},
                            {"handle": "body", "field": {"type": "markdown"}},
                        ]
                    }
                ]
            }
        }
    }

    def test_normalize_tabbed_blueprint(self):
        """Tabs and sections flatten to a field map."""
        assert normalize_blueprint_fields(self.BLUEPRINT) == {
            "hero_image": {"type": "assets"},
            "body": {"type": "markdown"},
        }

    def test_normalize_other_shapes(self):
        """Handle lists and plain maps are accepted."""
        assert normalize_blueprint_fields(["a", "b"]) == {"a": {}, "b": {}}
        assert normalize_blueprint_fields({"a": {"type": "text"}, "b": None}) == {
            "a": {"type": "text"},
            "b": {},
        }
        assert normalize_blueprint_fields(None) is None

    def test_unknown_field(self):
        """Variables missing from the blueprint are flagged."""
        result = AntlersValidator().validate("{{ hero_imag }}", blueprint=self.BLUEPRINT)
        warning = result["warnings"][0]
        assert warning["code"] == "unknown_field"
        assert warning["suggestions"] == ["hero_image"]
        assert "blueprint_field_validation" in result["stats"]["strategies_applied"]

    def test_incompatible_modifier(self):
        """Modifiers are checked against the field type."""
        result = AntlersValidator().validate("{{ hero_image | upper }}", blueprint=self.BLUEPRINT)
        assert finding_codes(result["warnings"]) == ["incompatible_modifier"]

    def test_loop_variables_are_skipped(self):
        """Variables inside pairs belong to the looped items."""
        template = "{{ collection:blog }}{{ author_name }}{{ /collection:blog }}"
        result = AntlersValidator().validate(template, blueprint=self.BLUEPRINT)
        assert result["warnings"] == []
