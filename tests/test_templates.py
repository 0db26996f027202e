"""Tests for template scanning, parsing and rendering."""

import pytest

from templx import (
    ParsedTemplate,
    Signal,
    TemplateSyntaxError,
    clear_template_cache,
    evaluate_template,
    is_template_literal,
    parse_template_literal,
)
from templx.expressions import BinaryOp, Literal
from templx.templates import scan_template


def render(source, context=None):
    return evaluate_template(parse_template_literal(source), context or {})


class TestIsTemplateLiteral:
    def test_detects_regions(self):
        assert is_template_literal("${1}")
        assert is_template_literal("a ${this.b} c")

    def test_plain_strings(self):
        assert not is_template_literal("plain")
        assert not is_template_literal("$count")
        assert not is_template_literal(None)
        assert not is_template_literal(12)


class TestScan:
    def test_interleaves_text_and_expressions(self):
        assert scan_template("a ${x} b ${y}") == [
            ("text", "a "),
            ("expr", "x"),
            ("text", " b "),
            ("expr", "y"),
        ]

    def test_nested_braces_are_balanced(self):
        assert scan_template("${ {a: {b: 1}} }!") == [("expr", " {a: {b: 1}} "), ("text", "!")]

    def test_braces_inside_strings_are_skipped(self):
        assert scan_template("${'}' + 1}") == [("expr", "'}' + 1")]

    def test_escaped_opening(self):
        assert scan_template(r"cost: \${price}") == [("text", "cost: ${price}")]

    def test_unbalanced(self):
        with pytest.raises(TemplateSyntaxError) as info:
            scan_template("x ${this.$a + 1")
        assert info.value.fragment == "${this.$a + 1"

    def test_unterminated_string(self):
        with pytest.raises(TemplateSyntaxError):
            scan_template("${'open}")


class TestParseTemplateLiteral:
    def test_plain_string_is_one_literal_segment(self):
        parsed = parse_template_literal("just text")
        assert parsed == ParsedTemplate("just text", ("just text",))
        assert parsed.is_static
        assert not parsed.is_pure_expression

    def test_pure_expression(self):
        parsed = parse_template_literal("${2 ** 3}")
        assert parsed.parts == (BinaryOp("**", Literal(2), Literal(3)),)
        assert parsed.is_pure_expression

    def test_mixed(self):
        parsed = parse_template_literal("Count squared: ${this.$count ** 2}")
        assert parsed.parts[0] == "Count squared: "
        assert len(parsed.expressions) == 1
        assert not parsed.is_pure_expression

    def test_cached(self):
        assert parse_template_literal("${1 + 1}") is parse_template_literal("${1 + 1}")

    def test_clear_cache(self):
        first = parse_template_literal("${3 + 3}")
        clear_template_cache()
        second = parse_template_literal("${3 + 3}")
        assert first == second
        assert first is not second

    def test_bad_expression_names_region(self):
        with pytest.raises(TemplateSyntaxError) as info:
            parse_template_literal("ok ${this.$a +} ok")
        assert info.value.fragment == "${this.$a +}"
        assert info.value.position == 3
        assert info.value.source == "ok ${this.$a +} ok"

    def test_empty_region_is_an_error(self):
        with pytest.raises(TemplateSyntaxError):
            parse_template_literal("${}")

    def test_object_literal_is_rejected(self):
        with pytest.raises(TemplateSyntaxError):
            parse_template_literal("${ {a: 1} }")


class TestRender:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("${2 ** 3}", "8"),
            ("${10 ** 2}", "100"),
            ("${5 ** 0}", "1"),
            ("${4 ** 0.5}", "2"),
            ("${2 + 3 * 4}", "14"),
            ("${10 - 2 * 3}", "4"),
            ("${5 / 0}", "Infinity"),
            ("${0 ** 2}", "0"),
            ("${5 * 0}", "0"),
            ("${0 / 5}", "0"),
            ("${20 / 4}", "5"),
            ("${10 % 3}", "1"),
            ("${1 > 0}", "true"),
            ("${null}", ""),
            ("${undefined}", ""),
            ("${0 / 0}", "NaN"),
            ("${0.000001}", "0.000001"),
        ],
    )
    def test_literal_expressions(self, source, expected):
        assert render(source) == expected

    def test_fractional_root(self):
        assert round(float(render("${27 ** 0.333}"))) == 3

    def test_text_around_expressions(self):
        assert render("Count squared: ${this.$count ** 2}", {"$count": Signal(5)}) == "Count squared: 25"

    def test_several_expressions(self):
        ctx = {"$a": 5, "$b": 3}
        assert render("${this.$a} + ${this.$b} = ${this.$a + this.$b}", ctx) == "5 + 3 = 8"

    def test_plus_dispatch(self):
        assert render("${this.$a + this.$b}", {"$a": 5, "$b": 3}) == "8"
        assert render("${this.$str1 + this.$str2}", {"$str1": "Hello", "$str2": "World"}) == "HelloWorld"

    def test_missing_property_degrades(self):
        assert render("[${this.nothing.here}]") == "[]"
        assert render("${this.nothing * 2}") == "NaN"

    def test_static_template_verbatim(self):
        assert render("no expressions here") == "no expressions here"
