"""Tests for expression evaluation and value coercion."""

import math

import pytest

from templx import Signal, SignalList, create_effect, evaluate, parse_expression, to_display_string
from templx.evaluator import format_number, loose_equal, to_number, truthy


def ev(source, context=None):
    return evaluate(parse_expression(source), context or {})


class TestArithmetic:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("2 ** 3", 8),
            ("10 ** 2", 100),
            ("5 ** 0", 1),
            ("4 ** 0.5", 2),
            ("9 ** 0.5", 3),
            ("0 ** 2", 0),
            ("3 * 4", 12),
            ("20 / 4", 5),
            ("10 % 3", 1),
            ("10 - 3", 7),
            ("5 + 3", 8),
            ("2 + 3 * 4", 14),
            ("10 - 2 * 3", 4),
            ("(2 + 3) * 4", 20),
            ("2 ** 3 ** 2", 64),
            ("-7 % 3", -1),
            ("2 ** -1", 0.5),
        ],
    )
    def test_literals(self, source, expected):
        assert ev(source) == expected

    def test_with_signals(self):
        ctx = {"$count": Signal(3), "$base": Signal(2)}
        assert ev("this.$count ** 2", ctx) == 9
        assert ev("this.$base ** this.$count", ctx) == 8
        assert ev("this.$base ** 10", ctx) == 1024

    def test_division_by_zero(self):
        assert ev("5 / 0") == math.inf
        assert ev("-5 / 0") == -math.inf
        assert math.isnan(ev("0 / 0"))
        assert math.isnan(ev("5 % 0"))

    def test_fractional_power_of_negative_is_nan(self):
        assert math.isnan(ev("-8 ** 0.5"))

    def test_overflow_is_infinity(self):
        assert ev("10 ** 400.5") == math.inf

    def test_non_numeric_operand_is_nan(self):
        assert math.isnan(ev("'abc' * 2"))
        assert math.isnan(ev("this.missing - 1"))

    def test_numeric_strings_coerce(self):
        assert ev("'6' * '7'") == 42
        assert ev("'10' - 4") == 6


class TestPlusDispatch:
    def test_numbers_add(self):
        assert ev("this.$a + this.$b", {"$a": 5, "$b": 3}) == 8

    def test_strings_concatenate(self):
        assert ev("this.$str1 + this.$str2", {"$str1": "Hello", "$str2": "World"}) == "HelloWorld"

    def test_mixed_concatenates(self):
        assert ev("'5' + 3") == "53"
        assert ev("'n=' + 2.5") == "n=2.5"

    def test_booleans_are_not_numbers(self):
        assert ev("true + 1") == "true1"

    def test_missing_operand_concatenates_empty(self):
        assert ev("'x' + this.nope") == "x"


class TestComparison:
    @pytest.mark.parametrize(
        "source, expected",
        [
            ("9 > 10", False),
            ("9 < 10", True),
            ("3 <= 3", True),
            ("3 >= 4", False),
            ("'10' > 9", True),
            ("'b' > 'a'", True),
            ("'10' < '9'", True),
            ("1 == '1'", True),
            ("1 === '1'", False),
            ("1 !== '1'", True),
            ("true == 1", True),
            ("null == undefined", True),
            ("null == 0", False),
            ("'abc' < 5", False),
            ("NaN == NaN", False),
        ],
    )
    def test_table(self, source, expected):
        assert ev(source) is expected

    def test_loose_equal_helper(self):
        assert loose_equal(None, None)
        assert not loose_equal(None, "")
        assert loose_equal("2", 2.0)


class TestTernary:
    def test_picks_branch(self):
        ctx = {"$squared": 9}
        assert ev('this.$squared > 10 ? "large" : "small"', ctx) == "small"
        assert ev('this.$squared < 10 ? "small" : "large"', ctx) == "small"

    def test_nested(self):
        assert ev("1 > 2 ? 'a' : 2 > 1 ? 'b' : 'c'") == "b"

    def test_untaken_branch_is_not_read(self):
        flag = Signal(True)
        shown = Signal("shown")
        hidden = Signal("hidden")
        ctx = {"$flag": flag, "$shown": shown, "$hidden": hidden}
        node = parse_expression("this.$flag ? this.$shown : this.$hidden")
        seen = []
        create_effect(lambda: seen.append(evaluate(node, ctx)))
        hidden.set("changed")
        assert seen == ["shown"]
        assert hidden.observer_count == 0


class TestLogicalAndUnary:
    def test_and_or_return_operands(self):
        assert ev("0 || 'fallback'") == "fallback"
        assert ev("'a' && 'b'") == "b"
        assert ev("'' && 'b'") == ""

    def test_short_circuit_skips_reads(self):
        other = Signal(1)
        ctx = {"$other": other}
        node = parse_expression("false && this.$other")
        create_effect(lambda: evaluate(node, ctx))
        assert other.observer_count == 0

    def test_unary(self):
        assert ev("!0") is True
        assert ev("!'x'") is False
        assert ev("-this.$n", {"$n": 4}) == -4
        assert ev("+'12'") == 12


class TestCoercionHelpers:
    def test_to_number(self):
        assert to_number("  42 ") == 42
        assert to_number("") == 0
        assert to_number(True) == 1
        assert to_number("Infinity") == math.inf
        assert math.isnan(to_number(None))
        assert math.isnan(to_number("nan"))
        assert math.isnan(to_number([1]))

    def test_truthy(self):
        for value in (0, 0.0, math.nan, "", None, False):
            assert not truthy(value)
        for value in (1, "0", [], {}, "false"):
            assert truthy(value)

    @pytest.mark.parametrize(
        "value, text",
        [
            (8, "8"),
            (2.0, "2"),
            (2.5, "2.5"),
            (math.inf, "Infinity"),
            (-math.inf, "-Infinity"),
            (math.nan, "NaN"),
            (1e21, "1e+21"),
            (1e-7, "1e-7"),
            (0.000001, "0.000001"),
            (0.0000015, "0.0000015"),
            (-0.00002, "-0.00002"),
            (1.5e-7, "1.5e-7"),
            (-0.0, "0"),
        ],
    )
    def test_format_number(self, value, text):
        assert format_number(value) == text

    def test_display_string(self):
        assert to_display_string(None) == ""
        assert to_display_string(True) == "true"
        assert to_display_string(False) == "false"
        assert to_display_string([1, "a", None]) == "1,a,"
        assert to_display_string(SignalList(["x", 2])) == "x,2"
        assert to_display_string(5 / 2) == "2.5"
