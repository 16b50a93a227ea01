"""
Tests for attribute option parsing.
"""

import ast
import logging

import pytest

from hemera.duration import Duration, TimeUnit
from hemera.errors import (
    ConfigurationError,
    ExpectedNameValuePairError,
    InvalidLevelValueError,
    InvalidThresholdGrammarError,
    InvalidThresholdValueError,
    UnknownOptionError,
)
from hemera.options import Config, LogLevel, parse_config


def decorator_node(source: str) -> ast.expr:
    """Return the decorator of a one-line decorated function."""
    module = ast.parse(f"{source}\ndef f(): pass")
    return module.body[0].decorator_list[0]


class TestParseConfig:
    """Test parse_config on text tokens."""

    def test_empty_input(self):
        """No arguments at all gives an empty Config."""
        assert parse_config() == Config()
        assert parse_config("") == Config()
        assert parse_config("   ") == Config()

    def test_name_only(self):
        config = parse_config('name="Custom"')

        assert config.name == "Custom"
        assert config.level is None
        assert config.threshold is None

    def test_all_options(self):
        config = parse_config('name="Test", level="debug", threshold="5ms"')

        assert config == Config(
            name="Test",
            level=LogLevel.DEBUG,
            threshold=Duration(magnitude=5, unit=TimeUnit.MILLISECONDS),
        )

    def test_info_level(self):
        assert parse_config('level="info"').level is LogLevel.INFO

    @pytest.mark.parametrize("level", ["warn", "DEBUG", "Info", ""])
    def test_invalid_level(self, level):
        """Levels are matched exactly and case-sensitively."""
        with pytest.raises(InvalidLevelValueError) as exc_info:
            parse_config(f'level="{level}"')

        assert exc_info.value.value == level

    def test_unknown_option(self):
        with pytest.raises(UnknownOptionError) as exc_info:
            parse_config('colour="red"')

        assert exc_info.value.key == "colour"
        assert "Unknown attribute: colour" in str(exc_info.value)

    def test_unknown_option_after_valid_ones(self):
        with pytest.raises(UnknownOptionError):
            parse_config('name="x", verbose="yes"')

    @pytest.mark.parametrize(
        "tokens", ["debug", '"debug"', "name", "*opts", "**opts", "name==", "a) + f(b"]
    )
    def test_expected_name_value_pair(self, tokens):
        with pytest.raises(ExpectedNameValuePairError):
            parse_config(tokens)

    def test_threshold_grammar_error(self):
        with pytest.raises(InvalidThresholdGrammarError):
            parse_config('threshold="5x"')

    def test_threshold_value_error(self):
        with pytest.raises(InvalidThresholdValueError):
            parse_config('threshold="abcms"')

    def test_non_literal_value_keeps_default(self, caplog):
        """A recognised key with a non-string value is ignored, with a warning."""
        with caplog.at_level(logging.WARNING, logger="hemera.options"):
            config = parse_config("name=NAME, threshold=10")

        assert config == Config()
        assert "'name' is not a string literal" in caplog.text
        assert "'threshold' is not a string literal" in caplog.text

    def test_non_literal_value_keeps_prior_value(self):
        call = ast.Call(
            func=ast.Name(id="hemera", ctx=ast.Load()),
            args=[],
            keywords=[
                ast.keyword(arg="name", value=ast.Constant("First")),
                ast.keyword(arg="name", value=ast.Constant(42)),
            ],
        )

        assert parse_config(call).name == "First"

    def test_repeated_key_last_wins(self):
        call = ast.Call(
            func=ast.Name(id="hemera", ctx=ast.Load()),
            args=[],
            keywords=[
                ast.keyword(arg="level", value=ast.Constant("info")),
                ast.keyword(arg="level", value=ast.Constant("debug")),
            ],
        )

        assert parse_config(call).level is LogLevel.DEBUG

    def test_parsing_is_idempotent(self):
        tokens = 'name="Load", level="debug", threshold="1s"'

        assert parse_config(tokens) == parse_config(tokens)

    def test_config_is_frozen(self):
        config = parse_config('name="x"')

        with pytest.raises(Exception):
            config.name = "y"


class TestParseConfigFromNodes:
    """Test parse_config on decorator syntax nodes."""

    def test_bare_decorator(self):
        assert parse_config(decorator_node("@hemera")) == Config()

    def test_qualified_bare_decorator(self):
        assert parse_config(decorator_node("@hemera.measure_time")) == Config()

    def test_empty_call(self):
        assert parse_config(decorator_node("@hemera()")) == Config()

    def test_call_with_options(self):
        config = parse_config(decorator_node('@measure_time(name="X", threshold="50ms")'))

        assert config.name == "X"
        assert config.threshold.nanoseconds == 50_000_000

    def test_positional_argument(self):
        with pytest.raises(ExpectedNameValuePairError):
            parse_config(decorator_node('@hemera("fast")'))

    def test_nested_expression_is_not_a_pair(self):
        with pytest.raises(ExpectedNameValuePairError):
            parse_config(decorator_node("@hemera[0]"))


class TestErrorLocations:
    """Errors point at the offending attribute argument."""

    def test_unknown_option_location(self):
        node = decorator_node('@hemera(name="x", colour="red")')

        with pytest.raises(UnknownOptionError) as exc_info:
            parse_config(node, filename="app.py")

        location = exc_info.value.location
        assert location.filename == "app.py"
        assert location.lineno == 1
        assert location.col_offset == node.keywords[1].col_offset
        assert str(exc_info.value).startswith("app.py:1:")

    def test_level_error_points_at_value(self):
        node = decorator_node('@hemera(level="loud")')

        with pytest.raises(InvalidLevelValueError) as exc_info:
            parse_config(node, filename="app.py")

        assert exc_info.value.location.col_offset == node.keywords[0].value.col_offset

    def test_threshold_error_points_at_value(self):
        node = decorator_node('@hemera(threshold="10")')

        with pytest.raises(InvalidThresholdGrammarError) as exc_info:
            parse_config(node)

        assert exc_info.value.location.col_offset == node.keywords[0].value.col_offset

    def test_all_errors_share_a_base(self):
        for tokens in ['x="1"', "1", 'level="x"', 'threshold="1"', 'threshold="xs"']:
            with pytest.raises(ConfigurationError):
                parse_config(tokens)
