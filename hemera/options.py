"""
Attribute options: ``@hemera(name="...", level="debug", threshold="10ms")``.

Turns the raw arguments of the attribute into a validated Config. Every
failure is raised here, before any code is synthesized.
"""

from __future__ import annotations

import ast
import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict

from hemera.duration import Duration, parse_duration
from hemera.errors import (
    ConfigurationError,
    ExpectedNameValuePairError,
    InvalidLevelValueError,
    Location,
    UnknownOptionError,
)

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Levels accepted by the ``level`` option."""

    INFO = "info"
    DEBUG = "debug"


class Config(BaseModel):
    """Validated attribute options. Absent fields fall back at transform time."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    level: LogLevel | None = None
    threshold: Duration | None = None


KNOWN_OPTIONS = ("name", "level", "threshold")


def parse_config(tokens: str | ast.expr | None = None, filename: str | None = None) -> Config:
    """
    Parse attribute arguments into a Config.

    Args:
        tokens: One of
            - None or "" for a bare attribute
            - the text between the attribute's parentheses, e.g. 'name="x"'
            - the attribute's syntax node (a Call, or a bare Name/Attribute)
        filename: Used only to locate errors

    Returns:
        Config with the options that were given

    Raises:
        UnknownOptionError: Key is not name, level or threshold
        ExpectedNameValuePairError: Argument is not ``key = literal``
        InvalidLevelValueError: level is not "debug" or "info"
        InvalidThresholdGrammarError, InvalidThresholdValueError: Bad threshold
    """
    if tokens is None:
        return Config()

    if isinstance(tokens, str):
        if not tokens.strip():
            return Config()
        call = _call_from_text(tokens, filename)
    elif isinstance(tokens, ast.Call):
        call = tokens
    elif isinstance(tokens, (ast.Name, ast.Attribute)):
        return Config()
    else:
        raise ExpectedNameValuePairError(Location.of(tokens, filename))

    return _config_from_call(call, filename)


def _call_from_text(text: str, filename: str | None) -> ast.Call:
    try:
        expr = ast.parse(f"_({text})", filename=filename or "<attribute>", mode="eval")
    except SyntaxError as e:
        raise ExpectedNameValuePairError(Location(e.lineno, None, filename)) from e

    # Text that closes the parenthesis early, e.g. 'a) + f(b'
    call = expr.body
    if not (isinstance(call, ast.Call) and isinstance(call.func, ast.Name) and call.func.id == "_"):
        raise ExpectedNameValuePairError(Location(1, None, filename))
    return call


def _config_from_call(call: ast.Call, filename: str | None) -> Config:
    if call.args:
        raise ExpectedNameValuePairError(Location.of(call.args[0], filename))

    fields: dict = {}

    for keyword in call.keywords:
        location = Location.of(keyword, filename)

        # **options
        if keyword.arg is None:
            raise ExpectedNameValuePairError(location)

        key = keyword.arg
        if key not in KNOWN_OPTIONS:
            raise UnknownOptionError(key, location)

        value = keyword.value
        if not (isinstance(value, ast.Constant) and isinstance(value.value, str)):
            logger.warning(
                f"{location}: value of '{key}' is not a string literal; "
                f"keeping {fields.get(key)!r}"
            )
            continue

        try:
            fields[key] = _convert(key, value.value)
        except ConfigurationError as e:
            raise e.with_location(Location.of(value, filename))

    logger.debug(f"Parsed attribute options: {fields}")
    return Config(**fields)


def _convert(key: str, text: str) -> str | LogLevel | Duration:
    if key == "level":
        if text not in (LogLevel.DEBUG.value, LogLevel.INFO.value):
            raise InvalidLevelValueError(text)
        return LogLevel(text)
    if key == "threshold":
        return parse_duration(text)
    return text
