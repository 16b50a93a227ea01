"""
Code synthesis: wrap a function body in timing instrumentation.

For a function

    @hemera(name="Load", threshold="10ms")
    def load(path):
        \"\"\"Read a file.\"\"\"
        return open(path).read()

the transformed function is

    def load(path):
        \"\"\"Read a file.\"\"\"
        _hemera_start = _hemera.clock()
        try:
            return open(path).read()
        finally:
            _hemera_elapsed = _hemera.clock() - _hemera_start
            if _hemera_elapsed >= 10000000:
                _hemera.emit_info('Load', _hemera_elapsed)

``_hemera`` is the ``hemera.runtime`` module, bound by whichever host
compiles the result. The original body statements are moved into the
``try`` block as-is, so every ``return``, ``raise``, ``await`` and
``yield`` in them behaves exactly as before.
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass
from enum import Enum

from hemera.config import settings
from hemera.descriptor import FunctionDescriptor
from hemera.options import Config, LogLevel

logger = logging.getLogger(__name__)

# Names used by generated code. Single underscore: no mangling inside classes.
RUNTIME_ALIAS = "_hemera"
START_VAR = "_hemera_start"
ELAPSED_VAR = "_hemera_elapsed"


class Channel(Enum):
    """Where the timing line goes, and the runtime writer that sends it there."""

    INFO = "emit_info"  # stdout
    DEBUG = "emit_debug"  # stderr


@dataclass
class TransformedFunction(FunctionDescriptor):
    """A FunctionDescriptor whose body is the synthesized wrapper."""

    display_name: str = ""
    channel: Channel = Channel.INFO
    threshold_ns: int | None = None
    traced: bool = False


class FunctionTransformer:
    """
    Builds timed versions of functions.

    The tracing toggle is fixed when the transformer is created. It decides
    whether generated bodies open a span; generated code never checks it.
    """

    def __init__(self, tracing: bool | None = None):
        """
        Initialize transformer.

        Args:
            tracing: Wrap bodies in a scoped span. Defaults to settings.
        """
        self.tracing = settings.tracing_enabled if tracing is None else tracing

    def transform(self, descriptor: FunctionDescriptor, config: Config) -> TransformedFunction:
        """
        Produce the instrumented version of a function.

        The descriptor's signature fields are handed over unchanged and its
        body statements are moved into the new body. The descriptor must not
        be transformed twice.

        Args:
            descriptor: Function to instrument
            config: Validated attribute options

        Returns:
            TransformedFunction with the same signature and a timed body
        """
        display_name = config.name if config.name is not None else descriptor.name
        channel = Channel.DEBUG if config.level is LogLevel.DEBUG else Channel.INFO
        threshold_ns = config.threshold.nanoseconds if config.threshold is not None else None

        # Same statements for both kinds: they stay inline in the def or the
        # coroutine, so no suspension point is added, removed or moved.
        body = self._timed(descriptor.body, display_name, channel, threshold_ns)
        if self.tracing:
            body = [_traced(body, display_name)]
        _place(body, descriptor)

        logger.debug(
            f"Instrumented {descriptor.kind.value} function '{descriptor.name}' "
            f"as '{display_name}' (channel={channel.name}, "
            f"threshold_ns={threshold_ns}, tracing={self.tracing})"
        )

        return TransformedFunction(
            name=descriptor.name,
            kind=descriptor.kind,
            args=descriptor.args,
            body=body,
            returns=descriptor.returns,
            decorators=descriptor.decorators,
            type_params=descriptor.type_params,
            docstring=descriptor.docstring,
            type_comment=descriptor.type_comment,
            lineno=descriptor.lineno,
            col_offset=descriptor.col_offset,
            end_lineno=descriptor.end_lineno,
            end_col_offset=descriptor.end_col_offset,
            display_name=display_name,
            channel=channel,
            threshold_ns=threshold_ns,
            traced=self.tracing,
        )

    def _timed(
        self,
        original: list[ast.stmt],
        display_name: str,
        channel: Channel,
        threshold_ns: int | None,
    ) -> list[ast.stmt]:
        report: ast.stmt = ast.Expr(
            _runtime_call(channel.value, ast.Constant(display_name), _load(ELAPSED_VAR))
        )
        if threshold_ns is not None:
            report = ast.If(
                test=ast.Compare(
                    left=_load(ELAPSED_VAR),
                    ops=[ast.GtE()],
                    comparators=[ast.Constant(threshold_ns)],
                ),
                body=[report],
                orelse=[],
            )

        return [
            _assign(START_VAR, _runtime_call("clock")),
            ast.Try(
                body=original or [ast.Pass()],
                handlers=[],
                orelse=[],
                finalbody=[
                    _assign(
                        ELAPSED_VAR,
                        ast.BinOp(
                            left=_runtime_call("clock"), op=ast.Sub(), right=_load(START_VAR)
                        ),
                    ),
                    report,
                ],
            ),
        ]


def _traced(body: list[ast.stmt], display_name: str) -> ast.With:
    # A plain `with`: `async with` would add suspension points.
    return ast.With(
        items=[
            ast.withitem(
                context_expr=_runtime_call("trace_span", ast.Constant(display_name)),
                optional_vars=None,
            )
        ],
        body=body,
    )


def _place(statements: list[ast.stmt], descriptor: FunctionDescriptor) -> None:
    """Position synthesized statements at the def; moved statements keep their own."""
    lineno = descriptor.lineno if descriptor.lineno is not None else 1
    col_offset = descriptor.col_offset if descriptor.col_offset is not None else 0
    if descriptor.end_lineno is not None and descriptor.end_col_offset is not None:
        end_lineno, end_col_offset = descriptor.end_lineno, descriptor.end_col_offset
    else:
        end_lineno, end_col_offset = lineno, col_offset

    anchor = ast.Pass(
        lineno=lineno, col_offset=col_offset, end_lineno=end_lineno, end_col_offset=end_col_offset
    )
    for statement in statements:
        if getattr(statement, "lineno", None) is None:
            ast.copy_location(statement, anchor)
        ast.fix_missing_locations(statement)


def _load(name: str) -> ast.Name:
    return ast.Name(id=name, ctx=ast.Load())


def _assign(name: str, value: ast.expr) -> ast.Assign:
    return ast.Assign(targets=[ast.Name(id=name, ctx=ast.Store())], value=value)


def _runtime_call(attr: str, *args: ast.expr) -> ast.Call:
    return ast.Call(
        func=ast.Attribute(value=_load(RUNTIME_ALIAS), attr=attr, ctx=ast.Load()),
        args=list(args),
        keywords=[],
    )
