"""
Ahead-of-time expansion of a whole module.

Every function carrying a marker decorator (``@hemera``, ``@measure_time``,
with or without arguments, bare or module-qualified) is replaced by its
timed version and the marker is dropped. Each function is expanded on its
own: a bad configuration leaves that function untouched, is reported, and
does not stop the others.
"""

from __future__ import annotations

import ast
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from hemera.config import settings
from hemera.descriptor import FunctionDescriptor
from hemera.emitter import CodeEmitter
from hemera.errors import ConfigurationError
from hemera.options import parse_config
from hemera.transformer import RUNTIME_ALIAS, FunctionTransformer

logger = logging.getLogger(__name__)

RUNTIME_MODULE = "hemera.runtime"


@dataclass
class ExpansionError:
    """
    A function whose attribute could not be turned into a Config.

    ``lineno`` is the line of the def; ``error`` locates the bad argument.
    """

    function: str
    lineno: int | None
    error: ConfigurationError

    def __str__(self) -> str:
        return f"{self.error} (in function '{self.function}')"


@dataclass
class ExpansionResult:
    source: str
    expanded: list[str] = field(default_factory=list)
    errors: list[ExpansionError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class _Expander(ast.NodeTransformer):
    def __init__(
        self,
        transformer: FunctionTransformer,
        emitter: CodeEmitter,
        markers: Iterable[str],
        filename: str,
    ):
        self.transformer = transformer
        self.emitter = emitter
        self.markers = frozenset(markers)
        self.filename = filename
        self.expanded: list[str] = []
        self.errors: list[ExpansionError] = []

    def visit_FunctionDef(self, node):
        # Nested functions first; their expanded form then moves with the body.
        self.generic_visit(node)

        index = self._marker_index(node)
        if index is None:
            return node

        try:
            config = parse_config(node.decorator_list[index], self.filename)
        except ConfigurationError as e:
            error = ExpansionError(node.name, node.lineno, e)
            logger.warning(f"Skipping expansion: {error}")
            self.errors.append(error)
            return node

        del node.decorator_list[index]
        transformed = self.transformer.transform(FunctionDescriptor.from_node(node), config)
        self.expanded.append(node.name)
        return self.emitter.emit_node(transformed)

    visit_AsyncFunctionDef = visit_FunctionDef

    def _marker_index(self, node) -> int | None:
        for index, decorator in enumerate(node.decorator_list):
            target = decorator.func if isinstance(decorator, ast.Call) else decorator
            if isinstance(target, ast.Name) and target.id in self.markers:
                return index
            if isinstance(target, ast.Attribute) and target.attr in self.markers:
                return index
        return None


def expand_source(
    source: str,
    *,
    filename: str = "<string>",
    tracing: bool | None = None,
    markers: Iterable[str] | None = None,
) -> ExpansionResult:
    """
    Expand every attributed function of a module.

    Args:
        source: Module source text
        filename: Used in error locations
        tracing: Wrap bodies in a scoped span; defaults to settings
        markers: Decorator names to expand; defaults to settings

    Returns:
        ExpansionResult with the new source, the expanded function names and
        the per-function errors. The source is returned unchanged when
        nothing was expanded.

    Raises:
        SyntaxError: The source is not valid Python
    """
    module = ast.parse(source, filename=filename)

    expander = _Expander(
        FunctionTransformer(tracing=tracing),
        CodeEmitter(),
        settings.markers if markers is None else markers,
        filename,
    )
    module = expander.visit(module)

    if not expander.expanded:
        return ExpansionResult(source=source, errors=expander.errors)

    _insert_runtime_import(module)
    logger.info(
        f"Expanded {len(expander.expanded)} function(s) in {filename}, "
        f"{len(expander.errors)} error(s)"
    )
    return ExpansionResult(
        source=ast.unparse(module) + "\n",
        expanded=expander.expanded,
        errors=expander.errors,
    )


def _insert_runtime_import(module: ast.Module) -> None:
    """Add ``import hemera.runtime as _hemera`` after the docstring and __future__ imports."""
    body = module.body
    index = 1 if ast.get_docstring(module, clean=False) is not None else 0
    while (
        index < len(body)
        and isinstance(body[index], ast.ImportFrom)
        and body[index].module == "__future__"
    ):
        index += 1

    body.insert(index, ast.Import(names=[ast.alias(name=RUNTIME_MODULE, asname=RUNTIME_ALIAS)]))
