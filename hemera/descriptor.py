"""
The function being instrumented, as the transformer sees it.

The body is carried as the original statement nodes and is never analysed.
The only statement looked at is a leading docstring, which has to stay the
first statement of the function for ``__doc__`` to survive.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum

from hemera.errors import UnsupportedFunctionError


class FunctionKind(Enum):
    """Execution model of a function: ordinary call or suspend-based."""

    SYNC = "sync"
    ASYNC = "async"


class Visibility(Enum):
    """Naming-convention visibility of a function."""

    PUBLIC = "public"
    PRIVATE = "private"


FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


@dataclass
class FunctionDescriptor:
    name: str
    kind: FunctionKind
    args: ast.arguments
    body: list[ast.stmt]
    returns: ast.expr | None = None
    decorators: list[ast.expr] = field(default_factory=list)
    type_params: list = field(default_factory=list)
    docstring: ast.Expr | None = None
    type_comment: str | None = None
    lineno: int | None = None
    col_offset: int | None = None
    end_lineno: int | None = None
    end_col_offset: int | None = None

    @property
    def visibility(self) -> Visibility:
        if self.name.startswith("_") and not self.name.endswith("__"):
            return Visibility.PRIVATE
        return Visibility.PUBLIC

    @property
    def is_async(self) -> bool:
        return self.kind is FunctionKind.ASYNC

    @classmethod
    def from_node(cls, node: FunctionNode) -> FunctionDescriptor:
        """Take a function definition apart. The node's children are reused, not copied."""
        if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
            raise UnsupportedFunctionError(
                f"Expected a function definition, got {type(node).__name__}"
            )

        body = node.body
        docstring = None
        if ast.get_docstring(node, clean=False) is not None:
            docstring, body = body[0], body[1:]

        return cls(
            name=node.name,
            kind=FunctionKind.ASYNC if isinstance(node, ast.AsyncFunctionDef) else FunctionKind.SYNC,
            args=node.args,
            body=body,
            returns=node.returns,
            decorators=node.decorator_list,
            type_params=getattr(node, "type_params", []),
            docstring=docstring,
            type_comment=node.type_comment,
            lineno=getattr(node, "lineno", None),
            col_offset=getattr(node, "col_offset", None),
            end_lineno=getattr(node, "end_lineno", None),
            end_col_offset=getattr(node, "end_col_offset", None),
        )

    @classmethod
    def from_source(cls, source: str, filename: str = "<string>") -> FunctionDescriptor:
        """Parse source text holding exactly one function definition."""
        module = ast.parse(source, filename=filename)
        functions = [
            n for n in module.body if isinstance(n, (ast.FunctionDef, ast.AsyncFunctionDef))
        ]
        if len(module.body) != 1 or len(functions) != 1:
            raise UnsupportedFunctionError(
                f"{filename}: expected exactly one function definition"
            )
        return cls.from_node(functions[0])
