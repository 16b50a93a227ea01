"""
Render a TransformedFunction back into a function definition.

Pure rendering: decorators, name, type parameters, arguments and return
annotation are re-attached exactly as they came in.
"""

from __future__ import annotations

import ast

from hemera.descriptor import FunctionKind, FunctionNode
from hemera.transformer import TransformedFunction

NODE_TYPES: dict[FunctionKind, type[FunctionNode]] = {
    FunctionKind.SYNC: ast.FunctionDef,
    FunctionKind.ASYNC: ast.AsyncFunctionDef,
}


class CodeEmitter:
    """Turns transformed functions into syntax nodes or source text."""

    def emit_node(self, function: TransformedFunction) -> FunctionNode:
        node_type = NODE_TYPES[function.kind]

        body = list(function.body)
        if function.docstring is not None:
            body.insert(0, function.docstring)

        fields = {
            "name": function.name,
            "args": function.args,
            "body": body,
            "decorator_list": function.decorators,
            "returns": function.returns,
            "type_comment": function.type_comment,
        }
        # Python >= 3.12
        if "type_params" in node_type._fields:
            fields["type_params"] = function.type_params

        node = node_type(**fields)
        # Generated statements inherit the def's position range.
        node.lineno = function.lineno or 1
        node.col_offset = function.col_offset or 0
        node.end_lineno = function.end_lineno or node.lineno
        node.end_col_offset = (
            function.end_col_offset if function.end_lineno else node.col_offset
        )
        return ast.fix_missing_locations(node)

    def emit(self, function: TransformedFunction) -> str:
        return ast.unparse(self.emit_node(function))
