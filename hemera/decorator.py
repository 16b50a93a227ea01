"""
Decorators that instrument a function at definition time.

    @hemera
    def fast(): ...

    @measure_time(name="SlowOperation", level="debug", threshold="50ms")
    async def slow(): ...

The decorated function's source is run through the same pipeline as the
source expander (options -> descriptor -> transformer -> emitter) once, when
the ``def`` statement executes. The result is compiled against the
function's own file and line numbers and rebuilt around the original
globals, defaults and closure cells, so calls cost two clock reads and a
conditional write and nothing else.
"""

from __future__ import annotations

import __future__
import ast
import inspect
import logging
import textwrap
import types
from collections.abc import Callable
from typing import Any, TypeVar

from hemera import runtime
from hemera.descriptor import FunctionDescriptor
from hemera.emitter import CodeEmitter
from hemera.errors import (
    ConfigurationError,
    ExpectedNameValuePairError,
    Location,
    UnsupportedFunctionError,
)
from hemera.options import parse_config
from hemera.transformer import RUNTIME_ALIAS, FunctionTransformer

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

FACTORY_NAME = "_hemera_factory"

FUTURE_FLAGS = 0
for _feature in __future__.all_feature_names:
    FUTURE_FLAGS |= getattr(__future__, _feature).compiler_flag


def hemera(func: F | None = None, /, *, tracing: bool | None = None, **options: Any):
    """
    Instrument a function with execution-time measurement.

    Usable bare (``@hemera``) or with options (``@hemera(name="X")``).

    Args:
        func: Function being decorated (bare form)
        tracing: Wrap calls in a scoped span; defaults to settings
        **options: name, level ("info" or "debug"), threshold (e.g. "10ms")

    Raises:
        ConfigurationError: Invalid options, raised when the def executes
        ExpectedNameValuePairError: An option was passed positionally,
            e.g. ``@hemera("Custom")``
        UnsupportedFunctionError: The function cannot be rebuilt from source
    """

    def decorator(target: F) -> F:
        return instrument(target, options, tracing=tracing)

    if func is not None:
        if not callable(func):
            caller = inspect.currentframe().f_back
            raise ExpectedNameValuePairError(
                Location(caller.f_lineno, None, caller.f_code.co_filename)
            )
        return decorator(func)
    return decorator


measure_time = hemera


def instrument(func: F, options: dict[str, Any], tracing: bool | None = None) -> F:
    """Rebuild ``func`` with a timed body."""
    if not isinstance(func, types.FunctionType):
        raise UnsupportedFunctionError(
            f"hemera can only instrument plain functions, got {type(func).__name__}"
        )
    if inspect.unwrap(func) is not func:
        raise UnsupportedFunctionError(
            f"hemera must be the innermost decorator of {func.__qualname__}"
        )

    node, filename = _function_node(func)
    location = Location.of(node.decorator_list[-1] if node.decorator_list else node, filename)

    try:
        config = parse_config(_option_tokens(options), filename)
    except ConfigurationError as e:
        raise e.with_location(location)

    # Decorators above ours are applied by Python once we return.
    node.decorator_list = []

    descriptor = FunctionDescriptor.from_node(node)
    transformed = FunctionTransformer(tracing=tracing).transform(descriptor, config)
    code = _compile(CodeEmitter().emit_node(transformed), func, filename)

    rebuilt = types.FunctionType(
        code,
        func.__globals__,
        func.__name__,
        func.__defaults__,
        _closure(code, func),
    )
    rebuilt.__kwdefaults__ = func.__kwdefaults__
    # Python >= 3.14 evaluates annotations lazily; keep them unevaluated.
    if getattr(func, "__annotate__", None) is not None:
        rebuilt.__annotate__ = func.__annotate__
    else:
        rebuilt.__annotations__ = func.__annotations__
    rebuilt.__qualname__ = func.__qualname__
    rebuilt.__module__ = func.__module__
    rebuilt.__doc__ = func.__doc__
    rebuilt.__dict__.update(func.__dict__)
    if hasattr(func, "__type_params__"):
        rebuilt.__type_params__ = func.__type_params__

    logger.info(f"Instrumented {func.__qualname__} as '{transformed.display_name}'")
    return rebuilt


def _option_tokens(options: dict[str, Any]) -> ast.Call:
    """Present keyword options as the attribute call they stand for."""
    return ast.Call(
        func=ast.Name(id="hemera", ctx=ast.Load()),
        args=[],
        keywords=[ast.keyword(arg=key, value=ast.Constant(value)) for key, value in options.items()],
    )


def _function_node(func: types.FunctionType) -> tuple[ast.FunctionDef | ast.AsyncFunctionDef, str]:
    try:
        lines, first_line = inspect.getsourcelines(func)
    except (OSError, TypeError) as e:
        raise UnsupportedFunctionError(f"Source of {func.__qualname__} is not available") from e

    filename = inspect.getsourcefile(func) or func.__code__.co_filename
    try:
        tree = ast.parse(textwrap.dedent("".join(lines)), filename=filename)
    except SyntaxError as e:
        raise UnsupportedFunctionError(
            f"Source of {func.__qualname__} cannot be parsed on its own"
        ) from e
    ast.increment_lineno(tree, max(first_line - 1, 0))

    node = tree.body[0] if tree.body else None
    if not isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)) or node.name != func.__name__:
        raise UnsupportedFunctionError(f"{func.__qualname__} is not defined by a def statement")
    return node, filename


def _compile(node: ast.stmt, func: types.FunctionType, filename: str) -> types.CodeType:
    """
    Compile the transformed def and return the code object of the function.

    The def is nested in a factory whose parameters are the runtime alias and
    the original free variables, so those names compile as closure
    references. Methods are additionally nested in a class of the same name
    so private names are mangled as before.
    """
    freevars = func.__code__.co_freevars
    body: list[ast.stmt] = [node]
    # The nested def would make its own name a factory local; recursive calls
    # must stay global lookups unless the name is a closure variable.
    if node.name not in (RUNTIME_ALIAS, *freevars):
        body.insert(0, ast.Global(names=[node.name]))

    factory = ast.FunctionDef(
        name=FACTORY_NAME,
        args=ast.arguments(
            posonlyargs=[],
            args=[ast.arg(arg=name) for name in (RUNTIME_ALIAS, *freevars)],
            kwonlyargs=[],
            kw_defaults=[],
            defaults=[],
        ),
        body=body,
        decorator_list=[],
        returns=None,
    )
    if "type_params" in ast.FunctionDef._fields:
        factory.type_params = []
    outer: ast.stmt = factory

    class_name = _owner_class_name(func)
    if class_name is not None:
        outer = ast.ClassDef(
            name=class_name, bases=[], keywords=[], body=[factory], decorator_list=[]
        )
        if "type_params" in ast.ClassDef._fields:
            outer.type_params = []

    for wrapper in (factory, outer):
        ast.copy_location(wrapper, node)
    module = ast.fix_missing_locations(ast.Module(body=[outer], type_ignores=[]))

    flags = func.__code__.co_flags & FUTURE_FLAGS
    module_code = compile(module, filename, "exec", flags=flags, dont_inherit=True)

    code = _find_code(module_code, node.name)
    if code is None:
        raise UnsupportedFunctionError(f"Could not rebuild {func.__qualname__}")
    return code


def _owner_class_name(func: types.FunctionType) -> str | None:
    parts = func.__qualname__.split(".")
    if len(parts) >= 2 and parts[-2] != "<locals>":
        return parts[-2]
    return None


def _find_code(code: types.CodeType, name: str) -> types.CodeType | None:
    for const in code.co_consts:
        if not isinstance(const, types.CodeType):
            continue
        if const.co_name == name:
            return const
        found = _find_code(const, name)
        if found is not None:
            return found
    return None


def _closure(code: types.CodeType, func: types.FunctionType) -> tuple | None:
    cells = dict(zip(func.__code__.co_freevars, func.__closure__ or ()))
    cells[RUNTIME_ALIAS] = types.CellType(runtime)

    try:
        closure = tuple(cells[name] for name in code.co_freevars)
    except KeyError as e:
        raise UnsupportedFunctionError(
            f"Free variable {e.args[0]!r} of {func.__qualname__} has no cell"
        ) from e
    return closure or None
