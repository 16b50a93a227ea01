"""
Pytest configuration and fixtures.
Shared sources and helpers for transformation tests.
"""

import ast

import pytest

from hemera import runtime
from hemera.descriptor import FunctionDescriptor
from hemera.emitter import CodeEmitter
from hemera.transformer import FunctionTransformer

SYNC_SOURCE = '''
@cache
def add(a: int, b: int = 1, *rest, scale: int = 2, **extra) -> int:
    """Add two numbers."""
    total = a + b
    return total * scale
'''

ASYNC_SOURCE = """
async def fetch(session, url: str) -> bytes:
    response = await session.get(url)
    return await response.read()
"""


@pytest.fixture
def sync_source():
    """Return a decorated, documented sync function."""
    return SYNC_SOURCE


@pytest.fixture
def async_source():
    """Return an async function with two suspension points."""
    return ASYNC_SOURCE


@pytest.fixture
def transformer():
    """Transformer with tracing explicitly off."""
    return FunctionTransformer(tracing=False)


@pytest.fixture
def emitter():
    return CodeEmitter()


@pytest.fixture
def descriptor_of():
    """Build a FunctionDescriptor from source text."""

    def build(source: str) -> FunctionDescriptor:
        return FunctionDescriptor.from_source(source.strip())

    return build


@pytest.fixture
def compile_function():
    """Compile an emitted function node with the runtime bound as ``_hemera``."""

    def build(node: ast.stmt, namespace: dict | None = None):
        namespace = {"_hemera": runtime, **(namespace or {})}
        module = ast.fix_missing_locations(ast.Module(body=[node], type_ignores=[]))
        exec(compile(module, "<hemera-test>", "exec"), namespace)
        return namespace[node.name]

    return build


@pytest.fixture
def fake_clock(monkeypatch):
    """
    Replace the runtime clock with scripted readings (in nanoseconds).

    Usage: fake_clock(0, 15_000_000) makes the next call measure 15ms.
    """

    def install(*readings: int) -> None:
        monkeypatch.setattr(runtime, "clock", iter(readings).__next__)

    return install
