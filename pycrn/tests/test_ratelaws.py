import threading
import pytest
import sympy
import numpy as np
from pycrn.testing import with_registry
from pycrn.ratelaws import RateLawRegistry, parse_expression, RESERVED_NAMES
from pycrn.core import DuplicateDeclarationError, UnknownRateFunctionError, \
    UnknownIdentifierError, ArityMismatchError, MalformedLineError
from pycrn.builder import compile_network
from pycrn.generator.ode import OdeGenerator


def test_builtin_rate_laws():
    registry = RateLawRegistry()
    assert registry.names() == ['hill', 'hillr', 'mm', 'mmr']
    assert registry['hill'].arity == 4
    assert registry['mm'].arity == 3
    x, v, K, n = sympy.symbols('x v K n')
    assert registry['hill'](x, v, K, n) == v * x**n / (x**n + K**n)
    assert registry['hillr'](x, v, K, n) == v * K**n / (x**n + K**n)
    assert registry['mm'](x, v, K) == v * x / (x + K)
    assert registry['mmr'](x, v, K) == v * K / (x + K)


def test_rate_law_call_arity():
    with pytest.raises(UnknownRateFunctionError):
        RateLawRegistry()['mm'](1, 2)


def test_inline_builtin():
    X, v, K = sympy.symbols('X v K')
    expr = parse_expression('2*mm(X, v, K)', {})
    assert RateLawRegistry().inline(expr) == 2 * v * X / (X + K)


@with_registry
def test_register_custom():
    law = registry.register('sat', ['x', 'vmax'], 'vmax*x/(1 + x)')
    assert law.arity == 2
    assert 'sat' in registry
    assert len(registry) == 5
    network = compile_network('sat(S, V), S => P', ['V'], registry=registry)
    ode = OdeGenerator(network, registry=registry)
    assert np.allclose(ode.drift([1.0, 0.0], [2.0]), [-1.0, 1.0])


@with_registry
def test_register_sympy_body():
    x, k = sympy.symbols('x k')
    registry.register('lin', ['x', 'k'], k * x)
    expr = parse_expression('lin(A, B)', {})
    assert registry.inline(expr) == sympy.Symbol('A') * sympy.Symbol('B')


@with_registry
def test_register_nested():
    registry.register('hill2', ['x'], 'hill(x, 1, 2, 2)')
    registry.register('double_hill2', ['y'], '2*hill2(y)')
    expr = registry.inline(parse_expression('double_hill2(X)', {}))
    X = sympy.Symbol('X')
    assert sympy.simplify(expr - 2 * X**2 / (X**2 + 4)) == 0


@with_registry
@pytest.mark.parametrize('name', ['hill', 'mm', 'exp', 'sqrt', 't',
                                  'nothing', 'Symbol'])
def test_shadowing_forbidden(name):
    with pytest.raises(DuplicateDeclarationError):
        registry.register(name, ['x'], 'x')


@with_registry
def test_register_twice():
    registry.register('f', ['x'], 'x')
    with pytest.raises(DuplicateDeclarationError):
        registry.register('f', ['x'], '2*x')
    # The first definition is kept
    assert registry.inline(parse_expression('f(A)', {})) == \
        sympy.Symbol('A')


@with_registry
@pytest.mark.parametrize('name, args, body', [
    ('f!', ['x'], 'x'),
    ('if', ['x'], 'x'),
    ('f', 'x', 'x'),
    ('f', ['x', 'x'], 'x'),
    ('f', ['t'], 't'),
    ('f', ['x'], 'x*y'),
])
def test_register_invalid(name, args, body):
    with pytest.raises(ValueError):
        registry.register(name, args, body)
    assert name not in registry


@with_registry
def test_register_unknown_call():
    with pytest.raises(UnknownRateFunctionError):
        registry.register('f', ['x'], 'g(x)')
    assert 'f' not in registry


def test_resolve():
    registry = RateLawRegistry()
    expr = parse_expression('k*hill(X, v, K, n)', {})
    assert registry.resolve(expr) is expr
    with pytest.raises(UnknownRateFunctionError) as e:
        registry.resolve(parse_expression('foo(X)', {}), line=7)
    assert e.value.line == 7
    assert isinstance(e.value, UnknownIdentifierError)
    with pytest.raises(ArityMismatchError):
        registry.resolve(parse_expression('hill(X, v)', {}))


def test_registries_are_independent():
    first = RateLawRegistry()
    second = RateLawRegistry()
    first.register('f', ['x'], 'x')
    assert 'f' in first
    assert 'f' not in second


def test_reserved_names():
    registry = RateLawRegistry()
    registry.register('f', ['x'], 'x')
    reserved = registry.reserved_names()
    assert RESERVED_NAMES <= reserved
    assert {'f', 'hill', 'mmr'} <= reserved


def test_concurrent_registration():
    registry = RateLawRegistry()
    names = ['law%d' % i for i in range(20)]

    errors = []

    def register(name):
        try:
            registry.register(name, ['x'], 'x')
            registry.resolve(parse_expression('%s(X)' % name, {}))
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=register, args=(name,))
               for name in names]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert errors == []
    assert len(registry) == 24
    assert set(names) <= set(registry.names())
    x = sympy.Symbol('X')
    for name in names:
        assert registry[name].arity == 1
        expr = parse_expression('%s(X)' % name, {})
        assert registry.resolve(expr) == expr
        assert registry.inline(expr) == x


def test_parse_expression_errors():
    with pytest.raises(MalformedLineError) as e:
        parse_expression('k1 +', {}, line=3)
    assert e.value.line == 3
