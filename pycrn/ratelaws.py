"""
Rate-law functions available inside reaction rate expressions.

A :class:`RateLawRegistry` holds the built-in rate laws and any custom ones
registered by the user. Rate expressions keep calls to these functions as
unevaluated sympy function applications; the registry validates them at
compile time (:meth:`RateLawRegistry.resolve`) and expands them into their
bodies only when numerical code is generated (:meth:`RateLawRegistry.inline`).

Built-in rate laws
==================

=================  ==========================  ==========================
Name               Arguments                   Rate
=================  ==========================  ==========================
``hill``           ``x, v, K, n``              ``v*x^n/(x^n + K^n)``
``hillr``          ``x, v, K, n``              ``v*K^n/(x^n + K^n)``
``mm``             ``x, v, K``                 ``v*x/(x + K)``
``mmr``            ``x, v, K``                 ``v*K/(x + K)``
=================  ==========================  ==========================

Custom rate laws
================

::

    registry = RateLawRegistry()
    registry.register('sat', ['x', 'vmax'], 'vmax*x/(1 + x)')
    network = compile_network('sat(S, V), S --> P', ['V'], registry=registry)

Functions must be registered before the network using them is compiled, and
may not shadow a built-in, a math function or a reserved name.
"""

import threading
import keyword
import re
from tokenize import TokenError
import sympy
from sympy.core.function import AppliedUndef
from sympy.parsing.sympy_parser import parse_expr, standard_transformations, \
    convert_xor
from pycrn.core import TIME, DuplicateDeclarationError, MalformedLineError, \
    UnknownRateFunctionError
from pycrn.logging import get_logger

__all__ = ['RateLaw', 'RateLawRegistry', 'parse_expression', 'MATH_FUNCTIONS',
           'RESERVED_NAMES']

#: Elementary functions usable in rate expressions without registration.
MATH_FUNCTIONS = {
    'exp': sympy.exp,
    'log': sympy.log,
    'sqrt': sympy.sqrt,
    'sin': sympy.sin,
    'cos': sympy.cos,
    'tan': sympy.tan,
    'sinh': sympy.sinh,
    'cosh': sympy.cosh,
    'tanh': sympy.tanh,
    'abs': sympy.Abs,
    'min': sympy.Min,
    'max': sympy.Max,
}

# Constructors emitted by sympy's parser transformations.
_PARSER_NAMES = {
    'Integer': sympy.Integer,
    'Float': sympy.Float,
    'Rational': sympy.Rational,
    'Symbol': sympy.Symbol,
    'Function': sympy.Function,
}

_TRANSFORMATIONS = standard_transformations + (convert_xor,)

NOTHING = 'nothing'

#: Names that can never be used for species, parameters or rate laws.
RESERVED_NAMES = frozenset(MATH_FUNCTIONS) | frozenset(_PARSER_NAMES) | \
    frozenset([TIME.name, NOTHING])

_NAME_REGEX = re.compile(r'[_a-z][_a-z0-9]*\Z', re.IGNORECASE)


def parse_expression(text, symbols, line=None):
    """
    Parse a rate expression string into a sympy expression.

    Parameters
    ----------
    text : string
        Expression text; ``^`` and ``**`` both denote powers.
    symbols : dict of string => sympy.Symbol
        Names resolvable in the expression. Any other name becomes a plain
        sympy Symbol, or an undefined function if it is called.
    line : int, optional
        Source line for error messages.
    """
    namespace = dict(_PARSER_NAMES)
    namespace.update(MATH_FUNCTIONS)
    local_dict = {TIME.name: TIME}
    local_dict.update(symbols)
    try:
        return parse_expr(text, local_dict=local_dict, global_dict=namespace,
                          transformations=_TRANSFORMATIONS)
    except (SyntaxError, TypeError, ValueError, TokenError) as e:
        raise MalformedLineError('cannot parse rate expression "%s" (%s)' %
                                 (text, e), line=line) from e


class RateLaw(object):
    """
    A named rate-law function with fixed arity.

    Parameters
    ----------
    name : string
        Function name as used in rate expressions.
    args : sequence of sympy.Symbol
        Formal arguments.
    body : sympy.Expr
        Expression over `args`.
    builtin : bool
        Whether this is one of the built-in rate laws.
    """

    def __init__(self, name, args, body, builtin=False):
        self.name = name
        self.args = tuple(args)
        self.body = body
        self.builtin = builtin

    @property
    def arity(self):
        return len(self.args)

    def __call__(self, *args):
        """Return the body with the actual arguments substituted."""
        if len(args) != self.arity:
            raise UnknownRateFunctionError(
                '%s() takes %d argument(s), got %d' %
                (self.name, self.arity, len(args)))
        return self.body.xreplace(dict(zip(self.args,
                                           sympy.sympify(args))))

    def __repr__(self):
        return '%s(%r, (%s), %s)' % (
            self.__class__.__name__, self.name,
            ', '.join(a.name for a in self.args), self.body)


def _builtin_laws():
    x, v, K, n = sympy.symbols('x v K n', real=True)
    return [
        RateLaw('hill', (x, v, K, n), v * x**n / (x**n + K**n), True),
        RateLaw('hillr', (x, v, K, n), v * K**n / (x**n + K**n), True),
        RateLaw('mm', (x, v, K), v * x / (x + K), True),
        RateLaw('mmr', (x, v, K), v * K / (x + K), True),
    ]


class RateLawRegistry(object):
    """
    Registry of the rate-law functions visible to a compilation.

    A fresh registry contains only the built-in rate laws. Custom laws are
    added with :meth:`register` and can never be removed or replaced.
    Registration and lookup share a single lock, so one registry can be used
    by concurrent compilations.
    """

    def __init__(self):
        self._laws = {law.name: law for law in _builtin_laws()}
        self._lock = threading.RLock()
        self._logger = get_logger(__name__)

    def __contains__(self, name):
        with self._lock:
            return name in self._laws

    def __getitem__(self, name):
        with self._lock:
            return self._laws[name]

    def __len__(self):
        with self._lock:
            return len(self._laws)

    def names(self):
        """Return the names of all registered rate laws, built-ins first."""
        with self._lock:
            return list(self._laws)

    def reserved_names(self):
        """Return every name species and parameters may not use."""
        with self._lock:
            return RESERVED_NAMES | frozenset(self._laws)

    def register(self, name, args, body):
        """
        Register a custom rate law.

        Parameters
        ----------
        name : string
            Function name. Must not clash with a built-in, a math function,
            a reserved name or a previously registered function.
        args : sequence of string
            Names of the formal arguments.
        body : string or sympy.Expr
            Expression over the arguments. May call built-in and previously
            registered rate laws.

        Returns
        -------
        The new :class:`RateLaw`.
        """
        if not isinstance(name, str) or not _NAME_REGEX.match(name) or \
                keyword.iskeyword(name):
            raise ValueError('Invalid rate law name: %r' % (name,))
        if isinstance(args, str):
            raise ValueError('args must be a list of strings')
        args = list(args)
        for arg in args:
            if not isinstance(arg, str) or not _NAME_REGEX.match(arg) or \
                    keyword.iskeyword(arg) or arg in RESERVED_NAMES:
                raise ValueError('Invalid argument name %r for rate law %s' %
                                 (arg, name))
        if len(set(args)) != len(args):
            raise ValueError('Duplicate argument names for rate law %s' %
                             name)
        symbols = {arg: sympy.Symbol(arg, real=True) for arg in args}
        if isinstance(body, str):
            body = parse_expression(body, symbols)
        else:
            body = sympy.sympify(body).xreplace(
                {sympy.Symbol(a): symbols[a] for a in args})
        free = body.free_symbols - set(symbols.values())
        if free:
            raise ValueError('Body of rate law %s uses undeclared symbol(s): '
                             '%s' % (name, ', '.join(sorted(map(str, free)))))
        with self._lock:
            if name in RESERVED_NAMES or name in self._laws:
                raise DuplicateDeclarationError(
                    'rate law name %r is already defined' % name)
            self.resolve(body)
            law = RateLaw(name, [symbols[a] for a in args], body)
            self._laws[name] = law
        self._logger.debug('Registered rate law %s(%s)', name,
                           ', '.join(args))
        return law

    def resolve(self, expr, line=None):
        """
        Check every function call in `expr` against the registry.

        The expression is returned unchanged.

        Raises
        ------
        UnknownRateFunctionError
            A called name is not registered, or its arity does not match.
        """
        with self._lock:
            for call in sorted(expr.atoms(AppliedUndef), key=str):
                name = call.func.__name__
                law = self._laws.get(name)
                if law is None:
                    raise UnknownRateFunctionError(
                        'unknown rate law function %r' % name, line=line)
                if len(call.args) != law.arity:
                    raise UnknownRateFunctionError(
                        '%s() takes %d argument(s), got %d' %
                        (name, law.arity, len(call.args)), line=line)
        return expr

    def inline(self, expr):
        """Return a copy of `expr` with every rate-law call expanded."""
        expr = sympy.sympify(expr)
        if not expr.args:
            return expr
        args = [self.inline(a) for a in expr.args]
        if isinstance(expr, AppliedUndef):
            name = expr.func.__name__
            with self._lock:
                law = self._laws.get(name)
            if law is None:
                raise UnknownRateFunctionError(
                    'unknown rate law function %r' % name)
            return self.inline(law(*args))
        return expr.func(*args)

    def __repr__(self):
        return '<%s (%s) at 0x%x>' % (self.__class__.__name__,
                                      ', '.join(self.names()), id(self))
