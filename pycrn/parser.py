"""
Parser for the reaction-line notation.

Each statement reads ``rate, reactants ARROW products``::

    k1, A + B --> C              # forward, mass action
    (k1, k2), A <--> B           # reversible: forward rate, backward rate
    k1, k2, A <--> B             # same as above
    kd, X --> 0                  # degradation (0, ∅ or nothing is empty)
    hill(X, v, K, n), ∅ --> Y    # rate-law functions
    v*X/(K + X), X => 0          # '=>' uses the rate as written
    (k1, k2), (S1, S2) --> P     # tuple shorthand, two reactions

Arrows
======

=============  ==========================  ==================
Direction      Mass-action arrows          Rate used as is
=============  ==========================  ==================
forward        ``-->  ->  →  ⟶``           ``=>  ⇒``
backward       ``<--  <-  ←  ⟵``           ``<=  ⇐``
reversible     ``<-->  <->  ↔  ⟷``         ``<=>  ⇔``
=============  ==========================  ==================

Backward arrows swap the two sides. Reversible arrows expand into a forward
reaction immediately followed by its backward twin and need two rates per
reaction.

Tuple shorthand
===============

A side or the rate specification written as a parenthesised list of length k
expands the line into k reactions, paired by position. Lists of length one
are broadcast. For reversible lines the rates may be one (forward, backward)
pair, k pairs, or 2k values read as consecutive pairs.
"""

import collections
import re
import keyword
from ply import lex
import sympy
from pycrn.core import MalformedLineError, ArityMismatchError
from pycrn.ratelaws import parse_expression, NOTHING
from pycrn.logging import get_logger

__all__ = ['Arrow', 'RawReaction', 'ParsedNetwork', 'ReactionParser',
           'parse_reactions', 'ARROWS', 'FORWARD', 'BACKWARD', 'REVERSIBLE']

FORWARD = 'forward'
BACKWARD = 'backward'
REVERSIBLE = 'reversible'

Arrow = collections.namedtuple('Arrow', ['direction', 'mass_action'])

ARROWS = {
    '-->': Arrow(FORWARD, True),
    '->': Arrow(FORWARD, True),
    '→': Arrow(FORWARD, True),
    '⟶': Arrow(FORWARD, True),
    '=>': Arrow(FORWARD, False),
    '⇒': Arrow(FORWARD, False),
    '<--': Arrow(BACKWARD, True),
    '<-': Arrow(BACKWARD, True),
    '←': Arrow(BACKWARD, True),
    '⟵': Arrow(BACKWARD, True),
    '<=': Arrow(BACKWARD, False),
    '⇐': Arrow(BACKWARD, False),
    '<-->': Arrow(REVERSIBLE, True),
    '<->': Arrow(REVERSIBLE, True),
    '↔': Arrow(REVERSIBLE, True),
    '⟷': Arrow(REVERSIBLE, True),
    '<=>': Arrow(REVERSIBLE, False),
    '⇔': Arrow(REVERSIBLE, False),
}

# Longest spellings first so '<-->' is never read as '<--' followed by '>'.
_ARROW_REGEX = '|'.join(re.escape(a) for a in
                        sorted(ARROWS, key=len, reverse=True))


class RawReaction(object):
    """
    A unidirectional reaction statement before network construction.

    Species are referred to by name; `rate` is a sympy expression whose
    identifiers are still plain sympy symbols.
    """

    def __init__(self, rate, reactants, products, mass_action=True,
                 reversible=False, reverse=False, line=None):
        self.rate = rate
        self.reactants = reactants
        self.products = products
        self.mass_action = mass_action
        self.reversible = reversible
        self.reverse = reverse
        self.line = line

    def __repr__(self):
        def side(s):
            return ' + '.join('%s%s' % ('' if c == 1 else c, n)
                              for n, c in s.items()) or '0'
        return '%s(%s, %s %s %s)' % (
            self.__class__.__name__, self.rate, side(self.reactants),
            '-->' if self.mass_action else '=>', side(self.products))


ParsedNetwork = collections.namedtuple(
    'ParsedNetwork', ['reactions', 'species', 'parameters'])


class CrnLexer(object):
    """PLY lexer for a single reaction line."""

    tokens = (
        'ARROW',
        'NUMBER',
        'NAME',
        'NOTHING',
        'PLUS',
        'MINUS',
        'TIMES',
        'DIVIDE',
        'POWER',
        'LPAREN',
        'RPAREN',
        'COMMA',
    )

    t_PLUS = r'\+'
    t_MINUS = r'-'
    t_POWER = r'\*\*|\^'
    t_TIMES = r'\*'
    t_DIVIDE = r'/'
    t_LPAREN = r'\('
    t_RPAREN = r'\)'
    t_COMMA = r','

    t_ignore = ' \t\r'

    def __init__(self):
        self.line = None
        self.lexer = lex.lex(module=self, errorlog=lex.NullLogger())

    # Match and ignore comments (# to end of line)
    def t_comment(self, t):
        r'\#.*'

    @lex.TOKEN(_ARROW_REGEX)
    def t_ARROW(self, t):
        return t

    def t_NOTHING(self, t):
        r'∅'
        return t

    def t_NUMBER(self, t):
        r'(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?'
        return t

    def t_NAME(self, t):
        r'[A-Za-z_][A-Za-z0-9_]*'
        if t.value == NOTHING:
            t.type = 'NOTHING'
        return t

    def t_error(self, t):
        raise MalformedLineError('illegal character %r' % t.value[0],
                                 line=self.line, column=t.lexpos + 1)

    def tokenize(self, text, line=None):
        self.line = line
        self.lexer.input(text)
        return list(iter(self.lexer.token, None))


class ReactionParser(object):
    """
    Turn reaction lines into :class:`RawReaction` statements.

    Parameters
    ----------
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.
    """

    def __init__(self, verbose=False):
        self._lexer = CrnLexer()
        self._logger = get_logger(__name__, log_level=verbose)

    def parse(self, lines, parameters=None):
        """
        Parse a compilation unit.

        Parameters
        ----------
        lines : string or sequence of string
            Reaction statements. A string is split into lines; in either case
            blank lines and comments are skipped and line numbers refer to
            the input lines.
        parameters : sequence of string, optional
            Names of the free parameters, in declaration order.

        Returns
        -------
        ParsedNetwork
            Reactions after arrow and shorthand expansion, an ordered dict of
            species names (first appearance order) to the line they first
            appear on, and the parameter names.
        """
        if isinstance(lines, str):
            lines = lines.splitlines()
        if parameters is None:
            parameters = []
        elif isinstance(parameters, str):
            parameters = parameters.replace(',', ' ').split()
        reactions = []
        species = collections.OrderedDict()
        for lineno, text in enumerate(lines, start=1):
            tokens = self._lexer.tokenize(text, lineno)
            if not tokens:
                continue
            new = self._parse_line(text, tokens, lineno, species)
            self._logger.debug('Line %d expands to %d reaction(s)', lineno,
                               len(new))
            reactions.extend(new)
        self._logger.debug('Parsed %d reactions over %d species',
                           len(reactions), len(species))
        return ParsedNetwork(reactions, species, list(parameters))

    def _parse_line(self, text, tokens, line, species):
        arrows = [i for i, tok in enumerate(tokens) if tok.type == 'ARROW']
        if len(arrows) != 1:
            raise MalformedLineError(
                'expected exactly one reaction arrow, found %d' % len(arrows),
                line=line)
        arrow_pos = arrows[0]
        depths = _depths(tokens, line)
        if depths[arrow_pos] != 0:
            raise MalformedLineError('reaction arrow inside parentheses',
                                     line=line)
        commas = [i for i in range(arrow_pos)
                  if tokens[i].type == 'COMMA' and depths[i] == 0]
        if not commas:
            raise MalformedLineError(
                'no comma separating the rate from the reaction', line=line)
        split = commas[-1]
        arrow = ARROWS[tokens[arrow_pos].value]

        lhs = self._parse_side(tokens[split + 1:arrow_pos], line)
        rhs = self._parse_side(tokens[arrow_pos + 1:], line)
        if arrow.direction != REVERSIBLE and \
                len(_split(tokens[:split], 'COMMA', line)) > 1:
            raise ArityMismatchError(
                'one-way reactions take a single rate; write several rates '
                'as a parenthesised list', line=line)
        rates = self._parse_rates(text, tokens[:split], line)
        return _expand(arrow, rates, lhs, rhs, line, species)

    def _parse_rates(self, text, tokens, line):
        items = [self._parse_rate_item(text, item, line)
                 for item in _split(tokens, 'COMMA', line)]
        if len(items) == 1 and isinstance(items[0], tuple):
            items = list(items[0])
        return items

    def _parse_rate_item(self, text, tokens, line):
        if not tokens:
            raise MalformedLineError('empty rate expression', line=line)
        elements = _tuple_elements(tokens, line)
        if elements is not None:
            return tuple(self._parse_rate_item(text, el, line)
                         for el in elements)
        if _wrapped(tokens):
            return self._parse_rate_item(text, tokens[1:-1], line)
        start = tokens[0].lexpos
        end = tokens[-1].lexpos + len(tokens[-1].value)
        for tok in tokens:
            if tok.type == 'NAME' and keyword.iskeyword(tok.value):
                raise MalformedLineError(
                    'reserved word %r in rate expression' % tok.value,
                    line=line, column=tok.lexpos + 1)
        expr = parse_expression(text[start:end], {}, line=line)
        if not isinstance(expr, sympy.Expr):
            raise MalformedLineError(
                'rate "%s" is not an expression' % text[start:end], line=line)
        return expr

    def _parse_side(self, tokens, line):
        if not tokens:
            raise MalformedLineError(
                'empty reaction side (use 0 or ∅ for no species)', line=line)
        elements = _tuple_elements(tokens, line)
        if elements is None:
            elements = [_strip_parens(tokens)]
        return [self._parse_multiset(el, line) for el in elements]

    def _parse_multiset(self, tokens, line):
        terms = _split(tokens, 'PLUS', line)
        if len(terms) == 1 and _is_nothing(terms[0]):
            return collections.OrderedDict()
        multiset = collections.OrderedDict()
        for term in terms:
            term = _split_exponent(term)
            types = [tok.type for tok in term]
            if types == ['NAME']:
                coeff, name_tok = 1, term[0]
            elif types in (['NUMBER', 'NAME'], ['NUMBER', 'TIMES', 'NAME']):
                coeff, name_tok = _coefficient(term[0], line), term[-1]
            else:
                bad = term[0] if term else tokens[0]
                raise MalformedLineError(
                    'invalid species term', line=line, column=bad.lexpos + 1)
            name = name_tok.value
            if keyword.iskeyword(name):
                raise MalformedLineError(
                    'reserved word %r used as a species' % name, line=line,
                    column=name_tok.lexpos + 1)
            multiset[name] = multiset.get(name, 0) + coeff
        return multiset


def _depths(tokens, line):
    """Return the parenthesis depth in front of every token."""
    depth = 0
    depths = []
    for tok in tokens:
        if tok.type == 'RPAREN':
            depth -= 1
            if depth < 0:
                raise MalformedLineError('unbalanced parentheses', line=line,
                                         column=tok.lexpos + 1)
        depths.append(depth)
        if tok.type == 'LPAREN':
            depth += 1
    if depth != 0:
        raise MalformedLineError('unbalanced parentheses', line=line)
    return depths


def _split(tokens, token_type, line):
    """Split a token run on top-level tokens of the given type."""
    parts = [[]]
    for tok, depth in zip(tokens, _depths(tokens, line)):
        if tok.type == token_type and depth == 0:
            parts.append([])
        else:
            parts[-1].append(tok)
    return parts


def _wrapped(tokens):
    """True if the whole run is enclosed in one pair of parentheses."""
    if len(tokens) < 2 or tokens[0].type != 'LPAREN' or \
            tokens[-1].type != 'RPAREN':
        return False
    depth = 0
    for tok in tokens[:-1]:
        if tok.type == 'LPAREN':
            depth += 1
        elif tok.type == 'RPAREN':
            depth -= 1
        if depth == 0:
            return False
    return True


def _tuple_elements(tokens, line):
    """Return the elements of a parenthesised list, or None."""
    if not _wrapped(tokens):
        return None
    elements = _split(tokens[1:-1], 'COMMA', line)
    if len(elements) < 2:
        return None
    if any(not el for el in elements):
        raise MalformedLineError('empty element in list', line=line,
                                 column=tokens[0].lexpos + 1)
    return elements


def _strip_parens(tokens):
    while _wrapped(tokens):
        tokens = tokens[1:-1]
    return tokens


def _split_exponent(term):
    """
    Re-read a leading NUMBER such as ``2E1`` as coefficient 2 on species E1.

    The lexer reads it as a float with an exponent; in a species term it can
    only be a coefficient followed by a name. A NAME token directly after it
    belongs to the same species name (``2e1X`` is 2 of ``e1X``).
    """
    if not term or term[0].type != 'NUMBER':
        return term
    match = re.match(r'(\d+)([eE]\d+)\Z', term[0].value)
    if not match:
        return term
    first = term[0]
    digits, name = match.groups()
    rest = term[1:]
    if rest and rest[0].type == 'NAME' and \
            rest[0].lexpos == first.lexpos + len(first.value):
        name += rest[0].value
        rest = rest[1:]
    return [_token('NUMBER', digits, first.lexpos),
            _token('NAME', name, first.lexpos + len(digits))] + rest


def _token(type_, value, lexpos):
    tok = lex.LexToken()
    tok.type = type_
    tok.value = value
    tok.lineno = 1
    tok.lexpos = lexpos
    return tok


def _is_nothing(term):
    if len(term) != 1:
        return False
    tok = term[0]
    return tok.type == 'NOTHING' or (tok.type == 'NUMBER' and
                                     re.match(r'0+\Z', tok.value))


def _coefficient(tok, line):
    if not re.match(r'\d+\Z', tok.value) or int(tok.value) == 0:
        raise MalformedLineError(
            'stoichiometric coefficient must be a positive integer, got %s' %
            tok.value, line=line, column=tok.lexpos + 1)
    return int(tok.value)


def _broadcast(items, k):
    return items * k if len(items) == 1 else items


def _rate_pairs(rates, line):
    """Group the rates of a reversible line into (forward, backward) pairs."""
    if all(isinstance(r, tuple) for r in rates):
        if any(len(r) != 2 for r in rates):
            raise ArityMismatchError(
                'each reversible rate tuple needs exactly two rates',
                line=line)
        return [tuple(r) for r in rates]
    if any(isinstance(r, tuple) for r in rates):
        raise ArityMismatchError('cannot mix rate tuples and single rates',
                                 line=line)
    if len(rates) % 2:
        raise ArityMismatchError(
            'reversible reactions require two rates each, got %d rate(s)' %
            len(rates), line=line)
    return list(zip(rates[::2], rates[1::2]))


def _expand(arrow, rates, lhs, rhs, line, species):
    """
    Expand one parsed line into unidirectional reactions.

    Species met for the first time are added to `species` in the order they
    are written within each expanded reaction.
    """
    if arrow.direction == REVERSIBLE:
        rates = _rate_pairs(rates, line)
    elif any(isinstance(r, tuple) for r in rates):
        raise ArityMismatchError(
            'nested rate tuples are only valid for reversible reactions',
            line=line)
    lengths = (len(rates), len(lhs), len(rhs))
    k = max(lengths)
    if any(n not in (1, k) for n in lengths):
        raise ArityMismatchError(
            'cannot pair %d rate(s), %d reactant list(s) and %d product '
            'list(s)' % lengths, line=line)

    reactions = []
    for rate, left, right in zip(_broadcast(rates, k), _broadcast(lhs, k),
                                 _broadcast(rhs, k)):
        for name in list(left) + list(right):
            species.setdefault(name, line)
        if arrow.direction == FORWARD:
            reactions.append(RawReaction(rate, left, right, arrow.mass_action,
                                         line=line))
        elif arrow.direction == BACKWARD:
            reactions.append(RawReaction(rate, right, left, arrow.mass_action,
                                         line=line))
        elif arrow.direction == REVERSIBLE:
            forward, backward = rate
            reactions.append(RawReaction(forward, left, right,
                                         arrow.mass_action, reversible=True,
                                         line=line))
            reactions.append(RawReaction(backward, right, left,
                                         arrow.mass_action, reversible=True,
                                         reverse=True, line=line))
        else:
            raise ValueError('Unknown arrow direction: %s' % arrow.direction)
    return reactions


def parse_reactions(lines, parameters=None, verbose=False):
    """Parse reaction lines; see :meth:`ReactionParser.parse`."""
    return ReactionParser(verbose=verbose).parse(lines, parameters)
