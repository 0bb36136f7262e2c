"""
Construction of :class:`pycrn.core.Network` objects.

Networks are normally compiled from reaction lines with
:func:`compile_network`, which runs the parser, checks every rate-law call
against a :class:`pycrn.ratelaws.RateLawRegistry` and hands the result to a
:class:`NetworkBuilder`. The builder can also be used directly to assemble a
network programmatically::

    builder = NetworkBuilder('dimerization')
    k = builder.parameter('k')
    X = builder.species('X')
    X2 = builder.species('X2')
    builder.reaction(k, {X: 2}, {X2: 1})
    network = builder.build()

Rates may be given as sympy expressions over the builder's components or as
strings, which are parsed with the components already declared.

In addition, the builder implements ``__getitem__`` so that
``builder['name']`` returns the species or parameter with the given name.
"""

import collections
import warnings
import sympy
from pycrn.core import Species, Parameter, Reaction, Network, TIME, \
    DuplicateDeclarationError, UnknownIdentifierError, \
    UnusedParameterWarning
from pycrn.ratelaws import RateLawRegistry, parse_expression
from pycrn.parser import ReactionParser
from pycrn.logging import get_logger

__all__ = ['NetworkBuilder', 'compile_network']


class NetworkBuilder(object):
    """
    Incrementally assemble an immutable :class:`pycrn.core.Network`.

    Parameters
    ----------
    name : string, optional
        Name given to the built network.
    registry : pycrn.ratelaws.RateLawRegistry, optional
        Rate laws visible to reaction rates. A fresh registry holding only the
        built-in rate laws is created if omitted.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.
    """

    def __init__(self, name=None, registry=None, verbose=False):
        self.name = name if name is not None else 'network'
        self.registry = registry if registry is not None else \
            RateLawRegistry()
        self._species = collections.OrderedDict()
        self._parameters = collections.OrderedDict()
        self._reactions = []
        self._logger = get_logger(__name__, network=self, log_level=verbose)

    # -- COMPONENT DECLARATIONS ----------------------------------------------
    def species(self, name, line=None):
        """Return the species called `name`, creating it on first use."""
        if name in self._species:
            return self._species[name]
        self._check_name(name, line)
        s = Species(name, len(self._species))
        self._species[name] = s
        self._logger.log(5, 'Added species %s', name)
        return s

    def parameter(self, name, line=None):
        """Declare a new parameter. Each name may be declared only once."""
        if name in self._parameters:
            raise DuplicateDeclarationError(
                'parameter %r declared more than once' % name, line=line)
        self._check_name(name, line)
        p = Parameter(name, len(self._parameters))
        self._parameters[name] = p
        self._logger.log(5, 'Added parameter %s', name)
        return p

    def _check_name(self, name, line):
        if name in self.registry.reserved_names():
            raise DuplicateDeclarationError(
                '%r is a reserved name' % name, line=line)
        if name in self._species:
            raise DuplicateDeclarationError(
                '%r is already declared as a species' % name, line=line)
        if name in self._parameters:
            raise DuplicateDeclarationError(
                '%r is already declared as a parameter' % name, line=line)

    def symbols(self):
        """Return a dict of every declared component keyed by name."""
        symbols = dict(self._species)
        symbols.update(self._parameters)
        return symbols

    # -- REACTIONS -----------------------------------------------------------
    def reaction(self, rate, reactants, products, mass_action=True,
                 reversible=False, reverse=False, line=None):
        """
        Add a unidirectional reaction.

        Parameters
        ----------
        rate : string, number or sympy.Expr
            Rate expression. Plain sympy symbols are matched to declared
            components by name.
        reactants, products : dict
            Stoichiometric coefficients keyed by species or species name.
        mass_action : bool, optional
            Multiply the rate by the mass-action monomial (default) or use it
            as the complete rate law.
        reversible, reverse : bool, optional
            Mark the reaction as a half of a reversible arrow.
        line : int, optional
            Source line used in error messages.

        Returns
        -------
        The new :class:`pycrn.core.Reaction`.
        """
        rate = self._rate_expression(rate, line)
        reaction = Reaction(len(self._reactions), rate,
                            self._side(reactants, line),
                            self._side(products, line),
                            mass_action=mass_action, reversible=reversible,
                            reverse=reverse, line=line)
        self._reactions.append(reaction)
        self._logger.log(5, 'Added reaction %r', reaction)
        return reaction

    def _rate_expression(self, rate, line):
        symbols = self.symbols()
        if isinstance(rate, str):
            rate = parse_expression(rate, symbols, line=line)
        else:
            rate = sympy.sympify(rate)
            rate = rate.xreplace({sympy.Symbol(name): c for name, c in
                                  symbols.items()})
            rate = rate.xreplace({sympy.Symbol(TIME.name): TIME})
        self.registry.resolve(rate, line=line)
        unknown = rate.free_symbols - set(symbols.values()) - {TIME}
        if unknown:
            raise UnknownIdentifierError(
                'undeclared identifier(s) in rate expression: %s' %
                ', '.join(sorted(str(u) for u in unknown)), line=line)
        return rate

    def _side(self, side, line):
        indices = collections.OrderedDict()
        for s, coeff in side.items():
            if isinstance(s, Species):
                if self._species.get(s.name) is not s:
                    raise UnknownIdentifierError(
                        'species %s does not belong to this builder' % s.name,
                        line=line)
            elif s in self._species:
                s = self._species[s]
            else:
                raise UnknownIdentifierError('unknown species %r' % (s,),
                                             line=line)
            indices[s.index] = indices.get(s.index, 0) + coeff
        return indices

    def __getitem__(self, name):
        """Return the species or parameter with the given name."""
        return self.symbols()[name]

    # -- NETWORK -------------------------------------------------------------
    def build(self):
        """
        Return a new immutable network from the current declarations.

        Declared parameters not used by any reaction trigger an
        :class:`pycrn.core.UnusedParameterWarning`.
        """
        used = set()
        for rxn in self._reactions:
            used |= rxn.rate.free_symbols
        for p in self._parameters.values():
            if p not in used:
                warnings.warn('Parameter %s is not used by any reaction' %
                              p.name, UnusedParameterWarning, stacklevel=2)
        network = Network(self.name, self._species.values(),
                          self._parameters.values(), self._reactions)
        self._logger.info('Built network with %d species, %d parameters and '
                          '%d reactions', network.num_species,
                          network.num_parameters, network.num_reactions)
        return network


def compile_network(lines, parameters=None, registry=None, name=None,
                    verbose=False):
    """
    Compile reaction lines into a :class:`pycrn.core.Network`.

    Parameters
    ----------
    lines : string or sequence of string
        Reaction statements, one per line (see :mod:`pycrn.parser`).
    parameters : sequence of string, optional
        Names of the free parameters in declaration order. A single string of
        space or comma separated names is accepted too.
    registry : pycrn.ratelaws.RateLawRegistry, optional
        Registry holding custom rate laws. Custom laws must be registered
        before compiling.
    name : string, optional
        Network name, used in log messages.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.

    Returns
    -------
    pycrn.core.Network

    Raises
    ------
    pycrn.core.CompileError
        For any error in the input; no network is produced.

    Examples
    --------

    >>> from pycrn import compile_network
    >>> network = compile_network('''
    ...     k1, X --> 2X
    ...     k2, 2X --> X
    ... ''', ['k1', 'k2'], name='autocatalysis')
    >>> network.num_reactions
    2
    """
    parsed = ReactionParser(verbose=verbose).parse(lines, parameters)
    builder = NetworkBuilder(name, registry=registry, verbose=verbose)
    for species_name, line in parsed.species.items():
        builder.species(species_name, line=line)
    for parameter_name in parsed.parameters:
        builder.parameter(parameter_name)
    for raw in parsed.reactions:
        builder.reaction(raw.rate, raw.reactants, raw.products,
                         mass_action=raw.mass_action,
                         reversible=raw.reversible, reverse=raw.reverse,
                         line=raw.line)
    return builder.build()
