import re
import math
import types
import keyword
import sympy
import scipy.sparse
import numpy as np

__all__ = ['TIME', 'Species', 'Parameter', 'Reaction', 'Network',
           'CompileError', 'MalformedLineError', 'ArityMismatchError',
           'UnknownIdentifierError', 'UnknownRateFunctionError',
           'DuplicateDeclarationError', 'DegenerateReactionError',
           'InvalidComponentNameError', 'DomainFault',
           'UnusedParameterWarning']


#: Symbol for simulation time; usable inside any rate expression as ``t``.
TIME = sympy.Symbol('t', real=True)


class Symbol(sympy.Symbol):
    def __new__(cls, name, real=True, **kwargs):
        # Bypass the sympy symbol cache: components carry per-network state
        # (their index) which must never be shared between two networks.
        return sympy.Symbol.__xnew__(cls, name, real=real, **kwargs)


class Component(object):

    """
    The base class for the named things contained within a network.

    Parameters
    ----------
    name : string
        Name of the component. Must be unique within the containing network.
    index : int
        Position of the component in its network sequence.

    Attributes
    ----------
    name : string
        Name of the component.
    index : int
        Position of the component in the network's species or parameter
        sequence.

    """
    _VARIABLE_NAME_REGEX = re.compile(r'[_a-z][_a-z0-9]*\Z', re.IGNORECASE)

    def __init__(self, name, index):
        if not self._VARIABLE_NAME_REGEX.match(name) or \
                keyword.iskeyword(name):
            raise InvalidComponentNameError(name)
        self.index = index


class Species(Component, Symbol):

    """
    A molecular or entity type tracked by a population count.

    Species are created the first time a reaction line mentions them and are
    ordered by first appearance. Being sympy symbols, they appear directly in
    rate expressions.
    """

    def __new__(cls, name, index=0):
        return super(Species, cls).__new__(cls, name, real=True)

    def __init__(self, name, index=0):
        Component.__init__(self, name, index)

    def __repr__(self):
        return '%s(%s, %d)' % (self.__class__.__name__, repr(self.name),
                               self.index)

    def __str__(self):
        return self.name


class Parameter(Component, Symbol):

    """
    A free, named rate constant.

    Parameters carry no value; values are bound by whoever evaluates the
    generated functions, positionally in declaration order.
    """

    def __new__(cls, name, index=0):
        return super(Parameter, cls).__new__(cls, name, real=True)

    def __init__(self, name, index=0):
        Component.__init__(self, name, index)

    def __repr__(self):
        return '%s(%s, %d)' % (self.__class__.__name__, repr(self.name),
                               self.index)

    def __str__(self):
        return self.name


class Reaction(object):

    """
    A single unidirectional reaction of a network.

    Parameters
    ----------
    index : int
        Position of the reaction in the network.
    rate : sympy.Expr
        The rate-law expression exactly as written (built-in and custom rate
        law calls are kept as unevaluated function applications).
    reactants, products : dict of int => int
        Stoichiometric coefficients keyed by species index. Coefficients are
        positive integers; species absent from a side are omitted.
    mass_action : bool, optional
        If True (default) the rate is multiplied by the mass-action monomial
        of the reactants; if False it is used as the complete rate law.
    reversible : bool, optional
        True if the reaction is one half of a reversible arrow.
    reverse : bool, optional
        True if the reaction is the backward half of a reversible arrow.
    line : int, optional
        1-based source line the reaction was compiled from.

    Attributes
    ----------
    Identical to Parameters (see above), plus ``net_change``, a dict of the
    non-zero net stoichiometric changes keyed by species index.

    """

    def __init__(self, index, rate, reactants, products, mass_action=True,
                 reversible=False, reverse=False, line=None):
        for side in (reactants, products):
            for coeff in side.values():
                if int(coeff) != coeff or coeff <= 0:
                    raise ValueError('Stoichiometric coefficients must be '
                                     'positive integers, got %r' % coeff)
        self.index = index
        self.rate = sympy.sympify(rate)
        self.reactants = types.MappingProxyType(
            {int(s): int(c) for s, c in reactants.items()})
        self.products = types.MappingProxyType(
            {int(s): int(c) for s, c in products.items()})
        self.mass_action = mass_action
        self.reversible = reversible
        self.reverse = reverse
        self.line = line
        net = {}
        for s, c in self.reactants.items():
            net[s] = net.get(s, 0) - c
        for s, c in self.products.items():
            net[s] = net.get(s, 0) + c
        self.net_change = types.MappingProxyType(
            {s: c for s, c in net.items() if c != 0})
        if not self.net_change:
            raise DegenerateReactionError(
                'reaction has no net stoichiometric change', line=line)

    def species_indices(self):
        """Return the set of species indices on either side."""
        return set(self.reactants) | set(self.products)

    def __repr__(self):
        return '%s(%d, %s, %s, %s%s)' % (
            self.__class__.__name__, self.index, self.rate,
            dict(self.reactants), dict(self.products),
            '' if self.mass_action else ', mass_action=False')


class Network(object):

    """
    An immutable chemical reaction network.

    Instances are built by :class:`pycrn.builder.NetworkBuilder` (usually via
    :func:`pycrn.builder.compile_network`) and read by the code generators.

    Parameters
    ----------
    name : string
        Name of the network, used in log messages.
    species : sequence of Species
        Species in index order.
    parameters : sequence of Parameter
        Parameters in declaration order.
    reactions : sequence of Reaction
        Unidirectional reactions in compilation order.

    Attributes
    ----------
    species, parameters, reactions : tuple
        The network contents (see Parameters above).
    stoichiometry_matrix : scipy.sparse.csr_matrix
        Net stoichiometric changes, one row per species and one column per
        reaction.
    reactant_matrix, product_matrix : scipy.sparse.csr_matrix
        Reactant and product coefficients with the same layout.

    """

    def __init__(self, name, species, parameters, reactions):
        self.name = name
        self._species = tuple(species)
        self._parameters = tuple(parameters)
        self._reactions = tuple(reactions)
        self._species_map = types.MappingProxyType(
            {s.name: s for s in self._species})
        self._parameters_map = types.MappingProxyType(
            {p.name: p for p in self._parameters})
        self._validate()
        self._reactant_matrix = self._side_matrix('reactants')
        self._product_matrix = self._side_matrix('products')
        self._stoichiometry_matrix = (self._product_matrix -
                                      self._reactant_matrix).tocsr()

    def _validate(self):
        for i, s in enumerate(self._species):
            if s.index != i:
                raise ValueError('Species %s has index %d, expected %d' %
                                 (s.name, s.index, i))
        for i, p in enumerate(self._parameters):
            if p.index != i:
                raise ValueError('Parameter %s has index %d, expected %d' %
                                 (p.name, p.index, i))
        known = set(self._species) | set(self._parameters) | {TIME}
        for rxn in self._reactions:
            for s in rxn.species_indices():
                if not 0 <= s < len(self._species):
                    raise UnknownIdentifierError(
                        'species index %d out of range' % s, line=rxn.line)
            unknown = rxn.rate.free_symbols - known
            if unknown:
                raise UnknownIdentifierError(
                    'undeclared identifier(s) in rate expression: %s' %
                    ', '.join(sorted(str(u) for u in unknown)),
                    line=rxn.line)

    def _side_matrix(self, side):
        shape = (len(self._species), len(self._reactions))
        mat = scipy.sparse.lil_matrix(shape, dtype=np.int64)
        for j, rxn in enumerate(self._reactions):
            for i, coeff in getattr(rxn, side).items():
                mat[i, j] = coeff
        return mat.tocsr()

    @property
    def species(self):
        return self._species

    @property
    def parameters(self):
        return self._parameters

    @property
    def reactions(self):
        return self._reactions

    @property
    def num_species(self):
        return len(self._species)

    @property
    def num_parameters(self):
        return len(self._parameters)

    @property
    def num_reactions(self):
        return len(self._reactions)

    @property
    def species_map(self):
        """Read-only mapping of species names to Species."""
        return self._species_map

    @property
    def parameters_map(self):
        """Read-only mapping of parameter names to Parameters."""
        return self._parameters_map

    @property
    def stoichiometry_matrix(self):
        return self._stoichiometry_matrix

    @property
    def reactant_matrix(self):
        return self._reactant_matrix

    @property
    def product_matrix(self):
        return self._product_matrix

    def species_index(self, name):
        """Return the index of the species with the given name."""
        try:
            return self._species_map[name].index
        except KeyError:
            raise UnknownIdentifierError('no species named %r' % name)

    def parameter_index(self, name):
        """Return the index of the parameter with the given name."""
        try:
            return self._parameters_map[name].index
        except KeyError:
            raise UnknownIdentifierError('no parameter named %r' % name)

    def _as_reaction(self, reaction):
        if isinstance(reaction, Reaction):
            return reaction
        return self._reactions[reaction]

    def net_stoichiometry(self, reaction):
        """Return the net change of a reaction as {species name: change}."""
        rxn = self._as_reaction(reaction)
        return {self._species[s].name: c for s, c in rxn.net_change.items()}

    def rate_law(self, reaction, combinatoric=False):
        """
        Return the full rate law of a reaction as a sympy expression.

        For mass-action reactions the written rate is multiplied by
        ``u**c / c!`` for every reactant ``u`` with coefficient ``c``, or, if
        `combinatoric` is True, by the falling factorial
        ``u*(u-1)*...*(u-c+1) / c!`` which counts distinct reactant
        combinations of integer populations (propensities). Reactions using a
        rate-as-is arrow return the written rate unchanged.

        Parameters
        ----------
        reaction : Reaction or int
            The reaction or its index.
        combinatoric : bool, optional
            Use combinatorial (jump) kinetics instead of deterministic ones.
        """
        rxn = self._as_reaction(reaction)
        if not rxn.mass_action:
            return rxn.rate
        factors = [rxn.rate]
        for index, coeff in rxn.reactants.items():
            s = self._species[index]
            if combinatoric:
                factors.extend(s - i for i in range(coeff))
            else:
                factors.append(s ** coeff)
            if coeff > 1:
                factors.append(sympy.Rational(1, math.factorial(coeff)))
        return sympy.Mul(*factors)

    @property
    def odes(self):
        """
        Return sympy expressions for the time derivative of each species.

        Rate-law function calls are left as written; see
        :class:`pycrn.generator.ode.OdeGenerator` for the inlined forms.
        """
        rates = [self.rate_law(rxn) for rxn in self._reactions]
        odes = []
        for i in range(len(self._species)):
            row = self._stoichiometry_matrix.getrow(i)
            odes.append(sympy.Add(*[int(c) * rates[j] for j, c in
                                    zip(row.indices, row.data)]))
        return sympy.Matrix(len(odes), 1, odes)

    def __repr__(self):
        return '<%s %r (species: %d, parameters: %d, reactions: %d) at 0x%x>' % \
            (self.__class__.__name__, self.name, len(self._species),
             len(self._parameters), len(self._reactions), id(self))


class CompileError(ValueError):
    """A network could not be compiled; nothing is produced."""
    def __init__(self, message, line=None, column=None):
        self.line = line
        self.column = column
        if line is not None:
            if column is not None:
                message = 'line %d, column %d: %s' % (line, column, message)
            else:
                message = 'line %d: %s' % (line, message)
        ValueError.__init__(self, message)


class MalformedLineError(CompileError):
    """A reaction line cannot be parsed."""
    pass


class ArityMismatchError(CompileError):
    """Tuple shorthand lengths or function arguments do not line up."""
    pass


class UnknownIdentifierError(CompileError):
    """A species, parameter or function is used but never declared."""
    pass


class UnknownRateFunctionError(UnknownIdentifierError, ArityMismatchError):
    """A rate-law function is not registered or is called with the wrong
    number of arguments."""
    pass


class DuplicateDeclarationError(CompileError):
    """A name is declared twice, or clashes with a reserved name."""
    pass


class DegenerateReactionError(CompileError):
    """A reaction leaves every species population unchanged."""
    pass


class InvalidComponentNameError(MalformedLineError):
    """Inappropriate species or parameter name."""
    def __init__(self, name, line=None):
        MalformedLineError.__init__(
            self, "Not a valid component name: '%s'" % name, line=line)


class DomainFault(ValueError):
    """A generated function was evaluated outside its mathematical domain."""
    pass


class UnusedParameterWarning(UserWarning):
    """A declared parameter is not used by any reaction."""
    pass
