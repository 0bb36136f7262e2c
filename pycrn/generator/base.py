import sympy
import numpy as np
from pycrn.core import TIME
from pycrn.ratelaws import RateLawRegistry
from pycrn.logging import get_logger


class KineticsGenerator(object):
    """
    Shared machinery for generating numerical functions from a network.

    The rate law of every reaction is expanded (built-in and custom rate-law
    calls inlined) and rewritten in terms of three symbols: ``u`` for the
    species populations, ``p`` for the parameters and ``t`` for time.
    Subclasses combine the resulting kinetics vector with the network's
    stoichiometry to build drift, diffusion or jump functions. Numerical
    functions are created with :func:`sympy.lambdify` on first use.

    Generators read the network they are given at construction time only; a
    changed network needs a new generator.

    This is an abstract base class; subclasses set `combinatoric` and add
    their own functions.

    Parameters
    ----------
    network : pycrn.core.Network
        Network to generate functions for.
    registry : pycrn.ratelaws.RateLawRegistry, optional
        Registry used to inline rate-law calls. Must contain every custom
        rate law used by the network. Defaults to a registry with the
        built-in rate laws only.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.

    Attributes
    ----------
    u : sympy.MatrixSymbol
        Symbol "u" representing the population of all network species.
    p : sympy.MatrixSymbol
        Symbol "p" representing all network parameters.
    t : sympy.Symbol
        Time.
    rate_laws : sympy.Matrix
        Inlined rate laws in terms of the species and parameter symbols.
    kinetics : sympy.Matrix
        Inlined rate laws in terms of u, p and t.
    stoichiometry_matrix : scipy.sparse.csr_matrix
        The network's stoichiometry matrix.
    """

    combinatoric = False

    def __init__(self, network, registry=None, verbose=False):
        self.network = network
        self.registry = registry if registry is not None else \
            RateLawRegistry()
        self._logger = get_logger(self.__module__, network=network,
                                  log_level=verbose)
        self.u = sympy.MatrixSymbol('u', network.num_species, 1)
        self.p = sympy.MatrixSymbol('p', network.num_parameters, 1)
        self.t = TIME
        self.stoichiometry_matrix = network.stoichiometry_matrix
        self._subs = dict(zip(network.species,
                              [self.u[i, 0] for i in
                               range(network.num_species)]))
        self._subs.update(zip(network.parameters,
                              [self.p[i, 0] for i in
                               range(network.num_parameters)]))
        self._logger.debug('Inlining rate laws')
        self.rate_laws = sympy.Matrix(network.num_reactions, 1, [
            self.registry.inline(network.rate_law(rxn, self.combinatoric))
            for rxn in network.reactions
        ])
        self.kinetics = self.to_vector_form(self.rate_laws)
        self._kinetics_fn = None

    @property
    def num_species(self):
        """Number of species in the network."""
        return self.stoichiometry_matrix.shape[0]

    @property
    def num_reactions(self):
        """Number of reactions in the network."""
        return self.stoichiometry_matrix.shape[1]

    @property
    def stoichiometry(self):
        """The stoichiometry matrix as a dense sympy Matrix."""
        return sympy.Matrix(self.stoichiometry_matrix.toarray())

    def to_vector_form(self, expr):
        """Rewrite an expression over network components in terms of u, p."""
        return expr.xreplace(self._subs)

    def lambdify(self, expr):
        """Return a numpy function f(u, p, t) evaluating `expr`."""
        return sympy.lambdify([self.u, self.p, self.t], expr, modules='numpy')

    @property
    def kinetics_fn(self):
        """The reaction rates function v(u, p, t)."""
        if self._kinetics_fn is None:
            self._logger.debug('Constructing kinetics function')
            self._kinetics_fn = self._matrix_fn(self.kinetics)
        return self._kinetics_fn

    def _matrix_fn(self, expr):
        # lambdify cannot print empty matrices
        if 0 in expr.shape:
            shape = expr.shape

            def empty(u, p, t):
                return np.zeros(shape)
            return empty

        fn = self.lambdify(expr)

        def evaluate(u, p, t):
            # Constant entries come back as scalars; broadcast fixes the shape
            result = np.array(fn(u, p, t), dtype=float)
            return np.broadcast_to(result, expr.shape).copy()
        return evaluate

    def state_vector(self, u):
        """Return `u` as a float column vector, checking its length."""
        u = np.asarray(u, dtype=float)
        if u.shape not in ((self.num_species,), (self.num_species, 1)):
            raise ValueError('State vector must have length %d (number of '
                             'species), got shape %s' %
                             (self.num_species, u.shape))
        return u.reshape(self.num_species, 1)

    def param_vector(self, p):
        """
        Return the parameter values as a float column vector.

        Parameters
        ----------
        p : dict or vector-like
            Parameter values keyed by parameter name, or a sequence in
            parameter declaration order.
        """
        names = [param.name for param in self.network.parameters]
        if isinstance(p, dict):
            unknown = set(p) - set(names)
            if unknown:
                raise ValueError('Unknown parameter name(s): %s' %
                                 ', '.join(sorted(map(str, unknown))))
            missing = [n for n in names if n not in p]
            if missing:
                raise ValueError('Missing value(s) for parameter(s): %s' %
                                 ', '.join(missing))
            p = [p[n] for n in names]
        p = np.asarray(p, dtype=float)
        if p.shape not in ((len(names),), (len(names), 1)):
            raise ValueError('Parameter vector must have length %d (number of '
                             'parameters), got shape %s' % (len(names),
                                                            p.shape))
        return p.reshape(len(names), 1)

    def rates(self, u, p, t=0.0):
        """Evaluate the rate of every reaction."""
        return self.kinetics_fn(self.state_vector(u), self.param_vector(p),
                                t)[:, 0]

    def __repr__(self):
        return '<%s for %r at 0x%x>' % (self.__class__.__name__,
                                        self.network.name, id(self))


def check_options(kwargs):
    """Raise ValueError if any unused keyword options remain."""
    if kwargs:
        raise ValueError('Unknown keyword argument(s): {}'.format(
            ', '.join(sorted(kwargs.keys()))))
