"""
Deterministic (reaction rate equation) functions for a network.

The drift is ``f(u, p, t) = S . v(u, p, t)`` where ``S`` is the
stoichiometry matrix and ``v`` the vector of reaction rates; the Jacobian is
``S . dv/du`` from symbolic differentiation of every rate law.

Usage
-----

    >>> from pycrn.examples.birth_death import network
    >>> from pycrn.generator.ode import OdeGenerator
    >>> ode = OdeGenerator(network)
    >>> ode.drift([5], [1, 2, 50])
    array([45.])
"""

import sympy
import numpy as np
from pycrn.generator.base import KineticsGenerator, check_options


class OdeGenerator(KineticsGenerator):
    """
    Drift and Jacobian functions for deterministic integration.

    Parameters
    ----------
    network : pycrn.core.Network
        Network to generate functions for.
    registry : pycrn.ratelaws.RateLawRegistry, optional
        Registry used to inline rate-law calls.
    verbose : bool or int, optional (default: False)
        Sets the verbosity level of the logger.
    **kwargs : dict
        Extra keyword options:

        * ``with_jacobian`` (bool, default True): compute the symbolic
          Jacobian. If False, :attr:`jacobian_exprs` and :meth:`jacobian` are
          unavailable.

    Attributes
    ----------
    kinetics_jacobian : sympy.Matrix or None
        Partial derivatives of the kinetics with respect to u.
    """

    def __init__(self, network, registry=None, verbose=False, **kwargs):
        self.with_jacobian = kwargs.pop('with_jacobian', True)
        check_options(kwargs)
        super(OdeGenerator, self).__init__(network, registry=registry,
                                           verbose=verbose)
        self.kinetics_jacobian = None
        if self.with_jacobian and network.num_reactions == 0:
            self.kinetics_jacobian = sympy.zeros(0, network.num_species)
        elif self.with_jacobian:
            self._logger.debug('Computing Jacobian matrix')
            self.kinetics_jacobian = self.to_vector_form(
                self.rate_laws.jacobian(list(network.species)))
        self._drift_fn = None
        self._jacobian_fn = None

    @property
    def odes(self):
        """Time derivative of each species in terms of the species symbols."""
        return self.stoichiometry * self.rate_laws

    @property
    def drift_exprs(self):
        """Symbolic drift in terms of u, p and t."""
        return self.stoichiometry * self.kinetics

    @property
    def jacobian_exprs(self):
        """Symbolic Jacobian of the drift in terms of u, p and t."""
        self._require_jacobian()
        return self.stoichiometry * self.kinetics_jacobian

    def _require_jacobian(self):
        if not self.with_jacobian:
            raise ValueError('Jacobian not available, create the generator '
                             'with with_jacobian=True')

    @property
    def drift_fn(self):
        """The drift function drift(u, p, t)."""
        if self._drift_fn is None:
            self._logger.debug('Constructing drift function')
            kinetics = self.kinetics_fn

            def drift(u, p, t=0.0):
                v = kinetics(self.state_vector(u), self.param_vector(p), t)
                return self.stoichiometry_matrix.dot(v[:, 0])

            self._drift_fn = drift
        return self._drift_fn

    @property
    def jacobian_fn(self):
        """The Jacobian function jacobian(u, p, t)."""
        self._require_jacobian()
        if self._jacobian_fn is None:
            self._logger.debug('Constructing jacobian function')
            kinetics_jacobian = self._matrix_fn(self.kinetics_jacobian)

            def jacobian(u, p, t=0.0):
                jv = kinetics_jacobian(self.state_vector(u),
                                       self.param_vector(p), t)
                return np.asarray(self.stoichiometry_matrix.dot(jv))

            self._jacobian_fn = jacobian
        return self._jacobian_fn

    def drift(self, u, p, t=0.0):
        """
        Evaluate the drift.

        Parameters
        ----------
        u : vector-like
            Species populations in species order.
        p : vector-like or dict
            Parameter values in declaration order, or keyed by name.
        t : float, optional
            Time.

        Returns
        -------
        numpy.ndarray of length num_species
        """
        return self.drift_fn(u, p, t)

    def jacobian(self, u, p, t=0.0):
        """
        Evaluate the Jacobian of the drift with respect to the species.

        Returns
        -------
        numpy.ndarray of shape (num_species, num_species); entry ``[i, j]``
        is the partial derivative of the drift of species i with respect to
        species j.
        """
        return self.jacobian_fn(u, p, t)


def ode_functions(network, registry=None, **kwargs):
    """Return the (drift, jacobian) functions of a network."""
    gen = OdeGenerator(network, registry=registry, **kwargs)
    return gen.drift, gen.jacobian
