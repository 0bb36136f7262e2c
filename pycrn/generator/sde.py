"""
Chemical Langevin diffusion for a network.

Reaction ``r`` contributes one noise column, ``netChange(r) * sqrt(v_r)``, so
that ``diffusion . diffusion^T = S diag(v) S^T``.
"""

import sympy
import numpy as np
from pycrn.core import DomainFault
from pycrn.generator.base import KineticsGenerator, check_options


class SdeGenerator(KineticsGenerator):
    """
    Diffusion function for stochastic-continuous integration.

    Parameters are as for :class:`pycrn.generator.base.KineticsGenerator`.
    The drift of the chemical Langevin equation is the deterministic one, see
    :class:`pycrn.generator.ode.OdeGenerator`.
    """

    def __init__(self, network, registry=None, verbose=False, **kwargs):
        check_options(kwargs)
        super(SdeGenerator, self).__init__(network, registry=registry,
                                           verbose=verbose)
        self._diffusion_fn = None

    @property
    def diffusion_exprs(self):
        """Symbolic diffusion matrix (species x reactions) over u, p and t."""
        noise = sympy.diag(*[sympy.sqrt(v) for v in self.kinetics]) \
            if self.num_reactions else sympy.zeros(0, 0)
        return self.stoichiometry * noise

    @property
    def diffusion_fn(self):
        """The diffusion function diffusion(u, p, t)."""
        if self._diffusion_fn is None:
            self._logger.debug('Constructing diffusion function')
            kinetics = self.kinetics_fn
            reactions = self.network.reactions
            stoichiometry = self.stoichiometry_matrix.toarray()

            def diffusion(u, p, t=0.0):
                v = kinetics(self.state_vector(u), self.param_vector(p), t)
                v = v[:, 0]
                negative = np.flatnonzero(~(v >= 0))
                if negative.size:
                    r = reactions[negative[0]]
                    raise DomainFault(
                        'Reaction %d%s has negative or undefined rate %g; its '
                        'diffusion term is undefined' % (
                            r.index,
                            '' if r.line is None else ' (line %d)' % r.line,
                            v[negative[0]]))
                return stoichiometry * np.sqrt(v)

            self._diffusion_fn = diffusion
        return self._diffusion_fn

    def diffusion(self, u, p, t=0.0):
        """
        Evaluate the diffusion matrix.

        Returns
        -------
        numpy.ndarray of shape (num_species, num_reactions)

        Raises
        ------
        pycrn.core.DomainFault
            If any reaction rate is negative or NaN at the given state.
        """
        return self.diffusion_fn(u, p, t)
