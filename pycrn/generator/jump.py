"""
Propensity and affect functions for discrete stochastic simulation.

Propensities use combinatorial mass-action kinetics: a reactant with
coefficient ``c`` contributes ``u*(u-1)*...*(u-c+1)/c!``, the number of
distinct ways to pick ``c`` molecules from ``u``. Reaction ``r``'s
propensity is paired by position with ``affect(r)``, which adds the net
change of ``r`` to an integer state.
"""

import numpy as np
import sympy
import networkx as nx
from pycrn.generator.base import KineticsGenerator, check_options

MASS_ACTION = 'mass_action'
CONSTANT_RATE = 'constant_rate'
VARIABLE_RATE = 'variable_rate'


class JumpGenerator(KineticsGenerator):
    """
    Propensities and state updates for Gillespie-type simulation.

    Parameters are as for :class:`pycrn.generator.base.KineticsGenerator`.
    """

    combinatoric = True

    def __init__(self, network, registry=None, verbose=False, **kwargs):
        check_options(kwargs)
        super(JumpGenerator, self).__init__(network, registry=registry,
                                            verbose=verbose)
        self._net_changes = []
        for rxn in network.reactions:
            change = np.zeros(network.num_species, dtype=np.int64)
            for s, c in rxn.net_change.items():
                change[s] = c
            change.setflags(write=False)
            self._net_changes.append(change)
        self._propensity_fns = {}
        self._jump_types = None

    @property
    def propensity_exprs(self):
        """Symbolic propensities over u, p and t."""
        return self.kinetics

    @property
    def affect_exprs(self):
        """
        Symbolic affects: for each reaction, the updated state in terms of
        the species symbols.
        """
        species = self.network.species
        return [sympy.Matrix([s + int(change[i]) for i, s in
                              enumerate(species)])
                for change in self._net_changes]

    def propensities(self, u, p, t=0.0):
        """Evaluate the propensity of every reaction, in reaction order."""
        return self.rates(u, p, t)

    def propensity(self, reaction):
        """
        Return the propensity function a(u, p, t) of a single reaction.

        Parameters
        ----------
        reaction : int or pycrn.core.Reaction
        """
        index = getattr(reaction, 'index', reaction)
        if index not in self._propensity_fns:
            fn = self.lambdify(self.kinetics[index])

            def propensity(u, p, t=0.0):
                return float(fn(self.state_vector(u), self.param_vector(p), t))

            self._propensity_fns[index] = propensity
        return self._propensity_fns[index]

    def affect(self, reaction):
        """
        Return the state update function of a single reaction.

        The returned function maps a state vector to a new integer array with
        the reaction's net change added; its argument is not modified.
        Non-integral populations raise ValueError.
        """
        index = getattr(reaction, 'index', reaction)
        change = self._net_changes[index]
        num_species = self.num_species

        def affect(u):
            u = np.asarray(u)
            if u.shape != (num_species,):
                raise ValueError('State vector must have length %d, got '
                                 'shape %s' % (num_species, u.shape))
            counts = u.astype(np.int64)
            if not np.array_equal(counts, u):
                raise ValueError('State vector must hold integer '
                                 'populations, got %s' % u)
            return counts + change

        return affect

    @property
    def affects(self):
        """Affect functions of all reactions, in reaction order."""
        return [self.affect(i) for i in range(self.num_reactions)]

    @property
    def jump_types(self):
        """
        Classification of each reaction as :data:`MASS_ACTION` (constant
        rate times the combinatorial monomial), :data:`CONSTANT_RATE` (rate
        does not depend on time) or :data:`VARIABLE_RATE`.
        """
        if self._jump_types is None:
            types = []
            for rxn in self.network.reactions:
                rate = self.registry.inline(rxn.rate)
                if self.t in rate.free_symbols:
                    types.append(VARIABLE_RATE)
                elif rxn.mass_action and not \
                        rate.free_symbols & set(self.network.species):
                    types.append(MASS_ACTION)
                else:
                    types.append(CONSTANT_RATE)
            self._jump_types = tuple(types)
        return self._jump_types

    def mass_action_jumps(self):
        """
        Return the mass-action reactions in aggregated form.

        Returns
        -------
        list of (index, rate, reactant_stoich, net_stoich) tuples
            `rate` is the written rate over the parameter symbols, the
            stoichiometries are lists of (species index, coefficient) pairs.
        """
        jumps = []
        for rxn, jump_type in zip(self.network.reactions, self.jump_types):
            if jump_type != MASS_ACTION:
                continue
            jumps.append((rxn.index,
                          self.registry.inline(rxn.rate),
                          sorted(rxn.reactants.items()),
                          sorted(rxn.net_change.items())))
        return jumps

    def dependency_graph(self):
        """
        Return the reaction dependency graph.

        An edge r1 -> r2 means firing r1 changes the population of a species
        which the propensity of r2 depends on, so r2's propensity must be
        recomputed after r1 fires.

        Returns
        -------
        networkx.DiGraph with one node per reaction index
        """
        graph = nx.DiGraph()
        graph.add_nodes_from(range(self.num_reactions))
        species = self.network.species
        readers = {}
        for j, rate in enumerate(self.rate_laws):
            for s in rate.free_symbols & set(species):
                readers.setdefault(s.index, set()).add(j)
        for rxn in self.network.reactions:
            for s in rxn.net_change:
                for j in sorted(readers.get(s, ())):
                    graph.add_edge(rxn.index, j)
        return graph
