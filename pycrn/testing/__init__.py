import functools
import numpy as np
from pycrn.ratelaws import RateLawRegistry


def with_registry(func):
    """Decorate a test to set up and tear down a rate-law registry.

    A fresh registry is bound to the name ``registry`` in the test's module
    globals, so custom rate laws registered by one test never leak into
    another.
    """
    @functools.wraps(func)
    def inner(*args, **kwargs):
        func.__globals__['registry'] = RateLawRegistry()
        try:
            return func(*args, **kwargs)
        finally:
            del func.__globals__['registry']
    return inner


def assert_networks_equal(network, reference):
    """Check two networks have the same species, parameters and reactions.

    Species and parameters are compared by name and order, reactions by
    position, written rate, stoichiometry and arrow type. The line numbers
    reactions were compiled from are ignored.
    """
    assert [s.name for s in network.species] == \
        [s.name for s in reference.species], \
        "Species differ: %s != %s" % (network.species, reference.species)
    assert [p.name for p in network.parameters] == \
        [p.name for p in reference.parameters], \
        "Parameters differ: %s != %s" % (network.parameters,
                                         reference.parameters)
    assert network.num_reactions == reference.num_reactions, \
        "Network %s has %d reactions, reference %s has %d" % \
        (network.name, network.num_reactions, reference.name,
         reference.num_reactions)
    for rxn, ref in zip(network.reactions, reference.reactions):
        assert str(rxn.rate) == str(ref.rate), \
            "Reaction %d: rate %s != %s" % (rxn.index, rxn.rate, ref.rate)
        assert dict(rxn.reactants) == dict(ref.reactants), \
            "Reaction %d: reactants differ" % rxn.index
        assert dict(rxn.products) == dict(ref.products), \
            "Reaction %d: products differ" % rxn.index
        assert rxn.mass_action == ref.mass_action, \
            "Reaction %d: arrow types differ" % rxn.index
    assert np.array_equal(network.stoichiometry_matrix.toarray(),
                          reference.stoichiometry_matrix.toarray())
