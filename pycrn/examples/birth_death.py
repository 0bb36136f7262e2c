"""A single species which replicates, decays and is produced at a constant
rate.

With X = 5 and (c1, c2, c3) = (1, 2, 50) the drift of X is
5 - 10 + 50 = 45.
"""

from pycrn import compile_network

network = compile_network("""
    c1, X --> 2X    # replication
    c2, X --> 0     # decay
    c3, 0 --> X     # production
""", ['c1', 'c2', 'c3'], name='birth_death')

parameter_values = {'c1': 1.0, 'c2': 2.0, 'c3': 50.0}
initial_state = [5]

if __name__ == '__main__':
    print(__doc__, "\n", network)
    print("\nODEs:")
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species, ode))
