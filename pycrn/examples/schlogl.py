"""Schlogl's model, a bistable chemical reaction network.

F. Schlogl, Chemical reaction models for non-equilibrium phase transitions,
Z. Physik 253 (1972), 147-161.

The buffered species A and B are folded into the rate constants.
"""

from pycrn import compile_network

network = compile_network("""
    (k1, k2), 2X <--> 3X
    (k3, k4), 0 <--> X
""", ['k1', 'k2', 'k3', 'k4'], name='schlogl')

# Buffer populations A = 1e5 and B = 2e5 folded into k1 and k3
parameter_values = {'k1': 3e-7 * 1e5, 'k2': 1e-4, 'k3': 1e-3 * 2e5, 'k4': 3.5}
initial_state = [250]

if __name__ == '__main__':
    print(__doc__, "\n", network)
    for rxn in network.reactions:
        print(network.rate_law(rxn, combinatoric=True), dict(rxn.net_change))
