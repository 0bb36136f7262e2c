"""A simple three-species chemical kinetics system known as "Robertson's
example", as presented in:

H. H. Robertson, The solution of a set of reaction rate equations, in Numerical
Analysis: An Introduction, J. Walsh, ed., Academic Press, 1966, pp. 178-182.
"""

# A classic stiff test problem. The resulting equations are:
#
# A' = -k1*A + k3*B*C
# B' =  k1*A - k3*B*C - k2*B^2
# C' =                  k2*B^2
#
# The second reaction uses a rate-as-is arrow so that k2 keeps its usual
# value instead of being halved by the 1/2! mass-action factor.

from pycrn import compile_network

network = compile_network("""
    k1, A --> B
    k2*B^2, 2B => B + C
    k3, B + C --> A + C
""", ['k1', 'k2', 'k3'], name='robertson')

parameter_values = {'k1': 0.04, 'k2': 3.0e7, 'k3': 1.0e4}
# The system is known to be stiff for initial values A=1, B=0, C=0
initial_state = [1.0, 0.0, 0.0]

if __name__ == '__main__':
    print(__doc__, "\n", network)
    for species, ode in zip(network.species, network.odes):
        print("%s' = %s" % (species, ode))
