"""The repressilator: three genes repressing each other in a cycle.

M. B. Elowitz and S. Leibler, A synthetic oscillatory network of
transcriptional regulators, Nature 403 (2000), 335-338.

Protein production uses the built-in repressive Hill function ``hillr``,
with mRNA dynamics omitted.
"""

from pycrn import compile_network

network = compile_network("""
    hillr(P3, alpha, K, n), 0 --> P1
    hillr(P1, alpha, K, n), 0 --> P2
    hillr(P2, alpha, K, n), 0 --> P3
    (delta, delta, delta), (P1, P2, P3) --> 0
""", ['alpha', 'K', 'n', 'delta'], name='repressilator')

parameter_values = {'alpha': 10.0, 'K': 40.0, 'n': 2.0, 'delta': 0.1}
initial_state = [20, 0, 0]
