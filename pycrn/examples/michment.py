"""Michaelis-Menten enzyme kinetics, explicit and reduced.

The explicit network binds enzyme E and substrate S reversibly into the
complex ES, which releases product P. The reduced network uses the built-in
``mm`` rate law for the same conversion under the quasi-steady-state
assumption.
"""

from pycrn import compile_network

network = compile_network("""
    (kf, kr), E + S <--> ES
    kcat, ES --> E + P
""", ['kf', 'kr', 'kcat'], name='michment')

reduced_network = compile_network("""
    mm(S, vmax, Km), S => P
""", ['vmax', 'Km'], name='michment_reduced')

vol = 10.0
parameter_values = {'kf': 1.0 / vol, 'kr': 1000.0, 'kcat': 100.0}
initial_state = [1.0 * vol, 10.0 * vol, 0.0, 0.0]
