import warnings
import pytest
import sympy
import numpy as np
from pycrn.core import Species, Parameter, Reaction, Network, TIME, \
    InvalidComponentNameError, MalformedLineError, CompileError, \
    DegenerateReactionError, DuplicateDeclarationError, \
    UnknownIdentifierError, UnknownRateFunctionError, ArityMismatchError, \
    UnusedParameterWarning
from pycrn.builder import NetworkBuilder, compile_network
from pycrn.testing import assert_networks_equal, with_registry


def test_component_names_valid():
    for name in 'a', 'B', 'AbC', 'dEf', '_', '_7', '__a01b__999x_x___':
        s = Species(name)
        assert s.name == name
        assert str(s) == name


def test_component_names_invalid():
    for name in 'a!', '!B', 'A!bC~`\\', '_!', '_!7', '7a', 'lambda':
        with pytest.raises(InvalidComponentNameError):
            Species(name)
        with pytest.raises(InvalidComponentNameError):
            Parameter(name)


def test_components_are_sympy_symbols():
    X = Species('X')
    k = Parameter('k')
    expr = k * X**2
    assert expr.free_symbols == {X, k}
    assert X.is_real
    # Species and parameters of the same name are different symbols
    assert Species('a') != Parameter('a')


def test_compile_error_message():
    e = MalformedLineError('bad thing', line=3)
    assert str(e) == 'line 3: bad thing'
    assert e.line == 3 and e.column is None
    assert isinstance(e, CompileError)
    assert str(MalformedLineError('bad thing')) == 'bad thing'


def test_reaction():
    rxn = Reaction(0, sympy.Symbol('k'), {0: 2}, {0: 1, 1: 1})
    assert dict(rxn.net_change) == {0: -1, 1: 1}
    assert rxn.species_indices() == {0, 1}
    with pytest.raises(TypeError):
        rxn.reactants[0] = 3


@pytest.mark.parametrize('coeff', [0, -1, 1.5])
def test_reaction_bad_coefficient(coeff):
    with pytest.raises(ValueError):
        Reaction(0, 1, {0: coeff}, {})


def test_degenerate_reaction():
    with pytest.raises(DegenerateReactionError) as e:
        compile_network('k, A --> A', ['k'])
    assert e.value.line == 1
    with pytest.raises(DegenerateReactionError):
        compile_network('k1, A --> B\nk2, A + B --> B + A', ['k1', 'k2'])


def test_network_ordering():
    network = compile_network("""
        k1, B + A --> C
        (k2, k3), C <--> D
    """, ['k3', 'k2', 'k1'])
    assert [s.name for s in network.species] == ['B', 'A', 'C', 'D']
    assert [s.index for s in network.species] == [0, 1, 2, 3]
    assert [p.name for p in network.parameters] == ['k3', 'k2', 'k1']
    assert [str(r.rate) for r in network.reactions] == ['k1', 'k2', 'k3']
    assert network.species_index('D') == 3
    assert network.parameter_index('k1') == 2
    assert [r.line for r in network.reactions] == [2, 3, 3]


def test_deterministic_compilation():
    text = """
        (k1, k2), 2A + B <--> C
        (k3, k4), (C, A) --> (0, D)
        hill(D, v, K, n), 0 --> E
    """
    params = ['k1', 'k2', 'k3', 'k4', 'v', 'K', 'n']
    reference = compile_network(text, params)
    for _ in range(3):
        assert_networks_equal(compile_network(text, params), reference)


def test_tuple_shorthand_equivalence():
    shorthand = compile_network('(1.0, 2.0), (S1, S2) -> P')
    explicit = compile_network('1.0, S1 -> P\n2.0, S2 -> P')
    assert_networks_equal(shorthand, explicit)


def test_stoichiometry_matrix():
    network = compile_network("""
        k1, 2A + B --> C
        k2, C --> 0
    """, ['k1', 'k2'])
    assert np.array_equal(network.stoichiometry_matrix.toarray(),
                          [[-2, 0], [-1, 0], [1, -1]])
    assert np.array_equal(network.reactant_matrix.toarray(),
                          [[2, 0], [1, 0], [0, 1]])
    assert np.array_equal(network.product_matrix.toarray(),
                          [[0, 0], [0, 0], [1, 0]])
    assert network.net_stoichiometry(0) == {'A': -2, 'B': -1, 'C': 1}
    assert network.net_stoichiometry(network.reactions[1]) == {'C': -1}


def test_arrows_net_change():
    for arrow in ('-->', '->', '→', '⟶', '=>', '⇒'):
        network = compile_network('k, A %s B' % arrow, ['k'])
        assert network.num_reactions == 1
        assert network.net_stoichiometry(0) == {'A': -1, 'B': 1}
    for arrow in ('<--', '<-', '←', '⟵', '<=', '⇐'):
        network = compile_network('k, B %s A' % arrow, ['k'])
        assert network.num_reactions == 1
        assert network.net_stoichiometry(0) == {'A': -1, 'B': 1}


def test_reversible_order():
    network = compile_network('k1, k2, A <-> B', ['k1', 'k2'])
    k1, k2 = network.parameters
    forward, backward = network.reactions
    assert forward.rate == k1
    assert backward.rate == k2
    assert network.net_stoichiometry(forward) == {'A': -1, 'B': 1}
    assert network.net_stoichiometry(backward) == {'A': 1, 'B': -1}


def test_rate_law_mass_action():
    network = compile_network('k, 2X --> 0', ['k'])
    X, = network.species
    k, = network.parameters
    assert network.rate_law(0) == k * X**2 / 2
    assert network.rate_law(0, combinatoric=True) == k * X * (X - 1) / 2
    assert network.rate_law(0).subs({X: 5, k: 1}) == sympy.Rational(25, 2)
    assert network.rate_law(0, combinatoric=True).subs({X: 5, k: 1}) == 10


def test_rate_law_as_written():
    network = compile_network('v*X/(K + X), X => 0', ['v', 'K'])
    X, = network.species
    v, K = network.parameters
    assert network.rate_law(0) == v * X / (K + X)
    assert network.rate_law(0, combinatoric=True) == v * X / (K + X)


def test_odes():
    network = compile_network("""
        c1, X --> 2X
        c2, X --> 0
        c3, 0 --> X
    """, ['c1', 'c2', 'c3'])
    X, = network.species
    c1, c2, c3 = network.parameters
    assert sympy.expand(network.odes[0] - (c1 * X - c2 * X + c3)) == 0


def test_time_in_rates():
    network = compile_network('k*t, 0 --> X', ['k'])
    assert TIME in network.reactions[0].rate.free_symbols


def test_unknown_identifier():
    with pytest.raises(UnknownIdentifierError) as e:
        compile_network('k1, A --> B\nk2, B --> C', ['k1'])
    assert e.value.line == 2
    assert str(e.value).startswith('line 2:')
    # Species must appear in a reaction to be declared
    with pytest.raises(UnknownIdentifierError):
        compile_network('k*Z, A --> B', ['k'])


def test_unknown_function():
    with pytest.raises(UnknownIdentifierError) as e:
        compile_network('foo(X), X --> 0')
    assert isinstance(e.value, UnknownRateFunctionError)


def test_rate_function_arity():
    with pytest.raises(ArityMismatchError) as e:
        compile_network('hill(X, v), X --> 0', ['v'])
    assert isinstance(e.value, UnknownRateFunctionError)


@with_registry
def test_custom_rate_law_must_be_registered_first():
    with pytest.raises(UnknownIdentifierError):
        compile_network('sat(S), S => P', registry=registry)
    registry.register('sat', ['x'], 'x/(1 + x)')
    network = compile_network('sat(S), S => P', registry=registry)
    assert network.num_reactions == 1


@pytest.mark.parametrize('text, params', [
    ('k, A --> B', ['k', 'k']),
    ('k, A --> k', ['k']),
    ('k, t --> B', ['k']),
    ('k, hill --> B', ['k']),
    ('k, exp --> B', ['k']),
    ('t, A --> B', ['t']),
    ('mm, A --> B', ['mm']),
])
def test_duplicate_declarations(text, params):
    with pytest.raises(DuplicateDeclarationError):
        compile_network(text, params)


def test_invalid_parameter_name():
    with pytest.raises(MalformedLineError):
        compile_network('k, A --> B', ['k', '2k'])


def test_unused_parameter_warning():
    with pytest.warns(UnusedParameterWarning, match='unused'):
        network = compile_network('k, A --> B', ['k', 'unused'])
    assert network.num_parameters == 2


def test_no_warning_when_all_parameters_used():
    with warnings.catch_warnings():
        warnings.simplefilter('error')
        compile_network('k1*A, A => B\nk2, B --> A', ['k1', 'k2'])


def test_builder():
    builder = NetworkBuilder('dimerization')
    k = builder.parameter('k')
    X = builder.species('X')
    X2 = builder.species('X2')
    assert builder.species('X') is X
    assert builder['k'] is k
    builder.reaction(k, {X: 2}, {X2: 1})
    builder.reaction('k*X2', {'X2': 1}, {'X': 2}, mass_action=False)
    network = builder.build()
    assert network.name == 'dimerization'
    assert network.rate_law(0) == k * X**2 / 2
    assert network.rate_law(1) == k * X2
    assert network.species == (X, X2)
    # Every build makes a new network
    builder.reaction(k, {X: 1}, {})
    assert builder.build().num_reactions == 3
    assert network.num_reactions == 2


def test_builder_sympy_placeholders():
    builder = NetworkBuilder()
    builder.species('A')
    builder.parameter('k')
    rate = sympy.Symbol('k') * sympy.Symbol('t')
    rxn = builder.reaction(rate, {'A': 1}, {})
    assert rxn.rate.free_symbols == {builder['k'], TIME}


def test_builder_errors():
    builder = NetworkBuilder()
    builder.parameter('k')
    with pytest.raises(DuplicateDeclarationError):
        builder.parameter('k')
    with pytest.raises(DuplicateDeclarationError):
        builder.species('k')
    with pytest.raises(UnknownIdentifierError):
        builder.reaction('k', {'A': 1}, {})
    other = NetworkBuilder()
    with pytest.raises(UnknownIdentifierError):
        builder.reaction('k', {other.species('A'): 1}, {})


def test_network_validation():
    X = Species('X', 0)
    k = Parameter('k', 0)
    Y = Species('Y', 0)
    with pytest.raises(ValueError):
        Network('bad', [X, Y], [k], [])
    rxn = Reaction(0, k * Y, {0: 1}, {})
    with pytest.raises(UnknownIdentifierError):
        Network('bad', [X], [k], [rxn])


def test_network_repr():
    network = compile_network('k, A --> B', ['k'], name='tiny')
    assert repr(network).startswith("<Network 'tiny' (species: 2, "
                                    "parameters: 1, reactions: 1)")
