import networkx as nx
from pycrn.core import Species, Parameter


def reactions_using_parameter(network, parameter):
    """Return the reactions in the network whose rate uses the parameter"""
    if not isinstance(parameter, Parameter):
        # Try getting the parameter by name
        parameter = network.parameters_map[parameter]
    return [rxn for rxn in network.reactions
            if parameter in rxn.rate.free_symbols]


def reaction_graph(network):
    """
    Return the species/reaction bipartite graph of a network.

    Species nodes are named ``s<index>`` and reaction nodes ``r<index>``.
    Edges run from reactant species to reactions and from reactions to
    product species. A species that is consumed and produced by a reaction
    without net change (a catalyst) is a modifier: it gets a single edge to
    the reaction with ``modifier=True``, and so do species that only appear
    in the rate expression.

    Node attributes are ``bipartite`` (0 for species, 1 for reactions) and
    ``label``; reaction nodes also carry ``rate``, ``reversible`` and
    ``line``.

    Returns
    -------
    networkx.DiGraph
    """
    graph = nx.DiGraph(name=network.name)
    for s in network.species:
        graph.add_node('s%d' % s.index, bipartite=0, label=s.name)
    for rxn in network.reactions:
        reaction_node = 'r%d' % rxn.index
        graph.add_node(reaction_node, bipartite=1, label=reaction_node,
                       rate=rxn.rate, reversible=rxn.reversible,
                       line=rxn.line)
        reactants = set(rxn.reactants)
        products = set(rxn.products)
        modifiers = {s for s in reactants & products
                     if s not in rxn.net_change}
        modifiers |= {s.index for s in rxn.rate.free_symbols
                      if isinstance(s, Species)} - reactants - products
        for s in reactants - modifiers:
            graph.add_edge('s%d' % s, reaction_node,
                           stoichiometry=rxn.reactants[s], modifier=False)
        for s in products - modifiers:
            graph.add_edge(reaction_node, 's%d' % s,
                           stoichiometry=rxn.products[s], modifier=False)
        for s in modifiers:
            graph.add_edge('s%d' % s, reaction_node, modifier=True)
    return graph


def species_graph(network):
    """
    Return the species influence graph of a network.

    An edge ``A -> B`` (between species names) means some reaction whose
    rate depends on ``A`` changes the population of ``B``. Edge attribute
    ``reactions`` lists the indices of the reactions responsible.
    """
    graph = nx.DiGraph(name=network.name)
    graph.add_nodes_from(s.name for s in network.species)
    for rxn in network.reactions:
        sources = {network.species[s].name for s in rxn.reactants}
        sources |= {s.name for s in rxn.rate.free_symbols
                    if isinstance(s, Species)}
        for source in sorted(sources):
            for target in sorted(network.species[s].name
                                 for s in rxn.net_change):
                if graph.has_edge(source, target):
                    graph[source][target]['reactions'].append(rxn.index)
                else:
                    graph.add_edge(source, target, reactions=[rxn.index])
    return graph
