"""NetworkX view over the knowledge graph in the ``memory`` database.

Built per call from the entities and relations tables; nothing is cached
between invocations.  Only the stats operation needs it, so ordinary
graph reads and writes never pay for the build.
"""

from __future__ import annotations

from collections import Counter
from typing import TYPE_CHECKING, Any, TypeAlias

import networkx as nx
from sqlalchemy import column, select, table

from memdbctl.infrastructure.database.schema import ENTITIES, RELATIONS

if TYPE_CHECKING:
    from sqlalchemy import Connection

# Several relation types may link the same ordered pair of entities.
_Graph: TypeAlias = nx.MultiDiGraph

_entities = table(ENTITIES, column("name"), column("entity_type"))
_relations = table(RELATIONS, column("from_entity"), column("to_entity"), column("relation_type"))


def build_graph(conn: Connection) -> _Graph:
    """Load every entity as a node and every relation as a keyed edge.

    Nodes are added first so isolated entities are visible to the
    component and orphan calculations.
    """
    g: _Graph = nx.MultiDiGraph()
    for row in conn.execute(select(_entities.c.name, _entities.c.entity_type)):
        g.add_node(row.name, entity_type=row.entity_type)
    for row in conn.execute(
        select(_relations.c.from_entity, _relations.c.to_entity, _relations.c.relation_type)
    ):
        g.add_edge(row.from_entity, row.to_entity, key=row.relation_type)
    return g


def summarize(g: _Graph) -> dict[str, Any]:
    """Totals, type distributions, orphans and weak components of *g*."""
    entity_types = Counter(attrs.get("entity_type", "") for _, attrs in g.nodes(data=True))
    relation_types = Counter(key for _, _, key in g.edges(keys=True))
    orphans = sorted(node for node in g.nodes if g.degree(node) == 0)
    components = nx.number_weakly_connected_components(g) if g.number_of_nodes() else 0
    return {
        "entities": g.number_of_nodes(),
        "relations": g.number_of_edges(),
        "entityTypes": dict(sorted(entity_types.items())),
        "relationTypes": dict(sorted(relation_types.items())),
        "orphans": orphans,
        "components": components,
    }
