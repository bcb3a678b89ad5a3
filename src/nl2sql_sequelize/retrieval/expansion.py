"""Relational expansion over the model relationship graph.

This module builds a NetworkX multigraph of the relationships declared in a
schema snapshot and expands a seed set of models by exactly one hop.

Edges point from the declaring model to its counterpart:
- ``association`` edges to every association target (targets that are not
  extracted models still become nodes, so dangling targets are kept)
- ``reference`` edges to the model a field's foreign reference resolves to,
  matched by table name or model name

Classes:
- RelationGraph: Relationship graph with one-hop expansion
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from fastmcp.utilities.logging import get_logger
import networkx as nx

from nl2sql_sequelize.extraction.models import Entity

from .constants import Constants

# Logger
_logger = get_logger("schema_retrieval.expansion")


class RelationGraph:
    """Directed relationship graph between models.

    Attributes:
        graph: NetworkX multigraph; parallel edges of different kinds are kept
    """

    def __init__(self, entities: Sequence[Entity]) -> None:
        """Build the graph for ``entities``.

        Args:
            entities: Models of one snapshot
        """
        self.graph: nx.MultiDiGraph = nx.MultiDiGraph()
        self.graph.add_nodes_from(entity.name for entity in entities)

        for entity in entities:
            for association in entity.associations:
                self.graph.add_edge(
                    entity.name, association.target, kind=Constants.EDGE_ASSOCIATION
                )
            for field in entity.fields:
                if field.references is None:
                    continue
                referenced = _resolve_reference(entities, field.references.target)
                if referenced is not None:
                    self.graph.add_edge(entity.name, referenced, kind=Constants.EDGE_REFERENCE)

        _logger.debug(
            "Relationship graph built: %d nodes, %d edges",
            self.graph.number_of_nodes(),
            self.graph.number_of_edges(),
        )

    def related(self, seeds: Iterable[str]) -> set[str]:
        """Return the models exactly one hop away from ``seeds``.

        Includes association targets and foreign-reference targets of every
        seed, plus every model whose associations target a seed. Seeds
        themselves are never part of the result.
        """
        seed_set = {seed for seed in seeds if seed in self.graph}
        related: set[str] = set()
        for seed in seed_set:
            related.update(self.graph.successors(seed))
            for source, _, kind in self.graph.in_edges(seed, data="kind"):
                if kind == Constants.EDGE_ASSOCIATION:
                    related.add(source)
        return related - seed_set


def _resolve_reference(entities: Sequence[Entity], target: str) -> str | None:
    for entity in entities:
        if entity.storage_name == target or entity.name == target:
            return entity.name
    return None
