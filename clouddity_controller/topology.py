"""
Topology expansion.

Turns declared node type definitions into the flat, named list of nodes the
cluster is expected to contain. Pure function of configuration, no I/O.
"""

from collections.abc import Callable, Iterable

from clouddity_common.config import SEQUENCE_SCOPES
from clouddity_common.errors import ConfigurationError
from clouddity_common.models import NodeSpec, NodeTypeDefinition
from clouddity_common.names import node_name

NamingFunction = Callable[[str, int], str]


def cluster_naming(cluster: str) -> NamingFunction:
    """Return a naming function that prefixes node names with ``cluster``."""

    def naming(node_type: str, seq: int) -> str:
        return node_name(cluster, node_type, seq)

    return naming


def _check_definition(definition: NodeTypeDefinition) -> None:
    if not definition.name:
        raise ConfigurationError("Node type definition is missing a name")
    replication = definition.replication
    if isinstance(replication, bool) or not isinstance(replication, int):
        raise ConfigurationError(
            f"Replication of node type '{definition.name}' must be an integer"
        )
    if replication < 0:
        raise ConfigurationError(
            f"Replication of node type '{definition.name}' must not be negative: "
            f"{replication}"
        )


def expand_topology(
    definitions: Iterable[NodeTypeDefinition],
    naming: NamingFunction,
    sequence_scope: str = "global",
) -> list[NodeSpec]:
    """
    Expand node type definitions into named node specifications.

    With the default ``"global"`` scope a single counter numbers nodes across
    all types in declaration order (type A x2, type B x1 gives A1, A2, B3).
    With ``"per_type"`` numbering restarts at 1 for each type.

    Args:
        definitions: Node type definitions in declaration order
        naming: Function composing a node name from (type, sequence)
        sequence_scope: "global" or "per_type"

    Returns:
        One NodeSpec per replica, in declaration order

    Raises:
        ConfigurationError: If a definition is malformed or the scope is unknown
    """
    if sequence_scope not in SEQUENCE_SCOPES:
        raise ConfigurationError(f"Unknown sequence scope: {sequence_scope!r}")

    specs: list[NodeSpec] = []
    seq = 0
    for definition in definitions:
        _check_definition(definition)
        if sequence_scope == "per_type":
            seq = 0
        for _ in range(definition.replication):
            seq += 1
            specs.append(
                NodeSpec(name=naming(definition.name, seq), type=definition.name)
            )
    return specs
