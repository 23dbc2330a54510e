"""
Reconciliation of declared cluster topology with live provider state.

Desired state comes from configuration (expanded node specs, declared
security groups); actual state comes from a single provider fetch. Only the
intersection by exact name is returned, enriched with what later per-node
operations need.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from clouddity_common.config import ClusterConfig
from clouddity_common.errors import ProviderError, ReconciliationError
from clouddity_common.models import (
    DockerConnection,
    LiveNode,
    LiveSecurityGroup,
    ReconciledNode,
    ResolvedImage,
)
from clouddity_common.names import node_type, securitygroup_cluster, securitygroup_name
from clouddity_common.provider import ComputeProvider, NetworkProvider

from .topology import cluster_naming, expand_topology

logger = logging.getLogger(__name__)

T = TypeVar("T")
NodePredicate = Callable[[LiveNode], bool]
SecurityGroupPredicate = Callable[[LiveSecurityGroup], bool]


async def _fetch(fetch: Callable[[], Awaitable[list[T]]], what: str) -> list[T]:
    """Run a provider fetch, normalizing failures to ProviderError."""
    try:
        return list(await fetch())
    except ProviderError:
        raise
    except Exception as e:
        raise ProviderError(f"Failed to list {what}: {e}") from e


def declared_node_names(config: ClusterConfig) -> set[str]:
    """Names of every node the configuration declares for the cluster."""
    specs = expand_topology(
        config.nodetypes, cluster_naming(config.cluster), config.sequence_scope
    )
    return {spec.name for spec in specs}


def resolve_images(config: ClusterConfig, image_names: tuple[str, ...]) -> tuple[ResolvedImage, ...]:
    """
    Resolve image names against the catalog into per-node copies.

    Raises:
        ReconciliationError: If an image is not in the catalog
    """
    images = []
    for name in image_names:
        entry = config.images.get(name)
        if entry is None:
            raise ReconciliationError(f"Image '{name}' is not declared in the catalog")
        images.append(ResolvedImage.from_catalog(name, entry))
    return tuple(images)


def _enrich(config: ClusterConfig, node: LiveNode) -> ReconciledNode | None:
    type_name = node_type(node.name)
    definition = config.nodetype(type_name) if type_name else None
    if definition is None:
        return None

    if not node.public_addresses:
        raise ReconciliationError(f"Node {node.name} has no public address")
    address = node.public_addresses[0]

    return ReconciledNode(
        id=node.id,
        name=node.name,
        address=address,
        type=definition.name,
        hosts=definition.hosts,
        images=resolve_images(config, definition.images),
        docker=DockerConnection(
            protocol=config.docker.protocol, host=address, port=config.docker.port
        ),
        auth=config.docker.auth,
    )


async def reconcile_nodes(
    config: ClusterConfig,
    provider: ComputeProvider,
    predicate: NodePredicate | None = None,
    skip_unknown_types: bool = False,
) -> list[ReconciledNode]:
    """
    Match live nodes against the declared topology.

    The provider is queried exactly once. The result keeps the provider's
    order, not the declaration order.

    Args:
        config: Validated cluster configuration
        provider: Compute provider to fetch live nodes from
        predicate: Optional extra filter applied to matched live nodes
        skip_unknown_types: Skip (instead of failing on) nodes whose type is
            not declared

    Returns:
        Reconciled nodes ready to be operated on

    Raises:
        ConfigurationError: If the topology is malformed (before any I/O)
        ProviderError: If the live node fetch fails
        ReconciliationError: If a matched node cannot be enriched
    """
    declared = declared_node_names(config)

    live_nodes = await _fetch(provider.list_active_nodes, "nodes")
    logger.debug(
        f"Reconciliation: Found {len(live_nodes)} live nodes, {len(declared)} declared"
    )

    selected = [
        node
        for node in live_nodes
        if node.name in declared and (predicate is None or predicate(node))
    ]

    reconciled: list[ReconciledNode] = []
    for node in selected:
        result = _enrich(config, node)
        if result is None:
            # defensive: declared names always decode to a declared type
            if not skip_unknown_types:
                raise ReconciliationError(
                    f"Node {node.name} does not decode to a declared node type"
                )
            logger.warning(f"Skipping node {node.name}: unknown node type")
            continue
        reconciled.append(result)

    logger.debug(f"Reconciliation: Selected {len(reconciled)} nodes")
    return reconciled


def in_cluster(config: ClusterConfig) -> SecurityGroupPredicate:
    """Predicate selecting security groups whose cluster prefix is the configured one."""

    def predicate(group: LiveSecurityGroup) -> bool:
        return securitygroup_cluster(group.name) == config.cluster

    return predicate


async def reconcile_security_groups(
    config: ClusterConfig,
    provider: NetworkProvider,
    predicate: SecurityGroupPredicate | None = None,
) -> list[LiveSecurityGroup]:
    """
    Match live security groups against the configuration.

    Groups are kept if they are declared in ``config.securitygroups`` (when
    any are declared) and satisfy ``predicate`` (when given). With neither,
    every group of the configured cluster is kept.

    Raises:
        ProviderError: If the live security group fetch fails
    """
    declared = {securitygroup_name(config.cluster, sg) for sg in config.securitygroups}
    if not declared and predicate is None:
        predicate = in_cluster(config)

    groups = await _fetch(provider.list_security_groups, "security groups")
    logger.debug(f"Reconciliation: Found {len(groups)} live security groups")

    return [
        LiveSecurityGroup(name=group.name)
        for group in groups
        if (not declared or group.name in declared)
        and (predicate is None or predicate(group))
    ]
