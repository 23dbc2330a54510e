"""
Cluster-level operations.

Each task reconciles the configuration with the provider once, then walks
the result with the sequential fail-fast executor. Provider and
configuration failures are raised; the first failing per-record operation
is returned as the task result (None on success).
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from typing import TypeVar

from clouddity_common.config import ClusterConfig
from clouddity_common.errors import IterationError, raise_for_error
from clouddity_common.models import (
    DockerConnection,
    LiveSecurityGroup,
    ReconciledNode,
    ResolvedImage,
)
from clouddity_common.names import node_cluster
from clouddity_common.provider import ComputeProvider, NetworkProvider

from .docker_manager import ContainerInfo, DockerManager
from .executor import run_sequential
from .reconciler import in_cluster, reconcile_nodes, reconcile_security_groups

logger = logging.getLogger(__name__)

R = TypeVar("R")
DockerFactory = Callable[[DockerConnection], DockerManager]


@dataclass(frozen=True)
class ProcessingFilters:
    """Optional restrictions on which nodes and containers a task touches."""

    node_type: str | None = None
    node_id: str | None = None
    container_name: str | None = None
    container_id: str | None = None


@dataclass(frozen=True)
class NodeImage:
    """One declared image on one reconciled node."""

    node: ReconciledNode
    image: ResolvedImage

    def __str__(self) -> str:
        return f"image {self.image.name} on {self.node.name}"


@dataclass(frozen=True)
class NodeContainer:
    """One live container on a reconciled node, with the daemon that runs it."""

    node: ReconciledNode
    image: ResolvedImage
    container: ContainerInfo
    docker: DockerManager

    def __str__(self) -> str:
        return f"container {self.container.name} on {self.node.name}"


def reported(operation: Callable[[R], Awaitable[object]]) -> Callable[[R], Awaitable[None]]:
    """Wrap a per-record operation so its failures name the record."""

    async def wrapper(record: R) -> None:
        try:
            await operation(record)
        except IterationError:
            raise
        except Exception as e:
            raise IterationError(record, e) from e

    return wrapper


def is_container_to_be_processed(
    filters: ProcessingFilters | None,
    node_type: str,
    node_id: str,
    container_name: str,
    container_id: str | None,
) -> bool:
    """
    Tell whether a container passes the processing filters.

    Every filter that is set must match; unset filters match anything.
    """
    if filters is None:
        return True
    if filters.node_type and filters.node_type != node_type:
        return False
    if filters.node_id and filters.node_id != node_id:
        return False
    if filters.container_name and filters.container_name != container_name:
        return False
    if filters.container_id and filters.container_id != container_id:
        return False
    return True


def _node_selected(filters: ProcessingFilters | None, node: ReconciledNode) -> bool:
    if filters is None:
        return True
    if filters.node_type and filters.node_type != node.type:
        return False
    return not filters.node_id or filters.node_id == node.id


async def cluster_nodes(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
) -> list[ReconciledNode]:
    """Reconciled nodes of the configured cluster, restricted by ``filters``."""
    nodes = await reconcile_nodes(
        config, provider, lambda node: node_cluster(node.name) == config.cluster
    )
    return [node for node in nodes if _node_selected(filters, node)]


async def iterate_over_cluster_nodes(
    config: ClusterConfig,
    provider: ComputeProvider,
    operation: Callable[[ReconciledNode], Awaitable[object]],
    filters: ProcessingFilters | None = None,
) -> Exception | None:
    """Run ``operation`` on every node of the cluster, one at a time."""
    nodes = await cluster_nodes(config, provider, filters)
    return await run_sequential(nodes, operation)


async def iterate_over_cluster_security_groups(
    config: ClusterConfig,
    provider: NetworkProvider,
    operation: Callable[[LiveSecurityGroup], Awaitable[object]],
) -> Exception | None:
    """Run ``operation`` on every security group of the cluster, one at a time."""
    groups = await reconcile_security_groups(config, provider, in_cluster(config))
    return await run_sequential(groups, operation)


async def iterate_over_cluster_images(
    config: ClusterConfig,
    provider: ComputeProvider,
    operation: Callable[[NodeImage], Awaitable[object]],
    filters: ProcessingFilters | None = None,
) -> Exception | None:
    """Run ``operation`` on every declared image of every cluster node."""
    nodes = await cluster_nodes(config, provider, filters)
    # images have no container yet, so the container ID filter does not apply
    image_filters = replace(filters, container_id=None) if filters else None
    records = [
        NodeImage(node=node, image=image)
        for node in nodes
        for image in node.images
        if is_container_to_be_processed(image_filters, node.type, node.id, image.name, None)
    ]
    return await run_sequential(records, operation)


async def iterate_over_cluster_containers(
    config: ClusterConfig,
    provider: ComputeProvider,
    operation: Callable[[NodeContainer], Awaitable[object]],
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    """
    Run ``operation`` on every declared container live on the cluster nodes.

    Nodes are visited in order; each node's containers are listed only when
    the node is reached, and processed before moving to the next node.
    """
    nodes = await cluster_nodes(config, provider, filters)

    async def per_node(node: ReconciledNode) -> None:
        docker = docker_factory(node.docker)
        declared = {image.container_name: image for image in node.images}
        try:
            containers = await docker.list_containers()
        except Exception as e:
            raise IterationError(node, e) from e
        records = [
            NodeContainer(
                node=node, image=declared[c.name], container=c, docker=docker
            )
            for c in containers
            if c.name in declared
            and is_container_to_be_processed(
                filters, node.type, node.id, declared[c.name].name, c.container_id
            )
        ]
        logger.debug(f"Node {node.name}: {len(records)} containers to process")
        raise_for_error(await run_sequential(records, operation))

    return await run_sequential(nodes, per_node)


async def pull_images(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    """
    Pull every declared image onto the nodes that use it.

    Each node's daemon logs in to the registry once, before its first pull.
    """
    logged_in: set[DockerConnection] = set()

    async def pull(record: NodeImage) -> None:
        docker = docker_factory(record.node.docker)
        if record.node.docker not in logged_in:
            await docker.login(record.node.auth)
            logged_in.add(record.node.docker)
        await docker.pull_image(record.image)
        logger.info(f"Pulled {record.image.qualified_name} on {record.node.name}")

    return await iterate_over_cluster_images(
        config, provider, reported(pull), filters
    )


async def run_containers(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    """Create and start a container for every declared image on every node."""

    async def run(record: NodeImage) -> None:
        docker = docker_factory(record.node.docker)
        container_id = await docker.run_container(record.image, record.node.hosts)
        logger.info(
            f"Started {record.image.name} on {record.node.name} ({container_id[:12]})"
        )

    return await iterate_over_cluster_images(
        config, provider, reported(run), filters
    )


async def start_containers(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    async def start(record: NodeContainer) -> None:
        await record.docker.start_container(record.container.container_id)
        logger.info(f"Started {record.container.name} on {record.node.name}")

    return await iterate_over_cluster_containers(
        config, provider, reported(start), filters, docker_factory
    )


async def stop_containers(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    async def stop(record: NodeContainer) -> None:
        await record.docker.stop_container(record.container.container_id)
        logger.info(f"Stopped {record.container.name} on {record.node.name}")

    return await iterate_over_cluster_containers(
        config, provider, reported(stop), filters, docker_factory
    )


async def remove_containers(
    config: ClusterConfig,
    provider: ComputeProvider,
    filters: ProcessingFilters | None = None,
    docker_factory: DockerFactory = DockerManager,
) -> Exception | None:
    async def remove(record: NodeContainer) -> None:
        await record.docker.remove_container(record.container.container_id, force=True)
        logger.info(f"Removed {record.container.name} from {record.node.name}")

    return await iterate_over_cluster_containers(
        config, provider, reported(remove), filters, docker_factory
    )
