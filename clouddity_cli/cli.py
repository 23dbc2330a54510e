"""
Command line interface for managing a clouddity cluster.

Provides commands to inspect the nodes and security groups of the cluster
and to drive image and container operations on its nodes. This is the
top-level caller: errors are logged and reported here, once.
"""

import asyncio
import functools
import json
import logging
import os
import sys
from collections.abc import Awaitable, Callable
from typing import Any

import click

from clouddity_common.config import ClusterConfig, get_config_path, load_config
from clouddity_common.errors import ClouddityError
from clouddity_controller import tasks
from clouddity_controller.docker_manager import DockerManager
from clouddity_controller.openstack import OpenStackProvider
from clouddity_controller.reconciler import reconcile_nodes, reconcile_security_groups
from clouddity_controller.tasks import NodeContainer, ProcessingFilters

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def get_log_level() -> str:
    """Get the log level from environment variable or default."""
    level = os.environ.get("CLOUDDITY_LOG_LEVEL", "INFO").upper()
    return level if level in LOG_LEVELS else "INFO"


def get_provider(config: ClusterConfig) -> OpenStackProvider:
    """Get the provider instance for the configured cloud."""
    return OpenStackProvider.from_config(config)


def get_docker_factory() -> Callable[..., DockerManager]:
    """Get the factory creating a Docker manager for a node connection."""
    return DockerManager


def run_async(coro):
    """Helper to run async functions in CLI commands."""
    return asyncio.run(coro)


def fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def run_task(ctx: click.Context, task: Callable[[ClusterConfig], Awaitable[Any]]) -> Any:
    """
    Load the configuration and run ``task`` with it.

    Exits with status 1 on any clouddity error, or when the task returns
    an exception (the first failed per-record operation).
    """
    try:
        config = load_config(ctx.obj["config_path"])
        result = run_async(task(config))
    except ClouddityError as e:
        logger.error(f"{type(e).__name__}: {e}")
        fail(str(e))

    if isinstance(result, Exception):
        logger.error(f"Operation failed: {result}")
        fail(str(result))
    return result


def filter_options(f):
    """Add the node/container selection options to a command."""

    @click.option("--nodetype", help="Process only nodes of this type")
    @click.option("--nodeid", help="Process only the node with this ID")
    @click.option("--container", "container_name", help="Process only this image/container")
    @click.option("--containerid", help="Process only the container with this ID")
    @functools.wraps(f)
    def wrapper(*args, nodetype, nodeid, container_name, containerid, **kwargs):
        filters = ProcessingFilters(
            node_type=nodetype,
            node_id=nodeid,
            container_name=container_name,
            container_id=containerid,
        )
        return f(*args, filters=filters, **kwargs)

    return wrapper


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Cluster configuration file (default: CLOUDDITY_CONFIG env or clouddity.json)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: CLOUDDITY_LOG_LEVEL env or INFO)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None):
    """Clouddity - Manage a cloud cluster of Docker nodes."""
    logging.basicConfig(
        level=getattr(logging, (log_level or get_log_level()).upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path or get_config_path()


@cli.group()
def nodes():
    """Inspect cluster nodes."""
    pass


@cli.group()
def securitygroups():
    """Inspect cluster security groups."""
    pass


@cli.group()
def images():
    """Manage images on cluster nodes."""
    pass


@cli.group()
def containers():
    """Manage containers on cluster nodes."""
    pass


# ============================================================================
# Inspection Commands
# ============================================================================


@nodes.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def nodes_list(ctx: click.Context, json_output: bool):
    """List the declared nodes that are live in the cluster."""

    async def list_nodes(config: ClusterConfig):
        return await reconcile_nodes(config, get_provider(config))

    result = run_task(ctx, list_nodes)

    if json_output:
        click.echo(json.dumps([n.to_dict() for n in result], indent=2))
        return
    if not result:
        click.echo("No nodes found.")
        return

    click.echo(f"\n{'ID':<38} {'Name':<30} {'Type':<16} {'Address':<16}")
    click.echo("-" * 100)
    for n in result:
        click.echo(f"{n.id:<38} {n.name:<30} {n.type:<16} {n.address:<16}")
    click.echo()


@securitygroups.command("list")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def securitygroups_list(ctx: click.Context, json_output: bool):
    """List the security groups of the cluster."""

    async def list_groups(config: ClusterConfig):
        return await reconcile_security_groups(config, get_provider(config))

    result = run_task(ctx, list_groups)

    if json_output:
        click.echo(json.dumps([g.to_dict() for g in result], indent=2))
        return
    if not result:
        click.echo("No security groups found.")
        return
    for g in result:
        click.echo(g.name)


# ============================================================================
# Image and Container Commands
# ============================================================================


@images.command("pull")
@filter_options
@click.pass_context
def images_pull(ctx: click.Context, filters: ProcessingFilters):
    """Pull declared images onto the cluster nodes."""

    async def pull(config: ClusterConfig):
        return await tasks.pull_images(
            config, get_provider(config), filters, get_docker_factory()
        )

    run_task(ctx, pull)
    click.echo("✓ Images pulled")


@containers.command("run")
@filter_options
@click.pass_context
def containers_run(ctx: click.Context, filters: ProcessingFilters):
    """Create and start containers for the declared images."""

    async def run(config: ClusterConfig):
        return await tasks.run_containers(
            config, get_provider(config), filters, get_docker_factory()
        )

    run_task(ctx, run)
    click.echo("✓ Containers running")


@containers.command("start")
@filter_options
@click.pass_context
def containers_start(ctx: click.Context, filters: ProcessingFilters):
    """Start existing containers."""

    async def start(config: ClusterConfig):
        return await tasks.start_containers(
            config, get_provider(config), filters, get_docker_factory()
        )

    run_task(ctx, start)
    click.echo("✓ Containers started")


@containers.command("stop")
@filter_options
@click.pass_context
def containers_stop(ctx: click.Context, filters: ProcessingFilters):
    """Stop running containers."""

    async def stop(config: ClusterConfig):
        return await tasks.stop_containers(
            config, get_provider(config), filters, get_docker_factory()
        )

    run_task(ctx, stop)
    click.echo("✓ Containers stopped")


@containers.command("remove")
@filter_options
@click.pass_context
def containers_remove(ctx: click.Context, filters: ProcessingFilters):
    """Remove containers (running ones are killed)."""

    async def remove(config: ClusterConfig):
        return await tasks.remove_containers(
            config, get_provider(config), filters, get_docker_factory()
        )

    run_task(ctx, remove)
    click.echo("✓ Containers removed")


@containers.command("list")
@filter_options
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
@click.pass_context
def containers_list(ctx: click.Context, filters: ProcessingFilters, json_output: bool):
    """List the declared containers present on the cluster nodes."""
    rows: list[dict[str, str]] = []

    async def collect(record: NodeContainer) -> None:
        rows.append(
            {
                "node": record.node.name,
                "name": record.container.name,
                "id": record.container.container_id,
                "image": record.container.image,
                "status": record.container.status,
            }
        )

    async def list_containers(config: ClusterConfig):
        return await tasks.iterate_over_cluster_containers(
            config, get_provider(config), collect, filters, get_docker_factory()
        )

    run_task(ctx, list_containers)

    if json_output:
        click.echo(json.dumps(rows, indent=2))
        return
    if not rows:
        click.echo("No containers found.")
        return

    click.echo(f"\n{'Node':<30} {'Container':<20} {'ID':<14} {'Status':<10}")
    click.echo("-" * 80)
    for r in rows:
        click.echo(f"{r['node']:<30} {r['name']:<20} {r['id'][:12]:<14} {r['status']:<10}")
    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
