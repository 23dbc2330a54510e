"""
Clouddity Controller module.

This module contains the reconciliation engine and the operations built on
it: topology expansion, reconciliation of declared nodes and security groups
with live provider state, sequential fail-fast execution, the OpenStack
provider and the per-node Docker manager.
"""

from .docker_manager import ContainerInfo, DockerManager
from .executor import run_sequential
from .openstack import OpenStackProvider
from .reconciler import reconcile_nodes, reconcile_security_groups
from .topology import cluster_naming, expand_topology

__all__ = [
    "ContainerInfo",
    "DockerManager",
    "OpenStackProvider",
    "cluster_naming",
    "expand_topology",
    "reconcile_nodes",
    "reconcile_security_groups",
    "run_sequential",
]
