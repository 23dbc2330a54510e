"""
Abstract provider interfaces for live cloud resources.

This module defines the contract that any cloud provider implementation must
follow, allowing easy swapping between OpenStack and other providers.
"""

from abc import ABC, abstractmethod

from .models import LiveNode, LiveSecurityGroup


class ComputeProvider(ABC):
    """Source of the nodes currently live in the provider account."""

    @abstractmethod
    async def list_active_nodes(self) -> list[LiveNode]:
        """
        List all active nodes visible with the configured credentials.

        Returns:
            Live nodes in the order the provider reports them

        Raises:
            ProviderError: If the provider cannot be queried
        """
        pass


class NetworkProvider(ABC):
    """Source of the security groups currently defined in the provider account."""

    @abstractmethod
    async def list_security_groups(self) -> list[LiveSecurityGroup]:
        """
        List all security groups visible with the configured credentials.

        Returns:
            Live security groups in the order the provider reports them

        Raises:
            ProviderError: If the provider cannot be queried
        """
        pass
