"""
Clouddity Common module.

This module contains the shared domain models, error types, naming rules,
configuration and provider interfaces used across the clouddity components
(controller, CLI).

The common module has no dependencies on other clouddity_* modules, making it
a pure domain layer that can be imported by any component.
"""

from .config import ClusterConfig, DockerDefaults, ProviderSettings, load_config
from .errors import (
    ClouddityError,
    ConfigurationError,
    IterationError,
    ProviderError,
    ReconciliationError,
)
from .models import (
    DockerConnection,
    ImageCatalogEntry,
    LiveNode,
    LiveSecurityGroup,
    NodeSpec,
    NodeTypeDefinition,
    ReconciledNode,
    ResolvedImage,
)
from .provider import ComputeProvider, NetworkProvider

__all__ = [
    "ClouddityError",
    "ClusterConfig",
    "ComputeProvider",
    "ConfigurationError",
    "DockerConnection",
    "DockerDefaults",
    "ImageCatalogEntry",
    "IterationError",
    "LiveNode",
    "LiveSecurityGroup",
    "NetworkProvider",
    "NodeSpec",
    "NodeTypeDefinition",
    "ProviderError",
    "ProviderSettings",
    "ReconciledNode",
    "ReconciliationError",
    "ResolvedImage",
    "load_config",
]
