"""
Data models for cluster topology and reconciled provider state.

These models represent the domain objects used throughout the application,
independent of the cloud provider and of the Docker transport.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .names import container_name, qualified_image_name


@dataclass(frozen=True)
class NodeTypeDefinition:
    """
    A node role declared in the cluster topology.

    Nodes of a type are replicated ``replication`` times and run the
    containers listed in ``images`` (keys of the image catalog).
    """

    name: str
    replication: int
    images: tuple[str, ...] = ()
    hosts: tuple[str, ...] = ()  # extra "host:ip" entries for containers


@dataclass(frozen=True)
class NodeSpec:
    """A single named node produced by topology expansion."""

    name: str
    type: str


@dataclass(frozen=True)
class LiveNode:
    """A node as reported by the compute provider."""

    id: str
    name: str
    public_addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class LiveSecurityGroup:
    """A security group as reported by the network provider."""

    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass(frozen=True)
class ImageCatalogEntry:
    """
    Registry/version metadata for a logical image name.

    Shared by every node that references the image, so it is frozen.
    """

    registry: str | None = None
    version: str | None = None
    ports: tuple[str, ...] = ()  # "host:container" port bindings
    environment: tuple[tuple[str, str], ...] = ()
    command: tuple[str, ...] = ()


@dataclass(frozen=True)
class ResolvedImage:
    """An image resolved against the catalog for one particular node."""

    name: str
    registry: str | None = None
    version: str | None = None
    ports: tuple[str, ...] = ()
    environment: tuple[tuple[str, str], ...] = ()
    command: tuple[str, ...] = ()

    @classmethod
    def from_catalog(cls, name: str, entry: ImageCatalogEntry) -> "ResolvedImage":
        """Copy a catalog entry into a new value carrying the image name."""
        return cls(
            name=name,
            registry=entry.registry,
            version=entry.version,
            ports=entry.ports,
            environment=entry.environment,
            command=entry.command,
        )

    @property
    def qualified_name(self) -> str:
        """Image reference including registry and version."""
        return qualified_image_name(self.name, self.registry, self.version)

    @property
    def container_name(self) -> str:
        """Name of the container running this image on a node."""
        return container_name(self.name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "registry": self.registry,
            "version": self.version,
        }


@dataclass(frozen=True)
class DockerConnection:
    """Parameters needed to reach the Docker daemon of a node."""

    protocol: str
    host: str
    port: int

    @property
    def url(self) -> str:
        """Daemon URL in the form accepted by ``docker -H``."""
        return f"tcp://{self.host}:{self.port}"

    @property
    def tls(self) -> bool:
        return self.protocol == "https"

    def to_dict(self) -> dict[str, Any]:
        return {"protocol": self.protocol, "host": self.host, "port": self.port}


@dataclass(frozen=True)
class ReconciledNode:
    """
    A live node matched to its declared type, ready to be operated on.

    Created fresh on every reconciliation call and never persisted.
    ``auth`` is shared by reference across all nodes of a run.
    """

    id: str
    name: str
    address: str
    type: str
    hosts: tuple[str, ...]
    images: tuple[ResolvedImage, ...]
    docker: DockerConnection
    auth: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return f"node {self.name}"

    def to_dict(self) -> dict[str, Any]:
        """Convert node to dictionary format (for JSON output)."""
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "type": self.type,
            "hosts": list(self.hosts),
            "images": [image.to_dict() for image in self.images],
            "docker": self.docker.to_dict(),
        }
