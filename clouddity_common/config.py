"""
Cluster configuration loading and validation.

The configuration is a JSON document. It is validated once, up front, into
typed dataclasses so that no I/O is attempted with a malformed setup.
"""

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .errors import ConfigurationError
from .models import ImageCatalogEntry, NodeTypeDefinition
from .names import SEPARATOR

SEQUENCE_SCOPES = ("global", "per_type")
DOCKER_PROTOCOLS = ("http", "https")


@dataclass(frozen=True)
class ProviderSettings:
    """Credentials and endpoint selection for the OpenStack provider."""

    auth_url: str
    username: str
    password: str = field(repr=False)
    project_name: str
    user_domain_name: str = "Default"
    project_domain_name: str = "Default"
    region: str | None = None
    timeout: float = 30.0


@dataclass(frozen=True)
class DockerDefaults:
    """Connection defaults shared by the Docker daemons of every node."""

    protocol: str = "http"
    port: int = 2375
    auth: Mapping[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ClusterConfig:
    """Validated configuration for one invocation."""

    cluster: str
    nodetypes: tuple[NodeTypeDefinition, ...]
    images: Mapping[str, ImageCatalogEntry]
    docker: DockerDefaults = field(default_factory=DockerDefaults)
    provider: ProviderSettings | None = None
    securitygroups: tuple[str, ...] = ()
    sequence_scope: str = "global"

    def nodetype(self, name: str) -> NodeTypeDefinition | None:
        """Return the node type definition with the given name, if declared."""
        for definition in self.nodetypes:
            if definition.name == name:
                return definition
        return None


def get_config_path() -> str:
    """
    Get the configuration file path from environment or use default.

    Environment variables:
    - CLOUDDITY_CONFIG: Path to the cluster configuration file
    """
    return os.environ.get("CLOUDDITY_CONFIG", "clouddity.json")


def load_config(path: str | Path) -> ClusterConfig:
    """
    Read and validate a configuration file.

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {path}") from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Cannot read configuration {path}: {e}") from e
    return validate_config(raw)


def _require(raw: Mapping[str, Any], key: str, where: str) -> Any:
    if key not in raw or raw[key] is None:
        raise ConfigurationError(f"Missing required key '{where}{key}'")
    return raw[key]


def _plain_name(value: Any, where: str) -> str:
    if not isinstance(value, str) or not value:
        raise ConfigurationError(f"'{where}' must be a non-empty string")
    if SEPARATOR in value:
        raise ConfigurationError(f"'{where}' must not contain '{SEPARATOR}': {value!r}")
    return value


def _string_list(value: Any, where: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigurationError(f"'{where}' must be a list of strings")
    return tuple(value)


def validate_nodetype(raw: Any, index: int) -> NodeTypeDefinition:
    """Validate a single node type definition."""
    where = f"nodetypes[{index}]"
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'{where}' must be an object")

    name = _plain_name(raw.get("name"), f"{where}.name")
    replication = raw.get("replication", 0)
    # bool is an int subclass; reject it explicitly
    if isinstance(replication, bool) or not isinstance(replication, int):
        raise ConfigurationError(f"'{where}.replication' must be an integer")
    if replication < 0:
        raise ConfigurationError(
            f"'{where}.replication' must not be negative: {replication}"
        )

    return NodeTypeDefinition(
        name=name,
        replication=replication,
        images=_string_list(raw.get("images"), f"{where}.images"),
        hosts=_string_list(raw.get("hosts"), f"{where}.hosts"),
    )


def _validate_image(name: str, raw: Any) -> ImageCatalogEntry:
    where = f"images.{name}"
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'{where}' must be an object")

    environment = raw.get("environment") or {}
    if not isinstance(environment, Mapping):
        raise ConfigurationError(f"'{where}.environment' must be an object")

    return ImageCatalogEntry(
        registry=raw.get("registry") or None,
        version=str(raw["version"]) if raw.get("version") else None,
        ports=_string_list(raw.get("ports"), f"{where}.ports"),
        environment=tuple((str(k), str(v)) for k, v in environment.items()),
        command=_string_list(raw.get("command"), f"{where}.command"),
    )


def _validate_provider(raw: Any) -> ProviderSettings | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError("'provider' must be an object")
    try:
        timeout = float(raw.get("timeout", 30.0))
    except (TypeError, ValueError) as e:
        raise ConfigurationError("'provider.timeout' must be a number") from e

    return ProviderSettings(
        auth_url=str(_require(raw, "auth_url", "provider.")).rstrip("/"),
        username=str(_require(raw, "username", "provider.")),
        password=str(_require(raw, "password", "provider.")),
        project_name=str(_require(raw, "project_name", "provider.")),
        user_domain_name=str(raw.get("user_domain_name", "Default")),
        project_domain_name=str(raw.get("project_domain_name", "Default")),
        region=raw.get("region"),
        timeout=timeout,
    )


def _validate_docker(raw: Any) -> DockerDefaults:
    if raw is None:
        return DockerDefaults()
    if not isinstance(raw, Mapping):
        raise ConfigurationError("'docker' must be an object")

    protocol = raw.get("protocol", "http")
    if protocol not in DOCKER_PROTOCOLS:
        raise ConfigurationError(
            f"'docker.protocol' must be one of {DOCKER_PROTOCOLS}: {protocol!r}"
        )
    port = raw.get("port", 2375)
    if isinstance(port, bool) or not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigurationError(f"'docker.port' must be a valid port: {port!r}")
    auth = raw.get("auth") or {}
    if not isinstance(auth, Mapping):
        raise ConfigurationError("'docker.auth' must be an object")

    return DockerDefaults(
        protocol=protocol, port=port, auth=MappingProxyType(dict(auth))
    )


def validate_config(raw: Any) -> ClusterConfig:
    """
    Validate a raw configuration mapping into a ClusterConfig.

    Args:
        raw: Parsed JSON configuration

    Returns:
        Validated, immutable configuration

    Raises:
        ConfigurationError: On the first invalid or missing entry
    """
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Configuration must be a JSON object")

    cluster = _plain_name(_require(raw, "cluster", ""), "cluster")

    raw_nodetypes = raw.get("nodetypes") or []
    if not isinstance(raw_nodetypes, list):
        raise ConfigurationError("'nodetypes' must be a list")
    nodetypes = tuple(validate_nodetype(nt, i) for i, nt in enumerate(raw_nodetypes))

    names = [nt.name for nt in nodetypes]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate node type names: {duplicates}")

    raw_images = raw.get("images") or {}
    if not isinstance(raw_images, Mapping):
        raise ConfigurationError("'images' must be an object")
    images = {name: _validate_image(name, entry) for name, entry in raw_images.items()}

    for nt in nodetypes:
        missing = [image for image in nt.images if image not in images]
        if missing:
            raise ConfigurationError(
                f"Node type '{nt.name}' references undeclared images: {missing}"
            )

    securitygroups = tuple(
        _plain_name(sg, f"securitygroups[{i}]")
        for i, sg in enumerate(_string_list(raw.get("securitygroups"), "securitygroups"))
    )

    sequence_scope = raw.get("sequence_scope", "global")
    if sequence_scope not in SEQUENCE_SCOPES:
        raise ConfigurationError(
            f"'sequence_scope' must be one of {SEQUENCE_SCOPES}: {sequence_scope!r}"
        )

    return ClusterConfig(
        cluster=cluster,
        nodetypes=nodetypes,
        images=MappingProxyType(images),
        docker=_validate_docker(raw.get("docker")),
        provider=_validate_provider(raw.get("provider")),
        securitygroups=securitygroups,
        sequence_scope=sequence_scope,
    )
