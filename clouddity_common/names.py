"""
Name encoding for cluster resources.

Node names are ``<cluster>-<sequence>-<type>`` and security group names are
``<cluster>-<name>``. Neither the cluster nor the type may contain the
separator, so names decode unambiguously.
"""

import re

SEPARATOR = "-"

_INVALID_CONTAINER_CHARS = re.compile(r"[^a-zA-Z0-9_.-]")


def node_name(cluster: str, node_type: str, seq: int) -> str:
    """Compose the name of a node from its cluster, type and sequence number."""
    return f"{cluster}{SEPARATOR}{seq}{SEPARATOR}{node_type}"


def _node_parts(name: str) -> list[str] | None:
    parts = name.split(SEPARATOR)
    if len(parts) != 3 or not all(parts) or not parts[1].isdigit():
        return None
    return parts


def node_type(name: str) -> str | None:
    """
    Return the type of a node given its name.

    Returns None if the name is not a well-formed node name.
    """
    parts = _node_parts(name)
    return parts[2] if parts else None


def node_cluster(name: str) -> str | None:
    """Return the cluster a node belongs to, or None for a malformed name."""
    parts = _node_parts(name)
    return parts[0] if parts else None


def node_sequence(name: str) -> int | None:
    """Return the sequence number of a node, or None for a malformed name."""
    parts = _node_parts(name)
    return int(parts[1]) if parts else None


def securitygroup_name(cluster: str, name: str) -> str:
    return f"{cluster}{SEPARATOR}{name}"


def securitygroup_cluster(name: str) -> str:
    """Return the cluster prefix of a security group name."""
    return name.split(SEPARATOR, 1)[0]


def securitygroup_plain_name(name: str) -> str:
    """Return a security group name without its cluster prefix."""
    _, _, plain = name.partition(SEPARATOR)
    return plain


def qualified_image_name(
    image_name: str, registry: str | None = None, version: str | None = None
) -> str:
    """
    Return the complete name of an image (including registry and version).

    >>> qualified_image_name("apache", "registry.example.com", "2.4")
    'registry.example.com/apache:2.4'
    """
    prefix = f"{registry}/" if registry else ""
    suffix = f":{version}" if version else ""
    return f"{prefix}{image_name}{suffix}"


def container_name(image_name: str) -> str:
    """
    Return the Docker container name used for an image.

    Docker only accepts ``[a-zA-Z0-9][a-zA-Z0-9_.-]*``, so namespaced images
    have their other characters replaced with ``_``.

    >>> container_name("grafana/grafana")
    'grafana_grafana'
    """
    return _INVALID_CONTAINER_CHARS.sub("_", image_name)
