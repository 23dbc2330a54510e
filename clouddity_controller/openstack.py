"""
OpenStack implementation of the provider interfaces.

Authenticates against Keystone v3 with a password, locates the compute
(Nova) and network (Neutron) endpoints in the service catalog, and lists
live servers and security groups. HTTP calls use requests and run in a
worker thread so the event loop is never blocked.
"""

import asyncio
import logging
from typing import Any

import requests

from clouddity_common.config import ClusterConfig, ProviderSettings
from clouddity_common.errors import ConfigurationError, ProviderError
from clouddity_common.models import LiveNode, LiveSecurityGroup
from clouddity_common.provider import ComputeProvider, NetworkProvider

logger = logging.getLogger(__name__)

ACTIVE_STATUS = "ACTIVE"


def security_groups_as_openstack(names: list[str]) -> list[dict[str, str]]:
    """
    Return security groups in the format favored by OpenStack.

    >>> security_groups_as_openstack(["oa-http"])
    [{'name': 'oa-http'}]
    """
    return [{"name": name} for name in names]


def public_addresses(server: dict[str, Any]) -> tuple[str, ...]:
    """
    Extract the public addresses of a Nova server.

    Floating IPs come first, followed by fixed addresses on a network
    named "public".
    """
    addresses = server.get("addresses") or {}
    floating: list[str] = []
    public: list[str] = []
    for network, entries in addresses.items():
        for entry in entries or []:
            addr = entry.get("addr")
            if not addr:
                continue
            if entry.get("OS-EXT-IPS:type") == "floating":
                floating.append(addr)
            elif network == "public":
                public.append(addr)
    return tuple(dict.fromkeys(floating + public))


def next_link(links: list[dict[str, Any]] | None) -> str | None:
    """Return the href of the "next" page link of a paginated listing, if any."""
    for link in links or []:
        if link.get("rel") == "next" and link.get("href"):
            return link["href"]
    return None


class OpenStackProvider(ComputeProvider, NetworkProvider):
    """
    Compute and network provider backed by an OpenStack cloud.

    A token is obtained lazily on first use and reused for the lifetime of
    the provider object (one CLI invocation); it is never cached elsewhere.
    """

    def __init__(self, settings: ProviderSettings, session: requests.Session | None = None):
        self.settings = settings
        self.session = session or requests.Session()
        self._token: str | None = None
        self._catalog: list[dict[str, Any]] = []

    @classmethod
    def from_config(cls, config: ClusterConfig) -> "OpenStackProvider":
        """
        Create a provider from cluster configuration.

        Raises:
            ConfigurationError: If the configuration has no provider section
        """
        if config.provider is None:
            raise ConfigurationError("Missing client configuration ('provider')")
        return cls(config.provider)

    def _authenticate(self) -> None:
        s = self.settings
        body = {
            "auth": {
                "identity": {
                    "methods": ["password"],
                    "password": {
                        "user": {
                            "name": s.username,
                            "domain": {"name": s.user_domain_name},
                            "password": s.password,
                        }
                    },
                },
                "scope": {
                    "project": {
                        "name": s.project_name,
                        "domain": {"name": s.project_domain_name},
                    }
                },
            }
        }
        try:
            response = self.session.post(
                f"{s.auth_url}/auth/tokens", json=body, timeout=s.timeout
            )
            response.raise_for_status()
            catalog = response.json().get("token", {}).get("catalog", [])
        except (requests.exceptions.RequestException, ValueError) as e:
            raise ProviderError(f"Authentication against {s.auth_url} failed: {e}") from e

        token = response.headers.get("X-Subject-Token")
        if not token:
            raise ProviderError("Authentication response carried no token")
        self._token = token
        self._catalog = catalog
        logger.debug(f"Authenticated as {s.username} on project {s.project_name}")

    def endpoint(self, service_type: str) -> str:
        """
        Return the public endpoint URL of a service from the catalog.

        Raises:
            ProviderError: If the service is not in the catalog
        """
        for service in self._catalog:
            if service.get("type") != service_type:
                continue
            for ep in service.get("endpoints", []):
                if ep.get("interface") != "public":
                    continue
                if self.settings.region and ep.get("region") != self.settings.region:
                    continue
                return ep["url"].rstrip("/")
        raise ProviderError(f"No public '{service_type}' endpoint in service catalog")

    def _get(self, service_type: str, path: str) -> dict[str, Any]:
        if self._token is None:
            self._authenticate()
        return self._get_url(f"{self.endpoint(service_type)}{path}")

    def _get_url(self, url: str) -> dict[str, Any]:
        try:
            response = self.session.get(
                url,
                headers={"X-Auth-Token": self._token, "Accept": "application/json"},
                timeout=self.settings.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise ProviderError(f"GET {url} failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"GET {url} returned invalid JSON: {e}") from e

    def _list_active_nodes(self) -> list[LiveNode]:
        data = self._get("compute", "/servers/detail")
        servers = list(data.get("servers", []))
        # Nova caps each page at osapi_max_limit
        next_url = next_link(data.get("servers_links"))
        while next_url:
            data = self._get_url(next_url)
            servers.extend(data.get("servers", []))
            next_url = next_link(data.get("servers_links"))

        return [
            LiveNode(
                id=str(server["id"]),
                name=server.get("name", ""),
                public_addresses=public_addresses(server),
            )
            for server in servers
            if server.get("status") == ACTIVE_STATUS
        ]

    def _list_security_groups(self) -> list[LiveSecurityGroup]:
        data = self._get("network", "/v2.0/security-groups")
        return [
            LiveSecurityGroup(name=group.get("name", ""))
            for group in data.get("security_groups", [])
        ]

    async def list_active_nodes(self) -> list[LiveNode]:
        return await asyncio.to_thread(self._list_active_nodes)

    async def list_security_groups(self) -> list[LiveSecurityGroup]:
        return await asyncio.to_thread(self._list_security_groups)
