"""Shared fixtures for clouddity unit tests."""

import copy
from unittest.mock import AsyncMock

import pytest

from clouddity_common.config import validate_config
from clouddity_common.models import LiveNode, LiveSecurityGroup

RAW_CONFIG = {
    "cluster": "oa",
    "provider": {
        "auth_url": "https://keystone.example.com/v3",
        "username": "admin",
        "password": "secret",
        "project_name": "oa-project",
        "region": "RegionOne",
    },
    "nodetypes": [
        {
            "name": "computing",
            "replication": 2,
            "images": ["apache", "consul"],
            "hosts": ["db:10.0.0.5"],
        },
        {"name": "loadbalancer", "replication": 1, "images": ["haproxy"]},
    ],
    "securitygroups": ["http", "dockerd"],
    "images": {
        "apache": {"registry": "registry.example.com", "version": "2.4", "ports": ["80:80"]},
        "consul": {"registry": "registry.example.com", "version": "1.0"},
        "haproxy": {"version": "1.6", "environment": {"MODE": "http"}},
    },
    "docker": {
        "protocol": "http",
        "port": 2375,
        "auth": {"username": "deployer", "password": "pw", "serveraddress": "registry.example.com"},
    },
}


@pytest.fixture
def raw_config():
    """A deep copy of the raw test configuration, safe to modify."""
    return copy.deepcopy(RAW_CONFIG)


@pytest.fixture
def config(raw_config):
    """Validated test configuration."""
    return validate_config(raw_config)


@pytest.fixture
def live_nodes():
    """Live nodes as reported by the provider (not in declaration order)."""
    return [
        LiveNode(id="id-3", name="oa-3-loadbalancer", public_addresses=("192.0.2.3",)),
        LiveNode(id="id-1", name="oa-1-computing", public_addresses=("192.0.2.1", "192.0.2.11")),
        LiveNode(id="id-9", name="oa-9-unrelated", public_addresses=("192.0.2.9",)),
        LiveNode(id="id-2", name="oa-2-computing", public_addresses=("192.0.2.2",)),
        LiveNode(id="id-x", name="other-1-computing", public_addresses=("192.0.2.20",)),
    ]


@pytest.fixture
def mock_provider(live_nodes):
    """Create a mock compute and network provider."""
    provider = AsyncMock()
    provider.list_active_nodes = AsyncMock(return_value=live_nodes)
    provider.list_security_groups = AsyncMock(
        return_value=[
            LiveSecurityGroup(name="oa-dockerd"),
            LiveSecurityGroup(name="oa-http"),
            LiveSecurityGroup(name="oa-consul"),
            LiveSecurityGroup(name="default"),
            LiveSecurityGroup(name="other-http"),
        ]
    )
    return provider
