"""
Unit tests for clouddity_common.names.

Tests composing and decoding node, security group and image names.
"""

import pytest

from clouddity_common.names import (
    container_name,
    node_cluster,
    node_name,
    node_sequence,
    node_type,
    qualified_image_name,
    securitygroup_cluster,
    securitygroup_name,
    securitygroup_plain_name,
)


class TestNodeNames:
    """Test suite for node name encoding."""

    def test_node_name(self):
        assert node_name("oa", "computing", 1) == "oa-1-computing"

    def test_node_type(self):
        assert node_type("oa-1-computing") == "computing"

    def test_node_cluster(self):
        assert node_cluster("oa-1-computing") == "oa"

    def test_node_sequence(self):
        assert node_sequence("oa-12-computing") == 12

    @pytest.mark.parametrize(
        "cluster,type_name,seq",
        [("oa", "computing", 1), ("prod", "loadbalancer", 42), ("x", "y", 0)],
    )
    def test_decoding_composed_name_yields_type(self, cluster, type_name, seq):
        """Test that the type decodes back from any composed name."""
        name = node_name(cluster, type_name, seq)
        assert node_type(name) == type_name
        assert node_cluster(name) == cluster
        assert node_sequence(name) == seq

    @pytest.mark.parametrize(
        "name", ["", "oa", "oa-computing", "oa-x-computing", "oa-1-computing-extra", "oa--computing"]
    )
    def test_malformed_names_do_not_decode(self, name):
        """Test that malformed names decode to None rather than a wrong token."""
        assert node_type(name) is None
        assert node_cluster(name) is None
        assert node_sequence(name) is None


class TestSecurityGroupNames:
    """Test suite for security group name encoding."""

    def test_securitygroup_name(self):
        assert securitygroup_name("oa", "http") == "oa-http"

    def test_securitygroup_cluster(self):
        assert securitygroup_cluster("oa-http") == "oa"

    def test_securitygroup_plain_name(self):
        assert securitygroup_plain_name("oa-http") == "http"

    def test_securitygroup_without_prefix(self):
        assert securitygroup_cluster("default") == "default"
        assert securitygroup_plain_name("default") == ""


class TestQualifiedImageName:
    """Test suite for image name qualification."""

    def test_registry_and_version(self):
        assert qualified_image_name("apache", "r.example.com", "2.4") == "r.example.com/apache:2.4"

    def test_no_registry(self):
        assert qualified_image_name("apache", None, "2.4") == "apache:2.4"

    def test_no_version(self):
        assert qualified_image_name("apache", "r.example.com") == "r.example.com/apache"

    def test_plain(self):
        assert qualified_image_name("apache") == "apache"


class TestContainerName:
    """Test suite for container names derived from image names."""

    def test_plain_image_name_is_kept(self):
        assert container_name("apache") == "apache"

    @pytest.mark.parametrize(
        "image,expected",
        [
            ("grafana/grafana", "grafana_grafana"),
            ("progrium/consul", "progrium_consul"),
            ("library/redis.cache", "library_redis.cache"),
        ],
    )
    def test_namespaced_image(self, image, expected):
        assert container_name(image) == expected
