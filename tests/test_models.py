"""Tests for discovery models."""

import pytest

from hcloud_discovery.discovery.models import NetworkEndpoints, PublicAddress, ServerRecord


class TestNetworkEndpoints:
    def test_public_by_family(self):
        endpoints = NetworkEndpoints(ipv4=PublicAddress("1.2.3.4"), ipv6=PublicAddress("2001:db8::"))
        assert endpoints.public("ipv4").ip == "1.2.3.4"
        assert endpoints.public("ipv6").ip == "2001:db8::"
        assert endpoints.public("ipx") is None

    def test_defaults_empty(self):
        endpoints = NetworkEndpoints()
        assert endpoints.private_ips == ()
        assert endpoints.floating_ips == ()
        assert endpoints.public("ipv4") is None


class TestServerRecord:
    def test_frozen(self):
        server = ServerRecord(server_id=1, name="node-1", location="fsn1")
        with pytest.raises(AttributeError):
            server.location = "nbg1"  # type: ignore
