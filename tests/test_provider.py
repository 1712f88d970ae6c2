"""Tests for the discovery pass."""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest

from hcloud_discovery.discovery.models import FloatingAddress, NetworkEndpoints, PublicAddress, ServerRecord
from hcloud_discovery.exceptions import (
    HostnameReadError,
    InvalidProviderError,
    InventoryLookupError,
    MissingCredentialError,
)
from hcloud_discovery.provider import Provider


def _server(server_id, name, location, private_ip=None, public_ip=None, blocked=False, floating=()):
    return ServerRecord(
        server_id=server_id,
        name=name,
        location=location,
        endpoints=NetworkEndpoints(
            private_ips=(private_ip,) if private_ip else (),
            ipv4=PublicAddress(public_ip, blocked=blocked) if public_ip else None,
            floating_ips=tuple(floating),
        ),
    )


SERVERS = [
    _server(1, "node-1", "fsn1", private_ip="10.0.0.1", public_ip="1.1.1.1"),
    _server(2, "node-2", "nbg1", private_ip="10.0.0.2", public_ip="2.2.2.2"),
    _server(3, "node-3", "fsn1", public_ip="3.3.3.3", blocked=True,
            floating=[FloatingAddress("4.4.4.4", "ipv4")]),
]


@pytest.fixture
def inventory():
    inv = MagicMock()
    inv.list_running_servers.return_value = list(SERVERS)
    inv.get_server_by_name.return_value = None
    return inv


@pytest.fixture
def factory(inventory):
    return MagicMock(return_value=inventory)


@pytest.fixture
def hostname_file(tmp_path):
    path = tmp_path / "hostname"
    path.write_text("node-2\n")
    return path


def _provider(factory, hostname_path, environ=None) -> Provider:
    return Provider(inventory_factory=factory, hostname_path=hostname_path, environ=environ or {})


class TestProviderArguments:
    def test_name(self):
        assert Provider.name == "hcloud"

    def test_help_mentions_env_vars(self):
        text = Provider().help()
        assert "HCLOUD_TOKEN" in text
        assert "HCLOUD_LOCATION" in text
        assert "address_type" in text

    @pytest.mark.parametrize("args", [{}, {"provider": "aws"}, {"provider": "HCLOUD"}])
    def test_invalid_provider(self, factory, hostname_file, args):
        with pytest.raises(InvalidProviderError):
            _provider(factory, hostname_file).addrs({**args, "api_token": "tok"})
        factory.assert_not_called()

    def test_missing_token_makes_no_inventory_call(self, factory, hostname_file):
        with pytest.raises(MissingCredentialError):
            _provider(factory, hostname_file).addrs({"provider": "hcloud", "location": "fsn1"})
        factory.assert_not_called()

    def test_token_from_environment(self, factory, hostname_file):
        provider = _provider(factory, hostname_file, environ={"HCLOUD_TOKEN": "env-tok", "HCLOUD_LOCATION": "fsn1"})
        provider.addrs({"provider": "hcloud"})
        factory.assert_called_once_with("env-tok")


class TestAddrs:
    def test_location_filter_and_private_default(self, factory, inventory, hostname_file):
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "fsn1"},
        )
        # node-3 has no private IP and contributes nothing
        assert addrs == ["10.0.0.1"]
        inventory.get_server_by_name.assert_not_called()

    def test_label_selector_passed_through(self, factory, inventory, hostname_file):
        _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "fsn1", "label_selector": "role=consul"},
        )
        inventory.list_running_servers.assert_called_once_with("role=consul")

    def test_public_v4_with_floating_fallback(self, factory, hostname_file):
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "fsn1", "address_type": "public_v4"},
        )
        assert addrs == ["1.1.1.1", "4.4.4.4"]

    def test_invalid_address_type_falls_back_to_private(self, factory, hostname_file):
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "nbg1", "address_type": "bogus"},
        )
        assert addrs == ["10.0.0.2"]

    def test_location_match_is_exact(self, factory, hostname_file):
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "FSN1"},
        )
        assert addrs == []

    def test_empty_result_is_not_an_error(self, factory, inventory, hostname_file):
        inventory.list_running_servers.return_value = []
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "fsn1"},
        )
        assert addrs == []

    def test_duplicates_kept(self, factory, inventory, hostname_file):
        inventory.list_running_servers.return_value = [
            _server(1, "a", "fsn1", private_ip="10.0.0.9"),
            _server(2, "b", "fsn1", private_ip="10.0.0.9"),
        ]
        addrs = _provider(factory, hostname_file).addrs(
            {"provider": "hcloud", "api_token": "tok", "location": "fsn1"},
        )
        assert addrs == ["10.0.0.9", "10.0.0.9"]

    def test_listing_error_propagates(self, factory, inventory, hostname_file):
        inventory.list_running_servers.side_effect = InventoryLookupError("boom")
        with pytest.raises(InventoryLookupError, match="boom"):
            _provider(factory, hostname_file).addrs(
                {"provider": "hcloud", "api_token": "tok", "location": "fsn1"},
            )

    def test_logs_to_injected_logger(self, factory, hostname_file, caplog):
        log = logging.getLogger("test.provider")
        with caplog.at_level(logging.DEBUG, logger="test.provider"):
            _provider(factory, hostname_file).addrs(
                {"provider": "hcloud", "api_token": "tok", "location": "fsn1"}, log,
            )
        messages = [r.getMessage() for r in caplog.records if r.name == "test.provider"]
        assert "filtering by location fsn1" in messages
        assert "found IP addresses: ['10.0.0.1']" in messages


class TestLocationDetection:
    def test_adopts_location_of_current_server(self, factory, inventory, hostname_file):
        inventory.get_server_by_name.return_value = SERVERS[1]
        addrs = _provider(factory, hostname_file).addrs({"provider": "hcloud", "api_token": "tok"})
        inventory.get_server_by_name.assert_called_once_with("node-2")
        assert addrs == ["10.0.0.2"]

    def test_not_an_hcloud_server_spans_all_locations(self, factory, inventory, hostname_file):
        inventory.get_server_by_name.return_value = None
        addrs = _provider(factory, hostname_file).addrs({"provider": "hcloud", "api_token": "tok"})
        assert addrs == ["10.0.0.1", "10.0.0.2"]

    def test_empty_hostname_skips_lookup(self, factory, inventory, tmp_path):
        path = tmp_path / "hostname"
        path.write_text("\n")
        addrs = _provider(factory, path).addrs({"provider": "hcloud", "api_token": "tok"})
        inventory.get_server_by_name.assert_not_called()
        assert addrs == ["10.0.0.1", "10.0.0.2"]

    def test_unreadable_hostname_file(self, factory, inventory, tmp_path):
        with pytest.raises(HostnameReadError) as exc_info:
            _provider(factory, tmp_path / "missing").addrs({"provider": "hcloud", "api_token": "tok"})
        assert isinstance(exc_info.value.__cause__, OSError)
        inventory.list_running_servers.assert_not_called()

    def test_lookup_error_propagates(self, factory, inventory, hostname_file):
        inventory.get_server_by_name.side_effect = InventoryLookupError("unauthorized")
        with pytest.raises(InventoryLookupError, match="unauthorized"):
            _provider(factory, hostname_file).addrs({"provider": "hcloud", "api_token": "tok"})
        inventory.list_running_servers.assert_not_called()

    def test_location_from_environment_skips_detection(self, factory, inventory, tmp_path):
        provider = _provider(factory, tmp_path / "missing", environ={"HCLOUD_LOCATION": "nbg1"})
        addrs = provider.addrs({"provider": "hcloud", "api_token": "tok"})
        inventory.get_server_by_name.assert_not_called()
        assert addrs == ["10.0.0.2"]
