"""Tests for MCP tool handlers."""
import json

import pytest

from mcp_netconf_groups import server
from mcp_netconf_groups.config.inventory import DeviceConfig
from mcp_netconf_groups.exceptions import TransportError
from mcp_netconf_groups.netconf.client import GroupClient

from fakes import RecordingDriver


class FakeInventory:
    """Inventory with one device backed by a recording driver."""

    def __init__(self, driver: RecordingDriver):
        self.driver = driver
        self.client = GroupClient(driver, device_id="mx-edge-1")

    def get_device_ids(self):
        return ["mx-edge-1"]

    def get_device_config(self, device_id):
        return DeviceConfig(host="192.0.2.1", username="netops", name="MX Edge 1",
                            managed_groups=["ntp"])

    def get_client(self, device_id):
        if device_id != "mx-edge-1":
            raise KeyError(f"Unknown device: {device_id}")
        return self.client


def payload(result) -> dict:
    return json.loads(result[0].text)


class TestToolHandlers:
    """Tests for the tool handler functions."""

    @pytest.mark.asyncio
    async def test_list_devices(self):
        inv = FakeInventory(RecordingDriver())
        data = payload(await server.handle_list_devices(inv))
        assert data["devices"][0]["id"] == "mx-edge-1"
        assert data["devices"][0]["auth"] == "password"
        assert data["devices"][0]["managed_groups"] == ["ntp"]

    @pytest.mark.asyncio
    async def test_replace_group(self):
        driver = RecordingDriver(replies=["<ok/>", "<merged/>", "<ok/>"])
        inv = FakeInventory(driver)

        data = payload(await server.handle_replace_group(
            inv, "mx-edge-1", "ntp", "<configuration/>", True
        ))

        assert data["reply"] == "<merged/>"
        assert data["committed"] is True
        assert len(driver.messages) == 3

    @pytest.mark.asyncio
    async def test_delete_group_without_commit(self):
        driver = RecordingDriver()
        inv = FakeInventory(driver)

        data = payload(await server.handle_delete_group(inv, "mx-edge-1", "ntp", False))

        assert data["committed"] is False
        assert len(driver.messages) == 1

    @pytest.mark.asyncio
    async def test_commit(self):
        driver = RecordingDriver()
        await server.handle_commit(FakeInventory(driver), "mx-edge-1")
        assert driver.messages == ["<commit/>"]

    @pytest.mark.asyncio
    async def test_failure_propagates(self):
        driver = RecordingDriver(fail_send={1: OSError("down")})
        with pytest.raises(TransportError):
            await server.handle_send_config(FakeInventory(driver), "mx-edge-1", "<c/>", True)

    @pytest.mark.asyncio
    async def test_send_rpc(self):
        driver = RecordingDriver(replies=["<route-information/>"])
        data = payload(await server.handle_send_rpc(
            FakeInventory(driver), "mx-edge-1", "<get-route-information/>"
        ))
        assert data["reply"] == "<route-information/>"
        assert driver.messages == ["<get-route-information/>"]


class TestResources:
    """Tests for group resources."""

    @pytest.mark.asyncio
    async def test_list_resources(self, monkeypatch):
        monkeypatch.setattr(server, "inventory", FakeInventory(RecordingDriver()))
        resources = await server.list_resources()
        assert [str(r.uri) for r in resources] == ["netconf://mx-edge-1/groups/ntp"]

    @pytest.mark.asyncio
    async def test_read_resource(self, monkeypatch):
        driver = RecordingDriver(replies=["<configuration-text>groups { ntp; }</configuration-text>"])
        monkeypatch.setattr(server, "inventory", FakeInventory(driver))

        text = await server.read_resource("netconf://mx-edge-1/groups/ntp")

        assert text == "groups { ntp; }"

    @pytest.mark.asyncio
    async def test_unknown_resource(self, monkeypatch):
        monkeypatch.setattr(server, "inventory", FakeInventory(RecordingDriver()))
        text = await server.read_resource("netconf://mx-edge-1/other")
        assert "Unknown resource" in text
