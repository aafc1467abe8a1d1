"""MCP Server for NETCONF apply-groups management.

Exposes the group transaction client of each inventory device as tools:
- list_devices: List configured NETCONF devices
- read_group: Committed configuration of a group (text)
- read_group_xml: Configuration of a group (raw XML)
- replace_group: Delete + merge (+ commit) a group from an XML payload
- send_config: Merge an XML payload without deleting anything
- delete_group: Delete a group and its apply-groups entry
- commit: Commit the candidate configuration
- send_rpc: Send an arbitrary NETCONF message
- get_audit_log: Recent configuration changes

Resources: netconf://<device>/groups/<group> for every managed group.
"""
import asyncio
import json
import logging
import os
from typing import Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .config.inventory import DeviceInventory
from .utils.audit_log import ChangeTracker, setup_audit_logging, get_recent_changes
from .utils.logging_config import setup_logging, timed_transaction

logger = logging.getLogger(__name__)

# Initialized on first use
inventory: Optional[DeviceInventory] = None

RESOURCE_SCHEME = "netconf://"


def get_inventory() -> DeviceInventory:
    """Get or create the device inventory."""
    global inventory
    if inventory is None:
        config_path = os.environ.get("GROUPCRAFT_CONFIG")
        inventory = DeviceInventory(config_path)
    return inventory


server = Server("groupcraft")


def _text(payload) -> list[TextContent]:
    if not isinstance(payload, str):
        payload = json.dumps(payload, indent=2)
    return [TextContent(type="text", text=payload)]


_DEVICE = {"type": "string", "description": "Device ID from devices.yaml"}
_GROUP = {"type": "string", "description": "Configuration group name (apply-groups)"}
_COMMIT = {
    "type": "boolean",
    "description": "Commit after the change (default: true)",
    "default": True,
}


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_devices",
            description="List all configured NETCONF devices and their managed groups",
            inputSchema={"type": "object", "properties": {}, "required": []},
        ),
        Tool(
            name="read_group",
            description="Read the committed configuration of a group in text format",
            inputSchema={
                "type": "object",
                "properties": {"device_id": _DEVICE, "group": _GROUP},
                "required": ["device_id", "group"],
            },
        ),
        Tool(
            name="read_group_xml",
            description="Read the configuration of a group as raw XML",
            inputSchema={
                "type": "object",
                "properties": {"device_id": _DEVICE, "group": _GROUP},
                "required": ["device_id", "group"],
            },
        ),
        Tool(
            name="replace_group",
            description=(
                "Replace a configuration group: delete the group and its apply-groups "
                "entry, merge the XML payload, then optionally commit. All steps run "
                "on one session; the first failure aborts the rest."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _DEVICE,
                    "group": _GROUP,
                    "config": {
                        "type": "string",
                        "description": "XML <configuration> payload that defines the group",
                    },
                    "commit": _COMMIT,
                },
                "required": ["device_id", "group", "config"],
            },
        ),
        Tool(
            name="send_config",
            description="Merge an XML configuration payload without deleting anything first",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _DEVICE,
                    "config": {"type": "string", "description": "XML <configuration> payload"},
                    "commit": _COMMIT,
                },
                "required": ["device_id", "config"],
            },
        ),
        Tool(
            name="delete_group",
            description="Delete a configuration group and its apply-groups entry",
            inputSchema={
                "type": "object",
                "properties": {"device_id": _DEVICE, "group": _GROUP, "commit": _COMMIT},
                "required": ["device_id", "group"],
            },
        ),
        Tool(
            name="commit",
            description="Commit the candidate configuration",
            inputSchema={
                "type": "object",
                "properties": {"device_id": _DEVICE},
                "required": ["device_id"],
            },
        ),
        Tool(
            name="send_rpc",
            description="Send an arbitrary NETCONF message (wrapped in <rpc> only)",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": _DEVICE,
                    "rpc": {"type": "string", "description": "Message body, e.g. <get-system-information/>"},
                },
                "required": ["device_id", "rpc"],
            },
        ),
        Tool(
            name="get_audit_log",
            description="Show recent configuration changes from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "device_id": {"type": "string", "description": "Filter by device"},
                    "operation": {"type": "string", "description": "Filter by operation"},
                    "limit": {"type": "integer", "default": 20},
                },
                "required": [],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    device_id = arguments.get("device_id", "N/A")

    async with timed_transaction(f"tool:{name}", device_id):
        try:
            inv = get_inventory()

            if name == "list_devices":
                return await handle_list_devices(inv)

            elif name == "read_group":
                return await handle_read_group(inv, arguments["device_id"], arguments["group"])

            elif name == "read_group_xml":
                return await handle_read_group_xml(inv, arguments["device_id"], arguments["group"])

            elif name == "replace_group":
                return await handle_replace_group(
                    inv,
                    arguments["device_id"],
                    arguments["group"],
                    arguments["config"],
                    arguments.get("commit", True),
                )

            elif name == "send_config":
                return await handle_send_config(
                    inv,
                    arguments["device_id"],
                    arguments["config"],
                    arguments.get("commit", True),
                )

            elif name == "delete_group":
                return await handle_delete_group(
                    inv,
                    arguments["device_id"],
                    arguments["group"],
                    arguments.get("commit", True),
                )

            elif name == "commit":
                return await handle_commit(inv, arguments["device_id"])

            elif name == "send_rpc":
                return await handle_send_rpc(inv, arguments["device_id"], arguments["rpc"])

            elif name == "get_audit_log":
                return await handle_get_audit_log(
                    arguments.get("device_id"),
                    arguments.get("operation"),
                    arguments.get("limit", 20),
                )

            else:
                return _text(f"Unknown tool: {name}")

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return _text(f"Error: {e}")


# === TOOL HANDLERS ===

async def handle_list_devices(inv: DeviceInventory) -> list[TextContent]:
    devices = []
    for device_id in inv.get_device_ids():
        config = inv.get_device_config(device_id)
        devices.append({
            "id": device_id,
            "name": config.name,
            "host": config.host,
            "port": config.port,
            "username": config.username,
            "auth": "key" if config.get_ssh_key() else "password",
            "managed_groups": config.managed_groups,
        })
    return _text({"devices": devices})


async def handle_read_group(inv: DeviceInventory, device_id: str, group: str) -> list[TextContent]:
    client = inv.get_client(device_id)
    return _text(await client.read_group(group))


async def handle_read_group_xml(inv: DeviceInventory, device_id: str, group: str) -> list[TextContent]:
    client = inv.get_client(device_id)
    return _text(await client.read_raw_group(group))


async def _audited(
    device_id: str,
    operation: str,
    parameters: dict,
    call,
    group: Optional[str] = None,
    committed: bool = False,
) -> list[TextContent]:
    """Run a mutating client call and record the outcome in the audit log."""
    tracker = ChangeTracker(device_id)
    try:
        output = await call
    except Exception as e:
        tracker.log_change(operation, parameters, success=False, group=group,
                           committed=False, error=str(e))
        raise
    tracker.log_change(operation, parameters, success=True, group=group,
                       committed=committed, output=output or "")
    return _text({
        "device_id": device_id,
        "operation": operation,
        "group": group,
        "committed": committed,
        "reply": output or "",
    })


async def handle_replace_group(
    inv: DeviceInventory,
    device_id: str,
    group: str,
    config: str,
    commit: bool,
) -> list[TextContent]:
    client = inv.get_client(device_id)
    return await _audited(
        device_id, "replace_group", {"commit": commit, "payload_size": len(config)},
        client.replace_group_raw(group, config, commit),
        group=group, committed=commit,
    )


async def handle_send_config(
    inv: DeviceInventory,
    device_id: str,
    config: str,
    commit: bool,
) -> list[TextContent]:
    client = inv.get_client(device_id)
    return await _audited(
        device_id, "send_config", {"commit": commit, "payload_size": len(config)},
        client.send_raw_config(config, commit),
        committed=commit,
    )


async def handle_delete_group(
    inv: DeviceInventory,
    device_id: str,
    group: str,
    commit: bool,
) -> list[TextContent]:
    client = inv.get_client(device_id)
    return await _audited(
        device_id, "delete_group", {"commit": commit},
        client.delete_group(group, commit=commit),
        group=group, committed=commit,
    )


async def handle_commit(inv: DeviceInventory, device_id: str) -> list[TextContent]:
    client = inv.get_client(device_id)

    async def _commit() -> str:
        await client.commit()
        return ""

    return await _audited(device_id, "commit", {}, _commit(), committed=True)


async def handle_send_rpc(inv: DeviceInventory, device_id: str, rpc: str) -> list[TextContent]:
    client = inv.get_client(device_id)
    return await _audited(device_id, "send_rpc", {"rpc": rpc[:200]}, client.send_raw_netconf(rpc))


async def handle_get_audit_log(
    device_id: Optional[str],
    operation: Optional[str],
    limit: int,
) -> list[TextContent]:
    records = get_recent_changes(device_id=device_id, operation=operation, limit=limit)
    return _text({
        "count": len(records),
        "changes": [
            {
                "timestamp": r.timestamp,
                "device_id": r.device_id,
                "operation": r.operation,
                "group": r.group,
                "committed": r.committed,
                "success": r.success,
                "error": r.error,
            }
            for r in records
        ],
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """One resource per managed group per device."""
    inv = get_inventory()
    resources = []

    for device_id in inv.get_device_ids():
        config = inv.get_device_config(device_id)
        for group in config.managed_groups:
            resources.append(Resource(
                uri=AnyUrl(f"{RESOURCE_SCHEME}{device_id}/groups/{group}"),
                name=f"{config.name} group {group}",
                description=f"Committed configuration of group '{group}' on {device_id}",
                mimeType="text/plain",
            ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource: netconf://<device>/groups/<group>."""
    uri_str = str(uri)
    if uri_str.startswith(RESOURCE_SCHEME):
        parts = uri_str[len(RESOURCE_SCHEME):].split("/")
        if len(parts) == 3 and parts[1] == "groups":
            device_id, _, group = parts
            client = get_inventory().get_client(device_id)
            return await client.read_group(group)

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()
    setup_audit_logging()

    async def run():
        try:
            async with stdio_server() as (read_stream, write_stream):
                await server.run(
                    read_stream,
                    write_stream,
                    server.create_initialization_options()
                )
        finally:
            if inventory:
                await inventory.close_all()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
