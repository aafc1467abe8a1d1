"""Apply-groups transactions over NETCONF.

Usage:
    from mcp_netconf_groups.netconf import new_serial_client

    client = new_serial_client("netops", None, "~/.ssh/id_ed25519", "10.0.0.1", 830)
    await client.replace_group_raw("ntp", "<configuration>...</configuration>", commit=True)
    print(await client.read_group("ntp"))
"""
from .base import NetconfClient
from .client import GroupClient
from .codec import XmlModel, xml_field, marshal, unmarshal
from .reply import parse_group_data
from .session import new_serial_client, new_client, load_private_key, DEFAULT_NETCONF_PORT
from . import messages

__all__ = [
    "NetconfClient",
    "GroupClient",
    "XmlModel",
    "xml_field",
    "marshal",
    "unmarshal",
    "parse_group_data",
    "new_serial_client",
    "new_client",
    "load_private_key",
    "DEFAULT_NETCONF_PORT",
    "messages",
]
