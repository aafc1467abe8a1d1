"""groupcraft - transactional apply-groups management over NETCONF."""
from .exceptions import (
    GroupcraftError,
    TransportError,
    RpcError,
    CompoundError,
    ParseError,
    DecodeError,
    ConfigError,
    KeyLoadError,
)
from .netconf import NetconfClient, GroupClient, XmlModel, xml_field, new_serial_client

__version__ = "0.1.0"

__all__ = [
    "GroupcraftError",
    "TransportError",
    "RpcError",
    "CompoundError",
    "ParseError",
    "DecodeError",
    "ConfigError",
    "KeyLoadError",
    "NetconfClient",
    "GroupClient",
    "XmlModel",
    "xml_field",
    "new_serial_client",
]
