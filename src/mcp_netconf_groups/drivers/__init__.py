"""Session drivers for NETCONF transports."""
from .base import SessionDriver, RpcReply
from .ssh import NetconfSSHDriver

__all__ = [
    "SessionDriver",
    "RpcReply",
    "NetconfSSHDriver",
]
