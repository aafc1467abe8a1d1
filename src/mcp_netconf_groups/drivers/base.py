"""Session driver abstraction.

A driver owns at most one open management session. The transaction client
is the only caller and always uses it as dial -> send_raw* -> close inside
one locked section, so drivers need no locking of their own.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class RpcReply:
    """Reply to one NETCONF message."""
    data: str
    raw: str = ""
    message_id: str = ""
    warnings: list[str] = field(default_factory=list)


class SessionDriver(ABC):
    """Dial / send / close capability consumed by the transaction client."""

    @property
    def is_connected(self) -> bool:
        return False

    @abstractmethod
    async def dial(self) -> None:
        """Open the session. May be called again after a failed attempt."""
        pass

    @abstractmethod
    async def send_raw(self, message: str) -> RpcReply:
        """Send one complete message and wait for its reply.

        Raises:
            RpcError: The device rejected the message
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """Tear the session down.

        Must be safe after a failed send and when nothing is open.
        """
        pass
