"""Client capability interface.

Callers (the MCP server, orchestration layers) depend on this rather than on
GroupClient so other transports can be dropped in.
"""
from abc import ABC, abstractmethod

from .codec import XmlModel


class NetconfClient(ABC):
    """Apply-groups transaction operations against one device."""

    @abstractmethod
    async def read_group(self, group: str) -> str:
        """Committed configuration of a group as text."""
        pass

    @abstractmethod
    async def read_raw_group(self, group: str) -> str:
        """Configuration of a group as the raw XML reply body."""
        pass

    @abstractmethod
    async def replace_group_raw(self, group: str, payload: str, commit: bool) -> str:
        """Delete a group, merge the payload, optionally commit."""
        pass

    @abstractmethod
    async def delete_group(self, group: str, commit: bool = True) -> str:
        pass

    @abstractmethod
    async def delete_group_no_commit(self, group: str) -> str:
        pass

    @abstractmethod
    async def commit(self) -> None:
        pass

    @abstractmethod
    async def send_raw_config(self, payload: str, commit: bool) -> str:
        """Merge a payload without deleting anything first."""
        pass

    @abstractmethod
    async def send_raw_netconf(self, message: str) -> str:
        """Send an already-formed message without wrapping."""
        pass

    @abstractmethod
    async def marshal_group(self, group: str, target: XmlModel) -> XmlModel:
        """Read a group and decode it into ``target``."""
        pass

    @abstractmethod
    async def send_transaction(self, group: str, source: XmlModel, commit: bool) -> None:
        """Encode ``source`` and replace ``group`` with it (merge if no group)."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass
