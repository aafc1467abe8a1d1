"""Transaction client for apply-groups configuration.

Every public operation is one transaction:

    lock -> dial -> send (1..3 messages) -> close -> unlock

The lock is held across the whole sequence, so messages of two transactions
on the same client never interleave on the wire. NETCONF offers no
multi-message transaction of its own; this lock is the only thing that
makes delete + merge + commit look atomic to callers.

A failing step aborts the transaction. The session is closed before the
error propagates; if that close fails as well, both failures are raised
together as CompoundError. Nothing is retried here.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Optional, TypeVar

from ..drivers.base import SessionDriver, RpcReply
from ..exceptions import CompoundError, TransportError
from ..utils.logging_config import TransactionTiming, timed_transaction
from . import messages
from .base import NetconfClient
from .codec import XmlModel, marshal, unmarshal
from .reply import parse_group_data

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GroupClient(NetconfClient):
    """Serializes all device interaction for one endpoint through one lock.

    Args:
        driver: Session driver for the endpoint
        device_id: Name used in logs (defaults to the driver's host)
        timeout: Seconds allowed for each send and close; None waits forever
        dial_timeout: Overall budget for dial. None leaves dial bounded by
            the driver, which times out and retries each connect attempt
    """

    def __init__(
        self,
        driver: SessionDriver,
        device_id: str = "",
        timeout: Optional[float] = None,
        dial_timeout: Optional[float] = None,
    ):
        self._driver: Optional[SessionDriver] = driver
        self._lock = asyncio.Lock()
        self.device_id = device_id or getattr(driver, "host", "")
        self.timeout = timeout
        self.dial_timeout = dial_timeout
        self._timing: Optional[TransactionTiming] = None

    @property
    def driver(self) -> Optional[SessionDriver]:
        return self._driver

    @property
    def busy(self) -> bool:
        """True while a transaction holds the lock."""
        return self._lock.locked()

    # === Transaction plumbing ===

    async def _call(self, step: str, awaitable: Awaitable[T]) -> T:
        """Await one driver call; any failure becomes a TransportError naming ``step``."""
        timeout = self.dial_timeout if step == "dial" else self.timeout
        try:
            if timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout)
        except TransportError as e:
            e.step = step
            raise
        except asyncio.TimeoutError as e:
            raise TransportError(f"{step} timed out after {timeout}s", step=step) from e
        except Exception as e:
            raise TransportError(f"{step} failed: {e}", step=step) from e

    async def _send(self, driver: SessionDriver, step: str, message: str) -> RpcReply:
        logger.debug(f"[{self.device_id}] sending {step}")
        if self._timing is not None:
            self._timing.steps += 1
        return await self._call(step, driver.send_raw(message))

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[SessionDriver]:
        async with timed_transaction(operation, self.device_id) as timing, self._lock:
            timing.lock_acquired()
            driver = self._driver
            if driver is None:
                raise TransportError("client is closed", step="dial")

            # A failed dial leaves nothing open to close
            await self._call("dial", driver.dial())
            self._timing = timing
            try:
                yield driver
            except Exception as exc:
                logger.warning(f"[{self.device_id}] {operation} aborted: {exc}")
                try:
                    await self._call("close", driver.close())
                except TransportError as close_exc:
                    raise CompoundError(operation, exc, close_exc) from exc
                raise
            except BaseException:
                # Cancelled mid-transaction: close, then let it propagate
                try:
                    await self._call("close", driver.close())
                except TransportError as close_exc:
                    logger.warning(f"[{self.device_id}] close after cancel failed: {close_exc}")
                raise
            finally:
                self._timing = None
            await self._call("close", driver.close())

    # === Reads ===

    async def read_group(self, group: str) -> str:
        """Committed configuration of ``group`` in text format.

        Raises:
            TransportError: Dial, send or close failed
            ParseError: Reply has no <configuration-text>
        """
        async with self._session("read_group") as driver:
            reply = await self._send(driver, "get-configuration", messages.get_group_text(group))
        return parse_group_data(reply.data)

    async def read_raw_group(self, group: str) -> str:
        """Configuration of ``group`` as the raw XML reply body."""
        async with self._session("read_raw_group") as driver:
            reply = await self._send(driver, "get-configuration", messages.get_group_xml(group))
        return reply.data

    # === Writes ===

    async def replace_group_raw(self, group: str, payload: str, commit: bool) -> str:
        """Replace a configuration group with ``payload``.

        Steps, in order, on one session:
          1. delete the group and its apply-groups entry (skipped when
             ``group`` is empty)
          2. merge ``payload`` via load-configuration
          3. commit, when ``commit`` is true

        Merge only ever adds statements, so the delete is what removes
        statements that are absent from the new payload.

        Returns:
            Reply body of the merge step
        """
        async with self._session("replace_group") as driver:
            if group:
                await self._send(driver, "delete", messages.delete_group(group))
            reply = await self._send(driver, "merge", messages.load_merge(payload))
            if commit:
                await self._send(driver, "commit", messages.commit())

        logger.info(
            f"[{self.device_id}] replaced group '{group}'"
            f"{' and committed' if commit else ' (uncommitted)'}"
        )
        return reply.data

    async def delete_group(self, group: str, commit: bool = True) -> str:
        """Delete a group and its apply-groups entry, then commit.

        ``commit=False`` leaves the change in the candidate for a later
        external commit.

        Returns:
            Reply body of the delete step with newlines removed
        """
        if not group:
            raise ValueError("group name is required for delete")

        async with self._session("delete_group") as driver:
            reply = await self._send(driver, "delete", messages.delete_group(group))
            if commit:
                await self._send(driver, "commit", messages.commit())

        logger.info(
            f"[{self.device_id}] deleted group '{group}'"
            f"{' and committed' if commit else ' (uncommitted)'}"
        )
        return reply.data.replace("\n", "")

    async def delete_group_no_commit(self, group: str) -> str:
        """Delete a group without committing."""
        return await self.delete_group(group, commit=False)

    async def commit(self) -> None:
        """Commit the candidate in a session of its own."""
        async with self._session("commit") as driver:
            await self._send(driver, "commit", messages.commit())
        logger.info(f"[{self.device_id}] committed")

    async def send_raw_config(self, payload: str, commit: bool) -> str:
        """Merge ``payload`` without deleting anything first.

        Returns:
            Reply body of the merge step
        """
        async with self._session("send_raw_config") as driver:
            reply = await self._send(driver, "merge", messages.load_merge(payload))
            if commit:
                await self._send(driver, "commit", messages.commit())
        return reply.data

    async def send_raw_netconf(self, message: str) -> str:
        """Send ``message`` as-is and return the reply body."""
        async with self._session("send_raw_netconf") as driver:
            reply = await self._send(driver, "raw", message)
        return reply.data

    # === Structured payloads ===

    async def marshal_group(self, group: str, target: XmlModel) -> XmlModel:
        """Read ``group`` as XML and decode it into ``target``.

        ``target`` is populated in place and returned.

        Raises:
            DecodeError: The reply does not match the model
        """
        reply = await self.read_raw_group(group)
        return unmarshal(reply, target)

    async def send_transaction(self, group: str, source: XmlModel, commit: bool) -> None:
        """Encode ``source`` and push it.

        With a group name this is a full replace (delete, merge, commit);
        without one it is a plain merge.
        """
        payload = marshal(source)
        if group:
            await self.replace_group_raw(group, payload, commit)
        else:
            await self.send_raw_config(payload, commit)

    # === Lifecycle ===

    async def close(self) -> None:
        """Drop the driver. Later operations raise TransportError."""
        async with self._lock:
            self._driver = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False
