"""NETCONF over SSH session driver backed by ncclient.

ncclient owns the SSH transport, the hello exchange, message framing and
<rpc-error> parsing. It is blocking, so every call runs in the default
executor and the event loop only suspends at dial / send / close
boundaries.
"""
import asyncio
import logging
import os
import tempfile
from typing import Optional

from lxml import etree
from ncclient import manager
from ncclient.operations import RaiseMode, RPCError
from ncclient.xml_ import to_ele

from ..exceptions import RpcError, TransportError
from ..utils.connection import with_retry
from .base import SessionDriver, RpcReply

logger = logging.getLogger(__name__)

JUNOS_DEVICE_PARAMS = {"name": "junos"}

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)


def reply_body(raw: str) -> tuple[str, str]:
    """Split an <rpc-reply> document into (inner XML, message-id)."""
    try:
        root = etree.fromstring(raw.strip().encode("utf-8"), _PARSER)
    except etree.XMLSyntaxError as e:
        raise TransportError(f"malformed rpc-reply: {e}", step="send") from e

    parts = [root.text or ""]
    for child in root:
        parts.append(etree.tostring(child, encoding="unicode", with_tail=True))
    return "".join(parts), root.get("message-id", "")


def rpc_error_messages(error: RPCError) -> list[str]:
    message = (error.message or str(error) or "").strip()
    return [message] if message else []


def _hangup(conn, polite: bool) -> None:
    """Send <close-session/>; ncclient drops the transport either way."""
    if polite:
        conn.close_session()
        return
    # The peer may already be gone after a failed send
    try:
        conn.close_session()
    except Exception as e:
        logger.debug(f"close-session on a failed session: {e}")


class NetconfSSHDriver(SessionDriver):
    """ncclient-backed NETCONF session.

    Host keys are not verified. Key material is handed to ncclient
    through a private temporary file that only lives for the connect call.

    Args:
        host: Device address
        port: NETCONF port
        username: SSH user
        password: Password, used when no key is given
        key_text: Private key (PEM/OpenSSH text); wins over ``password``
        key_passphrase: Passphrase for an encrypted ``key_text``
        timeout: Seconds for each connect attempt and each RPC
        retries: Connect attempts before dial gives up
    """

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: Optional[str] = None,
        key_text: Optional[str] = None,
        key_passphrase: Optional[str] = None,
        timeout: Optional[float] = 30,
        retries: int = 3,
        device_params: Optional[dict] = None,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.key_text = key_text
        self.key_passphrase = key_passphrase
        self.timeout = timeout
        self.retries = retries
        self.device_params = device_params or dict(JUNOS_DEVICE_PARAMS)
        self.session_id: Optional[str] = None
        self._manager = None
        self._healthy = False

    @property
    def is_connected(self) -> bool:
        return self._manager is not None and self._manager.connected

    async def dial(self) -> None:
        """Connect with retries; each attempt is bounded by ``timeout``."""
        if self._manager is not None:
            return

        logger.info(f"Dialing NETCONF on {self.host}:{self.port} as {self.username}")
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._connect)
        try:
            conn = await asyncio.shield(future)
        except asyncio.CancelledError:
            # The connect thread keeps running; hang up whatever it returns
            future.add_done_callback(lambda f: self._discard(loop, f))
            raise

        self._manager = conn
        self._healthy = True
        self.session_id = conn.session_id
        logger.info(f"NETCONF session {self.session_id} open on {self.host}")

    def _discard(self, loop: asyncio.AbstractEventLoop, future: asyncio.Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        logger.warning(f"[{self.host}] closing session opened after dial was abandoned")
        loop.run_in_executor(None, _hangup, future.result(), False)

    def _connect(self):
        connect = with_retry(max_attempts=self.retries, min_wait=1, max_wait=10)(self._connect_once)
        return connect()

    def _connect_once(self):
        key_file = self._write_key() if self.key_text else None
        try:
            conn = manager.connect(
                host=self.host,
                port=self.port,
                username=self.username,
                # ncclient decrypts key files with the password argument
                password=self.key_passphrase if key_file else self.password,
                key_filename=key_file,
                hostkey_verify=False,
                allow_agent=False,
                look_for_keys=False,
                timeout=self.timeout,
                device_params=self.device_params,
            )
        finally:
            if key_file:
                os.unlink(key_file)

        conn.raise_mode = RaiseMode.ERRORS
        if self.timeout is not None:
            conn.timeout = self.timeout
        return conn

    def _write_key(self) -> str:
        fd, path = tempfile.mkstemp(prefix="groupcraft-", suffix=".key")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(self.key_text)
        return path

    async def send_raw(self, message: str) -> RpcReply:
        """Dispatch one message and return the reply body.

        Raises:
            RpcError: The device answered with an error-severity rpc-error
        """
        conn = self._manager
        if conn is None:
            raise TransportError("session is not open", step="send")

        request = to_ele(message.strip().encode("utf-8"))
        logger.debug(f"[{self.host}] >>> {message}")

        loop = asyncio.get_running_loop()
        try:
            reply = await loop.run_in_executor(None, conn.dispatch, request)
        except RPCError as e:
            raise RpcError(rpc_error_messages(e)) from e
        except BaseException:
            self._healthy = False
            raise
        logger.debug(f"[{self.host}] <<< {reply.xml}")

        data, message_id = reply_body(reply.xml)
        warnings = [
            (error.message or "").strip()
            for error in reply.errors
            if error.severity == "warning"
        ]
        for warning in warnings:
            logger.warning(f"[{self.host}] rpc {message_id} warning: {warning}")
        return RpcReply(data=data, raw=reply.xml, message_id=message_id, warnings=warnings)

    async def close(self) -> None:
        """Close the session; a no-op when nothing is open."""
        conn, healthy = self._manager, self._healthy
        self._manager = None
        self._healthy = False
        if conn is None:
            return

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, _hangup, conn, healthy)
        logger.info(f"NETCONF session {self.session_id} to {self.host} closed")
        self.session_id = None
