"""Construction of transaction clients bound to one endpoint.

Authentication policy: SSH key material, when given, wins over a password
even if both are supplied. Host keys are accepted without verification,
a trust-on-first-use simplification for managed lab and provider networks,
not a security boundary.
"""
import io
import logging
import os
import warnings
from typing import Optional

import paramiko

from ..drivers.ssh import NetconfSSHDriver
from ..exceptions import ConfigError, KeyLoadError
from .base import NetconfClient
from .client import GroupClient

logger = logging.getLogger(__name__)

DEFAULT_NETCONF_PORT = 830

# Tried in order; paramiko has no format sniffing for in-memory keys
_KEY_TYPES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def read_key_text(ssh_key: str) -> str:
    """Return key text, reading it from disk when ``ssh_key`` is a path."""
    if "PRIVATE KEY" in ssh_key:
        return ssh_key
    path = os.path.expanduser(ssh_key.strip())
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise KeyLoadError(f"cannot read SSH key file {path}: {e}") from e


def load_private_key(ssh_key: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse SSH private key material.

    Args:
        ssh_key: PEM/OpenSSH key text, or a path to a key file
        passphrase: Passphrase for an encrypted key

    Raises:
        KeyLoadError: The file cannot be read or no key type accepts it
    """
    text = read_key_text(ssh_key)
    last_error: Optional[Exception] = None
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(text), password=passphrase)
        except Exception as e:
            last_error = e
    raise KeyLoadError(f"unable to parse SSH private key: {last_error}")


def new_serial_client(
    username: str,
    password: Optional[str],
    ssh_key: Optional[str],
    address: str,
    port: int = DEFAULT_NETCONF_PORT,
    *,
    timeout: Optional[float] = 30,
    retries: int = 3,
    device_id: str = "",
    key_passphrase: Optional[str] = None,
) -> NetconfClient:
    """Build a transaction client for one NETCONF endpoint.

    Raises:
        ConfigError: Missing username/address, bad port, or no credential
        KeyLoadError: ``ssh_key`` given but unparseable
    """
    if not username:
        raise ConfigError("username is required")
    if not address:
        raise ConfigError("host address is required")
    if not isinstance(port, int) or not 0 < port < 65536:
        raise ConfigError(f"invalid port: {port!r}")

    key_text = None
    if ssh_key:
        key_text = read_key_text(ssh_key)
        # Fail at construction rather than on the first dial
        load_private_key(key_text, key_passphrase)
        logger.debug(f"Using key authentication for {username}@{address}")
    elif password:
        logger.debug(f"Using password authentication for {username}@{address}")
    else:
        raise ConfigError(f"no SSH key or password for {username}@{address}")

    driver = NetconfSSHDriver(
        host=address,
        port=port,
        username=username,
        password=None if key_text else password,
        key_text=key_text,
        key_passphrase=key_passphrase if key_text else None,
        timeout=timeout,
        retries=retries,
    )
    return GroupClient(driver, device_id=device_id or address, timeout=timeout)


def new_client(
    username: str,
    password: Optional[str],
    ssh_key: Optional[str],
    address: str,
    port: int = DEFAULT_NETCONF_PORT,
) -> GroupClient:
    """Deprecated: use new_serial_client(), which returns the interface type."""
    warnings.warn(
        "new_client() is deprecated, use new_serial_client()",
        DeprecationWarning,
        stacklevel=2,
    )
    client = new_serial_client(username, password, ssh_key, address, port)
    assert isinstance(client, GroupClient)
    return client
