"""Device inventory loaded from YAML.

```yaml
defaults:
  port: 830
  username: netops
  password_env: "NETCONF_PASSWORD"
  timeout: 30

devices:
  mx-edge-1:
    name: "MX Edge 1"
    host: 10.0.0.1
    ssh_key_file: ~/.ssh/netops_ed25519
    managed_groups: [ntp, snmp]
  mx-edge-2:
    host: 10.0.0.2
```
"""
import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

from ..exceptions import ConfigError
from ..netconf.base import NetconfClient
from ..netconf.session import new_serial_client, DEFAULT_NETCONF_PORT

logger = logging.getLogger(__name__)


@dataclass
class DeviceConfig:
    """Connection settings for one NETCONF device."""
    host: str
    username: str
    name: str = ""
    port: int = DEFAULT_NETCONF_PORT
    password: Optional[str] = None
    password_env: str = "NETCONF_PASSWORD"
    ssh_key: Optional[str] = None
    ssh_key_file: Optional[str] = None
    key_passphrase_env: str = "NETCONF_KEY_PASSPHRASE"
    timeout: Optional[float] = 30
    retries: int = 3
    # Groups this tool owns on the device, exposed as resources
    managed_groups: list[str] = field(default_factory=list)

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")

    def get_ssh_key(self) -> str:
        """Inline key material, else the key file path, else empty."""
        if self.ssh_key:
            return self.ssh_key
        if self.ssh_key_file:
            return self.ssh_key_file
        return ""

    def get_key_passphrase(self) -> Optional[str]:
        return os.environ.get(self.key_passphrase_env) or None

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown device settings: {sorted(unknown)}")
        try:
            return cls(**{k: v for k, v in data.items() if k in known})
        except TypeError as e:
            raise ConfigError(f"invalid device config: {e}") from e


class DeviceInventory:
    """Loads devices.yaml and hands out one cached client per device."""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._clients: dict[str, NetconfClient] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the devices.yaml config file."""
        search_paths = [
            Path.cwd() / "configs" / "devices.yaml",
            Path.cwd() / "devices.yaml",
            Path.home() / ".config" / "groupcraft" / "devices.yaml",
            Path("/etc/groupcraft/devices.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            "Could not find devices.yaml. Create one in ./configs/devices.yaml"
        )

    def _load_config(self) -> None:
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {}) or {}
        devices = self._config.setdefault("devices", {}) or {}
        self._config["devices"] = devices
        for device_id, device_config in devices.items():
            for key, value in defaults.items():
                if key not in device_config:
                    device_config[key] = value
            device_config.setdefault("name", device_id)

        logger.info(f"Loaded {len(devices)} devices from {self.config_path}")

    def get_device_ids(self) -> list[str]:
        return list(self._config.get("devices", {}).keys())

    def get_device_config(self, device_id: str) -> DeviceConfig:
        """Get the parsed config for a device.

        Raises:
            KeyError: Unknown device
        """
        devices = self._config.get("devices", {})
        if device_id not in devices:
            raise KeyError(f"Unknown device: {device_id}")
        return DeviceConfig.from_dict(devices[device_id])

    def get_client(self, device_id: str) -> NetconfClient:
        """Get or create the transaction client for a device.

        One client per device keeps all its transactions behind one lock.
        """
        if device_id not in self._clients:
            config = self.get_device_config(device_id)
            self._clients[device_id] = new_serial_client(
                config.username,
                config.get_password(),
                config.get_ssh_key(),
                config.host,
                config.port,
                timeout=config.timeout,
                retries=config.retries,
                device_id=device_id,
                key_passphrase=config.get_key_passphrase(),
            )
        return self._clients[device_id]

    def get_managed_groups(self, device_id: str) -> list[str]:
        return list(self.get_device_config(device_id).managed_groups)

    async def close_all(self) -> None:
        """Close all clients."""
        for client in self._clients.values():
            await client.close()
        self._clients.clear()
