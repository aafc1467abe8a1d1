"""Device inventory configuration."""
from .inventory import DeviceInventory, DeviceConfig

__all__ = ["DeviceInventory", "DeviceConfig"]
