"""Logging setup and transaction timing.

Module loggers live under ``mcp_netconf_groups``. Timings of every
transaction go to the separate ``groupcraft.perf`` logger, one line each:

    replace_group        | mx-edge-1       | wait    0.02ms | total  412.77ms | steps 3 | OK

Environment Variables:
    GROUPCRAFT_LOG_LEVEL: Console level (default: INFO)
    GROUPCRAFT_LOG_FILE: Main log file (default: ~/.groupcraft/groupcraft.log)
    GROUPCRAFT_LOG_MAX_SIZE: Max size of each log file in MB (default: 10)
    GROUPCRAFT_LOG_BACKUPS: Rotated files to keep (default: 5)
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import AsyncIterator, Optional

PACKAGE_LOGGER = "mcp_netconf_groups"

perf_logger = logging.getLogger("groupcraft.perf")

_configured = False


def get_log_level() -> int:
    level_str = os.environ.get("GROUPCRAFT_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    default_path = Path.home() / ".groupcraft" / "groupcraft.log"
    return Path(os.environ.get("GROUPCRAFT_LOG_FILE", str(default_path)))


def _rotating(path: Path, formatter: logging.Formatter) -> RotatingFileHandler:
    max_size_mb = int(os.environ.get("GROUPCRAFT_LOG_MAX_SIZE", "10"))
    handler = RotatingFileHandler(
        path,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=int(os.environ.get("GROUPCRAFT_LOG_BACKUPS", "5")),
        encoding="utf-8",
    )
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(formatter)
    return handler


def setup_logging() -> None:
    """Attach console, main file and perf file handlers. Idempotent.

    The main file is written at DEBUG, so it carries every NETCONF message
    sent and received.
    """
    global _configured
    if _configured:
        return

    log_level = get_log_level()
    log_file = get_log_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-36s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(logging.DEBUG)
    pkg_logger.addHandler(console_handler)
    pkg_logger.addHandler(_rotating(log_file, main_format))

    perf_log_file = log_file.parent / "groupcraft-perf.log"
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(_rotating(
        perf_log_file,
        logging.Formatter("%(asctime)s.%(msecs)03d | %(message)s", datefmt="%Y-%m-%d %H:%M:%S"),
    ))
    perf_logger.propagate = False

    _configured = True
    pkg_logger.info(
        f"Logging initialized: level={logging.getLevelName(log_level)}, "
        f"file={log_file}, perf={perf_log_file}"
    )


@dataclass
class TransactionTiming:
    """Timing of one transaction, filled in while it runs."""
    operation: str
    device_id: str
    steps: int = 0
    started: float = field(default_factory=time.perf_counter)
    acquired: Optional[float] = None

    def lock_acquired(self) -> None:
        self.acquired = time.perf_counter()

    def line(self, status: str) -> str:
        now = time.perf_counter()
        fields = [f"{self.operation:20s}", f"{self.device_id:15s}"]
        if self.acquired is not None:
            fields.append(f"wait {(self.acquired - self.started) * 1000:7.2f}ms")
        fields.append(f"total {(now - self.started) * 1000:8.2f}ms")
        if self.steps:
            fields.append(f"steps {self.steps}")
        fields.append(status)
        return " | ".join(fields)


@asynccontextmanager
async def timed_transaction(
    operation: str, device_id: Optional[str] = None
) -> AsyncIterator[TransactionTiming]:
    """Log how long a transaction took and how far it got.

    Usage:
        async with timed_transaction("replace_group", "mx-edge-1") as timing:
            async with lock:
                timing.lock_acquired()
                ...
                timing.steps += 1
    """
    timing = TransactionTiming(operation, device_id or "N/A")
    try:
        yield timing
    except BaseException as e:
        step = getattr(e, "step", "") or type(e).__name__
        perf_logger.warning(timing.line(f"FAIL at {step}: {e}"))
        raise
    perf_logger.info(timing.line("OK"))
