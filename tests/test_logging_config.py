"""Tests for transaction timing logs."""
import logging

import pytest

from mcp_netconf_groups.exceptions import TransportError
from mcp_netconf_groups.netconf.client import GroupClient
from mcp_netconf_groups.utils.logging_config import timed_transaction

from fakes import RecordingDriver

PERF = "groupcraft.perf"


def perf_records(caplog) -> list[logging.LogRecord]:
    return [r for r in caplog.records if r.name == PERF]


class TestTransactionTiming:
    """Tests for the per-transaction perf line."""

    @pytest.mark.asyncio
    async def test_success_records_steps(self, caplog):
        client = GroupClient(RecordingDriver(), device_id="mx-edge-1")

        with caplog.at_level(logging.INFO, logger=PERF):
            await client.replace_group_raw("ntp", "<configuration/>", True)

        line = perf_records(caplog)[-1].getMessage()
        assert line.startswith("replace_group")
        assert "mx-edge-1" in line
        assert "wait" in line
        assert "steps 3" in line
        assert line.endswith("OK")

    @pytest.mark.asyncio
    async def test_failure_names_step(self, caplog):
        client = GroupClient(RecordingDriver(fail_send={2: OSError("boom")}), device_id="mx")

        with caplog.at_level(logging.INFO, logger=PERF):
            with pytest.raises(TransportError):
                await client.replace_group_raw("ntp", "<configuration/>", True)

        record = perf_records(caplog)[-1]
        assert record.levelno == logging.WARNING
        assert "steps 2" in record.getMessage()
        assert "FAIL at merge" in record.getMessage()

    @pytest.mark.asyncio
    async def test_plain_section(self, caplog):
        with caplog.at_level(logging.INFO, logger=PERF):
            async with timed_transaction("tool:list_devices"):
                pass

        line = perf_records(caplog)[-1].getMessage()
        assert "N/A" in line
        assert "steps" not in line
        assert "wait" not in line
