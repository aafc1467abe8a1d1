"""Tests for the dataclass <-> XML codec and structured transactions."""
from dataclasses import dataclass, field
from typing import Optional

import pytest

from mcp_netconf_groups.exceptions import DecodeError
from mcp_netconf_groups.netconf.client import GroupClient
from mcp_netconf_groups.netconf.codec import XmlModel, xml_field, marshal, unmarshal

from fakes import EchoDriver, RecordingDriver


@dataclass
class NtpServer(XmlModel, tag="server"):
    name: str = ""
    prefer: bool = False
    version: Optional[int] = None


@dataclass
class Ntp(XmlModel):
    boot_server: Optional[str] = None
    server: list[NtpServer] = field(default_factory=list)


@dataclass
class System(XmlModel):
    host_name: Optional[str] = None
    ntp: Optional[Ntp] = None


@dataclass
class Group(XmlModel, tag="groups"):
    name: str = ""
    system: Optional[System] = None


@dataclass
class Configuration(XmlModel):
    groups: list[Group] = field(default_factory=list)
    apply_groups: list[str] = field(default_factory=list)


@dataclass
class Unit(XmlModel):
    name: int = 0
    description: Optional[str] = None
    status: Optional[str] = xml_field("status", attribute=True, default=None)


def ntp_config(group: str = "ntp") -> Configuration:
    return Configuration(
        groups=[Group(
            name=group,
            system=System(ntp=Ntp(
                boot_server="10.0.0.10",
                server=[
                    NtpServer(name="10.0.0.10", prefer=True),
                    NtpServer(name="10.0.0.11", version=4),
                ],
            )),
        )],
        apply_groups=[group],
    )


class TestEncode:
    """Tests for model encoding."""

    def test_field_names_are_hyphenated(self):
        xml = marshal(Configuration(apply_groups=["ntp"]))
        assert xml == "<configuration><apply-groups>ntp</apply-groups></configuration>"

    def test_bool_is_presence_flag(self):
        """True encodes as an empty element, False is omitted."""
        assert marshal(NtpServer(name="a", prefer=True)) == "<server><name>a</name><prefer/></server>"
        assert marshal(NtpServer(name="a")) == "<server><name>a</name></server>"

    def test_attribute_field(self):
        xml = marshal(Unit(name=0, status="inactive"))
        assert xml == '<unit status="inactive"><name>0</name></unit>'

    def test_values_are_escaped(self):
        xml = marshal(Unit(name=1, description="a < b & c"))
        assert "a &lt; b &amp; c" in xml

    def test_marshal_rejects_plain_objects(self):
        with pytest.raises(TypeError):
            marshal({"groups": []})


class TestDecode:
    """Tests for model decoding."""

    def test_decode_nested(self):
        config = unmarshal(marshal(ntp_config()), Configuration)
        server = config.groups[0].system.ntp.server
        assert [s.name for s in server] == ["10.0.0.10", "10.0.0.11"]
        assert server[0].prefer is True
        assert server[1].version == 4

    def test_namespaces_and_unknown_elements_ignored(self):
        reply = (
            '<configuration xmlns:junos="http://xml.juniper.net/junos/*/junos" '
            'junos:changed-seconds="1700000000">'
            '<version>23.4R1</version>'
            '<groups><name>ntp</name><junos:comment>x</junos:comment></groups>'
            '</configuration>'
        )
        config = unmarshal(reply, Configuration)
        assert config.groups == [Group(name="ntp")]

    def test_decode_populates_instance_in_place(self):
        target = Configuration()
        result = unmarshal("<configuration><apply-groups>a</apply-groups></configuration>", target)
        assert result is target
        assert target.apply_groups == ["a"]

    def test_missing_root_raises(self):
        with pytest.raises(DecodeError):
            unmarshal("<ok/>", Configuration)

    def test_malformed_xml_raises(self):
        with pytest.raises(DecodeError):
            unmarshal("<configuration><groups>", Configuration)

    def test_bad_value_raises(self):
        with pytest.raises(DecodeError) as exc_info:
            unmarshal("<unit><name>ge-0/0/0</name></unit>", Unit)
        assert exc_info.value.tag == "name"

    def test_scalar_with_nested_elements_raises(self):
        reply = "<configuration><groups><name><first>ntp</first></name></groups></configuration>"
        with pytest.raises(DecodeError) as exc_info:
            unmarshal(reply, Configuration)
        assert exc_info.value.tag == "name"

    def test_model_given_plain_text_raises(self):
        reply = "<groups><name>ntp</name><system>ntp.example.net</system></groups>"
        with pytest.raises(DecodeError) as exc_info:
            unmarshal(reply, Group)
        assert exc_info.value.tag == "system"

    def test_empty_model_element_decodes_to_defaults(self):
        group = unmarshal("<groups><name>ntp</name><system/></groups>", Group)
        assert group.system == System()


class TestStructuredTransactions:
    """Tests for send_transaction / marshal_group."""

    @pytest.mark.asyncio
    async def test_round_trip(self):
        """What goes out through send_transaction comes back equal."""
        client = GroupClient(EchoDriver())
        original = ntp_config("ntp")

        await client.send_transaction("ntp", original, commit=True)
        restored = await client.marshal_group("ntp", Configuration())

        assert restored == original

    @pytest.mark.asyncio
    async def test_uncommitted_change_not_read_back(self):
        client = GroupClient(EchoDriver())

        await client.send_transaction("ntp", ntp_config("ntp"), commit=False)
        restored = await client.marshal_group("ntp", Configuration())

        assert restored == Configuration()

    @pytest.mark.asyncio
    async def test_group_name_selects_replace(self):
        """A group name means delete + merge; none means merge only."""
        driver = RecordingDriver()
        client = GroupClient(driver)

        await client.send_transaction("ntp", ntp_config(), commit=False)
        await client.send_transaction("", ntp_config(), commit=False)

        first, second = driver.messages[0], driver.messages[2]
        assert first.startswith("<edit-config>")
        assert driver.messages[1].startswith("<load-configuration")
        assert second.startswith("<load-configuration")
        assert len(driver.messages) == 3

    @pytest.mark.asyncio
    async def test_marshal_group_decode_error(self):
        client = GroupClient(RecordingDriver(replies=["<ok/>"]))
        with pytest.raises(DecodeError):
            await client.marshal_group("ntp", Configuration())
