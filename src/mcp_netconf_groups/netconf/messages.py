"""NETCONF message templates for apply-groups transactions.

Group names are XML-escaped before they are substituted. Payloads are
caller-supplied XML and go in verbatim.
"""
from xml.sax.saxutils import escape

# Merge is additive, so a group replace deletes first. default-operation
# none keeps the rest of the candidate untouched.
DELETE_GROUP = """<edit-config>
  <target>
    <candidate/>
  </target>
  <default-operation>none</default-operation>
  <config>
    <configuration>
      <groups operation="delete">
        <name>{group}</name>
      </groups>
      <apply-groups operation="delete">{group}</apply-groups>
    </configuration>
  </config>
</edit-config>"""

LOAD_MERGE = """<load-configuration action="merge" format="xml">
{payload}
</load-configuration>"""

COMMIT = "<commit/>"

GET_GROUP_TEXT = """<get-configuration database="committed" format="text">
  <configuration>
    <groups><name>{group}</name></groups>
  </configuration>
</get-configuration>"""

GET_GROUP_XML = """<get-configuration>
  <configuration>
    <groups><name>{group}</name></groups>
  </configuration>
</get-configuration>"""


def delete_group(group: str) -> str:
    """Delete a group definition and its apply-groups reference."""
    name = escape(group)
    return DELETE_GROUP.format(group=name)


def load_merge(payload: str) -> str:
    """Wrap an XML payload for a merge load."""
    return LOAD_MERGE.format(payload=payload)


def commit() -> str:
    return COMMIT


def get_group_text(group: str) -> str:
    """Committed configuration of one group, text format."""
    return GET_GROUP_TEXT.format(group=escape(group))


def get_group_xml(group: str) -> str:
    """Configuration of one group, XML format."""
    return GET_GROUP_XML.format(group=escape(group))
