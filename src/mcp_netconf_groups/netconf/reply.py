"""Unwrapping of get-configuration replies."""
import re

from lxml import etree

from ..exceptions import ParseError

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>")


def parse_fragment(data: str) -> etree._Element:
    """Parse reply data that may hold several top-level nodes.

    Returns a synthetic <reply> element holding them.
    """
    body = _DECLARATION.sub("", data)
    try:
        return etree.fromstring(f"<reply>{body}</reply>".encode("utf-8"), _PARSER)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"reply is not well-formed XML: {e}") from e


def parse_group_data(data: str) -> str:
    """Extract the text configuration from a format="text" reply.

    The device wraps it in <configuration-text> and prefixes "## Last
    commit" style comment lines, which are dropped.
    """
    root = parse_fragment(data)
    for element in root.iter():
        if isinstance(element.tag, str) and etree.QName(element.tag).localname == "configuration-text":
            text = element.text or ""
            break
    else:
        raise ParseError("reply has no <configuration-text> element")

    lines = [line for line in text.splitlines() if not line.lstrip().startswith("##")]
    return "\n".join(lines).strip("\n")
