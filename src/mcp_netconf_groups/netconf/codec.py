"""Dataclass <-> XML mapping for structured group payloads.

Models are dataclasses deriving from XmlModel. Field names map to
hyphenated element names (``apply_groups`` -> ``<apply-groups>``) unless
``xml_field(tag=...)`` says otherwise. Supported field types are str, int,
float, bool, nested XmlModel dataclasses, Optional[...] of those and
list[...] of those.

- bool fields are presence flags: True encodes as an empty element.
- None, False and empty lists are omitted.
- Unknown elements are ignored when decoding, as are namespaces.

Example:

    @dataclass
    class Server(XmlModel):
        name: str = ""
        prefer: bool = False

    @dataclass
    class Ntp(XmlModel):
        server: list[Server] = field(default_factory=list)
"""
import dataclasses
import re
import sys
import types
import typing
from dataclasses import dataclass
from typing import Any, ClassVar, Optional, Union

from lxml import etree

from ..exceptions import DecodeError, ParseError
from .reply import parse_fragment

_SCALARS = (str, int, float, bool)


def _kebab(name: str) -> str:
    name = re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", name)
    return name.replace("_", "-").lower()


def _local(tag) -> str:
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def xml_field(
    tag: Optional[str] = None,
    *,
    attribute: bool = False,
    text: bool = False,
    **kwargs: Any,
):
    """dataclasses.field() with XML mapping options.

    Args:
        tag: Element or attribute name (default: hyphenated field name)
        attribute: Map to an attribute of the parent element
        text: Map to the parent element's text content
        **kwargs: Passed through to dataclasses.field()
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata["xml"] = {"tag": tag, "attribute": attribute, "text": text}
    return dataclasses.field(metadata=metadata, **kwargs)


class XmlModel:
    """Base for dataclasses that encode to and decode from XML."""

    __xml_tag__: ClassVar[str] = ""

    def __init_subclass__(cls, tag: Optional[str] = None, **kwargs):
        super().__init_subclass__(**kwargs)
        if tag is not None:
            cls.__xml_tag__ = tag

    @classmethod
    def xml_tag(cls) -> str:
        return cls.__xml_tag__ or _kebab(cls.__name__)

    def to_element(self, tag: Optional[str] = None) -> etree._Element:
        return _encode(self, tag or self.xml_tag())

    def to_xml(self) -> str:
        return etree.tostring(self.to_element(), encoding="unicode")

    @classmethod
    def from_xml(cls, text: str):
        return unmarshal(text, cls())

    def load_xml(self, text: str):
        """Populate this instance from XML and return it."""
        return unmarshal(text, self)


@dataclass(frozen=True)
class _FieldSpec:
    name: str
    tag: str
    kind: type
    repeated: bool
    attribute: bool
    text: bool


_spec_cache: dict[type, list[_FieldSpec]] = {}


def _unwrap(hint) -> tuple[type, bool]:
    """Reduce a type hint to (element type, repeated)."""
    origin = typing.get_origin(hint)
    union_types = (Union, getattr(types, "UnionType", Union))
    if origin in union_types:
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        if len(args) != 1:
            raise TypeError(f"unsupported union type: {hint}")
        return _unwrap(args[0])
    if origin in (list, typing.List):
        (inner,) = typing.get_args(hint) or (str,)
        kind, _ = _unwrap(inner)
        return kind, True
    return hint, False


def _specs(cls: type) -> list[_FieldSpec]:
    if cls in _spec_cache:
        return _spec_cache[cls]
    if not dataclasses.is_dataclass(cls):
        raise TypeError(f"{cls.__name__} must be a dataclass to map to XML")

    module = sys.modules.get(cls.__module__)
    hints = typing.get_type_hints(cls, vars(module) if module else None)
    specs = []
    for f in dataclasses.fields(cls):
        options = f.metadata.get("xml", {})
        kind, repeated = _unwrap(hints[f.name])
        if not (kind in _SCALARS or (isinstance(kind, type) and issubclass(kind, XmlModel))):
            raise TypeError(f"{cls.__name__}.{f.name}: unsupported type {kind!r}")
        specs.append(_FieldSpec(
            name=f.name,
            tag=options.get("tag") or _kebab(f.name),
            kind=kind,
            repeated=repeated,
            attribute=options.get("attribute", False),
            text=options.get("text", False),
        ))
    _spec_cache[cls] = specs
    return specs


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _encode(obj: XmlModel, tag: str) -> etree._Element:
    element = etree.Element(tag)
    for spec in _specs(type(obj)):
        value = getattr(obj, spec.name)
        if value is None:
            continue
        if spec.attribute:
            element.set(spec.tag, _to_text(value))
            continue
        if spec.text:
            element.text = _to_text(value)
            continue

        for item in (value if spec.repeated else [value]):
            if isinstance(item, XmlModel):
                element.append(_encode(item, spec.tag))
            elif spec.kind is bool:
                if item:
                    etree.SubElement(element, spec.tag)
            else:
                etree.SubElement(element, spec.tag).text = _to_text(item)
    return element


def _convert(raw: str, kind: type, tag: str):
    raw = raw.strip()
    if kind is str:
        return raw
    if kind is bool:
        return raw.lower() not in ("false", "0", "no")
    try:
        return kind(raw)
    except ValueError as e:
        raise DecodeError(f"<{tag}>: cannot convert {raw!r} to {kind.__name__}", tag=tag) from e


def _has_elements(element: etree._Element) -> bool:
    return any(isinstance(c.tag, str) for c in element)


def _decode_child(child: etree._Element, spec: _FieldSpec):
    if isinstance(spec.kind, type) and issubclass(spec.kind, XmlModel):
        text = (child.text or "").strip()
        if text and not _has_elements(child) and not any(s.text for s in _specs(spec.kind)):
            raise DecodeError(f"<{spec.tag}>: expected nested elements, got text {text!r}", tag=spec.tag)
        return _decode(child, spec.kind())
    if spec.kind is bool:
        # presence flag
        return True
    if _has_elements(child):
        raise DecodeError(f"<{spec.tag}>: expected a value, got nested elements", tag=spec.tag)
    return _convert(child.text or "", spec.kind, spec.tag)


def _decode(element: etree._Element, obj: XmlModel) -> XmlModel:
    for spec in _specs(type(obj)):
        if spec.attribute:
            raw = element.get(spec.tag)
            if raw is not None:
                setattr(obj, spec.name, _convert(raw, spec.kind, spec.tag))
            continue
        if spec.text:
            setattr(obj, spec.name, _convert(element.text or "", spec.kind, spec.tag))
            continue

        children = [c for c in element if _local(c.tag) == spec.tag]
        if spec.repeated:
            setattr(obj, spec.name, [_decode_child(c, spec) for c in children])
        elif children:
            setattr(obj, spec.name, _decode_child(children[0], spec))
    return obj


def marshal(obj: XmlModel) -> str:
    """Encode a model instance to an XML string."""
    if not isinstance(obj, XmlModel):
        raise TypeError(f"cannot marshal {type(obj).__name__}: not an XmlModel")
    return obj.to_xml()


def unmarshal(text: str, target):
    """Decode XML into ``target`` and return it.

    ``target`` is an XmlModel instance (populated in place) or an XmlModel
    subclass (instantiated with its defaults). The model's root element is
    looked up anywhere in ``text``, so a whole get-configuration reply body
    can be passed in.

    Raises:
        DecodeError: Malformed XML, missing root element or bad values
    """
    if isinstance(target, type):
        target = target()
    if not isinstance(target, XmlModel):
        raise TypeError(f"cannot unmarshal into {type(target).__name__}: not an XmlModel")

    try:
        root = parse_fragment(text)
    except ParseError as e:
        raise DecodeError(str(e)) from e

    tag = target.xml_tag()
    for element in root.iter():
        if _local(element.tag) == tag:
            return _decode(element, target)
    raise DecodeError(f"no <{tag}> element in reply", tag=tag)
