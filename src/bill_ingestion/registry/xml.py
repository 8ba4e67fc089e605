"""Parsing for the registry's flat XML documents.

The registry uses a small, fixed tag vocabulary. Namespaces are ignored and a
missing tag means "unknown", never a parse failure. Malformed documents are
logged and parsed as empty.
"""
from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)

_DIGITS_RE = re.compile(r"^\d+$")

ACCOUNT_ID_TAGS = ("id", "accountId", "accountID")
PROPERTY_ID_TAGS = ("id", "propertyId")
ADDRESS_TAGS = ("address1", "addressLine1", "address", "streetAddress")
STATE_TAGS = ("state", "stateCode")
POSTAL_TAGS = ("postalCode", "postal", "zip", "zipcode")


@dataclass(frozen=True)
class RegistryProperty:
    property_id: str
    name: str | None = None
    address1: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None


@dataclass(frozen=True)
class PropertyLink:
    """A ``<link>`` stub in a property list; needs hydration by id."""

    id: str
    hint: str | None = None


@dataclass(frozen=True)
class RegistryMeter:
    id: str
    type: str | None = None
    fuel_type: str | None = None
    number: str | None = None
    alias: str | None = None
    description: str | None = None


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _parse(xml_text: str | bytes | None, what: str) -> ET.Element | None:
    if not xml_text:
        return None
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as exc:
        logger.warning("registry_xml_parse_failed", document=what, error=str(exc))
        return None


def _iter(root: ET.Element, name: str):
    for el in root.iter():
        if _local(el.tag) == name:
            yield el


def _child_text(el: ET.Element, *names: str) -> str | None:
    """First non-blank text of a direct child named in *names* (in order)."""
    for name in names:
        for child in el:
            if _local(child.tag) == name:
                text = (child.text or "").strip()
                if text:
                    return text
    return None


def _attr(el: ET.Element, name: str) -> str | None:
    for key, value in el.attrib.items():
        if _local(key) == name and value.strip():
            return value.strip()
    return None


def parse_account_id(xml_text: str | bytes | None) -> str | None:
    root = _parse(xml_text, "account")
    if root is None:
        return None
    for el in root.iter():
        if _local(el.tag) in ACCOUNT_ID_TAGS:
            text = (el.text or "").strip()
            if _DIGITS_RE.match(text):
                return text
    return None


def _property_from(el: ET.Element) -> RegistryProperty | None:
    pid = _child_text(el, *PROPERTY_ID_TAGS) or _attr(el, "id")
    if not pid:
        return None
    return RegistryProperty(
        property_id=pid,
        name=_child_text(el, "name"),
        address1=_child_text(el, *ADDRESS_TAGS),
        city=_child_text(el, "city"),
        state=_child_text(el, *STATE_TAGS),
        postal_code=_child_text(el, *POSTAL_TAGS),
    )


def _address_block(el: ET.Element) -> ET.Element | None:
    for child in el:
        if _local(child.tag) == "address":
            return child
    return None


def _flatten_address(el: ET.Element, prop: RegistryProperty) -> RegistryProperty:
    """Fill blanks from a nested ``<address address1=".." city="..">`` element."""
    block = _address_block(el)
    if block is None:
        return prop

    def pick(current: str | None, tags: tuple[str, ...], attr: str) -> str | None:
        return current or _child_text(block, *tags) or _attr(block, attr)

    return RegistryProperty(
        property_id=prop.property_id,
        name=prop.name,
        address1=pick(prop.address1, ADDRESS_TAGS, "address1"),
        city=pick(prop.city, ("city",), "city"),
        state=pick(prop.state, STATE_TAGS, "state"),
        postal_code=pick(prop.postal_code, POSTAL_TAGS, "postalCode"),
    )


def parse_property_detail(xml_text: str | bytes | None) -> RegistryProperty | None:
    root = _parse(xml_text, "property")
    if root is None:
        return None
    el = root if _local(root.tag) == "property" else next(_iter(root, "property"), root)
    prop = _property_from(el)
    return _flatten_address(el, prop) if prop else None


def parse_property_list(xml_text: str | bytes | None) -> tuple[list[RegistryProperty], list[PropertyLink]]:
    """Return inline ``<property>`` records and ``<link>`` stubs."""
    root = _parse(xml_text, "property_list")
    if root is None:
        return [], []

    properties: list[RegistryProperty] = []
    for el in _iter(root, "property"):
        prop = _property_from(el)
        if prop is not None:
            properties.append(_flatten_address(el, prop))

    links: list[PropertyLink] = []
    seen = {p.property_id for p in properties}
    for el in _iter(root, "link"):
        link_id = _attr(el, "id")
        if not link_id or link_id in seen:
            continue
        seen.add(link_id)
        links.append(PropertyLink(id=link_id, hint=_attr(el, "hint")))
    return properties, links


def parse_meter_list(xml_text: str | bytes | None) -> list[RegistryMeter]:
    root = _parse(xml_text, "meter_list")
    if root is None:
        return []
    meters: list[RegistryMeter] = []
    for el in _iter(root, "meter"):
        meter_id = _child_text(el, "id") or _attr(el, "id")
        if not meter_id:
            continue
        meters.append(RegistryMeter(
            id=meter_id,
            type=_child_text(el, "type"),
            fuel_type=_child_text(el, "fuelType"),
            number=_child_text(el, "number", "meterNumber"),
            alias=_child_text(el, "alias", "name"),
            description=_child_text(el, "description"),
        ))
    # Meter lists may also arrive as link stubs.
    if not meters:
        for el in _iter(root, "link"):
            link_id = _attr(el, "id")
            if link_id:
                meters.append(RegistryMeter(id=link_id, alias=_attr(el, "hint")))
    return meters


def parse_created_id(xml_text: str | bytes | None) -> str | None:
    """The id in a create response (``<response><id>``, ``<meter><id>`` or ``id=``)."""
    root = _parse(xml_text, "create_response")
    if root is None:
        return None
    found = _child_text(root, "id") or _attr(root, "id")
    if found:
        return found
    for el in root.iter():
        if _local(el.tag) == "id" and (el.text or "").strip():
            return el.text.strip()
    return None


def meter_xml(
    meter_type: str,
    unit_of_measure: str,
    name: str | None = None,
    first_bill_date: str = "2010-01-01",
) -> str:
    """Request body for creating a meter under a property."""
    root = ET.Element("meter")
    ET.SubElement(root, "type").text = meter_type
    if name:
        ET.SubElement(root, "name").text = name
    ET.SubElement(root, "unitOfMeasure").text = unit_of_measure
    ET.SubElement(root, "metered").text = "true"
    ET.SubElement(root, "firstBillDate").text = first_bill_date
    ET.SubElement(root, "inUse").text = "true"
    return ET.tostring(root, encoding="unicode")
