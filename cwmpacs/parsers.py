"""Turn the XML elements of CWMP SOAP messages into model objects."""

from __future__ import annotations

import logging
import re
from typing import Any
from xml.etree.ElementTree import Element

from .models import (
    DeviceID,
    Event,
    EventList,
    GetParameterValuesResponse,
    Inform,
    ParameterList,
    ParameterValue,
    SetParameterValuesResponse,
)

logger = logging.getLogger(__name__)

_STRING_TYPES = frozenset(
    {"", "xsd:string", "xsd:dateTime", "xsd:base64", "xsd:anySimpleType"}
)
_SIGNED_TYPES = frozenset({"xsd:int", "xsd:signedInt"})
_UNSIGNED_TYPE = "xsd:unsignedInt"
_BOOLEAN_TYPE = "xsd:boolean"

_INTEGER_RE = re.compile(r"[+-]?\d+")
_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_UINT32_MAX = 2**32 - 1


def local_name(element: Element) -> str:
    """Return the tag of ``element`` without its namespace."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _text(element: Element) -> str:
    """Text that directly opens ``element``, or an empty string."""
    return element.text or ""


def _full_text(element: Element) -> str:
    return "".join(element.itertext())


def _to_int(text: str, low: int, high: int) -> int:
    """Parse a decimal integer within [low, high]; anything else gives 0."""
    stripped = text.strip()
    if not _INTEGER_RE.fullmatch(stripped):
        return 0
    number = int(stripped)
    return number if low <= number <= high else 0


def _to_signed(text: str) -> int:
    return _to_int(text, _INT32_MIN, _INT32_MAX)


def _to_unsigned(text: str) -> int:
    return _to_int(text, 0, _UINT32_MAX)


def convert_value(xsd_type: str, text: str) -> Any:
    """Convert the text of a Value element according to its xsd type.

    Unknown types give ``None``.
    """
    if xsd_type in _STRING_TYPES:
        return text
    if xsd_type in _SIGNED_TYPES:
        return _to_signed(text)
    if xsd_type == _UNSIGNED_TYPE:
        return _to_unsigned(text)
    if xsd_type == _BOOLEAN_TYPE:
        return text not in ("0", "false")
    return None


def _type_attribute(element: Element) -> str:
    for name, value in element.attrib.items():
        if name.rsplit("}", 1)[-1] == "type":
            return value
    return ""


def parse_device_id(element: Element) -> DeviceID:
    """Parse a DeviceId element."""
    device = DeviceID()
    for child in element:
        name = local_name(child)
        if name == "Manufacturer":
            device.manufacturer = _text(child)
        elif name == "OUI":
            device.oui = _text(child)
        elif name == "ProductClass":
            device.product_class = _text(child)
        elif name == "SerialNumber":
            device.serial_number = _text(child)
    return device


def _parse_event_struct(element: Element) -> Event:
    event_code = ""
    command_key = ""
    for child in element:
        name = local_name(child)
        if name == "EventCode":
            event_code = _text(child)
        elif name == "CommandKey":
            command_key = _text(child)
    return Event(event_code, command_key)


def parse_event(element: Element) -> EventList:
    """Parse an Event element holding EventStruct children."""
    events = []
    for child in element:
        logger.debug("Event node's name is %s", local_name(child))
        events.append(_parse_event_struct(child))
    return EventList(events)


def parse_parameter_value(element: Element) -> ParameterValue:
    """Parse one ParameterValueStruct element."""
    name = ""
    value: Any = None
    for child in element:
        tag = local_name(child)
        if tag == "Name":
            name = _text(child)
        elif tag == "Value":
            value = convert_value(_type_attribute(child), _text(child))
    return ParameterValue(name, value)


def parse_parameter_list(element: Element) -> ParameterList:
    """Parse a ParameterList element."""
    return ParameterList([parse_parameter_value(child) for child in element])


def parse_inform(element: Element) -> Inform:
    """Parse an Inform element."""
    inform = Inform()
    for child in element:
        name = local_name(child)
        if name == "DeviceId":
            inform.device_id = parse_device_id(child)
        elif name == "Event":
            inform.event = parse_event(child)
        elif name == "MaxEnvelopes":
            inform.max_envelopes = _to_unsigned(_text(child))
        elif name == "CurrentTime":
            inform.current_time = _text(child)
        elif name == "RetryCount":
            inform.retry_count = _to_unsigned(_text(child))
        elif name == "ParameterList":
            inform.parameter_list = parse_parameter_list(child)
    return inform


def parse_get_parameter_values_response(element: Element) -> GetParameterValuesResponse:
    """Parse a GetParameterValuesResponse element."""
    response = GetParameterValuesResponse()
    for child in element:
        if local_name(child) == "ParameterList":
            response.parameter_list = parse_parameter_list(child)
    return response


def parse_set_parameter_values_response(element: Element) -> SetParameterValuesResponse:
    """Parse a SetParameterValuesResponse element; fault details are only logged."""
    response = SetParameterValuesResponse()
    for child in element:
        name = local_name(child)
        if name == "Status":
            response.status = _to_signed(_full_text(child))
        elif name in ("faultcode", "faultstring"):
            logger.debug("%s: %s", name, _full_text(child))
        elif name == "detail":
            logger.debug("detail: %s", _full_text(child))
        else:
            logger.debug("Unknown data: %s", name)
    return response