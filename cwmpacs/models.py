"""Data carried by CWMP messages, and their flat struct form for announcements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

CWMP_NS = "urn:dslforum-org:cwmp-1-0"
SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SOAP_NS = SOAP_ENV_NS
SOAP_ENC_NS = "http://schemas.xmlsoap.org/soap/encoding/"
XSD_NS = "http://www.w3.org/2001/XMLSchema"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"

INFORM_STRUCT_VERSION = "1.0"


def _unpack_counted_pairs(struct: Sequence[Any], what: str) -> list[tuple[Any, Any]]:
    """Read a struct laid out as (count, a1, b1, a2, b2, ...) into pairs."""
    if not struct:
        raise ValueError(f"{what} struct is empty")
    count, *items = struct
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise ValueError(f"{what} struct has an invalid count: {count!r}")
    if len(items) != 2 * count:
        raise ValueError(
            f"{what} struct announces {count} entries but holds {len(items)} fields"
        )
    return list(zip(items[0::2], items[1::2]))


@dataclass
class DeviceID:
    """Identity of a CPE as reported in an Inform."""

    manufacturer: str = ""
    oui: str = ""
    product_class: str = ""
    serial_number: str = ""

    def to_struct(self) -> tuple[str, str, str, str]:
        return (self.manufacturer, self.oui, self.product_class, self.serial_number)

    @classmethod
    def from_struct(cls, struct: Sequence[Any]) -> DeviceID:
        if len(struct) != 4:
            raise ValueError(f"DeviceID struct needs 4 fields, got {len(struct)}")
        manufacturer, oui, product_class, serial_number = struct
        return cls(manufacturer, oui, product_class, serial_number)


@dataclass(frozen=True)
class Event:
    """A single EventStruct: an event code and its command key."""

    event_code: str = ""
    command_key: str = ""


@dataclass
class EventList:
    """The events announced in an Inform."""

    events: list[Event] = field(default_factory=list)

    def __iter__(self) -> Iterator[Event]:
        return iter(self.events)

    def __len__(self) -> int:
        return len(self.events)

    def to_struct(self) -> tuple[Any, ...]:
        flat: list[Any] = [len(self.events)]
        for event in self.events:
            flat.extend((event.event_code, event.command_key))
        return tuple(flat)

    @classmethod
    def from_struct(cls, struct: Sequence[Any]) -> EventList:
        pairs = _unpack_counted_pairs(struct, "EventList")
        return cls([Event(code, key) for code, key in pairs])


@dataclass(frozen=True)
class ParameterValue:
    """A named parameter and its typed value."""

    name: str = ""
    value: Any = None


@dataclass
class ParameterList:
    """An ordered list of parameter values."""

    parameters: list[ParameterValue] = field(default_factory=list)

    def __iter__(self) -> Iterator[ParameterValue]:
        return iter(self.parameters)

    def __len__(self) -> int:
        return len(self.parameters)

    def to_struct(self) -> tuple[Any, ...]:
        flat: list[Any] = [len(self.parameters)]
        for parameter in self.parameters:
            flat.extend((parameter.name, parameter.value))
        return tuple(flat)

    @classmethod
    def from_struct(cls, struct: Sequence[Any]) -> ParameterList:
        pairs = _unpack_counted_pairs(struct, "ParameterList")
        return cls([ParameterValue(name, value) for name, value in pairs])


@dataclass
class Inform:
    """Contents of an Inform request sent by a CPE."""

    device_id: DeviceID = field(default_factory=DeviceID)
    event: EventList = field(default_factory=EventList)
    parameter_list: ParameterList = field(default_factory=ParameterList)
    max_envelopes: int = 0
    current_time: str = ""
    retry_count: int = 0

    def to_struct(self) -> tuple[Any, ...]:
        return (
            INFORM_STRUCT_VERSION,
            self.max_envelopes,
            self.retry_count,
            self.current_time,
            self.device_id.to_struct(),
            self.event.to_struct(),
            self.parameter_list.to_struct(),
        )

    @classmethod
    def from_struct(cls, struct: Sequence[Any]) -> Inform:
        if len(struct) != 7:
            raise ValueError(f"Inform struct needs 7 fields, got {len(struct)}")
        _version, max_envelopes, retry_count, current_time, device, events, params = (
            struct
        )
        return cls(
            device_id=DeviceID.from_struct(device),
            event=EventList.from_struct(events),
            parameter_list=ParameterList.from_struct(params),
            max_envelopes=int(max_envelopes),
            current_time=current_time,
            retry_count=int(retry_count),
        )


@dataclass
class InformResponse:
    """An InformResponse carries no data of its own."""


@dataclass
class AutonomousTransferCompleteResponse:
    """An AutonomousTransferCompleteResponse carries no data of its own."""


@dataclass
class GetParameterNames:
    """A GetParameterNames request carries no configurable data."""


def _remove_all(items: list[str], item: str) -> None:
    items[:] = [existing for existing in items if existing != item]


@dataclass
class GetParameterValues:
    """A GetParameterValues request: the names whose values are wanted."""

    parameter_names: list[str] = field(default_factory=list)

    def add_parameter_name(self, name: str) -> None:
        self.parameter_names.append(name)

    def remove_parameter_name(self, name: str) -> None:
        """Remove every occurrence of ``name``."""
        _remove_all(self.parameter_names, name)


@dataclass
class GetParameterValuesResponse:
    """The values returned by a CPE for a GetParameterValues request."""

    parameter_list: ParameterList = field(default_factory=ParameterList)


@dataclass
class SetParameterValues:
    """A SetParameterValues request: names, values and parameter keys."""

    parameter_names: list[str] = field(default_factory=list)
    parameter_values: list[str] = field(default_factory=list)
    parameter_keys: list[str] = field(default_factory=list)

    def add_parameter_name(self, name: str) -> None:
        self.parameter_names.append(name)

    def remove_parameter_name(self, name: str) -> None:
        """Remove every occurrence of ``name``."""
        _remove_all(self.parameter_names, name)

    def add_parameter_value(self, value: str) -> None:
        self.parameter_values.append(value)

    def remove_parameter_value(self, value: str) -> None:
        """Remove every occurrence of ``value``."""
        _remove_all(self.parameter_values, value)

    def add_parameter_key(self, key: str) -> None:
        self.parameter_keys.append(key)

    def remove_parameter_key(self, key: str) -> None:
        """Remove every occurrence of ``key``."""
        _remove_all(self.parameter_keys, key)


@dataclass
class SetParameterValuesResponse:
    """The status a CPE returns for a SetParameterValues request."""

    status: int = 0