"""Handling of one TCP connection from a CPE, and the state shared between them."""

from __future__ import annotations

import enum
import logging
import threading
from typing import Any, BinaryIO, Callable, Optional, Protocol
from xml.etree import ElementTree

from .methods import (
    CWMPMethod,
    GetParameterValuesMethod,
    InformResponseMethod,
    SetParameterValuesMethod,
)
from .models import (
    CWMP_NS,
    SOAP_NS,
    GetParameterValues,
    Inform,
    SetParameterValues,
)
from .parsers import (
    local_name,
    parse_get_parameter_values_response,
    parse_inform,
    parse_set_parameter_values_response,
)

logger = logging.getLogger(__name__)

_CRLF = b"\r\n"
_CONTENT_LENGTH = b"Content-Length:"
_COOKIE = b"Cookie:"
_EMPTY_RESPONSE = b"HTTP/1.1 204 No content" + _CRLF + _CRLF
_CONNECTION_REQUEST = "CONNECTION REQUEST"

_PROBED_PARAMETER = "InternetGatewayDevice.DeviceInfo.Manufacturer"
_ADMIN_STATE_PARAMETER = (
    "InternetGatewayDevice.Services.FAPService.1.FAPControl.LTE.AdminState"
)
_ADMIN_STATE_VALUE = "DOWN"
_ADMIN_STATE_KEY = ""

# Record field: (substring of the parameter name, default, maximum length).
_RECORD_PARAMETERS = (
    ("OpState", "false", 5),
    ("ConnectionRequestURL", "empty", 255),
    ("HNBName", "empty", 255),
    ("NumOfActiveUE", "0", 2),
)


class State(enum.Enum):
    """States of a TCP session's state machine."""

    GET_HEADERS = enum.auto()
    GET_CONTENT = enum.auto()
    PARSE_SOAP = enum.auto()
    SEND_INFORM_RESPONSE = enum.auto()
    SEND_GET_PARAMETER_VALUES = enum.auto()
    CHECK_SCHEDULE_QUEUE = enum.auto()
    SEND_EMPTY_RESPONSE = enum.auto()
    FINISHED = enum.auto()
    SEND_SET_PARAMETER_VALUES = enum.auto()


class InformStore(Protocol):
    def insert_inform(self, record: dict[str, str]) -> Any: ...


class InformAnnouncer:
    """Announces every Inform received to the subscribed callbacks."""

    def __init__(self) -> None:
        self._callbacks: list[Callable[[Inform], Any]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[Inform], Any]) -> None:
        with self._lock:
            self._callbacks.append(callback)

    def emit_inform(self, inform: Inform) -> None:
        with self._lock:
            callbacks = list(self._callbacks)
        for callback in callbacks:
            callback(inform)


class SessionContext:
    """State shared by all TCP sessions, since one CWMP session spans several."""

    _instance: Optional[SessionContext] = None
    _instance_lock = threading.Lock()

    def __init__(self, announcer: Optional[InformAnnouncer] = None) -> None:
        self.announcer = announcer if announcer is not None else InformAnnouncer()
        self.connection_request_pending = False
        self.probe_parameter_values = False
        self._lock = threading.Lock()

    @classmethod
    def instance(cls) -> SessionContext:
        """The process-wide context."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def _note_connection_request(self) -> None:
        with self._lock:
            self.connection_request_pending = True

    def _take_pending_request(self) -> Optional[State]:
        """The request to send on an empty POST, if any, clearing it."""
        with self._lock:
            if self.probe_parameter_values:
                self.probe_parameter_values = False
                return State.SEND_GET_PARAMETER_VALUES
            if self.connection_request_pending:
                self.connection_request_pending = False
                return State.SEND_SET_PARAMETER_VALUES
            return None


def _value_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def extract_inform_record(inform: Inform) -> dict[str, str]:
    """The fields of an Inform that are kept in the inform store."""
    record = {
        "SerialNumber": inform.device_id.serial_number,
        "TIME": inform.current_time,
    }
    for key, default, _limit in _RECORD_PARAMETERS:
        record[key] = default
    for parameter in inform.parameter_list:
        for key, _default, limit in _RECORD_PARAMETERS:
            if key in parameter.name:
                record[key] = _value_text(parameter.value)[:limit]
                break
    return record


def _split_tag(tag: Any) -> tuple[str, str]:
    if not isinstance(tag, str):
        return "", ""
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return "", tag


def _parse_length(text: bytes) -> int:
    try:
        length = int(text.decode("latin-1").strip())
    except ValueError:
        return 0
    return max(length, 0)


class TCPSession:
    """One TCP connection from a CPE, driven through its HTTP/SOAP exchanges.

    ``stream`` is a binary file-like object offering ``readline``, ``read``
    and ``write``, such as the result of ``socket.makefile("rwb")``.
    """

    def __init__(
        self,
        stream: BinaryIO,
        context: Optional[SessionContext] = None,
        store: Optional[InformStore] = None,
    ) -> None:
        self.stream = stream
        self.context = context if context is not None else SessionContext.instance()
        self.store = store
        self.state = State.GET_HEADERS
        self.content_length = 0
        self.cookie = ""
        self._content = bytearray()

    @property
    def content(self) -> bytes:
        """The request body read so far."""
        return bytes(self._content)

    def run(self) -> None:
        """Drive the state machine until the session is finished."""
        while self.state is not State.FINISHED:
            try:
                self.step()
            except OSError as error:
                logger.warning("Connection failed: %s", error)
                self.change_state(State.FINISHED)
        logger.debug("Finishing...")

    def step(self) -> None:
        """Perform the work of the current state once."""
        state = self.state
        if state is State.GET_HEADERS:
            self._read_header()
        elif state is State.GET_CONTENT:
            self._read_content()
        elif state is State.PARSE_SOAP:
            self._parse_soap()
        elif state is State.SEND_INFORM_RESPONSE:
            self._send_method(InformResponseMethod())
        elif state is State.SEND_GET_PARAMETER_VALUES:
            request = GetParameterValues()
            request.add_parameter_name(_PROBED_PARAMETER)
            self._send_method(GetParameterValuesMethod(request))
        elif state is State.CHECK_SCHEDULE_QUEUE:
            self.change_state(State.FINISHED)
        elif state is State.SEND_EMPTY_RESPONSE:
            self._send_empty_response()
        elif state is State.SEND_SET_PARAMETER_VALUES:
            request = SetParameterValues()
            request.add_parameter_name(_ADMIN_STATE_PARAMETER)
            request.add_parameter_value(_ADMIN_STATE_VALUE)
            request.add_parameter_key(_ADMIN_STATE_KEY)
            self._send_method(SetParameterValuesMethod(request))

    def change_state(self, new_state: State) -> None:
        self.state = new_state
        if new_state is State.GET_HEADERS:
            self.content_length = 0
            self._content.clear()

    def _write(self, data: bytes) -> None:
        self.stream.write(data)
        flush = getattr(self.stream, "flush", None)
        if flush is not None:
            flush()

    def _send_method(self, method: CWMPMethod) -> None:
        self._write(method.content())
        self.change_state(State.GET_HEADERS)

    def _send_empty_response(self) -> None:
        self._write(_EMPTY_RESPONSE)
        self.change_state(State.FINISHED)

    def _read_header(self) -> None:
        line = self.stream.readline()
        if not line:
            logger.debug("Connection closed while reading headers")
            self.change_state(State.FINISHED)
            return
        if line.startswith(_CONTENT_LENGTH):
            self.content_length = _parse_length(line[len(_CONTENT_LENGTH):])
            logger.debug("Length is %d", self.content_length)
        elif line.startswith(_COOKIE):
            self.cookie = line[len(_COOKIE):].decode("latin-1").strip()
        elif line == _CRLF:
            self._end_of_headers()

    def _end_of_headers(self) -> None:
        if self.content_length:
            self.change_state(State.GET_CONTENT)
            return
        pending = self.context._take_pending_request()
        if pending is not None:
            self.change_state(pending)
        else:
            self._send_empty_response()

    def _read_content(self) -> None:
        remaining = self.content_length - len(self._content)
        chunk = self.stream.read(remaining)
        if not chunk:
            logger.debug("Connection closed while reading content")
            self.change_state(State.FINISHED)
            return
        self._content.extend(chunk)
        if len(self._content) >= self.content_length:
            self.change_state(State.PARSE_SOAP)

    def _parse_soap(self) -> None:
        try:
            envelope = ElementTree.fromstring(bytes(self._content))
        except ElementTree.ParseError as error:
            logger.warning("Malformed SOAP message: %s", error)
            self.change_state(State.SEND_EMPTY_RESPONSE)
            return
        self.change_state(self._handle_envelope(envelope))

    def _handle_envelope(self, envelope: ElementTree.Element) -> State:
        got_inform = False
        for child in envelope:
            namespace, name = _split_tag(child.tag)
            if namespace != SOAP_NS or name != "Body":
                continue
            method = next(iter(child), None)
            if method is None:
                logger.debug("Empty SOAP body")
                break
            method_ns, method_name = _split_tag(method.tag)
            if method_ns == CWMP_NS and method_name == "Inform":
                got_inform = True
                self._handle_inform(parse_inform(method))
            elif method_ns == CWMP_NS and method_name == "GetParameterValuesResponse":
                response = parse_get_parameter_values_response(method)
                for parameter in response.parameter_list:
                    logger.debug("Name=<%s> Value=<%s>", parameter.name, parameter.value)
            elif method_ns == CWMP_NS and method_name == "AutonomousTransferComplete":
                logger.debug("Autonomous transfer complete")
            elif method_ns == CWMP_NS and method_name == "SetParameterValuesResponse":
                response = parse_set_parameter_values_response(method)
                logger.debug("SetParameterValuesResponse, code=%d", response.status)
            elif method_ns == SOAP_NS and method_name == "Fault":
                logger.debug("SOAP fault: %s", method_name)
            else:
                logger.info("Unknown request: %s", local_name(method))
                break
        return State.SEND_INFORM_RESPONSE if got_inform else State.SEND_EMPTY_RESPONSE

    def _handle_inform(self, inform: Inform) -> None:
        for index, event in enumerate(inform.event):
            logger.debug("Event [%d]=%s", index, event.event_code)
            if _CONNECTION_REQUEST in event.event_code:
                self.context._note_connection_request()
        for index, parameter in enumerate(inform.parameter_list):
            logger.debug("[%d]: name=%s, value=%s", index, parameter.name, parameter.value)

        if self.store is not None:
            try:
                self.store.insert_inform(extract_inform_record(inform))
            except Exception:  # storage trouble must not break the session
                logger.exception("Could not store Inform")

        self.context.announcer.emit_inform(inform)