"""CWMP SOAP methods that the ACS sends to a CPE, framed as HTTP responses."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from xml.dom.minidom import Document, Element

from .models import (
    CWMP_NS,
    SOAP_ENC_NS,
    SOAP_ENV_NS,
    XSD_NS,
    XSI_NS,
    AutonomousTransferCompleteResponse,
    GetParameterNames,
    GetParameterValues,
    InformResponse,
    SetParameterValues,
)

_CRLF = b"\r\n"
_ROOT_PARAMETER_PATH = "InternetGatewayDevice."


def _line(data: bytes) -> bytes:
    return data + _CRLF


def _append_text_element(
    document: Document, parent: Element, tag: str, text: str
) -> Element:
    element = document.createElement(tag)
    element.appendChild(document.createTextNode(text))
    parent.appendChild(element)
    return element


class CWMPMethod(ABC):
    """A SOAP envelope carrying one CWMP method, sent as an HTTP 200 response."""

    def content(self) -> bytes:
        """The full HTTP response: status line, headers and the SOAP envelope."""
        soap = self.soap_content()
        return b"".join(
            (
                _line(b"HTTP/1.1 200 OK"),
                _line(b'Content-Type: text/xml; charset="utf-8"'),
                _line(f"Content-Length: {len(soap)}".encode("latin-1")),
                _line(b""),
                _line(soap),
            )
        )

    def soap_content(self) -> bytes:
        """The SOAP envelope, encoded as Latin-1 with unmappable characters as '?'."""
        document = Document()
        envelope = document.createElement("soap:Envelope")
        envelope.setAttribute("xmlns:soap", SOAP_ENV_NS)
        envelope.setAttribute("xmlns:soap-enc", SOAP_ENC_NS)
        envelope.setAttribute("xmlns:cwmp", CWMP_NS)
        envelope.setAttribute("xmlns:xsd", XSD_NS)
        envelope.setAttribute("xmlns:xsi", XSI_NS)
        document.appendChild(envelope)

        envelope.appendChild(document.createElement("soap:Header"))
        body = document.createElement("soap:Body")
        envelope.appendChild(body)

        self.method_body(document, body)

        text = envelope.toprettyxml(indent=" ")
        return text.encode("latin-1", errors="replace")

    @abstractmethod
    def method_body(self, document: Document, body: Element) -> None:
        """Add the method's element to the SOAP body."""


@dataclass
class InformResponseMethod(CWMPMethod):
    """The InformResponse the ACS returns to an Inform."""

    response: InformResponse = field(default_factory=InformResponse)

    def method_body(self, document: Document, body: Element) -> None:
        inform_response = document.createElement("cwmp:InformResponse")
        body.appendChild(inform_response)
        _append_text_element(document, inform_response, "MaxEnvelopes", "1")


@dataclass
class AutonomousTransferCompleteResponseMethod(CWMPMethod):
    """The response to an AutonomousTransferComplete request."""

    response: AutonomousTransferCompleteResponse = field(
        default_factory=AutonomousTransferCompleteResponse
    )

    def method_body(self, document: Document, body: Element) -> None:
        response = document.createElement("cwmp:AutonomousTransferCompleteResponse")
        body.appendChild(response)
        _append_text_element(document, response, "MaxEnvelopes", "1")


@dataclass
class GetParameterNamesMethod(CWMPMethod):
    """A GetParameterNames request for the whole device tree."""

    request: GetParameterNames = field(default_factory=GetParameterNames)

    def method_body(self, document: Document, body: Element) -> None:
        get_names = document.createElement("cwmp:CWMPGetParameterNames")
        body.appendChild(get_names)
        _append_text_element(
            document, get_names, "ParameterPath", _ROOT_PARAMETER_PATH
        )


@dataclass
class GetParameterValuesMethod(CWMPMethod):
    """A GetParameterValues request for the listed parameter names."""

    request: GetParameterValues = field(default_factory=GetParameterValues)

    def method_body(self, document: Document, body: Element) -> None:
        get_values = document.createElement("cwmp:GetParameterValues")
        body.appendChild(get_values)

        names = self.request.parameter_names
        parameter_names = document.createElement("ParameterNames")
        parameter_names.setAttribute("soap:arrayType", f"xsd:string[{len(names)}]")
        get_values.appendChild(parameter_names)

        for name in names:
            _append_text_element(document, parameter_names, "string", name)


@dataclass
class SetParameterValuesMethod(CWMPMethod):
    """A SetParameterValues request for the first name, value and key given."""

    request: SetParameterValues = field(default_factory=SetParameterValues)

    def method_body(self, document: Document, body: Element) -> None:
        request = self.request
        if not request.parameter_names:
            raise ValueError("SetParameterValues needs at least one parameter name")
        if not request.parameter_values:
            raise ValueError("SetParameterValues needs at least one parameter value")
        if not request.parameter_keys:
            raise ValueError("SetParameterValues needs at least one parameter key")

        set_values = document.createElement("cwmp:SetParameterValues")
        body.appendChild(set_values)

        # Names and values are counted as pairs in the announced array size.
        size = len(request.parameter_names) // 2
        parameter_list = document.createElement("ParameterList")
        parameter_list.setAttribute(
            "soap:arrayType", f"cwmp:ParameterValueStruct[{size}]"
        )
        set_values.appendChild(parameter_list)

        value_struct = document.createElement("ParameterValueStruct")
        parameter_list.appendChild(value_struct)
        _append_text_element(document, value_struct, "Name", request.parameter_names[0])
        value = _append_text_element(
            document, value_struct, "Value", request.parameter_values[0]
        )
        value.setAttribute("xsi:type", "xsd:boolean")

        _append_text_element(
            document, set_values, "ParameterKey", request.parameter_keys[0]
        )