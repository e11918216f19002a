import xml.etree.ElementTree as ET

import pytest

from cwmpacs.models import CWMP_NS, Event, SOAP_ENV_NS, XSD_NS, XSI_NS
from cwmpacs.parsers import (
    convert_value,
    local_name,
    parse_device_id,
    parse_event,
    parse_get_parameter_values_response,
    parse_inform,
    parse_parameter_list,
    parse_parameter_value,
    parse_set_parameter_values_response,
)

NS = (
    f'xmlns:cwmp="{CWMP_NS}" xmlns:soap="{SOAP_ENV_NS}" '
    f'xmlns:xsd="{XSD_NS}" xmlns:xsi="{XSI_NS}"'
)

PARAMETER_LIST = """
<ParameterList>
  <ParameterValueStruct>
    <Name>Device.HNBName</Name>
    <Value xsi:type="xsd:string">cell-a</Value>
  </ParameterValueStruct>
  <ParameterValueStruct>
    <Name>Device.NumOfActiveUE</Name>
    <Value xsi:type="xsd:unsignedInt">7</Value>
  </ParameterValueStruct>
  <ParameterValueStruct>
    <Name>Device.OpState</Name>
    <Value xsi:type="xsd:boolean">false</Value>
  </ParameterValueStruct>
</ParameterList>
"""

INFORM = f"""
<cwmp:Inform {NS}>
  <DeviceId>
    <Manufacturer>ExampleCorp</Manufacturer>
    <OUI>00AABB</OUI>
    <ProductClass>Gateway</ProductClass>
    <SerialNumber>SN0000TEST</SerialNumber>
  </DeviceId>
  <Event>
    <EventStruct><EventCode>0 BOOTSTRAP</EventCode><CommandKey></CommandKey></EventStruct>
    <EventStruct><EventCode>6 CONNECTION REQUEST</EventCode><CommandKey>k1</CommandKey></EventStruct>
  </Event>
  <MaxEnvelopes>1</MaxEnvelopes>
  <CurrentTime>2018-11-04T23:38:00</CurrentTime>
  <RetryCount>3</RetryCount>
  {PARAMETER_LIST}
</cwmp:Inform>
"""


def xml(text):
    return ET.fromstring(text)


def test_local_name_strips_namespace():
    element = xml(f'<cwmp:Inform xmlns:cwmp="{CWMP_NS}"/>')
    assert local_name(element) == "Inform"
    assert local_name(xml("<Plain/>")) == "Plain"


@pytest.mark.parametrize(
    "xsd_type, text, expected",
    [
        ("", "abc", "abc"),
        ("xsd:string", "abc", "abc"),
        ("xsd:dateTime", "2018-01-01T00:00:00", "2018-01-01T00:00:00"),
        ("xsd:base64", "QUJD", "QUJD"),
        ("xsd:anySimpleType", "x", "x"),
        ("xsd:int", "-12", -12),
        ("xsd:signedInt", "12", 12),
        ("xsd:unsignedInt", "12", 12),
        ("xsd:int", "abc", 0),
        ("xsd:unsignedInt", "-5", 0),
        ("xsd:boolean", "0", False),
        ("xsd:boolean", "false", False),
        ("xsd:boolean", "1", True),
        ("xsd:boolean", "true", True),
        ("xsd:unknown", "1", None),
    ],
)
def test_convert_value(xsd_type, text, expected):
    assert convert_value(xsd_type, text) == expected


def test_convert_value_int_out_of_range_is_zero():
    assert convert_value("xsd:int", str(2**31)) == 0
    assert convert_value("xsd:int", str(2**31 - 1)) == 2**31 - 1
    assert convert_value("xsd:unsignedInt", str(2**32 - 1)) == 2**32 - 1
    assert convert_value("xsd:unsignedInt", str(2**32)) == 0


def test_parse_device_id():
    device = parse_device_id(xml(INFORM).find("DeviceId"))
    assert device.manufacturer == "ExampleCorp"
    assert device.oui == "00AABB"
    assert device.product_class == "Gateway"
    assert device.serial_number == "SN0000TEST"


def test_parse_device_id_missing_fields_stay_empty():
    device = parse_device_id(xml("<DeviceId><OUI>00AABB</OUI><Other>x</Other></DeviceId>"))
    assert device.to_struct() == ("", "00AABB", "", "")


def test_parse_event():
    events = parse_event(xml(INFORM).find("Event"))
    assert list(events) == [
        Event("0 BOOTSTRAP", ""),
        Event("6 CONNECTION REQUEST", "k1"),
    ]


def test_parse_event_struct_without_fields():
    events = parse_event(xml("<Event><EventStruct/></Event>"))
    assert list(events) == [Event("", "")]


def test_parse_parameter_value_without_type_is_string():
    param = parse_parameter_value(
        xml("<P><Name>A.B</Name><Value>42</Value></P>")
    )
    assert param.name == "A.B"
    assert param.value == "42"


def test_parse_parameter_value_unknown_type_gives_none():
    param = parse_parameter_value(
        xml(f'<P {NS}><Name>A</Name><Value xsi:type="xsd:float">1.5</Value></P>')
    )
    assert param.name == "A"
    assert param.value is None


def test_parse_parameter_list():
    wrapped = xml(f"<w {NS}>{PARAMETER_LIST}</w>")
    params = parse_parameter_list(wrapped.find("ParameterList"))
    assert [p.name for p in params] == [
        "Device.HNBName",
        "Device.NumOfActiveUE",
        "Device.OpState",
    ]
    assert [p.value for p in params] == ["cell-a", 7, False]


def test_parse_inform():
    inform = parse_inform(xml(INFORM))
    assert inform.device_id.serial_number == "SN0000TEST"
    assert inform.max_envelopes == 1
    assert inform.retry_count == 3
    assert inform.current_time == "2018-11-04T23:38:00"
    assert len(inform.event) == 2
    assert len(inform.parameter_list) == 3


def test_parse_inform_round_trips_through_struct():
    inform = parse_inform(xml(INFORM))
    assert type(inform).from_struct(inform.to_struct()) == inform


def test_parse_inform_bad_counter_is_zero():
    inform = parse_inform(xml("<Inform><MaxEnvelopes>x</MaxEnvelopes></Inform>"))
    assert inform.max_envelopes == 0
    assert inform.retry_count == 0


def test_parse_get_parameter_values_response():
    element = xml(
        f"<cwmp:GetParameterValuesResponse {NS}>{PARAMETER_LIST}"
        "</cwmp:GetParameterValuesResponse>"
    )
    response = parse_get_parameter_values_response(element)
    assert [p.value for p in response.parameter_list] == ["cell-a", 7, False]


def test_parse_get_parameter_values_response_empty():
    response = parse_get_parameter_values_response(xml("<R/>"))
    assert len(response.parameter_list) == 0


def test_parse_set_parameter_values_response_status():
    element = xml(
        f"<cwmp:SetParameterValuesResponse {NS}><Status>1</Status>"
        "</cwmp:SetParameterValuesResponse>"
    )
    assert parse_set_parameter_values_response(element).status == 1


def test_parse_set_parameter_values_response_fault_keeps_default_status():
    element = xml(
        "<R><faultcode>Client</faultcode><faultstring>CWMP fault</faultstring>"
        "<detail><FaultCode>9003</FaultCode></detail><extra/></R>"
    )
    assert parse_set_parameter_values_response(element).status == 0