# cwmpacs

A compact TR-069 (CWMP) auto-configuration server. It accepts HTTP
connections from CPE devices, parses their SOAP `Inform` envelopes, answers
with `InformResponse`, and stores a summary of every Inform in MongoDB
(database `tr069`, collection `inform`, upserted by serial number).

## Installation

```
pip install .
```

A MongoDB server reachable at `mongodb://localhost:27017` is expected for
storing Inform records.

## Running the server

The `cwmpd` command reads its settings from an INI file, `cwmpd.ini` in the
current directory by default, and exits with status -1 if the file is
missing:

```ini
[MAIN]
port = 7547
bind = 0.0.0.0
```

`port` defaults to 8080 when it is absent or zero. `bind` is only reported
in the startup log; the server always listens on all interfaces. Any other
keys in the `MAIN` section are logged and kept in `ServerConfig.extras`.

```
cwmpd
cwmpd --config /path/to/other.ini
```

Stop it with Ctrl-C.

## Session flow

For each connection a `cwmpacs.session.TCPSession` runs a small state
machine (`State`):

1. read HTTP headers (`Content-Length`, `Cookie`);
2. read the body and parse the SOAP envelope;
3. on `Inform`: store a record of it (serial number, current time, and the
   `OpState`, `ConnectionRequestURL`, `HNBName` and `NumOfActiveUE`
   parameters), announce it to the `InformAnnouncer` subscribers, and reply
   with `InformResponse`;
4. on anything else (`GetParameterValuesResponse`,
   `SetParameterValuesResponse`, `AutonomousTransferComplete`, a SOAP
   `Fault`, an unknown method or malformed XML): reply `204 No content` and
   finish;
5. on an empty POST: if an earlier Inform carried a `CONNECTION REQUEST`
   event, send a `SetParameterValues` that sets
   `InternetGatewayDevice.Services.FAPService.1.FAPControl.LTE.AdminState`
   to `DOWN`; otherwise reply `204 No content` and finish.

After any RPC is sent the session goes back to reading headers.

Every Inform can be observed from code:

```python
from cwmpacs.session import SessionContext

SessionContext.instance().announcer.subscribe(
    lambda inform: print(inform.device_id.serial_number)
)
```

A storage failure is logged and does not break the session.

## Library use

Message models live in `cwmpacs.models`, XML parsing in `cwmpacs.parsers`,
outgoing RPC envelopes in `cwmpacs.methods`, and the MongoDB store in
`cwmpacs.storage.MongoInformStore`.

```python
from cwmpacs.models import GetParameterValues
from cwmpacs.methods import GetParameterValuesMethod

request = GetParameterValues()
request.add_parameter_name("InternetGatewayDevice.DeviceInfo.Manufacturer")
http_bytes = GetParameterValuesMethod(request).content()
```

The parsers take the method element itself, not the whole envelope:

```python
import xml.etree.ElementTree as ET
from cwmpacs.parsers import parse_inform

inform_xml = """
<cwmp:Inform xmlns:cwmp="urn:dslforum-org:cwmp-1-0">
  <DeviceId><SerialNumber>SN-EXAMPLE-0001</SerialNumber></DeviceId>
  <CurrentTime>2020-01-01T00:00:00Z</CurrentTime>
</cwmp:Inform>
"""
inform = parse_inform(ET.fromstring(inform_xml))
print(inform.device_id.serial_number, inform.current_time)
```

Models convert to and from a flat tuple form with `to_struct()` and
`from_struct()`.

## What it does not do

- It does not send connection requests to CPEs; it only reacts to sessions
  the CPE opens.
- There is no queue of scheduled tasks per device: the only RPCs sent are
  the fixed `SetParameterValues` above and, when
  `SessionContext.probe_parameter_values` is set, a `GetParameterValues` for
  `InternetGatewayDevice.DeviceInfo.Manufacturer`.
- There is no HTTP authentication, and the `Cookie` header is recorded but
  not used to tie connections together.
- The MongoDB location is fixed by `cwmpd`; other locations need
  `MongoInformStore` and `CWMPServer` to be built in code.

## Tests

```
pip install .[test]
pytest
```