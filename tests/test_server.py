import io
import socket
import threading

import pytest

from cwmpacs.server import CWMPServer, ServerConfig, main, parse_config
from cwmpacs.session import SessionContext

EMPTY_RESPONSE = b"HTTP/1.1 204 No content\r\n\r\n"

INFORM_BODY = (
    b'<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/" '
    b'xmlns:cwmp="urn:dslforum-org:cwmp-1-0">'
    b"<soap:Header/><soap:Body><cwmp:Inform>"
    b"<DeviceId><Manufacturer>Maker</Manufacturer><OUI>000000</OUI>"
    b"<ProductClass>Box</ProductClass><SerialNumber>SN-0001</SerialNumber></DeviceId>"
    b"<Event><EventStruct><EventCode>1 BOOT</EventCode><CommandKey></CommandKey>"
    b"</EventStruct></Event>"
    b"<MaxEnvelopes>1</MaxEnvelopes><CurrentTime>2020-01-01T00:00:00</CurrentTime>"
    b"<RetryCount>0</RetryCount><ParameterList/>"
    b"</cwmp:Inform></soap:Body></soap:Envelope>"
)


class _Stream:
    def __init__(self, data):
        self._incoming = io.BytesIO(data)
        self.written = bytearray()

    def readline(self):
        return self._incoming.readline()

    def read(self, size=-1):
        return self._incoming.read(size)

    def write(self, data):
        self.written += data
        return len(data)


def _request(body=b""):
    return (
        b"POST / HTTP/1.1\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
        + body
    )


def test_parse_config_reads_port_bind_and_extras(tmp_path):
    path = tmp_path / "cwmpd.ini"
    path.write_text("[MAIN]\nport = 7547\nbind = 127.0.0.1\nLogLevel = debug\n")
    config = parse_config(path)
    assert config == ServerConfig(
        port=7547, bind="127.0.0.1", extras={"LogLevel": "debug"}
    )


def test_parse_config_invalid_port_gives_zero(tmp_path):
    path = tmp_path / "cwmpd.ini"
    path.write_text("[MAIN]\nport = abc\n")
    assert parse_config(path).port == 0


def test_parse_config_without_main_section_gives_defaults(tmp_path):
    path = tmp_path / "cwmpd.ini"
    path.write_text("[OTHER]\nport = 7547\n")
    assert parse_config(path) == ServerConfig()


def test_parse_config_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        parse_config(tmp_path / "absent.ini")


def test_main_without_config_file_fails(tmp_path):
    assert main(["--config", str(tmp_path / "absent.ini")]) == -1


def test_empty_post_gets_empty_response():
    with CWMPServer("127.0.0.1", 0, context=SessionContext()) as server:
        stream = _Stream(_request())
        server.handle_connection(stream)
    assert bytes(stream.written) == EMPTY_RESPONSE


def test_inform_gets_inform_response_and_is_stored(mocker):
    store = mocker.Mock()
    context = SessionContext()
    announced = []
    context.announcer.subscribe(announced.append)
    with CWMPServer("127.0.0.1", 0, context=context, store=store) as server:
        stream = _Stream(_request(INFORM_BODY))
        server.handle_connection(stream)

    written = bytes(stream.written)
    assert written.startswith(b"HTTP/1.1 200 OK\r\n")
    assert b"cwmp:InformResponse" in written
    record = store.insert_inform.call_args[0][0]
    assert record["SerialNumber"] == "SN-0001"
    assert [inform.device_id.serial_number for inform in announced] == ["SN-0001"]


def test_server_answers_over_a_real_socket():
    server = CWMPServer("127.0.0.1", 0, context=SessionContext())
    thread = threading.Thread(target=server.serve_forever, kwargs={"poll_interval": 0.05})
    thread.start()
    try:
        host, port = server.server_address[:2]
        with socket.create_connection((host, port), timeout=5) as connection:
            connection.sendall(_request())
            received = bytearray()
            while True:
                chunk = connection.recv(4096)
                if not chunk:
                    break
                received += chunk
        assert bytes(received) == EMPTY_RESPONSE
    finally:
        server.shutdown()
        thread.join()
        server.close()