"""The ACS TCP server and the command that starts it."""

from __future__ import annotations

import argparse
import configparser
import logging
import socketserver
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType
from typing import Any, BinaryIO, Optional, Sequence

from .session import InformStore, SessionContext, TCPSession
from .storage import MongoInformStore

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "cwmpd.ini"
DEFAULT_PORT = 8080
_SECTION = "MAIN"


@dataclass
class ServerConfig:
    """Settings read from the MAIN section of the configuration file."""

    port: int = 0
    bind: str = ""
    extras: dict[str, str] = field(default_factory=dict)


def _to_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        return 0


def parse_config(path: str | Path) -> ServerConfig:
    """Read an INI configuration file; a missing MAIN section gives the defaults."""
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    with open(path, encoding="utf-8") as handle:
        parser.read_file(handle)

    config = ServerConfig()
    if not parser.has_section(_SECTION):
        return config
    for key, value in parser.items(_SECTION):
        if key == "port":
            config.port = _to_int(value)
        elif key == "bind":
            config.bind = value
        else:
            logger.debug("%s : %s", key, value)
            config.extras[key] = value
    return config


class _Handler(socketserver.BaseRequestHandler):
    server: _TCPServer

    def handle(self) -> None:
        logger.debug("New connection.")
        with self.request.makefile("rwb") as stream:
            self.server.cwmp.handle_connection(stream)


class _TCPServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, address: tuple[str, int], cwmp: CWMPServer) -> None:
        self.cwmp = cwmp
        super().__init__(address, _Handler)


class CWMPServer:
    """Accepts CPE connections and runs a TCP session for each one."""

    def __init__(
        self,
        host: str = "",
        port: int = DEFAULT_PORT,
        *,
        context: Optional[SessionContext] = None,
        store: Optional[InformStore] = None,
    ) -> None:
        self.context = context if context is not None else SessionContext.instance()
        self.store = store
        self._server = _TCPServer((host, port), self)

    @property
    def server_address(self) -> Any:
        return self._server.server_address

    def handle_connection(self, stream: BinaryIO) -> None:
        """Run a session over ``stream`` until it is finished."""
        TCPSession(stream, self.context, self.store).run()

    def serve_forever(self, poll_interval: float = 0.5) -> None:
        self._server.serve_forever(poll_interval)

    def shutdown(self) -> None:
        self._server.shutdown()

    def close(self) -> None:
        self._server.server_close()

    def __enter__(self) -> CWMPServer:
        return self

    def __exit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        self.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Start the ACS using the configuration file; returns the exit status."""
    arguments = argparse.ArgumentParser(description="CWMP auto-configuration server")
    arguments.add_argument("--config", default=DEFAULT_CONFIG_FILE)
    options = arguments.parse_args(argv)
    logging.basicConfig(level=logging.INFO)

    config_path = Path(options.config)
    if not config_path.is_file():
        logger.error("Config file %s not found!", config_path)
        return -1
    config = parse_config(config_path)
    port = config.port or DEFAULT_PORT

    with MongoInformStore() as store, CWMPServer("", port, store=store) as server:
        logger.info("Start TCP Server %s : %d", config.bind, port)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0