"""TR-069 (CWMP) auto-configuration server: message models, SOAP parsing and building, sessions, MongoDB storage."""

__version__ = "0.1.0"

__all__ = ["models", "parsers", "methods", "session", "storage", "server"]