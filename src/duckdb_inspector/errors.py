"""Error taxonomy shared by the gateway, the service and the routers.

Every error that reaches a client is rendered as ``{"error": message,
"success": false}`` with the status code carried by the exception class.
"""


class InspectorError(Exception):
    """Base class for errors rendered as the JSON error envelope."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ClientInputError(InspectorError):
    """Missing or invalid input: empty SQL, unparseable filter, bad body."""

    status_code = 400


class EngineError(InspectorError):
    """Any failure raised by the underlying database engine."""

    status_code = 500


class QueryTimeoutError(EngineError):
    """Raised when an engine call exceeds the configured timeout."""

    status_code = 504


class PortBindError(Exception):
    """Raised when no listening port could be bound."""

    def __init__(self, message: str, attempted_ports: list[int] | None = None):
        self.attempted_ports = attempted_ports or []
        super().__init__(message)
