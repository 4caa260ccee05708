"""
Custom exception hierarchy for Transmission Injector.
Provides specific exception types so callers can tell configuration,
network, protocol and daemon-reported failures apart.
"""


class InjectorError(Exception):
    """Base exception for all Transmission Injector errors."""

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# Configuration errors
class ConfigurationError(InjectorError):
    """Raised when there's a configuration problem."""

    pass


class InvalidRpcUrlError(ConfigurationError):
    """Raised when the RPC url cannot be parsed into a host and credentials."""

    def __init__(self, url: str, message: str = "Transmission rpc url must be percent-encoded"):
        super().__init__(message)
        self.url = url


class DaemonUnreachableError(ConfigurationError):
    """Raised by config validation when the daemon cannot be reached."""

    def __init__(self, url: str):
        super().__init__(f"Failed to reach Transmission at {url}")
        self.url = url


# Transmission RPC errors
class TransmissionError(InjectorError):
    """Base exception for Transmission RPC errors."""

    pass


class TransmissionConnectionError(TransmissionError):
    """Raised when the network exchange fails or times out."""

    pass


class TransmissionProtocolError(TransmissionError):
    """Raised when the daemon answers with something that isn't an RPC envelope."""

    def __init__(self, message: str, status: int | None = None, body: str | None = None):
        super().__init__(message, f"HTTP {status}" if status is not None else None)
        self.status = status
        self.body = body


class TransmissionRejectedError(TransmissionError):
    """Raised when the daemon reports an error in the envelope's result field."""

    def __init__(self, result: str, method: str | None = None):
        super().__init__(f'Transmission responded with error: "{result}"')
        self.result = result
        self.method = method


class SessionNegotiationError(TransmissionError):
    """Raised when the session id challenge repeats past the allowed re-issue."""

    pass
