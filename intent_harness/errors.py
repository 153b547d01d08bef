from typing import Dict, Optional

import grpc


class HarnessError(Exception):
    """Base class for every failure the harness reports"""


class EndpointUnavailable(HarnessError):
    """Nothing is listening on the configured backend port"""

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        super().__init__(
            f"Could not find the intent detection backend running on {host} "
            f"with non-TLS gRPC port {port}. Please see README.md for instructions."
        )


class RpcFailure(HarnessError):
    """A unary or streaming call ended with a non-OK status.

    ``str()`` renders as ``CODE`` or ``CODE: details`` so assertions can
    compare it against the backend's status directly.
    """

    def __init__(self, code: grpc.StatusCode, details: Optional[str] = None):
        self.code = code
        self.details = details or ""
        message = code.name if not self.details else f"{code.name}: {self.details}"
        super().__init__(message)

    @classmethod
    def from_rpc_error(cls, error: grpc.RpcError) -> "RpcFailure":
        # grpc.RpcError raised by a call is also a grpc.Call
        code = error.code() if hasattr(error, "code") else grpc.StatusCode.UNKNOWN
        details = error.details() if hasattr(error, "details") else str(error)
        return cls(code or grpc.StatusCode.UNKNOWN, details)


class StreamTerminatedEarly(HarnessError):
    """The stream closed cleanly with fewer responses than requests sent"""

    def __init__(self, expected: int, received: int, partial: Dict):
        self.expected = expected
        self.received = received
        self.partial = partial
        super().__init__(
            f"stream closed after {received} of {expected} responses"
        )
