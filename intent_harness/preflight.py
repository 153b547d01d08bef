import logging
import socket

from intent_harness.errors import EndpointUnavailable

logger = logging.getLogger(__name__)


def port_is_available(host: str, port: int) -> bool:
    """True when ``host:port`` can be bound, i.e. nothing is listening there."""
    # first resolved address decides the family, so "::1" probes over IPv6
    family, socktype, proto, _, sockaddr = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)[0]

    with socket.socket(family, socktype, proto) as probe:
        probe.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            probe.bind(sockaddr)
        except OSError:
            return False
    return True


def check_endpoint_running(host: str, port: int):
    """Fail fast with EndpointUnavailable if no backend listens on ``host:port``."""
    if port_is_available(host, port):
        raise EndpointUnavailable(host, port)
    logger.debug("Backend is listening on %s:%d", host, port)
