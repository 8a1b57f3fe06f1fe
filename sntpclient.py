import logging
import time

from clocksample import ClockSample
from ntpdatagram import NTPdatagram, NTP_VERSION_3
from ntptimestamp import unix_ns_to_ntp64
from sntperror import InvalidEndpoint, MalformedResponse, UntrustedResponse
from sntptransport import UDPtransport, DEFAULT_TIMEOUT

DEFAULT_PORT = 123
DEFAULT_VERSION = NTP_VERSION_3

formatter = logging.Formatter(
    fmt='%(asctime)s - %(levelname)s - %(name)s.%(funcName)s - %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logconsole = logging.StreamHandler()
logconsole.setLevel(logging.DEBUG)
logconsole.setFormatter(formatter)

def parse_endpoint(endpoint: str, default_port: int = DEFAULT_PORT):
    """'host', 'host:port', '[v6addr]:port' or bare 'v6addr' -> (host, port)"""
    if not isinstance(endpoint, str) or not endpoint.strip():
        raise InvalidEndpoint(f"Empty endpoint: {endpoint!r}")
    endpoint = endpoint.strip()

    if endpoint.startswith("["):
        # RFC 3986 style IPv6 literal
        host, sep, rest = endpoint[1:].partition("]")
        if not sep:
            raise InvalidEndpoint(f"Unterminated IPv6 literal: '{endpoint}'")
        if rest and not rest.startswith(":"):
            raise InvalidEndpoint(f"Unexpected text after IPv6 literal: '{endpoint}'")
        port_string = rest[1:] if rest else None
    elif endpoint.count(":") > 1:
        # bare IPv6 literal, no port
        host, port_string = endpoint, None
    else:
        host, sep, port_string = endpoint.partition(":")
        port_string = port_string if sep else None

    if not host:
        raise InvalidEndpoint(f"Missing host: '{endpoint}'")
    if port_string is None:
        port = default_port
    elif not (port_string.isascii() and port_string.isdigit()):
        raise InvalidEndpoint(f"Invalid port: '{port_string}'")
    else:
        port = int(port_string)
    if isinstance(port, bool) or not isinstance(port, int):
        raise InvalidEndpoint(f"Invalid port: {port!r}")
    if not 0 <= port <= 65535:
        raise InvalidEndpoint(f"Port out of range (0-65535): {port}")
    return host, port

class SNTPclient:
    def __init__(self, timeout=DEFAULT_TIMEOUT, version=DEFAULT_VERSION, port=DEFAULT_PORT, clock=time.time_ns,
                 transport=None, validate_origin=False, verbose=False):
        self.timeout = timeout
        self.version = version
        self.default_port = port
        self.clock = clock
        # send local T1 as transmit timestamp and require the server to echo it
        self.validate_origin = validate_origin
        self.transport = transport or UDPtransport(timeout=timeout, clock=clock, verbose=verbose)

        self.logger = logging.getLogger(type(self).__name__)
        if logconsole not in self.logger.handlers:
            self.logger.addHandler(logconsole)
        if verbose:
            self.set_loglevel(logging.DEBUG)

    def query(self, endpoint: str) -> ClockSample:
        """one request/reply round trip -> ClockSample"""
        host, port = parse_endpoint(endpoint, self.default_port)
        nonce = unix_ns_to_ntp64(self.clock()) if self.validate_origin else 0
        request = NTPdatagram.client_request(self.version, xmt=nonce)
        self.logger.debug(f"Querying {host}:{port} {request}")

        data, t1, t4 = self.transport.exchange(host, port, request.to_bytes())
        try:
            reply = NTPdatagram.from_reply(data)
        except MalformedResponse as e:
            self.logger.error(f"Invalid reply from {host}:{port}: {e}")
            raise
        self.logger.debug(f"Reply from {host}:{port} {reply}")

        if self.validate_origin and reply.org != nonce:
            self.logger.error(f"Originate timestamp mismatch. Sent: {nonce:016x}, echoed: {reply.org:016x}")
            raise UntrustedResponse(f"Reply from {host}:{port} does not echo request transmit timestamp")

        sample = ClockSample.from_reply(reply, t1, t4)
        if sample.delay_anomaly:
            self.logger.warning(f"Negative round trip delay from {host}:{port}: {sample.raw_delay_ns} ns")
        self.logger.debug(sample)
        return sample

    def unix_timestamp(self, endpoint: str) -> int:
        """server transmit time in unix nanoseconds"""
        return self.query(endpoint).unix_timestamp_ns

    def clock_offset_nanos(self, endpoint: str) -> int:
        """server clock minus local clock in nanoseconds"""
        return self.query(endpoint).offset_ns

    def set_loglevel(self, level):
        self.logger.setLevel(level)
        # injected transports may not log at all
        if hasattr(self.transport, "set_loglevel"):
            self.transport.set_loglevel(level)

def unix_timestamp(endpoint: str, timeout=DEFAULT_TIMEOUT) -> int:
    """Retrieve the server's current time as unix nanoseconds.

    The value is the server's transmit timestamp as claimed by the server,
    not corrected for network delay.

    >>> unix_timestamp("pool.ntp.org")   # doctest: +SKIP
    1792396800123456789
    """
    return SNTPclient(timeout=timeout).unix_timestamp(endpoint)

def clock_offset_nanos(endpoint: str, timeout=DEFAULT_TIMEOUT) -> int:
    """Estimate the local clock offset in nanoseconds (server minus local).

    A positive value means the server is ahead; add it to the local clock to
    get the server's notion of now.

    >>> clock_offset_nanos("pool.ntp.org:123")   # doctest: +SKIP
    -1834211
    """
    return SNTPclient(timeout=timeout).clock_offset_nanos(endpoint)
