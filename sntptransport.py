import logging
import socket
import time

from sntperror import ResolutionError, Timeout, TransportError

DEFAULT_TIMEOUT = 5 # seconds
RECV_BUFFER = 1024 # oversize replies are passed through, codec rejects them

formatter = logging.Formatter(
    fmt='%(asctime)s - %(levelname)s - %(name)s.%(funcName)s - %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logconsole = logging.StreamHandler()
logconsole.setLevel(logging.DEBUG)
logconsole.setFormatter(formatter)

class UDPtransport:
    """single request/reply exchange over a throwaway UDP socket"""
    def __init__(self, timeout=DEFAULT_TIMEOUT, clock=time.time_ns, verbose=False):
        if timeout is None or timeout <= 0:
            raise ValueError(f"timeout must be a positive number of seconds, got: {timeout}")
        self.timeout = timeout
        self.clock = clock

        self.logger = logging.getLogger(type(self).__name__)
        if logconsole not in self.logger.handlers:
            self.logger.addHandler(logconsole)
        if verbose:
            self.set_loglevel(logging.DEBUG)

    def resolve(self, host: str, port: int):
        """first UDP capable address for host:port -> (family, sockaddr)"""
        try:
            addrinfo = socket.getaddrinfo(host, port, type=socket.SOCK_DGRAM)
        except (socket.gaierror, UnicodeError) as e:
            self.logger.error(f"Failed to resolve {host}:{port}: {e}")
            raise ResolutionError(f"Cannot resolve {host}:{port}: {e}") from e
        if not addrinfo:
            raise ResolutionError(f"No address found for {host}:{port}")
        family, _, _, _, sockaddr = addrinfo[0]
        self.logger.debug(f"Resolved {host}:{port} -> {sockaddr[0]}:{sockaddr[1]}")
        return family, sockaddr

    def exchange(self, host: str, port: int, payload: bytes):
        """send payload, wait for one reply -> (reply, t1, t4)"""
        family, sockaddr = self.resolve(host, port)
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.settimeout(self.timeout)
                # connected UDP: only datagrams from the server are delivered, ICMP errors surface
                sock.connect(sockaddr)
                t1 = self.clock()
                sock.send(payload)
                data = sock.recv(RECV_BUFFER)
                t4 = self.clock()
        except socket.timeout as e:
            self.logger.error(f"Timeout waiting for response from {sockaddr[0]}:{sockaddr[1]} ({self.timeout}s)")
            raise Timeout(f"No reply from {host}:{port} within {self.timeout}s") from e
        except OSError as e:
            self.logger.error(f"Socket error talking to {sockaddr[0]}:{sockaddr[1]}: {e}")
            raise TransportError(f"Exchange with {host}:{port} failed: {e}") from e
        self.logger.debug(f"Received {len(data)} bytes from {sockaddr[0]}:{sockaddr[1]} in {(t4 - t1) / 1e6:.3f} ms")
        return data, t1, t4

    def set_loglevel(self, level):
        self.logger.setLevel(level)
