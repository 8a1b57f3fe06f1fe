# exceptions raised by SNTP queries

class SNTPError(Exception):
    """Base class for SNTP query errors."""
    pass

class InvalidEndpoint(SNTPError, ValueError):
    """Endpoint string is not a usable host[:port]."""
    pass

class ResolutionError(SNTPError):
    """Host/port could not be resolved to a network address."""
    pass

class TransportError(SNTPError):
    """Underlying socket failure (unreachable, refused, ...)."""
    pass

class Timeout(SNTPError):
    """No reply arrived within the configured bound."""
    pass

class MalformedResponse(SNTPError, ValueError):
    """Reply is not a 48 byte server-mode SNTP datagram."""
    pass

class UntrustedResponse(MalformedResponse):
    """Reply originate timestamp does not echo the request."""
    pass

class TimestampOutOfRange(SNTPError, OverflowError):
    """Timestamp not representable as signed 64-bit nanoseconds or NTP era 0."""
    pass
