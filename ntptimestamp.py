"""
NTP <-> Unix timestamp conversion

NTP timestamps are 64-bit unsigned fixed point (32.32): whole seconds since
1900-01-01T00:00:00Z and a binary fraction of a second. Only era 0 is handled,
i.e. seconds are read as unsigned values valid until the 2036 rollover.
Unix timestamps are integer nanoseconds since 1970-01-01T00:00:00Z.
"""
from sntperror import TimestampOutOfRange

UNIX_TO_NTP = 2208988800  # seconds from 1900-01-01 to 1970-01-01
NANOS_PER_SECOND = 1_000_000_000
FRAC_SCALE = 2**32

INT64_MIN = -2**63
INT64_MAX = 2**63 - 1

# era 0 window expressed in unix nanoseconds
NTP_ERA0_MIN_NS = -UNIX_TO_NTP * NANOS_PER_SECOND
NTP_ERA0_MAX_NS = (FRAC_SCALE - UNIX_TO_NTP) * NANOS_PER_SECOND - 1

def check_nanos(value: int) -> int:
    """return value unchanged if it fits signed 64-bit nanoseconds"""
    if not (INT64_MIN <= value <= INT64_MAX):
        raise TimestampOutOfRange(f"{value} ns outside signed 64-bit range")
    return value

def split(ntp: int):
    """64-bit NTP timestamp -> (seconds, fraction)"""
    if not (0 <= ntp < 2**64):
        raise ValueError(f"NTP timestamp {ntp} outside unsigned 64-bit range")
    return ntp >> 32, ntp & 0xFFFFFFFF

def join(seconds: int, fraction: int) -> int:
    """(seconds, fraction) -> 64-bit NTP timestamp"""
    if not (0 <= seconds < FRAC_SCALE and 0 <= fraction < FRAC_SCALE):
        raise ValueError(f"NTP timestamp part outside unsigned 32-bit range: {seconds}.{fraction}")
    return (seconds << 32) | fraction

def ntp_to_unix_ns(seconds: int, fraction: int = 0) -> int:
    """NTP seconds + fraction -> unix nanoseconds, fraction rounded to nearest ns"""
    join(seconds, fraction)  # range check
    nanos = (fraction * NANOS_PER_SECOND + FRAC_SCALE // 2) >> 32
    return check_nanos((seconds - UNIX_TO_NTP) * NANOS_PER_SECOND + nanos)

def ntp64_to_unix_ns(ntp: int) -> int:
    return ntp_to_unix_ns(*split(ntp))

def unix_ns_to_ntp(unix_ns: int):
    """unix nanoseconds -> (NTP seconds, fraction), era 0 only"""
    if not (NTP_ERA0_MIN_NS <= unix_ns <= NTP_ERA0_MAX_NS):
        raise TimestampOutOfRange(f"{unix_ns} ns outside NTP era 0")
    seconds, nanos = divmod(unix_ns, NANOS_PER_SECOND)
    # max nanos (999_999_999) rounds to 0xFFFFFFFC, never carries into seconds
    fraction = ((nanos << 32) + NANOS_PER_SECOND // 2) // NANOS_PER_SECOND
    return seconds + UNIX_TO_NTP, fraction

def unix_ns_to_ntp64(unix_ns: int) -> int:
    return join(*unix_ns_to_ntp(unix_ns))
