from ntpdatagram import NTPdatagram
from ntptimestamp import check_nanos, ntp_to_unix_ns

# T1: client transmit (local clock)
# T2: server receive  (reply.rec)
# T3: server transmit (reply.xmt)
# T4: client receive  (local clock)
# all held as unix nanoseconds

class ClockSample:
    def __init__(self, t1: int, t2: int, t3: int, t4: int):
        self.t1 = t1
        self.t2 = t2
        self.t3 = t3
        self.t4 = t4

    @classmethod
    def from_reply(cls, reply: NTPdatagram, t1: int, t4: int):
        """combine local send/receive instants with the server's receive/transmit timestamps"""
        return cls(
            t1=t1,
            t2=ntp_to_unix_ns(reply.rec_whole, reply.rec_frac),
            t3=ntp_to_unix_ns(reply.xmt_whole, reply.xmt_frac),
            t4=t4,
        )

    @property
    def unix_timestamp_ns(self) -> int:
        """server transmit time, no offset correction"""
        return self.t3

    @property
    def offset_ns(self) -> int:
        """server clock minus local clock, positive = server ahead"""
        return check_nanos(_halve((self.t2 - self.t1) + (self.t3 - self.t4)))

    @property
    def raw_delay_ns(self) -> int:
        return (self.t4 - self.t1) - (self.t3 - self.t2)

    @property
    def delay_anomaly(self) -> bool:
        """negative round trip: local or server clock stepped mid exchange, or bogus server times"""
        return self.raw_delay_ns < 0

    @property
    def delay_ns(self) -> int:
        """round trip delay, clamped at 0 (see delay_anomaly)"""
        return check_nanos(max(self.raw_delay_ns, 0))

    def __repr__(self) -> str:
        return (
            f"ClockSample(t1={self.t1}, t2={self.t2}, t3={self.t3}, t4={self.t4}, "
            f"offset={_halve((self.t2 - self.t1) + (self.t3 - self.t4))}, delay={self.raw_delay_ns})"
        )

def _halve(value: int) -> int:
    """integer halving, truncated toward zero"""
    return value // 2 if value >= 0 else -(-value // 2)
