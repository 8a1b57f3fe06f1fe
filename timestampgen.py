import time

from abc import ABC, abstractmethod
from ntpdatagram import NTPdatagram
from ntptimestamp import unix_ns_to_ntp64

class TimestampGenerator(ABC):
    @abstractmethod
    def apply_timestamps(self, request: NTPdatagram, reply: NTPdatagram) -> None:
        """modify reply datagram with appropriate timestamps"""
        pass

class OperationalTimestampGenerator(TimestampGenerator):
    def __init__(self, clock=time.time_ns):
        self.clock = clock

    def now(self) -> int:
        return self.clock()

    def apply_timestamps(self, request: NTPdatagram, reply: NTPdatagram) -> None:
        """real NTP timestamps based on system clock"""
        reply.org = request.xmt  # echo client transmit time
        reply.rec = unix_ns_to_ntp64(self.now())
        reply.reftime_whole = max(reply.rec_whole - 8, 0)
        reply.reftime_frac = 0
        reply.xmt = unix_ns_to_ntp64(self.now())

class SkewedTimestampGenerator(OperationalTimestampGenerator):
    """system clock shifted by a fixed offset, simulates a server ahead (+) or behind (-)"""
    def __init__(self, offset_ns: int, clock=time.time_ns):
        super().__init__(clock)
        self.offset_ns = offset_ns

    def now(self) -> int:
        return self.clock() + self.offset_ns

class MockTimestampGenerator(TimestampGenerator):
    """deterministic receive/transmit timestamps for testing"""
    def __init__(self, rec: int, xmt: int, echo_origin=True):
        self.rec = rec
        self.xmt = xmt
        self.echo_origin = echo_origin

    def apply_timestamps(self, request: NTPdatagram, reply: NTPdatagram) -> None:
        reply.org = request.xmt if self.echo_origin else 0
        reply.rec = self.rec
        reply.xmt = self.xmt
        reply.reftime_whole = max(reply.rec_whole - 5, 0)
        reply.reftime_frac = 0
