import asyncio
import threading
import logging
import copy
import signal

from ntpdatagram import NTPdatagram, NTPmode
from sntperror import MalformedResponse
from timestampgen import OperationalTimestampGenerator

formatter = logging.Formatter(
    fmt='%(asctime)s - %(levelname)s - %(name)s.%(funcName)s - %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logconsole = logging.StreamHandler()
logconsole.setLevel(logging.DEBUG)
logconsole.setFormatter(formatter)

class SNTPserver(asyncio.DatagramProtocol):
    """minimal SNTP responder, answers client mode requests only"""
    def __init__(self, host=None, port=None, timestampgen=None, verbose=0):
        self.host = host or "127.0.0.1"
        self.port = 123 if port is None else port  # 0: ephemeral, actual port known after start
        self.timestampgen = timestampgen or OperationalTimestampGenerator()
        self.transport = None
        self.loop = None
        self.ready = threading.Event()
        self.thread = None

        self.logger = logging.getLogger(type(self).__name__)
        if logconsole not in self.logger.handlers:
            self.logger.addHandler(logconsole)
        self.set_verbose(verbose)

    def handle_datagram(self, datagram: bytes, addr):
        """discard non-ntp traffic and non client requests, answer the rest"""
        client = addr[0]
        try:
            request = NTPdatagram.from_bytes(datagram)
        except MalformedResponse:
            self.logger.debug(f"{client}: Dropped non-ntp datagram ({len(datagram)} bytes)")
            return None
        if request.mode != NTPmode.CLIENT:
            self.logger.debug(f"{client}: Dropped {request.mode.name} mode datagram")
            return None
        return self.handle_ntp(request, addr)

    def handle_ntp(self, datagram: NTPdatagram, addr) -> NTPdatagram:
        """simulate NTP server response, ref: RFC 4330"""
        reply = copy.copy(datagram)
        reply.leap = 0
        reply.mode = NTPmode.SERVER
        reply.stratum = 15
        reply.poll = 0  # 2^0 = 1 second
        reply.precision = -20  # ~1us
        reply.rootdelay = 0
        reply.rootdispersion = 0x0010  # ~250us
        reply.refid = 0x4C4F434C  # 'LOCL' = "undisciplined local clock"
        self.timestampgen.apply_timestamps(datagram, reply)
        self.logger.debug(f"{addr[0]}: {reply}")
        return reply

    def start_background(self):
        """start server in background thread, block until socket is bound"""
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run_event_loop, daemon=True)
        self.thread.start()
        if not self.ready.wait(timeout=5):
            raise RuntimeError(f"Server failed to bind {self.host}:{self.port}")

    def _run_event_loop(self):
        """run asyncio event loop in a separate thread."""
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self.start())
        except OSError as e:
            self.logger.error(f"Server failed: {e}")
        finally:
            self.loop.close()

    def stop(self):
        """shutdown background event loop"""
        if self.loop and not self.loop.is_closed():
            try:
                self.loop.call_soon_threadsafe(self._shutdown)
            except RuntimeError:
                self.logger.debug("Event loop already closed.")
        if self.thread:
            self.thread.join(timeout=5)

    def _shutdown(self):
        if hasattr(self, "stop_event") and not self.stop_event.done():
            self.logger.debug("Resolving stop_event future...")
            self.stop_event.set_result(None)

    async def start(self):
        """normal server start"""
        loop = asyncio.get_running_loop()
        await loop.create_datagram_endpoint(lambda: self, local_addr=(self.host, self.port))
        self.port = self.transport.get_extra_info("sockname")[1]
        self.logger.info(f"Server started on {self.host}:{self.port}")

        self.stop_event = loop.create_future()
        self.ready.set()

        def shutdown():
            self.logger.info("Received termination signal.")
            if not self.stop_event.done():
                self.stop_event.set_result(None)

        if threading.current_thread() is threading.main_thread():
            try:
                signal.signal(signal.SIGINT, lambda sig, frame: shutdown())
                signal.signal(signal.SIGTERM, lambda sig, frame: shutdown())
            except ValueError:
                self.logger.warning("Signal handling is not supported in this context.")

        try:
            await self.stop_event
        except asyncio.CancelledError:
            self.logger.info("Server shutting down.")
        finally:
            self.transport.close()
            await asyncio.sleep(0)  # let connection_lost run before the loop closes
            self.logger.info("Shutdown complete.")

    def connection_made(self, transport):
        self.transport = transport

    def datagram_received(self, data, addr):
        response = self.handle_datagram(data, addr)
        if response:
            self.transport.sendto(response.to_bytes(), addr)

    def set_verbose(self, level):
        self.logger.setLevel(logging.DEBUG if level > 1 else logging.INFO if level == 1 else logging.WARNING)
