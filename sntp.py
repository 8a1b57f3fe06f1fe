from sntpclient import SNTPclient, DEFAULT_PORT, DEFAULT_VERSION
from sntperror import SNTPError
from sntpserver import SNTPserver
from sntptransport import DEFAULT_TIMEOUT
from timestampgen import OperationalTimestampGenerator, SkewedTimestampGenerator
from pathlib import Path
import argparse
import asyncio
import datetime
import logging
import sys

try:
    __version__ = Path(__file__).parent.joinpath("VERSION").read_text().strip()
except FileNotFoundError:
    __version__ = "version ???" # VERSION file missing or unreadable

formatter = logging.Formatter(
    fmt='%(asctime)s - %(levelname)s - %(name)s.%(funcName)s - %(message)s',
    datefmt='%Y-%m-%dT%H:%M:%S'
)
logconsole = logging.StreamHandler()
logconsole.setLevel(logging.DEBUG)
logconsole.setFormatter(formatter)
logger = logging.getLogger("SNTP")
logger.addHandler(logconsole)

def format_timestamp(unix_ns: int) -> str:
    seconds, nanos = divmod(unix_ns, 1_000_000_000)
    moment = datetime.datetime.fromtimestamp(seconds, tz=datetime.timezone.utc)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{nanos:09d}Z"

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="SNTP - query a time server for its time or the local clock offset")
    parser.add_argument("-o", "--offset", action="store_true", help="Print clock offset (ns, server minus local) instead of server time")
    parser.add_argument("-t", "--timeout", type=float, default=DEFAULT_TIMEOUT, help=f"Reply timeout in seconds (default {DEFAULT_TIMEOUT})")
    parser.add_argument("-n", "--ntp-version", type=int, choices=(3, 4), default=DEFAULT_VERSION, help=f"NTP version in request (default {DEFAULT_VERSION})")
    parser.add_argument("-c", "--check-origin", action="store_true", help="Require server to echo request transmit timestamp")
    parser.add_argument("-s", "--server", action="store_true", help="Run local reference responder instead of querying")
    parser.add_argument("-p", "--port", type=int, default=DEFAULT_PORT, help="Default port (client) or listen port (server)")
    parser.add_argument("--bind", type=str, default="127.0.0.1", help="Listen address (server only)")
    parser.add_argument("--skew", type=float, default=0.0, help="Clock skew in seconds applied to replies (server only)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Verbose mode (repeatable)")
    parser.add_argument("remote", type=str, nargs='?', help="Time server, host or host:port (client only)")
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}", help="Show version and exit")
    return parser

def run_server(args) -> int:
    if args.remote:
        logger.error("Server mode does not accept a remote host")
        return 1
    if not 0 <= args.port <= 65535:
        logger.error("Invalid port number")
        return 1
    skew_ns = int(args.skew * 1_000_000_000)
    timestampgen = SkewedTimestampGenerator(skew_ns) if skew_ns else OperationalTimestampGenerator()
    logger.info(f"SNTP {__version__} starting in server mode, skew: {skew_ns} ns")
    server = SNTPserver(host=args.bind, port=args.port, timestampgen=timestampgen, verbose=args.verbose + 1)
    asyncio.run(server.start())
    return 0

def run_client(args) -> int:
    if not args.remote:
        logger.error("Remote host required in client mode.")
        return 1
    try:
        client = SNTPclient(
            timeout = args.timeout,
            version = args.ntp_version,
            port = args.port,
            validate_origin = args.check_origin,
            verbose = args.verbose > 1,
        )
        if args.offset:
            offset = client.clock_offset_nanos(args.remote)
            print(f"{offset:+d} ns ({offset / 1e9:+.6f} s)" if args.verbose else offset)
        else:
            timestamp = client.unix_timestamp(args.remote)
            print(format_timestamp(timestamp) if args.verbose else timestamp)
    except (SNTPError, ValueError) as e:
        logger.error(f"{type(e).__name__}: {e}")
        return 1
    return 0

def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger.setLevel(logging.DEBUG if args.verbose > 0 else logging.INFO)
    if args.server:
        return run_server(args)
    return run_client(args)

if __name__ == "__main__":
    sys.exit(main())
