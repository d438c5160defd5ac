import argparse
import json
import logging
import sys
import threading
import time
from typing import IO, Sequence, List

from .capture import start_sniffer
from .config import FilterConfig
from .filter import IP2NameFilter, sprintf
from .host_insight import HostInsight, ConnectionInfo

logger = logging.getLogger(__name__)


def _print_table(
    headers: tuple[str, ...],
    rows: List[tuple[str, ...]],
    col_limits: List[tuple[int, int]],
) -> None:
    def compute_width(idx: int, header: str) -> int:
        min_w, max_w = col_limits[idx]
        max_len = len(header)
        for row in rows:
            max_len = max(max_len, len(row[idx]))
        return max(min_w, min(max_len, max_w))

    widths = [compute_width(i, h) for i, h in enumerate(headers)]

    fmt_header = "  ".join(f"{{:<{w}}}" for w in widths)
    fmt_row = "  ".join(f"{{:<{w}.{w}}}" for w in widths)

    header_line = fmt_header.format(*headers)
    print(header_line)
    print("-" * len(header_line))

    for row in rows:
        print(fmt_row.format(*row))


def print_resolved(ip_filter: IP2NameFilter, addresses: Sequence[str]) -> None:
    fallback = ip_filter.config.fallback
    rows: list[tuple[str, str]] = []
    for ip in addresses:
        name = ip_filter.lookup(ip)
        if name is None and fallback is not None:
            name = sprintf(fallback, {ip_filter.config.address_field: ip})
        rows.append((ip, name or "-"))

    _print_table(
        ("Address", "Name"),
        rows,
        [
            (7, 18),  # Address
            (4, 80),  # Name
        ],
    )


def print_connections(conns: List[ConnectionInfo]) -> None:
    if not conns:
        print("No active connections found (ESTABLISHED).")
        return

    rows: list[tuple[str, str, str, str, str, str]] = []
    for c in conns:
        pid = str(c.pid) if c.pid is not None else "-"
        local = f"{c.laddr_ip}:{c.laddr_port}"
        if c.raddr_ip and c.raddr_port:
            remote = f"{c.raddr_ip}:{c.raddr_port}"
        else:
            remote = "-"
        rows.append(
            (pid, c.process_name or "unknown", local, remote, c.status or "-", c.name or "-")
        )

    _print_table(
        ("PID", "Process", "Local", "Remote", "Status", "Name"),
        rows,
        [
            (3, 8),  # PID
            (7, 25),  # Process
            (5, 30),  # Local
            (6, 30),  # Remote
            (6, 15),  # Status
            (4, 60),  # Name
        ],
    )


def run_events(ip_filter: IP2NameFilter, source: IO[str], sink: IO[str]) -> int:
    """Filter JSON-lines events from source into sink. Returns events written."""
    written = 0
    for lineno, line in enumerate(source, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError as e:
            logger.error("Skipping line %d: invalid JSON (%s)", lineno, e)
            continue
        if not isinstance(event, dict):
            logger.error("Skipping line %d: event is not a JSON object", lineno)
            continue
        ip_filter.filter(event)
        sink.write(json.dumps(event) + "\n")
        written += 1
    return written


def run_host(ip_filter: IP2NameFilter) -> None:
    hi = HostInsight(ip_filter)
    conns = hi.get_connections()
    print_connections(conns)
    summary = HostInsight.summarize(conns)
    print(
        f"\n{summary['total_connections']} connections, "
        f"{summary['unique_remote_ips']} remote IPs, "
        f"{summary['named_remote_ips']} named"
    )


def _format_packet(event: dict) -> str:
    src = event["src"]
    dst = event["dst"]
    if event.get("src_name"):
        src = f"{src} ({event['src_name']})"
    if event.get("dst_name"):
        dst = f"{dst} ({event['dst_name']})"
    return f"{src} -> {dst}"


def run_sniff(ip_filter: IP2NameFilter, iface: str | None, count: int) -> None:
    """
    Live view: print every captured IPv4 packet with both ends named.

    Requires libpcap/Npcap and capture privileges. Read-only: nothing is sent.
    """
    stop_event = threading.Event()
    print("Starting packet capture (requires capture privileges)...")
    start_sniffer(
        ip_filter,
        on_event=lambda event: print(_format_packet(event)),
        iface=iface,
        stop_event=stop_event,
        count=count,
    )

    try:
        while not stop_event.is_set():
            time.sleep(0.5)
    except KeyboardInterrupt:
        print("\nStopping capture...")
    finally:
        stop_event.set()


def _positive_seconds(value: str) -> float:
    try:
        seconds = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    if seconds <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return seconds


def _add_filter_args(parser: argparse.ArgumentParser, address_field: bool) -> None:
    parser.add_argument(
        "-d",
        "--dictionary",
        required=True,
        help="YAML file mapping addresses and CIDR ranges to names.",
    )
    if address_field:
        parser.add_argument(
            "--address-field",
            required=True,
            help="Event field holding the IPv4 address.",
        )
        parser.add_argument(
            "--name-field",
            default="ip2name",
            help="Event field receiving the name (default: ip2name).",
        )
        parser.add_argument(
            "--refresh-interval",
            type=_positive_seconds,
            default=300,
            help="Seconds between dictionary reloads (default: 300).",
        )
        fallback_help = (
            "Value used when nothing matches; %%{field} references event fields."
        )
    else:
        fallback_help = (
            "Value used when nothing matches; %%{address} is the looked-up address."
        )
    parser.add_argument("--fallback", default=None, help=fallback_help)


def build_filter(args: argparse.Namespace) -> IP2NameFilter:
    config = FilterConfig(
        address_field=getattr(args, "address_field", None) or "address",
        dictionary_path=args.dictionary,
        refresh_interval=getattr(args, "refresh_interval", 300),
        name_field=getattr(args, "name_field", None) or "ip2name",
        fallback=getattr(args, "fallback", None),
    )
    return IP2NameFilter(config)


def _cmd_events(args: argparse.Namespace) -> None:
    ip_filter = build_filter(args)
    if args.input in (None, "-"):
        run_events(ip_filter, sys.stdin, sys.stdout)
    else:
        with open(args.input, "r", encoding="utf-8") as f:
            run_events(ip_filter, f, sys.stdout)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ip2name",
        description="ip2name - resolve IPv4 addresses to names from a YAML dictionary.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging."
    )
    subparsers = parser.add_subparsers(dest="command", required=False)

    # resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Resolve the given addresses and print a table.",
    )
    _add_filter_args(resolve_parser, address_field=False)
    resolve_parser.add_argument("addresses", nargs="+", metavar="IP")
    resolve_parser.set_defaults(
        func=lambda args: print_resolved(build_filter(args), args.addresses)
    )

    # events command
    events_parser = subparsers.add_parser(
        "events",
        help="Add names to JSON-lines events (file or stdin) and print them.",
    )
    _add_filter_args(events_parser, address_field=True)
    events_parser.add_argument(
        "input", nargs="?", default=None, help="Input file (default: stdin)."
    )
    events_parser.set_defaults(func=_cmd_events)

    # host command
    host_parser = subparsers.add_parser(
        "host",
        help="Show active connections for this host with named remote addresses.",
    )
    _add_filter_args(host_parser, address_field=False)
    host_parser.set_defaults(func=lambda args: run_host(build_filter(args)))

    # sniff command
    sniff_parser = subparsers.add_parser(
        "sniff",
        help="Live capture of IPv4 traffic with named endpoints.",
    )
    _add_filter_args(sniff_parser, address_field=False)
    sniff_parser.add_argument("--iface", default=None, help="Interface to capture on.")
    sniff_parser.add_argument(
        "--count", type=int, default=0, help="Stop after N packets (0 = forever)."
    )
    sniff_parser.set_defaults(
        func=lambda args: run_sniff(build_filter(args), args.iface, args.count)
    )

    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[ip2name] %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
    else:
        func(args)


if __name__ == "__main__":
    main()
