from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from scapy.all import sniff, IP  # type: ignore[import-untyped]

from .filter import IP2NameFilter

logger = logging.getLogger(__name__)

PacketEvent = Dict[str, Any]


def handle_packet(pkt, ip_filter: IP2NameFilter) -> Optional[PacketEvent]:
    """Turn an IPv4 packet into an event with both ends resolved.

    Returns None for anything without an IPv4 layer.
    """
    if not pkt.haslayer(IP):
        return None

    ip_layer = pkt[IP]
    event: PacketEvent = {"src": str(ip_layer.src), "dst": str(ip_layer.dst)}

    ip_filter.refresh_if_due()
    event["src_name"] = ip_filter.lookup(event["src"])
    event["dst_name"] = ip_filter.lookup(event["dst"])
    return event


def start_sniffer(
    ip_filter: IP2NameFilter,
    on_event: Callable[[PacketEvent], None],
    iface: Optional[str] = None,
    stop_event: Optional[threading.Event] = None,
    count: int = 0,
) -> threading.Thread:
    """Start a background thread sniffing IPv4 traffic.

    Every packet is resolved through ip_filter and handed to on_event.
    If sniffing is unavailable (no libpcap, no privileges) the thread
    logs a warning once and exits; callers keep running without it.
    """

    def _sniff_loop() -> None:
        def _prn(pkt) -> None:
            event = handle_packet(pkt, ip_filter)
            if event is not None:
                on_event(event)

        def _stop_filter(_pkt) -> bool:
            return stop_event.is_set() if stop_event is not None else False

        try:
            sniff(
                filter="ip",
                prn=_prn,
                store=False,
                iface=iface,
                count=count,
                stop_filter=_stop_filter,
            )
        except (RuntimeError, PermissionError, OSError) as e:
            logger.warning("Packet sniffing is not available: %s", e)
        except Exception:
            logger.exception("Packet sniffing failed")
        finally:
            if stop_event is not None:
                stop_event.set()

    t = threading.Thread(target=_sniff_loop, name="Ip2NameSniffer", daemon=True)
    t.start()
    return t
