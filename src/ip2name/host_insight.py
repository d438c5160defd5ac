from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Optional, Iterable

import psutil

from .config import HOST_INSIGHT_CONFIG
from .filter import IP2NameFilter


@dataclass
class ConnectionInfo:
    pid: Optional[int]
    process_name: str
    laddr_ip: str
    laddr_port: int
    raddr_ip: Optional[str]
    raddr_port: Optional[int]
    status: str
    name: Optional[str]


class HostInsight:
    def __init__(self, ip_filter: IP2NameFilter) -> None:
        self._filter = ip_filter
        # per-snapshot cache: ip -> dictionary name
        self._names: dict[str, Optional[str]] = {}

    def _name_for(self, ip: str) -> Optional[str]:
        if ip not in self._names:
            self._names[ip] = self._filter.lookup(ip)
        return self._names[ip]

    def get_connections(self) -> list[ConnectionInfo]:
        """
        Return a snapshot of active inet connections on this host, with
        remote addresses named from the dictionary.

        This only reads OS state via psutil; it does not alter system config.
        """
        self._filter.refresh_if_due()
        self._names.clear()

        raw_conns = psutil.net_connections(kind="inet")

        conns: list[ConnectionInfo] = []
        for c in raw_conns:
            status = c.status or ""
            is_udp = c.type == socket.SOCK_DGRAM
            if not is_udp:
                if (
                    HOST_INSIGHT_CONFIG.allowed_statuses
                    and status not in HOST_INSIGHT_CONFIG.allowed_statuses
                ):
                    continue

            laddr_ip, laddr_port = (c.laddr.ip, c.laddr.port) if c.laddr else ("", 0)
            raddr_ip, raddr_port = (
                (c.raddr.ip, c.raddr.port) if c.raddr else (None, None)
            )

            # best-effort process name
            proc_name = "unknown"
            if c.pid is not None:
                try:
                    proc_name = psutil.Process(c.pid).name()
                except (psutil.NoSuchProcess, psutil.AccessDenied):
                    proc_name = "unknown"

            # IPv6 peers never match an IPv4 dictionary
            name = None
            if raddr_ip and c.family == socket.AF_INET:
                name = self._name_for(raddr_ip)

            conns.append(
                ConnectionInfo(
                    pid=c.pid,
                    process_name=proc_name,
                    laddr_ip=laddr_ip,
                    laddr_port=laddr_port,
                    raddr_ip=raddr_ip,
                    raddr_port=raddr_port,
                    status=status,
                    name=name,
                )
            )

        # sort by process name then remote name/ip
        conns.sort(key=lambda x: (x.process_name.lower(), x.name or x.raddr_ip or ""))

        if HOST_INSIGHT_CONFIG.max_connections is not None:
            conns = conns[: HOST_INSIGHT_CONFIG.max_connections]

        return conns

    @staticmethod
    def summarize(conns: Iterable[ConnectionInfo]) -> dict[str, int]:
        """
        Simple summary: counts of connections, unique remote IPs and
        how many of them the dictionary could name.
        """
        conns = list(conns)
        ips = {c.raddr_ip for c in conns if c.raddr_ip}
        named = {c.raddr_ip for c in conns if c.raddr_ip and c.name}
        return {
            "total_connections": len(conns),
            "unique_remote_ips": len(ips),
            "named_remote_ips": len(named),
        }
