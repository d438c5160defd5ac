from __future__ import annotations

import ipaddress
from typing import Optional

from .dictionary import DictionaryStore
from .errors import InvalidAddress


def _parse_ipv4(ip: str) -> ipaddress.IPv4Address:
    try:
        return ipaddress.IPv4Address(ip)
    except ValueError as e:
        raise InvalidAddress(ip, str(e)) from e


def resolve(ip: str, store: DictionaryStore) -> Optional[str]:
    """Resolve ip to a name using the store's current dictionary.

    An exact key wins over any range. Ranges are tried in the store's
    prefix order (most common prefix length first, not most specific),
    and the first hit gets the host octets of ip from index prefix // 8
    onwards appended, e.g. 10.10.10.0/24 named "example.local" gives
    "example.local.10" for 10.10.10.10.

    Returns None when nothing matches. Raises InvalidAddress when ip is
    not an exact key and is not a valid IPv4 address.
    """
    snap = store.snapshot()

    name = snap.entries.get(ip)
    if name is not None:
        return name

    addr = _parse_ipv4(ip)
    for prefix in snap.prefixes:
        network = ipaddress.IPv4Network((addr, prefix), strict=False)
        name = snap.entries.get(f"{network.network_address}/{prefix}")
        if name is None:
            continue
        octets = ip.split(".")
        return ".".join([name, *octets[prefix // 8 :]])

    return None
