from __future__ import annotations

from typing import Optional


class Ip2NameError(Exception):
    """Base class for ip2name errors."""


class LoadError(Ip2NameError):
    """Dictionary file could not be read or has the wrong structure."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Cannot load dictionary {path}: {detail}")
        self.path = path
        self.detail = detail


class InvalidAddress(Ip2NameError, ValueError):
    """Input is not a dotted-quad IPv4 address."""

    def __init__(self, address: str, detail: Optional[str] = None) -> None:
        message = f"Invalid IPv4 address: {address!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.address = address
