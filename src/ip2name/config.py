from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class FilterConfig:
    # Event field holding the address to resolve
    address_field: str

    # YAML dictionary file (None = start empty, nothing to reload)
    dictionary_path: Optional[str] = None

    # How often (in seconds) the dictionary file is re-read
    refresh_interval: float = 300

    # Event field that receives the resolved name. Set it to address_field
    # to overwrite the address in place.
    name_field: str = "ip2name"

    # Used when nothing matches; may reference event fields as %{field}
    fallback: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.address_field:
            raise ValueError("address_field is required")
        if not self.name_field:
            raise ValueError("name_field must not be empty")
        if self.refresh_interval <= 0:
            raise ValueError(
                f"refresh_interval must be positive, got {self.refresh_interval!r}"
            )


@dataclass(frozen=True)
class HostInsightConfig:
    # Only show these connection statuses (ESTABLISHED = active connections)
    allowed_statuses: tuple[str, ...] = ("ESTABLISHED",)

    # Maximum number of connections to show (None = no limit)
    max_connections: int | None = 200


HOST_INSIGHT_CONFIG = HostInsightConfig()
