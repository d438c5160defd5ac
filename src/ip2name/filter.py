from __future__ import annotations

import logging
import re
import time
from typing import Any, Callable, MutableMapping, Optional

from .config import FilterConfig
from .dictionary import DictionaryStore
from .errors import InvalidAddress, LoadError
from .resolver import resolve

logger = logging.getLogger(__name__)

_FIELD_REF = re.compile(r"%\{([^}]+)\}")


def sprintf(template: str, event: MutableMapping[str, Any]) -> str:
    """Substitute %{field} references with values from event.

    References to fields the event does not have are left as written.
    """

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key not in event:
            return match.group(0)
        return str(event[key])

    return _FIELD_REF.sub(_sub, template)


class IP2NameFilter:
    """Writes a resolved name into events carrying an IPv4 address.

    The dictionary file is re-read every refresh_interval seconds, checked
    lazily as events come through. A bad reload is logged and the
    previous dictionary keeps serving.
    """

    def __init__(
        self,
        config: FilterConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self.store = DictionaryStore()
        self._clock = clock
        self._next_refresh = clock() + config.refresh_interval
        self.load_dictionary()

    def load_dictionary(self) -> bool:
        """Merge the configured file into the store. Never raises."""
        path = self.config.dictionary_path
        try:
            loaded = self.store.load(path)
        except LoadError as e:
            logger.error(
                "Bad dictionary file %s, keeping previous entries: %s", path, e.detail
            )
            return False
        if loaded:
            logger.debug(
                "Loaded %s: %d entries, prefixes %s",
                path,
                len(self.store),
                list(self.store.candidate_prefixes),
            )
        elif path:
            logger.debug("Dictionary file %s not found, nothing to load", path)
        return True

    def refresh_if_due(self) -> bool:
        now = self._clock()
        if now < self._next_refresh:
            return False
        logger.debug("Refreshing dictionary file into the cache")
        self.load_dictionary()
        self._next_refresh = now + self.config.refresh_interval
        return True

    def lookup(self, ip: str) -> Optional[str]:
        """Resolve ip, logging instead of raising on a bad address."""
        try:
            return resolve(ip, self.store)
        except InvalidAddress as e:
            logger.warning("Cannot resolve %r: %s", ip, e)
            return None

    def filter(self, event: MutableMapping[str, Any]) -> bool:
        """Resolve event[address_field] into event[name_field].

        Returns True when name_field was written, either with a match or
        with the rendered fallback.
        """
        self.refresh_if_due()

        cfg = self.config
        if cfg.address_field not in event:
            return False

        name = self.lookup(str(event[cfg.address_field]))
        if name is not None:
            event[cfg.name_field] = name
            return True
        if cfg.fallback is not None:
            event[cfg.name_field] = sprintf(cfg.fallback, event)
            return True
        return False
