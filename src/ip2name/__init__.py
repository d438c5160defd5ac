"""ip2name - resolve IPv4 addresses to names from a YAML dictionary."""

from .dictionary import DictionarySnapshot, DictionaryStore
from .errors import InvalidAddress, Ip2NameError, LoadError
from .resolver import resolve

__all__ = [
    "DictionarySnapshot",
    "DictionaryStore",
    "InvalidAddress",
    "Ip2NameError",
    "LoadError",
    "resolve",
]
