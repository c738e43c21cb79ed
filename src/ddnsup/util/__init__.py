"""Helper classes and functions for ddnsup"""

from .getifaceaddrs import get_iface_addrs
from .zones import ZoneSplitter
from .restrictfamily import RequestsFamilyRestriction

__all__ = [
    "get_iface_addrs",
    "ZoneSplitter",
    "RequestsFamilyRestriction",
]
