"""Monkey patch Requests/Urllib3 to allow restricting the address family"""

import socket
import threading

from urllib3.util import connection

_allowed_gai_family_orig = connection.allowed_gai_family

_allowed_family_mutex = threading.RLock()
_allowed_family = None


def _allowed_gai_family():
    with _allowed_family_mutex:
        if _allowed_family is None:
            return _allowed_gai_family_orig()
        else:
            return _allowed_family


connection.allowed_gai_family = _allowed_gai_family


class RequestsFamilyRestriction:
    """Context manager that causes Urllib3/Requests to only use the specified
    address family. Holds a lock for its duration, so only one restricted
    request runs at a time.

    :param family: The address family to use, either a :mod:`socket`
                   constant or ``'ipv4'``/``'ipv6'``. ``None`` means no
                   restriction (the context manager does nothing).
    """

    def __init__(self, family):
        if family == 'ipv4':
            family = socket.AF_INET
        elif family == 'ipv6':
            family = socket.AF_INET6
        self.family = family

    def __enter__(self):
        global _allowed_family
        if self.family is None:
            return self
        _allowed_family_mutex.acquire()
        _allowed_family = self.family
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        global _allowed_family
        if self.family is None:
            return
        _allowed_family = None
        _allowed_family_mutex.release()
