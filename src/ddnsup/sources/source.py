#  ddnsup - Dynamic DNS record updater
#  Copyright (C) 2023 Dominick C. Pastore
#
#  This program is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  This program is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Base class for ddnsup IP address sources"""

import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import List

from ddnsup.configuration import Config, DEFAULT_TIMEOUT
from ddnsup.exceptions import ConfigError

_FAMILIES = (None, 'ipv4', 'ipv6')


class Source:
    """Base class for all IP address sources. A source knows one way of
    finding the current address (asking a website, reading an interface,
    running a command, ...). The :class:`~ddnsup.resolver.IPResolver` tries
    sources in order until one succeeds.

    :param name: Name of the source, used in logs and in
                 :attr:`~ddnsup.resolver.ResolvedIP.source`
    :param timeout: Maximum number of seconds a single check may take
    :param family: ``None`` for any address family, or ``'ipv4'`` or
                   ``'ipv6'`` to ask for that family only (where the source
                   supports it)

    :raises ConfigError: if ``family`` is invalid
    """

    def __init__(self, name: str, timeout: float = DEFAULT_TIMEOUT,
                 family=None):
        #: Source name
        self.name: str = name

        #: Logger (see standard :mod:`logging` module)
        self.log = logging.getLogger(f'ddnsup.source.{self.name}')

        #: Timeout for one check, in seconds
        self.timeout: float = timeout

        if family not in _FAMILIES:
            self.log.critical("'family' must be 'ipv4' or 'ipv6'")
            raise ConfigError(f"Invalid address family '{family}' for source "
                              f"{self.name} (must be 'ipv4' or 'ipv6')")
        #: Requested address family, or ``None``
        self.family = family

    @classmethod
    def from_config(cls, config: Config) -> List['Source']:
        """Create the source(s) of this kind described by the config

        **Must be implemented by subclasses.**

        :raises ConfigError: if required options are missing or invalid
        """
        raise NotImplementedError

    @abstractmethod
    def check(self, timeout: float) -> str:
        """Look up the current address once and return it as text. The
        resolver strips and parses the result, so it may contain surrounding
        whitespace.

        **Must be implemented by subclasses.**

        :param timeout: Seconds this check may take. May be shorter than
                        :attr:`timeout` when the resolver's overall deadline
                        is close.
        :raises SourceError: if the address could not be obtained
        """
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"
