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

"""IP resolver: finds the current public address by trying a list of
sources in order"""

import ipaddress
import logging
import threading
import time
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple, \
    Union

from . import sources
from .sources import Source
from .configuration import Config, DEFAULT_DEADLINE
from .exceptions import ConfigError, ResolveError, SourceError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

#: Source name recorded for manually specified addresses
MANUAL = 'manual'


class ResolvedIP(NamedTuple):
    """An address produced by the resolver"""

    #: The address itself
    address: IPAddress
    #: Name of the source that produced it, or ``'manual'``
    source: str
    #: Wall clock time the address was obtained (Unix time)
    captured_at: float


def parse_ip(text: str) -> IPAddress:
    """Parse a manually specified IP address

    :raises ConfigError: if it is not a valid IPv4 or IPv6 address
    """
    try:
        return ipaddress.ip_address(text.strip())
    except ValueError:
        raise ConfigError(f"'{text}' is an invalid IP address") from None


class IPResolver:
    """Produce the current IP address for a run

    :param sources: The sources to try, in order
    :param deadline: Maximum total seconds to spend across all sources
    :param clock: Monotonic clock used to enforce the deadline
    """

    def __init__(self, sources: Sequence[Source],
                 deadline: float = DEFAULT_DEADLINE,
                 clock: Callable[[], float] = time.monotonic):
        self.log = logging.getLogger('ddnsup.resolver')
        self.sources: List[Source] = list(sources)
        self.deadline = deadline
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config) -> 'IPResolver':
        """Build a resolver from the ``use`` option (a comma-separated list
        of source kinds, ``web`` by default) and the options of each kind

        :raises ConfigError: if a source kind is unknown or misconfigured
        """
        result: List[Source] = []
        for kind in (config.use or 'web').replace(',', ' ').split():
            kind = kind.lower()
            if kind == 'ip':
                # "use=ip" means the address comes from the "ip" option,
                # which the resolver already honors as an override
                if not config.ip:
                    raise ConfigError("'use=ip' requires the 'ip' option")
                continue
            try:
                source_class = sources.sources[kind]
            except KeyError:
                raise ConfigError(f"Unknown IP detection method '{kind}' "
                                  "(expected web, if, cmd, dns, or ip)"
                                  ) from None
            result.extend(source_class.from_config(config))

        deadline = config.deadline if config.deadline is not None \
            else DEFAULT_DEADLINE
        return cls(result, deadline)

    def _check_bounded(self, source: Source, timeout: float) -> str:
        """Run one source check on a daemon thread and wait at most
        ``timeout`` seconds for it. A check still running after that is
        abandoned; name lookups and slow response bodies cannot always be cut
        short from inside the source.

        :raises SourceError: if the check failed or did not finish in time
        """
        result: List[str] = []
        errors: List[BaseException] = []

        def check():
            try:
                result.append(source.check(timeout))
            except BaseException as e:
                errors.append(e)

        thread = threading.Thread(target=check, daemon=True,
                                  name=f"ddnsup-source-{source.name}")
        thread.start()
        thread.join(timeout)
        if thread.is_alive():
            self.log.info("Source %s did not answer within %.1f seconds",
                          source.name, timeout)
            raise SourceError(f"no answer within {timeout:.1f}s")
        if errors:
            raise errors[0]
        return result[0]

    def resolve(self, override: Optional[Union[str, IPAddress]] = None
                ) -> ResolvedIP:
        """Determine the current IP address.

        If ``override`` is given it is returned right away without probing
        any source. Otherwise each source is tried in order and the first
        valid address wins. Every check's timeout is cut short as needed so
        the whole call finishes within :attr:`deadline`.

        :param override: A manually specified address
        :raises ConfigError: if ``override`` is not a valid address
        :raises ResolveError: if every source failed
        """
        if override is not None:
            if isinstance(override, str):
                address = parse_ip(override)
            else:
                address = override
            self.log.info("Using manually specified address %s",
                          address.compressed)
            return ResolvedIP(address, MANUAL, time.time())

        failures: List[Tuple[str, str]] = []
        start = self._clock()
        for source in self.sources:
            remaining = self.deadline - (self._clock() - start)
            if remaining <= 0:
                self.log.debug("Deadline exceeded before trying %s",
                               source.name)
                failures.append((source.name, "deadline exceeded"))
                continue

            timeout = min(source.timeout, remaining)
            try:
                text = self._check_bounded(source, timeout)
            except SourceError as e:
                self.log.debug("Source %s failed: %s", source.name, e)
                failures.append((source.name, str(e)))
                continue

            text = text.strip() if text is not None else ''
            if not text:
                self.log.debug("Source %s returned an empty response",
                               source.name)
                failures.append((source.name, "empty response"))
                continue
            try:
                address = ipaddress.ip_address(text)
            except ValueError:
                self.log.debug('Source %s did not return a valid IP address: '
                               '"%s"', source.name, text)
                failures.append((source.name,
                                 f"invalid address '{text[:50]}'"))
                continue

            self.log.info("Current address is %s (from %s)",
                          address.compressed, source.name)
            return ResolvedIP(address, source.name, time.time())

        self.log.error("Could not determine the current IP address from any "
                       "source")
        raise ResolveError(failures)
