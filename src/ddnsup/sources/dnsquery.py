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

"""ddnsup source that asks a DNS server which address the query came from"""

import ipaddress
import socket
from typing import List

import dns.exception     # type: ignore
import dns.resolver      # type: ignore

from ddnsup.configuration import Config, DEFAULT_TIMEOUT
from ddnsup.exceptions import SourceError
from .source import Source

DEFAULT_SERVER = 'resolver1.opendns.com'
DEFAULT_NAME = 'myip.opendns.com'


class DNSSource(Source):
    """ddnsup source that queries a DNS server which answers a special name
    with the address of whoever asked (OpenDNS's ``myip.opendns.com`` by
    default). This avoids depending on any HTTP service.

    :param server: Nameserver to ask, as a hostname or IP address
    :param name: Name to look up
    :param timeout: Maximum number of seconds for the lookup
    :param family: ``'ipv6'`` to look up an AAAA record; otherwise an A
                   record is requested
    """

    def __init__(self, server: str = DEFAULT_SERVER,
                 name: str = DEFAULT_NAME,
                 timeout: float = DEFAULT_TIMEOUT, family=None):
        super().__init__(f'dns:{server}', timeout, family)
        self.server = server
        self.query_name = name

    @classmethod
    def from_config(cls, config: Config) -> List[Source]:
        timeout = config.timeout if config.timeout is not None \
            else DEFAULT_TIMEOUT
        return [cls(config.dns_server or DEFAULT_SERVER,
                    config.dns_name or DEFAULT_NAME,
                    timeout, config.family)]

    def _nameserver_addrs(self) -> List[str]:
        """Get the address(es) of the configured nameserver"""
        try:
            return [ipaddress.ip_address(self.server).compressed]
        except ValueError:
            pass
        self.log.debug("Looking up address of nameserver %s", self.server)
        if self.family == 'ipv6':
            family = socket.AF_INET6
        else:
            family = socket.AF_INET
        ns_results = socket.getaddrinfo(self.server, 53, family=family,
                                        type=socket.SOCK_DGRAM)
        return [ai[4][0] for ai in ns_results]

    def check(self, timeout: float) -> str:
        rdtype = 'AAAA' if self.family == 'ipv6' else 'A'
        try:
            ns_list = self._nameserver_addrs()
            self.log.debug("Looking up %s record for '%s' on %s", rdtype,
                           self.query_name, str(ns_list))
            resolver = dns.resolver.Resolver(configure=False)
            resolver.nameservers = ns_list
            answer = resolver.resolve(self.query_name, rdtype,
                                      lifetime=timeout)
        except (OSError, dns.exception.DNSException) as e:
            self.log.info("DNS lookup of %s on %s failed: %s",
                          self.query_name, self.server, e)
            raise SourceError(f"DNS lookup failed: {e}") from e

        for rec in answer:
            return rec.address
        raise SourceError(f"no {rdtype} record for {self.query_name}")
