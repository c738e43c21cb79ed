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

"""ddnsup source that reads the address assigned to a local interface"""

from typing import List

from ddnsup.configuration import Config, parse_bool
from ddnsup.exceptions import ConfigError, SourceError
from ddnsup.util import get_iface_addrs
from .source import Source


class IFaceSource(Source):
    """ddnsup source that reads the address assigned to a local network
    interface. Useful when the host is directly on the public internet (e.g.
    a PPP link).

    IPv4 addresses are preferred over IPv6 unless ``family`` is ``ipv6``.

    :param iface: Name of the interface
    :param family: Address family to report, if restricted
    :param allow_private: Whether private addresses are eligible.
                          Non-private addresses still take precedence, and
                          link-local addresses are always ignored.
    """

    def __init__(self, iface: str, family=None, allow_private=False):
        super().__init__(f'if:{iface}', family=family)
        self.iface = iface
        self.allow_private = allow_private

    @classmethod
    def from_config(cls, config: Config) -> List[Source]:
        if not config.if_name:
            raise ConfigError("'if' config option is required to detect the "
                              "IP address from an interface")
        allow_private = parse_bool(
            'allow_private', config.option('allow_private', 'no'))
        return [cls(config.if_name, config.family, allow_private)]

    def check(self, timeout: float) -> str:
        # Interface lookups are local and return immediately; the timeout
        # does not apply
        try:
            ipv4s, ipv6s = get_iface_addrs(self.iface,
                                           omit_private=not self.allow_private)
        except ValueError:
            self.log.info("Interface %s does not exist", self.iface)
            raise SourceError(f"interface {self.iface} does not exist"
                              ) from None

        if self.family == 'ipv4':
            candidates = list(ipv4s)
        elif self.family == 'ipv6':
            candidates = list(ipv6s)
        else:
            candidates = list(ipv4s) + list(ipv6s)

        if not candidates:
            self.log.info("Interface %s has no usable address assigned",
                          self.iface)
            raise SourceError(f"interface {self.iface} has no usable address")
        return candidates[0].compressed
