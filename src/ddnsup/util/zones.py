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

"""Tools for splitting a domain into subdomain part and zone part"""

import threading
from typing import Tuple, Optional

import tldextract


class ZoneSplitter:
    """A utility to split domains into subdomain part and zone part, using an
    explicitly configured zone if there is one or the `Public Suffix List`_
    otherwise.

    .. _Public Suffix List: https://publicsuffix.org/

    The suffix list is only loaded the first time it is needed, so updaters
    whose hosts all fall under an explicit zone never fetch it.

    :param zone: The zone configured for the updater, if any
    """

    def __init__(self, zone: Optional[str] = None):
        self.zone: Optional[str] = zone.strip('.').lower() if zone else None
        self._extract_func: Optional[tldextract.TLDExtract] = None
        self._lock = threading.Lock()

    def _extract(self, domain: str) -> Tuple[str, str, str]:
        with self._lock:
            if self._extract_func is None:
                self._extract_func = tldextract.TLDExtract(
                    include_psl_private_domains=True,
                )
        result = self._extract_func(domain)
        return (result.subdomain, result.domain, result.suffix)

    def split(self, domain: str) -> Tuple[str, str]:
        """Split a domain name into subdomain part and zone part

        :param domain: The FQDN to split
        :return: A tuple with the two parts. The subdomain part may be empty if
                 the FQDN was the root domain of its zone.
        :raises ValueError: if the FQDN is not inside the configured zone
        """
        domain = domain.strip('.').lower()
        if self.zone is not None:
            if domain == self.zone:
                return ('', self.zone)
            if domain.endswith('.' + self.zone):
                return (domain[:-len(self.zone) - 1], self.zone)
            raise ValueError(f"{domain} is not in zone {self.zone}")

        subdomain, domain, suffix = self._extract(domain)
        zone = '.'.join(part for part in (domain, suffix) if part != '')
        return (subdomain, zone)
