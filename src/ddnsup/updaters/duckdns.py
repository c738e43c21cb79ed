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

"""ddnsup updater for Duck DNS (duckdns.org)"""

from ddnsup.configuration import Config
from .updater import IPAddress, Updater

SUFFIX = '.duckdns.org'


class DuckDNSUpdater(Updater):
    """ddnsup updater for Duck DNS (duckdns.org)

    The account token goes in ``password``. Hosts may be given either as the
    bare subdomain or with ``.duckdns.org`` appended.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'duckdns'

    def __init__(self, config: Config):
        super().__init__(config)
        self.token = self._require('password', 'Duck DNS token')
        self.endpoint = self._server_url('https://www.duckdns.org') + \
            '/update'

    def update_record(self, hostname: str, ip: IPAddress):
        domain = hostname
        if domain.endswith(SUFFIX):
            domain = domain[:-len(SUFFIX)]
        addr_param = 'ipv6' if ip.version == 6 else 'ip'

        self.log.info("Updating '%s' to %s", domain, ip.compressed)
        response = self._request('GET', self.endpoint, hostname,
                                 params={
                                     'domains': domain,
                                     'token': self.token,
                                     addr_param: ip.compressed,
                                 })

        text = response.text.strip()
        if text.startswith('OK'):
            self.log.info("Updated address for '%s' to %s",
                          domain, ip.compressed)
        elif text.startswith('KO'):
            error = self._error(f"update of '{domain}' refused (check the "
                                "token and domain)", response)
            self.log.error("%s", error)
            raise error
        else:
            error = self._error(f"unexpected response when updating "
                                f"'{domain}'", response)
            self.log.error("%s", error)
            raise error
