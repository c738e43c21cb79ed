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

"""ddnsup updater for Hurricane Electric's free DNS service (dns.he.net)"""

from ddnsup.configuration import Config
from .updater import IPAddress, Updater


class HEUpdater(Updater):
    """ddnsup updater for Hurricane Electric's free DNS service

    Each dynamic record at dns.he.net has its own key, which goes in
    ``password``. ``server`` is the full update URL and defaults to
    ``https://dyn.dns.he.net/nic/update``.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'he'

    def __init__(self, config: Config):
        super().__init__(config)
        self.password = self._require('password', 'dynamic DNS key')
        self.endpoint = self._server_url('https://dyn.dns.he.net/nic/update')

    def update_record(self, hostname: str, ip: IPAddress):
        self.log.info("Updating '%s' to %s", hostname, ip.compressed)
        r = self._request('GET', self.endpoint, hostname,
                          params={'hostname': hostname,
                                  'password': self.password,
                                  'myip': ip.compressed})

        response = r.text.strip().split()
        if response and response[0] == 'good':
            self.log.info("Hostname '%s' updated to %s",
                          hostname, ip.compressed)
            return
        if response and response[0] == 'nochg':
            self.log.info("Hostname '%s' already set to %s",
                          hostname, ip.compressed)
            return

        if response and response[0] == 'badauth':
            message = "Bad authentication, check the key"
        elif response and response[0] == 'notfqdn':
            message = "Not a fully-qualified domain name"
        else:
            message = "Unexpected response"
        error = self._error(f"{message} (updating '{hostname}')", r)
        self.log.error("%s", error)
        raise error
