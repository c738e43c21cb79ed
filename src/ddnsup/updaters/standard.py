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

"""ddnsup updaters for providers using the de facto standard /nic/update API
(dyndns2 and No-IP)"""

from typing import Dict

from ddnsup.configuration import Config
from .updater import IPAddress, Updater

#: Response codes shared by providers speaking the dyndns2 protocol
RESPONSE_CODES: Dict[str, str] = {
    'badauth': "Bad authorization (username or password)",
    'notfqdn': "Not a fully-qualified domain name",
    'nohost': "Hostname doesn't exist",
    '!yours': "Hostname exists but not under this account",
    'abuse': "Hostname blocked for abuse",
    '!donator': "Feature requires donator account",
    '!active': "Hostname not activated",
    'dnserr': "DNS error on server",
    '911': "Server error, try again later",
    'badagent': "Client disabled by the provider",
}


class StandardUpdater(Updater):
    """ddnsup updater for providers using the de facto standard /nic/update
    API, originally from DynDNS (the ``dyndns2`` protocol)

    Requires ``login`` and ``password``. ``server`` defaults to
    ``https://members.dyndns.org``.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'dyndns2'
    DEFAULT_SERVER = 'https://members.dyndns.org'

    def __init__(self, config: Config):
        super().__init__(config)
        self.auth = (self._require('login', 'username'),
                     self._require('password'))
        self.endpoint = self._server_url(self.DEFAULT_SERVER) + '/nic/update'

    def update_record(self, hostname: str, ip: IPAddress):
        self.log.info("Updating '%s' to %s", hostname, ip.compressed)
        r = self._request('GET', self.endpoint, hostname, auth=self.auth,
                          params={'hostname': hostname,
                                  'myip': ip.compressed})

        response = r.text.strip().split()
        if not response:
            error = self._error(f"empty response updating '{hostname}'", r)
            self.log.error("%s", error)
            raise error
        if response[0] == 'good':
            self.log.info("Hostname '%s' updated to %s",
                          hostname, ip.compressed)
            return
        if response[0] == 'nochg':
            self.log.info("Hostname '%s' already set to %s",
                          hostname, ip.compressed)
            return

        try:
            message = RESPONSE_CODES[response[0]]
        except KeyError:
            message = "Unknown response"
        error = self._error(f"{message} (updating '{hostname}')", r)
        self.log.error("%s", error)
        raise error


class NoIPUpdater(StandardUpdater):
    """ddnsup updater for No-IP (noip.com), which speaks the same protocol
    as dyndns2

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'noip'
    DEFAULT_SERVER = 'https://dynupdate.no-ip.com'
