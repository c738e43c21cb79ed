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

"""ddnsup updater for Gandi LiveDNS v5 API"""

from ddnsup.configuration import Config
from ddnsup.util import ZoneSplitter
from .updater import IPAddress, Updater

DEFAULT_TTL = 300


class GandiUpdater(Updater):
    """ddnsup updater for Gandi LiveDNS v5 API

    The API key goes in ``password``. Each host is split into subdomain and
    zone using ``zone`` if it is set, or the public suffix list otherwise.
    ``server`` is normally not needed, but can point at Gandi's sandbox API.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'gandi'

    def __init__(self, config: Config):
        super().__init__(config)
        self.api_key = self._require('password', 'API key')
        self.endpoint = self._server_url('https://api.gandi.net') + \
            '/v5/livedns'
        self.ttl = config.ttl if config.ttl is not None else DEFAULT_TTL
        self._zone_splitter = ZoneSplitter(config.zone)

    def update_record(self, hostname: str, ip: IPAddress):
        try:
            subdomain, zone = self._zone_splitter.split(hostname)
        except ValueError as e:
            error = self._error(str(e))
            self.log.error("%s", error)
            raise error from None
        if subdomain == '':
            subdomain = '@'
        rec_type = 'AAAA' if ip.version == 6 else 'A'

        api = f'/domains/{zone}/records/{subdomain}/{rec_type}'
        data = {'rrset_values': [ip.compressed], 'rrset_ttl': self.ttl}
        self.log.info("Updating '%s' %s record to %s",
                      hostname, rec_type, ip.compressed)
        self._request('PUT', self.endpoint + api, hostname,
                      headers={'Authorization': "Apikey " + self.api_key},
                      json=data)
        self.log.info("Updated '%s' to %s", hostname, ip.compressed)
