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

"""ddnsup updater for freedns.afraid.org"""

from ddnsup.configuration import Config
from .updater import IPAddress, Updater


class FreeDNSUpdater(Updater):
    """ddnsup updater for freedns.afraid.org, using the per-record "dynamic
    update" URLs

    The random token from a record's update URL (the part after
    ``update.php?``) goes in ``password``. ``server`` defaults to
    ``https://freedns.afraid.org/dynamic``.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'freedns'

    def __init__(self, config: Config):
        super().__init__(config)
        self.token = self._require('password', 'update token')
        self.endpoint = self._server_url(
            'https://freedns.afraid.org/dynamic') + '/update.php'

    def update_record(self, hostname: str, ip: IPAddress):
        self.log.debug("Updating IP address for %s to %s",
                       hostname, ip.compressed)
        # The token is the whole query string, not a key=value pair
        url = f"{self.endpoint}?{self.token}"
        response = self._request('GET', url, hostname,
                                 params={'address': ip.compressed})

        # This API seems to always return plain text. Errors are in the form
        # "ERROR: message" and successes in the form
        # "Updated <x> host(s) <fqdn> to <ip> in <y> seconds"
        text = response.text
        if 'Updated' in text or 'has not changed' in text:
            self.log.info("Updated address for %s to %s",
                          hostname, ip.compressed)
            return
        if 'ERROR' in text:
            error = self._error(f"error updating '{hostname}'", response)
        else:
            error = self._error(f"unexpected response when updating "
                                f"'{hostname}'", response)
        self.log.error("%s", error)
        raise error
