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

"""ddnsup updater for the Cloudflare v4 API"""

from typing import Dict, Optional

from ddnsup.configuration import Config
from ddnsup.util import ZoneSplitter
from .updater import IPAddress, Updater

#: TTL of 1 means "automatic" to Cloudflare
DEFAULT_TTL = 1


class CloudflareUpdater(Updater):
    """ddnsup updater for the Cloudflare v4 API

    With ``login=token``, ``password`` is an API token sent as a bearer
    token. Otherwise ``login`` is the account email and ``password`` the
    global API key.

    The zone for each host is ``zone`` if set, or found with the public
    suffix list otherwise. Records that do not exist yet are created.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'cloudflare'

    def __init__(self, config: Config):
        super().__init__(config)
        login = self._require('login', "account email or 'token'")
        password = self._require('password', 'API token or global API key')
        if login == 'token':
            self.auth_headers = {'Authorization': f"Bearer {password}"}
        else:
            self.auth_headers = {'X-Auth-Email': login,
                                 'X-Auth-Key': password}
        self.endpoint = self._server_url('api.cloudflare.com/client/v4')
        self.ttl = config.ttl if config.ttl is not None else DEFAULT_TTL
        self._zone_splitter = ZoneSplitter(config.zone)

    def _api_request(self, method: str, api: str, hostname: str,
                     params: Optional[Dict[str, str]] = None,
                     data: Optional[dict] = None) -> dict:
        """Issue a Cloudflare API request and check the ``success`` flag in
        the response

        :param method: HTTP method, ``'GET'``, ``'PUT'``, or ``'POST'``
        :param api: Specific API to access, e.g. ``'/zones'``
        :param hostname: Host being updated, for messages
        :param params: URL parameters
        :param data: A JSON-serializable dict to become the request body

        :return: The decoded JSON response
        :raises UpdateError: if the request failed or was not successful
        """
        r = self._request(method, self.endpoint + api, hostname,
                          headers=self.auth_headers, params=params, json=data)
        try:
            obj = r.json()
        except ValueError:
            error = self._error(f"could not parse JSON response from {api}", r)
            self.log.error("%s", error)
            raise error from None
        if not isinstance(obj, dict) or not obj.get('success', False):
            error = self._error(f"{method} {api} was not successful", r)
            self.log.error("%s", error)
            raise error
        return obj

    def _first_id(self, obj: dict, api: str) -> Optional[str]:
        """Get the ID of the first item in a list response, or ``None`` if
        the list is empty"""
        try:
            results = obj['result']
            if not results:
                return None
            return results[0]['id']
        except (KeyError, TypeError, IndexError):
            error = self._error(f"unknown response structure from {api}")
            self.log.error("%s", error)
            raise error from None

    def _get_zone_id(self, zone: str, hostname: str) -> str:
        self.log.debug("Getting zone ID for zone %s", zone)
        obj = self._api_request('GET', '/zones', hostname,
                                params={'name': zone})
        zone_id = self._first_id(obj, '/zones')
        if zone_id is None:
            error = self._error(f"zone {zone} not found")
            self.log.error("%s", error)
            raise error
        self.log.debug("Zone ID for %s is %s", zone, zone_id)
        return zone_id

    def _get_record_id(self, zone_id: str, hostname: str,
                       rec_type: str) -> Optional[str]:
        self.log.debug("Fetching %s record for %s", rec_type, hostname)
        api = f'/zones/{zone_id}/dns_records'
        obj = self._api_request('GET', api, hostname,
                                params={'type': rec_type, 'name': hostname})
        return self._first_id(obj, api)

    def update_record(self, hostname: str, ip: IPAddress):
        try:
            _, zone = self._zone_splitter.split(hostname)
        except ValueError as e:
            error = self._error(str(e))
            self.log.error("%s", error)
            raise error from None
        rec_type = 'AAAA' if ip.version == 6 else 'A'

        zone_id = self._get_zone_id(zone, hostname)
        record_id = self._get_record_id(zone_id, hostname, rec_type)

        data = {
            'type': rec_type,
            'name': hostname,
            'content': ip.compressed,
            'ttl': self.ttl,
        }
        if record_id is None:
            self.log.info("Creating %s record for %s with %s",
                          rec_type, hostname, ip.compressed)
            self._api_request('POST', f'/zones/{zone_id}/dns_records',
                              hostname, data=data)
        else:
            self.log.info("Updating %s record for %s to %s",
                          rec_type, hostname, ip.compressed)
            self._api_request('PUT',
                              f'/zones/{zone_id}/dns_records/{record_id}',
                              hostname, data=data)
        self.log.info("%s record for %s set to %s",
                      rec_type, hostname, ip.compressed)
