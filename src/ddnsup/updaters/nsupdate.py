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

"""ddnsup updater for RFC 2136 dynamic updates signed with TSIG"""

import binascii
import socket

import dns.exception     # type: ignore
import dns.name          # type: ignore
import dns.query         # type: ignore
import dns.rcode         # type: ignore
import dns.tsigkeyring   # type: ignore
import dns.update        # type: ignore

from ddnsup.configuration import Config
from ddnsup.exceptions import ConfigError
from ddnsup.util import ZoneSplitter
from .updater import IPAddress, REQUEST_TIMEOUT, Updater

DEFAULT_TTL = 300
DEFAULT_ALGORITHM = 'hmac-sha256'


class NSUpdateUpdater(Updater):
    """ddnsup updater that sends RFC 2136 dynamic updates directly to the
    primary nameserver, the way BIND's ``nsupdate`` does

    ``login`` is the TSIG key name and ``password`` the base64 TSIG secret.
    ``server`` is the nameserver to send updates to (``localhost`` by
    default). The zone is ``zone`` if set, or found with the public suffix
    list otherwise. The TSIG algorithm can be changed with the
    ``tsig_algorithm`` option.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    PROVIDER = 'nsupdate'

    def __init__(self, config: Config):
        super().__init__(config)
        key_name = self._require('login', 'TSIG key name')
        secret = self._require('password', 'TSIG secret')
        try:
            self.keyring = dns.tsigkeyring.from_text({key_name: secret})
        except (binascii.Error, ValueError, dns.exception.DNSException):
            self.log.critical("'password' is not a valid base64 TSIG secret")
            raise ConfigError(f"{self.PROVIDER} updater requires a base64 "
                              "TSIG secret in 'password'") from None
        self.key_name = key_name
        self.algorithm = config.option('tsig_algorithm', DEFAULT_ALGORITHM)
        self.server = config.server or 'localhost'
        self.ttl = config.ttl if config.ttl is not None else DEFAULT_TTL
        self._zone_splitter = ZoneSplitter(config.zone)

    def _server_addr(self) -> str:
        """Look up the address of the nameserver (dnspython needs an IP)"""
        ns_results = socket.getaddrinfo(self.server, 53,
                                        type=socket.SOCK_STREAM)
        return ns_results[0][4][0]

    def update_record(self, hostname: str, ip: IPAddress):
        try:
            _, zone = self._zone_splitter.split(hostname)
        except ValueError as e:
            error = self._error(str(e))
            self.log.error("%s", error)
            raise error from None
        rec_type = 'AAAA' if ip.version == 6 else 'A'

        update = dns.update.Update(zone, keyring=self.keyring,
                                   keyname=self.key_name,
                                   keyalgorithm=self.algorithm)
        update.replace(dns.name.from_text(hostname), self.ttl, rec_type,
                       ip.compressed)

        self.log.info("Sending %s update for %s to %s via %s",
                      rec_type, hostname, ip.compressed, self.server)
        try:
            response = dns.query.tcp(update, self._server_addr(),
                                     timeout=REQUEST_TIMEOUT)
        except (OSError, dns.exception.DNSException) as e:
            error = self._error(f"could not update '{hostname}' via "
                                f"{self.server}: {e}")
            self.log.error("%s", error)
            raise error from None

        rcode = response.rcode()
        if rcode != dns.rcode.NOERROR:
            error = self._error(f"server refused update for '{hostname}': "
                                f"{dns.rcode.to_text(rcode)}")
            self.log.error("%s", error)
            raise error
        self.log.info("%s record for %s set to %s",
                      rec_type, hostname, ip.compressed)
