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

"""ddnsup source that checks the IP address using a what-is-my-ip-style
website"""

import time
from typing import List

import requests

from ddnsup.configuration import (Config, DEFAULT_TIMEOUT, USER_AGENT,
                                  split_hosts)
from ddnsup.exceptions import SourceError
from ddnsup.util import RequestsFamilyRestriction
from .source import Source

#: Services tried, in order, when no ``web`` option is configured
DEFAULT_URLS = (
    'http://checkip.amazonaws.com',
    'http://icanhazip.com',
    'http://ifconfig.me/ip',
)

#: Longest response body read, in bytes. An address needs far less.
MAX_RESPONSE_LENGTH = 1024


class WebSource(Source):
    """ddnsup source that checks the IP address using a what-is-my-ip-style
    website. The site must respond with the bare address as its body.

    :param url: URL to request the address from
    :param timeout: Maximum number of seconds to wait for the server
    :param family: Address family to connect with, if restricted
    """

    def __init__(self, url: str, timeout: float = DEFAULT_TIMEOUT,
                 family=None):
        super().__init__(f'web:{url}', timeout, family)
        self.url = url

    @classmethod
    def from_config(cls, config: Config) -> List[Source]:
        # "web=" may list several URLs, which become separate sources so each
        # gets its own timeout and its own entry in the failure list
        if config.web:
            urls = split_hosts(config.web)
        else:
            urls = DEFAULT_URLS
        timeout = config.timeout if config.timeout is not None \
            else DEFAULT_TIMEOUT
        return [cls(url, timeout, config.family) for url in urls]

    def check(self, timeout: float) -> str:
        self.log.debug("Requesting IP address from %s", self.url)
        start = time.monotonic()
        with RequestsFamilyRestriction(self.family):
            try:
                r = requests.get(self.url, timeout=timeout, stream=True,
                                 headers={'User-Agent': USER_AGENT})
            except requests.exceptions.RequestException as e:
                self.log.info("Could not get IP address from %s: %s",
                              self.url, e)
                raise SourceError(f"could not connect: {e}") from e

        try:
            try:
                r.raise_for_status()
            except requests.exceptions.HTTPError as e:
                self.log.info("Received HTTP %d from %s",
                              r.status_code, self.url)
                raise SourceError(f"HTTP {r.status_code}") from e
            return self._read_body(r, start, timeout)
        finally:
            r.close()

    def _read_body(self, r: requests.Response, start: float,
                   timeout: float) -> str:
        """Read the response body, giving up once ``timeout`` seconds have
        passed since ``start``. The requests timeout only bounds each socket
        read."""
        body = b''
        try:
            # Byte at a time so the deadline is checked between reads
            for chunk in r.iter_content(chunk_size=1):
                body += chunk
                if time.monotonic() - start > timeout:
                    self.log.info("%s did not finish responding within "
                                  "%.1f seconds", self.url, timeout)
                    raise SourceError("deadline exceeded")
                if len(body) >= MAX_RESPONSE_LENGTH:
                    break
        except requests.exceptions.RequestException as e:
            self.log.info("Could not read response from %s: %s",
                          self.url, e)
            raise SourceError(f"could not read response: {e}") from e
        return body.decode(r.encoding or 'utf-8', errors='replace')
