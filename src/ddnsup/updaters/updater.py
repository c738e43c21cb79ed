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

"""Base class for ddnsup updaters"""

import ipaddress
import logging
# Note: We are not using abstractmethod the way it is intended. We are using it
# purely to get Sphinx to mark methods as abstract. Thus, we intentionally do
# NOT use ABCMeta or inherit from ABC.
from abc import abstractmethod
from typing import List, Optional, Union

import requests

from ddnsup.configuration import Config, USER_AGENT
from ddnsup.exceptions import ConfigError, UpdateError

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

#: Timeout for provider HTTP requests, in seconds
REQUEST_TIMEOUT = 30


class Updater:
    """Base class for ddnsup updaters. An updater knows how to set one DNS
    record at one provider to a given address. It does not decide *whether*
    an update is needed; that is the orchestrator's job.

    Subclasses set :attr:`PROVIDER`, read the options they need from the
    config in their constructor (raising :exc:`~ddnsup.ConfigError` after a
    ``log.critical`` if one is missing), and implement
    :meth:`update_record`.

    Updaters may be shared by several worker threads, so
    :meth:`update_record` must not modify the updater's state.

    :param config: The :class:`~ddnsup.Config` for this provider
    """

    #: Stable provider identifier, used in logs and as the state file key
    PROVIDER = 'updater'

    def __init__(self, config: Config):
        #: The config this updater was created from
        self.config: Config = config

        #: Logger (see standard :mod:`logging` module)
        self.log: logging.Logger = logging.getLogger(
            f'ddnsup.updater.{self.PROVIDER}'
        )

    def provider_name(self) -> str:
        """Return the stable identifier for this provider"""
        return self.PROVIDER

    @property
    def secrets(self) -> List[Optional[str]]:
        """Credentials that must never appear in error or log messages.
        Subclasses holding other secrets extend this."""
        return [self.config.password]

    def _require(self, option: str, description: Optional[str] = None
                 ) -> str:
        """Fetch a required config option

        :param option: Name of the :class:`~ddnsup.Config` field
        :param description: What the option holds for this provider, for the
                            error message
        :raises ConfigError: if the option is not set
        """
        value = getattr(self.config, option)
        if not value:
            what = f" ({description})" if description else ""
            self.log.critical("'%s' config option is required%s",
                              option, what)
            raise ConfigError(f"{self.PROVIDER} updater requires '{option}' "
                              f"config option{what}")
        return value

    def _server_url(self, default: str) -> str:
        """The base URL for the provider: the ``server`` option if set,
        otherwise ``default``. A server given without a scheme gets
        ``https://``, or ``http://`` if ``ssl=no``."""
        server = self.config.server or default
        if '://' not in server:
            scheme = 'http' if self.config.ssl is False else 'https'
            server = f'{scheme}://{server}'
        return server.rstrip('/')

    def _error(self, message: str,
               response: Optional[requests.Response] = None) -> UpdateError:
        """Create an :exc:`~ddnsup.UpdateError` for this provider with all
        secrets scrubbed"""
        if response is None:
            return UpdateError(self.PROVIDER, message, secrets=self.secrets)
        return UpdateError(self.PROVIDER, message,
                           status=response.status_code, body=response.text,
                           secrets=self.secrets)

    def _request(self, method: str, url: str, hostname: str,
                 **kwargs) -> requests.Response:
        """Issue an HTTP request to the provider with ddnsup's User-Agent and
        a timeout. Transport errors and non-2xx responses become
        :exc:`~ddnsup.UpdateError`.

        :param method: HTTP method, e.g. ``'GET'`` or ``'PUT'``
        :param url: URL to access
        :param hostname: Host being updated, for messages
        :param kwargs: Passed through to :func:`requests.request`

        :return: The successful :class:`requests.Response`
        """
        headers = {'User-Agent': USER_AGENT}
        headers.update(kwargs.pop('headers', {}))
        kwargs.setdefault('timeout', REQUEST_TIMEOUT)
        try:
            r = requests.request(method, url, headers=headers, **kwargs)
        except requests.exceptions.RequestException as e:
            error = self._error(f"could not update '{hostname}': {e}")
            self.log.error("%s", error)
            raise error from None

        try:
            r.raise_for_status()
        except requests.exceptions.HTTPError:
            error = self._error(f"server rejected update for '{hostname}'", r)
            self.log.error("%s", error)
            raise error from None
        return r

    def validate_config(self) -> None:
        """Check that the options this updater needs are present and well
        formed. Makes no network requests. Constructors already perform these
        checks, so the default implementation does nothing.

        :raises ConfigError: if the config is not usable with this provider
        """

    @abstractmethod
    def update_record(self, hostname: str, ip: IPAddress) -> None:
        """Set the record for ``hostname`` to ``ip``. The record type (A or
        AAAA) follows ``ip.version``.

        **Must be implemented by subclasses.**

        :param hostname: Fully-qualified name of the record to update
        :param ip: The new address
        :raises UpdateError: if the provider did not accept the update
        """
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.PROVIDER}>"
