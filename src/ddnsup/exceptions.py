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

"""All ddnsup exceptions"""

from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import quote, quote_plus


#: Maximum number of characters of a response body kept in an
#: :exc:`UpdateError`
MAX_BODY_LENGTH = 200


def _encoded_forms(secret: str) -> Set[str]:
    """Every form a secret can take once requests has put it in a URL"""
    return {
        secret,
        quote_plus(secret),
        quote(secret, safe=''),
        quote(secret, safe="!#$%&'()*+,/:;=?@[]~"),
    }


def redact(text: str, secrets: Iterable[Optional[str]]) -> str:
    """Replace every occurrence of each (non-empty) secret in ``text`` with
    ``***``, including its URL-encoded forms"""
    forms: Set[str] = set()
    for secret in secrets:
        if secret:
            forms |= _encoded_forms(secret)
    # Longest first, so a form that contains another is replaced whole
    for form in sorted(forms, key=len, reverse=True):
        text = text.replace(form, '***')
    return text


class DdnsupException(Exception):
    """Base class for all ddnsup exceptions"""


class ConfigError(DdnsupException):
    """Raised when the configuration is malformed, or when a required option
    for the selected provider is missing or invalid"""


class SourceError(DdnsupException):
    """IP address sources raise when they could not produce an address. The
    resolver then moves on to the next source."""


class ResolveError(DdnsupException):
    """Raised when no IP address source produced a usable address

    :param failures: A list of ``(source_name, reason)`` tuples, one for every
                     source that was configured
    """

    def __init__(self, failures: List[Tuple[str, str]]):
        #: Every source and the reason it failed, in the order they were tried
        self.failures: List[Tuple[str, str]] = list(failures)
        if self.failures:
            detail = "; ".join(f"{name}: {reason}"
                               for name, reason in self.failures)
        else:
            detail = "no sources configured"
        super().__init__(f"All IP address sources failed ({detail})")


class UpdateError(DdnsupException):
    """Raised by updaters when the provider rejected an update or it could not
    be delivered.

    The message and response body have all ``secrets`` removed, and the body
    is truncated, before they are stored on the exception.

    :param provider: Name of the provider that failed
    :param message: Human-readable description of the failure
    :param status: HTTP status code, if there was a response
    :param body: Response body, if there was one
    :param secrets: Credentials to scrub from ``message`` and ``body``
    """

    def __init__(self, provider: str, message: str,
                 status: Optional[int] = None, body: Optional[str] = None,
                 secrets: Iterable[Optional[str]] = ()):
        secrets = list(secrets)
        #: Name of the provider that failed
        self.provider: str = provider
        #: HTTP status code, or ``None`` for transport errors
        self.status: Optional[int] = status
        #: Scrubbed and truncated response body, or ``None``
        self.body: Optional[str] = None
        if body is not None:
            body = redact(body.strip(), secrets)
            if len(body) > MAX_BODY_LENGTH:
                body = body[:MAX_BODY_LENGTH] + '...'
            self.body = body

        text = f"{provider}: {redact(message, secrets)}"
        if status is not None:
            text += f" (HTTP {status})"
        if self.body:
            text += f": {self.body}"
        super().__init__(text)


class StoreError(DdnsupException):
    """Raised when the state file could not be written"""
