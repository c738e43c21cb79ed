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

"""State file manager: remembers the last address published for each
(provider, host) so unchanged addresses are not sent again"""

# State file format:
#
# {
#     "provider": {
#         "host.example.com": {
#             "ip": "203.0.113.9",
#             "last_success": 1700000000,
#             "last_attempt": 1700000000,
#             "status": "good"
#         },
#         ...
#     },
#     ...
# }
#
# "ip" is the last address known to be published (or null if no update has
# succeeded yet), "last_success" and "last_attempt" are Unix timestamps (or
# null), and "status" is a short description of the last attempt.
#
# A missing or malformed entry is treated as if no update had ever been
# attempted for that host.

import ipaddress
import json
import logging
import os
import os.path
import threading
from typing import Dict, NamedTuple, Optional, Union

from .exceptions import StoreError

log = logging.getLogger('ddnsup.statefile')

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


class UpdateRecord(NamedTuple):
    """The persisted state for one (provider, host) key"""

    #: The last address successfully published, if any
    ip: Optional[IPAddress] = None
    #: Unix time of the last successful update
    last_success: Optional[int] = None
    #: Unix time of the last attempt, successful or not
    last_attempt: Optional[int] = None
    #: Status of the last attempt, e.g. ``good`` or ``failed: ...``
    status: Optional[str] = None

    def succeeded(self) -> bool:
        """Whether the last attempt was successful"""
        return self.status is not None and not self.status.startswith('fail')


def _optional_int(entry: dict, key: str) -> Optional[int]:
    value = entry.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' is not an integer")
    return value


def _decode_record(entry) -> UpdateRecord:
    """Convert one JSON entry to an :class:`UpdateRecord`

    :raises ValueError: if the entry is malformed
    """
    if not isinstance(entry, dict):
        raise ValueError("entry is not an object")

    ip = entry.get('ip')
    if ip is not None:
        if not isinstance(ip, str):
            raise ValueError("'ip' is not a string")
        ip = ipaddress.ip_address(ip)

    status = entry.get('status')
    if status is not None and not isinstance(status, str):
        raise ValueError("'status' is not a string")

    return UpdateRecord(ip=ip,
                        last_success=_optional_int(entry, 'last_success'),
                        last_attempt=_optional_int(entry, 'last_attempt'),
                        status=status)


def _encode_record(record: UpdateRecord) -> dict:
    return {
        'ip': record.ip.compressed if record.ip is not None else None,
        'last_success': record.last_success,
        'last_attempt': record.last_attempt,
        'status': record.status,
    }


class StateFile:
    """Manage the state file

    :param path: Path to the state file"""

    def __init__(self, path: str):
        #: Path to the state file
        self.path = path

        #: Serializes rewrites of the file
        self._lock = threading.Lock()

        #: Raw entries. Stores the contents of the state file between writes.
        #: Entries are validated lazily by :meth:`load`, so one bad entry does
        #: not discard the others.
        self._entries: Dict[str, Dict[str, object]] = self._read_statefile()

    def _read_statefile(self) -> Dict[str, Dict[str, object]]:
        """Read the state file in. If it cannot be read or is malformed, log
        and return an empty dict."""
        try:
            with open(self.path, 'r') as f:
                entries = json.load(f)
        except FileNotFoundError:
            log.debug("State file %s does not exist yet", self.path)
            return dict()
        except json.JSONDecodeError as e:
            log.warning("Malformed JSON in state file %s at (%d:%d). Will "
                        "recreate.", self.path, e.lineno, e.colno)
            return dict()
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read state file %s (%s). Will attempt to "
                        "recreate.", self.path, e)
            return dict()

        if not isinstance(entries, dict):
            log.warning("State file %s has unexpected JSON structure. Will "
                        "recreate.", self.path)
            return dict()

        for provider, hosts in list(entries.items()):
            if not isinstance(hosts, dict):
                log.warning("State file %s has unexpected JSON structure for "
                            "provider %s. Will recreate that provider.",
                            self.path, provider)
                entries[provider] = dict()
        return entries

    def _write_statefile(self, entries: Dict[str, Dict[str, object]]):
        """Write out the whole state file durably: write a temporary file,
        flush it to disk, then rename it over the real one. On failure the
        temporary file is removed.

        :raises OSError: if the state file could not be written
        """
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = self.path + '.tmp'
        try:
            with open(tmp_path, 'w') as f:
                json.dump(entries, f, sort_keys=True, indent=4)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.remove(tmp_path)
            except OSError:
                pass
            raise

    def load(self, provider: str, host: str) -> Optional[UpdateRecord]:
        """Get the record for the given provider and host.

        If the file could not be read, there was no entry for the key, or the
        entry was malformed, returns ``None``.

        :param provider: Provider name, as given by the updater
        :param host: The FQDN being updated
        """
        with self._lock:
            try:
                entry = self._entries[provider][host]
            except KeyError:
                return None

        try:
            return _decode_record(entry)
        except ValueError as e:
            log.warning("Malformed entry for %s (%s) in state file %s: %s. "
                        "Treating as new.", host, provider, self.path, e)
            return None

    def save(self, provider: str, host: str, record: UpdateRecord):
        """Write the record for the given provider and host to the state
        file. Returns only after the file has been flushed to disk.

        :param provider: Provider name, as given by the updater
        :param host: The FQDN being updated
        :param record: The new :class:`UpdateRecord`

        :raises StoreError: if the state file could not be written
        """
        with self._lock:
            # Only the written copy becomes current, so a failed write leaves
            # loads returning what is on disk
            entries = dict(self._entries)
            hosts = entries.get(provider)
            hosts = dict(hosts) if isinstance(hosts, dict) else dict()
            hosts[host] = _encode_record(record)
            entries[provider] = hosts
            try:
                self._write_statefile(entries)
            except OSError as e:
                log.error("Could not write state file %s: %s",
                          self.path, e.strerror)
                raise StoreError(f"Could not write state file {self.path}: "
                                 f"{e.strerror}") from e
            self._entries = entries
