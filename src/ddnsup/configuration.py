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

"""ddnsup configuration: the :class:`Config` snapshot and the parser for
ddclient-style configuration files

The file format is the one ddclient uses::

    # Global defaults
    protocol=cloudflare, \\
    zone=example.com, \\
    login=token, \\
    password=secret \\
    host1.example.com,host2.example.com

    # A second block, inheriting the globals above
    protocol=duckdns, password=duck-token
    myhost

Settings before the first hostname are global defaults. A bare hostname (or
a hostname following the last value on a line) ends a block; settings after
it start a new block that inherits the globals.
"""

import os
import os.path
import pathlib
import re
import sys
from typing import (Dict, List, NamedTuple, Optional, TextIO, Tuple, Union,
                    Iterable)

if sys.version_info < (3, 10):
    from importlib_metadata import version
else:
    from importlib.metadata import version

from .exceptions import ConfigError


USER_AGENT = f"ddnsup/{version('ddnsup')} (+https://pypi.org/project/ddnsup/)"

DEFAULT_CONFIG_FILE = '/etc/ddnsup/ddnsup.conf'
DEFAULT_SYSTEM_CACHE = '/var/cache/ddnsup/ddnsup.cache'

#: Per-source timeout used by the IP resolver, in seconds
DEFAULT_TIMEOUT = 10.0
#: Overall deadline for IP resolution, in seconds
DEFAULT_DEADLINE = 30.0

_TRUE = ('yes', 'true', 'on', '1')
_FALSE = ('no', 'false', 'off', '0')

_INTERVAL_RE = re.compile(r'^(\d+(?:\.\d+)?)\s*([smhd]?)$')
_INTERVAL_UNITS = {'': 1, 's': 1, 'm': 60, 'h': 3600, 'd': 86400}

# Config file key -> Config field, for keys whose names differ
_KEY_ALIASES = {
    'host': 'hosts',
    'if': 'if_name',
    'ifname': 'if_name',
    'if_name': 'if_name',
}

_STR_FIELDS = ('protocol', 'login', 'password', 'server', 'zone', 'email',
               'ip', 'use', 'web', 'if_name', 'cmd', 'dns_server', 'dns_name',
               'family', 'cache')
_INTERVAL_FIELDS = ('min_interval', 'max_interval', 'min_error_interval')
_FLOAT_FIELDS = ('timeout', 'deadline')
_BOOL_FIELDS = ('force', 'ssl', 'test')


class Config(NamedTuple):
    """Immutable snapshot of the parameters for one run against one
    provider. Only :attr:`protocol` and :attr:`hosts` are required; every
    other field is validated by the selected updater."""

    #: Provider protocol name, e.g. ``dyndns2`` or ``cloudflare``
    protocol: Optional[str] = None
    login: Optional[str] = None
    password: Optional[str] = None
    server: Optional[str] = None
    zone: Optional[str] = None
    email: Optional[str] = None
    #: Fully-qualified names of the records to keep updated
    hosts: Tuple[str, ...] = ()
    ttl: Optional[int] = None
    #: Manually specified IP address; disables detection when set
    ip: Optional[str] = None
    force: bool = False
    #: Minimum seconds between update attempts
    min_interval: Optional[int] = None
    #: Maximum seconds between successful updates (heartbeat)
    max_interval: Optional[int] = None
    #: Minimum seconds between update attempts after a failed attempt
    min_error_interval: Optional[int] = None
    #: Comma-separated IP detection methods, tried in order
    use: Optional[str] = None
    web: Optional[str] = None
    if_name: Optional[str] = None
    cmd: Optional[str] = None
    dns_server: Optional[str] = None
    dns_name: Optional[str] = None
    #: ``ipv4`` or ``ipv6`` to restrict detection to one address family
    family: Optional[str] = None
    timeout: Optional[float] = None
    deadline: Optional[float] = None
    #: Path to the state file
    cache: Optional[str] = None
    ssl: Optional[bool] = None
    #: Dry run: report what would be updated without contacting providers
    test: bool = False
    #: Options not recognized by ddnsup itself, for third-party updaters
    extra: Tuple[Tuple[str, str], ...] = ()

    def option(self, key: str, default: Optional[str] = None
               ) -> Optional[str]:
        """Look up an unrecognized config option by name"""
        for k, v in self.extra:
            if k == key:
                return v
        return default

    def validate(self) -> None:
        """Check the fields the core itself depends on

        :raises ConfigError: if protocol or hosts are missing
        """
        if not self.protocol:
            raise ConfigError("Protocol is required (use --protocol)")
        if not self.hosts:
            raise ConfigError("At least one host is required (use --host)")

    def merge(self, overrides: 'Config') -> 'Config':
        """Return a new :class:`Config` with every field set in ``overrides``
        replacing the value in this one. Used to apply command line options
        over a config file block.

        A field counts as set if it is not ``None``, or for the flags and
        tuple fields, if it is truthy.
        """
        changes = {}
        for field, value in overrides._asdict().items():
            if field in ('force', 'test'):
                if value:
                    changes[field] = value
            elif field == 'hosts':
                if value:
                    changes[field] = value
            elif field == 'extra':
                if value:
                    changes[field] = tuple(dict(
                        list(self.extra) + list(value)).items())
            elif value is not None:
                changes[field] = value
        return self._replace(**changes)

    def cache_path(self) -> str:
        """The state file path: the configured ``cache``, or a default"""
        if self.cache:
            return self.cache
        return default_cache_path()


def default_cache_path() -> str:
    """Pick the state file path when none is configured: the system-wide
    location if it exists or can be created, otherwise the per-user cache
    directory"""
    system_dir = os.path.dirname(DEFAULT_SYSTEM_CACHE)
    try:
        os.makedirs(system_dir, exist_ok=True)
    except OSError:
        pass
    else:
        if os.access(system_dir, os.W_OK):
            return DEFAULT_SYSTEM_CACHE
    cache_home = os.environ.get('XDG_CACHE_HOME',
                                os.path.join(os.path.expanduser('~'),
                                             '.cache'))
    return os.path.join(cache_home, 'ddnsup', 'ddnsup.cache')


def parse_interval(value: str) -> int:
    """Parse an interval such as ``30s``, ``5m``, ``1h``, or ``25d`` into
    seconds. A bare number is seconds.

    :raises ConfigError: if the interval is malformed
    """
    match = _INTERVAL_RE.match(value.strip().lower())
    if match is None:
        raise ConfigError(f"Invalid interval '{value}' (expected a number "
                          "optionally followed by s, m, h, or d)")
    number, unit = match.groups()
    return int(float(number) * _INTERVAL_UNITS[unit])


def parse_bool(key: str, value: str) -> bool:
    """Parse a boolean config value

    :raises ConfigError: if it is not one of yes/true/on/1/no/false/off/0
    """
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigError(f"'{key}' must be boolean (true/yes/on/1/false/no/off/0)"
                      f", not '{value}'")


def split_hosts(value: str) -> Tuple[str, ...]:
    """Split a comma- and/or whitespace-separated list of hostnames"""
    return tuple(h for h in re.split(r'[\s,]+', value.strip()) if h)


def _normalize_key(key: str) -> str:
    key = key.strip().lower().replace('-', '_')
    return _KEY_ALIASES.get(key, key)


def build_config(settings: Dict[str, str]) -> Config:
    """Convert a dict of raw ``key=value`` settings into a :class:`Config`

    :raises ConfigError: if a value cannot be converted
    """
    fields: Dict[str, object] = dict()
    extra: List[Tuple[str, str]] = []
    for raw_key, value in settings.items():
        key = _normalize_key(raw_key)
        if key in _STR_FIELDS:
            fields[key] = value
        elif key == 'hosts':
            fields[key] = split_hosts(value)
        elif key == 'ttl':
            try:
                fields[key] = int(value)
            except ValueError:
                raise ConfigError(f"'ttl' must be an integer, not '{value}'"
                                  ) from None
        elif key in _INTERVAL_FIELDS:
            fields[key] = parse_interval(value)
        elif key in _FLOAT_FIELDS:
            try:
                fields[key] = float(value)
            except ValueError:
                raise ConfigError(f"'{raw_key}' must be a number, not "
                                  f"'{value}'") from None
        elif key in _BOOL_FIELDS:
            fields[key] = parse_bool(raw_key, value)
        else:
            extra.append((key, value))
    fields['extra'] = tuple(extra)
    return Config(**fields)  # type: ignore


def _join_continued_lines(content: str) -> List[str]:
    """Collapse lines ending with a backslash into the following line"""
    result = []
    current = ''
    for line in content.splitlines():
        line = line.rstrip()
        if line.endswith('\\'):
            current += line[:-1] + ' '
        else:
            result.append(current + line)
            current = ''
    if current:
        result.append(current)
    return result


def _strip_comment(line: str) -> str:
    """Remove a trailing ``# comment``. A ``#`` only starts a comment at the
    beginning of the line or after whitespace, so values may contain it."""
    if line.lstrip().startswith('#'):
        return ''
    return re.sub(r'\s+#.*$', '', line)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '\'"':
        return value[1:-1]
    return value


def _parse_blocks(content: str) -> List[Dict[str, str]]:
    """Parse config file text into a list of raw settings dicts, one per
    host. Each dict has the globals merged in and a ``host`` key set."""
    entries: List[Dict[str, str]] = []
    global_defaults: Dict[str, str] = dict()
    block: Dict[str, str] = dict()

    def add_hosts(hosts: Iterable[str]):
        nonlocal block
        for host in hosts:
            entry = dict(global_defaults)
            entry.update(block)
            entry['host'] = host
            entries.append(entry)
        block = dict()

    for line in _join_continued_lines(content):
        line = _strip_comment(line).strip()
        if not line:
            continue

        if '=' not in line:
            add_hosts(split_hosts(line))
            continue

        found_hosts: List[str] = []
        for part in line.split(','):
            part = part.strip()
            if not part:
                continue
            key, sep, value = part.partition('=')
            if not sep:
                found_hosts.extend(split_hosts(part))
                continue
            value = value.strip()
            # Anything after whitespace following a value is a hostname
            value, *rest = re.split(r'\s+', value, maxsplit=1)
            if rest:
                found_hosts.extend(split_hosts(rest[0]))
            # Before the first host, everything is a global default
            if not entries:
                global_defaults[key.strip()] = _unquote(value)
            else:
                block[key.strip()] = _unquote(value)

        if found_hosts:
            add_hosts(found_hosts)

    if block:
        entry = dict(global_defaults)
        entry.update(block)
        entries.append(entry)
    elif not entries and global_defaults:
        entries.append(dict(global_defaults))

    return entries


def _group(configs: List[Config]) -> List[Config]:
    """Combine consecutive configs that differ only in hosts"""
    grouped: List[Config] = []
    for config in configs:
        if grouped and grouped[-1]._replace(hosts=()) == \
                config._replace(hosts=()):
            last = grouped.pop()
            hosts = last.hosts + tuple(h for h in config.hosts
                                       if h not in last.hosts)
            grouped.append(last._replace(hosts=hosts))
        else:
            grouped.append(config)
    return grouped


def parse_config(content: str) -> List[Config]:
    """Parse ddclient-style configuration text

    :param content: The text of the config file
    :raises ConfigError: if a value is invalid
    :return: One :class:`Config` per block of hosts sharing the same settings
    """
    return _group([build_config(entry) for entry in _parse_blocks(content)])


def read_config(configfile: TextIO) -> List[Config]:
    """Read configuration from a file-like object

    :param configfile: File-like object to read the config from
    :raises ConfigError: if the config file cannot be read or is invalid
    :return: One :class:`Config` per block of hosts
    """
    try:
        content = configfile.read()
    except OSError as e:
        raise ConfigError("Could not read config file: %s" % e.strerror
                          ) from e
    return parse_config(content)


def load_configs(filename: Union[str, pathlib.Path]) -> List[Config]:
    """Read every config block from the named file or
    :class:`~pathlib.Path`

    :raises ConfigError: if the config file cannot be read or is invalid
    """
    try:
        with open(filename, 'r') as f:
            return read_config(f)
    except OSError as e:
        raise ConfigError("Could not read config file %s: %s" %
                          (filename, e.strerror)) from e


def load_config(filename: Union[str, pathlib.Path]) -> Config:
    """Read the first config block from the named file

    :raises ConfigError: if the file cannot be read, is invalid, or contains
                         no configuration
    """
    configs = load_configs(filename)
    if not configs:
        raise ConfigError(f"No configuration found in {filename}")
    return configs[0]
