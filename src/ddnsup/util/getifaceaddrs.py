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

"""Helper function for IP sources to look up the addresses assigned to the
current system's interfaces"""

# Netifaces is no longer actively maintained, but the address lookup part is
# small and has not changed in several releases. If that becomes a problem,
# getifaddrs(3) could be called directly through ctypes instead.

import ipaddress
from typing import Dict, List, Tuple, Union, cast

import netifaces

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]


def _usable(addrs: List[Dict[str, str]],
            omit_private: bool) -> List[IPAddress]:
    """Parse the netifaces entries for one family, dropping link-local
    addresses (and private ones, if requested). Global addresses sort ahead
    of private ones; otherwise the interface's order is kept."""
    result = []
    for entry in addrs:
        # Link-local IPv6 addresses carry a %ifacename zone suffix
        addr = ipaddress.ip_address(entry['addr'].partition('%')[0])
        if addr.is_link_local or (omit_private and addr.is_private):
            continue
        result.append(addr)
    return sorted(result, key=lambda a: a.is_private)


def get_iface_addrs(
    if_name: str,
    omit_private: bool = True,
) -> Tuple[List[ipaddress.IPv4Address], List[ipaddress.IPv6Address]]:
    """Look up the current non-link-local addresses of the named interface.

    :param if_name: Name of the interface to look up
    :param omit_private: Whether to leave out private addresses. When they
                         are included, they come after the global ones.
    :return: A 2-tuple of the IPv4 addresses and the IPv6 addresses
    :raises ValueError: if there is no interface with the given name
    """
    # Cast due to lack of type stubs for netifaces
    addresses = cast(Dict[int, List[Dict[str, str]]],
                     netifaces.ifaddresses(if_name))
    ipv4 = _usable(addresses.get(netifaces.AF_INET, []), omit_private)
    ipv6 = _usable(addresses.get(netifaces.AF_INET6, []), omit_private)
    return (cast(List[ipaddress.IPv4Address], ipv4),
            cast(List[ipaddress.IPv6Address], ipv6))
