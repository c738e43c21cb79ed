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

"""Built in IP address sources and the source base class"""

from .source import Source

from . import cmd
from . import dnsquery
from . import iface
from . import web

sources = {
    'cmd': cmd.CommandSource,
    'dns': dnsquery.DNSSource,
    'if': iface.IFaceSource,
    'web': web.WebSource,
}

__all__ = [
    'Source',
]
