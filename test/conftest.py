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

import http.server
import ipaddress
import threading
import time

import pytest

import doubles
import ddnsup.statefile
from ddnsup import Config, IPResolver


@pytest.fixture
def clock():
    """Fixture creating a :class:`doubles.FakeClock`"""
    return doubles.FakeClock()


@pytest.fixture
def empty_statefile(tmp_path):
    """Fixture creating an empty :class:`~ddnsup.StateFile`"""
    return ddnsup.statefile.StateFile(str(tmp_path / 'ddnsup.cache'))


@pytest.fixture
def fixed_resolver():
    """Fixture creating a factory for resolvers that always produce the
    given address"""
    def factory(address='203.0.113.9'):
        return IPResolver([doubles.FakeSource('fake', address)])
    return factory


@pytest.fixture
def config_factory():
    """Fixture creating a factory for :class:`~ddnsup.Config` for the spy
    updater. Keyword arguments override the defaults."""
    def factory(**kwargs):
        kwargs.setdefault('protocol', 'spy')
        kwargs.setdefault('hosts', ('a.example.com',))
        return Config(**kwargs)
    return factory


@pytest.fixture
def ip():
    return ipaddress.ip_address('203.0.113.9')


class _TricklingHandler(http.server.BaseHTTPRequestHandler):
    """Sends a long body one byte at a time, 0.3 seconds apart"""

    def do_GET(self):
        self.send_response(200)
        self.send_header('Content-Length', '100')
        self.end_headers()
        try:
            for _ in range(100):
                self.wfile.write(b'1')
                time.sleep(0.3)
        except OSError:
            # Client gave up
            pass

    def log_message(self, *args):
        pass


@pytest.fixture
def slow_server():
    """Fixture running a local HTTP server that answers every request, but
    sends the body very slowly. Yields the server's URL."""
    server = http.server.ThreadingHTTPServer(('127.0.0.1', 0),
                                             _TricklingHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f'http://127.0.0.1:{server.server_address[1]}/'
    server.shutdown()
    server.server_close()
