"""Tests for the built in IP address sources"""
import socket
import time

import dns.resolver
import netifaces
import pytest
import requests
from urllib3.util import connection

import doubles
from ddnsup import Config, ConfigError, SourceError
from ddnsup.configuration import USER_AGENT
from ddnsup.sources.cmd import CommandSource
from ddnsup.sources.dnsquery import DNSSource
from ddnsup.sources.iface import IFaceSource
from ddnsup.sources.web import WebSource
from ddnsup.util import RequestsFamilyRestriction


def test_web_source(mocker):
    """Test the web source returns the body of the response"""
    get = mocker.patch('requests.get',
                       return_value=doubles.FakeResponse(200,
                                                         '198.51.100.7\n'))
    source = WebSource('https://ip.example/')

    assert source.check(4.5) == '198.51.100.7\n'
    get.assert_called_once_with('https://ip.example/', timeout=4.5,
                                stream=True,
                                headers={'User-Agent': USER_AGENT})


def test_web_source_http_error(mocker):
    mocker.patch('requests.get',
                 return_value=doubles.FakeResponse(503, 'unavailable'))
    with pytest.raises(SourceError) as exc_info:
        WebSource('https://ip.example/').check(5)
    assert 'HTTP 503' in str(exc_info.value)


def test_web_source_connection_error(mocker):
    mocker.patch('requests.get',
                 side_effect=requests.exceptions.ConnectTimeout("timed out"))
    with pytest.raises(SourceError):
        WebSource('https://ip.example/').check(5)


def test_web_source_family(mocker):
    """Test the web source only connects over the requested family"""
    families = []

    def get(*_, **__):
        families.append(connection.allowed_gai_family())
        return doubles.FakeResponse(200, '2606:4700::1111')
    mocker.patch('requests.get', side_effect=get)

    assert WebSource('https://ip.example/', family='ipv6').check(5) == \
        '2606:4700::1111'
    assert families == [socket.AF_INET6]


def test_family_restriction_restored():
    before = connection.allowed_gai_family()
    with RequestsFamilyRestriction('ipv4'):
        assert connection.allowed_gai_family() == socket.AF_INET
    assert connection.allowed_gai_family() == before
    with RequestsFamilyRestriction(None):
        assert connection.allowed_gai_family() == before


def test_web_source_slow_body(slow_server):
    """Test a response body that arrives too slowly fails the check once the
    timeout has passed, even though every read is quick"""
    start = time.monotonic()
    with pytest.raises(SourceError) as exc_info:
        WebSource(slow_server).check(1.0)
    assert time.monotonic() - start < 3.0
    assert str(exc_info.value) == 'deadline exceeded'


def test_web_source_from_config():
    sources = WebSource.from_config(Config(web='https://a.example/ip '
                                               'https://b.example/ip',
                                           family='ipv6', timeout=2))
    assert [s.url for s in sources] == ['https://a.example/ip',
                                        'https://b.example/ip']
    assert all(s.family == 'ipv6' and s.timeout == 2 for s in sources)


def test_cmd_source():
    """Test the command source returns the first word of output"""
    source = CommandSource('echo 198.51.100.7 extra words')
    assert source.check(5) == '198.51.100.7'


def test_cmd_source_no_output():
    assert CommandSource('true').check(5) == ''


def test_cmd_source_failure():
    with pytest.raises(SourceError) as exc_info:
        CommandSource('echo 198.51.100.7; exit 3').check(5)
    assert 'status 3' in str(exc_info.value)


def test_cmd_source_timeout():
    with pytest.raises(SourceError) as exc_info:
        CommandSource('sleep 5').check(0.2)
    assert 'timed out' in str(exc_info.value)


@pytest.fixture
def mock_ifaddresses(mocker):
    """Fixture patching netifaces to report fixed interface addresses"""
    addresses = {
        'eth0': {
            netifaces.AF_INET: [{'addr': '10.0.0.5'},
                                {'addr': '93.184.216.34'}],
            netifaces.AF_INET6: [{'addr': 'fe80::1%eth0'},
                                 {'addr': '2606:4700::1111'}],
        },
        'lan0': {
            netifaces.AF_INET: [{'addr': '192.168.1.10'}],
        },
    }

    def ifaddresses(name):
        try:
            return addresses[name]
        except KeyError:
            raise ValueError("You must specify a valid interface name.")

    return mocker.patch('netifaces.ifaddresses', side_effect=ifaddresses)


def test_iface_source_prefers_ipv4(mock_ifaddresses):
    assert IFaceSource('eth0').check(5) == '93.184.216.34'


def test_iface_source_ipv6(mock_ifaddresses):
    assert IFaceSource('eth0', family='ipv6').check(5) == '2606:4700::1111'


def test_iface_source_private(mock_ifaddresses):
    """Test private addresses are only used when allowed"""
    with pytest.raises(SourceError):
        IFaceSource('lan0').check(5)
    assert IFaceSource('lan0', allow_private=True).check(5) == '192.168.1.10'


def test_iface_source_missing(mock_ifaddresses):
    with pytest.raises(SourceError):
        IFaceSource('wlan9').check(5)


def test_iface_source_from_config():
    sources = IFaceSource.from_config(
        Config(if_name='lan0', extra=(('allow_private', 'yes'),)))
    assert sources[0].iface == 'lan0'
    assert sources[0].allow_private
    with pytest.raises(ConfigError):
        IFaceSource.from_config(Config())


class FakeRdata:
    def __init__(self, address):
        self.address = address


def test_dns_source(mocker):
    """Test the DNS source asks the configured server for the name"""
    resolver = mocker.patch('dns.resolver.Resolver').return_value
    resolver.resolve.return_value = [FakeRdata('198.51.100.7')]

    source = DNSSource('208.67.222.222', 'myip.opendns.com')
    assert source.check(3) == '198.51.100.7'
    assert resolver.nameservers == ['208.67.222.222']
    resolver.resolve.assert_called_once_with('myip.opendns.com', 'A',
                                             lifetime=3)


def test_dns_source_ipv6_hostname(mocker):
    """Test the nameserver hostname is looked up in the requested family"""
    gai = mocker.patch('socket.getaddrinfo', return_value=[
        (socket.AF_INET6, socket.SOCK_DGRAM, 17, '',
         ('2620:119:35::35', 53, 0, 0)),
    ])
    resolver = mocker.patch('dns.resolver.Resolver').return_value
    resolver.resolve.return_value = [FakeRdata('2606:4700::1111')]

    source = DNSSource(family='ipv6')
    assert source.check(3) == '2606:4700::1111'
    assert gai.call_args.kwargs['family'] == socket.AF_INET6
    assert resolver.nameservers == ['2620:119:35::35']
    assert resolver.resolve.call_args.args == ('myip.opendns.com', 'AAAA')


def test_dns_source_failure(mocker):
    resolver = mocker.patch('dns.resolver.Resolver').return_value
    resolver.resolve.side_effect = dns.resolver.NXDOMAIN()
    with pytest.raises(SourceError):
        DNSSource('208.67.222.222').check(3)
