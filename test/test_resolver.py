"""Tests for the IP resolver"""
import ipaddress
import time

import pytest

import doubles
from ddnsup import Config, ConfigError, IPResolver, ResolveError
from ddnsup.sources.cmd import CommandSource
from ddnsup.sources.dnsquery import DNSSource
from ddnsup.sources.iface import IFaceSource
from ddnsup.sources.web import WebSource, DEFAULT_URLS


def test_fallback_to_third_source():
    """Test the first working source wins and is recorded"""
    sources = [doubles.FakeSource('first'),
               doubles.FakeSource('second', '   '),
               doubles.FakeSource('third', '198.51.100.7\n')]
    resolved = IPResolver(sources).resolve()

    assert resolved.address == ipaddress.ip_address('198.51.100.7')
    assert resolved.source == 'third'
    assert all(s.checked for s in sources)


def test_stops_at_first_success():
    """Test sources after a successful one are not tried"""
    sources = [doubles.FakeSource('first', '198.51.100.7'),
               doubles.FakeSource('second', '198.51.100.8')]
    resolved = IPResolver(sources).resolve()

    assert resolved.source == 'first'
    assert not sources[1].checked


def test_override_skips_sources():
    """Test a manual override is returned without probing any source"""
    source = doubles.FakeSource('first', '198.51.100.7')
    resolved = IPResolver([source]).resolve('203.0.113.9')

    assert resolved.address == ipaddress.ip_address('203.0.113.9')
    assert resolved.source == 'manual'
    assert not source.checked


def test_invalid_override():
    """Test an override that is not an address is a config error"""
    with pytest.raises(ConfigError):
        IPResolver([]).resolve('not-an-ip')


def test_all_fail():
    """Test every source's failure is reported"""
    sources = [doubles.FakeSource('first'),
               doubles.FakeSource('second', 'garbage'),
               doubles.FakeSource('third', '')]
    with pytest.raises(ResolveError) as exc_info:
        IPResolver(sources).resolve()

    failures = exc_info.value.failures
    assert [name for name, _ in failures] == ['first', 'second', 'third']
    assert failures[0][1] == 'fake failure'
    assert 'invalid address' in failures[1][1]
    assert failures[2][1] == 'empty response'


def test_no_sources():
    with pytest.raises(ResolveError) as exc_info:
        IPResolver([]).resolve()
    assert exc_info.value.failures == []


def test_ipv6_accepted():
    resolved = IPResolver([doubles.FakeSource('v6', '2001:db8::1')]).resolve()
    assert resolved.address == ipaddress.ip_address('2001:db8::1')


def test_deadline_caps_timeouts(clock):
    """Test each check's timeout is cut to the remaining deadline and sources
    past the deadline are not checked"""
    sources = [doubles.FakeSource('first', timeout=10, clock=clock, cost=10),
               doubles.FakeSource('second', timeout=10, clock=clock, cost=8),
               doubles.FakeSource('third', '198.51.100.7', clock=clock)]
    resolver = IPResolver(sources, deadline=18, clock=clock)

    with pytest.raises(ResolveError) as exc_info:
        resolver.resolve()

    assert sources[0].timeouts == [10]
    assert sources[1].timeouts == [8]
    assert not sources[2].checked
    assert exc_info.value.failures[2] == ('third', 'deadline exceeded')


@pytest.fixture
def hanging_source():
    source = doubles.HangingSource('stuck', timeout=0.3)
    yield source
    source.release()


def test_stuck_source_abandoned(hanging_source):
    """Test a source that ignores its timeout is given up on and the next
    source is tried"""
    resolver = IPResolver([hanging_source,
                           doubles.FakeSource('second', '198.51.100.7')])

    start = time.monotonic()
    resolved = resolver.resolve()
    assert time.monotonic() - start < 2.0
    assert resolved.source == 'second'


def test_stuck_source_deadline(hanging_source):
    """Test the deadline bounds the whole call even when a source never
    returns"""
    hanging_source.timeout = 10
    resolver = IPResolver([hanging_source, doubles.FakeSource('second')],
                          deadline=0.5)

    start = time.monotonic()
    with pytest.raises(ResolveError) as exc_info:
        resolver.resolve()
    assert time.monotonic() - start < 2.0
    assert exc_info.value.failures == [
        ('stuck', 'no answer within 0.5s'),
        ('second', 'deadline exceeded'),
    ]


def test_deadline_with_slow_web_server(slow_server):
    """Test web sources whose server trickles its response cannot hold the
    resolver past its deadline"""
    resolver = IPResolver([WebSource(slow_server, timeout=1.0)
                           for _ in range(3)], deadline=2.0)

    start = time.monotonic()
    with pytest.raises(ResolveError):
        resolver.resolve()
    assert time.monotonic() - start <= 3.0


def test_from_config_default():
    """Test the web sources are used when nothing is configured"""
    resolver = IPResolver.from_config(Config())
    assert [s.url for s in resolver.sources] == list(DEFAULT_URLS)
    assert resolver.deadline == 30.0


def test_from_config_order():
    """Test sources are created in the order given by 'use'"""
    config = Config(use='if, cmd,dns,web', if_name='eth0', cmd='echo 1.2.3.4',
                    web='https://a.example/ip,https://b.example/ip',
                    timeout=3, deadline=12)
    resolver = IPResolver.from_config(config)

    assert [type(s) for s in resolver.sources] == [
        IFaceSource, CommandSource, DNSSource, WebSource, WebSource]
    assert [s.name for s in resolver.sources] == [
        'if:eth0', 'cmd', 'dns:resolver1.opendns.com',
        'web:https://a.example/ip', 'web:https://b.example/ip']
    assert resolver.sources[1].timeout == 3
    assert resolver.deadline == 12


def test_from_config_unknown():
    with pytest.raises(ConfigError):
        IPResolver.from_config(Config(use='carrier-pigeon'))


def test_from_config_missing_option():
    with pytest.raises(ConfigError):
        IPResolver.from_config(Config(use='cmd'))
    with pytest.raises(ConfigError):
        IPResolver.from_config(Config(use='if'))
    with pytest.raises(ConfigError):
        IPResolver.from_config(Config(use='ip'))


def test_from_config_use_ip():
    resolver = IPResolver.from_config(Config(use='ip', ip='192.0.2.1'))
    assert resolver.sources == []


def test_from_config_bad_family():
    with pytest.raises(ConfigError):
        IPResolver.from_config(Config(use='web', family='ipv5'))
