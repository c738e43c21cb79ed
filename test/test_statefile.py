"""Tests for StateFile"""
import ipaddress
import json
import os

import pytest

from ddnsup import StateFile, StoreError, UpdateRecord

IP = ipaddress.ip_address('203.0.113.9')
IP6 = ipaddress.ip_address('2001:db8::9')


@pytest.fixture
def statefile_factory(tmp_path):
    count = 0

    def factory(contents: str):
        nonlocal count
        count += 1
        path = tmp_path / f"statefile_{count}"
        path.write_text(contents)
        return StateFile(str(path))
    return factory


def test_new_statefile(empty_statefile):
    """Test a new, nonexistent state file has no records and can be
    written"""
    assert empty_statefile.load('dyndns2', 'a.example.com') is None

    record = UpdateRecord(IP, 100, 100, 'good')
    empty_statefile.save('dyndns2', 'a.example.com', record)
    assert empty_statefile.load('dyndns2', 'a.example.com') == record
    assert empty_statefile.load('dyndns2', 'b.example.com') is None
    assert empty_statefile.load('noip', 'a.example.com') is None


def test_persisted(empty_statefile):
    """Test records survive a reload, including IPv6 and null fields"""
    empty_statefile.save('dyndns2', 'a.example.com',
                         UpdateRecord(IP, 100, 200, 'good'))
    empty_statefile.save('gandi', 'b.example.com',
                         UpdateRecord(IP6, 100, 200, 'good'))
    empty_statefile.save('gandi', 'c.example.com',
                         UpdateRecord(None, None, 300, 'failed: nope'))

    statefile = StateFile(empty_statefile.path)
    assert statefile.load('dyndns2', 'a.example.com') == \
        UpdateRecord(IP, 100, 200, 'good')
    assert statefile.load('gandi', 'b.example.com') == \
        UpdateRecord(IP6, 100, 200, 'good')
    assert statefile.load('gandi', 'c.example.com') == \
        UpdateRecord(None, None, 300, 'failed: nope')


def test_file_format(empty_statefile):
    empty_statefile.save('dyndns2', 'a.example.com',
                         UpdateRecord(IP, 100, 200, 'good'))
    with open(empty_statefile.path) as f:
        assert json.load(f) == {
            'dyndns2': {
                'a.example.com': {
                    'ip': '203.0.113.9',
                    'last_success': 100,
                    'last_attempt': 200,
                    'status': 'good',
                },
            },
        }
    assert not os.path.exists(empty_statefile.path + '.tmp')


def test_creates_directories(tmp_path):
    statefile = StateFile(str(tmp_path / 'a' / 'b' / 'ddnsup.cache'))
    statefile.save('he', 'a.example.com', UpdateRecord(IP, 1, 1, 'good'))
    assert (tmp_path / 'a' / 'b' / 'ddnsup.cache').exists()


@pytest.mark.parametrize('contents', [
    '',
    '{"dyndns2": {"a.example.com": ',
    '["a", "b"]',
    '\x00\xff garbage',
])
def test_corrupt_file(statefile_factory, contents):
    """Test an unparsable file is treated as empty and then replaced"""
    statefile = statefile_factory(contents)
    assert statefile.load('dyndns2', 'a.example.com') is None

    statefile.save('dyndns2', 'a.example.com',
                   UpdateRecord(IP, 100, 100, 'good'))
    assert StateFile(statefile.path).load('dyndns2', 'a.example.com') == \
        UpdateRecord(IP, 100, 100, 'good')


def test_malformed_entries(statefile_factory):
    """Test a malformed entry is treated as absent without affecting other
    entries"""
    statefile = statefile_factory(json.dumps({
        'dyndns2': {
            'bad-ip.example.com': {'ip': 'not an ip'},
            'bad-time.example.com': {'ip': '203.0.113.9',
                                     'last_success': 'yesterday'},
            'bad-type.example.com': 'good',
            'ok.example.com': {'ip': '203.0.113.9', 'last_success': 5,
                               'last_attempt': 6, 'status': 'good'},
        },
        'noip': ['not', 'a', 'dict'],
    }))
    assert statefile.load('dyndns2', 'bad-ip.example.com') is None
    assert statefile.load('dyndns2', 'bad-time.example.com') is None
    assert statefile.load('dyndns2', 'bad-type.example.com') is None
    assert statefile.load('noip', 'a.example.com') is None
    assert statefile.load('dyndns2', 'ok.example.com') == \
        UpdateRecord(IP, 5, 6, 'good')


def test_missing_fields(statefile_factory):
    statefile = statefile_factory('{"he": {"a.example.com": {}}}')
    assert statefile.load('he', 'a.example.com') == UpdateRecord()


def test_save_error(mocker, empty_statefile):
    """Test a write failure becomes StoreError"""
    mocker.patch('os.replace', side_effect=PermissionError(13,
                                                           "Permission "
                                                           "denied"))
    with pytest.raises(StoreError):
        empty_statefile.save('he', 'a.example.com',
                             UpdateRecord(IP, 1, 1, 'good'))


def test_save_error_keeps_old_state(mocker, empty_statefile):
    """Test a failed save changes neither memory nor disk and leaves no
    temporary file behind"""
    old = UpdateRecord(IP, 1, 1, 'good')
    empty_statefile.save('he', 'a.example.com', old)
    with open(empty_statefile.path) as f:
        on_disk = f.read()

    mocker.patch('os.replace', side_effect=PermissionError(13,
                                                           "Permission "
                                                           "denied"))
    with pytest.raises(StoreError):
        empty_statefile.save('he', 'a.example.com',
                             UpdateRecord(IP6, 1, 2, 'good'))
    with pytest.raises(StoreError):
        empty_statefile.save('he', 'b.example.com',
                             UpdateRecord(IP6, 2, 2, 'good'))

    assert empty_statefile.load('he', 'a.example.com') == old
    assert empty_statefile.load('he', 'b.example.com') is None
    assert not os.path.exists(empty_statefile.path + '.tmp')
    with open(empty_statefile.path) as f:
        assert f.read() == on_disk


def test_succeeded():
    assert UpdateRecord(IP, 1, 1, 'good').succeeded()
    assert not UpdateRecord(IP, 1, 2, 'failed: badauth').succeeded()
    assert not UpdateRecord().succeeded()
