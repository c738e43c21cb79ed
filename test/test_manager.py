import pytest

import doubles
import ddnsup.manager
from ddnsup import Config, ConfigError, Outcome, OutcomeKind
from ddnsup.updaters.duckdns import DuckDNSUpdater
from ddnsup.updaters.he import HEUpdater
from ddnsup.updaters.standard import StandardUpdater


@pytest.fixture
def updater_registry(mocker):
    """Fixture isolating changes to the updater registry"""
    return mocker.patch.dict('ddnsup.updaters.updaters')


class TestGetUpdaterClass:
    @pytest.mark.parametrize('protocol, expected', [
        ('dyndns2', StandardUpdater),
        ('DynDNS', StandardUpdater),
        ('standard', StandardUpdater),
        ('hurricane', HEUpdater),
        (' duckdns ', DuckDNSUpdater),
    ])
    def test_built_in(self, updater_registry, protocol, expected):
        """Test built-in protocols and their aliases"""
        assert ddnsup.manager.get_updater_class(protocol) is expected

    def test_entry_point(self, mocker, updater_registry):
        """Test an updater installed as a ddnsup.updater entry point"""
        entry_point = mocker.Mock()
        entry_point.load.return_value = doubles.SpyUpdater
        entry_points = mocker.patch('ddnsup.manager.entry_points',
                                    return_value={'myplugin': entry_point})

        assert ddnsup.manager.get_updater_class('myplugin') is \
            doubles.SpyUpdater
        assert entry_points.call_args.kwargs == {'group': 'ddnsup.updater'}
        assert updater_registry['myplugin'] is doubles.SpyUpdater

    def test_built_in_wins_over_entry_point(self, mocker, updater_registry):
        entry_points = mocker.patch('ddnsup.manager.entry_points')
        assert ddnsup.manager.get_updater_class('he') is HEUpdater
        assert not entry_points.called

    def test_module_and_class(self, updater_registry):
        assert ddnsup.manager.get_updater_class('doubles.SpyUpdater') is \
            doubles.SpyUpdater
        assert updater_registry['doubles.SpyUpdater'] is doubles.SpyUpdater

    @pytest.mark.parametrize('protocol', [
        'nonexistent',
        'nonexistent_module.Updater',
        'doubles.NoSuchUpdater',
    ])
    def test_unknown(self, updater_registry, protocol):
        with pytest.raises(ConfigError) as exc_info:
            ddnsup.manager.get_updater_class(protocol)
        assert 'Unknown protocol' in str(exc_info.value)


def test_create_updater(updater_registry):
    updater = ddnsup.manager.create_updater(
        Config(protocol='he', password='key', hosts=('a.example.com',)))
    assert isinstance(updater, HEUpdater)


@pytest.mark.parametrize('config', [
    Config(hosts=('a.example.com',), password='key'),
    Config(protocol='he', hosts=('a.example.com',)),
    Config(protocol='nonexistent', hosts=('a.example.com',)),
])
def test_create_updater_invalid(updater_registry, config):
    with pytest.raises(ConfigError):
        ddnsup.manager.create_updater(config)


@pytest.mark.parametrize('kinds, expected', [
    ([], 0),
    ([OutcomeKind.UPDATED, OutcomeKind.UNCHANGED, OutcomeKind.SKIPPED], 0),
    ([OutcomeKind.UPDATED, OutcomeKind.FAILED], 1),
])
def test_exit_status(kinds, expected):
    outcomes = [Outcome(f'h{i}.example.com', 'spy', kind)
                for i, kind in enumerate(kinds)]
    assert ddnsup.manager.exit_status(outcomes) == expected


@pytest.fixture
def spy_config(tmp_path):
    """Fixture creating a factory for configs using the spy updater with a
    fixed address and a state file in a temporary directory"""
    def factory(**kwargs):
        kwargs.setdefault('protocol', 'doubles.SpyUpdater')
        kwargs.setdefault('hosts', ('a.example.com',))
        kwargs.setdefault('use', 'ip')
        kwargs.setdefault('ip', '203.0.113.9')
        kwargs.setdefault('cache', str(tmp_path / 'ddnsup.cache'))
        return Config(**kwargs)
    return factory


class TestDDNSManager:
    def test_single_block(self, updater_registry, spy_config):
        outcomes = ddnsup.manager.DDNSManager([spy_config()]).run()
        assert [(o.host, o.kind) for o in outcomes] == [
            ('a.example.com', OutcomeKind.UPDATED)]
        assert str(outcomes[0].ip) == '203.0.113.9'

    def test_shared_statefile(self, updater_registry, spy_config):
        """Test blocks with the same cache path share one state file and
        outcomes are in block order"""
        manager = ddnsup.manager.DDNSManager([
            spy_config(hosts=('a.example.com', 'b.example.com')),
            spy_config(hosts=('c.example.com',)),
        ])
        outcomes = manager.run()

        assert [o.host for o in outcomes] == ['a.example.com',
                                              'b.example.com',
                                              'c.example.com']
        assert len(manager._statefiles) == 1

        # Second run finds everything up to date
        outcomes = manager.run()
        assert all(o.kind is OutcomeKind.UNCHANGED for o in outcomes)

    def test_single_block_config_error(self, updater_registry, spy_config):
        """Test a config error is raised when there is only one block"""
        manager = ddnsup.manager.DDNSManager([spy_config(
            protocol='nonexistent')])
        with pytest.raises(ConfigError):
            manager.run()

    def test_multi_block_config_error(self, updater_registry, spy_config):
        """Test a config error in one block fails its hosts and the other
        blocks still run"""
        manager = ddnsup.manager.DDNSManager([
            spy_config(protocol='he', hosts=('bad.example.com',
                                             'bad.example.com')),
            spy_config(hosts=('good.example.com',)),
        ])
        outcomes = manager.run()

        assert [(o.host, o.provider, o.kind) for o in outcomes] == [
            ('bad.example.com', 'he', OutcomeKind.FAILED),
            ('good.example.com', 'spy', OutcomeKind.UPDATED),
        ]
        assert outcomes[0].reason.startswith('config error:')
        assert isinstance(outcomes[0].error, ConfigError)

    def test_blocks_without_hosts_ignored(self, updater_registry,
                                          spy_config):
        manager = ddnsup.manager.DDNSManager([spy_config(hosts=()),
                                              spy_config()])
        assert len(manager.configs) == 1

    def test_no_hosts(self, spy_config):
        with pytest.raises(ConfigError):
            ddnsup.manager.DDNSManager([spy_config(hosts=())])
        with pytest.raises(ConfigError):
            ddnsup.manager.DDNSManager([])
