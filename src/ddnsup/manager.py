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

"""DDNS Manager: Creates the updater, resolver, and state file for each
config block and runs the orchestrator on it"""

import importlib
import logging
import sys
from typing import Dict, List, Sequence, Type

if sys.version_info < (3, 10):
    from importlib_metadata import entry_points
else:
    from importlib.metadata import entry_points

from . import updaters
from .configuration import Config
from .exceptions import ConfigError
from .orchestrator import (DEFAULT_MAX_WORKERS, Outcome, OutcomeKind,
                           UpdateOrchestrator)
from .resolver import IPResolver
from .statefile import StateFile

log = logging.getLogger('ddnsup')

#: Exit status when every host succeeded, was unchanged, or was skipped
EXIT_OK = 0
#: Exit status when at least one host failed
EXIT_FAILED = 1
#: Exit status when the configuration prevented running at all
EXIT_CONFIG = 2


def get_updater_class(protocol: str) -> Type[updaters.Updater]:
    """Look up the updater class for a protocol name.

    The name may be a built-in protocol or one of its aliases, the name of a
    ``ddnsup.updater`` entry point, or ``module.ClassName`` for an updater
    that is not installed as a plugin. Non-built-in updaters are imported the
    first time they are requested and remembered afterward.

    :param protocol: The ``protocol`` option
    :raises ConfigError: if no such updater exists
    """
    name = protocol.strip()
    lowered = name.lower()
    lowered = updaters.aliases.get(lowered, lowered)

    # Check if built-in or already imported
    if lowered in updaters.updaters:
        return updaters.updaters[lowered]
    if name in updaters.updaters:
        return updaters.updaters[name]

    # Check if a ddnsup entry point with this name exists
    discovered = entry_points(group="ddnsup.updater")
    try:
        entry_point = discovered[name]
    except KeyError:
        pass
    else:
        updaters.updaters[name] = entry_point.load()
        return updaters.updaters[name]

    # Check if it's importable
    module, _, class_name = name.rpartition('.')
    if module:
        try:
            imported_module = importlib.import_module(module)
        except ImportError:
            log.critical("Could not import module '%s' for protocol '%s'",
                         module, name)
            raise ConfigError(f"Unknown protocol '{name}'") from None
        try:
            imported_class = getattr(imported_module, class_name)
        except AttributeError:
            log.critical("Module '%s' has no updater class '%s'",
                         module, class_name)
            raise ConfigError(f"Unknown protocol '{name}'") from None
        updaters.updaters[name] = imported_class
        return imported_class

    log.critical("Protocol '%s' is not a built-in updater or an installed "
                 "plugin", name)
    raise ConfigError(f"Unknown protocol '{name}'")


def create_updater(config: Config) -> updaters.Updater:
    """Create and validate the updater for a config

    :raises ConfigError: if the protocol is unknown or the config does not
                         have what the updater needs
    """
    config.validate()
    updater = get_updater_class(config.protocol)(config)
    updater.validate_config()
    return updater


def exit_status(outcomes: Sequence[Outcome]) -> int:
    """Compute the process exit status for a run"""
    if any(outcome.kind is OutcomeKind.FAILED for outcome in outcomes):
        return EXIT_FAILED
    return EXIT_OK


class DDNSManager:
    """Runs one update cycle for each config block.

    With a single block, configuration errors are raised so the caller can
    exit with :data:`EXIT_CONFIG`. With several blocks, a block with a bad
    configuration fails all its hosts but does not stop the other blocks.
    Blocks without hosts are ignored as long as some block has hosts.

    :param configs: The config blocks to run, in order
    :param max_workers: Maximum number of hosts updated at once per block

    :raises ConfigError: if there is nothing to run
    """

    def __init__(self, configs: Sequence[Config],
                 max_workers: int = DEFAULT_MAX_WORKERS):
        self.log = logging.getLogger('ddnsup.manager')
        self.max_workers = max_workers

        self.configs: List[Config] = [c for c in configs if c.hosts]
        if not self.configs:
            self.log.critical("No hosts configured")
            raise ConfigError("At least one host is required (use --host)")
        skipped = len(configs) - len(self.configs)
        if skipped:
            self.log.warning("Ignoring %d config block(s) without hosts",
                             skipped)

        #: State files by path, so blocks sharing a cache share one instance
        self._statefiles: Dict[str, StateFile] = dict()

    def _statefile(self, config: Config) -> StateFile:
        path = config.cache_path()
        try:
            return self._statefiles[path]
        except KeyError:
            self.log.debug("Using state file %s", path)
            statefile = StateFile(path)
            self._statefiles[path] = statefile
            return statefile

    def _run_one(self, config: Config) -> List[Outcome]:
        updater = create_updater(config)
        resolver = IPResolver.from_config(config)
        orchestrator = UpdateOrchestrator(updater, resolver,
                                          self._statefile(config), config,
                                          max_workers=self.max_workers)
        return orchestrator.run()

    def run(self) -> List[Outcome]:
        """Run every config block

        :return: All outcomes, block by block, in config order
        :raises ConfigError: if there is only one block and its configuration
                             is invalid
        """
        outcomes: List[Outcome] = []
        for config in self.configs:
            try:
                outcomes.extend(self._run_one(config))
            except ConfigError as e:
                if len(self.configs) == 1:
                    self.log.critical("Config error: %s", e)
                    raise
                self.log.error("Config error for %s: %s",
                               ', '.join(config.hosts), e)
                provider = config.protocol or 'unknown'
                outcomes.extend(
                    Outcome(host, provider, OutcomeKind.FAILED,
                            reason=f"config error: {e}", error=e)
                    for host in dict.fromkeys(config.hosts)
                )
        return outcomes
