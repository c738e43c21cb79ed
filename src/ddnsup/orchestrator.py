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

"""Update orchestrator: decides, for every host of one config, whether the
provider needs to be told about the current address, and does so"""

import enum
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, Hashable, List, NamedTuple, Optional

from .configuration import Config
from .exceptions import ResolveError, StoreError, UpdateError, redact
from .resolver import IPAddress, IPResolver
from .statefile import StateFile, UpdateRecord
from .updaters import Updater

DEFAULT_MAX_WORKERS = 4


class OutcomeKind(enum.Enum):
    #: The provider accepted the new address
    UPDATED = "updated"
    #: The provider already has the current address; nothing was sent
    UNCHANGED = "unchanged"
    #: An update was needed but deliberately not sent
    SKIPPED = "skipped"
    #: The address could not be determined or the provider refused the
    #: update
    FAILED = "failed"


class Outcome(NamedTuple):
    """The result for one host. Exactly one is produced per (provider, host)
    per run."""

    host: str
    provider: str
    kind: OutcomeKind
    #: The address the host was (or would have been) set to, if known
    ip: Optional[IPAddress] = None
    #: Short explanation, for SKIPPED and FAILED
    reason: Optional[str] = None
    #: The exception behind a FAILED outcome
    error: Optional[Exception] = None
    #: Problem that did not prevent the update, e.g. the state file could
    #: not be written afterward
    warning: Optional[str] = None

    def ok(self) -> bool:
        """Whether this outcome counts as success for the exit status"""
        return self.kind is not OutcomeKind.FAILED

    def __str__(self):
        text = f"{self.host} ({self.provider}): {self.kind.value}"
        if self.ip is not None:
            text += f" {self.ip.compressed}"
        if self.reason:
            text += f" ({self.reason})"
        if self.warning:
            text += f" [warning: {self.warning}]"
        return text


class KeyedLocks:
    """A lock per key, created on first use"""

    def __init__(self):
        self._lock = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = dict()

    def get(self, key: Hashable) -> threading.Lock:
        with self._lock:
            try:
                return self._locks[key]
            except KeyError:
                lock = threading.Lock()
                self._locks[key] = lock
                return lock


# Shared by every orchestrator in the process so two runs touching the same
# (provider, host) never interleave their load and save
_key_locks = KeyedLocks()


class UpdateOrchestrator:
    """Run one update cycle for every host in a config.

    The address is resolved once and shared by all hosts. Each host then
    goes through the same steps: compare against its stored record, check
    the rate limits, call the provider, and record the result. Hosts are
    processed concurrently by a bounded pool of worker threads.

    :param updater: The :class:`~ddnsup.updaters.Updater` for the provider
    :param resolver: The :class:`~ddnsup.resolver.IPResolver` to get the
                     current address from
    :param statefile: The :class:`~ddnsup.statefile.StateFile`
    :param config: The :class:`~ddnsup.Config` with the hosts, intervals,
                   and flags for this run
    :param max_workers: Maximum number of hosts processed at once
    :param clock: Wall clock returning Unix time
    """

    def __init__(self, updater: Updater, resolver: IPResolver,
                 statefile: StateFile, config: Config,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 clock: Callable[[], float] = time.time):
        self.log = logging.getLogger('ddnsup.orchestrator')
        self.updater = updater
        self.resolver = resolver
        self.statefile = statefile
        self.config = config
        self.max_workers = max_workers
        self._clock = clock
        self.provider: str = updater.provider_name()

    def run(self) -> List[Outcome]:
        """Update every host in the config.

        :return: One :class:`Outcome` per host, in config order
        :raises ConfigError: if the manually specified address is invalid
        """
        hosts = list(dict.fromkeys(self.config.hosts))

        try:
            resolved = self.resolver.resolve(self.config.ip)
        except ResolveError as e:
            self.log.error("Cannot update %s hosts: %s", self.provider, e)
            return [Outcome(host, self.provider, OutcomeKind.FAILED,
                            reason=str(e), error=e)
                    for host in hosts]
        ip = resolved.address

        outcomes: List[Outcome] = []
        with ThreadPoolExecutor(max_workers=self.max_workers,
                                thread_name_prefix='ddnsup') as pool:
            futures = [pool.submit(self._update_host, host, ip)
                       for host in hosts]
            for host, future in zip(hosts, futures):
                try:
                    outcomes.append(future.result())
                except Exception as e:
                    self.log.exception("Unexpected error updating %s", host)
                    outcomes.append(Outcome(host, self.provider,
                                            OutcomeKind.FAILED, ip,
                                            reason=f"unexpected error: {e}",
                                            error=e))
        return outcomes

    def _needs_update(self, host: str, record: Optional[UpdateRecord],
                      ip: IPAddress, now: int) -> bool:
        if self.config.force:
            self.log.info("Forcing update of %s", host)
            return True
        if record is None:
            self.log.info("No previous update recorded for %s", host)
            return True
        if record.ip != ip:
            self.log.info("Address for %s changed from %s to %s", host,
                          record.ip.compressed if record.ip else None,
                          ip.compressed)
            return True
        max_interval = self.config.max_interval
        if max_interval is not None and (record.last_success is None or
                                         now - record.last_success >=
                                         max_interval):
            self.log.info("Last successful update of %s is older than "
                          "max-interval; refreshing", host)
            return True
        return False

    def _rate_limited(self, host: str, record: Optional[UpdateRecord],
                      now: int) -> Optional[str]:
        """Return the reason to hold off on updating, or ``None``"""
        if record is None or record.last_attempt is None:
            return None
        since = now - record.last_attempt
        min_interval = self.config.min_interval
        if min_interval is not None and since < min_interval:
            self.log.info("Skipping %s: last attempt %d seconds ago, "
                          "min-interval is %d", host, since, min_interval)
            return "rate-limited"
        min_error_interval = self.config.min_error_interval
        if (min_error_interval is not None and not record.succeeded() and
                since < min_error_interval):
            self.log.info("Skipping %s: last attempt failed %d seconds ago, "
                          "min-error-interval is %d", host, since,
                          min_error_interval)
            return "rate-limited after error"
        return None

    def _record_failure(self, host: str, ip: IPAddress,
                        record: Optional[UpdateRecord], now: int,
                        reason: str, error: Exception) -> Outcome:
        """Save a failed attempt, keeping the last good address and success
        time, and produce the FAILED outcome"""
        failed = UpdateRecord(
            ip=record.ip if record is not None else None,
            last_success=(record.last_success if record is not None
                          else None),
            last_attempt=now,
            status=f"failed: {reason}",
        )
        try:
            self.statefile.save(self.provider, host, failed)
        except StoreError as store_error:
            self.log.error("Could not record failed attempt for %s: %s",
                           host, store_error)
        return Outcome(host, self.provider, OutcomeKind.FAILED, ip,
                       reason=reason, error=error)

    def _update_host(self, host: str, ip: IPAddress) -> Outcome:
        """Take one host from loading its record to recording the result"""
        with _key_locks.get((self.provider, host)):
            now = int(self._clock())
            record = self.statefile.load(self.provider, host)

            if not self._needs_update(host, record, ip, now):
                self.log.debug("Skipping update of %s as %s is current",
                               host, ip.compressed)
                return Outcome(host, self.provider, OutcomeKind.UNCHANGED, ip)

            if not self.config.force:
                reason = self._rate_limited(host, record, now)
                if reason is not None:
                    return Outcome(host, self.provider, OutcomeKind.SKIPPED,
                                   ip, reason=reason)

            if self.config.test:
                self.log.warning("Test mode: would update %s to %s",
                                 host, ip.compressed)
                return Outcome(host, self.provider, OutcomeKind.SKIPPED, ip,
                               reason="test mode")

            try:
                self.updater.update_record(host, ip)
            except UpdateError as e:
                self.log.error("Failed to update %s to %s", host,
                               ip.compressed)
                return self._record_failure(host, ip, record, now, str(e), e)
            except Exception as e:
                reason = "unexpected error: " + redact(
                    f"{type(e).__name__}: {e}", self.updater.secrets)
                self.log.error("Failed to update %s to %s: %s", host,
                               ip.compressed, reason)
                return self._record_failure(host, ip, record, now, reason, e)

            warning = None
            try:
                self.statefile.save(self.provider, host,
                                    UpdateRecord(ip, now, now, 'good'))
            except StoreError as e:
                self.log.warning("%s was updated but the state file could "
                                 "not be written; the next run will update "
                                 "it again", host)
                warning = str(e)
            return Outcome(host, self.provider, OutcomeKind.UPDATED, ip,
                           warning=warning)
