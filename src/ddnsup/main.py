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

import argparse
import logging
import logging.handlers
import os.path
import sys
from typing import List

from . import configuration, manager
from .configuration import Config
from .exceptions import ConfigError


def _interval(value: str) -> int:
    try:
        return configuration.parse_interval(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def parse_args(argv):
    """Parse command line arguments

    :param argv: Either ``None`` or a list of arguments
    :returns: a :class:`argparse.Namespace` containing the parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="ddnsup",
        description="Update dynamic DNS records with the current public IP "
                    "address",
        epilog="Run periodically (e.g. from cron or a systemd timer) to keep "
               "records current. Exits 0 on success, 1 if any host failed, "
               "and 2 on configuration errors.",
    )
    parser.add_argument("-f", "--file", default=None,
                        help="Path to the config file (default: "
                             f"{configuration.DEFAULT_CONFIG_FILE}, if it "
                             "exists)")

    provider = parser.add_argument_group("provider")
    provider.add_argument("--protocol", help="Provider protocol, e.g. "
                                             "dyndns2 or cloudflare")
    provider.add_argument("--login", help="Username, email, or key name")
    provider.add_argument("--password", help="Password, token, or API key")
    provider.add_argument("--server", help="Provider server or base URL")
    provider.add_argument("--zone", help="DNS zone containing the hosts")
    provider.add_argument("--host", help="Host(s) to update, comma "
                                         "separated")
    provider.add_argument("--ttl", type=int, help="Record TTL, in seconds")

    address = parser.add_argument_group("address detection")
    address.add_argument("--ip", help="Use this address instead of "
                                      "detecting it")
    address.add_argument("--use", help="Detection methods to try in order, "
                                       "comma separated (web, if, cmd, dns)")
    address.add_argument("--web", help="URL(s) for web detection, comma "
                                       "separated")
    address.add_argument("--if", dest="if_name",
                         help="Interface for interface detection")
    address.add_argument("--cmd", help="Command for command detection")

    behavior = parser.add_argument_group("update behavior")
    behavior.add_argument("--cache", help="Path to the state file")
    behavior.add_argument("--force", action="store_true",
                          help="Update even if the address has not changed")
    behavior.add_argument("--test", action="store_true",
                          help="Show what would be updated without "
                               "contacting providers")
    behavior.add_argument("--min-interval", type=_interval,
                          help="Minimum time between update attempts")
    behavior.add_argument("--max-interval", type=_interval,
                          help="Maximum time between successful updates")
    behavior.add_argument("--min-error-interval", type=_interval,
                          help="Minimum time between attempts after a "
                               "failure")

    logs = parser.add_argument_group("logging")
    verbosity = logs.add_mutually_exclusive_group()
    verbosity.add_argument("-q", "--quiet", action="store_true",
                           help="Only log errors")
    verbosity.add_argument("-v", "--verbose", action="store_true",
                           help="Log what is being done")
    verbosity.add_argument("-d", "--debug", action="store_true",
                           help="Increase verbosity of logging significantly")
    destination = logs.add_mutually_exclusive_group()
    destination.add_argument("-s", "--stderr", action="store_true",
                             help="Log to stderr (the default)")
    destination.add_argument("--logfile",
                             help="Log to this file, or 'syslog'")
    return parser.parse_args(argv)


def overrides_from_args(args) -> Config:
    """Collect the command line options that override the config file"""
    return Config(
        protocol=args.protocol,
        login=args.login,
        password=args.password,
        server=args.server,
        zone=args.zone,
        hosts=configuration.split_hosts(args.host) if args.host else (),
        ttl=args.ttl,
        ip=args.ip,
        force=args.force,
        min_interval=args.min_interval,
        max_interval=args.max_interval,
        min_error_interval=args.min_error_interval,
        use=args.use,
        web=args.web,
        if_name=args.if_name,
        cmd=args.cmd,
        cache=args.cache,
        test=args.test,
    )


def build_configs(args) -> List[Config]:
    """Read the config file, if any, and apply the command line over it.

    When the command line names a host or protocol, it describes a single
    run, so it is merged over the first config file block only. Otherwise
    every block is run, each with the command line options applied.

    :raises ConfigError: if the config file is invalid or unreadable
    """
    if args.file is not None:
        file_configs = configuration.load_configs(args.file)
    elif os.path.exists(configuration.DEFAULT_CONFIG_FILE):
        file_configs = configuration.load_configs(
            configuration.DEFAULT_CONFIG_FILE)
    else:
        file_configs = []

    overrides = overrides_from_args(args)
    if overrides.hosts or overrides.protocol or not file_configs:
        base = file_configs[0] if file_configs else Config()
        return [base.merge(overrides)]
    return [config.merge(overrides) for config in file_configs]


def setup_logging(args) -> logging.Logger:
    """Attach a handler to the ``ddnsup`` logger according to the command
    line"""
    if args.logfile == 'syslog':
        log_handler = logging.handlers.SysLogHandler(address='/dev/log')
        log_handler.setFormatter(logging.Formatter(
            'ddnsup[%(process)d]: %(name)s: %(message)s'))
    elif args.logfile and args.logfile != 'stderr':
        log_handler = logging.FileHandler(args.logfile)
        log_handler.setFormatter(logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s'))
    else:
        log_handler = logging.StreamHandler()
        log_handler.setFormatter(logging.Formatter(
            '%(levelname)s %(name)s: %(message)s'))
    log = logging.getLogger('ddnsup')
    log.addHandler(log_handler)

    if args.debug:
        log.setLevel(logging.DEBUG)
    elif args.verbose:
        log.setLevel(logging.INFO)
    elif args.quiet:
        log.setLevel(logging.ERROR)
    else:
        log.setLevel(logging.WARNING)
    return log


def main(argv=None):
    """Main entry point when run as a standalone program

    :param argv: List of arguments. If ``None``, read :data:`sys.argv`.
    """
    args = parse_args(argv)
    log = setup_logging(args)

    try:
        configs = build_configs(args)
        ddns_manager = manager.DDNSManager(configs)
        outcomes = ddns_manager.run()
    except ConfigError as e:
        print("Config error:", e, file=sys.stderr)
        sys.exit(manager.EXIT_CONFIG)

    for outcome in outcomes:
        print(outcome)

    status = manager.exit_status(outcomes)
    if status != manager.EXIT_OK:
        log.error("One or more hosts failed to update")
    sys.exit(status)
