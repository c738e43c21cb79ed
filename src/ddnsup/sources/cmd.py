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

"""ddnsup source that runs a command and reads the address from its output"""

import subprocess
from typing import List

from ddnsup.configuration import Config, DEFAULT_TIMEOUT
from ddnsup.exceptions import ConfigError, SourceError
from .source import Source


class CommandSource(Source):
    """ddnsup source that runs a shell command and uses the first
    whitespace-separated token of its standard output as the address

    :param cmd: The command to run (passed to the shell)
    :param timeout: Maximum number of seconds the command may run
    """

    def __init__(self, cmd: str, timeout: float = DEFAULT_TIMEOUT):
        super().__init__('cmd', timeout)
        self.cmd = cmd

    @classmethod
    def from_config(cls, config: Config) -> List[Source]:
        if not config.cmd:
            raise ConfigError("'cmd' config option is required to detect the "
                              "IP address with a command")
        timeout = config.timeout if config.timeout is not None \
            else DEFAULT_TIMEOUT
        return [cls(config.cmd, timeout)]

    def check(self, timeout: float) -> str:
        self.log.debug("Running IP address command")
        try:
            result = subprocess.run(self.cmd, shell=True,
                                    stdout=subprocess.PIPE,
                                    stderr=subprocess.PIPE,
                                    universal_newlines=True,
                                    timeout=timeout)
        except subprocess.TimeoutExpired:
            self.log.info("Command timed out after %.1f seconds", timeout)
            raise SourceError(f"command timed out after {timeout:.1f}s"
                              ) from None
        except OSError as e:
            self.log.info("Could not run command: %s", e)
            raise SourceError(f"could not run command: {e.strerror}") from e

        if result.returncode != 0:
            self.log.info("Command exited with status %d: %s",
                          result.returncode, result.stderr.strip())
            raise SourceError(f"command exited with status "
                              f"{result.returncode}")

        tokens = result.stdout.split()
        return tokens[0] if tokens else ''
