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

"""ddnsup, a dynamic DNS record updater

Top-level module, containing classes and objects useful to custom updaters
and to programs embedding ddnsup.
"""

from .configuration import (Config, read_config, load_config, load_configs,
                            USER_AGENT)
from .exceptions import (DdnsupException, ConfigError, SourceError,
                         ResolveError, UpdateError, StoreError)
from .statefile import StateFile, UpdateRecord
from .sources import Source
from .resolver import IPResolver, ResolvedIP
from .updaters import Updater
from .orchestrator import Outcome, OutcomeKind, UpdateOrchestrator
from .manager import DDNSManager, get_updater_class, exit_status
