"""Built in updaters and the updater base class"""

from .updater import Updater

from . import cloudflare
from . import duckdns
from . import freedns
from . import gandi
from . import he
from . import nsupdate
from . import standard

updaters = {
    'cloudflare': cloudflare.CloudflareUpdater,
    'duckdns': duckdns.DuckDNSUpdater,
    'dyndns2': standard.StandardUpdater,
    'freedns': freedns.FreeDNSUpdater,
    'gandi': gandi.GandiUpdater,
    'he': he.HEUpdater,
    'noip': standard.NoIPUpdater,
    'nsupdate': nsupdate.NSUpdateUpdater,
}

#: Alternate names accepted for the ``protocol`` option
aliases = {
    'dyndns': 'dyndns2',
    'standard': 'dyndns2',
    'no-ip': 'noip',
    'hurricane': 'he',
    'hurricaneelectric': 'he',
}

__all__ = ['Updater']
