""" Python implementation of tabtalk: addressed, forwarded and broadcast
    messaging between contexts that can only reach the contexts they spawned,
    or were spawned by.
"""

import logging

# Utility components.

from . import json
from . import config

logging.getLogger(__name__).addHandler(logging.NullHandler())
config.apply_log_level()

# Submodules used by multiple other components.

from . import protocol
from . import transport

# Primary public-facing interfaces.

from .session import PeerSession, Status
from .router import PeerRouter, Lookup

from . import begin
get = begin.get

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
