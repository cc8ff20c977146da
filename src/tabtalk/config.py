""" Process-wide configuration for tabtalk. Everything here is read from the
    environment once, at import time; the values are plain module attributes
    so that applications and tests can override them before constructing a
    :class:`tabtalk.PeerRouter`.
"""

import logging
import os


# Which transport backend :func:`tabtalk.transport.default` will hand out.
# 'local' keeps every context inside this interpreter; 'zmq' treats every
# context as an operating-system process.

transport = os.environ.get('TABTALK_TRANSPORT', 'local').lower()

# The ZeroMQ transport tells a spawned child where its parent is listening
# by way of this environment variable. A context started by hand will not
# have it set, and therefore has no parent.

parent_variable = 'TABTALK_PARENT'
parent = os.environ.get(parent_variable)

# Interface the ZeroMQ transport binds its per-child sockets to. Contexts
# only ever talk to their own parent and children, which in practice means
# the same host.

address = os.environ.get('TABTALK_ADDRESS', '127.0.0.1')

# Optional level for the 'tabtalk' logger hierarchy. The library never
# installs handlers of its own; this only adjusts the threshold.

log_level = os.environ.get('TABTALK_LOG')


def apply_log_level(level=None):
    """ Set the threshold of the 'tabtalk' logger to *level*, or to the
        configured :data:`log_level` if *level* is not specified. Returns
        the logger.
    """

    if level is None:
        level = log_level

    logger = logging.getLogger('tabtalk')

    if level is None or level == '':
        return logger

    if isinstance(level, str):
        level = level.upper()

    try:
        logger.setLevel(level)
    except (TypeError, ValueError):
        logger.warning('ignoring invalid tabtalk log level: %r', level)

    return logger


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
