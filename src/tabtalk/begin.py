""" Implementation of the top-level :func:`get` method. This is intended to be
    the principal entry point for an application that hosts a single context
    per process.
"""

import threading

from .router import PeerRouter


_cache = dict()
_cache_lock = threading.Lock()


def _clear(type):
    """ Clear any cached :class:`tabtalk.PeerRouter` for *type*. Returns None
        if nothing was cleared; otherwise the removed router is returned, so
        that the caller can dispose of it.
    """

    with _cache_lock:
        try:
            existing = _cache[type]
        except KeyError:
            return

        del _cache[type]

    return existing



def get(type, transport=None):
    """ Return the :class:`tabtalk.PeerRouter` representing this process as a
        context of the requested *type*, creating it on first use with the
        supplied *transport*, or the configured default transport.

        If the caller always uses :func:`get` to retrieve a router they will
        always receive the same instance for a given *type*; a *transport*
        supplied after the router exists is ignored.
    """

    if type is None:
        raise ValueError('the context type must be specified')

    type = str(type)

    with _cache_lock:
        try:
            router = _cache[type]
        except KeyError:
            router = PeerRouter(type, transport)
            _cache[type] = router

    return router


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
