"""Transport layer implementations."""

from .. import config

from .base import (
    Transport,
    TransportError,
    TransportConnectionError,
    TransportSpawnError,
)
from .events import EventManager
from . import local
from . import zmq


def default():
    """ Return a new transport for this context, using the backend selected
        by :data:`tabtalk.config.transport`.
    """

    backend = config.transport

    if backend == "local":
        return local.hub.transport()
    elif backend == "zmq":
        return zmq.Transport()
    else:
        raise ValueError(f"unknown TABTALK_TRANSPORT backend: {backend!r}")
