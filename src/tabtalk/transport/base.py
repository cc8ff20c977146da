"""Transport interface.

This is the (small) contract that transport implementations should follow.
A transport moves envelopes exactly one hop: from a context to a context it
spawned, or to the context that spawned it. Everything further away is the
router's problem.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from ..protocol.message import Envelope


logger = logging.getLogger(__name__)


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportConnectionError(TransportError):
    """The requested handle is not a one-hop neighbor of this context."""


class TransportSpawnError(TransportError):
    """A new context could not be spawned from the requested locator."""


MESSAGE = "message"
UNLOAD = "unload"

events = (MESSAGE, UNLOAD)


class Transport(ABC):
    """Minimal contract for a one-hop transport.

    Subclasses implement the wire-level operations; event subscription is
    shared. Two events are emitted: ``message``, with the decoded envelope
    and the handle it arrived from, and ``unload``, with no arguments, when
    the local context is being torn down.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[Callable]] = {name: [] for name in events}
        self._handlers_lock = threading.Lock()

    # --- event subscription ---
    def subscribe(self, event: str, handler: Callable) -> None:
        if event not in self._handlers:
            raise ValueError(f"unknown transport event: {event!r}")
        with self._handlers_lock:
            self._handlers[event].append(handler)

    def unsubscribe(self, event: str, handler: Callable) -> None:
        with self._handlers_lock:
            try:
                self._handlers[event].remove(handler)
            except (KeyError, ValueError):
                pass

    def _emit(self, event: str, *args: Any) -> None:
        # Copy the list: handlers routinely unsubscribe themselves, or
        # subscribe new handlers, while being invoked.
        with self._handlers_lock:
            handlers = list(self._handlers[event])

        for handler in handlers:
            handler(*args)

    # --- wire-level operations ---
    @abstractmethod
    def send(self, envelope: Envelope, handle: Any) -> None:
        """Deliver a copy of *envelope* to the context behind *handle*."""

    @abstractmethod
    def spawn(self, locator: str) -> Any:
        """Start a new context from *locator* and return its handle."""

    @abstractmethod
    def parent(self) -> Optional[Any]:
        """Return the handle of the context that spawned this one, if any."""

    @abstractmethod
    def close(self) -> None:
        """Emit ``unload`` and stop delivering events."""
