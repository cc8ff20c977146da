"""Convenience constructors for protocol envelopes.

One function per action, so the fields each action requires are decided in
exactly one place. The *sequence* argument is the next number from the
originator's :class:`~tabtalk.protocol.message.Sequence`.
"""

from __future__ import annotations

from typing import Any, Optional

from .fields import Action
from .message import Envelope


def ready(origin_type: str, origin_uuid: str, sequence: int, *, to: Optional[str] = None) -> Envelope:
    return Envelope(Action.READY, origin_type, origin_uuid, destination_uuid=to, sequence=sequence)


def closed(origin_type: str, origin_uuid: str, sequence: int, *, to: Optional[str] = None) -> Envelope:
    return Envelope(Action.CLOSED, origin_type, origin_uuid, destination_uuid=to, sequence=sequence)


def lookup(origin_type: str, origin_uuid: str, sequence: int, wanted: str, *, to: Optional[str] = None) -> Envelope:
    """The destination type is the type being looked for; *to* is the neighbor asked."""
    if wanted is None:
        raise ValueError("a lookup requires the type being looked for")
    return Envelope(Action.LOOKUP, origin_type, origin_uuid, destination_type=wanted, destination_uuid=to, sequence=sequence)


def found(origin_type: str, origin_uuid: str, sequence: int, uuid: str, type: str, *, to: Optional[str] = None) -> Envelope:
    data = {"uuid": uuid, "type": type}
    return Envelope(Action.LOOKUP_FOUND, origin_type, origin_uuid, destination_uuid=to, data=data, sequence=sequence)


def not_found(origin_type: str, origin_uuid: str, sequence: int, *, to: Optional[str] = None) -> Envelope:
    return Envelope(Action.LOOKUP_NOT_FOUND, origin_type, origin_uuid, destination_uuid=to, sequence=sequence)


def connect(origin_type: str, origin_uuid: str, sequence: int, destination_type: str, destination_uuid: str, hops=None) -> Envelope:
    """The hop list is filled in by each relay on the way to the destination."""
    return Envelope(Action.CONNECT, origin_type, origin_uuid, destination_type, destination_uuid, sequence=sequence, hops=hops)


def message(origin_type: str, origin_uuid: str, sequence: int, destination_type: Optional[str],
            destination_uuid: Optional[str], data: Any = None, authentication: Any = None) -> Envelope:
    return Envelope(Action.MESSAGE, origin_type, origin_uuid, destination_type, destination_uuid,
                    data=data, authentication=authentication, sequence=sequence)


def broadcast(origin_type: str, origin_uuid: str, sequence: int, data: Any = None, authentication: Any = None) -> Envelope:
    """The originator is the first entry in the hop list of a broadcast."""
    return Envelope(Action.BROADCAST, origin_type, origin_uuid, data=data, authentication=authentication,
                    sequence=sequence, hops=[origin_uuid])
