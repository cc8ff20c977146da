from __future__ import annotations

from .. import json
from .message import Envelope


class EncodeError(ValueError):
    """The envelope contains something that cannot be put on the wire."""


class DecodeError(ValueError):
    """The bytes received do not describe a valid envelope."""


def pack(envelope: Envelope) -> bytes:
    """
    Serialize Envelope -> bytes

    The frame is the compact JSON encoding of :func:`Envelope.to_dict`.
    Functions, cyclic structures and other values without a JSON
    representation raise :class:`EncodeError`.
    """

    record = envelope.to_dict()

    try:
        return json.dumps(record)
    except json.errors as exc:
        raise EncodeError(f"cannot encode {envelope!r}: {exc}") from exc


def unpack(frame: bytes) -> Envelope:
    """
    Deserialize bytes -> Envelope
    """

    try:
        record = json.loads(frame)
    except json.errors as exc:
        raise DecodeError(f"frame is not valid JSON: {exc}") from exc

    if not isinstance(record, dict):
        raise DecodeError(f"frame is not a JSON object: {type(record).__name__}")

    try:
        return Envelope.from_dict(record)
    except KeyError as exc:
        raise DecodeError(str(exc)) from exc
