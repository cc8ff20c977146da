"""ZMQ multipart framing for protocol envelopes.

PAIR (parent <-> child)
    version, envelope_json
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ...protocol import wire
from ...protocol.message import Envelope


# Bumped whenever the envelope record changes incompatibly.

PROTOCOL_VERSION = b"1"


def to_frames(envelope: Envelope) -> Tuple[bytes, ...]:
    """Encode an envelope to ZMQ multipart frames."""

    return (PROTOCOL_VERSION, wire.pack(envelope))


def from_frames(parts: Sequence[bytes]) -> Envelope:
    """Decode ZMQ multipart frames into an envelope.

    Raises :class:`tabtalk.protocol.wire.DecodeError` on a version mismatch
    or a malformed message.
    """

    if len(parts) != 2:
        raise wire.DecodeError(f"expected 2 frames, received {len(parts)}")

    their_version = parts[0]
    if their_version != PROTOCOL_VERSION:
        raise wire.DecodeError(
            f"message is tabtalk protocol {their_version!r}, recipient expects {PROTOCOL_VERSION!r}"
        )

    return wire.unpack(parts[1])
