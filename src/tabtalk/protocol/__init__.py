from . import fields
from . import message
from . import wire
from . import factory

from .fields import Action
from .message import Envelope, Sequence
from .wire import EncodeError, DecodeError


"""
tabtalk Protocol Layer
======================

This package defines the transport-agnostic envelope exchanged between
tabtalk contexts: the action vocabulary, the envelope itself, and how it
is put on the wire.

The protocol layer MUST NOT depend on any transport implementation.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Router (tabtalk.router)
    Owns the session table; forwards, discovers, broadcasts

    │
    ▼
Session (tabtalk.session)
    One remote peer; direct handle or gateway session

    │
    ▼
Envelope Factory (factory.py)
    One constructor per action

    │
    ▼
Envelope Model (message.py)
    - Envelope
    - Sequence

    │
    ▼
Wire Codec (wire.py)
    Envelope <-> JSON bytes

    │
    ▼
Field Vocabulary (fields.py)
    Action enumeration, canonical wire key names

---------------------------------------------------------------------

Below the Protocol Layer (for context)
--------------------------------------

Transport Layer (tabtalk.transport)
    Moves frames exactly one hop
    - local (in-process)
    - ZeroMQ (process per context)

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
