"""ZeroMQ transport: one operating-system process per context."""

from . import framing
from .pair import Link, Transport
