"""ZeroMQ process-per-context transport.

Every spawned child gets a dedicated PAIR socket, bound to a random port on
the parent's side; the endpoint is handed to the child process through the
``TABTALK_PARENT`` environment variable, and the child connects its own PAIR
socket to it. A context therefore only ever holds sockets to its parent and
its children, which is exactly the one-hop reach the router expects.

All socket activity happens on one background thread per transport. Other
threads hand work to it through a queue plus an inproc signal socket, the
same arrangement the request client uses to keep a ZeroMQ socket on a single
thread.
"""

from __future__ import annotations

import atexit
import logging
import os
import queue
import subprocess
import sys
import threading
from typing import Dict, List, Optional, Sequence

import zmq

from ... import config
from .. import base
from ...protocol import wire
from ...protocol.message import Envelope
from .framing import from_frames, to_frames


logger = logging.getLogger(__name__)
zmq_context = zmq.Context()


class Link:
    """One PAIR socket to a neighbor context; this is the transport handle."""

    def __init__(self, socket: zmq.Socket, endpoint: str, locator: Optional[str] = None,
                 process: Optional[subprocess.Popen] = None):
        self.socket = socket
        self.endpoint = endpoint
        self.locator = locator
        self.process = process

    def __repr__(self) -> str:
        if self.locator is None:
            return f"<Link {self.endpoint}>"
        return f"<Link {self.endpoint} {self.locator}>"


class Transport(base.Transport):
    """Move envelopes between this process and its parent and children."""

    poll_interval = 1000    # milliseconds
    linger = 200            # milliseconds to flush pending frames on close

    def __init__(self, parent: Optional[str] = None, address: Optional[str] = None):
        base.Transport.__init__(self)

        self.address = address or config.address
        self.links: List[Link] = []
        self.closed = False

        self._outbox = queue.SimpleQueue()

        internal = f"inproc://tabtalk.zmq.Transport:signal:{id(self)}"
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.connect(internal)
        self._signal_lock = threading.Lock()

        if parent is None:
            parent = config.parent

        self._parent: Optional[Link] = None

        if parent:
            socket = self._socket()
            socket.connect(parent)
            self._parent = Link(socket, parent)
            self._add(self._parent)

        self.thread = threading.Thread(target=self.run, daemon=True)
        self.thread.start()

        atexit.register(self.close)

    def __repr__(self) -> str:
        return f"<zmq.Transport {id(self):x} links={len(self.links)}>"

    def _socket(self) -> zmq.Socket:
        socket = zmq_context.socket(zmq.PAIR)
        socket.setsockopt(zmq.LINGER, self.linger)
        return socket

    def _signal(self, command: str, link: Optional[Link] = None, frames: Sequence[bytes] = ()) -> None:
        self._outbox.put((command, link, frames))

        # The inproc socket is not thread-safe; several application threads
        # may be sending at once.
        with self._signal_lock:
            self._signal_tx.send(b"")

    def _add(self, link: Link) -> None:
        self.links.append(link)
        self._signal("add", link)

    def _remove(self, link: Link) -> None:
        self.links.remove(link)
        self._signal("remove", link)

    # --- transport contract ---
    def send(self, envelope: Envelope, handle: Link) -> None:
        if handle not in self.links:
            raise base.TransportConnectionError(f"{handle!r} is not a neighbor of {self!r}")

        if self.closed:
            logger.debug("%r is closed, not sending %r", self, envelope)
            return

        self._signal("send", handle, to_frames(envelope))

    def listen(self, locator: Optional[str] = None) -> Link:
        """Open a socket for one new child context to connect to.

        The returned link is a neighbor immediately, but frames sent to it
        before the child connects to ``link.endpoint`` are dropped, with a
        warning. A child announces itself with READY once connected.
        """

        socket = self._socket()

        try:
            port = socket.bind_to_random_port(f"tcp://{self.address}")
        except zmq.ZMQError as exc:
            socket.close()
            raise base.TransportSpawnError(f"no port available on {self.address}") from exc

        link = Link(socket, f"tcp://{self.address}:{port}", locator)
        self._add(link)
        return link

    def spawn(self, locator: str) -> Link:
        """Run ``python -m locator`` as a child context."""

        link = self.listen(locator)

        environment = dict(os.environ)
        environment[config.parent_variable] = link.endpoint

        arguments = [sys.executable, "-m", locator]

        try:
            link.process = subprocess.Popen(arguments, env=environment)
        except OSError as exc:
            self._remove(link)
            raise base.TransportSpawnError(f"cannot spawn {locator!r}: {exc}") from exc

        logger.debug("spawned %r as pid %d", link, link.process.pid)
        return link

    def parent(self) -> Optional[Link]:
        return self._parent

    def close(self) -> None:
        if self.closed:
            return

        # Unload handlers still get to say goodbye: anything they send is
        # queued ahead of the stop command.
        self._emit(base.UNLOAD)
        self.closed = True
        self._signal("stop")

        if threading.current_thread() is not self.thread:
            self.thread.join(self.poll_interval / 1000.0 * 2)

    # --- internal ---
    def _handle_incoming(self, link: Link, parts: Sequence[bytes]) -> None:
        try:
            envelope = from_frames(parts)
        except wire.DecodeError:
            logger.warning("discarding undecodable frames from %r", link, exc_info=True)
            return

        try:
            self._emit(base.MESSAGE, envelope, link)
        except Exception:
            # The poll thread is the only thread delivering to this context;
            # it has to survive a misbehaving handler.
            logger.exception("unhandled error dispatching %r from %r", envelope, link)

    def _shutdown(self, poller: zmq.Poller, sockets: Dict[zmq.Socket, Link]) -> None:
        for socket in list(sockets):
            poller.unregister(socket)
            socket.close()

        self._signal_rx.close()
        self._signal_tx.close()

    def run(self) -> None:
        poller = zmq.Poller()
        poller.register(self._signal_rx, zmq.POLLIN)
        sockets: Dict[zmq.Socket, Link] = {}

        while True:
            for active, _flag in poller.poll(self.poll_interval):
                if active == self._signal_rx:
                    self._signal_rx.recv(flags=zmq.NOBLOCK)
                    command, link, frames = self._outbox.get(block=False)

                    if command == "add":
                        poller.register(link.socket, zmq.POLLIN)
                        sockets[link.socket] = link
                    elif command == "remove":
                        if link.socket in sockets:
                            poller.unregister(link.socket)
                            del sockets[link.socket]
                        link.socket.close()
                    elif command == "send":
                        try:
                            link.socket.send_multipart(frames, flags=zmq.NOBLOCK)
                        except zmq.Again:
                            logger.warning("%r is not accepting frames, envelope dropped", link)
                    elif command == "stop":
                        self._shutdown(poller, sockets)
                        return
                else:
                    link = sockets[active]
                    parts = active.recv_multipart()
                    self._handle_incoming(link, parts)


def _cleanup() -> None:
    zmq_context.destroy(linger=0)


atexit.register(_cleanup)
