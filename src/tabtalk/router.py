""" The :class:`PeerRouter` owns the identity of this context and its table
    of peer sessions. It receives every inbound envelope from the transport,
    forwards the ones addressed elsewhere, and handles the rest by action:
    handshakes, lookups, relayed connections, broadcasts and application
    messages.

    No context knows the global topology. A context knows its direct
    neighbors, can ask them whether they know a peer of a given type, and
    can reach such a peer through the neighbor that answered.
"""

import logging
import threading
import uuid as uuidmodule

from . import transport as transportmodule
from .protocol import factory
from .protocol.fields import Action
from .protocol.message import Sequence
from .session import PeerSession, Status, invoke, register_callback
from .transport import base
from .transport.events import EventManager

logger = logging.getLogger(__name__)


class PeerRouter:
    """ A :class:`PeerRouter` represents this context to its peers. The
        *type* is the role this context declares, for example 'main' or
        'viewer'; peers look each other up by type. The *transport* defaults
        to the one selected by :mod:`tabtalk.config`.

        Constructing a router subscribes it to the transport and, if this
        context was spawned by another one, immediately starts the handshake
        with that parent.

        :ivar sessions: Sessions whose peer uuid is known, keyed by uuid,
            in the order they were established.
        :ivar waiting: Sessions whose peer uuid is not known yet.
        :ivar opener: The session for the parent context, if any.
    """

    def __init__(self, type, transport=None, uuid=None):

        if transport is None:
            transport = transportmodule.default()

        if uuid is None:
            uuid = str(uuidmodule.uuid4())

        self.type = type
        self.uuid = uuid
        self.transport = transport

        self.sessions = dict()
        self.waiting = list()
        self.sequence = Sequence()

        self.message_callbacks = list()
        self.broadcast_callbacks = list()

        # Inbound events may arrive on a transport thread while the
        # application calls the public methods on its own thread. Dispatch
        # re-enters the public methods, hence the RLock.

        self.lock = threading.RLock()

        self.manager = EventManager()
        self.manager.add(transport, base.MESSAGE, self.dispatch)
        self.manager.add(transport, base.UNLOAD, self._unload)
        self.manager.create()

        self.opener = self.check_opener()


    def __repr__(self):
        return '<PeerRouter %s %s>' % (self.type, self.uuid)


    def register(self, method):
        """ Register a callback to be invoked as
            method(session, data, authentication) for every application
            message received from any peer. Callbacks registered on the
            session itself are invoked first.
        """

        register_callback(self.message_callbacks, method)


    def register_broadcast(self, method):
        """ Register a callback to be invoked as method(data, authentication)
            for every broadcast that reaches this context.
        """

        register_callback(self.broadcast_callbacks, method)


    def dispatch(self, envelope, source=None):
        """ Handle one inbound *envelope*, received from the neighbor behind
            the transport handle *source*. Routing failures are logged and the
            envelope dropped; nothing is raised.
        """

        with self.lock:
            destination = envelope.destination_uuid

            if destination is not None and destination != self.uuid:
                self._forward(envelope)
                return

            action = envelope.action

            if action == Action.READY:
                self._on_ready(envelope, source)
            elif action == Action.CLOSED:
                self._on_closed(envelope)
            elif action == Action.LOOKUP:
                self._on_lookup(envelope)
            elif action == Action.CONNECT:
                self._on_connect(envelope)
            elif action == Action.BROADCAST:
                self._on_broadcast(envelope)
            elif action == Action.MESSAGE:
                self._on_message(envelope)
            elif action == Action.LOOKUP_FOUND or action == Action.LOOKUP_NOT_FOUND:
                # Consumed by whichever Lookup is collecting responses.
                logger.debug('%r lookup response from %s', self, envelope.origin_uuid)
            else:
                logger.warning('%r unknown message action %r from %s', self, action, envelope.origin_uuid)


    def _forward(self, envelope):

        envelope.hops.append(self.uuid)
        session = self.sessions.get(envelope.destination_uuid)

        if session is None:
            logger.warning('%r unknown destination, cannot forward %r', self, envelope)
            return

        logger.debug('%r forwarding %r', self, envelope)
        session.send(envelope)


    def _on_ready(self, envelope, source):

        origin = envelope.origin_uuid
        session = self.sessions.get(origin)

        if session is None:
            for candidate in self.waiting:
                if source is not None and candidate.handle is source:
                    session = candidate
                    break
                if candidate.uuid is not None and candidate.uuid == origin:
                    session = candidate
                    break

        if session is None:
            logger.warning('%r READY from unknown peer %s', self, origin)
            return

        session._ready(envelope)


    def _on_closed(self, envelope):

        session = self.sessions.get(envelope.origin_uuid)

        if session is None:
            logger.warning('%r unknown closed origin session %s', self, envelope.origin_uuid)
            return

        session._closed()
        self._remove(session)

        # Peers relayed through the departed one are no longer reachable.

        for relayed in tuple(self.sessions.values()):
            if relayed.gateway is session:
                relayed._closed()
                self._remove(relayed)


    def _on_lookup(self, envelope):

        wanted = envelope.destination_type
        match = None

        for session in self.sessions.values():
            if session.uuid == envelope.origin_uuid:
                continue
            if session.type == wanted:
                match = session
                break

        # The answer is addressed, so that a relayed requester gets it
        # forwarded rather than consumed by its gateway.

        origin = envelope.origin_uuid

        if match is None:
            response = factory.not_found(self.type, self.uuid, self.sequence.next(), to=origin)
        else:
            response = factory.found(self.type, self.uuid, self.sequence.next(), match.uuid, match.type, to=origin)

        requester = self.sessions.get(envelope.origin_uuid)

        if requester is None:
            logger.warning('%r unknown lookup origin session %s', self, envelope.origin_uuid)
            return

        requester.send(response)


    def _on_connect(self, envelope):

        if len(envelope.hops) == 0:
            logger.warning('%r CONNECT without a hop list, dropping %r', self, envelope)
            return

        gateway_uuid = envelope.hops.pop()
        gateway = self.sessions.get(gateway_uuid)

        if gateway is None:
            logger.error('%r CONNECT received, but the gateway %s is unknown', self, gateway_uuid)
            return

        session = PeerSession(self, envelope.origin_uuid, envelope.origin_type)
        session.relay(gateway)
        self._register(session)
        session.wait_ready()
        session.acknowledge()


    def _on_broadcast(self, envelope):

        data = envelope.data
        authentication = envelope.authentication

        invoke(self.broadcast_callbacks, data, authentication)

        envelope.hops.append(self.uuid)

        for session in tuple(self.sessions.values()):
            if session.uuid == envelope.origin_uuid:
                continue
            if session.uuid in envelope.hops:
                continue

            # A relayed peer is reached through its gateway, which receives
            # its own copy; writing the broadcast once per link is enough.

            if session.handle is not None:
                session.send(envelope)

            session._broadcast(data, authentication)


    def _on_message(self, envelope):

        session = self.sessions.get(envelope.origin_uuid)

        if session is None:
            logger.warning('%r unknown origin session %s', self, envelope.origin_uuid)
            return

        data = envelope.data
        authentication = envelope.authentication

        session._receive(data, authentication)
        invoke(self.message_callbacks, session, data, authentication)


    def _register(self, session):

        try:
            self.waiting.remove(session)
        except ValueError:
            pass

        existing = self.sessions.get(session.uuid)
        if existing is not None and existing is not session:
            logger.warning('%r replacing %r with %r', self, existing, session)

        self.sessions[session.uuid] = session


    def _remove(self, session):

        try:
            self.waiting.remove(session)
        except ValueError:
            pass

        if session.uuid is not None and self.sessions.get(session.uuid) is session:
            del self.sessions[session.uuid]


    def attach(self, handle):
        """ Start a session with the context behind a transport *handle* that
            this context did not spawn itself, such as its parent. The
            session announces itself and waits for the peer's READY.
        """

        with self.lock:
            session = PeerSession(self)
            session.bind(handle)
            self.waiting.append(session)
            session.acknowledge()
            session.wait_ready()

        return session


    def check_opener(self):
        """ If this context was spawned by another one, start the reciprocal
            session with it. Returns that session, or None if this context
            has no parent.
        """

        parent = self.transport.parent()

        if parent is None:
            return None

        return self.attach(parent)


    def open_session(self, locator=None, type=None):
        """ Return a session with a peer of the requested *type*. An existing
            session of that type is returned as-is. Otherwise the neighbors
            are asked whether they know such a peer: if one does, a relayed
            session is established through it; if none does, a new context is
            spawned from *locator*, if one was provided.

            The session is returned immediately, typically before it is
            READY; register callbacks on it to learn when messages arrive.
        """

        with self.lock:
            existing = self.get_session(type)

            if existing is not None:
                logger.debug('%r a session of the type %s already exists', self, type)
                return existing

            session = PeerSession(self, type=type)
            session.locator = locator
            self.waiting.append(session)

            def finish(gateway, uuid=None, found_type=None):
                self._opened(session, locator, gateway, uuid, found_type)

            if type is None:
                finish(None)
            else:
                self.lookup(type, finish)

        return session


    def _opened(self, session, locator, gateway, uuid, type):

        if session.status == Status.CLOSED:
            return

        if gateway is not None:
            session.relay(gateway)
            session.uuid = uuid
            session.type = type
            session.wait_ready()
            self._register(session)
            session.connect()
            return

        if locator is None:
            logger.info('%r no peer of type %s found, and no locator to spawn one', self, session.type)
            self._remove(session)
            return

        try:
            handle = self.transport.spawn(locator)
        except base.TransportError:
            logger.exception('%r cannot spawn %r', self, locator)
            self._remove(session)
            return

        session.bind(handle)
        session.wait_ready()


    def lookup(self, type, on_finish=None):
        """ Ask every neighbor whether it has a session with a peer of the
            requested *type*. *on_finish* is invoked exactly once: as
            on_finish(gateway, uuid, type) for the first neighbor that finds
            one, or as on_finish(None) once every neighbor has answered
            without finding one. With no neighbors at all it is invoked
            before :func:`lookup` returns.

            Returns the :class:`Lookup`, which can be polled or waited on.
        """

        lookup = Lookup(self, type, on_finish)

        with self.lock:
            lookup._start()

        return lookup


    def broadcast(self, data, authentication=None):
        """ Send *data* to every context reachable from this one. Each context
            forwards it to its own neighbors, skipping any already in the hop
            list.
        """

        with self.lock:
            envelope = factory.broadcast(self.type, self.uuid, self.sequence.next(), data, authentication)

            for session in tuple(self.sessions.values()):
                if session.handle is not None:
                    session.send(envelope)


    def close_all(self):
        """ Close every session, established or not.
        """

        with self.lock:
            sessions = list(self.sessions.values()) + list(self.waiting)

            for session in sessions:
                session.close()


    def dispose(self):
        """ Close every session and stop receiving events. The router is not
            usable afterwards.
        """

        with self.lock:
            self.close_all()
            self.manager.destroy()


    def _unload(self):
        logger.debug('%r context is unloading', self)
        self.dispose()


    def get_session(self, type):
        """ Return the first session, established or still waiting, with a
            peer of the requested *type*, or None.
        """

        for session in self.sessions.values():
            if session.type == type:
                return session

        for session in self.waiting:
            if session.type == type:
                return session

        return None


    def session_exists(self, type):
        return self.get_session(type) is not None


    def log_sessions(self):
        """ Log, and return, one line per known session: its uuid, its type,
            and the uuid of its gateway or '*' if it is directly reachable.
        """

        lines = list()

        for session in self.sessions.values():
            if session.gateway is None:
                via = '*'
            else:
                via = session.gateway.uuid

            lines.append('%s | %s -> %s' % (session.uuid, session.type, via))

        logger.info('%r list of known sessions:', self)
        for line in lines:
            logger.info('     %s', line)

        return lines


# end of class PeerRouter



class Lookup:
    """ One scatter/gather lookup. A LOOKUP is sent to every neighbor, and
        a temporary subscription on the transport collects the answers, one
        per neighbor; the subscription is torn down when the last answer
        arrives. There is no timeout: :func:`wait` stops waiting, it does
        not stop the lookup.

        :ivar result: None while pending or if nothing was found, otherwise
            a (gateway, uuid, type) tuple.
    """

    def __init__(self, router, type, on_finish=None):

        self.router = router
        self.type = type
        self.on_finish = on_finish

        self.pending = set()
        self.sent = 0
        self.received = 0
        self.found = False
        self.result = None

        self.event = threading.Event()
        self.manager = EventManager()


    def __repr__(self):
        return '<Lookup %s %d/%d found=%s>' % (self.type, self.received, self.sent, self.found)


    def poll(self):
        """ Return True once the outcome of the lookup is known, otherwise
            return False. A successful lookup is known as soon as the first
            neighbor finds a match, even if other answers are outstanding.
        """

        return self.event.is_set()


    def wait(self, timeout=None):
        """ Block until the lookup completes or *timeout* seconds elapse.
            The result is returned, which is None if nothing was found or
            the lookup is still pending.
        """

        self.event.wait(timeout)
        return self.result


    def _start(self):

        router = self.router
        sessions = tuple(router.sessions.values())

        if len(sessions) == 0:
            logger.debug('%r no session available to run lookup', router)
            self._finish(None)
            return

        # The collector is attached before anything is sent; a threaded
        # transport could otherwise deliver an answer before anyone is
        # listening for it.

        self.pending = set(session.uuid for session in sessions)
        self.sent = len(sessions)
        self.manager.add(router.transport, base.MESSAGE, self._collect)
        self.manager.create()

        # Each lookup is addressed to the session it asks; a relayed peer
        # would otherwise be answered for by its gateway.

        for session in sessions:
            envelope = factory.lookup(router.type, router.uuid, router.sequence.next(), self.type, to=session.uuid)
            logger.debug('%r send lookup for %s to %s', router, self.type, session.uuid)
            session.send(envelope)


    def _collect(self, envelope, source=None):

        action = envelope.action

        if action != Action.LOOKUP_FOUND and action != Action.LOOKUP_NOT_FOUND:
            return

        router = self.router

        if envelope.destination_uuid is not None and envelope.destination_uuid != router.uuid:
            return

        with router.lock:
            origin = envelope.origin_uuid

            if origin not in self.pending:
                return

            self.pending.discard(origin)
            self.received += 1

            if action == Action.LOOKUP_FOUND and self.found == False:
                gateway = router.sessions.get(origin)
                data = envelope.data or dict()

                if gateway is not None:
                    self.found = True
                    self._finish(gateway, data.get('uuid'), data.get('type'))

            if self.received == self.sent:
                self.manager.destroy()

                if self.found == False:
                    self._finish(None)


    def _finish(self, gateway, uuid=None, type=None):

        if gateway is None:
            self.result = None
        else:
            self.result = (gateway, uuid, type)

        self.event.set()

        if self.on_finish is None:
            return

        if gateway is None:
            invoke((self.on_finish,), None)
        else:
            invoke((self.on_finish,), gateway, uuid, type)


# end of class Lookup


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
