""" The :class:`PeerSession` is one context's view of a single remote peer.
    A session is either bound directly to a transport handle, or relayed
    through exactly one other session (its gateway) owned by the same
    :class:`tabtalk.PeerRouter`.
"""

import collections
import enum
import logging

from .protocol import factory
from .transport.base import TransportConnectionError

logger = logging.getLogger(__name__)


class Status(enum.Enum):
    CONNECTING = 'CONNECTING'
    WAITING_READY = 'WAITING_READY'
    READY = 'READY'
    CLOSED = 'CLOSED'


def invoke(callbacks, *args):
    """ Invoke every callable in *callbacks* with the supplied arguments, in
        order. An exception raised by one callback is logged and does not
        prevent the remaining callbacks from running.
    """

    for callback in tuple(callbacks):
        try:
            callback(*args)
        except Exception:
            logger.exception('callback %r raised an exception', callback)
            continue


def register_callback(callbacks, method):
    if callable(method):
        pass
    else:
        raise TypeError('the registered method must be callable')

    callbacks.append(method)



class PeerSession:
    """ A session moves through CONNECTING, WAITING_READY, READY and finally
        CLOSED. Application messages sent with :func:`send_message` before
        the session is READY are held, and released in order when the
        remote peer confirms it is live.

        Sessions are created by the :class:`tabtalk.PeerRouter`; the *uuid*
        and *type* of the peer may not be known until its READY arrives.

        :ivar handle: The transport handle of a directly reachable peer.
        :ivar gateway: The :class:`PeerSession` relaying for this peer.
        :ivar locator: What the peer context was spawned from, if anything.
        :ivar messages: Every (data, authentication) pair received.
    """

    def __init__(self, router, uuid=None, type=None):

        self.router = router
        self.uuid = uuid
        self.type = type
        self.status = Status.CONNECTING

        self.handle = None
        self.gateway = None
        self.locator = None
        self.acknowledged = False

        self.messages = collections.deque()
        self.outbox = list()

        self.message_callbacks = list()
        self.broadcast_callbacks = list()
        self.close_callbacks = list()


    def __repr__(self):
        if self.gateway is None:
            via = '*'
        else:
            via = self.gateway.uuid

        return '<PeerSession %s %s via %s %s>' % (self.type, self.uuid, via, self.status.name)


    def register(self, method):
        """ Register a callback to be invoked as method(data, authentication)
            whenever an application message arrives from this peer.
        """

        register_callback(self.message_callbacks, method)


    def register_broadcast(self, method):
        """ Register a callback to be invoked as method(data, authentication)
            whenever a broadcast is forwarded to this peer.
        """

        register_callback(self.broadcast_callbacks, method)


    def register_close(self, method):
        """ Register a callback to be invoked with no arguments when the peer
            announces that it has closed.
        """

        register_callback(self.close_callbacks, method)


    def bind(self, handle):
        """ Reach this peer directly through the transport *handle*.
        """

        self.handle = handle
        self.gateway = None


    def relay(self, gateway):
        """ Reach this peer through the *gateway* session.
        """

        self.handle = None
        self.gateway = gateway


    @property
    def ready(self):
        return self.status == Status.READY


    @property
    def closed(self):
        return self.status == Status.CLOSED


    def send(self, envelope):
        """ Hand the *envelope* to the transport, or to the gateway session
            if this peer is not directly reachable. Multi-hop delivery is the
            composition of these calls; the router is not involved.
        """

        if self.handle is not None:
            try:
                self.router.transport.send(envelope, self.handle)
            except TransportConnectionError:
                logger.warning('%r cannot reach its peer, dropping %r', self, envelope)

        elif self.gateway is not None:
            self.gateway.send(envelope)

        else:
            logger.warning('%r has no transport binding, dropping %r', self, envelope)


    def send_message(self, data, authentication=None):
        """ Send an application message to this peer. If the session is not
            yet READY the message is held until it is. The *data* and
            *authentication* are copied immediately; later changes to them by
            the caller are not seen by the peer.
        """

        if self.status == Status.CLOSED:
            logger.warning('%r is closed, message not sent', self)
            return

        router = self.router
        envelope = factory.message(router.type, router.uuid, router.sequence.next(),
                                   self.type, self.uuid, data, authentication)

        # Copying also establishes, right now rather than at some later
        # flush, that the payload can be put on the wire.

        envelope = envelope.copy()

        if self.status == Status.READY:
            self.send(envelope)
        else:
            self.outbox.append(envelope)


    def wait_ready(self):
        self.status = Status.WAITING_READY


    def acknowledge(self):
        """ Tell the peer that this context is ready to receive data.
        """

        router = self.router
        envelope = factory.ready(router.type, router.uuid, router.sequence.next(), to=self.uuid)

        self.acknowledged = True
        self.send(envelope)


    def connect(self):
        """ Ask the peer, through the gateway, to establish its side of a
            relayed session. Each relay on the way records itself in the hop
            list; the peer answers with READY along the same path.
        """

        router = self.router
        envelope = factory.connect(router.type, router.uuid, router.sequence.next(), self.type, self.uuid)
        self.send(envelope)


    def close(self):
        """ Tell the peer this session is over, and remove it from the
            router.
        """

        if self.status == Status.CLOSED:
            return

        router = self.router
        envelope = factory.closed(router.type, router.uuid, router.sequence.next(), to=self.uuid)
        self.send(envelope)

        self.status = Status.CLOSED
        self.outbox = list()
        router._remove(self)


    def _ready(self, envelope):
        """ The peer confirmed it is live. Learn its identity, register with
            the router, answer with our own READY if we have not already
            sent one, then release anything held in the outbox.
        """

        if self.status == Status.READY:
            logger.debug('%r received redundant READY', self)
            return

        if self.status == Status.CLOSED:
            logger.warning('%r received READY after closing', self)
            return

        self.uuid = envelope.origin_uuid
        self.type = envelope.origin_type
        self.status = Status.READY
        self.router._register(self)

        if self.acknowledged == False:
            self.acknowledge()

        outbox = self.outbox
        self.outbox = list()

        for held in outbox:
            held.destination_uuid = self.uuid
            held.destination_type = self.type
            self.send(held)

        logger.debug('%r is ready', self)


    def _closed(self):
        self.status = Status.CLOSED
        self.outbox = list()
        invoke(self.close_callbacks)


    def _receive(self, data, authentication):
        self.messages.append((data, authentication))
        invoke(self.message_callbacks, data, authentication)


    def _broadcast(self, data, authentication):
        invoke(self.broadcast_callbacks, data, authentication)


# end of class PeerSession


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
