""" In-process transport. Every context is a :class:`Transport` attached to a
    shared :class:`Hub`; the hub is a cooperative event loop that delivers
    one queued event at a time, in the order they were posted.

    Nothing is delivered until :func:`Hub.run` is called. That makes the
    local transport fully deterministic: a caller performs some operation,
    then runs the hub until it is quiet, then inspects the outcome.

    Envelopes are encoded to bytes when sent and decoded again on delivery,
    so a recipient never shares a live object with the sender.
"""

import collections
import logging

from ..protocol import wire
from . import base

logger = logging.getLogger(__name__)


class Hub:
    """ The event loop shared by any number of in-process contexts. Spawnable
        context types are made known with :func:`register`; a locator
        resolves to a factory that is handed the new context's
        :class:`Transport`, and is expected to construct whatever lives in
        that context, usually a :class:`tabtalk.PeerRouter`.
    """

    def __init__(self):
        self.queue = collections.deque()
        self.locators = dict()
        self.transports = list()
        self.running = False


    def register(self, locator, factory):
        if callable(factory):
            pass
        else:
            raise TypeError('the context factory must be callable')

        self.locators[locator] = factory


    def transport(self, parent=None):
        """ Return a new :class:`Transport` attached to this hub. A context
            created this way without a *parent* is a root context.
        """

        transport = Transport(self, parent)
        self.transports.append(transport)
        return transport


    def post(self, method, *args):
        self.queue.append((method, args))


    def pending(self):
        return len(self.queue)


    def run(self, limit=None):
        """ Deliver queued events until the queue is empty, or until *limit*
            events have been processed. Returns the number of events
            processed. Events posted while running are processed in the same
            call; a nested call to :func:`run` is a no-op.
        """

        if self.running == True:
            return 0

        self.running = True
        count = 0

        try:
            while self.queue:
                if limit is not None and count >= limit:
                    break

                method, args = self.queue.popleft()
                method(*args)
                count += 1
        finally:
            self.running = False

        return count


# end of class Hub



class Transport(base.Transport):
    """ One context's view of the in-process transport. The handles it hands
        out, and accepts, are other :class:`Transport` instances; only the
        parent and the children of this transport are reachable.

        :ivar context: Whatever the locator factory returned, for spawned
            contexts; None otherwise.
    """

    def __init__(self, hub, parent=None):
        base.Transport.__init__(self)

        self.hub = hub
        self.children = list()
        self.peers = list()
        self.closed = False
        self.context = None
        self._parent = parent

        if parent is not None:
            parent.children.append(self)


    def __repr__(self):
        return '<local.Transport %x>' % (id(self))


    def link(self, other):
        """ Make *other* a neighbor of this transport, and vice versa, as if
            one context had adopted the other. Returns *other*, which is the
            handle this context uses to reach it.
        """

        if other is self:
            raise ValueError('a context cannot be its own neighbor')

        if other not in self.peers:
            self.peers.append(other)
        if self not in other.peers:
            other.peers.append(self)

        return other


    def neighbors(self):
        neighbors = list(self.children) + list(self.peers)
        if self._parent is not None:
            neighbors.insert(0, self._parent)
        return neighbors


    def send(self, envelope, handle):

        if handle is None or handle not in self.neighbors():
            raise base.TransportConnectionError('%r is not a neighbor of %r' % (handle, self))

        frame = wire.pack(envelope)
        self.hub.post(handle._deliver, frame, self)


    def _deliver(self, frame, source):

        if self.closed == True:
            logger.debug('%r is closed, discarding frame from %r', self, source)
            return

        try:
            envelope = wire.unpack(frame)
        except wire.DecodeError:
            logger.warning('%r discarding undecodable frame from %r', self, source, exc_info=True)
            return

        self._emit(base.MESSAGE, envelope, source)


    def spawn(self, locator):

        try:
            factory = self.hub.locators[locator]
        except KeyError:
            raise base.TransportSpawnError('no context registered for locator: ' + repr(locator))

        child = self.hub.transport(parent=self)

        # The new context starts up asynchronously, the same way a freshly
        # opened window or process would.

        self.hub.post(child._boot, factory)
        return child


    def _boot(self, factory):
        if self.closed == True:
            return
        self.context = factory(self)


    def parent(self):
        return self._parent


    def close(self):
        if self.closed == True:
            return

        self._emit(base.UNLOAD)
        self.closed = True


# end of class Transport



hub = Hub()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
