""" The :class:`EventManager` groups a set of event subscriptions so that
    they can be attached and detached together. A router keeps one for its
    lifetime; a lookup keeps one only until the last response arrives.
"""


class EventManager:
    """ Collect (source, event, handler) triples with :func:`add`, attach them
        all with :func:`create`, and detach them all with :func:`destroy`.
        The *source* is anything with subscribe() and unsubscribe() methods,
        typically a :class:`tabtalk.transport.base.Transport`.
    """

    def __init__(self):
        self.events = list()
        self.active = False


    def add(self, source, event, handler):
        """ Add a subscription, returning a token that can later be passed
            to :func:`remove`. If the manager is already active the handler
            is attached immediately.
        """

        if callable(handler):
            pass
        else:
            raise TypeError('the event handler must be callable')

        token = (source, event, handler)
        self.events.append(token)

        if self.active == True:
            source.subscribe(event, handler)

        return token


    def remove(self, token):
        """ Remove a single subscription previously returned by :func:`add`.
        """

        try:
            self.events.remove(token)
        except ValueError:
            return

        if self.active == True:
            source, event, handler = token
            source.unsubscribe(event, handler)


    def create(self):
        """ Attach every subscription. Calling :func:`create` on an active
            manager re-attaches everything exactly once.
        """

        if self.active == True:
            self.destroy()

        for source, event, handler in self.events:
            source.subscribe(event, handler)

        self.active = True


    def destroy(self):
        """ Detach every subscription. Safe to call more than once.
        """

        if self.active == False:
            return

        for source, event, handler in self.events:
            source.unsubscribe(event, handler)

        self.active = False


# end of class EventManager


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
