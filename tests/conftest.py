import pytest

import tabtalk


@pytest.fixture
def hub():
    """ A private event loop for each test, so that nothing queued by one
        test is ever delivered during another.
    """

    return tabtalk.transport.local.Hub()


@pytest.fixture
def spawnable(hub):
    """ Make context types spawnable on the *hub*. Each locator constructs a
        router of the same type; any types listed in *opens* are opened by
        that router as soon as it starts.
    """

    def register(type, opens=()):

        def factory(transport):
            router = tabtalk.PeerRouter(type, transport)
            for wanted in opens:
                router.open_session(wanted, wanted)
            return router

        hub.register(type, factory)

    return register


@pytest.fixture
def root(hub):
    return tabtalk.PeerRouter('main', hub.transport())


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
