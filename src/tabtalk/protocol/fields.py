"""Protocol constants.

Keep these in one place to avoid stringly-typed message handling.
"""

from enum import IntEnum


class Action(IntEnum):
    """ The action category of an envelope. The numbering is part of the
        wire format and must not change.
    """

    READY = 0
    CLOSED = 1
    LOOKUP = 2
    MESSAGE = 3
    BROADCAST = 4
    LOOKUP_FOUND = 5
    LOOKUP_NOT_FOUND = 6
    CONNECT = 7


# Canonical names for the keys of the wire record.

SEQUENCE = "sequenceNumber"
ACTION = "action"
ORIGIN_TYPE = "originType"
ORIGIN_UUID = "originUUID"
DESTINATION_TYPE = "destinationType"
DESTINATION_UUID = "destinationUUID"
DATA = "data"
AUTHENTICATION = "authentication"
HOPS = "hops"

MANDATORY = (ACTION, ORIGIN_TYPE, ORIGIN_UUID)
OPTIONAL = (DESTINATION_TYPE, DESTINATION_UUID, DATA, AUTHENTICATION)
