""" A class representation of a tabtalk envelope, the unit exchanged between
    peers, along with the per-process sequence number generator.
"""

import itertools
import threading

from . import fields
from .fields import Action


class Envelope:
    """ The :class:`Envelope` carries both the identification of the context
        that sent it, which is what makes forwarding between contexts possible,
        and the application payload.

        The *origin_type* and *origin_uuid* are mandatory. The destination
        fields are optional; an envelope without a *destination_uuid* is
        processed by whichever context receives it. The *data* and
        *authentication* fields are opaque to tabtalk, but must survive a
        round trip through JSON: object references are not accessible across
        contexts, and every hop receives a copy.

        :ivar hops: The uuids of the contexts this envelope was relayed
            through, in order. Neither the origin nor the final destination
            appear in the list; the last entry is the context immediately
            before the destination.
    """

    def __init__(self, action, origin_type, origin_uuid, destination_type=None,
                 destination_uuid=None, data=None, authentication=None,
                 sequence=0, hops=None):

        # Unrecognized action numbers are retained as-is, so that the
        # recipient can decide to discard them.

        try:
            action = Action(action)
        except ValueError:
            pass

        if hops is None:
            hops = list()
        else:
            hops = list(hops)

        self.sequence = sequence
        self.action = action
        self.origin_type = origin_type
        self.origin_uuid = origin_uuid
        self.destination_type = destination_type
        self.destination_uuid = destination_uuid
        self.data = data
        self.authentication = authentication
        self.hops = hops


    def __repr__(self):
        try:
            action = self.action.name
        except AttributeError:
            action = repr(self.action)

        destination = self.destination_uuid
        if destination is None:
            destination = '*'

        return '<Envelope %s #%d %s -> %s hops=%r>' % (action, self.sequence, self.origin_uuid, destination, self.hops)


    def __eq__(self, other):
        if isinstance(other, Envelope):
            return self.to_dict() == other.to_dict()
        return NotImplemented


    def copy(self):
        """ Return a structural clone of this :class:`Envelope`, exactly as
            the recipient on the other end of a transport would see it.
        """

        from . import wire
        return wire.unpack(wire.pack(self))


    def to_dict(self):
        """ Return the wire record for this :class:`Envelope`. Optional
            fields that are not set are omitted entirely, rather than being
            represented as None.
        """

        record = dict()
        record[fields.SEQUENCE] = self.sequence
        record[fields.ACTION] = int(self.action)
        record[fields.ORIGIN_TYPE] = self.origin_type
        record[fields.ORIGIN_UUID] = self.origin_uuid

        optional = ((fields.DESTINATION_TYPE, self.destination_type),
                    (fields.DESTINATION_UUID, self.destination_uuid),
                    (fields.DATA, self.data),
                    (fields.AUTHENTICATION, self.authentication))

        for key,value in optional:
            if value is not None:
                record[key] = value

        record[fields.HOPS] = list(self.hops)
        return record


    @classmethod
    def from_dict(cls, record):
        """ Construct an :class:`Envelope` from a wire record, the inverse of
            :func:`to_dict`. A KeyError is raised if a mandatory field is
            missing.
        """

        for key in fields.MANDATORY:
            if key not in record:
                raise KeyError('envelope is missing mandatory field: ' + key)

        return cls(record[fields.ACTION],
                   record[fields.ORIGIN_TYPE],
                   record[fields.ORIGIN_UUID],
                   destination_type=record.get(fields.DESTINATION_TYPE),
                   destination_uuid=record.get(fields.DESTINATION_UUID),
                   data=record.get(fields.DATA),
                   authentication=record.get(fields.AUTHENTICATION),
                   sequence=record.get(fields.SEQUENCE, 0),
                   hops=record.get(fields.HOPS))


# end of class Envelope



class Sequence:
    """ Generate the sequence numbers for a single originator's outgoing
        stream of envelopes. Thread-safe.
    """

    minimum = 0
    maximum = 0xFFFFFFFF

    def __init__(self):
        self.lock = threading.Lock()
        self.ticker = itertools.count(self.minimum)


    def next(self):
        self.lock.acquire()
        number = next(self.ticker)

        if number >= self.maximum:
            self.ticker = itertools.count(self.minimum)

            if number > self.maximum:
                # This shouldn't happen, but here we are...
                number = next(self.ticker)

        self.lock.release()
        return number


# end of class Sequence


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
