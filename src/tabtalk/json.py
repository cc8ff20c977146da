''' Wrapper module to select the most performant available library to handle
    the equivalent of :func:`json.loads` and :func:`json.dumps`. Every
    envelope crossing a transport passes through here, so the choice matters.
'''

# The business about conditionally importing the libraries is intended to
# avoid importing less efficient libraries if they are not available.

msgspec = None
orjson = None
json = None

try:
    import msgspec
except ImportError:
    pass

if msgspec is None:
    try:
        import orjson
    except ImportError:
        pass

if msgspec is None and orjson is None:
    import json


# The msgspec 'encode' operation returns bytes, as does orjson.dumps. To
# maintain alignment all 'dumps' methods need to do so as well.

def json_dumps(*args, **kwargs):
    return json.dumps(*args, **kwargs).encode()

if msgspec is not None:
    encoder = msgspec.json.Encoder()
    decoder = msgspec.json.Decoder()
    dumps = encoder.encode
    loads = decoder.decode
    errors = (msgspec.EncodeError, msgspec.DecodeError, TypeError, ValueError, RecursionError)
elif orjson is not None:
    dumps = orjson.dumps
    loads = orjson.loads
    errors = (orjson.JSONEncodeError, orjson.JSONDecodeError, TypeError, ValueError, RecursionError)
else:
    dumps = json_dumps
    loads = json.loads
    errors = (TypeError, ValueError, RecursionError)

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
