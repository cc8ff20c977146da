import json
import tabtalk


def test_json_encode_and_decode():
    encode_and_decode(json.dumps, json.loads, dump_is_bytes=False)


def test_tabtalk_encode_and_decode():
    encode_and_decode(tabtalk.json.dumps, tabtalk.json.loads)


def test_tabtalk_errors():

    try:
        tabtalk.json.dumps({'method': test_tabtalk_errors})
    except tabtalk.json.errors:
        pass
    else:
        raise AssertionError('a function should not be encodable as JSON')

    try:
        tabtalk.json.loads(b'{"unterminated": ')
    except tabtalk.json.errors:
        pass
    else:
        raise AssertionError('truncated JSON should not be decodable')


def encode_and_decode(dumps, loads, dump_is_bytes=True):

    input_dictionary = dict()
    input_dictionary['list'] = [1, 2, 3, 'a', 'b', None, 'c', 'z']
    input_dictionary['dict'] = {'one': 1, 'two': [2, 2]}
    input_dictionary['none'] = None
    input_dictionary['true'] = True
    input_dictionary['false'] = False
    input_dictionary['float'] = 1.5

    encoded = dumps(input_dictionary)

    if dump_is_bytes:
        assert isinstance(encoded, bytes)
    else:
        assert isinstance(encoded, str)

    # Whitespace in the encoded output varies between the JSON libraries,
    # so only the decoded form is compared.

    decoded = loads(encoded)
    assert isinstance(decoded, dict)
    assert decoded == input_dictionary


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
