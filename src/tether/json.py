''' Wrapper module providing the equivalent of :func:`json.loads` and
    :func:`json.dumps`, backed by msgspec. Both the encoder and the decoder
    are created once and re-used for every call.
'''

import msgspec


# The msgspec 'encode' operation returns bytes. Anything calling dumps()
# should expect bytes, not a string.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

dumps = encoder.encode
loads = decoder.decode

DecodeError = msgspec.DecodeError


def typed_decoder(kind):
    """ Return a decoder that validates the decoded JSON against *kind*,
        typically a :class:`msgspec.Struct` subclass.
    """

    return msgspec.json.Decoder(kind)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
