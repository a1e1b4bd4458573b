# -*- coding: utf-8 -*-

"""Source RCON packet encoding and decoding."""

import enum
import struct


class RCONError(Exception):
    """Base exception for all RCON-related errors."""


class RCONMessageError(RCONError):
    """Raised for errors encoding or decoding RCON messages."""


class RCONEncodeError(RCONMessageError):
    """Raised when a message cannot be framed for sending."""


class RCONDecodeError(RCONMessageError):
    """Raised when a buffer doesn't hold a well-formed message."""


class RCONIncompleteMessageError(RCONDecodeError):
    """Raised when a buffer holds only the start of a message.

    Unlike its parent this is not a sign of a broken stream; it means
    more bytes need to be read before the message can be decoded.
    """


#: Largest body the protocol can carry in a single packet.
MAX_BODY_SIZE = 4096

_SIZE_FIELD = struct.Struct("<i")
_HEADER = struct.Struct("<ii")
_TERMINATORS = b"\x00\x00"
#: Smallest value of the size field: ID, type and both terminators.
MIN_SIZE = _HEADER.size + len(_TERMINATORS)
MAX_SIZE = MIN_SIZE + MAX_BODY_SIZE


class RCONMessage(object):
    """Represents a RCON request or response."""

    ENCODING = "utf-8"

    class Type(enum.IntEnum):
        """Message types corresponding to ``SERVERDATA_`` constants.

        ``AUTH_RESPONSE`` and ``EXECCOMMAND`` share the same code. Which
        one a message is depends on whether it was sent or received and
        on what it was sent in reply to. As this is an :class:`IntEnum`
        ``EXECCOMMAND`` is an alias of ``AUTH_RESPONSE``.
        """

        RESPONSE_VALUE = 0
        AUTH_RESPONSE = 2
        EXECCOMMAND = 2
        AUTH = 3

    def __init__(self, id_, type_, body_or_text):
        self.id = int(id_)
        self.type = self.Type(type_)
        if isinstance(body_or_text, bytes):
            self.body = body_or_text
        else:
            self.body = b""
            self.text = body_or_text

    def __repr__(self):
        return ("<{0.__class__.__name__} "
                "{0.id} {0.type.name} {1}B>").format(self, len(self.body))

    def __eq__(self, other):
        if not isinstance(other, RCONMessage):
            return NotImplemented
        return (self.id, self.type, self.body) == \
            (other.id, other.type, other.body)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    @property
    def text(self):
        """Get the body of the message as Unicode.

        Bytes which aren't valid UTF-8 are replaced rather than raising.
        Some servers send text in a legacy code page, so if the correct
        encoding is known you can decode :attr:`body` for yourself.
        """
        return self.body.decode(self.ENCODING, "replace")

    @text.setter
    def text(self, text):
        """Set the body of the message from a Unicode string.

        :raises RCONEncodeError: if the text can't be encoded, for
            example if it holds lone surrogates.
        """
        try:
            self.body = text.encode(self.ENCODING)
        except UnicodeError as exc:
            raise RCONEncodeError(
                "Text can't be encoded as {}: {}".format(self.ENCODING, exc))

    def encode(self):
        """Encode message to a bytestring.

        :raises RCONEncodeError: if the body is longer than
            :data:`MAX_BODY_SIZE` or contains a null byte, either of which
            would produce a packet the server can't parse.
        """
        if len(self.body) > MAX_BODY_SIZE:
            raise RCONEncodeError(
                "Body is {} bytes long; the limit is {}".format(
                    len(self.body), MAX_BODY_SIZE))
        if b"\x00" in self.body:
            raise RCONEncodeError("Body contains a null byte")
        terminated_body = self.body + _TERMINATORS
        size = _HEADER.size + len(terminated_body)
        return (_SIZE_FIELD.pack(size)
                + _HEADER.pack(self.id, self.type) + terminated_body)

    @classmethod
    def decode(cls, buffer_):
        """Decode a message from a bytestring.

        This will attempt to decode a single message from the start of the
        given buffer. If the buffer contains more than a single message then
        this must be called multiple times.

        :raises RCONIncompleteMessageError: if the buffer is shorter than
            the smallest possible message or than the message's declared
            size.
        :raises RCONDecodeError: if the declared size is out of range or
            the message isn't terminated by two null bytes.

        :returns: a tuple containing the decoded :class:`RCONMessage` and
            the remnants of the buffer. If the buffer contained exactly one
            message then the remaning buffer will be empty.
        """
        if len(buffer_) < _SIZE_FIELD.size + MIN_SIZE:
            raise RCONIncompleteMessageError(
                "Need at least {} bytes; got {}".format(
                    _SIZE_FIELD.size + MIN_SIZE, len(buffer_)))
        size = _SIZE_FIELD.unpack_from(buffer_)[0]
        if size < MIN_SIZE or size > MAX_SIZE:
            raise RCONDecodeError(
                "Declared size {} is outside {}..{}".format(
                    size, MIN_SIZE, MAX_SIZE))
        raw_message = buffer_[_SIZE_FIELD.size:]
        if len(raw_message) < size:
            raise RCONIncompleteMessageError(
                "Message is {} bytes long "
                "but got {}".format(size, len(raw_message)))
        message, remainder = raw_message[:size], raw_message[size:]
        if message[-2:] != _TERMINATORS:
            raise RCONDecodeError(
                "Message not terminated by two null bytes: {!r}".format(
                    message[-2:]))
        id_, type_ = _HEADER.unpack_from(message)
        try:
            type_ = cls.Type(type_)
        except ValueError:
            raise RCONDecodeError("Unknown message type {}".format(type_))
        return cls(id_, type_, message[_HEADER.size:-2]), remainder
