"""Utilities for testing."""

import copy
import functools
import select
import socketserver

from arrcon.messages import (RCONMessage,
                             RCONDecodeError, RCONIncompleteMessageError)


class UnexpectedRCONMessage(Exception):
    """Raised when an RCON request wasn't expected."""


class ExpectedRCONMessage(RCONMessage):
    """Request expected by :class:`TestRCONServer`.

    This class should not be instantiated directly. Instead use the
    :meth:`TestRCONServer.expect` factory to create them.

    Instances of this class can be configured to respond to the request
    using :meth:`respond`, :meth:`respond_close`, etc..
    """

    def __init__(self, id_, type_, body):
        RCONMessage.__init__(self, id_, type_, body)
        self.responses = []

    def respond(self, id_, type_, body):
        """Respond to the request with a message.

        The parameters for this method are the same as those given to
        the initialiser of :class:`arrcon.messages.RCONMessage`. The
        created message will be encoded and sent to the client.
        """
        self.respond_raw(RCONMessage(id_, type_, body).encode())

    def respond_raw(self, bytes_):
        """Respond with arbitrary bytes, which needn't be a valid message."""
        self.responses.append(functools.partial(
            _TestRCONHandler.send_bytes, bytes_=bytes_))

    def respond_close(self):
        """Respond by closing the connection."""
        self.responses.append(_TestRCONHandler.close)

    def respond_probe(self):
        """Respond as a server does to the empty probe after a command.

        :class:`arrcon.rcon.RCON` follows every command with a probe so
        the expectation for it should be configured with this.
        """
        self.respond(
            self.id, RCONMessage.Type.RESPONSE_VALUE, b"")


class _TestRCONHandler(socketserver.BaseRequestHandler):
    """Request handler for :class:`TestRCONServer`."""

    def _decode_messages(self):
        """Decode buffer into discrete RCON messages.

        This may consume the buffer, either in whole or part.

        :returns: an iterator of :class:`arrcon.messages.RCONMessage`\\ s.
        """
        while self._buffer:
            try:
                message, self._buffer = RCONMessage.decode(self._buffer)
            except RCONIncompleteMessageError:
                return
            except RCONDecodeError as exc:
                raise UnexpectedRCONMessage(str(exc))
            else:
                yield message

    def _handle_request(self, message):
        """Handle individual RCON requests.

        Given a RCON request this will check that it matches the next
        expected request by comparing the request's ID, type and body
        attributes. If they all match, then each of the responses
        configured for the request is called.

        :raises UnexpectedRCONMessage: if given message does not match
            the expected request.
        """
        self.server.received.append(message)
        if not self._expectations:
            raise UnexpectedRCONMessage(
                "Unexpected message {}".format(message))
        expected = self._expectations.pop(0)
        for attribute in ['id', 'type', 'body']:
            a_message = getattr(message, attribute)
            a_expected = getattr(expected, attribute)
            if a_message != a_expected:
                raise UnexpectedRCONMessage(
                    "Expected {} == {!r}, got {!r}".format(
                        attribute, a_expected, a_message))
        for response in expected.responses:
            response(self)

    def send_bytes(self, bytes_):
        self.request.sendall(bytes_)

    def close(self):
        self.request.close()
        self._closed = True

    def setup(self):
        self._buffer = b""
        self._closed = False
        self._expectations = self.server.expectations()

    def handle(self):
        """Handle incoming requests.

        This will continually read incoming requests from the connected
        socket assigned to this handler. If the connected client closes
        the connection, or the server is shut down, this method will exit.
        """
        while not self._closed and not self.server.stopping:
            ready, _, _ = select.select([self.request], [], [], 0.05)
            if ready:
                received = self.request.recv(4096)
                if not received:
                    return
                self._buffer += received
                try:
                    for message in self._decode_messages():
                        self._handle_request(message)
                        if self._closed:
                            return
                except UnexpectedRCONMessage:
                    return


class TestRCONServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """Stub RCON server for testing.

    This class provides a simple RCON server which can be configured to
    respond to requests in certain ways. The idea is that this can be used
    in testing to fake the responses from a real RCON server.

    Specifically, each instance of this server can be configured to
    :meth:`expect` requests in a certain order. For each expected request
    there can be any number of responses for it. Each connection to the
    server will expect the exact same requests.

    All expected requests should be configured *before* connecting the
    client to the server. Every request received, expected or not, is
    recorded in :attr:`received`.

    :param address: the address the server should bind to. By default it
        will use a random port on the loopback interface. The actual
        address in use can be retrieved via the :attr:`server_address`
        attribute.
    """

    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address=("127.0.0.1", 0)):
        socketserver.TCPServer.__init__(self, address, _TestRCONHandler)
        self._expectations = []
        self.received = []
        self.stopping = False

    def expect(self, id_, type_, body):
        """Expect a RCON request.

        The parameters for this method are the same as those passed to the
        initialiser of :class:`ExpectedRCONMessage`.

        :returns: the corresponding :class:`ExpectedRCONMessage`.
        """
        self._expectations.append(ExpectedRCONMessage(id_, type_, body))
        return self._expectations[-1]

    def expect_command(self, id_, body, *responses):
        """Expect a command followed by its probe.

        Each of ``responses`` is sent as a ``RESPONSE_VALUE`` part with the
        command's ID before the probe is answered.

        :returns: the :class:`ExpectedRCONMessage` for the command.
        """
        command = self.expect(id_, RCONMessage.Type.EXECCOMMAND, body)
        for response in responses:
            command.respond(id_, RCONMessage.Type.RESPONSE_VALUE, response)
        self.expect(id_ + 1, RCONMessage.Type.EXECCOMMAND, b"").respond_probe()
        return command

    def expectations(self):
        """Get a copy of all the expectations.

        :returns: a deep copy of all the :class:`ExpectedRCONMessage`
            configured for the server.
        """
        return copy.deepcopy(self._expectations)

    def shutdown(self):
        self.stopping = True
        socketserver.TCPServer.shutdown(self)
        self.server_close()
