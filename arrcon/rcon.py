# -*- coding: utf-8 -*-

"""Source Dedicated Server remote console (RCON) interface."""

import enum
import functools
import itertools
import logging

import monotonic

from arrcon.messages import (RCONError, RCONMessage, RCONEncodeError,
                             RCONDecodeError, RCONIncompleteMessageError)
from arrcon.transport import (Transport,
                              RCONCommunicationError, RCONConnectionError)


log = logging.getLogger(__name__)

__all__ = [
    "RCON",
    "RCONError",
    "RCONAuthenticationError",
    "RCONCommunicationError",
    "RCONConnectionError",
    "RCONProtocolError",
    "RCONTimeoutError",
    "execute",
]


class RCONTimeoutError(RCONError):
    """Raised when a timeout occurs waiting for a response."""


class RCONProtocolError(RCONError):
    """Raised when the server sends something that can't be framed.

    Once this happens there's no telling where the next message starts
    so the connection is closed.
    """


class RCONAuthenticationError(RCONError):
    """Raised for failed or malformed authentication handshakes.

    A plain wrong password is not an error; :meth:`RCON.authenticate`
    returns ``False`` for that.

    :ivar bool banned: signifies whether the server dropped the connection
        instead of answering, which is what it does to banned clients.
    """

    def __init__(self, message, banned=False):
        super(RCONAuthenticationError, self).__init__(message)
        self.banned = banned


class _ResponseBuffer(object):
    """Utility class to buffer RCON responses.

    Bytes read from the socket are fed in and split into whole messages,
    which can then be popped off in the order they arrived. Partial
    messages stay in the byte buffer until the rest of them is fed.
    """

    def __init__(self):
        self._buffer = b""
        self._responses = []

    def __len__(self):
        return len(self._responses)

    def pop(self):
        """Pop first received message from the buffer.

        :raises RCONError: if there are no whole messages in the buffer.

        :returns: the oldest response in the buffer as a :class:`RCONMessage`.
        """
        if not self._responses:
            raise RCONError("Response buffer is empty")
        return self._responses.pop(0)

    def clear(self):
        """Clear both the byte buffer and the decoded messages."""
        log.debug("Buffer cleared; %i bytes, %i messages",
                  len(self._buffer), len(self._responses))
        self._buffer = b""
        del self._responses[:]

    def _consume(self):
        """Attempt to parse buffer into responses.

        This may or may not consume part or the whole of the buffer.

        :raises RCONProtocolError: if the buffer doesn't start with a
            valid message.
        """
        while self._buffer:
            try:
                message, self._buffer = RCONMessage.decode(self._buffer)
            except RCONIncompleteMessageError:
                return
            except RCONDecodeError as exc:
                raise RCONProtocolError("Malformed message: {}".format(exc))
            log.debug("Received message %r", message)
            self._responses.append(message)

    def feed(self, bytes_):
        """Feed bytes into the buffer."""
        self._buffer += bytes_
        self._consume()


class _MultiPartResponse(object):
    """Reassembles the response to a single command.

    Servers split long responses over several ``RESPONSE_VALUE`` messages
    and nothing in the protocol says how many there will be. To find the
    end, an empty ``EXECCOMMAND`` probe is sent straight after the
    command. Servers handle requests in order, so once the reply to the
    probe turns up every part of the command's response has arrived.

    Some servers never answer the probe. For those the caller gives up
    after a period with no new data, so this is a heuristic: a server that
    pauses longer than that mid-response will have its response cut short.

    https://developer.valvesoftware.com/wiki/Source_RCON_Protocol#Multiple-packet_Responses
    """

    def __init__(self, command_id, probe_id):
        self.command_id = command_id
        self.probe_id = probe_id
        self.parts = []
        self.complete = False

    def add(self, message):
        """Add a received message to the response.

        Parts of the command's response are kept in arrival order. The
        probe's reply marks the response as complete. Anything else is
        left over from an earlier command and is dropped.
        """
        if self.complete:
            log.warning("Message after end of response %r", message)
        elif message.id == self.command_id:
            self.parts.append(message)
        elif message.id == self.probe_id:
            if message.body:
                log.debug("Probe reply has a body %r", message)
            self.complete = True
        else:
            log.warning("Unexpected message %r", message)

    @property
    def body(self):
        return b"".join(part.body for part in self.parts)


class RCON(object):
    """Represents an RCON connection.

    A connection only ever moves forward through its :class:`State`\\ s.
    Once closed, whether by :meth:`close`, a failed authentication or a
    socket error, it can't be reused.

    :param address: the address of the server as a tuple containing the
        host as a string and the port as an integer.
    :param str password: the password to authenticate with.
    :param timeout: seconds to wait when connecting and for the answer to
        authentication.
    :param poll_interval: seconds to wait on each read of the socket
        while collecting a response.
    :param idle_timeout: seconds without new data after which a response
        is considered complete even if the probe hasn't been answered.
    """

    #: ID of the authentication request; a server echoes it on success.
    AUTH_ID = 1

    class State(enum.Enum):
        """Lifecycle of a connection."""

        DISCONNECTED = "disconnected"
        CONNECTING = "connecting"
        CONNECTED = "connected"
        AUTHENTICATED = "authenticated"
        CLOSED = "closed"

    def __init__(self, address, password, timeout=5.0,
                 poll_interval=0.01, idle_timeout=0.5):
        self._address = tuple(address)
        self._password = password
        self._timeout = timeout
        self._poll_interval = poll_interval
        self._idle_timeout = idle_timeout
        self._state = self.State.DISCONNECTED
        self._transport = Transport(self._address, timeout)
        self._responses = _ResponseBuffer()
        self._ids = itertools.count(self.AUTH_ID + 1)

    def __enter__(self):
        self.connect()
        if not self.authenticate():
            raise RCONAuthenticationError(
                "Incorrect password for {0[0]}:{0[1]}".format(self._address))
        return self

    def __exit__(self, type_, value, traceback):
        self.close()

    def __call__(self, command):
        """Invoke a command.

        This is a higher-level version of :meth:`execute` that only returns
        the response body.

        :returns: the response to the command as a Unicode string.
        """
        return self.execute(command).text

    @property
    def address(self):
        return self._address

    @property
    def state(self):
        """The connection's current :class:`State`."""
        return self._state

    @property
    def connected(self):
        """Determine if a connection has been made.

        .. note::
            Strictly speaking this does not guarantee that any subsequent
            attempt to execute a command will succeed as the underlying
            socket may be closed by the server at any time.
        """
        return self._state in (self.State.CONNECTED, self.State.AUTHENTICATED)

    @property
    def authenticated(self):
        """Determine if the connection is authenticated."""
        return self._state is self.State.AUTHENTICATED

    @property
    def closed(self):
        """Determine if the connection has been closed."""
        return self._state is self.State.CLOSED

    @staticmethod
    def _timer(timeout):
        """Iterable timeout timer.

        :param timeout: the number of seconds to wait before timing out.
            If ``None`` then the timer will never timeout.

        :raises RCONTimeoutError: once the timeout is reached.

        :returns: an iterable that will yield items until the timeout
            is reached.
        """
        time_start = monotonic.monotonic()
        while (timeout is None
               or monotonic.monotonic() - time_start < timeout):
            yield
        raise RCONTimeoutError

    def _ensure(*states):  # pylint: disable=no-method-argument
        """Decorator to ensure a connection is in a specific state.

        The returned function will raise :exc:`RCONError` if the connection
        isn't in one of the given states.

        Additionally, this decorator will modify the docstring of the
        wrapped function to include a sphinx-style ``:raises:`` directive
        documenting the valid states for the call.

        :param states: the names of the :class:`State` members for which
            the call is allowed.
        """

        def decorator(function):  # pylint: disable=missing-docstring

            @functools.wraps(function)
            def wrapper(instance, *args, **kwargs):  # pylint: disable=missing-docstring
                if instance._state.name not in states:
                    raise RCONError("Must be {}; connection is {}".format(
                        " or ".join(state.lower() for state in states),
                        instance._state.value))
                return function(instance, *args, **kwargs)

            # pylint: disable=no-member
            if not wrapper.__doc__.endswith("\n"):
                wrapper.__doc__ += "\n"
            wrapper.__doc__ += ("\n:raises RCONError: if not {}.".format(
                " or ".join(state.lower() for state in states)))
            # pylint: enable=no-member
            return wrapper

        return decorator

    def _request(self, id_, type_, body):
        """Send a request to the server.

        The message is encoded before anything is written, so a body that
        can't be encoded leaves the connection untouched.

        :raises RCONEncodeError: if the message can't be encoded.
        :raises RCONCommunicationError: if the socket errors, in which
            case the connection is closed.
        """
        request = RCONMessage(id_, type_, body)
        encoded = request.encode()
        log.debug("Sending message %r", request)
        try:
            self._transport.send(encoded)
        except RCONCommunicationError:
            self.close()
            raise

    def _read(self, timeout):
        """Read bytes from the socket into the response buffer.

        :raises RCONCommunicationError: if the socket is closed by the
            server or for any other unexpected socket-related error.
        :raises RCONProtocolError: if the bytes can't be decoded.

        In either case the connection will also be closed.

        :returns: whether any bytes were read before the timeout.
        """
        try:
            received = self._transport.receive(timeout)
            self._responses.feed(received)
        except (RCONCommunicationError, RCONProtocolError):
            self.close()
            raise
        return bool(received)

    @_ensure("DISCONNECTED")
    def connect(self):
        """Create a connection to a server.

        :raises RCONConnectionError: if the connection couldn't be made.
            The connection is closed in this case.
        """
        self._state = self.State.CONNECTING
        try:
            self._transport.connect()
        except RCONError:
            self.close()
            raise
        self._state = self.State.CONNECTED

    def _receive_auth_response(self, timeout):
        """Wait for the ``AUTH_RESPONSE`` to an authentication request.

        Servers send an empty ``RESPONSE_VALUE`` ahead of the real answer
        so anything that isn't an ``AUTH_RESPONSE`` is skipped.
        """
        for _ in self._timer(timeout):
            self._read(self._poll_interval)
            while self._responses:
                message = self._responses.pop()
                if message.type is RCONMessage.Type.AUTH_RESPONSE:
                    return message
                log.debug("Skipping %r before authentication response",
                          message)

    @_ensure("CONNECTED")
    def authenticate(self, timeout=None):
        """Authenticate with the server.

        This sends an authentication message to the connected server
        containing the password. If the password is correct the server
        sends back an acknowledgement and will allow all subsequent
        commands to be executed.

        There's only one attempt: if it fails the connection is closed.

        .. note::
            Servers automatically ban client IPs after a few failed
            attempts. Banned clients have their connection dropped
            rather than being told the password is wrong.

        :param timeout: the number of seconds to wait for a response. If
            not given the connection-global timeout is used.

        :raises RCONAuthenticationError: if the request can't be sent, or
            the server drops the connection, takes too long to respond or
            responds with an unexpected ID.

        :returns: ``True`` if authenticated or ``False`` if the password
            was rejected.
        """
        if timeout is None:
            timeout = self._timeout
        try:
            self._request(
                self.AUTH_ID, RCONMessage.Type.AUTH, self._password)
        except RCONEncodeError as exc:
            self.close()
            raise RCONAuthenticationError(
                "Password can't be sent: {}".format(exc))
        except RCONCommunicationError as exc:
            raise RCONAuthenticationError(
                "Couldn't send authentication request to "
                "{0[0]}:{0[1]}: {1}".format(self._address, exc))
        try:
            response = self._receive_auth_response(timeout)
        except RCONCommunicationError:
            raise RCONAuthenticationError(
                "Connection closed by {0[0]}:{0[1]} during "
                "authentication".format(self._address), banned=True)
        except RCONProtocolError as exc:
            raise RCONAuthenticationError(
                "Malformed authentication response: {}".format(exc))
        except RCONTimeoutError:
            self.close()
            raise RCONAuthenticationError(
                "Timed out waiting for authentication "
                "response from {0[0]}:{0[1]}".format(self._address))
        if response.id == self.AUTH_ID:
            log.debug("Authenticated with %s:%s", *self._address)
            self._state = self.State.AUTHENTICATED
            return True
        self.close()
        if response.id == -1:
            log.debug("Password rejected by %s:%s", *self._address)
            return False
        raise RCONAuthenticationError(
            "Unexpected ID {} in authentication response".format(response.id))

    def close(self):
        """Close connection to a server.

        It is safe to call this multiple times and it never raises.
        """
        self._transport.close()
        if self._state is not self.State.CLOSED:
            self._responses.clear()
            self._state = self.State.CLOSED

    @_ensure("AUTHENTICATED")
    def execute(self, command):
        """Invoke a command.

        Invokes the given command on the connected server and waits for
        the whole of its response, which may arrive in several parts.
        See :class:`_MultiPartResponse` for how the end of a response is
        found.

        :param str command: the command to execute.

        :raises RCONEncodeError: if the command is too long to send. The
            connection is unaffected.
        :raises RCONCommunicationError: if the socket is closed or in any
            other erroneous state whilst issuing the request or receiving
            the response.
        :raises RCONProtocolError: if the server sends a malformed message.

        :returns: the response to the command as a :class:`RCONMessage`
            whose body is every part of the response joined in the order
            they arrived. The body is empty if the server said nothing.
        """
        command_id = next(self._ids)
        probe_id = next(self._ids)
        self._request(command_id, RCONMessage.Type.EXECCOMMAND, command)
        self._request(probe_id, RCONMessage.Type.EXECCOMMAND, b"")
        response = _MultiPartResponse(command_id, probe_id)
        last_received = monotonic.monotonic()
        while not response.complete:
            if self._read(self._poll_interval):
                last_received = monotonic.monotonic()
            while self._responses:
                response.add(self._responses.pop())
            if (not response.complete and monotonic.monotonic()
                    - last_received >= self._idle_timeout):
                log.debug("No reply to probe %i after %.3fs; "
                          "assuming response is complete",
                          probe_id, self._idle_timeout)
                break
        log.debug("Response to %i has %i parts",
                  command_id, len(response.parts))
        return RCONMessage(
            command_id, RCONMessage.Type.RESPONSE_VALUE, response.body)

    del _ensure


def execute(address, password, command, timeout=5.0):
    """Execute a command on an RCON server.

    This is a *very* high-level interface which connects to the given
    RCON server using the provided credentials and executes a command.

    :param address: the address of the server to connect to as a tuple
        containing the host as a string and the port as an integer.
    :param str password: the password to use to authenticate the connection.
    :param str command: the command to execute on the server.

    :raises RCONConnectionError: if a connection to the RCON server
        could not be made.
    :raises RCONAuthenticationError: if authentication failed, either
        due to being banned or providing the wrong password.

    :returns: the response to the command as a Unicode string.
    """
    with RCON(address, password, timeout) as rcon:
        return rcon(command)
