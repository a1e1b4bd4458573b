# -*- coding: utf-8 -*-

"""TCP transport for RCON connections."""

import enum
import errno
import logging
import select
import socket

from arrcon.messages import RCONError


log = logging.getLogger(__name__)

#: Largest chunk read from the socket in one go.
RECEIVE_SIZE = 4096


class RCONCommunicationError(RCONError):
    """Used for propagating socket-related errors."""


class RCONConnectionError(RCONCommunicationError):
    """Raised when a connection to the server can't be established.

    :ivar Reason reason: why the connection attempt failed.
    """

    class Reason(enum.Enum):
        """Broad category of a failed connection attempt."""

        DNS = "could not resolve host"
        REFUSED = "connection refused"
        TIMEOUT = "connection timed out"
        OTHER = "connection failed"

    def __init__(self, address, reason, detail=None):
        message = "{0[0]}:{0[1]}: {1}".format(address, reason.value)
        if detail:
            message += " ({})".format(detail)
        super(RCONConnectionError, self).__init__(message)
        self.address = address
        self.reason = reason


class Transport(object):
    """Owns the TCP stream to an RCON server.

    Everything above this class deals in whole byte strings; this is the
    only place that touches the socket. Reads are bounded by a timeout
    and a timeout is reported as an empty result rather than an error,
    as callers use it to decide that a server has gone quiet.

    The transport can be used as a context manager, in which case it is
    connected on entry and always closed on exit.

    :ivar address: a tuple of the host and port to connect to.
    :ivar timeout: how many seconds to wait when connecting.
    """

    def __init__(self, address, timeout=5.0):
        self.address = tuple(address)
        self.timeout = timeout
        self._socket = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, type_, exception, traceback):
        self.close()

    @property
    def connected(self):
        """Determine whether the socket is currently open."""
        return self._socket is not None

    def _resolve(self):
        host, port = self.address
        try:
            return socket.getaddrinfo(
                host, port, 0, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        except socket.gaierror as exc:
            raise RCONConnectionError(
                self.address, RCONConnectionError.Reason.DNS, exc.strerror)

    def connect(self):
        """Resolve the address and open a TCP stream to it.

        Each resolved address is tried in turn until one accepts the
        connection.

        :raises RCONConnectionError: if the host can't be resolved or
            none of its addresses accept a connection. The
            :attr:`~RCONConnectionError.reason` tells which.
        """
        if self.connected:
            raise RCONError("Already connected to {0[0]}:{0[1]}".format(
                self.address))
        log.debug("Connecting to %s:%s", *self.address)
        failure = RCONConnectionError(
            self.address, RCONConnectionError.Reason.DNS, "no addresses")
        for family, type_, proto, _, sockaddr in self._resolve():
            sock = socket.socket(family, type_, proto)
            sock.settimeout(self.timeout)
            try:
                sock.connect(sockaddr)
            except socket.timeout:
                failure = RCONConnectionError(
                    self.address, RCONConnectionError.Reason.TIMEOUT)
            except ConnectionRefusedError:
                failure = RCONConnectionError(
                    self.address, RCONConnectionError.Reason.REFUSED)
            except socket.error as exc:
                reason = RCONConnectionError.Reason.OTHER
                if exc.errno == errno.ETIMEDOUT:
                    reason = RCONConnectionError.Reason.TIMEOUT
                failure = RCONConnectionError(
                    self.address, reason, exc.strerror)
            else:
                sock.settimeout(None)
                self._socket = sock
                log.debug("Connected to %s", sockaddr)
                return
            sock.close()
            log.debug("Connecting to %s failed: %s", sockaddr, failure)
        raise failure

    def _check_connected(self):
        if self._socket is None:
            raise RCONCommunicationError(
                "Not connected to {0[0]}:{0[1]}".format(self.address))

    def send(self, bytes_):
        """Write the whole of the given bytes to the socket.

        Short writes are retried until everything is written.

        :raises RCONCommunicationError: if the socket errors. The
            transport is closed in this case.
        """
        self._check_connected()
        view = memoryview(bytes_)
        try:
            while view:
                sent = self._socket.send(view)
                view = view[sent:]
        except socket.error as exc:
            self.close()
            raise RCONCommunicationError(
                "Failed to send to {0[0]}:{0[1]}: {1}".format(
                    self.address, exc))

    def receive(self, timeout):
        """Wait up to ``timeout`` seconds for bytes from the server.

        :raises RCONCommunicationError: if the socket is closed by the
            server or for any other unexpected socket-related error. In
            such cases the transport will also be closed.

        :returns: the received bytes, or an empty bytestring if nothing
            arrived before the timeout.
        """
        self._check_connected()
        try:
            ready, _, _ = select.select([self._socket], [], [], timeout)
            if not ready:
                return b""
            received = self._socket.recv(RECEIVE_SIZE)
        except (socket.error, ValueError) as exc:
            self.close()
            raise RCONCommunicationError(
                "Failed to receive from {0[0]}:{0[1]}: {1}".format(
                    self.address, exc))
        if not received:
            self.close()
            raise RCONCommunicationError(
                "Connection closed by {0[0]}:{0[1]}".format(self.address))
        return received

    def close(self):
        """Close the socket.

        It is safe to call this multiple times and it never raises.
        """
        if self._socket is None:
            return
        sock, self._socket = self._socket, None
        try:
            sock.close()
        except socket.error as exc:
            log.debug("Error closing socket: %s", exc)
        else:
            log.debug("Closed connection to %s:%s", *self.address)
