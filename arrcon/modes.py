# -*- coding: utf-8 -*-

"""Session drivers: commandline (batch) and interactive modes.

Both drivers run commands over an authenticated :class:`arrcon.rcon.RCON`
strictly one at a time; a command's whole response is collected before
the next command is sent.
"""

import logging
import sys
import time

from arrcon.messages import RCONEncodeError, RCONMessage
from arrcon.palette import Element, Palette


log = logging.getLogger(__name__)


def _print_response(response, configuration, palette, stdout):
    if configuration.quiet:
        return
    if response.endswith("\n"):
        response = response[:-1]
    if response:
        print(palette.paint(Element.RESPONSE, response), file=stdout)


def _skip(command, exc, stderr):
    print("Skipping command {!r}: {}".format(command, exc), file=stderr)


def _run(rcon, command, configuration, palette, stdout, stderr):
    """Run a single command and print its response.

    :returns: whether the command was sent.
    """
    try:
        response = rcon(command)
    except RCONEncodeError as exc:
        _skip(command, exc, stderr)
        return False
    _print_response(response, configuration, palette, stdout)
    return True


def commandline(rcon, commands, configuration,
                palette=None, stdout=None, stderr=None):
    """Run a queue of commands in order.

    Blank commands are skipped. The configured
    :attr:`~arrcon.config.Configuration.command_delay` is slept between
    consecutive commands but not after the last. Unless ``no_prompt`` is
    set each command is echoed after the prompt before it's sent.

    A command that can't be sent, because it's too long or can't be
    encoded, is reported on ``stderr`` and skipped without waiting for
    the delay; the session carries on with the next one.

    :returns: the number of commands that were sent.
    """
    palette = palette or Palette(False)
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    delay = configuration.command_delay.total_seconds()
    prompt = palette.prompt(rcon.address[0], configuration.custom_prompt)
    executed = 0
    for command in commands:
        if not command.strip():
            continue
        try:
            RCONMessage(0, RCONMessage.Type.EXECCOMMAND, command).encode()
        except RCONEncodeError as exc:
            _skip(command, exc, stderr)
            continue
        if executed and delay:
            log.debug("Waiting %.3fs before next command", delay)
            time.sleep(delay)
        if not configuration.no_prompt:
            print(prompt + palette.paint(Element.COMMAND_ECHO, command),
                  file=stdout)
        if _run(rcon, command, configuration, palette, stdout, stderr):
            executed += 1
    return executed


class _RCONShell(object):
    """Interactive RCON shell.

    This passes each line read straight through to the server as a
    command and prints the response. It stops at end of input.

    :ivar bool use_rawinput: read with :func:`input`, which gives line
        editing on terminals. Set when reading from the real stdin.
    """

    def __init__(self, rcon, configuration, palette, stdin=None, stdout=None,
                 stderr=None):
        self.rcon = rcon
        self.configuration = configuration
        self.palette = palette
        self.use_rawinput = stdin is None
        self.stdin = stdin or sys.stdin
        self.stdout = stdout or sys.stdout
        self.stderr = stderr or sys.stderr
        if configuration.no_prompt:
            self.prompt = ""
        else:
            self.prompt = palette.prompt(
                rcon.address[0], configuration.custom_prompt)
        self.executed = 0

    def _readline(self):
        """Read a line of input.

        :returns: the line without its line ending, or ``None`` at the
            end of input.
        """
        if self.use_rawinput:
            try:
                return input(self.prompt)
            except EOFError:
                return None
        if self.prompt:
            self.stdout.write(self.prompt)
            self.stdout.flush()
        line = self.stdin.readline()
        if not line:
            return None
        return line.rstrip("\r\n")

    def default(self, command):
        """Issue a line as an RCON command."""
        if _run(self.rcon, command, self.configuration,
                self.palette, self.stdout, self.stderr):
            self.executed += 1

    def emptyline(self):
        """Do nothing."""

    def cmdloop(self):
        """Read and run commands until the end of input."""
        while True:
            line = self._readline()
            if line is None:
                log.debug("End of input")
                break
            if line.strip():
                self.default(line)
            else:
                self.emptyline()


def interactive(rcon, configuration, palette=None,
                stdin=None, stdout=None, stderr=None):
    """Run an interactive session until the end of input.

    Reaching the end of input or being interrupted with Ctrl-C both
    end the session cleanly.

    :returns: the number of commands that were sent.
    """
    rcon_shell = _RCONShell(rcon, configuration, palette or Palette(False),
                            stdin, stdout, stderr)
    try:
        rcon_shell.cmdloop()
    except KeyboardInterrupt:
        print(file=rcon_shell.stdout)
    return rcon_shell.executed
