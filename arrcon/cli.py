# -*- coding: utf-8 -*-

"""Command line entry point."""

import logging
import sys

import docopt

import arrcon
import arrcon.config
import arrcon.hosts
import arrcon.modes
import arrcon.scripts
from arrcon.config import ConfigurationError, Target
from arrcon.messages import RCONError
from arrcon.palette import Element, Palette
from arrcon.rcon import RCON, RCONAuthenticationError


log = logging.getLogger(__name__)
PROGRAM = "arrcon"
_USAGE = """
Another Remote-CONsole client.

Usage:
  {program} [options] [--file=FILE]... [COMMAND...]

Arguments:
  COMMAND       Commands to run on the server, in order. If none are
                given, and no script files are, an interactive session
                is started instead.

Options:
  -H HOST --host=HOST
                RCON server IP/hostname. If HOST is the name of a saved
                host then that host is used.
  -P PORT --port=PORT
                RCON server port.
  -p PASS --pass=PASS
                RCON server password.
  -S NAME --saved=NAME
                Use a saved host's address and password, unless
                overridden by --host, --port or --pass.
  --list-hosts  Show a list of all saved hosts, then exit.
  --save-host=NAME
                Save the target given with --host, --port and --pass
                as NAME, then exit.
  --remove-host=NAME
                Remove the saved host NAME, then exit.
  -f FILE --file=FILE
                Run each line of FILE as a command after any COMMANDs.
                Lines starting with '#' or ';' are ignored.
  -d MS --delay=MS
                Milliseconds to wait between each command in
                commandline mode. At most 24 hours.
  -i --interactive
                Start an interactive session even if there are commands
                to run; they are always run first.
  -q --quiet    Don't print server responses.
  -Q --no-prompt
                Hide the prompt in interactive mode and the command echo
                in commandline mode.
  -n --no-color
                Disable coloured output.
  --write-ini   (Over)write the configuration file with the default
                values, then exit.
  --debug       Log protocol details to stderr.
  -h --help     Show this help, then exit.
  -v --version  Show the version number, then exit.
"""


def _target(arguments, configuration, hosts):
    """Work out which server to connect to.

    A saved host named by ``--saved``, or by ``--host`` if it matches a
    saved name, provides the defaults. Otherwise they come from the
    configuration. Either way ``--host``, ``--port`` and ``--pass``
    override them.

    :raises ConfigurationError: if ``--saved`` names an unknown host or
        ``--port`` isn't a valid port number.
    """
    host = arguments["--host"]
    saved = arguments["--saved"]
    if saved is not None:
        if saved not in hosts:
            raise ConfigurationError("No saved host named {!r}".format(saved))
        target = hosts[saved]
    elif host is not None and host in hosts:
        target = hosts[host]
        host = None
    else:
        target = configuration.target
    if host is not None:
        target = target._replace(host=host)
    if arguments["--port"] is not None:
        target = target._replace(
            port=arrcon.config.parse_port(arguments["--port"]))
    if arguments["--pass"] is not None:
        target = target._replace(password=arguments["--pass"])
    return target


def _commands(arguments, quiet, stdout, stderr):
    """Collect the commands to run: positional arguments then scripts."""
    commands = list(arguments["COMMAND"])
    for filename in arguments["--file"]:
        try:
            script = arrcon.scripts.read(filename)
        except (IOError, UnicodeDecodeError) as exc:
            print("Couldn't read {!r}: {}".format(filename, exc), file=stderr)
            continue
        if not script:
            print("Failed to read any commands from {!r}".format(filename),
                  file=stderr)
            continue
        if not quiet:
            print("Successfully read commands from {!r}".format(filename),
                  file=stdout)
        commands.extend(script)
    return commands


def _list_hosts(hosts, palette, stdout, stderr):
    if not hosts:
        print("No hosts were found.", file=stderr)
        return 1
    width = max(len(name) for name in hosts) + 2
    for name, target in hosts.items():
        print("{}{}{}".format(
            palette.paint(Element.HOST_NAME, name),
            " " * (width - len(name)),
            palette.paint(Element.HOST_INFO, "( {0.host}:{0.port} )".format(
                target)),
        ), file=stdout)
    return 0


def session(configuration, commands, palette, stdout=None, stderr=None):
    """Connect, authenticate and run the commandline and interactive modes.

    Commandline mode runs first. Interactive mode follows if it didn't
    run anything or if interactive mode is forced. The connection is
    closed however this returns.

    :raises RCONConnectionError: if the server can't be reached.
    :raises RCONAuthenticationError: if the password is rejected or the
        handshake fails.
    :raises RCONError: for any failure talking to the server once
        authenticated.
    """
    target = configuration.target
    rcon = RCON(
        (target.host, target.port),
        target.password,
        timeout=configuration.connect_timeout,
        poll_interval=configuration.receive_delay.total_seconds(),
        idle_timeout=configuration.select_timeout.total_seconds(),
    )
    try:
        rcon.connect()
        if not rcon.authenticate():
            raise RCONAuthenticationError(
                "Authentication failure: Incorrect password "
                "for {0.host}:{0.port}".format(target))
        executed = arrcon.modes.commandline(
            rcon, commands, configuration, palette, stdout, stderr)
        log.debug("Ran %i commands", executed)
        if executed == 0 or configuration.force_interactive:
            arrcon.modes.interactive(
                rcon, configuration, palette, stdout=stdout, stderr=stderr)
    finally:
        rcon.close()


def _run(arguments, stdout, stderr):
    config_path = arrcon.config.default_path()
    configuration = arrcon.config.load_ini(config_path)
    if arguments["--write-ini"]:
        arrcon.config.write_ini(config_path)
        print("Successfully wrote to config: {!r}".format(config_path),
              file=stdout)
        return 0
    palette = Palette(configuration.colors and not arguments["--no-color"])
    hosts_path = arrcon.hosts.default_path()
    hosts = arrcon.hosts.HostList.load(hosts_path)
    name = arguments["--remove-host"]
    if name is not None:
        if name not in hosts:
            raise ConfigurationError("No saved host named {!r}".format(name))
        hosts.remove(name)
        hosts.save(hosts_path)
        print("Removed host: {}".format(palette.paint(Element.HOST_NAME, name)),
              file=stdout)
        return 0
    target = _target(arguments, configuration, hosts)
    name = arguments["--save-host"]
    if name is not None:
        change = hosts.add(name, target)
        if change is hosts.Change.UNCHANGED:
            raise ConfigurationError(
                "Host {} is already set to {}:{}".format(
                    name, target.host, target.port))
        hosts.save(hosts_path)
        print("{} host: {} {}:{}".format(
            "Added" if change is hosts.Change.ADDED else "Updated",
            palette.paint(Element.HOST_NAME, name), target.host, target.port,
        ), file=stdout)
        if not arguments["--list-hosts"]:
            return 0
    if arguments["--list-hosts"]:
        return _list_hosts(hosts, palette, stdout, stderr)
    changes = {
        "target": target,
        "colors": palette.active,
        "quiet": configuration.quiet or arguments["--quiet"],
        "no_prompt": configuration.no_prompt or arguments["--no-prompt"],
        "force_interactive": arguments["--interactive"],
    }
    if arguments["--delay"] is not None:
        changes["command_delay"] = \
            arrcon.config.parse_delay(arguments["--delay"])
    configuration = configuration.replace(**changes)
    commands = _commands(arguments, configuration.quiet, stdout, stderr)
    session(configuration, commands, palette, stdout, stderr)
    return 0


def _main(argv=None, stdout=None, stderr=None):
    """RCON client entry-point.

    Commands given on the command line or in script files are run in
    order. If there are none, or ``--interactive`` is given, an
    interactive session follows.

    :param argv: command line options.

    :returns: the exit status: ``0`` on success, ``1`` if there are no
        saved hosts to list, ``-1`` for an anticipated error, such as
        failing to connect, and ``-2`` for anything else.
    """
    stdout = stdout or sys.stdout
    stderr = stderr or sys.stderr
    arguments = docopt.docopt(_USAGE.format(program=PROGRAM), argv,
                              version="{} {}".format(PROGRAM,
                                                     arrcon.__version__))
    if arguments["--debug"]:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(name)s %(levelname)s %(message)s")
    else:
        logging.disable(logging.CRITICAL)
    try:
        return _run(arguments, stdout, stderr)
    except (RCONError, ValueError, EnvironmentError) as exc:
        print(exc, file=stderr)
        return -1
    except KeyboardInterrupt:
        print("Interrupted", file=stderr)
        return -1
    except Exception as exc:  # pylint: disable=broad-except
        log.exception("Unexpected error")
        print("An unknown exception occurred: {!r}".format(exc), file=stderr)
        return -2


def main():
    sys.exit(_main())
