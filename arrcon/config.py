# -*- coding: utf-8 -*-

"""Session configuration and its INI file."""

import collections
import configparser
import datetime
import logging
import os


log = logging.getLogger(__name__)

#: Longest delay allowed between commands in commandline mode.
MAX_DELAY = datetime.timedelta(hours=24)

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 27015
ENVIRONMENT_VARIABLE = "ARRCON_CONFIG"


class ConfigurationError(ValueError):
    """Raised for invalid configuration values."""


Target = collections.namedtuple("Target", ("host", "port", "password"))
Target.__doc__ = "Where to connect to and the password to use."


def parse_port(port):
    """Parse a port number.

    :raises ConfigurationError: if the given port does not appear
        to be a valid port number.

    :returns: the port as an integer.
    """
    try:
        port = int(port)
    except (TypeError, ValueError):
        raise ConfigurationError(
            "Could not parse port {!r} as a number".format(port))
    if port <= 0 or port > 65535:
        raise ConfigurationError("Port number must be in the range 1 to 65535")
    return port


def parse_delay(milliseconds):
    """Parse a command delay given as a number of milliseconds.

    :raises ConfigurationError: if the delay isn't a non-negative integer
        or is longer than :data:`MAX_DELAY`.

    :returns: the delay as a :class:`datetime.timedelta`.
    """
    text = str(milliseconds).strip()
    if not text.isdigit():
        raise ConfigurationError(
            "Invalid delay value given: {!r}, "
            "expected an integer".format(milliseconds))
    delay = datetime.timedelta(milliseconds=int(text))
    if delay > MAX_DELAY:
        raise ConfigurationError(
            "Cannot set a delay value longer than {} hours".format(
                int(MAX_DELAY.total_seconds() // 3600)))
    return delay


def _milliseconds(delta):
    return int(delta.total_seconds() * 1000)


class Configuration(object):
    """Settings for one run of the client.

    An instance is built once, before connecting, from defaults, the INI
    file and the command line, then handed to the session drivers. It
    isn't changed once the session starts.

    :ivar Target target: default server to connect to.
    :ivar datetime.timedelta command_delay: pause between commands in
        commandline mode.
    :ivar datetime.timedelta receive_delay: how long each read waits
        while collecting a response.
    :ivar datetime.timedelta select_timeout: how long without new data
        before a response is taken to be complete.
    :ivar float connect_timeout: seconds to wait when connecting and
        authenticating.
    :ivar bool quiet: don't print responses.
    :ivar bool no_prompt: hide the interactive prompt and command echo.
    :ivar bool force_interactive: start interactive mode even after
        running commands.
    :ivar bool colors: colour the prompt and echoed commands.
    :ivar str custom_prompt: replaces the default prompt if not empty.
    """

    def __init__(self, target=None, command_delay=None,
                 receive_delay=None, select_timeout=None,
                 connect_timeout=5.0, quiet=False, no_prompt=False,
                 force_interactive=False, colors=True, custom_prompt=""):
        self.target = target or Target(DEFAULT_HOST, DEFAULT_PORT, "")
        if command_delay is None:
            command_delay = datetime.timedelta(0)
        if receive_delay is None:
            receive_delay = datetime.timedelta(milliseconds=10)
        if select_timeout is None:
            select_timeout = datetime.timedelta(milliseconds=500)
        self.command_delay = command_delay
        if self.command_delay > MAX_DELAY:
            raise ConfigurationError(
                "Cannot set a delay value longer than {}".format(MAX_DELAY))
        self.receive_delay = receive_delay
        self.select_timeout = select_timeout
        self.connect_timeout = connect_timeout
        self.quiet = quiet
        self.no_prompt = no_prompt
        self.force_interactive = force_interactive
        self.colors = colors
        self.custom_prompt = custom_prompt

    def __repr__(self):
        return ("<{0.__class__.__name__} {0.target.host}:{0.target.port} "
                "delay={1}ms>".format(self, _milliseconds(self.command_delay)))

    def replace(self, **changes):
        """Get a copy of the configuration with some values changed."""
        values = dict(vars(self))
        values.update(changes)
        return self.__class__(**values)


def default_path():
    """Get the location of the INI file.

    ``$ARRCON_CONFIG`` takes precedence, otherwise it's ``arrcon.ini`` in
    the user's configuration directory.
    """
    if ENVIRONMENT_VARIABLE in os.environ:
        return os.environ[ENVIRONMENT_VARIABLE]
    base = os.environ.get("XDG_CONFIG_HOME",
                          os.path.join(os.path.expanduser("~"), ".config"))
    return os.path.join(base, "arrcon", "arrcon.ini")


def load_ini(path, configuration=None):
    """Overlay the settings in an INI file onto a configuration.

    Missing sections and keys keep their current values. A missing file
    is not an error.

    :raises ConfigurationError: if a value in the file is invalid.

    :returns: a new :class:`Configuration`.
    """
    configuration = configuration or Configuration()
    parser = configparser.ConfigParser(interpolation=None)
    try:
        read = parser.read(path, encoding="utf-8")
    except configparser.Error as exc:
        raise ConfigurationError("Couldn't parse {}: {}".format(path, exc))
    if not read:
        log.debug("No configuration at %s", path)
        return configuration
    log.debug("Loading configuration from %s", path)
    target = configuration.target
    changes = {}
    try:
        if parser.has_section("target"):
            section = parser["target"]
            changes["target"] = Target(
                section.get("host", target.host),
                parse_port(section.get("port", target.port)),
                section.get("password", target.password),
            )
        if parser.has_section("appearance"):
            section = parser["appearance"]
            changes["colors"] = section.getboolean(
                "colors", configuration.colors)
            changes["custom_prompt"] = section.get(
                "prompt", configuration.custom_prompt)
        if parser.has_section("timing"):
            section = parser["timing"]
            for key, attribute in [("command_delay_ms", "command_delay"),
                                   ("receive_delay_ms", "receive_delay"),
                                   ("select_timeout_ms", "select_timeout")]:
                if key in section:
                    changes[attribute] = parse_delay(section[key])
    except ValueError as exc:
        raise ConfigurationError("Invalid value in {}: {}".format(path, exc))
    return configuration.replace(**changes)


def write_ini(path, configuration=None):
    """Write a configuration to an INI file.

    Parent directories are created as needed. Without a configuration
    the defaults are written.

    :raises OSError: if the file can't be written.
    """
    configuration = configuration or Configuration()
    parser = configparser.ConfigParser(interpolation=None)
    parser["target"] = {
        "host": configuration.target.host,
        "port": str(configuration.target.port),
        "password": configuration.target.password,
    }
    parser["appearance"] = {
        "colors": "true" if configuration.colors else "false",
        "prompt": configuration.custom_prompt,
    }
    parser["timing"] = {
        "command_delay_ms": str(_milliseconds(configuration.command_delay)),
        "receive_delay_ms": str(_milliseconds(configuration.receive_delay)),
        "select_timeout_ms": str(_milliseconds(configuration.select_timeout)),
    }
    directory = os.path.dirname(path)
    if directory and not os.path.isdir(directory):
        os.makedirs(directory)
    with open(path, "w", encoding="utf-8") as file_:
        parser.write(file_)
    log.debug("Wrote configuration to %s", path)
