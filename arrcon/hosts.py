# -*- coding: utf-8 -*-

"""Saved host list.

Hosts are kept in an INI file, one section per host name::

    [survival]
    host = 192.168.1.10
    port = 27015
    password = hunter2
"""

import collections
import collections.abc
import configparser
import enum
import logging
import os

import arrcon.config
from arrcon.config import ConfigurationError, Target, parse_port


log = logging.getLogger(__name__)


def default_path():
    """Get the location of the host list, beside the INI configuration."""
    return os.path.splitext(arrcon.config.default_path())[0] + ".hosts"


class HostList(collections.abc.Mapping):
    """Mapping of saved host names to their :class:`Target`."""

    class Change(enum.Enum):
        """Result of :meth:`add`."""

        UNCHANGED = 0
        UPDATED = 1
        ADDED = 2

    def __init__(self, hosts=None):
        self._hosts = collections.OrderedDict(hosts or {})

    def __getitem__(self, name):
        return self._hosts[name]

    def __iter__(self):
        return iter(self._hosts)

    def __len__(self):
        return len(self._hosts)

    def __repr__(self):
        return "<{0.__class__.__name__} {1} hosts>".format(self, len(self))

    def add(self, name, target):
        """Save a target under a name, replacing any with the same name.

        :returns: a :class:`Change` saying what happened.
        """
        existing = self._hosts.get(name)
        if existing == target:
            return self.Change.UNCHANGED
        self._hosts[name] = target
        if existing is None:
            return self.Change.ADDED
        return self.Change.UPDATED

    def remove(self, name):
        """Forget a saved host.

        :raises KeyError: if there's no host with the given name.
        """
        del self._hosts[name]

    @classmethod
    def load(cls, path):
        """Read a host list from a file.

        A missing file gives an empty list.

        :raises ConfigurationError: if the file can't be parsed or a
            host's port is invalid.
        """
        parser = configparser.ConfigParser(interpolation=None)
        try:
            parser.read(path, encoding="utf-8")
        except configparser.Error as exc:
            raise ConfigurationError("Couldn't parse {}: {}".format(path, exc))
        hosts = cls()
        for name in parser.sections():
            section = parser[name]
            if "host" not in section:
                log.warning("Ignoring saved host %r without a host", name)
                continue
            hosts._hosts[name] = Target(
                section["host"],
                parse_port(section.get("port", "27015")),
                section.get("password", ""),
            )
        log.debug("Loaded %i hosts from %s", len(hosts), path)
        return hosts

    def save(self, path):
        """Write the host list to a file.

        :raises OSError: if the file can't be written.
        """
        parser = configparser.ConfigParser(interpolation=None)
        for name, target in self._hosts.items():
            parser[name] = {
                "host": target.host,
                "port": str(target.port),
                "password": target.password,
            }
        directory = os.path.dirname(path)
        if directory and not os.path.isdir(directory):
            os.makedirs(directory)
        with open(path, "w", encoding="utf-8") as file_:
            parser.write(file_)
        log.debug("Saved %i hosts to %s", len(self), path)
