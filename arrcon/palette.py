# -*- coding: utf-8 -*-

"""ANSI colours for terminal output."""

import enum


class Element(enum.Enum):
    """Parts of the output that can be coloured."""

    PROMPT_NAME = "prompt_name"
    PROMPT_ARROW = "prompt_arrow"
    RESPONSE = "response"
    COMMAND_ECHO = "command_echo"
    HOST_NAME = "host_name"
    HOST_INFO = "host_info"


#: ANSI escape sequence for each element. Elements may share a colour.
COLORS = {
    Element.PROMPT_NAME: "\033[1;32m",
    Element.PROMPT_ARROW: "\033[32m",
    Element.RESPONSE: "\033[37m",
    Element.COMMAND_ECHO: "\033[32m",
    Element.HOST_NAME: "\033[1;33m",
    Element.HOST_INFO: "\033[90m",
}

RESET = "\033[0m"


class Palette(object):
    """Wraps text in ANSI colour sequences.

    When inactive text is returned unchanged, which is what's wanted for
    ``--no-color`` or when output isn't going to a terminal.
    """

    def __init__(self, active=True):
        self.active = active

    def paint(self, element, text):
        if not self.active:
            return text
        return COLORS[element] + text + RESET

    def prompt(self, host, custom=""):
        """Build the interactive prompt, e.g. ``RCON@localhost> ``."""
        if custom:
            return custom
        return "{}{} ".format(self.paint(Element.PROMPT_NAME, "RCON@" + host),
                              self.paint(Element.PROMPT_ARROW, ">"))
