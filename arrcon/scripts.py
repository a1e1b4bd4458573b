# -*- coding: utf-8 -*-

"""Reading commands from script files."""

import logging
import os


log = logging.getLogger(__name__)

COMMENT_CHARACTERS = ("#", ";")


def resolve(filename, path=None):
    """Find a script file.

    If ``filename`` doesn't exist as given then each directory on ``PATH``
    is searched for it, both as given and with a ``.txt`` extension.

    :param path: the search path; defaults to ``$PATH``.

    :returns: the path to the file, or ``None`` if it couldn't be found.
    """
    if os.path.isfile(filename):
        return filename
    if path is None:
        path = os.environ.get("PATH", "")
    for directory in path.split(os.pathsep):
        if not directory:
            continue
        for candidate in (filename, filename + ".txt"):
            full_path = os.path.join(directory, candidate)
            if os.path.isfile(full_path):
                log.debug("Resolved %s to %s", filename, full_path)
                return full_path
    return None


def parse(lines):
    """Parse script lines into commands.

    Surrounding whitespace is stripped. Blank lines and comment lines,
    which start with ``#`` or ``;``, are dropped.
    """
    commands = []
    for line in lines:
        line = line.strip()
        if line and not line.startswith(COMMENT_CHARACTERS):
            commands.append(line)
    return commands


def read(filename, path=None):
    """Read the commands in a script file.

    :raises IOError: if the file can't be found or read.

    :returns: a list of commands in the order they appear in the file.
    """
    resolved = resolve(filename, path)
    if resolved is None:
        raise IOError("Couldn't find file: {!r}".format(filename))
    with open(resolved, encoding="utf-8") as file_:
        return parse(file_)
