# -*- coding: utf-8 -*-

"""Remote console (RCON) client for Source-protocol game servers."""

__version__ = "1.2.0"
