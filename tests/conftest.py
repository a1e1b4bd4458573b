# -*- coding: utf-8 -*-

import threading

import mock
import pytest

import arrcon.testing


def pytest_configure():
    pytest.Mock = mock.Mock
    pytest.MagicMock = mock.MagicMock


@pytest.fixture
def rcon_server():
    server = arrcon.testing.TestRCONServer()
    thread = threading.Thread(target=server.serve_forever)
    thread.start()
    yield server
    server.shutdown()
    thread.join()


@pytest.fixture
def unused_address():
    """Address of a local port nothing is listening on."""
    server = arrcon.testing.TestRCONServer()
    address = server.server_address
    server.server_close()
    return address
