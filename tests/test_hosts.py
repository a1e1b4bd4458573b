# -*- coding: utf-8 -*-

import pytest

import arrcon.hosts
from arrcon.config import ConfigurationError, Target
from arrcon.hosts import HostList


class TestHostList(object):

    def test_add(self):
        hosts = HostList()
        target = Target("example.com", 27015, "pass")
        assert hosts.add("survival", target) is HostList.Change.ADDED
        assert hosts.add("survival", target) is HostList.Change.UNCHANGED
        assert hosts.add("survival", target._replace(port=9001)) \
            is HostList.Change.UPDATED
        assert hosts["survival"].port == 9001
        assert len(hosts) == 1

    def test_remove(self):
        hosts = HostList({"a": Target("a", 1, "")})
        hosts.remove("a")
        assert "a" not in hosts
        with pytest.raises(KeyError):
            hosts.remove("a")

    def test_save_then_load(self, tmpdir):
        path = str(tmpdir.join("arrcon.hosts"))
        hosts = HostList()
        hosts.add("b", Target("10.0.0.2", 27016, "two"))
        hosts.add("a", Target("10.0.0.1", 27015, ""))
        hosts.save(path)
        loaded = HostList.load(path)
        assert list(loaded) == ["b", "a"]
        assert loaded["b"] == Target("10.0.0.2", 27016, "two")
        assert loaded["a"] == Target("10.0.0.1", 27015, "")

    def test_load_missing(self, tmpdir):
        assert len(HostList.load(str(tmpdir.join("none.hosts")))) == 0

    def test_load_defaults(self, tmpdir):
        path = tmpdir.join("arrcon.hosts")
        path.write("[minimal]\nhost = example.com\n\n[broken]\nport = 1\n")
        hosts = HostList.load(str(path))
        assert list(hosts) == ["minimal"]
        assert hosts["minimal"] == Target("example.com", 27015, "")

    def test_load_bad_port(self, tmpdir):
        path = tmpdir.join("arrcon.hosts")
        path.write("[bad]\nhost = example.com\nport = http\n")
        with pytest.raises(ConfigurationError):
            HostList.load(str(path))

    def test_default_path(self, monkeypatch):
        monkeypatch.setenv("ARRCON_CONFIG", "/tmp/custom.ini")
        assert arrcon.hosts.default_path() == "/tmp/custom.hosts"
