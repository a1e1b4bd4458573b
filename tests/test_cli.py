# -*- coding: utf-8 -*-

import datetime
import io

import docopt
import pytest

import arrcon.cli
import arrcon.modes
import arrcon.rcon
from arrcon.config import Configuration, Target
from arrcon.hosts import HostList
from arrcon.messages import RCONMessage
from arrcon.palette import Palette
from arrcon.rcon import RCONAuthenticationError, RCONConnectionError


@pytest.fixture(autouse=True)
def config_path(tmpdir, monkeypatch):
    path = tmpdir.join("arrcon.ini")
    monkeypatch.setenv("ARRCON_CONFIG", str(path))
    return path


@pytest.fixture
def hosts_path(config_path):
    return config_path.dirpath().join("arrcon.hosts")


@pytest.fixture
def session(monkeypatch):
    monkeypatch.setattr(arrcon.cli, "session", pytest.Mock())
    return arrcon.cli.session


class Output(object):

    def __init__(self):
        self.stdout = io.StringIO()
        self.stderr = io.StringIO()

    def main(self, argv):
        return arrcon.cli._main(argv, self.stdout, self.stderr)


@pytest.fixture
def output():
    return Output()


class TestMain(object):

    def test_no_arguments(self, session, output):
        assert output.main([]) == 0
        configuration, commands, palette = session.call_args[0][:3]
        assert commands == []
        assert configuration.target == Target("localhost", 27015, "")
        assert configuration.force_interactive is False
        assert palette.active is True

    def test_target_and_commands(self, session, output):
        assert output.main(["-H", "example.com", "-P", "9001", "-p", "pw",
                            "say hi", "say bye"]) == 0
        configuration, commands = session.call_args[0][:2]
        assert configuration.target == Target("example.com", 9001, "pw")
        assert commands == ["say hi", "say bye"]

    def test_long_options(self, session, output):
        assert output.main(["--host=example.com", "--port=9001",
                            "--pass=pw", "--delay=250", "--interactive",
                            "--quiet", "--no-prompt", "--no-color"]) == 0
        configuration, commands, palette = session.call_args[0][:3]
        assert configuration.target == Target("example.com", 9001, "pw")
        assert configuration.command_delay == \
            datetime.timedelta(milliseconds=250)
        assert configuration.force_interactive is True
        assert configuration.quiet is True
        assert configuration.no_prompt is True
        assert configuration.colors is False
        assert palette.active is False

    def test_delay_too_long(self, session, output):
        assert output.main(["-d", str(25 * 60 * 60 * 1000)]) == -1
        assert not session.called
        assert "24 hours" in output.stderr.getvalue()

    def test_delay_not_a_number(self, session, output):
        assert output.main(["-d", "soon"]) == -1
        assert not session.called

    def test_bad_port(self, session, output):
        assert output.main(["-P", "http"]) == -1
        assert not session.called

    def test_scripts(self, tmpdir, session, output):
        script = tmpdir.join("script.txt")
        script.write("# comment\nsay two\nsay three\n")
        empty = tmpdir.join("empty.txt")
        empty.write("# nothing\n")
        assert output.main(["-f", str(script), "-f", str(empty),
                            "--file", str(tmpdir.join("missing")),
                            "say one"]) == 0
        commands = session.call_args[0][1]
        assert commands == ["say one", "say two", "say three"]
        assert "Successfully read commands" in output.stdout.getvalue()
        stderr = output.stderr.getvalue()
        assert "Failed to read any commands" in stderr
        assert "missing" in stderr

    def test_ini_defaults(self, config_path, session, output):
        config_path.write("[target]\nhost = ini.example.com\nport = 1234\n")
        assert output.main(["-p", "pw"]) == 0
        configuration = session.call_args[0][0]
        assert configuration.target == Target("ini.example.com", 1234, "pw")

    def test_write_ini(self, config_path, session, output):
        assert output.main(["--write-ini"]) == 0
        assert not session.called
        assert "[target]" in config_path.read()

    def test_connection_error(self, session, output):
        session.side_effect = RCONConnectionError(
            ("localhost", 27015), RCONConnectionError.Reason.REFUSED)
        assert output.main([]) == -1
        assert output.stderr.getvalue() == \
            "localhost:27015: connection refused\n"

    def test_authentication_error(self, session, output):
        session.side_effect = RCONAuthenticationError(
            "Authentication failure: Incorrect password for localhost:27015")
        assert output.main([]) == -1
        assert "localhost:27015" in output.stderr.getvalue()

    def test_unknown_error(self, session, output):
        session.side_effect = RuntimeError("boom")
        assert output.main([]) == -2
        assert "unknown exception" in output.stderr.getvalue()

    def test_interrupt(self, session, output):
        session.side_effect = KeyboardInterrupt
        assert output.main([]) == -1

    def test_version(self, session, output, capsys):
        with pytest.raises(SystemExit):
            output.main(["--version"])
        assert capsys.readouterr()[0] == "arrcon {}\n".format(
            arrcon.__version__)
        assert not session.called

    def test_help(self, session, output, capsys):
        with pytest.raises(SystemExit):
            output.main(["-h"])
        assert "Usage:" in capsys.readouterr()[0]

    def test_unknown_option(self, session, output):
        with pytest.raises(docopt.DocoptExit):
            output.main(["--bogus"])
        assert not session.called


class TestHosts(object):

    def test_list_empty(self, session, output):
        assert output.main(["--list-hosts"]) == 1
        assert "No hosts" in output.stderr.getvalue()

    def test_save_and_list(self, hosts_path, session, output):
        assert output.main(["--save-host", "survival", "-H", "example.com",
                            "-P", "9001", "-p", "pw", "-n"]) == 0
        assert "Added host: survival example.com:9001" in \
            output.stdout.getvalue()
        assert HostList.load(str(hosts_path))["survival"] == \
            Target("example.com", 9001, "pw")
        output = Output()
        assert output.main(["--list-hosts", "-n"]) == 0
        assert output.stdout.getvalue() == \
            "survival  ( example.com:9001 )\n"
        assert not session.called

    def test_save_unchanged(self, hosts_path, session, output):
        hosts = HostList()
        hosts.add("survival", Target("example.com", 27015, ""))
        hosts.save(str(hosts_path))
        assert output.main(["--save-host", "survival",
                            "-H", "example.com"]) == -1

    def test_save_updated(self, hosts_path, session, output):
        hosts = HostList()
        hosts.add("survival", Target("example.com", 27015, ""))
        hosts.save(str(hosts_path))
        assert output.main(["--save-host", "survival", "-H", "example.com",
                            "-P", "9001", "-n"]) == 0
        assert "Updated host" in output.stdout.getvalue()

    def test_remove(self, hosts_path, session, output):
        hosts = HostList()
        hosts.add("survival", Target("example.com", 27015, ""))
        hosts.save(str(hosts_path))
        assert output.main(["--remove-host", "survival"]) == 0
        assert len(HostList.load(str(hosts_path))) == 0

    def test_remove_unknown(self, session, output):
        assert output.main(["--remove-host", "survival"]) == -1

    def test_use_saved(self, hosts_path, session, output):
        hosts = HostList()
        hosts.add("survival", Target("example.com", 9001, "pw"))
        hosts.save(str(hosts_path))
        assert output.main(["-S", "survival", "-P", "9002"]) == 0
        configuration = session.call_args[0][0]
        assert configuration.target == Target("example.com", 9002, "pw")

    def test_host_names_saved(self, hosts_path, session, output):
        hosts = HostList()
        hosts.add("survival", Target("example.com", 9001, "pw"))
        hosts.save(str(hosts_path))
        assert output.main(["-H", "survival"]) == 0
        configuration = session.call_args[0][0]
        assert configuration.target == Target("example.com", 9001, "pw")

    def test_saved_unknown(self, session, output):
        assert output.main(["--saved", "survival"]) == -1
        assert not session.called


class TestSession(object):

    @pytest.fixture
    def interactive(self, monkeypatch):
        monkeypatch.setattr(arrcon.modes, "interactive", pytest.Mock())
        return arrcon.modes.interactive

    def _configuration(self, rcon_server, **kwargs):
        host, port = rcon_server.server_address
        return Configuration(target=Target(host, port, "password"),
                             select_timeout=datetime.timedelta(seconds=60),
                             no_prompt=True, **kwargs)

    def _expect_auth(self, rcon_server, id_=1):
        e_request = rcon_server.expect(1, RCONMessage.Type.AUTH, b"password")
        e_request.respond(1, RCONMessage.Type.RESPONSE_VALUE, b"")
        e_request.respond(id_, RCONMessage.Type.AUTH_RESPONSE, b"")

    @pytest.mark.timeout(timeout=5, method="thread")
    def test_commands(self, rcon_server, interactive):
        self._expect_auth(rcon_server)
        rcon_server.expect_command(2, b"say hi", b"hi")
        rcon_server.expect_command(4, b"say bye", b"bye")
        stdout = io.StringIO()
        arrcon.cli.session(self._configuration(rcon_server),
                           ["say hi", "say bye"], Palette(False), stdout)
        assert stdout.getvalue() == "hi\nbye\n"
        assert not interactive.called

    @pytest.mark.timeout(timeout=5, method="thread")
    def test_no_commands(self, rcon_server, interactive):
        self._expect_auth(rcon_server)
        states = []
        interactive.side_effect = \
            lambda rcon, *args, **kwargs: states.append(rcon.state)
        arrcon.cli.session(self._configuration(rcon_server),
                           [], Palette(False), io.StringIO())
        assert states == [arrcon.rcon.RCON.State.AUTHENTICATED]
        assert interactive.call_args[0][0].closed

    @pytest.mark.timeout(timeout=5, method="thread")
    def test_force_interactive(self, rcon_server, interactive):
        self._expect_auth(rcon_server)
        rcon_server.expect_command(2, b"say hi", b"hi")
        arrcon.cli.session(
            self._configuration(rcon_server, force_interactive=True),
            ["say hi"], Palette(False), io.StringIO())
        assert interactive.called
        assert interactive.call_args[0][0].closed

    @pytest.mark.timeout(timeout=5, method="thread")
    def test_wrong_password(self, rcon_server, interactive):
        self._expect_auth(rcon_server, id_=-1)
        with pytest.raises(RCONAuthenticationError) as exc:
            arrcon.cli.session(self._configuration(rcon_server),
                               ["say hi"], Palette(False), io.StringIO())
        assert "{}:{}".format(*rcon_server.server_address) in str(exc.value)
        assert not interactive.called

    def test_refused(self, unused_address, interactive):
        configuration = Configuration(target=Target(
            unused_address[0], unused_address[1], ""))
        with pytest.raises(RCONConnectionError):
            arrcon.cli.session(configuration, ["say hi"], Palette(False),
                               io.StringIO())
        assert not interactive.called
