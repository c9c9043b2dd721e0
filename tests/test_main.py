from unittest.mock import Mock

import pytest

from ovsdb_tunnel import Config, ConnectionProfile
from ovsdb_tunnel import main


@pytest.fixture
def establish(monkeypatch):
    tunnel = Mock(name="tunnel")
    tunnel.local_endpoint = "tcp:127.0.0.1:40000"
    tunnel.manager.is_alive.return_value = False
    mock = Mock(name="establish_tunnel", return_value=tunnel)
    monkeypatch.setattr(main, "establish_tunnel", mock)
    return mock


def run(argv):
    main.program.run("ovsdb-tunnel " + argv, exit=False)


class TestForward:
    def test_builds_profile_and_prints_local_endpoint(self, establish, capsys):
        run(
            "forward --endpoint unix:/var/run/openvswitch/db.sock"
            " --host db.internal --user admin --port 2200"
            " --identity /keys/id_ed25519"
            " --jump alice@bastion1:22 --jump bob@bastion2:2200"
            " --forwarder tcp"
        )
        (profile, endpoint), kwargs = establish.call_args
        assert profile == ConnectionProfile(
            host="db.internal",
            port=2200,
            user="admin",
            key_filename="/keys/id_ed25519",
            jump_hosts=["alice@bastion1:22", "bob@bastion2:2200"],
            forwarder="tcp",
        )
        assert endpoint == "unix:/var/run/openvswitch/db.sock"
        assert isinstance(kwargs["config"], Config)
        assert capsys.readouterr().out.strip() == "tcp:127.0.0.1:40000"

    def test_cleans_up_when_accept_loop_ends(self, establish):
        run("forward --endpoint tcp:10.0.0.5:6640 --host db.internal")
        tunnel = establish.return_value
        tunnel.stop.assert_called_once_with()
        tunnel.session.close.assert_called_once_with()

    def test_unset_options_come_from_config(self, establish, monkeypatch):
        monkeypatch.setenv("OVSDB_TUNNEL_PORT", "2022")
        monkeypatch.setenv("OVSDB_TUNNEL_FORWARDER", "unix")
        run("forward --endpoint tcp:10.0.0.5:6640 --host db.internal")
        profile = establish.call_args[0][0]
        assert profile.port == 2022
        assert profile.forwarder == "unix"
        assert profile.jump_hosts == ()


def test_version_mentions_dependencies(capsys):
    run("--version")
    out = capsys.readouterr().out
    assert "Paramiko" in out
    assert "Invoke" in out
