"""
CLI entrypoint & parser configuration.

Builds on top of Invoke's core functionality for same.
"""

import logging

from invoke import Collection, Program, task
from invoke import __version__ as invoke
from paramiko import __version__ as paramiko

from . import __version__ as ovsdb_tunnel
from .config import Config
from .connection import ConnectionProfile, establish_tunnel


LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


@task(
    iterable=["jump"],
    help={
        "endpoint": "Remote endpoint, e.g. 'unix:/var/run/openvswitch/db.sock' or 'tcp:127.0.0.1:6640'.",  # noqa
        "host": "SSH host that can reach the endpoint.",
        "user": "SSH login user. Defaults to config 'user'.",
        "port": "SSH port. Defaults to config 'port'.",
        "identity": "Path to the private key file.",
        "jump": "Jump host as [user@]host[:port]. May be given multiple times, in order.",  # noqa
        "forwarder": "Local socket type: tcp, unix or auto.",
    },
)
def forward(
    c,
    endpoint,
    host,
    user=None,
    port=None,
    identity=None,
    jump=None,
    forwarder=None,
):
    """
    Open a tunnel to ENDPOINT and print the local endpoint to connect to.
    """
    profile = ConnectionProfile(
        host=host,
        port=port or c.config.port,
        user=user or c.config.user,
        key_filename=identity or c.config.key_filename,
        jump_hosts=jump or (),
        forwarder=forwarder or c.config.forwarder,
    )
    tunnel = establish_tunnel(profile, endpoint, config=c.config)
    print(tunnel.local_endpoint, flush=True)
    try:
        while tunnel.manager.is_alive():
            tunnel.manager.join(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        tunnel.stop()
        tunnel.session.close()


class OvsdbTunnel(Program):
    def print_version(self):
        super().print_version()
        print("Paramiko {}".format(paramiko))
        print("Invoke {}".format(invoke))

    def parse_core(self, *args, **kwargs):
        super().parse_core(*args, **kwargs)
        # No-op when --debug already configured logging.
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)


def make_program():
    return OvsdbTunnel(
        name="ovsdb-tunnel",
        binary="ovsdb-tunnel",
        version=ovsdb_tunnel,
        namespace=Collection(forward),
        config_class=Config,
    )


program = make_program()
