from invoke.config import Config as InvokeConfig, merge_dicts

from .util import get_local_user


class Config(InvokeConfig):
    prefix = "ovsdb_tunnel"

    @staticmethod
    def global_defaults():
        defaults = InvokeConfig.global_defaults()
        ours = {
            "forwarder": "auto",
            "host_keys": {
                "known_hosts": None,
                "policy": "auto-add",
            },
            "key_filename": None,
            "port": 22,
            "timeouts": {"connect": 10},
            "tunnel": {
                "backlog": 16,
                "bind_host": "127.0.0.1",
                "chunk_size": 32768,
                "poll_interval": 0.01,
                "socket_dir": None,
            },
            "user": get_local_user(),
        }
        merge_dicts(defaults, ours)
        return defaults
