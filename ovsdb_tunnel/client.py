"""
Caller-side glue: decide per endpoint whether to tunnel, then hand the
resulting endpoint string to a database client.
"""

from collections import namedtuple

from .connection import ConnectionProfile, establish_tunnel
from .exceptions import ConnectError
from .util import debug, info, warning


# JSON keys used by saved connection records, mapped to profile fields.
PROFILE_KEYS = {
    "host": "host",
    "port": "port",
    "user": "user",
    "keyFile": "key_filename",
    "key_filename": "key_filename",
    "jumpHosts": "jump_hosts",
    "jump_hosts": "jump_hosts",
    "localForwarderType": "forwarder",
    "forwarder": "forwarder",
}


class EndpointConfig(namedtuple("EndpointConfig", "endpoint tunnel")):
    __slots__ = ()

    def __new__(cls, endpoint, tunnel=None):
        return super().__new__(cls, endpoint, tunnel)

    @classmethod
    def from_dict(cls, data):
        tunnel = data.get("tunnel")
        if tunnel is not None and not isinstance(tunnel, ConnectionProfile):
            kwargs = {}
            for key, value in tunnel.items():
                if key in PROFILE_KEYS:
                    kwargs[PROFILE_KEYS[key]] = value
            tunnel = ConnectionProfile(**kwargs)
        return cls(data.get("endpoint", ""), tunnel)


def normalize_profile(profile):
    host = profile.host.strip()
    if not host:
        return None
    jumps = [x.strip() for x in profile.jump_hosts]
    return ConnectionProfile(
        host=host,
        port=profile.port,
        user=profile.user.strip(),
        key_filename=(profile.key_filename or "").strip() or None,
        jump_hosts=[x for x in jumps if x],
        forwarder=profile.forwarder,
    )


def normalize_endpoints(endpoints):
    cleaned = []
    for value in endpoints or ():
        if isinstance(value, str):
            value = EndpointConfig(value)
        elif isinstance(value, dict):
            value = EndpointConfig.from_dict(value)
        endpoint = value.endpoint.strip()
        if not endpoint:
            continue
        tunnel = value.tunnel
        if tunnel is not None:
            tunnel = normalize_profile(tunnel)
        cleaned.append(EndpointConfig(endpoint, tunnel))
    return cleaned


class Connector:
    client = None
    tunnel = None
    endpoint = None

    def __init__(self, client_factory, config=None):
        self.client_factory = client_factory
        self.config = config

    @property
    def is_connected(self):
        return self.client is not None

    def connect(self, endpoints):
        endpoints = normalize_endpoints(endpoints)
        if not endpoints:
            raise ConnectError("no endpoints provided")
        self.disconnect()
        errors = []
        for value in endpoints:
            try:
                self.connect_one(value)
            except Exception as e:
                warning("Connection to {} failed: {}".format(value.endpoint, e))
                errors.append((value.endpoint, e))
                continue
            return self.client
        last = errors[-1][1]
        raise ConnectError(
            "failed to connect to any endpoint: {}".format(last), errors
        ) from last

    def connect_one(self, value):
        tunnel = None
        target = value.endpoint
        if value.tunnel is not None:
            tunnel = establish_tunnel(
                value.tunnel, value.endpoint, config=self.config
            )
            target = tunnel.local_endpoint
        else:
            debug("No tunnel host for {}, connecting directly".format(target))
        try:
            client = self.client_factory(target)
        except Exception:
            if tunnel is not None:
                tunnel.stop()
                tunnel.session.close()
            raise
        self.client = client
        self.tunnel = tunnel
        self.endpoint = value
        info("Connected to {} via {}".format(value.endpoint, target))

    def disconnect(self):
        client, self.client = self.client, None
        tunnel, self.tunnel = self.tunnel, None
        self.endpoint = None
        try:
            if client is not None:
                for name in ("close", "disconnect"):
                    method = getattr(client, name, None)
                    if callable(method):
                        method()
                        break
        finally:
            if tunnel is not None:
                tunnel.stop()
                tunnel.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.disconnect()
