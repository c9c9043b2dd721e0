from collections import namedtuple
import os

from decorator import decorator
from paramiko.client import SSHClient
from paramiko.ssh_exception import SSHException

from .auth import get_host_key_policy, load_private_key
from .config import Config
from .endpoints import (
    FORWARDER_KINDS,
    UNIX,
    check_endpoint,
    resolve_forwarder_kind,
    split_tcp_address,
)
from .exceptions import TunnelEstablishError
from .transport import StreamLocalTransport
from .tunnels import open_tunnel
from .util import debug, info


DEFAULT_PORT = 22


@decorator
def opens(method, self, *args, **kwargs):
    self.open()
    return method(self, *args, **kwargs)


class JumpHost(namedtuple("JumpHost", "user host port")):
    __slots__ = ()

    def __str__(self):
        hostport = "{}:{}".format(self.host, self.port)
        if ":" in self.host:
            hostport = "[{}]:{}".format(self.host, self.port)
        if self.user:
            return "{}@{}".format(self.user, hostport)
        return hostport


def parse_jump_host(host_string):
    user_hostport = host_string.rsplit("@", 1)
    hostport = user_hostport.pop()
    user = user_hostport[0] if user_hostport else ""
    port = None
    if hostport.startswith("[") and "]" in hostport:
        host, _, rest = hostport[1:].partition("]")
        port = rest[1:] if rest.startswith(":") else None
    elif hostport.count(":") > 1:
        host = hostport
    else:
        host, _, port = hostport.partition(":")
    if port and port.isdigit():
        port = int(port)
    else:
        port = 0
    return JumpHost(user=user, host=host, port=port or DEFAULT_PORT)


_ProfileBase = namedtuple(
    "ConnectionProfile", "host port user key_filename jump_hosts forwarder"
)


class ConnectionProfile(_ProfileBase):
    __slots__ = ()

    def __new__(
        cls,
        host="",
        port=None,
        user="",
        key_filename=None,
        jump_hosts=(),
        forwarder="auto",
    ):
        if isinstance(jump_hosts, str):
            raise ValueError(
                "jump_hosts must be a sequence of host strings, not a single string!"  # noqa
            )
        forwarder = forwarder or "auto"
        if forwarder not in FORWARDER_KINDS:
            err = "Unsupported forwarder type {!r}; expected one of {}"
            raise ValueError(err.format(forwarder, ", ".join(FORWARDER_KINDS)))
        return super().__new__(
            cls,
            host=host or "",
            port=int(port or DEFAULT_PORT),
            user=user or "",
            key_filename=key_filename,
            jump_hosts=tuple(jump_hosts or ()),
            forwarder=forwarder,
        )

    @property
    def tunneled(self):
        return bool(self.host)

    def hops(self, default_user=None):
        default_user = self.user or default_user or ""
        hops = []
        for value in self.jump_hosts:
            jump = parse_jump_host(value)
            hops.append(jump._replace(user=jump.user or default_user))
        target = JumpHost(user=default_user, host=self.host, port=self.port)
        hops.append(target)
        return hops


class Session:
    profile = None
    config = None
    connect_timeout = None
    host_key_policy = None
    known_hosts = None
    clients = None

    def __init__(self, profile, config=None, host_key_policy=None):
        if config is None:
            config = Config()
        self.profile = profile
        self.config = config
        self.connect_timeout = config.timeouts.connect
        if host_key_policy is None:
            host_key_policy = config.host_keys.policy
        self.host_key_policy = get_host_key_policy(host_key_policy)
        self.known_hosts = config.host_keys.known_hosts
        self.clients = []

    def __repr__(self):
        bits = [("host", self.profile.host), ("port", self.profile.port)]
        if self.profile.jump_hosts:
            bits.append(("jumps", len(self.profile.jump_hosts)))
        if self.is_connected:
            bits.append(("connected", True))
        return "<Session {}>".format(
            " ".join("{}={}".format(*x) for x in bits)
        )

    @property
    def client(self):
        return self.clients[-1] if self.clients else None

    @property
    def transport(self):
        client = self.client
        return client.get_transport() if client is not None else None

    @property
    def is_connected(self):
        return self.transport.active if self.transport else False

    def open(self):
        if self.is_connected:
            return
        self.close()
        key = load_private_key(self.profile.key_filename)
        clients = []
        for index, hop in enumerate(self.profile.hops(self.config.user), 1):
            previous = clients[-1] if clients else None
            via = "directly" if previous is None else "via previous hop"
            debug("Dialing SSH hop {} ({}) {}".format(index, hop, via))
            try:
                clients.append(self.connect_hop(hop, key, previous))
            except BaseException as e:
                for client in reversed(clients):
                    client.close()
                if not isinstance(e, Exception):
                    raise
                raise TunnelEstablishError(index, str(hop), e) from e
        self.clients = clients
        info(
            "SSH session to {} established through {} jump host(s)".format(
                self.profile.host, len(clients) - 1
            )
        )

    def connect_hop(self, hop, key, previous=None):
        client = SSHClient()
        if self.known_hosts:
            client.load_host_keys(os.path.expanduser(self.known_hosts))
        client.set_missing_host_key_policy(self.host_key_policy)
        sock = None
        try:
            if previous is not None:
                sock = previous.get_transport().open_channel(
                    kind="direct-tcpip",
                    dest_addr=(hop.host, hop.port),
                    src_addr=("", 0),
                    timeout=self.connect_timeout,
                )
            client.connect(
                hostname=hop.host,
                port=hop.port,
                username=hop.user or None,
                pkey=key,
                sock=sock,
                timeout=self.connect_timeout,
                banner_timeout=self.connect_timeout,
                auth_timeout=self.connect_timeout,
                allow_agent=False,
                look_for_keys=False,
                transport_factory=StreamLocalTransport,
            )
        except BaseException:
            client.close()
            if sock is not None:
                sock.close()
            raise
        return client

    def dial(self, endpoint, src_addr=("127.0.0.1", 0)):
        transport = self.transport
        if transport is None or not transport.active:
            raise SSHException("SSH session not active")
        if endpoint.kind == UNIX:
            return transport.open_unix_channel(
                endpoint.address, timeout=self.connect_timeout
            )
        return transport.open_channel(
            kind="direct-tcpip",
            dest_addr=split_tcp_address(endpoint.address),
            src_addr=src_addr,
            timeout=self.connect_timeout,
        )

    def forward(self, endpoint, kind=None):
        endpoint = check_endpoint(endpoint)
        kind = resolve_forwarder_kind(
            kind or self.profile.forwarder, endpoint.kind
        )
        return self._forward(endpoint, kind)

    @opens
    def _forward(self, endpoint, kind):
        return open_tunnel(self, endpoint, kind, self.config)

    def close(self):
        clients, self.clients = self.clients, []
        for client in reversed(clients):
            client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def establish_tunnel(profile, endpoint, config=None, host_key_policy=None):
    remote = check_endpoint(endpoint)
    kind = resolve_forwarder_kind(profile.forwarder, remote.kind)
    session = Session(profile, config=config, host_key_policy=host_key_policy)
    session.open()
    try:
        return session.forward(remote, kind)
    except BaseException:
        session.close()
        raise
