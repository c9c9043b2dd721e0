from collections import namedtuple

from .exceptions import UnsupportedEndpointError
from . import util


TCP = "tcp"
UNIX = "unix"
AUTO = "auto"

ENDPOINT_KINDS = (TCP, UNIX)
FORWARDER_KINDS = (TCP, UNIX, AUTO)


class Endpoint(namedtuple("Endpoint", "kind address")):
    __slots__ = ()

    def __str__(self):
        return "{}:{}".format(self.kind, self.address)


def classify_endpoint(endpoint):
    for kind in ENDPOINT_KINDS:
        prefix = kind + ":"
        if endpoint.startswith(prefix):
            return Endpoint(kind, endpoint[len(prefix):])
    raise UnsupportedEndpointError(endpoint)


def split_tcp_address(address):
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise UnsupportedEndpointError(
            "tcp:" + address, "expected tcp:host:port with a numeric port"
        )
    # Bracketed IPv6 literal, e.g. [::1]:6640
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, int(port)


def check_endpoint(endpoint):
    if not isinstance(endpoint, Endpoint):
        endpoint = classify_endpoint(endpoint)
    if endpoint.kind == TCP:
        split_tcp_address(endpoint.address)
    return endpoint


def resolve_forwarder_kind(preference, remote_kind, unix_supported=None):
    if unix_supported is None:
        unix_supported = util.has_unix_sockets
    preference = preference or AUTO
    if preference not in FORWARDER_KINDS:
        err = "Unsupported forwarder type {!r}; expected one of {}"
        raise ValueError(err.format(preference, ", ".join(FORWARDER_KINDS)))
    if preference != AUTO:
        return preference
    if not unix_supported:
        return TCP
    return remote_kind
