from ._version import __version_info__, __version__
from .auth import load_private_key
from .client import Connector, EndpointConfig, normalize_endpoints
from .config import Config
from .connection import (
    ConnectionProfile,
    JumpHost,
    Session,
    establish_tunnel,
    parse_jump_host,
)
from .endpoints import (
    Endpoint,
    check_endpoint,
    classify_endpoint,
    resolve_forwarder_kind,
)
from .exceptions import (
    ConnectError,
    KeyFileError,
    KeyLoadError,
    KeyParseError,
    ListenError,
    TunnelError,
    TunnelEstablishError,
    UnsupportedEndpointError,
)
from .tunnels import Tunnel

__all__ = [
    '__version_info__', '__version__',
    'load_private_key',
    'Connector', 'EndpointConfig', 'normalize_endpoints',
    'Config',
    'ConnectionProfile', 'JumpHost', 'Session',
    'establish_tunnel', 'parse_jump_host',
    'Endpoint', 'check_endpoint', 'classify_endpoint',
    'resolve_forwarder_kind',
    'ConnectError', 'KeyFileError', 'KeyLoadError', 'KeyParseError',
    'ListenError', 'TunnelError', 'TunnelEstablishError',
    'UnsupportedEndpointError',
    'Tunnel',
]
