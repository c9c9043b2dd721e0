from io import StringIO

from paramiko import (
    AutoAddPolicy,
    ECDSAKey,
    Ed25519Key,
    MissingHostKeyPolicy,
    RejectPolicy,
    RSAKey,
    SSHException,
    WarningPolicy,
)

from .exceptions import KeyLoadError, KeyParseError
from .util import debug


KEY_CLASSES = (Ed25519Key, ECDSAKey, RSAKey)

HOST_KEY_POLICIES = {
    "auto-add": AutoAddPolicy,
    "warn": WarningPolicy,
    "reject": RejectPolicy,
}


def load_private_key(path):
    if not path:
        raise KeyLoadError(path, "no private key file given")
    try:
        with open(path, "rb") as fd:
            data = fd.read()
    except OSError as e:
        raise KeyLoadError(path, e) from e
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise KeyParseError(path, e) from e
    last = None
    for cls in KEY_CLASSES:
        try:
            key = cls.from_private_key(StringIO(text))
        except (SSHException, ValueError) as e:
            last = e
            continue
        debug("Loaded {} key from {!r}".format(key.get_name(), path))
        return key
    raise KeyParseError(path, last)


def get_host_key_policy(policy):
    if isinstance(policy, MissingHostKeyPolicy):
        return policy
    if isinstance(policy, type) and issubclass(policy, MissingHostKeyPolicy):
        return policy()
    try:
        return HOST_KEY_POLICIES[policy]()
    except KeyError:
        err = "Unknown host key policy {!r}; expected one of {}"
        raise ValueError(err.format(policy, ", ".join(HOST_KEY_POLICIES)))
