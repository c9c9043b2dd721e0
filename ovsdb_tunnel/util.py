import logging
import socket


log = logging.getLogger("ovsdb_tunnel")
for x in ("debug", "info", "warning"):
    globals()[x] = getattr(log, x)


# Capability flag, not an OS check: some Python builds (notably Windows)
# ship without AF_UNIX.
has_unix_sockets = hasattr(socket, "AF_UNIX")


def get_local_user() -> str | None:
    """
    Return the local executing username, or ``None`` if one can't be found.

    .. versionadded:: 1.0
    """
    import getpass
    username = None
    try:
        username = getpass.getuser()
    except (KeyError, OSError):
        pass
    return username


def close_quietly(end):
    """
    Close a socket or SSH channel, ignoring errors from an already-dead peer.

    Sockets are shut down first so a thread blocked in ``recv`` on them wakes
    up; closing alone does not guarantee that on every platform.
    """
    if isinstance(end, socket.socket):
        try:
            end.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    try:
        end.close()
    except (OSError, EOFError):
        pass
