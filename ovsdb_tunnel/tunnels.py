"""
Tunnel and connection forwarding internals.

If you're looking for the simple, end-user-focused entry point, please see
`.establish_tunnel` or `.Session.forward`.
"""

import os
import random
import socket
import tempfile
from threading import Event, Lock

from invoke.util import ExceptionHandlingThread
from paramiko.ssh_exception import SSHException

from .endpoints import TCP, UNIX
from .exceptions import ListenError
from .util import close_quietly, debug, info, warning
from . import util


SOCKET_NAME = "ovsdb-tunnel-{}.sock"


def bind_listener(kind, config):
    settings = config.tunnel
    if kind == TCP:
        host = settings.bind_host
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        address = (host, 0)
    elif kind == UNIX:
        if not util.has_unix_sockets:
            raise ListenError(
                "unix socket",
                OSError("Unix-domain sockets are not supported here"),
            )
        directory = settings.socket_dir or tempfile.gettempdir()
        name = SOCKET_NAME.format(random.getrandbits(63))
        family = socket.AF_UNIX
        address = os.path.join(directory, name)
    else:
        raise ValueError("Unsupported forwarder type {!r}".format(kind))
    try:
        sock = socket.socket(family, socket.SOCK_STREAM)
    except OSError as e:
        raise ListenError(kind, e) from e
    bound = False
    try:
        sock.bind(address)
        bound = True
        if kind == UNIX:
            os.chmod(address, 0o600)
        sock.listen(settings.backlog)
        # stop() only sets `finished`; the accept loop polls for it.
        sock.setblocking(False)
    except OSError as e:
        sock.close()
        if bound and kind == UNIX:
            os.remove(address)
        raise ListenError("{} {}".format(kind, address), e) from e
    return sock


def local_endpoint(kind, listener):
    address = listener.getsockname()
    if kind == UNIX:
        return "unix:" + address
    host, port = address[:2]
    if ":" in host:
        host = "[{}]".format(host)
    return "tcp:{}:{}".format(host, port)


def open_tunnel(session, remote, kind, config):
    listener = bind_listener(kind, config)
    endpoint = local_endpoint(kind, listener)
    path = listener.getsockname() if kind == UNIX else None
    finished = Event()
    manager = TunnelManager(
        listener=listener,
        session=session,
        remote=remote,
        finished=finished,
        chunk_size=config.tunnel.chunk_size,
        poll_interval=config.tunnel.poll_interval,
    )
    tunnel = Tunnel(
        local_endpoint=endpoint,
        remote=remote,
        session=session,
        listener=listener,
        manager=manager,
        finished=finished,
        path=path,
    )
    manager.start()
    info("Forwarding {} to remote {}".format(endpoint, remote))
    return tunnel


class Tunnel:
    def __init__(
        self,
        local_endpoint,
        remote,
        session,
        listener,
        manager,
        finished,
        path=None,
    ):
        self.local_endpoint = local_endpoint
        self.remote = remote
        self.session = session
        self.listener = listener
        self.manager = manager
        self.finished = finished
        self.path = path
        self._lock = Lock()
        self._stopped = False

    def __repr__(self):
        state = "stopped" if self._stopped else "running"
        return "<Tunnel {} -> {} {}>".format(
            self.local_endpoint, self.remote, state
        )

    @property
    def stopped(self):
        return self._stopped

    def stop(self):
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
        self.finished.set()
        self.listener.close()
        if self.path is not None:
            try:
                os.remove(self.path)
            except OSError as e:
                msg = "Unable to remove socket {!r}: {}"
                warning(msg.format(self.path, e))
        info("Stopped tunnel {}".format(self.local_endpoint))

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.stop()


class TunnelManager(ExceptionHandlingThread):
    def __init__(
        self,
        listener,
        session,
        remote,
        finished,
        chunk_size=32768,
        poll_interval=0.01,
    ):
        super().__init__(name="tunnel-{}".format(remote))
        self.listener = listener
        self.session = session
        self.remote = remote
        self.finished = finished
        self.chunk_size = chunk_size
        self.poll_interval = poll_interval

    def _run(self):
        try:
            while not self.finished.is_set():
                try:
                    sock, _ = self.listener.accept()
                except BlockingIOError:
                    self.finished.wait(self.poll_interval)
                    continue
                except OSError as e:
                    if not self.finished.is_set():
                        warning("Accept loop for {} ended: {}".format(self.remote, e))  # noqa
                    break
                self.forward(sock)
        finally:
            self.listener.close()
        debug("Accept loop for {} exited".format(self.remote))

    def forward(self, sock):
        # One bad connection must never end the accept loop
        try:
            sock.setblocking(True)
            if sock.family != getattr(socket, "AF_UNIX", None):
                # Match OpenSSH's forwarding socket behavior
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
            channel = self.session.dial(self.remote)
        except Exception as e:
            warning(
                "Unable to dial {} through SSH, dropping local connection: {}".format(  # noqa
                    self.remote, e
                )
            )
            close_quietly(sock)
            return
        Pipe(reader=sock, writer=channel, chunk_size=self.chunk_size).start()
        Pipe(reader=channel, writer=sock, chunk_size=self.chunk_size).start()


class Pipe(ExceptionHandlingThread):
    """
    Copy bytes one way, from ``reader`` to ``writer``, until either side ends.

    Both ends are closed on exit, which also unblocks the opposite `Pipe`.
    """

    def __init__(self, reader, writer, chunk_size=32768):
        super().__init__()
        self.reader = reader
        self.writer = writer
        self.chunk_size = chunk_size

    def _run(self):
        try:
            while not self.read_and_write(
                self.reader, self.writer, self.chunk_size
            ):
                pass
        except (OSError, EOFError, SSHException) as e:
            debug("Pipe ended: {!r}".format(e))
        finally:
            close_quietly(self.reader)
            close_quietly(self.writer)

    def read_and_write(self, reader, writer, chunk_size):
        data = reader.recv(chunk_size)
        if len(data) == 0:
            return True
        writer.sendall(data)
