import shutil
import socket
import tempfile
import threading

import pytest
from paramiko import SSHException

from ovsdb_tunnel import Config
from ovsdb_tunnel import connection as connection_module


def recv_exactly(sock, size):
    chunks = []
    remaining = size
    while remaining:
        data = sock.recv(min(remaining, 65536))
        if not data:
            break
        chunks.append(data)
        remaining -= len(data)
    return b"".join(chunks)


class EchoServer(threading.Thread):
    def __init__(self):
        super().__init__(daemon=True)
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(8)
        self.address = self.sock.getsockname()

    def run(self):
        while True:
            try:
                conn, _ = self.sock.accept()
            except OSError:
                return
            threading.Thread(target=self.echo, args=(conn,), daemon=True).start()

    def echo(self, conn):
        with conn:
            while True:
                try:
                    data = conn.recv(65536)
                    if not data:
                        return
                    conn.sendall(data)
                except OSError:
                    return

    def close(self):
        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
        self.sock.close()


class FakeSession:
    """
    Stands in for `Session`: dials go to a local echo server instead of SSH.
    """

    def __init__(self, address, failures=0):
        self.address = address
        self.failures = failures
        self.dials = []
        self.lock = threading.Lock()

    def dial(self, endpoint):
        with self.lock:
            self.dials.append(endpoint)
            if self.failures:
                self.failures -= 1
                raise SSHException("Connect failed")
        sock = socket.create_connection(self.address, timeout=5)
        sock.settimeout(None)
        return sock


class FakeChannel:
    def __init__(self, transport, kind, dest_addr):
        self.transport = transport
        self.kind = kind
        self.dest_addr = dest_addr
        self.closed = 0

    def close(self):
        self.closed += 1


class FakeTransport:
    def __init__(self, client):
        self.client = client
        self.active = True
        self.channels = []
        self.unix_paths = []

    def open_channel(self, kind, dest_addr=None, src_addr=None, timeout=None):
        recorder = self.client.recorder
        if self.client.hostname in recorder.refuse_channels:
            raise SSHException("ChannelException(2, 'Connect failed')")
        channel = FakeChannel(self, kind, dest_addr)
        self.channels.append(channel)
        return channel

    def open_unix_channel(self, path, timeout=None):
        self.unix_paths.append(path)
        raise SSHException("ChannelException(2, 'Connect failed')")


class FakeSSHClient:
    def __init__(self, recorder):
        self.recorder = recorder
        self.hostname = None
        self.kwargs = None
        self.policy = None
        self.host_keys = None
        self.closed = 0
        self._transport = None
        recorder.clients.append(self)

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def load_host_keys(self, path):
        self.host_keys = path

    def connect(self, **kwargs):
        self.hostname = kwargs["hostname"]
        self.kwargs = kwargs
        if self.hostname in self.recorder.raising:
            raise self.recorder.raising[self.hostname]
        if self.hostname in self.recorder.failing:
            raise SSHException("Authentication failed.")
        self._transport = FakeTransport(self)

    def get_transport(self):
        return self._transport

    def close(self):
        self.closed += 1
        self.recorder.close_order.append(self.hostname)
        if self._transport is not None:
            self._transport.active = False


class SSHRecorder:
    def __init__(self):
        self.clients = []
        self.failing = set()
        self.raising = {}
        self.refuse_channels = set()
        self.close_order = []
        self.key = object()

    def make_client(self):
        return FakeSSHClient(self)

    def by_host(self, hostname):
        for client in self.clients:
            if client.hostname == hostname:
                return client
        raise LookupError(hostname)


@pytest.fixture
def fake_ssh(monkeypatch):
    recorder = SSHRecorder()
    monkeypatch.setattr(connection_module, "SSHClient", recorder.make_client)
    monkeypatch.setattr(
        connection_module, "load_private_key", lambda path: recorder.key
    )
    return recorder


@pytest.fixture
def socket_dir():
    # Short path: AF_UNIX paths are limited to ~100 bytes.
    path = tempfile.mkdtemp(prefix="ot-")
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def config(socket_dir):
    return Config(overrides={"tunnel": {"socket_dir": socket_dir}})


@pytest.fixture
def echo_server():
    server = EchoServer()
    server.start()
    yield server
    server.close()


@pytest.fixture
def fake_session(echo_server):
    return FakeSession(echo_server.address)
