"""
SSH transport with Unix-domain channel support.

Paramiko's `~paramiko.transport.Transport` only knows how to open TCP
(``direct-tcpip``) channels. OpenSSH servers also accept
``direct-streamlocal@openssh.com`` channels, which connect to a Unix-domain
socket on the server side; this module adds that channel type.
"""

import threading

from paramiko.transport import Transport


STREAMLOCAL = "direct-streamlocal@openssh.com"


class StreamLocalTransport(Transport):
    """
    `~paramiko.transport.Transport` that can open Unix socket channels.

    Pass as ``transport_factory`` to `~paramiko.client.SSHClient.connect`.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._streamlocal = threading.local()

    def open_unix_channel(self, path, timeout=None):
        """
        Open a channel to the Unix socket at ``path`` on the server.

        Safe to call from several threads at once, just like
        `~paramiko.transport.Transport.open_channel`.
        """
        self._streamlocal.path = path
        try:
            return self.open_channel(STREAMLOCAL, timeout=timeout)
        finally:
            self._streamlocal.path = None

    def _send_user_message(self, data):
        # open_channel() writes no type-specific fields for channel kinds it
        # doesn't know, and sends the CHANNEL_OPEN from the calling thread.
        path = getattr(self._streamlocal, "path", None)
        if path is not None:
            self._streamlocal.path = None
            data.add_string(path)
            data.add_string("")  # reserved
            data.add_int(0)  # reserved
        super()._send_user_message(data)
