class TunnelError(Exception):
    pass


class KeyFileError(TunnelError):
    def __init__(self, path, message):
        super().__init__(message)
        self.path = path


class KeyLoadError(KeyFileError):
    """
    The private key file could not be read.
    """

    def __init__(self, path, cause):
        msg = "Unable to read private key {!r}: {}".format(path, cause)
        super().__init__(path, msg)
        self.cause = cause


class KeyParseError(KeyFileError):
    """
    The private key file was read but is not a supported, unencrypted key.
    """

    def __init__(self, path, cause=None):
        msg = "Unable to parse private key {!r}".format(path)
        if cause is not None:
            msg = "{}: {}".format(msg, cause)
        super().__init__(path, msg)
        self.cause = cause


class TunnelEstablishError(TunnelError):
    """
    One hop of an SSH chain could not be dialed or authenticated.

    ``index`` is 1-based over the whole chain, so with two jump hosts the
    final target is hop 3.
    """

    def __init__(self, index, hop, cause):
        msg = "Failed to establish SSH hop {} ({}): {}".format(
            index, hop, cause
        )
        super().__init__(msg)
        self.index = index
        self.hop = hop
        self.cause = cause


class UnsupportedEndpointError(TunnelError):
    def __init__(self, endpoint, reason="expected a 'tcp:' or 'unix:' prefix"):  # noqa
        msg = "Unsupported endpoint {!r} ({})".format(endpoint, reason)
        super().__init__(msg)
        self.endpoint = endpoint
        self.reason = reason


class ListenError(TunnelError):
    def __init__(self, address, cause):
        msg = "Failed to listen on local {}: {}".format(address, cause)
        super().__init__(msg)
        self.address = address
        self.cause = cause


class ConnectError(TunnelError):
    """
    Raised by `.Connector` when no endpoint could be connected to.

    ``errors`` holds one ``(endpoint, exception)`` pair per attempt.
    """

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])
