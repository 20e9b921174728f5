class WatcherError(Exception):
    pass


class ConfigError(WatcherError):
    """Missing or malformed configuration. Fatal at startup."""


class FetchError(WatcherError):
    def __init__(self, url: str, message: str):
        super().__init__(f"{message} ({url})")
        self.url = url


class DeliveryError(WatcherError):
    def __init__(self, channel_id: int, message: str):
        super().__init__(f"{message} (channel {channel_id})")
        self.channel_id = channel_id


class ParseAnomaly(WatcherError):
    """A listing line did not have the shape we expect. The row gets skipped."""

    def __init__(self, line: str, message: str):
        super().__init__(f"{message}: {line!r}")
        self.line = line
