"""Domain-specific errors for wifimenu."""


class WifiMenuError(Exception):
    """Base error for wifimenu."""


class ConfigError(WifiMenuError):
    """Raised when the configuration file is unreadable or invalid."""


class AdapterError(WifiMenuError):
    """Raised when a network toolkit call fails or returns unparseable output."""


class AuthFailureError(AdapterError):
    """Raised when the toolkit rejects the supplied credentials."""


class ConnectTimeoutError(AdapterError):
    """Raised when a toolkit operation exceeds its deadline."""


class UserCancelledError(WifiMenuError):
    """Raised when the user dismisses a prompt or aborts an operation."""


class CacheWriteError(WifiMenuError):
    """Raised when a snapshot cannot be written to disk."""


class DaemonError(WifiMenuError):
    """Base daemon lifecycle error."""


class DaemonAlreadyRunningError(DaemonError):
    """Raised when another live daemon holds the lock."""


class DaemonNotRunningError(DaemonError):
    """Raised when a command needs the daemon but none is alive."""


class DaemonStopTimeoutError(DaemonError):
    """Raised when the daemon does not release its lock in time."""


class HotspotConfigError(WifiMenuError):
    """Raised when an access point configuration is invalid or missing."""
