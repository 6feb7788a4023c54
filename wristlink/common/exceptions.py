"""
Custom Exception Classes for WristLink

Hierarchical exception structure for the session protocol.
None of these are fatal: the session controller catches and reports them.
"""


class WristlinkError(Exception):
    """Base exception for all WristLink errors"""

    def __init__(self, message: str, recoverable: bool = True):
        self.message = message
        self.recoverable = recoverable
        super().__init__(message)


class ConfigError(WristlinkError):
    """Configuration-related errors"""

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(f"Config Error: {message}", recoverable=False)


class ActivationError(WristlinkError):
    """Transport could not start, or dropped after starting"""

    def __init__(self, message: str, cause: Exception | None = None):
        self.cause = cause
        super().__init__(f"Activation Error: {message}", recoverable=True)


class SendError(WristlinkError):
    """Request failed to reach the host or timed out"""

    def __init__(
        self,
        message: str,
        action: str | None = None,
        cause: Exception | None = None,
    ):
        self.action = action
        self.cause = cause
        super().__init__(f"Send Error: {message}", recoverable=True)


class DecodeError(WristlinkError):
    """Inbound payload missing an expected field or of unrecognized shape"""

    def __init__(self, message: str, raw: object = None):
        self.raw = raw
        super().__init__(f"Decode Error: {message}", recoverable=True)


class UnreachableError(WristlinkError):
    """Reachability precondition failed before a send"""

    def __init__(self, action: str | None = None):
        self.action = action
        super().__init__("host not reachable", recoverable=True)


class SessionStateError(WristlinkError):
    """Request attempted while the session is not active"""

    def __init__(self, state: str, action: str | None = None):
        self.state = state
        self.action = action
        super().__init__("session not active", recoverable=True)
