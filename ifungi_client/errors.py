"""Error types raised by the monitor client"""


class IFungiError(Exception):
    """Base class for all client errors"""


class StoreNotConnected(IFungiError):
    """Telemetry store used before connect()"""


class DeviceNotResolved(IFungiError):
    """No device id given and no active session to fall back to"""


class DeviceNotFound(IFungiError):
    """The device id has no snapshot in the store"""

    def __init__(self, device_id: str):
        super().__init__(f"Greenhouse not found: {device_id}")
        self.device_id = device_id


class PermissionDenied(IFungiError):
    """The user is not allowed to connect to the device"""

    def __init__(self, user_id: str, device_id: str):
        super().__init__(f"User {user_id} has no access to greenhouse {device_id}")
        self.user_id = user_id
        self.device_id = device_id


class SubscriptionError(IFungiError):
    """A store subscription failed (network or permission)"""

    def __init__(self, path: str, cause: Exception = None):
        message = f"Subscription to {path} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.path = path
        self.cause = cause


class ReadFailure(IFungiError):
    """A one-shot read could not be served"""

    def __init__(self, path: str, cause: Exception = None):
        message = f"Read of {path} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.path = path
        self.cause = cause


class WriteFailure(IFungiError):
    """A partial update was rejected by the store"""

    def __init__(self, path: str, cause: Exception = None):
        message = f"Write to {path} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.path = path
        self.cause = cause


class InvalidSetpoint(IFungiError):
    """A setpoint or dev-mode value failed validation"""
