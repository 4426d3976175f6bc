class ConfigurationError(Exception):
    """
    Error setting up an object due to incorrect configuration
    """
    pass


class FatalStartupError(Exception):
    """
    The node cannot start serving: identity or registration failed.
    The process must exit instead of serving traffic.
    """
    pass


class MissingConfigurationError(ConfigurationError, FatalStartupError):
    """
    A setting required for registration (registry URL, owner) is missing
    """
    pass


class StorageError(Exception):
    """
    Error reading or writing the node key file or its directory
    """
    pass


class CorruptKeyError(Exception):
    """
    The node key file exists but does not hold a valid private key
    """
    pass


class RegistryUnreachable(Exception):
    """
    Cannot contact the registry or it returned an unexpected status
    """
    pass


class RegistrationError(Exception):
    """
    The registry rejected the worker registration
    """

    def __init__(self, status: int, detail: str):
        self.status = status
        self.detail = detail
        super().__init__("Registration failed: %d - %s" % (status, detail))


class TelemetryError(Exception):
    """
    Error querying the dstack GPU telemetry service
    """
    pass


class LoadError(Exception):
    """
    Error reading or parsing the whitelist file
    """
    pass


class ApiError(Exception):
    """
    Error communicating with a dstack-backend service
    """
    pass
