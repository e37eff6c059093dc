"""Custom exception hierarchy for microdeck configuration and operations."""


class MicrodeckError(Exception):
    """Base exception for all microdeck errors.

    All microdeck-specific exceptions inherit from this class, enabling
    centralized exception handling in the CLI.
    """

    pass


class ConfigError(MicrodeckError):
    """Exception raised for configuration errors.

    Raised when settings, the user config file or command arguments cannot be
    used as given.

    Attributes:
        field: The configuration field that caused the error
        message: Human-readable error message describing the issue
    """

    def __init__(self, field: str, message: str) -> None:
        """Initialize ConfigError with field and message.

        Args:
            field: Configuration field name where error occurred
            message: Descriptive error message
        """
        self.field = field
        self.message = message
        super().__init__(f"Configuration error in '{field}': {message}")


class ValidationError(MicrodeckError):
    """Exception raised when a manifest, CPI release or stemcell is invalid.

    Provides detailed information about what was expected versus what was
    received. Validation always happens before any resource is touched.

    Attributes:
        field: The field that failed validation
        message: Description of the validation failure
        expected: Human description of expected value/type
        actual: The actual value that failed validation
    """

    def __init__(
        self,
        field: str,
        message: str,
        expected: str,
        actual: str,
    ) -> None:
        """Initialize ValidationError with detailed information.

        Args:
            field: Field that failed validation (dot notation for nested fields)
            message: Description of what went wrong
            expected: Human-readable description of expected value
            actual: The actual value that failed
        """
        self.field = field
        self.message = message
        self.expected = expected
        self.actual = actual
        full_message = (
            f"Validation error in '{field}': {message}\n"
            f"  Expected: {expected}\n"
            f"  Got: {actual}"
        )
        super().__init__(full_message)


class NoDeploymentTargetError(MicrodeckError):
    """Exception raised when no deployment manifest has been selected."""

    def __init__(self) -> None:
        """Create the error with the standard guidance message."""
        self.message = (
            "No deployment set. Run `microdeck deployment <manifest>` first."
        )
        super().__init__(self.message)


class DeploymentError(MicrodeckError):
    """Exception raised when a deployment step fails.

    Attributes:
        operation: Identity of the step that failed (e.g. "delete", "install")
        message: Human-readable error message
    """

    def __init__(self, operation: str, message: str) -> None:
        """Create a deployment error tagged with the failing operation.

        Args:
            operation: Name of the step that failed
            message: Descriptive error message
        """
        self.operation = operation
        self.message = message
        super().__init__(f"{operation}: {message}")


class CPIInstallError(DeploymentError):
    """Exception raised when the CPI release cannot be installed."""

    def __init__(self, message: str) -> None:
        """Create an install error."""
        super().__init__(operation="Installing CPI", message=message)


class CPIUninstallError(DeploymentError):
    """Exception raised when the CPI release cannot be uninstalled."""

    def __init__(self, message: str) -> None:
        """Create an uninstall error."""
        super().__init__(operation="Uninstalling CPI", message=message)


class CloudOperationError(DeploymentError):
    """Exception raised when a CPI method call fails.

    Attributes:
        method: CPI method name (e.g. "delete_vm")
    """

    def __init__(self, method: str, message: str) -> None:
        """Create a cloud error for a CPI method.

        Args:
            method: CPI method that failed
            message: Provider-specific error description
        """
        self.method = method
        super().__init__(operation=f"CPI '{method}'", message=message)


class StatePersistenceError(DeploymentError):
    """Exception raised when deployment state cannot be read or written."""

    def __init__(self, message: str) -> None:
        """Create a persistence error."""
        super().__init__(operation="Deployment state", message=message)


class AgentRequestError(MicrodeckError):
    """Exception raised when a single agent request fails.

    Attributes:
        method: Agent method that was invoked
        message: Human-readable error message
    """

    def __init__(self, method: str, message: str) -> None:
        """Create an agent request error.

        Args:
            method: Agent method name (e.g. "ping")
            message: Descriptive error message
        """
        self.method = method
        self.message = message
        super().__init__(f"Agent request '{method}' failed: {message}")


class AgentUnreachableError(MicrodeckError):
    """Signal raised when the agent never answered a ping within the timeout.

    During deletion this is not a failure: the VM is deleted without a
    graceful shutdown.

    Attributes:
        mbus_url: Agent endpoint that was polled
        timeout: Seconds spent polling
    """

    def __init__(
        self, mbus_url: str, timeout: float, last_error: Exception | None = None
    ) -> None:
        """Create the unreachable signal.

        Args:
            mbus_url: Agent endpoint that was polled
            timeout: Seconds spent polling before giving up
            last_error: Error returned by the final ping attempt
        """
        self.mbus_url = mbus_url
        self.timeout = timeout
        self.last_error = last_error
        message = f"Agent did not respond within {timeout:g}s"
        if last_error:
            message += f": {last_error}"
        self.message = message
        super().__init__(message)
