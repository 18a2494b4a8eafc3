class SandboxError(Exception):
    """Base exception for remote sandbox processing."""


class SandboxProvisioningError(SandboxError):
    """Raised when a sandbox could not be created after all attempts."""


class SandboxExecutionError(SandboxError):
    """Raised when a step inside a provisioned sandbox fails."""
