"""
Deployment exceptions.

Custom exceptions for deployment failures with actionable error messages.
Only fatal conditions are raised; best-effort problems are recorded as
warnings on the deployment session instead.
"""

from typing import Optional


class DeploymentError(Exception):
    """Base class for every error that aborts the deployment pipeline."""
    pass


class FatalPreconditionError(DeploymentError):
    """
    Raised when a precondition for the remaining stages cannot be met.

    Examples:
        - Built binary missing or not a dynamic executable
        - Target host unreachable
        - patchelf missing on the target and not installable
        - Build command failed
    """
    pass


class RemoteCommandError(DeploymentError):
    """
    Raised when a critical remote step fails (file sync, binary patch,
    descriptor install, service enable).

    The target may be left in an intermediate state; re-running the full
    pipeline is the recovery path.
    """

    def __init__(self, message: str, command: Optional[str] = None,
                 returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class PipelineStateError(DeploymentError):
    """Raised on an illegal pipeline state transition (backwards or skipping)."""
    pass


class ConfigError(Exception):
    """Raised when the deploy configuration is missing or invalid."""
    pass


def require(result, action: str, command: str, host: str):
    """Return result if the remote step succeeded, else raise RemoteCommandError."""
    if not result.ok:
        raise RemoteCommandError(
            f"{action} failed on {host} (exit {result.returncode})\n"
            f"Command: {command}\n"
            f"Error: {(result.stderr or result.stdout).strip() or 'no output'}\n\n"
            f"The target may be partially updated. Fix the cause and re-run the "
            f"full deployment; every stage overwrites the previous attempt.",
            command=command,
            returncode=result.returncode,
            stderr=result.stderr
        )
    return result
