"""Protocol definitions for dependency injection.

This module defines Protocol-based abstractions for every external tool the
deployment pipeline touches: the build-side binary introspection, the ELF
patcher, the remote shell and the file transport. Protocols use structural
typing, so any class implementing these methods satisfies the Protocol without
explicit inheritance.

Benefits:
- The pipeline logic can be unit tested without a live target
- No inheritance required
- Clear interface contracts between stages and tools
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Dict, Any, Optional, Union


@dataclass
class CommandResult:
    """Outcome of one synchronous command round trip."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class Logger(Protocol):
    """Abstraction for logging operations.

    Replaces direct print() statements throughout the codebase.
    """

    def info(self, message: str) -> None:
        """Log informational message."""
        ...

    def warning(self, message: str) -> None:
        """Log warning message."""
        ...

    def error(self, message: str) -> None:
        """Log error message."""
        ...

    def debug(self, message: str) -> None:
        """Log debug message."""
        ...


class BinaryInspector(Protocol):
    """Abstraction for build-side binary introspection.

    Both calls must run inside the build environment: resolving library
    paths anywhere else would not match the binary's build-time linkage.
    """

    def dependencies(self, binary: Union[str, Path]) -> CommandResult:
        """Return the raw ldd listing for a binary."""
        ...

    def resolve_library(self, name: str) -> str:
        """Resolve a library filename to a path via the build compiler.

        Returns whatever the compiler reports; for an unknown library this is
        usually the bare name itself, which callers must treat as unresolved.
        """
        ...

    def elf_field(self, binary: Union[str, Path], field: str) -> Optional[str]:
        """Read one ELF field ("interpreter" or "rpath"); None if unreadable."""
        ...


class BinaryPatcher(Protocol):
    """Abstraction for rewriting ELF interpreter and RPATH fields in place."""

    def set_rpath(self, path: Union[str, Path], rpath: str) -> CommandResult:
        """Replace the runtime search path of a binary or library."""
        ...

    def set_interpreter(self, path: Union[str, Path], interpreter: str, rpath: str) -> CommandResult:
        """Replace both the dynamic-linker interpreter and the runtime search path."""
        ...


class RemoteExecutor(Protocol):
    """Abstraction for running shell commands on the target host.

    Commands run as the privileged account unless as_service is set, in
    which case they run in a login shell of the service account.
    """

    def run(self, command: str, as_service: bool = False, input: Optional[str] = None) -> CommandResult:
        """Run a command synchronously and return its status and output."""
        ...

    def check_connection(self) -> None:
        """Verify the target is reachable without interactive authentication.

        Raises:
            FatalPreconditionError: If the target cannot be reached
        """
        ...


class FileTransferer(Protocol):
    """Abstraction for pushing build-side files to the target host."""

    def push_file(self, local: Union[str, Path], remote: str) -> CommandResult:
        """Copy a single file, preserving its mode bits."""
        ...

    def push_dir(self, local_dir: Union[str, Path], remote_dir: str) -> CommandResult:
        """Copy the contents of a directory into a remote directory."""
        ...


class ConfigLoader(Protocol):
    """Abstraction for configuration file loading.

    Wraps YAML loading to enable testing with in-memory configurations.
    """

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary."""
        ...
