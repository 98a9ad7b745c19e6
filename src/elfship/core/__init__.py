"""Core dependency injection infrastructure for elfship.

This module provides Protocol-based abstractions for every external tool the
deployment pipeline drives (binary introspection, ELF patching, remote shell,
file transfer, logging, configuration), together with their production
implementations.

Design:
- Protocol-based abstractions (typing.Protocol) for structural typing
- Production implementations for real-world use
- Test doubles in tests/unit/fakes.py for unit tests without a live target
"""

from elfship.core.protocols import (
    CommandResult,
    Logger,
    BinaryInspector,
    BinaryPatcher,
    RemoteExecutor,
    FileTransferer,
    ConfigLoader,
)

from elfship.core.implementations import (
    ConsoleLogger,
    BuildEnvironment,
    LddInspector,
    PatchelfPatcher,
    RemotePatchelfPatcher,
    SSHExecutor,
    ScpTransferer,
    YamlConfigLoader,
)

__all__ = [
    # Protocols
    "CommandResult",
    "Logger",
    "BinaryInspector",
    "BinaryPatcher",
    "RemoteExecutor",
    "FileTransferer",
    "ConfigLoader",
    # Implementations
    "ConsoleLogger",
    "BuildEnvironment",
    "LddInspector",
    "PatchelfPatcher",
    "RemotePatchelfPatcher",
    "SSHExecutor",
    "ScpTransferer",
    "YamlConfigLoader",
]
