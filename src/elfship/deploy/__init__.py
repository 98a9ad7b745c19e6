"""
Relocation and deployment subsystem.

Stages, leaf first:
    - DependencyExtractor: ldd inside the build environment
    - LibraryClassifier: system-excluded vs bundled vs force-bundled
    - Relocator: stage bundled libraries, RPATH -> $ORIGIN
    - RemoteSyncEngine: layout, clean-slate lib/, binary, config, state
    - TargetBinaryPatcher: interpreter + RPATH on the target
    - ServiceLifecycleManager: systemd user unit, autostart, lingering

Public API:
    - DeploymentPipeline: the state machine driving all stages
    - TargetFactory: Parse target strings, wire production pipelines
    - DeployConfig, load_config: Configuration
    - DeploymentReport, PipelineState: Result types
    - DeploymentError and subclasses: Exceptions
"""

from .base import (
    BinaryArtifact,
    Classification,
    DeploymentReport,
    DeploymentSession,
    IssueKind,
    LibraryDependency,
    PipelineState,
    RemoteTarget,
    StepIssue,
)
from .config import DeployConfig, load_config, parse_config
from .exceptions import (
    ConfigError,
    DeploymentError,
    FatalPreconditionError,
    PipelineStateError,
    RemoteCommandError,
)
from .factory import TargetFactory
from .pipeline import DeploymentPipeline

__all__ = [
    # Data model
    "BinaryArtifact",
    "Classification",
    "DeploymentReport",
    "DeploymentSession",
    "IssueKind",
    "LibraryDependency",
    "PipelineState",
    "RemoteTarget",
    "StepIssue",

    # Configuration
    "DeployConfig",
    "load_config",
    "parse_config",

    # Exceptions
    "ConfigError",
    "DeploymentError",
    "FatalPreconditionError",
    "PipelineStateError",
    "RemoteCommandError",

    # Orchestration
    "DeploymentPipeline",
    "TargetFactory",
]
