"""
Deployment data model.

Types shared by every pipeline stage: the built artifact, its classified
library dependencies, the remote target layout, the per-run session that owns
the local staging directory, and the typed issue/report records the
orchestrator produces.
"""

import shutil
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class Classification(Enum):
    """Outcome of classifying one shared-object dependency."""
    SYSTEM_EXCLUDED = "system-excluded"
    BUNDLED = "bundled"
    FORCE_BUNDLED = "force-bundled"

    @property
    def bundled(self) -> bool:
        return self is not Classification.SYSTEM_EXCLUDED


@dataclass
class BinaryArtifact:
    """
    The built executable as produced by the build environment.

    Attributes:
        path: Build-side path to the binary
        interpreter: Dynamic-linker path recorded in the binary (None if unknown)
        rpath: Runtime search path recorded in the binary (None if unknown)
    """
    path: Path
    interpreter: Optional[str] = None
    rpath: Optional[str] = None


@dataclass
class LibraryDependency:
    """One shared object, identified by its bare filename."""
    name: str
    source: Path
    classification: Classification = Classification.BUNDLED


@dataclass
class RemoteTarget:
    """
    The host a binary is deployed to and its directory layout.

    Attributes:
        host: IP or hostname
        service_user: Account the service runs as and that owns base_path
        privileged_user: Account used for installs, ownership and patching
        base_path: Deployment root on the target
        service_name: systemd user unit name (without .service)
        binary_name: Filename of the deployed executable under base_path
        ssh_port: SSH port
    """
    host: str
    service_user: str
    base_path: str
    service_name: str
    binary_name: str
    privileged_user: str = "root"
    ssh_port: int = 22

    @property
    def data_dir(self) -> str:
        return f"{self.base_path}/data"

    @property
    def logs_dir(self) -> str:
        return f"{self.base_path}/logs"

    @property
    def config_dir(self) -> str:
        return f"{self.base_path}/.config"

    @property
    def lib_dir(self) -> str:
        return f"{self.base_path}/lib"

    @property
    def binary_path(self) -> str:
        return f"{self.base_path}/{self.binary_name}"

    @property
    def layout(self) -> Tuple[str, ...]:
        """Every directory that must exist before files are transferred."""
        return (self.base_path, self.data_dir, self.logs_dir, self.config_dir, self.lib_dir)

    @property
    def unit_name(self) -> str:
        return f"{self.service_name}.service"

    def describe(self) -> str:
        return f"{self.privileged_user}@{self.host}:{self.ssh_port}"


class PipelineState(Enum):
    """Deployment pipeline states, in their only legal forward order."""
    START = 0
    EXTRACT_DEPS = 1
    CLASSIFY = 2
    STAGE_AND_PATCH_LOCAL = 3
    STOP_REMOTE_SERVICE = 4
    SYNC_FILES = 5
    PATCH_REMOTE_BINARY = 6
    INSTALL_SERVICE_DESCRIPTORS = 7
    ENABLE_SERVICE = 8
    DONE = 9
    ABORTED = 10

    @property
    def terminal(self) -> bool:
        return self in (PipelineState.DONE, PipelineState.ABORTED)

    def can_advance_to(self, other: "PipelineState") -> bool:
        """Forward by exactly one step, or to ABORTED from any live state."""
        if self.terminal:
            return False
        if other is PipelineState.ABORTED:
            return True
        return other.value == self.value + 1


class IssueKind(Enum):
    FATAL_PRECONDITION = "fatal-precondition"
    BEST_EFFORT = "best-effort"
    REMOTE_COMMAND_FAILURE = "remote-command-failure"


@dataclass
class StepIssue:
    """A problem recorded during one pipeline stage."""
    kind: IssueKind
    stage: PipelineState
    message: str

    def __str__(self) -> str:
        return f"[{self.stage.name}] {self.message}"


class DeploymentSession:
    """
    Per-run scratch state: the local staging directory, the bundled library
    set and the non-fatal warnings.

    Use as a context manager; the staging directory exists only inside the
    with-block and is removed on every exit path:

        with DeploymentSession() as session:
            ...stage libraries into session.staging_dir...
    """

    def __init__(self, prefix: str = "elfship-libs-"):
        self.prefix = prefix
        self.staging_dir: Optional[Path] = None
        self.bundled: Dict[str, LibraryDependency] = {}
        self.warnings: List[StepIssue] = []

    def __enter__(self) -> "DeploymentSession":
        self.staging_dir = Path(tempfile.mkdtemp(prefix=self.prefix))
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self.staging_dir is not None:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
        return False

    def warn(self, stage: PipelineState, message: str) -> StepIssue:
        issue = StepIssue(IssueKind.BEST_EFFORT, stage, message)
        self.warnings.append(issue)
        return issue


@dataclass
class DeploymentReport:
    """
    Result of one pipeline run.

    Attributes:
        state: Terminal state (DONE or ABORTED)
        history: Every state visited, in order
        warnings: Best-effort issues (never change the exit status)
        errors: The fatal issue that aborted the run, if any
        bundled: Filenames of the libraries staged for the target
        staging_dir: Local staging directory used by the run (removed by now)
    """
    state: PipelineState
    history: List[PipelineState] = field(default_factory=list)
    warnings: List[StepIssue] = field(default_factory=list)
    errors: List[StepIssue] = field(default_factory=list)
    bundled: List[str] = field(default_factory=list)
    staging_dir: Optional[Path] = None

    @property
    def success(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1
