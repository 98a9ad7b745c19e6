"""
DeploymentPipeline - drive the six stages through an explicit state machine.

    START -> EXTRACT_DEPS -> CLASSIFY -> STAGE_AND_PATCH_LOCAL
          -> STOP_REMOTE_SERVICE -> SYNC_FILES -> PATCH_REMOTE_BINARY
          -> INSTALL_SERVICE_DESCRIPTORS -> ENABLE_SERVICE -> DONE

Transitions are forward-only. Any fatal error moves the run to ABORTED: the
local staging directory is still removed, no remote rollback is attempted, and
the remedy is to re-run the whole pipeline.
"""

from typing import List, Optional

from elfship.core.protocols import (
    BinaryInspector,
    BinaryPatcher,
    FileTransferer,
    Logger,
    RemoteExecutor,
)
from elfship.deploy.base import (
    DeploymentReport,
    DeploymentSession,
    IssueKind,
    PipelineState,
    StepIssue,
)
from elfship.deploy.classifier import LibraryClassifier
from elfship.deploy.config import DeployConfig
from elfship.deploy.descriptors import AutostartDescriptor, ServiceDescriptor
from elfship.deploy.exceptions import (
    FatalPreconditionError,
    PipelineStateError,
    RemoteCommandError,
)
from elfship.deploy.extractor import DependencyExtractor
from elfship.deploy.lifecycle import ServiceLifecycleManager
from elfship.deploy.patcher import TargetBinaryPatcher
from elfship.deploy.relocator import Relocator
from elfship.deploy.sync import RemoteSyncEngine

STAGE_TITLES = {
    PipelineState.EXTRACT_DEPS: "Resolving dependencies",
    PipelineState.CLASSIFY: "Classifying libraries",
    PipelineState.STAGE_AND_PATCH_LOCAL: "Staging and patching libraries",
    PipelineState.STOP_REMOTE_SERVICE: "Stopping service",
    PipelineState.SYNC_FILES: "Syncing files",
    PipelineState.PATCH_REMOTE_BINARY: "Patching binary on target",
    PipelineState.INSTALL_SERVICE_DESCRIPTORS: "Installing service descriptors",
    PipelineState.ENABLE_SERVICE: "Enabling service",
}


class DeploymentPipeline:
    """
    One deployment of one binary to one target.

    Args:
        config: Deploy configuration (constructed once at startup)
        inspector: Build-side binary introspection
        local_patcher: Build-side ELF patcher (bundled library RPATHs)
        executor: Remote shell on the target
        transferer: File transport to the target
        remote_patcher: ELF patcher acting on the target
        logger: Logging abstraction
    """

    def __init__(
        self,
        config: DeployConfig,
        inspector: BinaryInspector,
        local_patcher: BinaryPatcher,
        executor: RemoteExecutor,
        transferer: FileTransferer,
        remote_patcher: BinaryPatcher,
        logger: Logger
    ):
        self.config = config
        self.remote = executor
        self.log = logger

        libraries = config.libraries
        self.extractor = DependencyExtractor(inspector, logger)
        self.classifier = LibraryClassifier(
            inspector, logger, exclude=libraries.exclude, force_bundle=libraries.force_bundle
        )
        self.relocator = Relocator(local_patcher, logger)
        self.sync = RemoteSyncEngine(executor, transferer, logger)
        self.target_patcher = TargetBinaryPatcher(executor, remote_patcher, logger)
        self.lifecycle = ServiceLifecycleManager(executor, logger)

        self.state = PipelineState.START
        self.history: List[PipelineState] = [PipelineState.START]

    def _advance(self, next_state: PipelineState) -> None:
        if not self.state.can_advance_to(next_state):
            raise PipelineStateError(f"Illegal transition {self.state.name} -> {next_state.name}")
        self.state = next_state
        self.history.append(next_state)

        title = STAGE_TITLES.get(next_state)
        if title:
            self.log.info(f"[{next_state.value}/{len(STAGE_TITLES)}] {title}...")

    def _abort(self, kind: IssueKind, error: Exception) -> StepIssue:
        issue = StepIssue(kind, self.state, str(error))
        self.log.error(f"{self.state.name} failed: {error}")
        self._advance(PipelineState.ABORTED)
        return issue

    def run(self) -> DeploymentReport:
        """
        Execute every stage in order.

        Returns:
            DeploymentReport; report.success is False if the run aborted

        Raises:
            PipelineStateError: Only on an internal sequencing bug
        """
        if self.state is not PipelineState.START:
            raise PipelineStateError("A DeploymentPipeline instance runs exactly once")

        config = self.config
        target = config.target
        errors: List[StepIssue] = []
        report = DeploymentReport(state=self.state)

        with DeploymentSession() as session:
            report.staging_dir = session.staging_dir
            try:
                self._advance(PipelineState.EXTRACT_DEPS)
                extraction = self.extractor.extract(config.binary_path)
                for name in extraction.unresolved:
                    session.warn(self.state, f"{name} is not resolvable in the build environment")

                self._advance(PipelineState.CLASSIFY)
                classification = self.classifier.classify(extraction.dependencies)
                for message in classification.warnings:
                    session.warn(self.state, message)
                for lib in classification.excluded:
                    self.log.info(f"  Skipping system library {lib.name} (will use target's version)")

                self._advance(PipelineState.STAGE_AND_PATCH_LOCAL)
                self.relocator.stage(classification.libraries, session)
                service = ServiceDescriptor.for_config(config)
                autostart = AutostartDescriptor.for_config(config)

                self._advance(PipelineState.STOP_REMOTE_SERVICE)
                self.remote.check_connection()
                self.sync.stop_service(target, session)

                self._advance(PipelineState.SYNC_FILES)
                self.sync.sync(config, session)

                self._advance(PipelineState.PATCH_REMOTE_BINARY)
                self.target_patcher.ensure_tool(target, config.libraries.patch_tool_install)
                self.target_patcher.patch(target, config.loader)

                self._advance(PipelineState.INSTALL_SERVICE_DESCRIPTORS)
                self.lifecycle.install(target, service, autostart)

                self._advance(PipelineState.ENABLE_SERVICE)
                self.lifecycle.enable(target)

                self._advance(PipelineState.DONE)
            except FatalPreconditionError as e:
                errors.append(self._abort(IssueKind.FATAL_PRECONDITION, e))
            except RemoteCommandError as e:
                errors.append(self._abort(IssueKind.REMOTE_COMMAND_FAILURE, e))
            finally:
                report.warnings = list(session.warnings)
                report.bundled = sorted(session.bundled)

        report.state = self.state
        report.history = list(self.history)
        report.errors = errors
        return report


def summarize(report: DeploymentReport, logger: Logger, restart_hint: Optional[str] = None) -> None:
    """Print the end-of-run summary for a report."""
    logger.info("")
    if report.warnings:
        logger.info(f"{len(report.warnings)} warning(s):")
        for issue in report.warnings:
            logger.warning(str(issue))

    if report.success:
        logger.info(f"✓ Deployment complete ({len(report.bundled)} bundled libraries)")
        if restart_hint:
            logger.info("")
            logger.info("To restart the service:")
            logger.info(f"  {restart_hint}")
        return

    logger.info("✗ Deployment aborted")
    for issue in report.errors:
        logger.error(f"{issue.kind.value}: {issue}")
    logger.info("No rollback was attempted; fix the cause and re-run the deployment.")
