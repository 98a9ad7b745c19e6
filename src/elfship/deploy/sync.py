"""
Remote Sync Engine - put the binary, bundled libraries and payload on the target.

Ordering on the target:
    1. stop the running service (best effort, separate pipeline stage)
    2. create {root, data, logs, .config, lib} as the privileged account
    3. wipe lib/ and repopulate it from the staging directory
    4. push binary and config; push persisted state only if it exists locally
    5. hand everything to the service account, mark the binary executable
"""

import shlex
from pathlib import Path
from typing import List

from elfship.core.protocols import CommandResult, FileTransferer, Logger, RemoteExecutor
from elfship.deploy.base import DeploymentSession, PipelineState, RemoteTarget
from elfship.deploy.config import DeployConfig
from elfship.deploy.exceptions import FatalPreconditionError, require
from elfship.deploy.lifecycle import USER_SYSTEMCTL


class RemoteSyncEngine:

    def __init__(self, executor: RemoteExecutor, transferer: FileTransferer, logger: Logger):
        self.remote = executor
        self.transfer = transferer
        self.log = logger

    def stop_service(self, target: RemoteTarget, session: DeploymentSession) -> bool:
        """Stop a previously deployed instance so no file is replaced while open.

        Failure is expected on a first deployment and is only recorded as a warning.
        """
        command = f"{USER_SYSTEMCTL} stop {target.unit_name}"
        result = self.remote.run(command, as_service=True)
        if not result.ok:
            session.warn(
                PipelineState.STOP_REMOTE_SERVICE,
                f"Could not stop {target.unit_name} (not running yet?): "
                f"{(result.stderr or result.stdout).strip() or f'exit {result.returncode}'}"
            )
            return False
        return True

    def _run(self, command: str, action: str, target: RemoteTarget) -> CommandResult:
        self.log.debug(f"remote: {command}")
        return require(self.remote.run(command), action, command, target.host)

    def ensure_layout(self, target: RemoteTarget) -> None:
        dirs = " ".join(shlex.quote(d) for d in target.layout)
        owner = f"{target.service_user}:{target.service_user}"
        self._run(
            f"mkdir -p {dirs} && chown -R {owner} {shlex.quote(target.base_path)}",
            "Creating remote directories",
            target
        )

    def replace_libraries(self, target: RemoteTarget, session: DeploymentSession) -> None:
        lib_dir = shlex.quote(target.lib_dir)
        self._run(f"rm -rf {lib_dir} && mkdir -p {lib_dir}", "Wiping remote lib directory", target)

        if not session.bundled:
            self.log.info("  No libraries to bundle")
            return

        result = self.transfer.push_dir(session.staging_dir, target.lib_dir)
        require(result, "Copying libraries", f"push {session.staging_dir} -> {target.lib_dir}", target.host)

    def _push(self, local: Path, remote: str, action: str, target: RemoteTarget) -> None:
        result = self.transfer.push_file(local, remote)
        require(result, action, f"push {local} -> {remote}", target.host)

    def sync(self, config: DeployConfig, session: DeploymentSession) -> List[str]:
        """
        Transfer everything the service needs to config.target.

        Returns:
            Remote paths written (lib/ counted once)

        Raises:
            FatalPreconditionError: If a required local file is missing
            RemoteCommandError: If any remote step fails
        """
        target = config.target
        payload = config.payload
        written = []

        binary = config.binary_path
        if not binary.is_file():
            raise FatalPreconditionError(f"Built binary disappeared before transfer: {binary}")
        if payload.config_file is not None and not payload.config_file.is_file():
            raise FatalPreconditionError(f"Config file not found: {payload.config_file}")

        self.log.info("  Creating remote directories...")
        self.ensure_layout(target)

        self.log.info(f"  Replacing {target.lib_dir} with {len(session.bundled)} bundled libraries...")
        self.replace_libraries(target, session)
        written.append(target.lib_dir)

        self.log.info("  Deploying binary...")
        self._push(binary, target.binary_path, "Copying binary", target)
        written.append(target.binary_path)

        if payload.config_file is not None:
            self.log.info("  Copying configuration...")
            remote_config = f"{target.config_dir}/{payload.config_file.name}"
            self._push(payload.config_file, remote_config, "Copying configuration", target)
            written.append(remote_config)

        if payload.state_file is not None and payload.state_file.is_file():
            self.log.info(f"  Copying {payload.state_file.name}...")
            remote_state = f"{target.data_dir}/{payload.state_file.name}"
            self._push(payload.state_file, remote_state, "Copying persisted state", target)
            written.append(remote_state)
        elif payload.state_file is not None:
            self.log.debug(f"No local {payload.state_file.name}; remote copy left untouched")

        owner = f"{target.service_user}:{target.service_user}"
        self._run(
            f"chown -R {owner} {shlex.quote(target.base_path)} && chmod +x {shlex.quote(target.binary_path)}",
            "Fixing ownership",
            target
        )
        return written
