"""
Service Lifecycle Manager - install and enable the service on the target.

Deployment ends at "enabled": restart-on-crash is the unit's own Restart=
policy, and an explicit restart is an operator action (restart()), never part
of a deploy.
"""

from typing import Optional

from elfship.core.protocols import CommandResult, Logger, RemoteExecutor
from elfship.deploy.base import RemoteTarget
from elfship.deploy.descriptors import AutostartDescriptor, ServiceDescriptor
from elfship.deploy.exceptions import require

# User-level systemctl needs the service account's runtime dir when entered via su
USER_SYSTEMCTL = "XDG_RUNTIME_DIR=/run/user/$(id -u) systemctl --user"
USER_JOURNALCTL = "XDG_RUNTIME_DIR=/run/user/$(id -u) journalctl --user"

UNIT_DIR = "~/.config/systemd/user"
AUTOSTART_DIR = "~/.config/autostart"


class ServiceLifecycleManager:

    def __init__(self, executor: RemoteExecutor, logger: Logger):
        self.remote = executor
        self.log = logger

    def _as_service(self, command: str, action: str, target: RemoteTarget,
                    input: Optional[str] = None) -> CommandResult:
        self.log.debug(f"remote ({target.service_user}): {command}")
        return require(self.remote.run(command, as_service=True, input=input), action, command, target.host)

    def _write(self, directory: str, filename: str, content: str, action: str, target: RemoteTarget) -> None:
        self._as_service(f"mkdir -p {directory} && cat > {directory}/{filename}", action, target, input=content)

    def install(self, target: RemoteTarget, service: ServiceDescriptor, autostart: AutostartDescriptor) -> None:
        """Write both descriptors, overwriting any previous version."""
        self.log.info(f"  Writing {UNIT_DIR}/{service.filename}...")
        self._write(UNIT_DIR, service.filename, service.content, "Installing service descriptor", target)
        self.log.info(f"  Writing {AUTOSTART_DIR}/{autostart.filename}...")
        self._write(AUTOSTART_DIR, autostart.filename, autostart.content, "Installing autostart entry", target)

    def enable(self, target: RemoteTarget) -> None:
        """
        Enable lingering, reload the user manager and enable the unit.

        Lingering comes first: it starts the service account's user manager,
        which daemon-reload and enable talk to. Every call is idempotent.
        """
        command = f"loginctl enable-linger {target.service_user}"
        self.log.info(f"  Enabling lingering for {target.service_user}...")
        require(self.remote.run(command), "Enabling lingering", command, target.host)

        self.log.info(f"  Reloading user services and enabling {target.unit_name}...")
        self._as_service(f"{USER_SYSTEMCTL} daemon-reload", "Reloading user services", target)
        self._as_service(f"{USER_SYSTEMCTL} enable {target.unit_name}", "Enabling service", target)

    # Operator actions (not part of deployment)

    def restart(self, target: RemoteTarget) -> CommandResult:
        return self._as_service(f"{USER_SYSTEMCTL} restart {target.unit_name}", "Restarting service", target)

    def status(self, target: RemoteTarget) -> CommandResult:
        # systemctl status exits non-zero for inactive units; callers read the output
        return self.remote.run(f"{USER_SYSTEMCTL} status --no-pager {target.unit_name}", as_service=True)

    def logs(self, target: RemoteTarget, lines: int = 200) -> CommandResult:
        return self._as_service(
            f"{USER_JOURNALCTL} -u {target.unit_name} --no-pager -n {int(lines)}",
            "Fetching service logs",
            target
        )
