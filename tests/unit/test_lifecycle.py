"""Unit tests for ServiceLifecycleManager."""
import pytest
from unittest.mock import Mock, call

from elfship.core.protocols import CommandResult, RemoteExecutor
from elfship.deploy.descriptors import AutostartDescriptor, ServiceDescriptor
from elfship.deploy.exceptions import RemoteCommandError
from elfship.deploy.lifecycle import USER_JOURNALCTL, USER_SYSTEMCTL, ServiceLifecycleManager


def create_mock_executor(returncode=0, stdout="", stderr=""):
    executor = Mock(spec=RemoteExecutor)
    executor.run.return_value = CommandResult(returncode, stdout, stderr)
    return executor


class TestInstall:
    """Test writing service descriptors."""

    def test_both_descriptors_written_as_service_user(self, project, logger):
        """Verify unit and autostart entry are written by the service account."""
        executor = create_mock_executor()
        service = ServiceDescriptor("statsapp.service", "[Unit]\n")
        autostart = AutostartDescriptor("statsapp.desktop", "[Desktop Entry]\n")

        ServiceLifecycleManager(executor, logger).install(project.config().target, service, autostart)

        assert executor.run.call_args_list == [
            call("mkdir -p ~/.config/systemd/user && cat > ~/.config/systemd/user/statsapp.service",
                 as_service=True, input="[Unit]\n"),
            call("mkdir -p ~/.config/autostart && cat > ~/.config/autostart/statsapp.desktop",
                 as_service=True, input="[Desktop Entry]\n"),
        ]

    def test_install_failure_raises(self, project, logger):
        """Verify a failed descriptor write aborts."""
        executor = create_mock_executor(returncode=1, stderr="cat: Permission denied")
        service = ServiceDescriptor("statsapp.service", "")
        autostart = AutostartDescriptor("statsapp.desktop", "")

        with pytest.raises(RemoteCommandError, match="Installing service descriptor"):
            ServiceLifecycleManager(executor, logger).install(project.config().target, service, autostart)


class TestEnable:
    """Test enabling the service."""

    def test_linger_before_reload_and_enable(self, project, logger):
        """Verify lingering is enabled first, as root, then reload and enable as the user."""
        executor = create_mock_executor()

        ServiceLifecycleManager(executor, logger).enable(project.config().target)

        assert executor.run.call_args_list == [
            call("loginctl enable-linger stats"),
            call(f"{USER_SYSTEMCTL} daemon-reload", as_service=True, input=None),
            call(f"{USER_SYSTEMCTL} enable statsapp.service", as_service=True, input=None),
        ]

    def test_enable_never_starts_or_restarts(self, project, logger):
        """Verify deployment stops at enabled."""
        executor = create_mock_executor()

        ServiceLifecycleManager(executor, logger).enable(project.config().target)

        commands = " ".join(c[0][0] for c in executor.run.call_args_list)
        assert " start " not in commands
        assert "restart" not in commands

    def test_linger_failure_raises(self, project, logger):
        """Verify a failed loginctl call stops before touching the user manager."""
        executor = create_mock_executor(returncode=1, stderr="Could not enable linger")

        with pytest.raises(RemoteCommandError, match="Enabling lingering"):
            ServiceLifecycleManager(executor, logger).enable(project.config().target)

        assert executor.run.call_count == 1


class TestOperatorActions:
    """Test restart/status/logs."""

    def test_restart(self, project, logger):
        executor = create_mock_executor()

        ServiceLifecycleManager(executor, logger).restart(project.config().target)

        executor.run.assert_called_once_with(
            f"{USER_SYSTEMCTL} restart statsapp.service", as_service=True, input=None
        )

    def test_status_does_not_raise_for_inactive_unit(self, project, logger):
        """Verify an inactive unit's status is returned, not raised."""
        executor = create_mock_executor(returncode=3, stdout="Active: inactive (dead)")

        result = ServiceLifecycleManager(executor, logger).status(project.config().target)

        assert result.returncode == 3
        assert "inactive" in result.stdout

    def test_logs_line_count(self, project, logger):
        """Verify the journal query is bounded by the requested line count."""
        executor = create_mock_executor(stdout="line\n")

        result = ServiceLifecycleManager(executor, logger).logs(project.config().target, lines=50)

        executor.run.assert_called_once_with(
            f"{USER_JOURNALCTL} -u statsapp.service --no-pager -n 50", as_service=True, input=None
        )
        assert result.stdout == "line\n"
