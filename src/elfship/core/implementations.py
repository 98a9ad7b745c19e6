"""Production implementations of dependency injection protocols.

This module provides real implementations that wrap the actual external tools
(ldd, gcc, patchelf, ssh, scp, rsync). These are used in production code.

For testing, use the fakes in tests/unit/fakes.py or mocks instead.
"""

import shlex
import subprocess
import sys
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence, Union

import yaml

from elfship.core.protocols import CommandResult, RemoteExecutor
from elfship.deploy.exceptions import FatalPreconditionError


def _completed(result: subprocess.CompletedProcess) -> CommandResult:
    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
    )


def _run_transport(argv: List[str], **kwargs) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(argv, capture_output=True, text=True, **kwargs)
    except FileNotFoundError as e:
        raise FatalPreconditionError(
            f"{argv[0]} not found on this machine\n"
            f"Error: {e}\n\n"
            f"Install the OpenSSH client and rsync locally, then re-run the deployment."
        )


class ConsoleLogger:
    """Production logger that prints to console (stdout/stderr)."""

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def info(self, message: str) -> None:
        """Print info message to stdout."""
        print(message)

    def warning(self, message: str) -> None:
        """Print warning message to stdout."""
        print(f"Warning: {message}")

    def error(self, message: str) -> None:
        """Print error message to stderr."""
        print(f"Error: {message}", file=sys.stderr)

    def debug(self, message: str) -> None:
        """Print debug message to stdout (verbose mode only)."""
        if self.verbose:
            print(f"Debug: {message}")


class BuildEnvironment:
    """Runs shell commands inside the reproducible build environment.

    With shell="nix-shell" every command is executed as
    ``nix-shell [shell.nix] --run "<command>"``, or as
    ``nix-shell -p pkg... --run "<command>"`` when ad-hoc packages are
    requested. With shell=None commands run directly on the host.

    Args:
        shell: Build shell executable, or None for the host shell
        shell_file: Optional environment definition passed to the shell
        cwd: Working directory for every command (project root)
    """

    def __init__(
        self,
        shell: Optional[str] = "nix-shell",
        shell_file: Optional[str] = None,
        cwd: Optional[Union[str, Path]] = None
    ):
        self.shell = shell
        self.shell_file = shell_file
        self.cwd = str(cwd) if cwd is not None else None

    def wrap(self, command: str, packages: Sequence[str] = ()) -> List[str]:
        """Build the argv that runs command inside the environment."""
        if not self.shell:
            return ["sh", "-c", command]

        argv = [self.shell]
        if packages:
            for package in packages:
                argv += ["-p", package]
        elif self.shell_file:
            argv.append(self.shell_file)
        argv += ["--run", command]
        return argv

    def run(self, command: str, packages: Sequence[str] = (), stream: bool = False) -> CommandResult:
        """Run command inside the environment and wait for it."""
        argv = self.wrap(command, packages)
        try:
            result = subprocess.run(
                argv,
                cwd=self.cwd,
                capture_output=not stream,
                text=True
            )
        except FileNotFoundError as e:
            raise FatalPreconditionError(
                f"Build shell not available: {argv[0]}\n"
                f"Error: {e}\n\n"
                f"Install it, or set build.shell: null in the deploy config "
                f"to run build-side tools on the host."
            )
        return _completed(result)


class LddInspector:
    """Binary introspection via ldd and gcc inside the build environment."""

    def __init__(self, environment: BuildEnvironment, patch_packages: Sequence[str] = ("patchelf",)):
        self.env = environment
        self.patch_packages = tuple(patch_packages)

    def dependencies(self, binary: Union[str, Path]) -> CommandResult:
        return self.env.run(f"ldd {shlex.quote(str(binary))}")

    def resolve_library(self, name: str) -> str:
        result = self.env.run(f"gcc --print-file-name={shlex.quote(name)}")
        if not result.ok:
            return name
        return result.stdout.strip() or name

    def elf_field(self, binary: Union[str, Path], field: str) -> Optional[str]:
        result = self.env.run(
            f"patchelf --print-{field} {shlex.quote(str(binary))}",
            packages=self.patch_packages
        )
        if not result.ok:
            return None
        return result.stdout.strip()


class PatchelfPatcher:
    """Build-side ELF patcher (patchelf provided by the build environment)."""

    def __init__(self, environment: BuildEnvironment, packages: Sequence[str] = ("patchelf",)):
        self.env = environment
        self.packages = tuple(packages)

    def set_rpath(self, path: Union[str, Path], rpath: str) -> CommandResult:
        return self.env.run(
            f"patchelf --force-rpath --set-rpath {shlex.quote(rpath)} {shlex.quote(str(path))}",
            packages=self.packages
        )

    def set_interpreter(self, path: Union[str, Path], interpreter: str, rpath: str) -> CommandResult:
        return self.env.run(
            f"patchelf --set-interpreter {shlex.quote(interpreter)} "
            f"--force-rpath --set-rpath {shlex.quote(rpath)} {shlex.quote(str(path))}",
            packages=self.packages
        )


class RemotePatchelfPatcher:
    """Target-side ELF patcher: runs patchelf on the remote host as the privileged account."""

    def __init__(self, executor: RemoteExecutor):
        self.remote = executor

    def set_rpath(self, path: Union[str, Path], rpath: str) -> CommandResult:
        return self.remote.run(
            f"patchelf --force-rpath --set-rpath {shlex.quote(rpath)} {shlex.quote(str(path))}"
        )

    def set_interpreter(self, path: Union[str, Path], interpreter: str, rpath: str) -> CommandResult:
        return self.remote.run(
            f"patchelf --set-interpreter {shlex.quote(interpreter)} "
            f"--force-rpath --set-rpath {shlex.quote(rpath)} {shlex.quote(str(path))}"
        )


class SSHExecutor:
    """Remote command execution over ssh.

    Every command connects as the privileged account. Service-account
    commands are wrapped in ``su - <service_user> -c '<command>'`` so they
    run in that user's login environment.

    Args:
        host: IP or hostname (e.g., "dramma.lan")
        service_user: Account the deployed service runs as
        privileged_user: Account used for the SSH connection (default: root)
        ssh_port: SSH port (default: 22)
    """

    def __init__(self, host: str, service_user: str, privileged_user: str = "root", ssh_port: int = 22):
        self.host = host
        self.service_user = service_user
        self.privileged_user = privileged_user
        self.ssh_port = ssh_port

    def _ssh_cmd(self, command: str) -> List[str]:
        """Build SSH command with custom port."""
        return [
            "ssh",
            "-p", str(self.ssh_port),
            f"{self.privileged_user}@{self.host}",
            command
        ]

    def _as_service(self, command: str) -> str:
        return f"su - {self.service_user} -c {shlex.quote(command)}"

    def run(self, command: str, as_service: bool = False, input: Optional[str] = None) -> CommandResult:
        if as_service:
            command = self._as_service(command)
        result = _run_transport(self._ssh_cmd(command), input=input)
        return _completed(result)

    def check_connection(self) -> None:
        """Verify passwordless SSH to the privileged account.

        Raises:
            FatalPreconditionError: If the host is unreachable or asks for a password
        """
        probe = [
            "ssh",
            "-p", str(self.ssh_port),
            "-o", "PasswordAuthentication=no",
            "-o", "BatchMode=yes",  # Fail immediately if password needed
            "-o", "ConnectTimeout=5",
            f"{self.privileged_user}@{self.host}",
            "echo OK"
        ]

        result = _run_transport(probe)

        if result.returncode != 0:
            port_flag = f"-p {self.ssh_port} " if self.ssh_port != 22 else ""
            raise FatalPreconditionError(
                f"Target {self.privileged_user}@{self.host} is not reachable with passwordless SSH\n"
                f"Error: {result.stderr.strip() or 'no output'}\n\n"
                f"Troubleshooting:\n"
                f"  1. Check network: ping {self.host}\n"
                f"  2. Install your key: ssh-copy-id {port_flag}{self.privileged_user}@{self.host}\n"
                f"  3. Test it: ssh {port_flag}{self.privileged_user}@{self.host} \"echo OK\""
            )


class ScpTransferer:
    """File transfer over scp (single files) and rsync (directories)."""

    def __init__(self, host: str, user: str = "root", ssh_port: int = 22):
        self.host = host
        self.user = user
        self.ssh_port = ssh_port

    def _destination(self, remote: str) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.user}@{host}:{remote}"

    def push_file(self, local: Union[str, Path], remote: str) -> CommandResult:
        cmd = [
            "scp",
            "-P", str(self.ssh_port),
            "-p",  # Preserve modes (executable bit)
            str(local),
            self._destination(remote)
        ]
        return _completed(_run_transport(cmd))

    def push_dir(self, local_dir: Union[str, Path], remote_dir: str) -> CommandResult:
        cmd = [
            "rsync",
            "-a",
            "-e", f"ssh -p {self.ssh_port}",
            f"{str(local_dir).rstrip('/')}/",
            self._destination(f"{remote_dir.rstrip('/')}/")
        ]
        return _completed(_run_transport(cmd))


class YamlConfigLoader:
    """Production config loader using real YAML parser."""

    def load_yaml(self, path: str) -> Dict[str, Any]:
        """Load YAML file and return parsed dictionary."""
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}
