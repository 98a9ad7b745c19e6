"""
Target Binary Patcher - point the deployed binary at the target's loader.

The interpreter becomes the target's native loader and the RPATH becomes
``<bundled lib dir>:<system lib dirs...>``. Bundled directory first lets the
binary pick up the build environment's versions of non-core libraries, while
the core runtime libraries it was never given still resolve from the target.
"""

import shlex
from typing import Sequence

from elfship.core.protocols import BinaryPatcher, Logger, RemoteExecutor
from elfship.deploy.base import RemoteTarget
from elfship.deploy.config import LoaderSettings
from elfship.deploy.exceptions import FatalPreconditionError, require

PATCH_TOOL = "patchelf"


def target_rpath(lib_dir: str, system_lib_dirs: Sequence[str]) -> str:
    """Ordered search path: bundled libraries first, then the target's own."""
    return ":".join([lib_dir, *system_lib_dirs])


class TargetBinaryPatcher:
    """
    Args:
        executor: Remote shell (privileged account)
        patcher: BinaryPatcher acting on target paths
        logger: Logging abstraction
    """

    def __init__(self, executor: RemoteExecutor, patcher: BinaryPatcher, logger: Logger):
        self.remote = executor
        self.patcher = patcher
        self.log = logger

    def ensure_tool(self, target: RemoteTarget, install_command: str) -> None:
        """
        Make sure patchelf exists on the target, installing it if needed.

        Raises:
            FatalPreconditionError: If the tool is missing and cannot be installed
        """
        if self.remote.run(f"command -v {PATCH_TOOL} >/dev/null").ok:
            return

        self.log.info(f"  Installing {PATCH_TOOL} on {target.host}...")
        result = self.remote.run(install_command)
        if not result.ok:
            raise FatalPreconditionError(
                f"{PATCH_TOOL} is not installed on {target.host} and installing it failed\n"
                f"Command: {install_command}\n"
                f"Error: {(result.stderr or result.stdout).strip()[-1000:] or 'no output'}\n\n"
                f"Install it manually, or set libraries.patch_tool_install for the "
                f"target's package manager."
            )

    def patch(self, target: RemoteTarget, loader: LoaderSettings) -> str:
        """
        Rewrite interpreter and RPATH of the deployed binary in place.

        Returns:
            The RPATH that was written

        Raises:
            RemoteCommandError: If patchelf fails (e.g. wrong interpreter path)
        """
        rpath = target_rpath(target.lib_dir, loader.system_lib_dirs)
        result = self.patcher.set_interpreter(target.binary_path, loader.interpreter, rpath)
        command = (
            f"{PATCH_TOOL} --set-interpreter {shlex.quote(loader.interpreter)} "
            f"--force-rpath --set-rpath {shlex.quote(rpath)} {shlex.quote(target.binary_path)}"
        )
        require(result, "Patching binary", command, target.host)
        return rpath
