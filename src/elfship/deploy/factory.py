"""
TargetFactory - parse target strings and wire production pipelines.

Target string formats:
    host                   → privileged user from config, port 22
    root@host              → root@host, port 22
    root@host:2222         → custom SSH port
    root@[fe80::1]:2222    → IPv6
"""

from typing import Optional, Tuple


class TargetFactory:
    """Factory for target strings and the real tool implementations behind a pipeline."""

    @staticmethod
    def parse(target: str) -> Tuple[Optional[str], str, int]:
        """
        Parse a target string into (user, host, port).

        user is None when the string has no "user@" part.

        Raises:
            ValueError: If the format is not recognized

        Example:
            TargetFactory.parse("root@dramma.lan:2222")  # ("root", "dramma.lan", 2222)
        """
        if not target:
            raise ValueError("Empty target string")

        user = None
        host_part = target
        if '@' in target:
            user, host_part = target.split('@', 1)
            if not user:
                raise ValueError(f"Missing user before '@': {target}")

        if host_part.startswith('['):
            # IPv6: [fe80::1] or [fe80::1]:2222
            bracket_end = host_part.find(']')
            if bracket_end == -1:
                raise ValueError(f"Malformed IPv6 address: {target}")
            host = host_part[1:bracket_end]
            remainder = host_part[bracket_end + 1:]
            port_str = remainder[1:] if remainder.startswith(':') else None
        elif ':' in host_part:
            host, port_str = host_part.rsplit(':', 1)
        else:
            host, port_str = host_part, None

        if not host:
            raise ValueError(f"Missing host: {target}")

        try:
            port = int(port_str) if port_str else 22
        except ValueError:
            raise ValueError(f"Invalid port in target: {target}")

        return user, host, port

    @staticmethod
    def create_pipeline(config, logger):
        """
        Build a DeploymentPipeline backed by nix-shell/ldd/patchelf locally and
        ssh/scp/rsync to the target.
        """
        # Lazy import to avoid circular dependencies
        from elfship.core.implementations import (
            BuildEnvironment,
            LddInspector,
            PatchelfPatcher,
            RemotePatchelfPatcher,
            SSHExecutor,
            ScpTransferer,
        )
        from elfship.deploy.pipeline import DeploymentPipeline

        target = config.target
        env = BuildEnvironment(config.build.shell, config.build.shell_file, cwd=config.project_root)
        executor = SSHExecutor(
            target.host,
            target.service_user,
            privileged_user=target.privileged_user,
            ssh_port=target.ssh_port
        )

        return DeploymentPipeline(
            config=config,
            inspector=LddInspector(env, config.build.patch_packages),
            local_patcher=PatchelfPatcher(env, config.build.patch_packages),
            executor=executor,
            transferer=ScpTransferer(target.host, target.privileged_user, target.ssh_port),
            remote_patcher=RemotePatchelfPatcher(executor),
            logger=logger
        )
