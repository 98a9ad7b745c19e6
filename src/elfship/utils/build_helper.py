"""Build helper: produce a fresh binary inside the build environment"""
from pathlib import Path

from elfship.core.protocols import Logger
from elfship.deploy.config import DeployConfig
from elfship.deploy.exceptions import FatalPreconditionError


def remove_stale_binary(binary: Path) -> bool:
    """
    Delete a previously built binary.

    A binary left over from an earlier build may carry an RPATH from a
    previous relocation; building from scratch guarantees the deployed file
    is exactly what the build environment links.

    Returns:
        True if a file was removed
    """
    if binary.is_file() or binary.is_symlink():
        binary.unlink()
        return True
    return False


def build_binary(config: DeployConfig, environment, logger: Logger, verbose: bool = False) -> Path:
    """
    Run the configured build command inside the build environment.

    Args:
        config: Deploy configuration (build section)
        environment: BuildEnvironment to run the command in
        logger: Logging abstraction
        verbose: Stream build output instead of capturing it

    Returns:
        Path to the freshly built binary

    Raises:
        FatalPreconditionError: If the build fails or produces no binary
    """
    binary = config.binary_path

    if remove_stale_binary(binary):
        logger.debug(f"Removed previous build artifact {binary}")

    logger.info(f"Building: {config.build.command}")
    result = environment.run(config.build.command, stream=verbose)

    if not result.ok:
        output = (result.stderr or result.stdout or "").strip()
        raise FatalPreconditionError(
            f"Build failed (exit {result.returncode})\n\n"
            f"Last lines of build output:\n{output[-1000:] or '(output was streamed)'}"
        )

    if not binary.is_file():
        raise FatalPreconditionError(
            f"Build succeeded but {binary} was not produced\n"
            f"Check build.binary in the deploy config"
        )

    logger.info(f"✓ Built {binary}")
    return binary
