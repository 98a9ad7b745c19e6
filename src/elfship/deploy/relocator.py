"""
Relocator - stage bundled libraries and make them find each other.

Each bundled library is copied into the session's staging directory under its
bare filename and its RPATH is rewritten to $ORIGIN, so bundled libraries
resolve their siblings from whatever directory they end up in.
"""

import shutil
from pathlib import Path
from typing import Iterable, List

from elfship.core.protocols import BinaryPatcher, Logger
from elfship.deploy.base import DeploymentSession, LibraryDependency, PipelineState
from elfship.deploy.exceptions import FatalPreconditionError

SELF_RELATIVE_RPATH = "$ORIGIN"


class Relocator:

    def __init__(self, patcher: BinaryPatcher, logger: Logger):
        self.patcher = patcher
        self.log = logger

    def stage(self, libraries: Iterable[LibraryDependency], session: DeploymentSession) -> List[Path]:
        """
        Copy every bundled library into session.staging_dir and patch its RPATH.

        A failed RPATH rewrite is recorded as a warning and the library is
        still shipped with its original linkage metadata.

        Raises:
            FatalPreconditionError: If a library cannot be read from the build side
        """
        staged = []

        for lib in libraries:
            if not lib.classification.bundled:
                continue

            dest = session.staging_dir / lib.name
            try:
                # copyfile drops the read-only mode of store paths so patchelf can write
                shutil.copyfile(lib.source, dest)
            except OSError as e:
                raise FatalPreconditionError(f"Cannot copy {lib.name} from {lib.source}: {e}")

            session.bundled[lib.name] = lib
            self.log.info(f"  Bundling {lib.name}...")

            result = self.patcher.set_rpath(dest, SELF_RELATIVE_RPATH)
            if not result.ok:
                session.warn(
                    PipelineState.STAGE_AND_PATCH_LOCAL,
                    f"RPATH rewrite failed for {lib.name}, shipping original linkage "
                    f"({(result.stderr or result.stdout).strip() or 'no output'})"
                )

            if dest not in staged:
                staged.append(dest)

        return staged
