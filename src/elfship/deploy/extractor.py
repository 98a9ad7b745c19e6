"""
Dependency Extractor - resolve the shared objects a built binary links against.

Resolution runs ldd inside the build environment, so the reported paths are
the ones the binary was linked with (e.g. /nix/store/... paths), not whatever
the host would pick.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from elfship.core.protocols import BinaryInspector, Logger
from elfship.deploy.base import BinaryArtifact
from elfship.deploy.exceptions import FatalPreconditionError

# libfoo.so.1 => /nix/store/...-foo/lib/libfoo.so.1 (0x00007f...)
_RESOLVED = re.compile(r'^\s*(\S+)\s+=>\s+(/\S+)(?:\s+\(0x[0-9a-fA-F]+\))?\s*$')
# libbar.so.2 => not found
_NOT_FOUND = re.compile(r'^\s*(\S+)\s+=>\s+not found\s*$')
# /lib64/ld-linux-x86-64.so.2 (0x00007f...)
_DIRECT = re.compile(r'^\s*(/\S+)\s+\(0x[0-9a-fA-F]+\)\s*$')


def parse_ldd_output(output: str) -> Tuple[List[Tuple[str, Path]], List[str]]:
    """
    Parse an ldd listing into (name, path) pairs and unresolved names.

    Virtual objects without a backing file (linux-vdso.so.1) are dropped.
    Entries are deduplicated by filename; the first occurrence wins.

    Returns:
        (dependencies, unresolved)
    """
    dependencies: List[Tuple[str, Path]] = []
    unresolved: List[str] = []
    seen = set()

    for line in output.splitlines():
        name: Optional[str] = None
        path: Optional[Path] = None

        match = _RESOLVED.match(line)
        if match:
            name, path = Path(match.group(1)).name, Path(match.group(2))
        else:
            match = _DIRECT.match(line)
            if match:
                path = Path(match.group(1))
                name = path.name
            else:
                match = _NOT_FOUND.match(line)
                if match and match.group(1) not in unresolved:
                    unresolved.append(match.group(1))
                continue

        if name in seen:
            continue
        seen.add(name)
        dependencies.append((name, path))

    return dependencies, unresolved


@dataclass
class ExtractionResult:
    artifact: BinaryArtifact
    dependencies: List[Tuple[str, Path]] = field(default_factory=list)
    unresolved: List[str] = field(default_factory=list)


class DependencyExtractor:
    """Runs the build-side introspection and turns it into a flat dependency list."""

    def __init__(self, inspector: BinaryInspector, logger: Logger):
        self.inspector = inspector
        self.log = logger

    def extract(self, binary: Path) -> ExtractionResult:
        """
        Resolve the shared-object dependencies of binary.

        Raises:
            FatalPreconditionError: If the binary is missing or not a dynamic executable
        """
        binary = Path(binary)
        if not binary.is_file():
            raise FatalPreconditionError(
                f"Built binary not found: {binary}\n"
                f"Run 'elfship build' (or 'elfship deploy --build') first"
            )

        result = self.inspector.dependencies(binary)
        if not result.ok:
            raise FatalPreconditionError(
                f"Could not introspect {binary} (ldd exit {result.returncode})\n"
                f"Output: {(result.stderr or result.stdout).strip()}\n\n"
                f"The file must be a dynamically-linked ELF executable built "
                f"inside the configured build environment."
            )

        dependencies, unresolved = parse_ldd_output(result.stdout)
        self.log.debug(f"ldd reported {len(dependencies)} dependencies for {binary.name}")

        artifact = BinaryArtifact(
            path=binary,
            interpreter=self.inspector.elf_field(binary, "interpreter"),
            rpath=self.inspector.elf_field(binary, "rpath"),
        )
        return ExtractionResult(artifact=artifact, dependencies=dependencies, unresolved=unresolved)
