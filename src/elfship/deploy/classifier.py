"""
Library Classifier - decide which dependencies travel with the binary.

Core runtime libraries (C library, libm, libpthread, libdl, librt and the
loader itself) must come from the target so they match the target's loader;
everything else is bundled. The C++ runtime is resolved separately through the
build compiler and always bundled, because ldd inside the build sandbox is
known to miss it.
"""

from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from elfship.core.protocols import BinaryInspector, Logger
from elfship.deploy.base import Classification, LibraryDependency
from elfship.deploy.config import DEFAULT_EXCLUDES, DEFAULT_FORCE_BUNDLE


@dataclass
class ClassificationResult:
    libraries: List[LibraryDependency] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def bundled(self) -> List[LibraryDependency]:
        return [lib for lib in self.libraries if lib.classification.bundled]

    @property
    def excluded(self) -> List[LibraryDependency]:
        return [lib for lib in self.libraries if not lib.classification.bundled]


class LibraryClassifier:
    """
    Partition dependencies into SystemExcluded / Bundled / ForceBundled.

    Args:
        inspector: Build-side resolver used for the forced library
        logger: Logging abstraction
        exclude: Filename globs always taken from the target
        force_bundle: Library resolved independently and always bundled (None disables)
    """

    def __init__(
        self,
        inspector: BinaryInspector,
        logger: Logger,
        exclude: Sequence[str] = DEFAULT_EXCLUDES,
        force_bundle: Optional[str] = DEFAULT_FORCE_BUNDLE
    ):
        self.inspector = inspector
        self.log = logger
        self.exclude = tuple(exclude)
        self.force_bundle = force_bundle

    def is_system_library(self, name: str) -> bool:
        return any(fnmatch(name, pattern) for pattern in self.exclude)

    def _resolve_forced(self) -> Optional[Path]:
        resolved = self.inspector.resolve_library(self.force_bundle)
        path = Path(resolved)
        # gcc echoes the bare name back when it cannot find the library
        if not path.is_absolute() or not path.is_file():
            return None
        return path

    def classify(self, dependencies: Iterable[Tuple[str, Path]]) -> ClassificationResult:
        """
        Classify every dependency. Pure decision step: nothing is copied here.

        Args:
            dependencies: (name, resolved path) pairs from the extractor

        Returns:
            ClassificationResult with one entry per distinct name
        """
        result = ClassificationResult()
        by_name = {}

        for name, source in dependencies:
            if name in by_name:
                continue
            if self.is_system_library(name):
                classification = Classification.SYSTEM_EXCLUDED
            else:
                classification = Classification.BUNDLED
            by_name[name] = LibraryDependency(name, Path(source), classification)

        if self.force_bundle:
            forced = self._resolve_forced()
            if forced is not None:
                # Overrides both an ldd entry of the same name and any exclusion match
                by_name[self.force_bundle] = LibraryDependency(
                    self.force_bundle, forced, Classification.FORCE_BUNDLED
                )
                self.log.debug(f"Force bundling {self.force_bundle} from {forced}")
            else:
                message = f"{self.force_bundle} could not be resolved in the build environment; not force-bundled"
                existing = by_name.get(self.force_bundle)
                if existing is not None and existing.classification.bundled:
                    message += f" (using ldd's copy from {existing.source})"
                result.warnings.append(message)

        result.libraries = list(by_name.values())
        return result
