"""Unit tests for LibraryClassifier."""
from pathlib import Path

from elfship.deploy.base import Classification
from elfship.deploy.classifier import LibraryClassifier

from fakes import FakeInspector


def _deps(project, *names):
    return [(name, project.libs.get(name, Path("/nix/store/x") / name)) for name in names]


class TestLibraryClassifier:
    """Test classification into excluded / bundled / force-bundled."""

    def test_minimal_exclusions_example(self, project, logger):
        """Verify libc and the loader stay on the target while the rest is bundled."""
        classifier = LibraryClassifier(
            project.inspector(), logger,
            exclude=("libc*", "ld-linux*"),
            force_bundle="libstdc++.so.6"
        )

        result = classifier.classify(
            _deps(project, "libc.so.6", "libstdc++.so.6", "libfoo.so.1", "ld-linux.so")
        )

        assert {lib.name for lib in result.bundled} == {"libstdc++.so.6", "libfoo.so.1"}
        assert {lib.name for lib in result.excluded} == {"libc.so.6", "ld-linux.so"}

    def test_default_exclusions(self, project, logger):
        """Verify the default exclusion set covers the core runtime libraries."""
        classifier = LibraryClassifier(project.inspector(), logger, force_bundle=None)
        names = ("libc.so.6", "libm.so.6", "libpthread.so.0", "libdl.so.2",
                 "librt.so.1", "ld-linux-x86-64.so.2", "libfoo.so.1")

        result = classifier.classify(_deps(project, *names))

        assert [lib.name for lib in result.bundled] == ["libfoo.so.1"]
        assert len(result.excluded) == 6

    def test_forced_library_added_when_ldd_omits_it(self, project, logger):
        """Verify the C++ runtime is bundled even if ldd did not report it."""
        classifier = LibraryClassifier(project.inspector(), logger)

        result = classifier.classify(_deps(project, "libfoo.so.1", "libc.so.6"))

        forced = [lib for lib in result.libraries if lib.name == "libstdc++.so.6"]
        assert len(forced) == 1
        assert forced[0].classification is Classification.FORCE_BUNDLED
        assert forced[0].source == project.libs["libstdc++.so.6"]
        assert result.warnings == []

    def test_forced_library_overrides_ldd_entry(self, project, logger):
        """Verify the compiler-resolved path replaces ldd's path for the forced library."""
        classifier = LibraryClassifier(project.inspector(), logger)

        result = classifier.classify([("libstdc++.so.6", Path("/nix/store/other/libstdc++.so.6"))])

        assert len(result.libraries) == 1
        assert result.libraries[0].source == project.libs["libstdc++.so.6"]
        assert result.libraries[0].classification is Classification.FORCE_BUNDLED

    def test_forced_library_wins_over_exclusion(self, project, logger):
        """Verify forcing a library bundles it even when an exclusion pattern matches."""
        classifier = LibraryClassifier(project.inspector(), logger, exclude=("libstdc++*",))

        result = classifier.classify(_deps(project, "libstdc++.so.6"))

        assert [lib.name for lib in result.bundled] == ["libstdc++.so.6"]

    def test_unresolvable_forced_library_warns(self, project, logger):
        """Verify a forced library the compiler cannot find becomes a warning."""
        classifier = LibraryClassifier(FakeInspector(), logger)

        result = classifier.classify(_deps(project, "libfoo.so.1"))

        assert [lib.name for lib in result.bundled] == ["libfoo.so.1"]
        assert len(result.warnings) == 1
        assert "libstdc++.so.6" in result.warnings[0]

    def test_unresolvable_forced_library_keeps_ldd_copy(self, project, logger):
        """Verify ldd's copy is still bundled, and named in the warning, if the compiler fails."""
        classifier = LibraryClassifier(FakeInspector(), logger)

        result = classifier.classify(_deps(project, "libstdc++.so.6"))

        assert result.bundled[0].classification is Classification.BUNDLED
        assert "using ldd's copy" in result.warnings[0]

    def test_compiler_path_to_missing_file_is_unresolved(self, project, logger):
        """Verify an absolute path that does not exist is not trusted."""
        inspector = FakeInspector(resolved={"libstdc++.so.6": "/nix/store/gone/libstdc++.so.6"})
        classifier = LibraryClassifier(inspector, logger)

        result = classifier.classify([])

        assert result.libraries == []
        assert len(result.warnings) == 1

    def test_force_bundle_disabled(self, project, logger):
        """Verify force_bundle=None skips the compiler lookup entirely."""
        classifier = LibraryClassifier(project.inspector(), logger, force_bundle=None)

        result = classifier.classify(_deps(project, "libfoo.so.1"))

        assert [lib.name for lib in result.libraries] == ["libfoo.so.1"]
        assert result.warnings == []

    def test_duplicate_names_classified_once(self, project, logger):
        """Verify each distinct filename appears once."""
        classifier = LibraryClassifier(project.inspector(), logger, force_bundle=None)

        result = classifier.classify(_deps(project, "libfoo.so.1", "libfoo.so.1"))

        assert len(result.libraries) == 1
