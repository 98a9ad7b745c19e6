"""Unit tests for ldd parsing and the DependencyExtractor."""
import pytest
from pathlib import Path

from elfship.deploy.exceptions import FatalPreconditionError
from elfship.deploy.extractor import DependencyExtractor, parse_ldd_output

from fakes import NIX_LOADER, NIX_RPATH, FakeInspector

LDD_SAMPLE = """\
\tlinux-vdso.so.1 (0x00007ffd8a5f2000)
\tlibfoo.so.1 => /nix/store/a1b2-foo-1.0/lib/libfoo.so.1 (0x00007f3c1a200000)
\tlibssl.so.3 => /nix/store/c3d4-openssl-3.0/lib/libssl.so.3 (0x00007f3c1a100000)
\tlibgone.so.2 => not found
\tlibc.so.6 => /nix/store/9y2x-glibc-2.38/lib/libc.so.6 (0x00007f3c19e00000)
\tlibfoo.so.1 => /nix/store/ffff-foo-0.9/lib/libfoo.so.1 (0x00007f3c19c00000)
\t/nix/store/9y2x-glibc-2.38/lib64/ld-linux-x86-64.so.2 (0x00007f3c1a400000)
"""


class TestParseLddOutput:
    """Test parsing of ldd listings."""

    def test_resolved_entries_in_order(self):
        """Verify resolved libraries are returned in ldd order with their paths."""
        deps, _ = parse_ldd_output(LDD_SAMPLE)

        assert [name for name, _ in deps] == [
            "libfoo.so.1", "libssl.so.3", "libc.so.6", "ld-linux-x86-64.so.2"
        ]
        assert deps[0][1] == Path("/nix/store/a1b2-foo-1.0/lib/libfoo.so.1")

    def test_vdso_is_dropped(self):
        """Verify the kernel vDSO (no backing file) is ignored."""
        deps, unresolved = parse_ldd_output(LDD_SAMPLE)

        assert all("vdso" not in name for name, _ in deps)
        assert "linux-vdso.so.1" not in unresolved

    def test_duplicate_names_first_wins(self):
        """Verify a name listed twice keeps its first resolved path."""
        deps, _ = parse_ldd_output(LDD_SAMPLE)

        foo = [path for name, path in deps if name == "libfoo.so.1"]
        assert foo == [Path("/nix/store/a1b2-foo-1.0/lib/libfoo.so.1")]

    def test_not_found_reported_separately(self):
        """Verify 'not found' entries are reported as unresolved, not dependencies."""
        deps, unresolved = parse_ldd_output(LDD_SAMPLE)

        assert unresolved == ["libgone.so.2"]
        assert "libgone.so.2" not in [name for name, _ in deps]

    def test_direct_loader_line_named_by_basename(self):
        """Verify the loader line (absolute path, no arrow) is keyed by filename."""
        deps, _ = parse_ldd_output(LDD_SAMPLE)

        assert dict(deps)["ld-linux-x86-64.so.2"] == Path(
            "/nix/store/9y2x-glibc-2.38/lib64/ld-linux-x86-64.so.2"
        )

    def test_empty_output(self):
        """Verify a statically linked binary yields no dependencies."""
        assert parse_ldd_output("") == ([], [])
        assert parse_ldd_output("\tstatically linked\n") == ([], [])


class TestDependencyExtractor:
    """Test DependencyExtractor against a scripted inspector."""

    def test_extract_builds_artifact(self, project, logger):
        """Verify the artifact records interpreter and RPATH from the inspector."""
        extractor = DependencyExtractor(project.inspector(), logger)

        result = extractor.extract(project.binary)

        assert result.artifact.path == project.binary
        assert result.artifact.interpreter == NIX_LOADER
        assert result.artifact.rpath == NIX_RPATH
        assert [name for name, _ in result.dependencies] == [
            "libfoo.so.1", "libssl.so.3", "libc.so.6", "libm.so.6", "ld-linux-x86-64.so.2"
        ]
        assert result.unresolved == []

    def test_missing_binary_is_fatal(self, tmp_path, logger):
        """Verify a missing binary raises before the inspector is called."""
        inspector = FakeInspector()
        extractor = DependencyExtractor(inspector, logger)

        with pytest.raises(FatalPreconditionError, match="Built binary not found"):
            extractor.extract(tmp_path / "nope")

        assert inspector.inspected == []

    def test_non_dynamic_binary_is_fatal(self, project, logger):
        """Verify a failing ldd (e.g. not an ELF executable) is fatal."""
        extractor = DependencyExtractor(FakeInspector(returncode=1), logger)

        with pytest.raises(FatalPreconditionError, match="not a dynamic executable"):
            extractor.extract(project.binary)

    def test_unknown_elf_fields(self, project, logger):
        """Verify unreadable ELF fields are left as None."""
        extractor = DependencyExtractor(project.inspector(fields={}), logger)

        artifact = extractor.extract(project.binary).artifact

        assert artifact.interpreter is None
        assert artifact.rpath is None
