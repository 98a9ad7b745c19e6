"""Unit tests for the build helper."""
import pytest

from elfship.core.protocols import CommandResult
from elfship.deploy.exceptions import FatalPreconditionError
from elfship.utils.build_helper import build_binary, remove_stale_binary


class FakeBuildEnvironment:
    """Records build commands; optionally writes the binary like cargo would."""

    def __init__(self, binary=None, returncode=0, stderr=""):
        self.binary = binary
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []

    def run(self, command, packages=(), stream=False):
        self.calls.append((command, stream))
        if self.returncode == 0 and self.binary is not None:
            self.binary.parent.mkdir(parents=True, exist_ok=True)
            self.binary.write_bytes(b"\x7fELF fresh")
        return CommandResult(self.returncode, "", self.stderr)


class TestRemoveStaleBinary:

    def test_removes_existing(self, tmp_path):
        binary = tmp_path / "app"
        binary.write_bytes(b"old")

        assert remove_stale_binary(binary) is True
        assert not binary.exists()

    def test_nothing_to_remove(self, tmp_path):
        assert remove_stale_binary(tmp_path / "app") is False


class TestBuildBinary:
    """Test build_binary."""

    def test_fresh_build(self, project, logger):
        """Verify the old binary is replaced by the build output."""
        config = project.config(build={"command": "cargo build --release"})
        env = FakeBuildEnvironment(binary=project.binary)

        path = build_binary(config, env, logger)

        assert path == project.binary
        assert project.binary.read_bytes() == b"\x7fELF fresh"
        assert env.calls == [("cargo build --release", False)]

    def test_verbose_streams_output(self, project, logger):
        env = FakeBuildEnvironment(binary=project.binary)

        build_binary(project.config(), env, logger, verbose=True)

        assert env.calls[0][1] is True

    def test_build_failure(self, project, logger):
        """Verify a failing build is fatal and shows the compiler output."""
        env = FakeBuildEnvironment(returncode=101, stderr="error[E0425]: cannot find value `x`")

        with pytest.raises(FatalPreconditionError, match="E0425"):
            build_binary(project.config(), env, logger)

    def test_stale_binary_not_mistaken_for_output(self, project, logger):
        """Verify a build that produces nothing fails even if an old binary existed."""
        env = FakeBuildEnvironment(binary=None)

        with pytest.raises(FatalPreconditionError, match="was not produced"):
            build_binary(project.config(), env, logger)

        assert not project.binary.exists()
