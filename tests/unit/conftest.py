"""Shared fixtures: a fake build tree with a binary and its libraries."""
import pytest
from pathlib import Path
from unittest.mock import Mock

from elfship.core.protocols import Logger
from elfship.deploy.config import parse_config

from fakes import NIX_LOADER, NIX_RPATH, FakeInspector

DEFAULT_LDD_NAMES = ("libfoo.so.1", "libssl.so.3", "libc.so.6", "libm.so.6")


class BuiltProject:
    """A project root containing a built binary, a fake store and payload files."""

    LIBRARIES = (
        "libfoo.so.1",
        "libssl.so.3",
        "libc.so.6",
        "libm.so.6",
        "ld-linux-x86-64.so.2",
        "libstdc++.so.6",
    )

    def __init__(self, root: Path):
        self.root = root
        self.binary = root / "target" / "release" / "statsapp"
        self.binary.parent.mkdir(parents=True)
        self.binary.write_bytes(b"\x7fELF statsapp")

        store = root / "store"
        store.mkdir()
        self.libs = {}
        for name in self.LIBRARIES:
            path = store / name
            path.write_bytes(f"\x7fELF {name}".encode())
            self.libs[name] = path

        self.config_file = root / "config.toml"
        self.config_file.write_text('refresh = 30\n')
        # Only created by tests that need local state
        self.state_file = root / "data" / "Stats.db"

    def ldd_output(self, names=DEFAULT_LDD_NAMES) -> str:
        lines = ["\tlinux-vdso.so.1 (0x00007ffd8a5f2000)"]
        for name in names:
            lines.append(f"\t{name} => {self.libs[name]} (0x00007f3c1a200000)")
        lines.append(f"\t{self.libs['ld-linux-x86-64.so.2']} (0x00007f3c1a400000)")
        return "\n".join(lines) + "\n"

    def inspector(self, names=DEFAULT_LDD_NAMES, **kwargs) -> FakeInspector:
        kwargs.setdefault("resolved", {"libstdc++.so.6": str(self.libs["libstdc++.so.6"])})
        kwargs.setdefault("fields", {"interpreter": NIX_LOADER, "rpath": NIX_RPATH})
        return FakeInspector(self.ldd_output(names), **kwargs)

    def raw_config(self):
        return {
            "target": {"host": "dramma.lan", "service_user": "stats"},
            "build": {"binary": "target/release/statsapp", "shell": None},
            "payload": {"config_file": "config.toml", "state_file": "data/Stats.db"},
        }

    def config(self, **sections):
        raw = self.raw_config()
        for name, values in sections.items():
            raw.setdefault(name, {}).update(values)
        return parse_config(raw, self.root)


@pytest.fixture
def project(tmp_path):
    return BuiltProject(tmp_path)


@pytest.fixture
def logger():
    return Mock(spec=Logger)
