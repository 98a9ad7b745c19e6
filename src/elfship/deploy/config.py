"""Deploy configuration loading.

The YAML file is read once at startup into an immutable DeployConfig that is
passed explicitly to every stage; nothing downstream reads the environment or
the current working directory.
"""
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from elfship.core.protocols import ConfigLoader
from elfship.deploy.base import RemoteTarget
from elfship.deploy.exceptions import ConfigError

DEFAULT_CONFIG_PATH = "deploy.yaml"

DEFAULT_EXCLUDES = (
    "libc.so*",
    "libm.so*",
    "libpthread.so*",
    "libdl.so*",
    "librt.so*",
    "ld-linux*",
)
DEFAULT_FORCE_BUNDLE = "libstdc++.so.6"
DEFAULT_INTERPRETER = "/lib64/ld-linux-x86-64.so.2"
DEFAULT_SYSTEM_LIB_DIRS = ("/lib/x86_64-linux-gnu", "/usr/lib/x86_64-linux-gnu")
DEFAULT_PATCH_TOOL_INSTALL = "apt update && apt install -y patchelf"


@dataclass(frozen=True)
class BuildSettings:
    shell: Optional[str] = "nix-shell"
    shell_file: Optional[str] = None
    command: str = "cargo build --release"
    binary: Path = Path("target/release/app")
    patch_packages: Tuple[str, ...] = ("patchelf",)


@dataclass(frozen=True)
class LoaderSettings:
    interpreter: str = DEFAULT_INTERPRETER
    system_lib_dirs: Tuple[str, ...] = DEFAULT_SYSTEM_LIB_DIRS


@dataclass(frozen=True)
class LibrarySettings:
    exclude: Tuple[str, ...] = DEFAULT_EXCLUDES
    force_bundle: Optional[str] = DEFAULT_FORCE_BUNDLE
    patch_tool_install: str = DEFAULT_PATCH_TOOL_INSTALL


@dataclass(frozen=True)
class PayloadSettings:
    config_file: Optional[Path] = None
    state_file: Optional[Path] = None
    service_file: Optional[Path] = None
    autostart_file: Optional[Path] = None


@dataclass(frozen=True)
class ServiceSettings:
    description: str = ""
    after: str = "graphical-session.target"
    wanted_by: str = "graphical-session.target"
    environment: Tuple[Tuple[str, str], ...] = ()
    restart_sec: int = 5
    autostart_name: str = ""


@dataclass(frozen=True)
class DeployConfig:
    """Everything one deployment needs, resolved against project_root."""
    target: RemoteTarget
    project_root: Path = Path(".")
    build: BuildSettings = field(default_factory=BuildSettings)
    loader: LoaderSettings = field(default_factory=LoaderSettings)
    libraries: LibrarySettings = field(default_factory=LibrarySettings)
    payload: PayloadSettings = field(default_factory=PayloadSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)

    @property
    def binary_path(self) -> Path:
        return self.project_root / self.build.binary

    def with_target(self, host: str, port: int, user: Optional[str] = None) -> "DeployConfig":
        """Return a copy pointed at a different host (CLI --target override)."""
        target = replace(
            self.target,
            host=host,
            ssh_port=port,
            privileged_user=user or self.target.privileged_user
        )
        return replace(self, target=target)


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _string_list(section: Dict[str, Any], name: str, key: str, default: Sequence[str]) -> Tuple[str, ...]:
    value = section.get(key, default)
    if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"{name}.{key} must be a list of strings, got {value!r}")
    return tuple(value)


def _optional_path(root: Path, value: Optional[str]) -> Optional[Path]:
    if not value:
        return None
    path = Path(value)
    return path if path.is_absolute() else root / path


def parse_config(raw: Dict[str, Any], project_root: Path) -> DeployConfig:
    """Build a DeployConfig from an already-parsed YAML mapping.

    Args:
        raw: Parsed YAML document
        project_root: Directory relative paths are resolved against

    Raises:
        ConfigError: If required keys are missing or malformed
    """
    if not isinstance(raw, dict):
        raise ConfigError("Deploy config must be a YAML mapping")

    target_raw = _section(raw, 'target')
    host = target_raw.get('host')
    if not host:
        raise ConfigError("target.host is required")

    service_user = target_raw.get('service_user')
    if not service_user:
        raise ConfigError("target.service_user is required")

    build_raw = _section(raw, 'build')
    default_binary = BuildSettings.binary
    binary = Path(build_raw.get('binary', str(default_binary)))
    service_name = target_raw.get('service_name') or binary.name
    binary_name = target_raw.get('binary_name') or binary.name

    try:
        ssh_port = int(target_raw.get('ssh_port', 22))
        restart_sec = int(_section(raw, 'service').get('restart_sec', 5))
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric setting: {e}")

    target = RemoteTarget(
        host=host,
        service_user=service_user,
        base_path=str(target_raw.get('base_path') or f"/home/{service_user}/{service_name}-app").rstrip('/'),
        service_name=service_name,
        binary_name=binary_name,
        privileged_user=target_raw.get('privileged_user', 'root'),
        ssh_port=ssh_port,
    )

    build = BuildSettings(
        shell=build_raw.get('shell', 'nix-shell'),
        shell_file=build_raw.get('shell_file'),
        command=build_raw.get('command', BuildSettings.command),
        binary=binary,
        patch_packages=_string_list(build_raw, 'build', 'patch_packages', ('patchelf',)),
    )

    loader_raw = _section(raw, 'loader')
    loader = LoaderSettings(
        interpreter=loader_raw.get('interpreter', DEFAULT_INTERPRETER),
        system_lib_dirs=_string_list(loader_raw, 'loader', 'system_lib_dirs', DEFAULT_SYSTEM_LIB_DIRS),
    )

    libraries_raw = _section(raw, 'libraries')
    libraries = LibrarySettings(
        exclude=_string_list(libraries_raw, 'libraries', 'exclude', DEFAULT_EXCLUDES),
        force_bundle=libraries_raw.get('force_bundle', DEFAULT_FORCE_BUNDLE),
        patch_tool_install=libraries_raw.get('patch_tool_install', DEFAULT_PATCH_TOOL_INSTALL),
    )

    payload_raw = _section(raw, 'payload')
    payload = PayloadSettings(
        config_file=_optional_path(project_root, payload_raw.get('config_file')),
        state_file=_optional_path(project_root, payload_raw.get('state_file')),
        service_file=_optional_path(project_root, payload_raw.get('service_file')),
        autostart_file=_optional_path(project_root, payload_raw.get('autostart_file')),
    )

    service_raw = _section(raw, 'service')
    environment = service_raw.get('environment') or {}
    if not isinstance(environment, dict):
        raise ConfigError("service.environment must be a mapping")
    service = ServiceSettings(
        description=service_raw.get('description') or f"{service_name} service",
        after=service_raw.get('after', ServiceSettings.after),
        wanted_by=service_raw.get('wanted_by', ServiceSettings.wanted_by),
        environment=tuple((str(k), str(v)) for k, v in environment.items()),
        restart_sec=restart_sec,
        autostart_name=service_raw.get('autostart_name') or service_name,
    )

    return DeployConfig(
        target=target,
        project_root=project_root,
        build=build,
        loader=loader,
        libraries=libraries,
        payload=payload,
        service=service,
    )


def load_config(config_path: str, loader: ConfigLoader) -> DeployConfig:
    """Load and validate the deploy configuration file.

    Relative paths inside the file are resolved against the directory that
    contains it.

    Raises:
        ConfigError: If the file is missing or invalid
    """
    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(
            f"Deploy config not found: {config_path}\n"
            f"Create one (see deploy.example.yaml) or pass --config PATH"
        )
    return parse_config(loader.load_yaml(str(path)), path.resolve().parent)
