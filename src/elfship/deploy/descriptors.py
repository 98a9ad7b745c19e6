"""
Service and autostart descriptors.

Both are static key-value documents written verbatim to the target. An
operator-supplied file is used byte for byte; without one, a default document
is rendered once from the deploy config.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from elfship.deploy.config import DeployConfig
from elfship.deploy.exceptions import FatalPreconditionError


def _read_verbatim(path: Path, kind: str) -> str:
    if not path.is_file():
        raise FatalPreconditionError(f"{kind} file not found: {path}")
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as e:
        raise FatalPreconditionError(
            f"{kind} file is not UTF-8 text: {path}\n"
            f"Error: {e}\n\n"
            f"Descriptors are written through a text-mode remote shell; "
            f"re-save the file as UTF-8."
        )


@dataclass(frozen=True)
class ServiceDescriptor:
    """A systemd user unit, installed as ~/.config/systemd/user/<filename>."""
    filename: str
    content: str

    @classmethod
    def for_config(cls, config: DeployConfig, source: Optional[Path] = None) -> "ServiceDescriptor":
        target = config.target
        source = source if source is not None else config.payload.service_file
        if source is not None:
            return cls(target.unit_name, _read_verbatim(source, "Service descriptor"))

        service = config.service
        lines = [
            "[Unit]",
            f"Description={service.description}",
        ]
        if service.after:
            lines.append(f"After={service.after}")
        lines += [
            "",
            "[Service]",
            "Type=simple",
        ]
        lines += [f"Environment={key}={value}" for key, value in service.environment]
        lines += [
            f"WorkingDirectory={target.base_path}",
            f"ExecStart={target.binary_path}",
            "Restart=always",
            f"RestartSec={service.restart_sec}",
            "",
            "[Install]",
            f"WantedBy={service.wanted_by}",
        ]
        return cls(target.unit_name, "\n".join(lines) + "\n")


@dataclass(frozen=True)
class AutostartDescriptor:
    """A desktop autostart entry, installed as ~/.config/autostart/<filename>."""
    filename: str
    content: str

    @classmethod
    def for_config(cls, config: DeployConfig, source: Optional[Path] = None) -> "AutostartDescriptor":
        target = config.target
        filename = f"{target.service_name}.desktop"
        source = source if source is not None else config.payload.autostart_file
        if source is not None:
            return cls(filename, _read_verbatim(source, "Autostart descriptor"))

        lines = [
            "[Desktop Entry]",
            "Type=Application",
            f"Name={config.service.autostart_name}",
            f"Exec=systemctl --user start {target.unit_name}",
            "X-LXQt-Need-Tray=false",
        ]
        return cls(filename, "\n".join(lines) + "\n")
