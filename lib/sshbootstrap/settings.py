"""Parse ~/.sshbootstrap.yml user settings."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from sshbootstrap.errors import ConfigError
from sshbootstrap.remote import DEFAULT_CONNECT_TIMEOUT

KNOWN_FIELDS = {'ssh_dir', 'connect_timeout', 'comment_prefix', 'nix_fallback', 'log_file'}

SETTINGS_FILENAME = '.sshbootstrap.yml'


def _default_ssh_dir() -> Path:
    return Path.home() / '.ssh'


def _default_log_file() -> Path:
    return Path.home() / '.sshbootstrap' / 'bootstrap.log'


@dataclass
class Settings:
    """User-level settings; every field has a default."""
    ssh_dir: Path = field(default_factory=_default_ssh_dir)
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    comment_prefix: str = 'nixos-to'
    nix_fallback: bool = True
    log_file: Path = field(default_factory=_default_log_file)

    @property
    def config_path(self) -> Path:
        return self.ssh_dir / 'config'

    @classmethod
    def load(cls, path: Optional[Path] = None) -> 'Settings':
        """Load settings from path (default ~/.sshbootstrap.yml).

        Returns defaults if the file is not present.

        Raises:
            ConfigError: On invalid YAML, unknown fields or bad values
        """
        settings_file = path or Path.home() / SETTINGS_FILENAME
        if not settings_file.exists():
            return cls()

        try:
            with open(settings_file, encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed {settings_file}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{settings_file} must contain a mapping")

        unknown = set(data.keys()) - KNOWN_FIELDS
        if unknown:
            raise ConfigError(f"Unknown {settings_file.name} field(s): {', '.join(sorted(unknown))}")

        settings = cls()
        if data.get('ssh_dir'):
            settings.ssh_dir = Path(data['ssh_dir']).expanduser()
        if data.get('log_file'):
            settings.log_file = Path(data['log_file']).expanduser()
        if 'connect_timeout' in data:
            timeout = data['connect_timeout']
            if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
                raise ConfigError("connect_timeout must be a positive integer")
            settings.connect_timeout = timeout
        if 'comment_prefix' in data:
            prefix = data['comment_prefix']
            if not isinstance(prefix, str) or not prefix.strip():
                raise ConfigError("comment_prefix must be a non-empty string")
            settings.comment_prefix = prefix
        if 'nix_fallback' in data:
            if not isinstance(data['nix_fallback'], bool):
                raise ConfigError("nix_fallback must be true or false")
            settings.nix_fallback = data['nix_fallback']
        return settings
