"""Host alias blocks in the user's SSH client config."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol

from sshbootstrap.errors import ConfigStoreError

CONFIG_MODE = 0o600


@dataclass
class HostEntry:
    """A `Host` block mapping an alias to a target."""
    alias: str
    address: str
    user: str
    identity_file: Path
    identities_only: bool = True

    def render(self) -> str:
        lines = [
            f'Host {self.alias}',
            f'    HostName {self.address}',
            f'    User {self.user}',
            f'    IdentityFile {self.identity_file}',
        ]
        if self.identities_only:
            lines.append('    IdentitiesOnly yes')
        return '\n'.join(lines) + '\n'


class ConfigStore(Protocol):
    def has_block(self, alias: str) -> bool: ...

    def append_block(self, entry: HostEntry) -> None: ...

    def hosts(self) -> List[str]: ...


def _host_line(alias: str) -> 're.Pattern[str]':
    return re.compile(rf'^Host\s+{re.escape(alias)}\s*$', re.MULTILINE)


class SshConfigFile:
    """ConfigStore backed by an ssh_config(5) file, append-only.

    Bytes that are not valid UTF-8 (hand-edited comments) are carried
    through with surrogateescape so they never break a lookup.
    """

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> str:
        if not self.path.exists():
            return ''
        try:
            return self.path.read_text(encoding='utf-8', errors='surrogateescape')
        except OSError as e:
            raise ConfigStoreError(f"Could not read {self.path}: {e}") from e

    def ensure_exists(self) -> None:
        """Create the config file (owner-only) if missing and tighten its mode."""
        try:
            if not self.path.exists():
                self.path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
                self.path.touch(mode=CONFIG_MODE)
            os.chmod(self.path, CONFIG_MODE)
        except OSError as e:
            raise ConfigStoreError(f"Could not create {self.path}: {e}") from e

    def has_block(self, alias: str) -> bool:
        return bool(_host_line(alias).search(self._read()))

    def append_block(self, entry: HostEntry) -> None:
        """Append entry, separated from existing content by a blank line.

        Existing blocks are never rewritten.
        """
        self.ensure_exists()
        content = self._read()

        separator = ''
        if content and not content.endswith('\n'):
            separator = '\n\n'
        elif content and not content.endswith('\n\n'):
            separator = '\n'

        try:
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(separator + entry.render())
        except OSError as e:
            raise ConfigStoreError(f"Could not write {self.path}: {e}") from e

    def hosts(self) -> List[str]:
        """Aliases declared on `Host` lines, skipping wildcard patterns."""
        aliases = []
        for line in self._read().splitlines():
            parts = line.strip().split()
            if len(parts) < 2 or parts[0].lower() != 'host':
                continue
            for name in parts[1:]:
                if '*' in name or '?' in name or name.startswith('!'):
                    continue
                aliases.append(name)
        return aliases
