"""Target identity and hostname label sanitization."""

import re
from dataclasses import dataclass, field
from pathlib import Path

from sshbootstrap.errors import SanitizationError, UsageError

# Anything outside this set is dropped from the label
_DISALLOWED = re.compile(r'[^A-Za-z0-9_-]')


def sanitize_label(label: str) -> str:
    """Strip a hostname label down to letters, digits, hyphens and underscores.

    Args:
        label: Label as typed by the operator (e.g. 'home lab!')

    Returns:
        Sanitized label (e.g. 'homelab')

    Raises:
        SanitizationError: If nothing usable remains
    """
    safe = _DISALLOWED.sub('', label)
    if not safe:
        raise SanitizationError(
            f"Hostname '{label}' contains no valid characters after sanitization."
        )
    return safe


@dataclass
class Target:
    """The remote account being bootstrapped.

    Example:
        target = Target.create('alice', '192.168.1.50', 'homelab')
        target.login  # 'alice@192.168.1.50'
    """

    user: str
    address: str
    label: str
    safe_label: str = field(init=False)

    def __post_init__(self):
        self.safe_label = sanitize_label(self.label)

    @classmethod
    def create(cls, user: str, address: str, label: str) -> 'Target':
        """Validate the three inputs and build a Target."""
        missing = [name for name, value in
                   (('username', user), ('ip_address', address), ('hostname', label))
                   if not value or not value.strip()]
        if missing:
            raise UsageError(f"Missing arguments: {', '.join(missing)}")
        return cls(user=user, address=address, label=label)

    @property
    def login(self) -> str:
        return f'{self.user}@{self.address}'

    def key_path(self, ssh_dir: Path) -> Path:
        """Private key path for this target inside ssh_dir."""
        return ssh_dir / self.safe_label
