"""Exceptions raised while bootstrapping an SSH target."""

from typing import List, Optional, Sequence


class BootstrapError(Exception):
    """Base class for every failure the bootstrap can report."""


class UsageError(BootstrapError):
    """Missing or blank arguments."""


class SanitizationError(UsageError):
    """Hostname label has no usable characters left after sanitization."""


class ConfigError(BootstrapError):
    """Settings file is malformed or has unknown fields."""


class KeyPermissionError(BootstrapError):
    """Key directory or key file modes could not be set."""


class ExternalToolError(BootstrapError):
    """A delegated command (ssh-keygen, ssh-copy-id, ssh) did not succeed."""

    def __init__(self, message: str, command: Optional[Sequence[str]] = None,
                 returncode: Optional[int] = None, output: str = ''):
        super().__init__(message)
        self.command: List[str] = list(command or [])
        self.returncode = returncode
        self.output = output


class ConfigStoreError(BootstrapError):
    """SSH config file could not be read or written."""
