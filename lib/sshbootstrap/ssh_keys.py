"""SSH key generation and permission hardening for per-target keys."""

import os
import subprocess
from datetime import date
from pathlib import Path
from typing import Optional, Protocol

from sshbootstrap.errors import ExternalToolError, KeyPermissionError

DIR_MODE = 0o700
PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


class KeyStore(Protocol):
    def exists(self, key_path: Path) -> bool: ...

    def generate(self, key_path: Path, comment: str) -> None: ...

    def harden(self, key_path: Path) -> None: ...


def public_key_path(key_path: Path) -> Path:
    return Path(f"{key_path}.pub")


def key_comment(prefix: str, safe_label: str, today: Optional[date] = None) -> str:
    """Build the key comment, e.g. 'nixos-to-homelab-20261019'."""
    today = today or date.today()
    return f"{prefix}-{safe_label}-{today.strftime('%Y%m%d')}"


def generate_key(key_path: Path, comment: str) -> None:
    """Generate an ed25519 SSH keypair without a passphrase.

    Args:
        key_path: Path where private key will be saved (public key gets .pub suffix)
        comment: Comment embedded in the public key

    Raises:
        ExternalToolError: If ssh-keygen is missing or exits non-zero
        KeyPermissionError: If the key directory cannot be created
    """
    if not key_path.parent.exists():
        try:
            key_path.parent.mkdir(parents=True, mode=DIR_MODE)
        except OSError as e:
            raise KeyPermissionError(f"Could not create {key_path.parent}: {e}") from e

    cmd = [
        'ssh-keygen',
        '-t', 'ed25519',
        '-f', str(key_path),
        '-N', '',  # No passphrase
        '-C', comment,
    ]
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ExternalToolError("ssh-keygen not found on PATH", command=cmd) from e
    except OSError as e:
        raise ExternalToolError(f"Could not run ssh-keygen: {e}", command=cmd) from e
    except subprocess.CalledProcessError as e:
        raise ExternalToolError(
            f"ssh-keygen failed with exit code {e.returncode}",
            command=cmd, returncode=e.returncode,
            output=(e.stderr or e.stdout or '').strip(),
        ) from e


def get_public_key(key_path: Path) -> str:
    """Read public key content.

    Args:
        key_path: Path to private key (will append .pub)

    Returns:
        Public key content as string
    """
    return public_key_path(key_path).read_text().strip()


def harden_permissions(key_path: Path) -> None:
    """Restrict the key directory and private key to the owner.

    The public key stays world-readable.

    Raises:
        KeyPermissionError: If any chmod fails (e.g. a file is missing)
    """
    targets = [
        (key_path.parent, DIR_MODE),
        (key_path, PRIVATE_KEY_MODE),
        (public_key_path(key_path), PUBLIC_KEY_MODE),
    ]
    for path, mode in targets:
        try:
            os.chmod(path, mode)
        except OSError as e:
            raise KeyPermissionError(f"Could not set mode {mode:o} on {path}: {e}") from e


class SshKeygenKeyStore:
    """KeyStore backed by the local filesystem and ssh-keygen."""

    def exists(self, key_path: Path) -> bool:
        return key_path.is_file()

    def generate(self, key_path: Path, comment: str) -> None:
        generate_key(key_path, comment)

    def harden(self, key_path: Path) -> None:
        harden_permissions(key_path)
