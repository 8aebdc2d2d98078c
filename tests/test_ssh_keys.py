import shutil
import stat
import subprocess
from datetime import date
from pathlib import Path
from unittest.mock import patch

import pytest

from sshbootstrap.errors import ExternalToolError, KeyPermissionError
from sshbootstrap.ssh_keys import (
    SshKeygenKeyStore, generate_key, get_public_key, harden_permissions, key_comment,
)

needs_ssh_keygen = pytest.mark.skipif(
    shutil.which('ssh-keygen') is None, reason='ssh-keygen not installed'
)


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


@needs_ssh_keygen
def test_generate_key(tmp_path):
    """Should generate ed25519 keypair with the given comment"""
    key_path = tmp_path / '.ssh' / 'homelab'

    generate_key(key_path, 'nixos-to-homelab-20261019')

    assert key_path.exists()
    assert (key_path.parent / f"{key_path.name}.pub").exists()

    pubkey = get_public_key(key_path)
    assert pubkey.startswith("ssh-ed25519")
    assert pubkey.endswith("nixos-to-homelab-20261019")


@needs_ssh_keygen
def test_generate_key_creates_private_directory(tmp_path):
    key_path = tmp_path / 'keys' / 'homelab'

    generate_key(key_path, 'comment')

    assert _mode(key_path.parent) == 0o700


def test_generate_key_missing_binary(tmp_path):
    with patch('subprocess.run', side_effect=FileNotFoundError):
        with pytest.raises(ExternalToolError, match='not found'):
            generate_key(tmp_path / 'homelab', 'comment')


def test_generate_key_nonzero_exit(tmp_path):
    error = subprocess.CalledProcessError(1, ['ssh-keygen'], stderr='Saving key failed\n')
    with patch('subprocess.run', side_effect=error):
        with pytest.raises(ExternalToolError) as excinfo:
            generate_key(tmp_path / 'homelab', 'comment')

    assert excinfo.value.returncode == 1
    assert excinfo.value.output == 'Saving key failed'
    assert excinfo.value.command[0] == 'ssh-keygen'


def test_key_comment_embeds_label_and_date():
    assert key_comment('nixos-to', 'homelab', date(2026, 10, 19)) == 'nixos-to-homelab-20261019'


def test_harden_permissions(tmp_path):
    """Private key and directory owner-only, public key world-readable"""
    ssh_dir = tmp_path / '.ssh'
    ssh_dir.mkdir(mode=0o755)
    key_path = ssh_dir / 'homelab'
    key_path.write_text('private')
    (ssh_dir / 'homelab.pub').write_text('ssh-ed25519 AAAA test')
    key_path.chmod(0o666)

    harden_permissions(key_path)

    assert _mode(ssh_dir) == 0o700
    assert _mode(key_path) & 0o077 == 0
    assert _mode(key_path) == 0o600
    assert _mode(ssh_dir / 'homelab.pub') == 0o644


def test_harden_permissions_missing_public_key(tmp_path):
    key_path = tmp_path / 'homelab'
    key_path.write_text('private')

    with pytest.raises(KeyPermissionError, match='homelab.pub'):
        harden_permissions(key_path)


def test_key_store_exists(tmp_path):
    store = SshKeygenKeyStore()
    key_path = tmp_path / 'homelab'
    assert store.exists(key_path) is False

    key_path.write_text('private')
    assert store.exists(key_path) is True


def test_get_public_key_strips_whitespace(tmp_path):
    (tmp_path / 'homelab.pub').write_text('ssh-ed25519 AAAA comment\n')
    assert get_public_key(tmp_path / 'homelab') == 'ssh-ed25519 AAAA comment'
