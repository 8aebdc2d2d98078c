"""Public key deployment and connection checks via the OpenSSH client tools."""

import shlex
import shutil
import subprocess
from pathlib import Path
from typing import List, Protocol

from sshbootstrap.errors import ExternalToolError

DEFAULT_CONNECT_TIMEOUT = 5

# Extra seconds allowed on top of ConnectTimeout before the ssh process is killed
TIMEOUT_GRACE = 10

VERIFY_COMMAND = "echo \"Success: Logged into $(hostname) as $(whoami)\""


class RemoteAccess(Protocol):
    def deploy_key(self, public_key: Path, login: str) -> None: ...

    def verify(self, alias: str) -> str: ...


class OpenSSHRemote:
    """RemoteAccess implemented with ssh-copy-id and ssh."""

    def __init__(self, connect_timeout: int = DEFAULT_CONNECT_TIMEOUT,
                 nix_fallback: bool = True):
        self.connect_timeout = connect_timeout
        self.nix_fallback = nix_fallback

    def deploy_command(self, public_key: Path, login: str) -> List[str]:
        """Build the ssh-copy-id invocation, going through nix-shell if needed.

        Raises:
            ExternalToolError: If neither ssh-copy-id nor nix-shell is available
        """
        if shutil.which('ssh-copy-id'):
            return ['ssh-copy-id', '-i', str(public_key), login]

        if self.nix_fallback and shutil.which('nix-shell'):
            inner = f"ssh-copy-id -i {shlex.quote(str(public_key))} {shlex.quote(login)}"
            return ['nix-shell', '-p', 'openssh', '--run', inner]

        raise ExternalToolError(
            "ssh-copy-id not found on PATH (install openssh-client)",
            command=['ssh-copy-id'],
        )

    def deploy_key(self, public_key: Path, login: str) -> None:
        """Copy public_key into login's authorized_keys.

        Runs attached to the terminal so the password prompt reaches the user.
        """
        cmd = self.deploy_command(public_key, login)
        try:
            subprocess.run(cmd, check=True)
        except FileNotFoundError as e:
            raise ExternalToolError(f"{cmd[0]} not found on PATH", command=cmd) from e
        except OSError as e:
            raise ExternalToolError(f"Could not run {cmd[0]}: {e}", command=cmd) from e
        except subprocess.CalledProcessError as e:
            raise ExternalToolError(
                f"Key deployment to {login} failed with exit code {e.returncode}",
                command=cmd, returncode=e.returncode,
            ) from e

    def verify_command(self, alias: str) -> List[str]:
        return [
            'ssh',
            '-o', 'BatchMode=yes',
            '-o', f'ConnectTimeout={self.connect_timeout}',
            alias,
            VERIFY_COMMAND,
        ]

    def verify(self, alias: str) -> str:
        """Open a non-interactive session to alias and return its greeting.

        Raises:
            ExternalToolError: On non-zero exit, missing ssh or timeout
        """
        cmd = self.verify_command(alias)
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.connect_timeout + TIMEOUT_GRACE,
            )
        except FileNotFoundError as e:
            raise ExternalToolError("ssh not found on PATH", command=cmd) from e
        except OSError as e:
            raise ExternalToolError(f"Could not run ssh: {e}", command=cmd) from e
        except subprocess.TimeoutExpired as e:
            raise ExternalToolError(
                f"Connection to {alias} timed out", command=cmd,
            ) from e

        if result.returncode != 0:
            raise ExternalToolError(
                f"Verification of {alias} failed with exit code {result.returncode}",
                command=cmd, returncode=result.returncode,
                output=(result.stderr or '').strip(),
            )
        return result.stdout.strip()
