"""Idempotent SSH bootstrap: key, permissions, deployment, alias, verification."""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from sshbootstrap.errors import BootstrapError, ExternalToolError
from sshbootstrap.event_log import EventLog
from sshbootstrap.remote import OpenSSHRemote, RemoteAccess
from sshbootstrap.settings import Settings
from sshbootstrap.ssh_config import ConfigStore, HostEntry, SshConfigFile
from sshbootstrap.ssh_keys import KeyStore, SshKeygenKeyStore, key_comment, public_key_path
from sshbootstrap.target import Target

VERIFY_HINTS = [
    'The remote SSH server may not be running',
    'Key was not correctly installed on the target',
    'Firewall blocking port 22',
    'sshd_config on target may not allow PubkeyAuthentication',
]

DEPLOY_HINTS = [
    'Wrong password for the remote account',
    'Target address unreachable or SSH server not running',
    'PasswordAuthentication disabled in the target sshd_config',
]

KEYGEN_HINTS = [
    'ssh-keygen missing (install openssh-client)',
    'Key directory not writable',
]

PERMISSION_HINTS = [
    'Key files owned by another user',
    'Key directory on a filesystem without POSIX permissions',
]

CONFIG_HINTS = [
    'SSH config file not writable',
]


class StepStatus(str, Enum):
    PERFORMED = 'performed'
    SKIPPED = 'skipped'
    FAILED = 'failed'


@dataclass
class StepResult:
    """Outcome of one bootstrap step."""
    name: str
    status: StepStatus
    message: str = ''
    hints: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status is StepStatus.FAILED


@dataclass
class BootstrapOutcome:
    """Aggregated step results for a single run.

    Steps after the first failure are absent.
    """
    target: Target
    key_path: Path
    steps: List[StepResult] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not any(step.failed for step in self.steps)

    @property
    def failure(self) -> Optional[StepResult]:
        return next((step for step in self.steps if step.failed), None)

    def step(self, name: str) -> Optional[StepResult]:
        return next((step for step in self.steps if step.name == name), None)


StepHook = Callable[[int, int, str, str], None]
ResultHook = Callable[[StepResult], None]


class Bootstrapper:
    """Runs the five bootstrap steps against injected stores and remote access.

    Each step checks for pre-existing state first, so a failed run can be
    repeated after fixing the cause. Nothing is rolled back on failure.
    """

    def __init__(self, key_store: KeyStore, config_store: ConfigStore,
                 remote: RemoteAccess, ssh_dir: Path,
                 comment_prefix: str = 'nixos-to',
                 event_log: Optional[EventLog] = None,
                 on_step: Optional[StepHook] = None,
                 on_result: Optional[ResultHook] = None,
                 today: Optional[date] = None):
        self.key_store = key_store
        self.config_store = config_store
        self.remote = remote
        self.ssh_dir = ssh_dir
        self.comment_prefix = comment_prefix
        self.event_log = event_log or EventLog(None)
        self.on_step = on_step
        self.on_result = on_result
        self.today = today

    def _steps(self) -> List[Tuple[str, str, Callable[[Target, Path], StepResult], List[str]]]:
        return [
            ('generate_key', 'Generating Ed25519 key pair', self.generate_key, KEYGEN_HINTS),
            ('harden_permissions', 'Setting directory and key permissions',
             self.harden_permissions, PERMISSION_HINTS),
            ('deploy_key', 'Deploying public key', self.deploy_key, DEPLOY_HINTS),
            ('register_alias', 'Updating SSH config', self.register_alias, CONFIG_HINTS),
            ('verify', 'Verifying passwordless SSH connection', self.verify, VERIFY_HINTS),
        ]

    def run(self, target: Target) -> BootstrapOutcome:
        """Run every step in order, halting at the first failure."""
        key_path = target.key_path(self.ssh_dir)
        outcome = BootstrapOutcome(target=target, key_path=key_path)
        self.event_log.log_event(
            f'Bootstrap started for {target.login} as {target.safe_label}'
        )

        steps = self._steps()
        for index, (name, title, action, hints) in enumerate(steps, 1):
            if self.on_step:
                self.on_step(index, len(steps), name, title)
            try:
                result = action(target, key_path)
            except BootstrapError as e:
                message = str(e)
                if isinstance(e, ExternalToolError) and e.output:
                    message = f"{message}: {e.output}"
                result = StepResult(name, StepStatus.FAILED, message, list(hints))

            outcome.steps.append(result)
            level = 'ERROR' if result.failed else 'INFO'
            self.event_log.log_event(f'{name}: {result.status.value} {result.message}'.rstrip(), level)
            if self.on_result:
                self.on_result(result)
            if result.failed:
                break

        if outcome.succeeded:
            self.event_log.log_event(f'Bootstrap complete for {target.safe_label}')
        return outcome

    def generate_key(self, target: Target, key_path: Path) -> StepResult:
        if self.key_store.exists(key_path):
            return StepResult('generate_key', StepStatus.SKIPPED,
                              f'Key already exists at {key_path}')
        comment = key_comment(self.comment_prefix, target.safe_label, self.today)
        self.key_store.generate(key_path, comment)
        return StepResult('generate_key', StepStatus.PERFORMED, f'Key created at {key_path}')

    def harden_permissions(self, target: Target, key_path: Path) -> StepResult:
        self.key_store.harden(key_path)
        return StepResult('harden_permissions', StepStatus.PERFORMED,
                          f'Restricted {key_path.parent} and {key_path.name}')

    def deploy_key(self, target: Target, key_path: Path) -> StepResult:
        # Not deduplicated here; repeated runs rely on ssh-copy-id's own check
        self.remote.deploy_key(public_key_path(key_path), target.login)
        return StepResult('deploy_key', StepStatus.PERFORMED, f'Key deployed to {target.login}')

    def register_alias(self, target: Target, key_path: Path) -> StepResult:
        alias = target.safe_label
        if self.config_store.has_block(alias):
            return StepResult('register_alias', StepStatus.SKIPPED,
                              f"Host block for '{alias}' already exists")
        self.config_store.append_block(HostEntry(
            alias=alias,
            address=target.address,
            user=target.user,
            identity_file=key_path,
        ))
        return StepResult('register_alias', StepStatus.PERFORMED, f"Added Host block for '{alias}'")

    def verify(self, target: Target, key_path: Path) -> StepResult:
        greeting = self.remote.verify(target.safe_label)
        return StepResult('verify', StepStatus.PERFORMED, greeting)


def build_bootstrapper(settings: Settings, **hooks) -> Bootstrapper:
    """Wire a Bootstrapper to the real filesystem and OpenSSH tools."""
    return Bootstrapper(
        key_store=SshKeygenKeyStore(),
        config_store=SshConfigFile(settings.config_path),
        remote=OpenSSHRemote(settings.connect_timeout, settings.nix_fallback),
        ssh_dir=settings.ssh_dir,
        comment_prefix=settings.comment_prefix,
        event_log=EventLog(settings.log_file),
        **hooks,
    )


def bootstrap(user: str, address: str, label: str,
              settings: Optional[Settings] = None) -> BootstrapOutcome:
    """Bootstrap passwordless SSH to user@address under the alias label.

    Raises:
        UsageError: If an argument is blank
        SanitizationError: If label has no valid characters
    """
    target = Target.create(user, address, label)
    return build_bootstrapper(settings or Settings()).run(target)
