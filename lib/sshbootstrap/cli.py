#!/usr/bin/env python3
"""sshbootstrap CLI - passwordless SSH to a new target in one command."""

import sys
from pathlib import Path
from typing import Optional

import click

from sshbootstrap.bootstrap import StepResult, StepStatus, build_bootstrapper
from sshbootstrap.errors import ConfigError, ConfigStoreError, UsageError
from sshbootstrap.settings import Settings
from sshbootstrap.ssh_config import SshConfigFile
from sshbootstrap.ssh_keys import get_public_key
from sshbootstrap.target import Target, sanitize_label


def _load_settings(config: Optional[str], ssh_dir: Optional[str] = None,
                   timeout: Optional[int] = None) -> Settings:
    try:
        settings = Settings.load(Path(config) if config else None)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg='red')
        sys.exit(1)
    if ssh_dir:
        settings.ssh_dir = Path(ssh_dir).expanduser()
    if timeout is not None:
        settings.connect_timeout = timeout
    return settings


def _echo_result(result: StepResult) -> None:
    if result.status is StepStatus.FAILED:
        return
    if result.message:
        click.echo(f"  {result.message}")
    if result.name == 'register_alias' and result.status is StepStatus.SKIPPED:
        click.echo("  (Delete the existing block manually if you need to update it)")


def _echo_step(index: int, total: int, name: str, title: str) -> None:
    click.echo(f"[Step {index}/{total}] {title}...")
    if name == 'deploy_key':
        click.echo("  (You will be prompted for the remote password one last time)")


config_option = click.option('--config', 'config', type=click.Path(dir_okay=False),
                             help='Settings file (default: ~/.sshbootstrap.yml)')


@click.group()
@click.version_option(package_name='sshbootstrap')
def main():
    """Set up per-target SSH keys and host aliases."""
    pass


@main.command()
@click.argument('user')
@click.argument('address')
@click.argument('hostname')
@config_option
@click.option('--ssh-dir', type=click.Path(file_okay=False),
              help='Directory for keys and config (default: ~/.ssh)')
@click.option('--timeout', type=click.IntRange(min=1),
              help='Connection timeout in seconds for verification')
def setup(user, address, hostname, config, ssh_dir, timeout):
    """Generate a key for HOSTNAME, deploy it to USER@ADDRESS and add an alias.

    Example: sshbootstrap setup alice 192.168.1.50 homelab
    """
    try:
        target = Target.create(user, address, hostname)
    except UsageError as e:
        raise click.UsageError(str(e))

    settings = _load_settings(config, ssh_dir, timeout)
    click.echo(f"=== SSH Setup: {target.login} ({target.label}) ===")

    bootstrapper = build_bootstrapper(settings, on_step=_echo_step, on_result=_echo_result)
    outcome = bootstrapper.run(target)

    if not outcome.succeeded:
        failure = outcome.failure
        click.echo("")
        click.secho(f"❌ ERROR: {failure.message}", fg='red')
        if failure.hints:
            click.echo("Possible causes:")
            for hint in failure.hints:
                click.echo(f"  - {hint}")
        click.echo(f"Fix the issue and re-run: sshbootstrap setup {user} {address} {hostname}")
        sys.exit(1)

    alias = target.safe_label
    click.echo("")
    click.secho("=== Setup Complete ===", fg='green')
    click.echo(f"Connect with:    ssh {alias}")
    click.echo(f"Copy files:      scp ./file {alias}:/tmp/")
    click.echo(f"Run command:     ssh {alias} \"ls -la\"")


@main.command()
@config_option
def hosts(config):
    """List Host aliases in the SSH config."""
    settings = _load_settings(config)
    try:
        aliases = SshConfigFile(settings.config_path).hosts()
    except ConfigStoreError as e:
        click.secho(f"❌ {e}", fg='red')
        sys.exit(1)
    if not aliases:
        click.echo(f"No host aliases in {settings.config_path}")
        return
    for alias in aliases:
        marker = '🔑' if (settings.ssh_dir / alias).is_file() else '  '
        click.echo(f"{marker} {alias}")


@main.command()
@click.argument('hostname')
@config_option
def pubkey(hostname, config):
    """Print the public key generated for HOSTNAME."""
    try:
        safe = sanitize_label(hostname)
    except UsageError as e:
        raise click.UsageError(str(e))

    settings = _load_settings(config)
    key_path = settings.ssh_dir / safe
    try:
        click.echo(get_public_key(key_path))
    except FileNotFoundError:
        click.secho(f"❌ No public key at {key_path}.pub", fg='red')
        click.echo(f"Create it with: sshbootstrap setup <user> <address> {safe}")
        sys.exit(1)


if __name__ == '__main__':
    main()
