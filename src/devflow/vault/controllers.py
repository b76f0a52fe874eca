"""Controller for secret import CLI commands."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from devflow.config import load_settings
from devflow.errors import ConfigurationError
from devflow.shell import CommandRunner, run_command
from devflow.vault.keyvault import KeyVaultSecretImporter


@dataclass(slots=True)
class SecretsImportCommand:
    """CLI input for Key Vault to user-secrets import."""

    vault_name: str | None = None
    project: Path | None = None
    prefix: str | None = None
    dry_run: bool = False


@dataclass(slots=True)
class SecretsImportResult:
    """Import report to render in CLI."""

    lines: list[str]
    success: bool


class SecretsCliController:
    def __init__(self, runner: CommandRunner = run_command) -> None:
        self._runner = runner

    def import_secrets(self, command: SecretsImportCommand) -> SecretsImportResult:
        settings = load_settings()
        vault_name = command.vault_name or settings.vault.vault_name
        if not vault_name:
            raise ConfigurationError(
                "Key Vault name is required. Set DEVFLOW_KEYVAULT_NAME or pass --vault.",
            )
        project = command.project or (
            Path(settings.vault.dotnet_project) if settings.vault.dotnet_project else Path()
        )

        report = KeyVaultSecretImporter(
            vault_name=vault_name,
            project=project,
            runner=self._runner,
        ).run(prefix=command.prefix, dry_run=command.dry_run)
        return SecretsImportResult(
            lines=report.lines(dry_run=command.dry_run),
            success=not report.failed,
        )
