"""Import Azure Key Vault secrets into .NET user secrets."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from devflow.errors import DevflowError, NothingToDoError
from devflow.shell import CommandRunner, run_command

logger = logging.getLogger(__name__)

# Key Vault names cannot contain ':', so configuration sections are written as '--'.
_SECTION_SEPARATOR = "--"


@dataclass(slots=True)
class ImportReport:
    """Per-secret outcome of one import run."""

    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    def lines(self, *, dry_run: bool) -> list[str]:
        verb = "Would import" if dry_run else "Imported"
        lines = [f"{verb}: {key}" for key in self.imported]
        lines.extend(f"Skipped: {name}" for name in self.skipped)
        lines.extend(f"Failed: {name}: {error}" for name, error in self.failed.items())
        lines.append(
            f"Secrets: imported={len(self.imported)} "
            f"skipped={len(self.skipped)} failed={len(self.failed)}",
        )
        return lines


def configuration_key(secret_name: str) -> str:
    """Map ``ConnectionStrings--Default`` to ``ConnectionStrings:Default``."""

    return secret_name.replace(_SECTION_SEPARATOR, ":")


class KeyVaultSecretImporter:
    """Copy secrets from a vault (via ``az``) into a project's user secrets (via ``dotnet``)."""

    def __init__(
        self,
        *,
        vault_name: str,
        project: Path,
        runner: CommandRunner = run_command,
    ) -> None:
        self.vault_name = vault_name
        self.project = project
        self._runner = runner

    def list_secret_names(self) -> list[str]:
        result = self._runner(
            [
                "az",
                "keyvault",
                "secret",
                "list",
                "--vault-name",
                self.vault_name,
                "--query",
                "[?attributes.enabled].name",
                "--output",
                "json",
            ],
        )
        names = json.loads(result.stdout or "[]")
        return sorted(str(name) for name in names)

    def read_secret(self, name: str) -> str:
        result = self._runner(
            [
                "az",
                "keyvault",
                "secret",
                "show",
                "--vault-name",
                self.vault_name,
                "--name",
                name,
                "--query",
                "value",
                "--output",
                "tsv",
            ],
        )
        return result.stdout.rstrip("\r\n")

    def write_user_secret(self, key: str, value: str) -> None:
        self._runner(
            ["dotnet", "user-secrets", "set", key, value, "--project", str(self.project)],
        )

    def run(self, *, prefix: str | None = None, dry_run: bool = False) -> ImportReport:
        names = self.list_secret_names()
        if not names:
            raise NothingToDoError(f"Key Vault {self.vault_name!r} has no enabled secrets.")

        report = ImportReport()
        for name in names:
            if prefix and not name.startswith(prefix):
                report.skipped.append(name)
                continue
            key = configuration_key(name)
            if dry_run:
                report.imported.append(key)
                continue
            try:
                value = self.read_secret(name)
                self.write_user_secret(key, value)
            except DevflowError as error:
                logger.warning("Secret %s failed: %s", name, error)
                report.failed[name] = str(error)
                continue
            logger.info("Imported secret %s as %s", name, key)
            report.imported.append(key)
        return report
