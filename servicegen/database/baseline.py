"""Migration baseline generation via the Liquibase CLI."""

from __future__ import annotations

from pathlib import Path

from servicegen.config import DatabaseCredentials, GeneratorSettings
from servicegen.errors import BaselineError, DatabaseConnectionError
from servicegen.utils import console, run_command, tail

from .connection import to_jdbc_url

BASELINE_CHANGELOG = Path(
    "src", "main", "resources", "db", "changelog", "baseline", "db.changelog-baseline.yaml"
)


class SchemaBaselineGenerator:
    """Captures the current schema as the project's first changelog."""

    def __init__(self, settings: GeneratorSettings | None = None) -> None:
        self.settings = settings or GeneratorSettings()

    def build_command(self) -> list[str]:
        return [
            self.settings.liquibase_command,
            "generate-changelog",
            f"--changelog-file={BASELINE_CHANGELOG.as_posix()}",
        ]

    def build_env(self, credentials: DatabaseCredentials) -> dict[str, str]:
        """Connection settings for Liquibase, passed through the environment."""
        try:
            url = to_jdbc_url(credentials)
        except DatabaseConnectionError as exc:
            raise BaselineError(str(exc)) from exc
        return {
            "LIQUIBASE_COMMAND_URL": url,
            "LIQUIBASE_COMMAND_USERNAME": credentials.username,
            "LIQUIBASE_COMMAND_PASSWORD": credentials.password.get_secret_value(),
        }

    async def generate(self, credentials: DatabaseCredentials, project_root: Path) -> Path:
        """Write the baseline changelog into *project_root*.

        An existing baseline is replaced.

        Raises:
            BaselineError: If Liquibase is missing, times out or fails.
        """
        target = project_root / BASELINE_CHANGELOG
        target.parent.mkdir(parents=True, exist_ok=True)
        if target.exists():
            target.unlink()

        cmd = self.build_command()
        try:
            rc, stdout, stderr = await run_command(
                cmd,
                cwd=project_root,
                timeout=self.settings.tool_timeout,
                env=self.build_env(credentials),
            )
        except FileNotFoundError as exc:
            raise BaselineError(f"Liquibase executable not found: {cmd[0]}") from exc

        if rc != 0:
            raise BaselineError(
                f"Liquibase exited with code {rc}:\n{tail(stderr or stdout)}"
            )
        if not target.is_file():
            raise BaselineError(f"Liquibase did not write {BASELINE_CHANGELOG.as_posix()}")

        console.print(f"  [dim]Baseline written to {BASELINE_CHANGELOG.as_posix()}[/dim]")
        return target
