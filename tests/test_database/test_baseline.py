"""Tests for the migration baseline generator (servicegen.database.baseline).

Liquibase itself is never run: ``run_command`` is patched and the fake
writes (or does not write) the changelog file.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import SecretStr

from servicegen.config import DatabaseCredentials, GeneratorSettings
from servicegen.database.baseline import BASELINE_CHANGELOG, SchemaBaselineGenerator
from servicegen.errors import BaselineError

pytestmark = pytest.mark.unit

RUN_COMMAND = "servicegen.database.baseline.run_command"


@pytest.fixture
def credentials() -> DatabaseCredentials:
    return DatabaseCredentials(
        url="jdbc:postgresql://db:5432/orders",
        username="app",
        password=SecretStr("s3cret"),
    )


@pytest.fixture
def baseline(settings: GeneratorSettings) -> SchemaBaselineGenerator:
    return SchemaBaselineGenerator(settings)


def _writes_changelog(project_root: Path):
    async def fake_run(cmd, cwd=None, timeout=120, env=None):
        target = project_root / BASELINE_CHANGELOG
        target.write_text("databaseChangeLog: []\n", encoding="utf-8")
        return (0, "Generated changelog", "")
    return fake_run


# ---------------------------------------------------------------------------
# Command construction
# ---------------------------------------------------------------------------


class TestCommand:
    def test_command_line(self, baseline: SchemaBaselineGenerator):
        assert baseline.build_command() == [
            "liquibase",
            "generate-changelog",
            "--changelog-file=src/main/resources/db/changelog/baseline/db.changelog-baseline.yaml",
        ]

    def test_custom_executable(self):
        gen = SchemaBaselineGenerator(GeneratorSettings(liquibase_command="/opt/lb/liquibase"))
        assert gen.build_command()[0] == "/opt/lb/liquibase"

    def test_credentials_in_env(
        self, baseline: SchemaBaselineGenerator, credentials: DatabaseCredentials
    ):
        assert baseline.build_env(credentials) == {
            "LIQUIBASE_COMMAND_URL": "jdbc:postgresql://db:5432/orders",
            "LIQUIBASE_COMMAND_USERNAME": "app",
            "LIQUIBASE_COMMAND_PASSWORD": "s3cret",
        }

    def test_password_never_on_command_line(
        self, baseline: SchemaBaselineGenerator, credentials: DatabaseCredentials
    ):
        assert not any("s3cret" in part for part in baseline.build_command())

    def test_sqlalchemy_url_converted_to_jdbc(self, baseline: SchemaBaselineGenerator):
        creds = DatabaseCredentials.from_parts("postgresql+psycopg://db/orders", "app", "pw")
        assert baseline.build_env(creds)["LIQUIBASE_COMMAND_URL"] == "jdbc:postgresql://db/orders"


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


class TestGenerate:
    @pytest.mark.asyncio
    async def test_success(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        with patch(RUN_COMMAND, side_effect=_writes_changelog(tmp_path)) as mock_run:
            path = await baseline.generate(credentials, tmp_path)

        assert path == tmp_path / BASELINE_CHANGELOG
        assert path.read_text(encoding="utf-8") == "databaseChangeLog: []\n"
        kwargs = mock_run.call_args.kwargs
        assert kwargs["cwd"] == tmp_path
        assert kwargs["timeout"] == 30
        assert kwargs["env"]["LIQUIBASE_COMMAND_PASSWORD"] == "s3cret"

    @pytest.mark.asyncio
    async def test_replaces_existing_baseline(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        target = tmp_path / BASELINE_CHANGELOG
        target.parent.mkdir(parents=True)
        target.write_text("old", encoding="utf-8")
        with patch(RUN_COMMAND, side_effect=_writes_changelog(tmp_path)):
            await baseline.generate(credentials, tmp_path)
        assert target.read_text(encoding="utf-8") != "old"

    @pytest.mark.asyncio
    async def test_non_zero_exit(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        with patch(RUN_COMMAND, new=AsyncMock(return_value=(1, "", "Connection refused"))):
            with pytest.raises(BaselineError, match="Connection refused"):
                await baseline.generate(credentials, tmp_path)

    @pytest.mark.asyncio
    async def test_timeout(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        result = (-1, "", "Command timed out after 30s: liquibase")
        with patch(RUN_COMMAND, new=AsyncMock(return_value=result)):
            with pytest.raises(BaselineError, match="timed out"):
                await baseline.generate(credentials, tmp_path)

    @pytest.mark.asyncio
    async def test_missing_executable(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        with patch(RUN_COMMAND, new=AsyncMock(side_effect=FileNotFoundError("liquibase"))):
            with pytest.raises(BaselineError, match="not found"):
                await baseline.generate(credentials, tmp_path)

    @pytest.mark.asyncio
    async def test_exit_zero_without_file(
        self,
        baseline: SchemaBaselineGenerator,
        credentials: DatabaseCredentials,
        tmp_path: Path,
    ):
        with patch(RUN_COMMAND, new=AsyncMock(return_value=(0, "", ""))):
            with pytest.raises(BaselineError, match="did not write"):
                await baseline.generate(credentials, tmp_path)
