"""Shared pytest fixtures for the servicegen test suite.

Provides reusable fixtures for:
- Project identities and generator settings
- A template renderer over the packaged templates
- Real SQLite schemas for the database stage
- Mock subprocess helpers for the external code generators
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from pydantic import SecretStr
from sqlalchemy import create_engine, text

from servicegen.config import (
    BuildTool,
    DatabaseCredentials,
    GenerationRequest,
    GeneratorSettings,
    ProjectIdentity,
    Runtime,
)
from servicegen.database.metadata import EntityMetadata
from servicegen.scaffolder.templates import TemplateRenderer


# ---------------------------------------------------------------------------
# Identity & settings
# ---------------------------------------------------------------------------

@pytest.fixture
def identity() -> ProjectIdentity:
    """A Gradle/GKE project identity with a non-default package."""
    return ProjectIdentity(
        build_tool=BuildTool.GRADLE,
        group_id="com.acme",
        artifact_id="orders",
        name="orders",
        description="Order management service",
        package_root="com.acme.orders",
        language_version="21",
        runtime=Runtime.GKE,
    )


@pytest.fixture
def settings() -> GeneratorSettings:
    """Settings with short timeouts so failing tests fail fast."""
    return GeneratorSettings(connect_timeout=5.0, tool_timeout=30)


@pytest.fixture
def renderer() -> TemplateRenderer:
    """Renderer over the packaged template directory."""
    return TemplateRenderer()


@pytest.fixture
def order_item_metadata() -> EntityMetadata:
    return EntityMetadata(
        table_name="tb_order_item",
        entity_class_name="OrderItem",
        entity_package_name="com.acme.orders.infrastructure.repositories.tables.pojos",
        primary_key_type="Long",
    )


# ---------------------------------------------------------------------------
# SQLite schemas
# ---------------------------------------------------------------------------

SAMPLE_SCHEMA_DDL = [
    """
    CREATE TABLE tb_customer (
        id INTEGER NOT NULL PRIMARY KEY,
        full_name VARCHAR(120) NOT NULL,
        email VARCHAR(255),
        active BOOLEAN NOT NULL,
        created_at DATETIME
    )
    """,
    """
    CREATE TABLE tb_order_item (
        id BIGINT NOT NULL PRIMARY KEY,
        order_id BIGINT NOT NULL,
        quantity SMALLINT NOT NULL,
        unit_price NUMERIC(10, 2) NOT NULL
    )
    """,
    """
    CREATE TABLE tb_product (
        sku VARCHAR(32) NOT NULL PRIMARY KEY,
        title VARCHAR(200) NOT NULL,
        released_on DATE
    )
    """,
    """
    CREATE TABLE tb_shipment (
        id INTEGER NOT NULL PRIMARY KEY,
        carrier VARCHAR(50),
        "class" VARCHAR(10)
    )
    """,
    """
    CREATE TABLE tb_audit_log (
        message TEXT,
        logged_at DATETIME
    )
    """,
    """
    CREATE TABLE flyway_schema_history (
        installed_rank INTEGER NOT NULL PRIMARY KEY,
        version VARCHAR(50)
    )
    """,
    """
    CREATE TABLE DATABASECHANGELOG (
        id VARCHAR(255) NOT NULL,
        author VARCHAR(255) NOT NULL
    )
    """,
]


def create_sqlite_schema(path: Path, ddl: list[str]) -> Path:
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as conn:
        for statement in ddl:
            conn.execute(text(statement))
    engine.dispose()
    return path


@pytest.fixture
def sqlite_schema():
    """Factory building a SQLite file from a list of DDL statements."""
    return create_sqlite_schema


@pytest.fixture
def sample_schema_db(tmp_path: Path) -> Path:
    """SQLite file with five user tables (one without a primary key) and
    two migration bookkeeping tables."""
    return create_sqlite_schema(tmp_path / "schema.db", SAMPLE_SCHEMA_DDL)


@pytest.fixture
def db_credentials(sample_schema_db: Path) -> DatabaseCredentials:
    return DatabaseCredentials(
        url=f"sqlite:///{sample_schema_db}",
        username="app",
        password=SecretStr("secret"),
    )


@pytest.fixture
def unreachable_credentials(tmp_path: Path) -> DatabaseCredentials:
    """Credentials pointing at a database file that cannot be opened."""
    return DatabaseCredentials(
        url=f"sqlite:///{tmp_path / 'missing-dir' / 'nowhere.db'}",
        username="app",
        password=SecretStr("secret"),
    )


@pytest.fixture
def openapi_spec(tmp_path: Path) -> Path:
    """A minimal, valid OpenAPI 3 document on disk."""
    path = tmp_path / "api.yaml"
    path.write_text(
        "openapi: 3.0.3\n"
        "info:\n"
        "  title: Orders\n"
        "  version: 1.0.0\n"
        "paths:\n"
        "  /orders:\n"
        "    get:\n"
        "      tags: [orders]\n"
        "      operationId: listOrders\n"
        "      responses:\n"
        "        '200':\n"
        "          description: OK\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def make_request(identity: ProjectIdentity, tmp_path: Path):
    """Factory for generation requests rooted in a temp invocation dir."""
    invocation_dir = tmp_path / "workspace"
    invocation_dir.mkdir()

    def factory(
        credentials: DatabaseCredentials | None = None,
        api_spec: str | None = None,
        **identity_overrides: Any,
    ) -> GenerationRequest:
        ident = identity.model_copy(update=identity_overrides) if identity_overrides else identity
        return GenerationRequest(
            identity=ident,
            credentials=credentials,
            api_spec=api_spec,
            invocation_dir=invocation_dir,
        )

    return factory


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
