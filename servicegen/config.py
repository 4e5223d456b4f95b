"""servicegen configuration.

Typed models for everything a generation run consumes: the project identity,
the optional database credentials and API specification, and the tuning
knobs of the pipeline itself.  All of them are Pydantic v2 models so invalid
input is rejected at construction time, before any stage runs.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)

from servicegen.errors import ConfigurationError
from servicegen.naming import package_to_path, to_pascal_case

_JAVA_PACKAGE_RE = re.compile(r"^[a-z_][a-z0-9_]*(\.[a-z_][a-z0-9_]*)*$")
_ARTIFACT_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class BuildTool(str, Enum):
    """Build tool of the generated project."""
    GRADLE = "GRADLE"
    MAVEN = "MAVEN"


class Runtime(str, Enum):
    """Deployment target of the generated project."""
    GKE = "GKE"
    CLOUD_RUN = "CLOUD_RUN"


# ---------------------------------------------------------------------------
# Project identity
# ---------------------------------------------------------------------------


class ProjectIdentity(BaseModel):
    """Who the generated project is.  Immutable once constructed."""

    model_config = ConfigDict(frozen=True)

    build_tool: BuildTool = Field(default=BuildTool.GRADLE)
    group_id: str = Field(default="com.example")
    artifact_id: str = Field(default="demo")
    name: str = Field(default="demo")
    description: str = Field(default="Demo project for Spring Boot")
    package_root: str = Field(default="com.example.demo")
    language_version: str = Field(default="17", description="Java language level")
    runtime: Runtime = Field(default=Runtime.GKE)

    @field_validator("group_id", "package_root")
    @classmethod
    def _check_java_package(cls, value: str) -> str:
        value = value.strip()
        if not _JAVA_PACKAGE_RE.match(value):
            raise ValueError(f"not a valid Java package name: {value!r}")
        return value

    @field_validator("artifact_id")
    @classmethod
    def _check_artifact(cls, value: str) -> str:
        value = value.strip()
        if not _ARTIFACT_RE.match(value):
            raise ValueError(f"not a valid artifact id: {value!r}")
        return value

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("language_version")
    @classmethod
    def _check_language_version(cls, value: str) -> str:
        value = str(value).strip()
        if not value.isdigit() or int(value) <= 0:
            raise ValueError(f"language version must be a positive integer: {value!r}")
        return value

    @property
    def package_path(self) -> PurePosixPath:
        """``package_root`` as a relative directory (``com/example/demo``)."""
        return package_to_path(self.package_root)

    @property
    def application_class(self) -> str:
        """Name of the generated entry-point class (``demo`` -> ``DemoApplication``)."""
        base = to_pascal_case(re.sub(r"[^A-Za-z0-9]+", "_", self.name)) or "Service"
        if base[0].isdigit():
            base = f"App{base}"
        return f"{base}Application"


# ---------------------------------------------------------------------------
# Optional inputs
# ---------------------------------------------------------------------------


class DatabaseCredentials(BaseModel):
    """Connection details of the schema source.  Held in memory only."""

    model_config = ConfigDict(frozen=True)

    url: str
    username: str
    password: SecretStr

    @classmethod
    def from_parts(
        cls,
        url: Optional[str],
        username: Optional[str],
        password: Optional[str],
    ) -> Optional["DatabaseCredentials"]:
        """Return credentials only when *all three* parts are non-blank."""
        parts = [url, username, password]
        if not all(p is not None and str(p).strip() for p in parts):
            return None
        return cls(url=url.strip(), username=username.strip(), password=SecretStr(password))


class GenerationRequest(BaseModel):
    """Everything a single ``Pipeline.run`` needs."""

    identity: ProjectIdentity
    credentials: Optional[DatabaseCredentials] = None
    api_spec: Optional[str] = Field(
        default=None, description="Path or http(s) URL of an OpenAPI document"
    )
    invocation_dir: Path = Field(default_factory=Path.cwd)

    @field_validator("api_spec")
    @classmethod
    def _blank_spec_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @classmethod
    def from_inputs(cls, values: dict[str, Any]) -> "GenerationRequest":
        """Build a request from flat CLI/prompt values.

        Recognised keys mirror the CLI options: ``build_tool``, ``group_id``,
        ``artifact_id``, ``name``, ``description``, ``package_name``,
        ``language_version``, ``runtime``, ``api_spec_path``, ``db_url``,
        ``db_username``, ``db_password`` and ``invocation_dir``.  ``None``
        values fall back to the model defaults.

        Raises:
            ConfigurationError: If any identity field is invalid.
        """
        identity_fields = {
            "build_tool": values.get("build_tool"),
            "group_id": values.get("group_id"),
            "artifact_id": values.get("artifact_id"),
            "name": values.get("name"),
            "description": values.get("description"),
            "package_root": values.get("package_name"),
            "language_version": values.get("language_version"),
            "runtime": values.get("runtime"),
        }
        identity_fields = {k: v for k, v in identity_fields.items() if v is not None}
        for key in ("build_tool", "runtime"):
            if isinstance(identity_fields.get(key), str):
                identity_fields[key] = identity_fields[key].strip().upper()

        try:
            identity = ProjectIdentity(**identity_fields)
        except ValidationError as exc:
            raise ConfigurationError(_describe_validation_error(exc)) from exc

        credentials = DatabaseCredentials.from_parts(
            values.get("db_url"), values.get("db_username"), values.get("db_password")
        )
        kwargs: dict[str, Any] = {
            "identity": identity,
            "credentials": credentials,
            "api_spec": values.get("api_spec_path"),
        }
        if values.get("invocation_dir"):
            kwargs["invocation_dir"] = Path(values["invocation_dir"])
        return cls(**kwargs)


# ---------------------------------------------------------------------------
# Pipeline settings
# ---------------------------------------------------------------------------


DEFAULT_EXCLUDED_TABLES: list[str] = [
    "flyway_schema_history",
    "databasechangelog",
    "databasechangeloglock",
]


class GeneratorSettings(BaseModel):
    """Tuning knobs for the generation pipeline."""

    connect_timeout: float = Field(
        default=30.0, gt=0, description="Seconds allowed for opening the database connection"
    )
    tool_timeout: int = Field(
        default=600, ge=10, description="Seconds allowed for each external code generator run"
    )
    input_schema: Optional[str] = Field(
        default=None, description="Schema to introspect; the connection default when unset"
    )
    excluded_tables: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_TABLES))
    openapi_generator_command: str = Field(default="openapi-generator-cli")
    liquibase_command: str = Field(default="liquibase")
    spring_boot_version: str = Field(default="3.3.4")
    metadata_filename: str = Field(default="repository-metadata.json")

    @classmethod
    def from_env(cls) -> "GeneratorSettings":
        """Build settings from environment variables.

        Recognised variables (all optional):
            SERVICEGEN_CONNECT_TIMEOUT, SERVICEGEN_TOOL_TIMEOUT,
            SERVICEGEN_INPUT_SCHEMA, SERVICEGEN_EXCLUDED_TABLES (comma separated),
            SERVICEGEN_OPENAPI_GENERATOR, SERVICEGEN_LIQUIBASE,
            SERVICEGEN_SPRING_BOOT_VERSION.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("SERVICEGEN_CONNECT_TIMEOUT"):
            kwargs["connect_timeout"] = float(os.environ["SERVICEGEN_CONNECT_TIMEOUT"])
        if os.environ.get("SERVICEGEN_TOOL_TIMEOUT"):
            kwargs["tool_timeout"] = int(os.environ["SERVICEGEN_TOOL_TIMEOUT"])
        if os.environ.get("SERVICEGEN_INPUT_SCHEMA"):
            kwargs["input_schema"] = os.environ["SERVICEGEN_INPUT_SCHEMA"]
        if os.environ.get("SERVICEGEN_EXCLUDED_TABLES"):
            kwargs["excluded_tables"] = [
                t.strip()
                for t in os.environ["SERVICEGEN_EXCLUDED_TABLES"].split(",")
                if t.strip()
            ]
        if os.environ.get("SERVICEGEN_OPENAPI_GENERATOR"):
            kwargs["openapi_generator_command"] = os.environ["SERVICEGEN_OPENAPI_GENERATOR"]
        if os.environ.get("SERVICEGEN_LIQUIBASE"):
            kwargs["liquibase_command"] = os.environ["SERVICEGEN_LIQUIBASE"]
        if os.environ.get("SERVICEGEN_SPRING_BOOT_VERSION"):
            kwargs["spring_boot_version"] = os.environ["SERVICEGEN_SPRING_BOOT_VERSION"]
        return cls(**kwargs)

    def is_excluded(self, table_name: str) -> bool:
        """Return ``True`` if *table_name* is on the bookkeeping denylist."""
        lowered = table_name.lower()
        return any(lowered == t.lower() for t in self.excluded_tables)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _describe_validation_error(exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()))
        problems.append(f"{location or 'value'}: {err.get('msg', 'invalid')}")
    return "Invalid project identity -- " + "; ".join(problems)
