"""Schema introspection and entity source generation.

Connects to the live database, reflects every user table of the configured
schema, renders one Java class per table and returns the entity metadata
the repository generator consumes.  Bookkeeping tables of the migration
tools are never rendered.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from jinja2 import TemplateError
from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from servicegen.config import DatabaseCredentials, GeneratorSettings
from servicegen.errors import DatabaseConnectionError, GenerationError
from servicegen.naming import (
    NamingMode,
    is_java_identifier,
    package_to_path,
    resolve_member_name,
    resolve_type_name,
)
from servicegen.scaffolder.templates import TemplateRenderer
from servicegen.utils import console, print_warning

from .connection import create_schema_engine, open_connection
from .metadata import EntityMetadata
from .types import OBJECT, resolve_java_type

ENTITY_TEMPLATE = "entity/Entity.java.j2"
ENTITY_SUBPACKAGE = "infrastructure.repositories.tables.pojos"

_PERSISTENCE_IMPORTS = [
    "jakarta.persistence.Column",
    "jakarta.persistence.Entity",
    "jakarta.persistence.Id",
    "jakarta.persistence.Table",
]


@dataclass
class ReflectedColumn:
    name: str
    java_type: str
    java_import: Optional[str]
    nullable: bool
    length: Optional[int]
    primary_key: bool


@dataclass
class ReflectedTable:
    name: str
    columns: list[ReflectedColumn]
    primary_key: list[str]

    @property
    def primary_key_type(self) -> Optional[str]:
        """Java type of the first primary-key column, ``None`` without a key."""
        if not self.primary_key:
            return None
        first = self.primary_key[0]
        for column in self.columns:
            if column.name == first:
                return column.java_type
        return OBJECT.name


@dataclass
class IntrospectionResult:
    """What a schema introspection produced."""

    metadata: list[EntityMetadata] = field(default_factory=list)
    written: list[Path] = field(default_factory=list)
    skipped_tables: list[str] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)


def entity_package(package_root: str) -> str:
    """Package that holds the generated entity classes."""
    return f"{package_root}.{ENTITY_SUBPACKAGE}"


class SchemaIntrospector:
    """Reflects a database schema and renders entity sources for it."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        settings: GeneratorSettings | None = None,
    ) -> None:
        self.renderer = renderer
        self.settings = settings or GeneratorSettings()

    async def introspect(
        self,
        credentials: DatabaseCredentials,
        package_root: str,
        output_dir: Path,
    ) -> IntrospectionResult:
        """Generate entity sources under *output_dir* for every user table.

        *output_dir* is the project root; sources go to
        ``src/main/java/<package>/infrastructure/repositories/tables/pojos``.

        Tables are processed in name order.  A table without a primary key
        still gets its class file but no metadata record, and is listed in
        ``skipped_tables``.  A table whose class name is not a valid Java
        identifier or was already taken by an earlier table, or whose source
        cannot be written, is listed in ``failures`` and left out of the
        metadata.

        Raises:
            DatabaseConnectionError: If the database cannot be reached or
                reflected.
        """
        engine = create_schema_engine(credentials, self.settings.connect_timeout)
        try:
            connection = await open_connection(engine, self.settings.connect_timeout)
            try:
                tables = await asyncio.to_thread(self._reflect, connection)
            finally:
                await asyncio.to_thread(connection.close)
        finally:
            await asyncio.to_thread(engine.dispose)

        console.print(f"  [dim]Reflected {len(tables)} table(s)[/dim]")

        pojo_package = entity_package(package_root)
        target_dir = output_dir / "src" / "main" / "java" / package_to_path(pojo_package)
        result = IntrospectionResult()
        claimed: dict[str, str] = {}

        for table in tables:
            try:
                class_name = self._class_name_for(table, claimed)
                path = await self._write_entity(table, class_name, pojo_package, target_dir)
            except GenerationError as exc:
                result.failures[table.name] = str(exc)
                print_warning(f"  {exc}")
                continue
            claimed[class_name] = table.name
            result.written.append(path)

            pk_type = table.primary_key_type
            if pk_type is None:
                result.skipped_tables.append(table.name)
                print_warning(
                    f"  Table {table.name} has no primary key; no repository will be generated"
                )
                continue

            result.metadata.append(
                EntityMetadata(
                    table_name=table.name,
                    entity_class_name=class_name,
                    entity_package_name=pojo_package,
                    primary_key_type=pk_type,
                )
            )

        return result

    # -- Reflection (runs in a worker thread) ------------------------------

    def _reflect(self, connection: Connection) -> list[ReflectedTable]:
        schema = self.settings.input_schema
        try:
            inspector = inspect(connection)
            names = sorted(
                name
                for name in inspector.get_table_names(schema=schema)
                if not self.settings.is_excluded(name)
            )
            tables = []
            for name in names:
                pk = inspector.get_pk_constraint(name, schema=schema) or {}
                pk_columns = list(pk.get("constrained_columns") or [])
                columns = [
                    _reflect_column(col, pk_columns)
                    for col in inspector.get_columns(name, schema=schema)
                ]
                tables.append(ReflectedTable(name=name, columns=columns, primary_key=pk_columns))
        except SQLAlchemyError as exc:
            raise DatabaseConnectionError(f"Schema reflection failed: {exc}") from exc
        return tables

    # -- Rendering ---------------------------------------------------------

    @staticmethod
    def _class_name_for(table: ReflectedTable, claimed: dict[str, str]) -> str:
        """Resolve the entity class name of *table*.

        Raises:
            GenerationError: If the name is not a usable Java identifier or an
                earlier table already resolved to it.
        """
        try:
            class_name = resolve_type_name(table.name, NamingMode.DATA_OBJECT)
        except ValueError as exc:
            raise GenerationError(table.name, str(exc)) from exc
        if not is_java_identifier(class_name):
            raise GenerationError(
                table.name, f"{class_name!r} is not a valid Java class name"
            )
        if class_name in claimed:
            raise GenerationError(
                table.name,
                f"class name {class_name} already generated for {claimed[class_name]}",
            )
        return class_name

    async def _write_entity(
        self, table: ReflectedTable, class_name: str, pojo_package: str, target_dir: Path
    ) -> Path:
        path = target_dir / f"{class_name}.java"
        try:
            await self.renderer.render_to_file(
                ENTITY_TEMPLATE, path, self._entity_context(table, class_name, pojo_package)
            )
        except (TemplateError, OSError) as exc:
            raise GenerationError(table.name, f"cannot write entity source: {exc}") from exc
        return path

    def _entity_context(
        self, table: ReflectedTable, class_name: str, pojo_package: str
    ) -> dict[str, Any]:
        has_pk = bool(table.primary_key)
        imports = {"java.io.Serializable"}
        if has_pk:
            imports.update(_PERSISTENCE_IMPORTS)

        columns = []
        for column in table.columns:
            if column.java_import:
                imports.add(column.java_import)
            if not column.nullable and not column.primary_key:
                imports.add("jakarta.validation.constraints.NotNull")
            if column.length:
                imports.add("jakarta.validation.constraints.Size")
            field_name = resolve_member_name(column.name)
            columns.append({
                "name": column.name,
                "field": field_name,
                "java_type": column.java_type,
                "nullable": column.nullable,
                "length": column.length,
                "primary_key": column.primary_key,
                "accessor": field_name[:1].upper() + field_name[1:],
            })

        return {
            "package_name": pojo_package,
            "imports": sorted(imports),
            "table_name": table.name,
            "schema": self.settings.input_schema,
            "has_primary_key": has_pk,
            "class_name": class_name,
            "columns": columns,
        }


def _reflect_column(column: dict[str, Any], pk_columns: list[str]) -> ReflectedColumn:
    sql_type = column["type"]
    java_type = resolve_java_type(sql_type)
    length = getattr(sql_type, "length", None)
    if java_type.name != "String" or not isinstance(length, int):
        length = None
    return ReflectedColumn(
        name=column["name"],
        java_type=java_type.name,
        java_import=java_type.import_name,
        nullable=bool(column.get("nullable", True)),
        length=length,
        primary_key=column["name"] in pk_columns,
    )
