"""Repository interface generation from entity metadata."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jinja2 import TemplateError

from servicegen.config import ProjectIdentity
from servicegen.errors import GenerationError
from servicegen.naming import is_java_identifier, package_to_path
from servicegen.scaffolder.templates import TemplateRenderer
from servicegen.utils import console, print_warning

from . import metadata as metadata_file
from .metadata import EntityMetadata
from .types import import_for

REPOSITORY_TEMPLATE = "repository/JpaRepository.java.j2"
REPOSITORY_SUBPACKAGE = "infrastructure.repositories"
REPOSITORY_SUFFIX = "Repository"


@dataclass
class RepositoryReport:
    """Outcome of a repository generation pass."""

    success_count: int = 0
    failure_count: int = 0
    written: list[Path] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "written": [str(p) for p in self.written],
            "failures": dict(self.failures),
        }


def repository_package(package_root: str) -> str:
    return f"{package_root}.{REPOSITORY_SUBPACKAGE}"


class RepositoryGenerator:
    """Renders one Spring Data repository interface per entity."""

    def __init__(self, renderer: TemplateRenderer) -> None:
        self.renderer = renderer

    async def generate_from_file(
        self,
        metadata_path: Path,
        identity: ProjectIdentity,
        output_dir: Path,
    ) -> RepositoryReport:
        """Load the metadata file and generate repositories for it.

        Raises:
            MetadataError: If the file is missing or malformed, i.e. schema
                introspection has not run for *output_dir*.
        """
        entries = metadata_file.load(metadata_path)
        return await self.generate(entries, identity, output_dir)

    async def generate(
        self,
        entries: list[EntityMetadata],
        identity: ProjectIdentity,
        output_dir: Path,
    ) -> RepositoryReport:
        """Generate one repository per entry under *output_dir*.

        A failing entity is counted and reported, never raised; the others
        are still generated.  Existing files are overwritten.
        """
        package_name = repository_package(identity.package_root)
        target_dir = output_dir / "src" / "main" / "java" / package_to_path(package_name)
        report = RepositoryReport()

        for entry in entries:
            try:
                path = await self._generate_one(entry, package_name, target_dir)
            except (GenerationError, TemplateError, OSError) as exc:
                report.failure_count += 1
                report.failures[entry.table_name] = str(exc)
                print_warning(f"  Repository for {entry.table_name} failed: {exc}")
                continue
            report.success_count += 1
            report.written.append(path)

        console.print(
            f"  [dim]Repositories: {report.success_count} generated, "
            f"{report.failure_count} failed[/dim]"
        )
        return report

    async def _generate_one(
        self, entry: EntityMetadata, package_name: str, target_dir: Path
    ) -> Path:
        if not is_java_identifier(entry.entity_class_name):
            raise GenerationError(
                entry.table_name, f"invalid entity class name {entry.entity_class_name!r}"
            )
        if not entry.primary_key_type.strip():
            raise GenerationError(entry.table_name, "primary key type is unresolved")

        class_name = f"{entry.entity_class_name}{REPOSITORY_SUFFIX}"
        context = {
            "packageName": package_name,
            "className": class_name,
            "entityClassName": entry.entity_class_name,
            "pojoClassName": entry.entity_class_name,
            "pojoPackageName": entry.entity_package_name,
            "primaryKeyType": entry.primary_key_type,
            "primaryKeyImport": import_for(entry.primary_key_type) or "",
        }
        return await self.renderer.render_to_file(
            REPOSITORY_TEMPLATE, target_dir / f"{class_name}.java", context
        )
