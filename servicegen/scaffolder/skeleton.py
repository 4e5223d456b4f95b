"""Project skeleton generation.

Renders the static part of a generated service: build files, CI workflow,
application entry point, environment configs, dev-container, Liquibase master
changelog and the deployment manifest for the selected runtime.

One generator class exists per build tool.  The class for a run is picked
from the ``SKELETON_GENERATORS`` table; adding a build tool means adding a
subclass and a table entry.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from jinja2 import TemplateError

from servicegen.config import BuildTool, GeneratorSettings, ProjectIdentity, Runtime
from servicegen.errors import ConfigurationError, SkeletonError
from servicegen.utils import make_executable, sanitize_name

from .templates import TemplateRenderer

# Runtime -> (template, output path relative to the project root)
RUNTIME_MANIFESTS: dict[Runtime, tuple[str, str]] = {
    Runtime.GKE: ("project/deployment.yaml.j2", "dev-resources/deployment.yaml"),
    Runtime.CLOUD_RUN: ("project/service.yaml.j2", "dev-resources/service.yaml"),
}

CHANGELOG_DIR = Path("src", "main", "resources", "db", "changelog")


class SkeletonGenerator:
    """Renders the files every generated project has, whatever its build tool.

    Subclasses list their build-tool specific templates in ``BUILD_TEMPLATES``
    and verbatim resources in ``BUILD_STATIC_FILES``.
    """

    # Template name -> output path relative to the project root
    COMMON_TEMPLATES: dict[str, str] = {
        "project/gitignore.j2": ".gitignore",
        "project/README.md.j2": "README.md",
        "project/application.yml.j2": "src/main/resources/application.yml",
        "project/application-gcp.yml.j2": "src/main/resources/application-gcp.yml",
        "project/application-dev.yml.j2": "config/application-dev.yml",
        "project/application-ut.yml.j2": "config/application-ut.yml",
        "project/compose.yaml.j2": "compose.yaml",
        "project/devcontainer.json.j2": ".devcontainer/devcontainer.json",
        "project/ci.yml.j2": ".github/workflows/ci.yml",
    }

    # Static resource -> output path relative to the project root
    COMMON_STATIC_FILES: dict[str, str] = {
        "db.changelog-master.yaml": (CHANGELOG_DIR / "db.changelog-master.yaml").as_posix(),
        "postCreateCommand.sh": ".devcontainer/postCreateCommand.sh",
    }

    EXECUTABLES: frozenset[str] = frozenset({".devcontainer/postCreateCommand.sh"})

    BUILD_TEMPLATES: dict[str, str] = {}
    BUILD_STATIC_FILES: dict[str, str] = {}

    build_tool: BuildTool

    def __init__(
        self,
        renderer: TemplateRenderer,
        settings: GeneratorSettings | None = None,
    ) -> None:
        self.renderer = renderer
        self.settings = settings or GeneratorSettings()

    # -- Public API --------------------------------------------------------

    async def generate(self, identity: ProjectIdentity, project_root: Path) -> list[Path]:
        """Render the skeleton of *identity* into *project_root*.

        Returns:
            The written file paths, in rendering order.

        Raises:
            SkeletonError: If a template is missing or broken, or a file
                cannot be written.
        """
        context = self.build_context(identity)
        written: list[Path] = []
        try:
            for template_name, relative in self._template_targets(identity).items():
                path = await self.renderer.render_to_file(
                    template_name, project_root / relative, context
                )
                written.append(path)

            for resource, relative in {
                **self.COMMON_STATIC_FILES,
                **self.BUILD_STATIC_FILES,
            }.items():
                path = await self.renderer.copy_static(resource, project_root / relative)
                if relative in self.EXECUTABLES:
                    make_executable(path)
                written.append(path)
        except (TemplateError, OSError) as exc:
            raise SkeletonError(f"Cannot render project skeleton: {exc}") from exc

        return written

    def build_context(self, identity: ProjectIdentity) -> dict[str, Any]:
        """Build the flat template context for *identity*."""
        return {
            "build_tool": identity.build_tool.value,
            "group_id": identity.group_id,
            "artifact_id": identity.artifact_id,
            "name": identity.name,
            "description": identity.description,
            "package_name": identity.package_root,
            "package_path": identity.package_path.as_posix(),
            "language_version": identity.language_version,
            "runtime": identity.runtime.value,
            "application_class": identity.application_class,
            "project_slug": sanitize_name(identity.artifact_id) or "service",
            "spring_boot_version": self.settings.spring_boot_version,
        }

    # -- Internals ---------------------------------------------------------

    def _template_targets(self, identity: ProjectIdentity) -> dict[str, str]:
        package_path = identity.package_path.as_posix()
        app = identity.application_class
        targets = dict(self.COMMON_TEMPLATES)
        targets.update({
            "project/Application.java.j2": f"src/main/java/{package_path}/{app}.java",
            "project/ApplicationTests.java.j2": f"src/test/java/{package_path}/{app}Tests.java",
            "project/TestContainerConfiguration.java.j2": (
                f"src/test/java/{package_path}/TestContainerConfiguration.java"
            ),
        })
        manifest_template, manifest_path = RUNTIME_MANIFESTS[identity.runtime]
        targets[manifest_template] = manifest_path
        targets.update(self.BUILD_TEMPLATES)
        return targets


class GradleSkeletonGenerator(SkeletonGenerator):
    """Skeleton for Gradle (Groovy DSL) projects."""

    build_tool = BuildTool.GRADLE

    BUILD_TEMPLATES = {
        "gradle/settings.gradle.j2": "settings.gradle",
        "gradle/build.gradle.j2": "build.gradle",
    }
    BUILD_STATIC_FILES = {
        "gradle-wrapper.properties": "gradle/wrapper/gradle-wrapper.properties",
        "gradlew": "gradlew",
        "gradlew.bat": "gradlew.bat",
    }
    EXECUTABLES = SkeletonGenerator.EXECUTABLES | {"gradlew"}


class MavenSkeletonGenerator(SkeletonGenerator):
    """Skeleton for Maven projects."""

    build_tool = BuildTool.MAVEN

    BUILD_TEMPLATES = {
        "maven/pom.xml.j2": "pom.xml",
    }
    BUILD_STATIC_FILES = {
        "maven-wrapper.properties": ".mvn/wrapper/maven-wrapper.properties",
    }


SKELETON_GENERATORS: dict[BuildTool, type[SkeletonGenerator]] = {
    BuildTool.GRADLE: GradleSkeletonGenerator,
    BuildTool.MAVEN: MavenSkeletonGenerator,
}


def skeleton_generator_for(
    build_tool: BuildTool,
    renderer: TemplateRenderer,
    settings: GeneratorSettings | None = None,
) -> SkeletonGenerator:
    """Return the skeleton generator registered for *build_tool*.

    Raises:
        ConfigurationError: If no generator exists for the build tool.
    """
    generator_cls = SKELETON_GENERATORS.get(build_tool)
    if generator_cls is None:
        raise ConfigurationError(f"Unsupported build tool: {build_tool}")
    return generator_cls(renderer, settings)
