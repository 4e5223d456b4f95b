"""REST interface stub generation from an OpenAPI document.

The external ``openapi-generator-cli`` does the actual code generation.  This
module checks the document is readable, describes the generator run in a
declarative JSON configuration (written outside the project so it never ends
up in the generated tree) and invokes the executable with that
configuration.
"""

from __future__ import annotations

import json
import tempfile
from pathlib import Path
from typing import Any

import httpx
import yaml
from pydantic import BaseModel, ConfigDict, Field

from servicegen.config import GeneratorSettings
from servicegen.errors import SpecError
from servicegen.utils import console, run_command, tail

API_SUBPACKAGE = "interfaces.rest"
MODEL_SUBPACKAGE = "interfaces.rest.dto"

_FETCH_TIMEOUT = 30.0


class OpenApiGeneratorConfig(BaseModel):
    """Declarative configuration of one ``openapi-generator-cli`` run.

    Serialised with the option names the generator's ``-c`` file expects.
    """

    generator_name: str = Field(default="spring", alias="generatorName")
    library: str = Field(default="spring-boot")
    api_package: str = Field(..., alias="apiPackage")
    model_package: str = Field(..., alias="modelPackage")
    invoker_package: str = Field(..., alias="invokerPackage")
    additional_properties: dict[str, Any] = Field(
        default_factory=lambda: {
            "interfaceOnly": True,
            "useSpringBoot3": True,
            "useTags": True,
            "skipDefaultInterface": True,
            "singleContentTypes": True,
            "hateoas": False,
            "disallowAdditionalPropertiesIfNotPresent": False,
        },
        alias="additionalProperties",
    )
    type_mappings: dict[str, str] = Field(
        default_factory=lambda: {"set": "List"}, alias="typeMappings"
    )
    instantiation_types: dict[str, str] = Field(
        default_factory=lambda: {"set": "ArrayList"}, alias="instantiationTypes"
    )
    global_properties: dict[str, str] = Field(
        default_factory=lambda: {
            "apis": "",
            "models": "",
            "modelDocs": "false",
            "apiDocs": "false",
            "modelTests": "false",
            "apiTests": "false",
        },
        alias="globalProperties",
    )

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    @classmethod
    def for_package(cls, package_root: str) -> "OpenApiGeneratorConfig":
        return cls(
            api_package=f"{package_root}.{API_SUBPACKAGE}",
            model_package=f"{package_root}.{MODEL_SUBPACKAGE}",
            invoker_package=package_root,
        )

    def to_json(self) -> str:
        return json.dumps(self.model_dump(by_alias=True), indent=2) + "\n"


class ApiStubGenerator:
    """Generates REST interfaces and DTOs from an OpenAPI document."""

    def __init__(self, settings: GeneratorSettings | None = None) -> None:
        self.settings = settings or GeneratorSettings()

    # -- Public API --------------------------------------------------------

    async def generate(self, spec: str, package_root: str, output_dir: Path) -> list[Path]:
        """Generate the stubs for *spec* into *output_dir*.

        Returns:
            The Java sources under the API and model packages after the run.

        Raises:
            SpecError: If the document is unreadable or not OpenAPI, or the
                generator is missing, times out or fails.
        """
        await self.check_readable(spec)
        if not _is_url(spec):
            spec = str(Path(spec).resolve())
        config = OpenApiGeneratorConfig.for_package(package_root)

        with tempfile.TemporaryDirectory(prefix="servicegen-openapi-") as tmp:
            config_path = Path(tmp) / "openapi-generator-config.json"
            config_path.write_text(config.to_json(), encoding="utf-8")
            cmd = self.build_command(spec, output_dir, config_path, config)

            try:
                rc, stdout, stderr = await run_command(
                    cmd, cwd=output_dir, timeout=self.settings.tool_timeout
                )
            except FileNotFoundError as exc:
                raise SpecError(f"OpenAPI generator executable not found: {cmd[0]}") from exc

        if rc != 0:
            raise SpecError(
                f"OpenAPI generator exited with code {rc}:\n{tail(stderr or stdout)}"
            )

        api_dir = output_dir / "src" / "main" / "java" / Path(*config.api_package.split("."))
        written = sorted(api_dir.rglob("*.java")) if api_dir.is_dir() else []
        console.print(f"  [dim]{len(written)} API source file(s) generated[/dim]")
        return written

    def build_command(
        self,
        spec: str,
        output_dir: Path,
        config_path: Path,
        config: OpenApiGeneratorConfig,
    ) -> list[str]:
        global_properties = ",".join(
            f"{key}={value}" if value else key
            for key, value in config.global_properties.items()
        )
        return [
            self.settings.openapi_generator_command,
            "generate",
            "-i", spec,
            "-g", config.generator_name,
            "--library", config.library,
            "-o", str(output_dir),
            "-c", str(config_path),
            "--global-property", global_properties,
        ]

    async def check_readable(self, spec: str) -> dict[str, Any]:
        """Load *spec* and make sure it looks like an OpenAPI document.

        Raises:
            SpecError: If the document cannot be read or parsed, or has
                neither an ``openapi`` nor a ``swagger`` key.
        """
        if _is_url(spec):
            text = await _fetch(spec)
        else:
            path = Path(spec)
            if not path.is_file():
                raise SpecError(f"API specification not found: {spec}")
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                raise SpecError(f"Cannot read API specification {spec}: {exc}") from exc

        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise SpecError(f"API specification {spec} is not valid YAML/JSON: {exc}") from exc

        if not isinstance(document, dict) or not (
            "openapi" in document or "swagger" in document
        ):
            raise SpecError(f"{spec} is not an OpenAPI document (no 'openapi' key)")
        return document


async def _fetch(url: str) -> str:
    try:
        async with httpx.AsyncClient(timeout=_FETCH_TIMEOUT, follow_redirects=True) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise SpecError(f"Cannot fetch API specification {url}: {exc}") from exc
    return response.text


def _is_url(spec: str) -> bool:
    return spec.startswith(("http://", "https://"))
