"""servicegen Pipeline Orchestrator.

Drives one generation run through its stages:

INIT      -- Validate the request, pick the unique working directory.
SKELETON  -- Build files, entry point, configs, CI, deployment manifest.
API_STUBS -- REST interfaces from an OpenAPI document (only with a spec).
DB_STAGE  -- Entities, repositories and migration baseline from a live
             schema (only with full database credentials).
CLEANUP   -- Remove the transient entity metadata file if it survived.
DONE / FAILED

Stages run strictly one after another.  The first fatal error moves the run
to ``FAILED``; files already written are left in place.

Usage::

    pipeline = Pipeline(GenerationRequest.from_inputs(values))
    report = await pipeline.run()
"""

from __future__ import annotations

import time
import traceback
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from rich.panel import Panel

from servicegen.config import GenerationRequest, GeneratorSettings
from servicegen.database import metadata as metadata_file
from servicegen.database.baseline import SchemaBaselineGenerator
from servicegen.database.introspector import SchemaIntrospector
from servicegen.database.repositories import RepositoryGenerator
from servicegen.errors import PipelineError, SkeletonError, StageError
from servicegen.scaffolder.api_stubs import ApiStubGenerator
from servicegen.scaffolder.skeleton import skeleton_generator_for
from servicegen.scaffolder.templates import TemplateRenderer
from servicegen.utils import (
    console,
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
    sanitize_name,
)

METADATA_DIR = Path("src", "main", "java")


class PipelineState(str, Enum):
    INIT = "INIT"
    SKELETON = "SKELETON"
    API_STUBS = "API_STUBS"
    DB_STAGE = "DB_STAGE"
    CLEANUP = "CLEANUP"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class GenerationContext:
    """A request bound to the working directory of one run."""

    request: GenerationRequest
    project_root: Path
    metadata_filename: str

    @property
    def metadata_path(self) -> Path:
        return self.project_root / METADATA_DIR / self.metadata_filename


def working_directory_for(request: GenerationRequest) -> Path:
    """A fresh directory name under the invocation dir, unique per run."""
    slug = sanitize_name(request.identity.artifact_id) or "service"
    return request.invocation_dir / f"{slug}-{uuid4().hex[:8]}"


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------


class Pipeline:
    """Runs the generation stages for a single request.

    A ``Pipeline`` is single-use: it owns its working directory and its
    report.  Collaborators can be injected for tests; by default they are
    built from *settings*.

    Attributes:
        state: Current state of the run.
        context: Set once the working directory exists.
        error: The fatal error when the run ended in ``FAILED``.
        report: Accumulated run report, returned by :meth:`run`.
    """

    def __init__(
        self,
        request: GenerationRequest,
        settings: GeneratorSettings | None = None,
        renderer: TemplateRenderer | None = None,
        *,
        api_stub_generator: ApiStubGenerator | None = None,
        introspector: SchemaIntrospector | None = None,
        repository_generator: RepositoryGenerator | None = None,
        baseline_generator: SchemaBaselineGenerator | None = None,
    ) -> None:
        self.request = request
        self.settings = settings or GeneratorSettings()
        self.renderer = renderer or TemplateRenderer()
        self.api_stub_generator = api_stub_generator or ApiStubGenerator(self.settings)
        self.introspector = introspector or SchemaIntrospector(self.renderer, self.settings)
        self.repository_generator = repository_generator or RepositoryGenerator(self.renderer)
        self.baseline_generator = baseline_generator or SchemaBaselineGenerator(self.settings)

        self.state = PipelineState.INIT
        self.context: Optional[GenerationContext] = None
        self.error: Optional[PipelineError] = None
        self.report: dict[str, Any] = {
            "state": self.state.value,
            "transitions": [self.state.value],
            "stages_completed": [],
            "stages_skipped": [],
            "warnings": [],
            "failed_stage": None,
            "error": None,
            "project_path": None,
            "entities": 0,
            "repositories": None,
            "success": False,
        }

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> dict[str, Any]:
        """Execute every applicable stage in order.

        Returns:
            The run report, with a top-level ``success`` boolean.  Fatal
            errors are reported, not raised; the exception is kept on
            :attr:`error`.
        """
        if self.state is not PipelineState.INIT:
            raise RuntimeError("A Pipeline can only be run once")

        started = time.monotonic()
        identity = self.request.identity
        console.print(
            Panel(
                f"[bold bright_cyan]servicegen[/bold bright_cyan]\n"
                f"Project    : {identity.group_id}:{identity.artifact_id}\n"
                f"Build tool : {identity.build_tool.value}\n"
                f"Runtime    : {identity.runtime.value}\n"
                f"Invoked in : {self.request.invocation_dir.resolve()}",
                title="[bold]Generation Start[/bold]",
                border_style="bright_cyan",
            )
        )

        plan = [
            (PipelineState.SKELETON, self._stage_skeleton, True),
            (PipelineState.API_STUBS, self._stage_api_stubs, self.request.api_spec is not None),
            (PipelineState.DB_STAGE, self._stage_database, self.request.credentials is not None),
            (PipelineState.CLEANUP, self._stage_cleanup, self.request.credentials is not None),
        ]

        for stage, method, applicable in plan:
            if not applicable:
                self.report["stages_skipped"].append(stage.value)
                continue

            self._transition(stage)
            print_stage_header(stage.value)
            stage_start = time.monotonic()
            try:
                result = await method()
            except StageError as exc:
                self._fail(stage, exc, stage_start)
                break
            except Exception as exc:
                self._fail(stage, exc, stage_start)
                console.print(f"[dim]{traceback.format_exc()}[/dim]")
                break

            self.report[stage.value.lower()] = result
            self.report["stages_completed"].append(stage.value)
            print_success(
                f"{stage.value} completed in {format_duration(time.monotonic() - stage_start)}"
            )
        else:
            self._transition(PipelineState.DONE)

        total_elapsed = time.monotonic() - started
        self.report["success"] = self.state is PipelineState.DONE
        self.report["total_duration"] = format_duration(total_elapsed)
        self._print_final_summary()
        return self.report

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _stage_skeleton(self) -> dict[str, Any]:
        identity = self.request.identity
        project_root = working_directory_for(self.request)
        try:
            project_root.mkdir(parents=True, exist_ok=False)
        except OSError as exc:
            raise SkeletonError(f"Cannot create working directory {project_root}: {exc}") from exc

        self.context = GenerationContext(
            request=self.request,
            project_root=project_root,
            metadata_filename=self.settings.metadata_filename,
        )
        self.report["project_path"] = str(project_root)

        generator = skeleton_generator_for(identity.build_tool, self.renderer, self.settings)
        written = await generator.generate(identity, project_root)
        console.print(f"  [dim]{len(written)} skeleton file(s) written[/dim]")
        return {"files": len(written)}

    async def _stage_api_stubs(self) -> dict[str, Any]:
        ctx = self._require_context()
        written = await self.api_stub_generator.generate(
            self.request.api_spec,
            self.request.identity.package_root,
            ctx.project_root,
        )
        return {"spec": self.request.api_spec, "files": len(written)}

    async def _stage_database(self) -> dict[str, Any]:
        """Introspect, hand the metadata over through the file, then baseline.

        The steps share one database and never overlap.
        """
        ctx = self._require_context()
        credentials = self.request.credentials
        identity = self.request.identity

        result = await self.introspector.introspect(
            credentials, identity.package_root, ctx.project_root
        )
        for table in result.skipped_tables:
            self._warn(f"Table {table} has no primary key; repository skipped")
        for table, reason in result.failures.items():
            self._warn(f"Entity for {table} not generated: {reason}")
        self.report["entities"] = len(result.metadata)

        await metadata_file.flush(result.metadata, ctx.metadata_path)
        try:
            repositories = await self.repository_generator.generate_from_file(
                ctx.metadata_path, identity, ctx.project_root
            )
        finally:
            metadata_file.discard(ctx.metadata_path)

        self.report["repositories"] = repositories.to_dict()
        for table, reason in repositories.failures.items():
            self._warn(f"Repository for {table} not generated: {reason}")

        baseline = await self.baseline_generator.generate(credentials, ctx.project_root)

        print_summary_table(
            {
                "Entities": str(len(result.written)),
                "Repositories": str(repositories.success_count),
                "Repository failures": str(repositories.failure_count),
                "Tables without primary key": str(len(result.skipped_tables)),
            },
            title="Database Stage",
        )
        return {
            "entities": len(result.written),
            "metadata_records": len(result.metadata),
            "skipped_tables": list(result.skipped_tables),
            "repositories": repositories.success_count,
            "repository_failures": repositories.failure_count,
            "baseline": str(baseline),
        }

    async def _stage_cleanup(self) -> dict[str, Any]:
        ctx = self._require_context()
        removed = metadata_file.discard(ctx.metadata_path)
        if ctx.metadata_path.exists():
            self._warn(f"Could not remove transient file {ctx.metadata_path}")
        return {"metadata_removed": removed}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _transition(self, state: PipelineState) -> None:
        self.state = state
        self.report["state"] = state.value
        self.report["transitions"].append(state.value)

    def _fail(self, stage: PipelineState, exc: Exception, stage_start: float) -> None:
        self.error = PipelineError(stage.value, exc)
        self.report["failed_stage"] = stage.value
        self.report["error"] = str(self.error)
        self._transition(PipelineState.FAILED)
        print_error(
            f"{stage.value} FAILED after "
            f"{format_duration(time.monotonic() - stage_start)}: {exc}"
        )

    def _warn(self, message: str) -> None:
        self.report["warnings"].append(message)

    def _require_context(self) -> GenerationContext:
        if self.context is None:
            raise RuntimeError("Working directory has not been created")
        return self.context

    def _print_final_summary(self) -> None:
        """Print the final run summary panel."""
        if self.report["success"]:
            border_style = "bold green"
            status_text = "[bold green]GENERATION SUCCEEDED[/bold green]"
        else:
            border_style = "bold red"
            status_text = "[bold red]GENERATION FAILED[/bold red]"

        detail_lines = [
            status_text,
            "",
            f"Duration  : {self.report.get('total_duration', 'N/A')}",
            f"Completed : {', '.join(self.report['stages_completed']) or 'none'}",
            f"Skipped   : {', '.join(self.report['stages_skipped']) or 'none'}",
        ]
        if self.report["failed_stage"]:
            detail_lines.append(f"Failed    : {self.report['failed_stage']}")
        if self.report["warnings"]:
            detail_lines.append(f"Warnings  : {len(self.report['warnings'])}")
            for warning in self.report["warnings"]:
                print_warning(f"  {warning}")
        detail_lines.extend([
            "",
            f"Output    : {self.report['project_path'] or '(not created)'}",
        ])

        console.print()
        console.print(
            Panel(
                "\n".join(detail_lines),
                title="[bold]Generation Complete[/bold]",
                border_style=border_style,
            )
        )
