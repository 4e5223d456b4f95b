"""Command-line entry point for ``servicegen``.

Every option is optional.  Values not given on the command line are asked for
interactively, unless ``--no-input`` is passed or stdin is not a terminal, in
which case the defaults are used.

Exit codes: 0 on success, 1 when a stage fails, 2 on invalid input.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from rich.prompt import Prompt

from servicegen.config import BuildTool, GenerationRequest, GeneratorSettings, ProjectIdentity, Runtime
from servicegen.errors import ConfigurationError
from servicegen.pipeline import Pipeline
from servicegen.utils import console

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

_DEFAULTS = ProjectIdentity()


@dataclass(frozen=True)
class _Option:
    dest: str
    help: str
    default: Optional[str] = None
    choices: Optional[list[str]] = None
    password: bool = False


IDENTITY_OPTIONS: list[_Option] = [
    _Option("build_tool", "Build tool", _DEFAULTS.build_tool.value, [b.value for b in BuildTool]),
    _Option("group_id", "Group id", _DEFAULTS.group_id),
    _Option("artifact_id", "Artifact id", _DEFAULTS.artifact_id),
    _Option("name", "Project name", _DEFAULTS.name),
    _Option("description", "Project description", _DEFAULTS.description),
    _Option("package_name", "Root package", _DEFAULTS.package_root),
    _Option("language_version", "Java version", _DEFAULTS.language_version),
    _Option("runtime", "Deployment runtime", _DEFAULTS.runtime.value, [r.value for r in Runtime]),
]

OPTIONAL_OPTIONS: list[_Option] = [
    _Option("api_spec_path", "OpenAPI document path or URL (blank to skip)"),
    _Option("db_url", "Database URL (blank to skip the database stage)"),
    _Option("db_username", "Database username"),
    _Option("db_password", "Database password", password=True),
]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicegen",
        description="servicegen -- scaffold a Spring Boot service project",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  servicegen --build-tool MAVEN --artifact-id orders --no-input\n"
            "  servicegen --api-spec-path api.yaml \\\n"
            "             --db-url jdbc:postgresql://localhost:5432/orders \\\n"
            "             --db-username app --db-password secret\n"
        ),
    )
    for option in IDENTITY_OPTIONS + OPTIONAL_OPTIONS:
        flag = "--" + option.dest.replace("_", "-")
        help_text = option.help
        if option.default is not None:
            help_text += f" (default: {option.default})"
        parser.add_argument(
            flag,
            dest=option.dest,
            default=None,
            type=str.upper if option.choices else str,
            choices=option.choices,
            help=help_text,
        )
    parser.add_argument(
        "--output-dir",
        dest="invocation_dir",
        default=None,
        help="Directory the project directory is created in (default: current directory)",
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        help="Never prompt; use defaults for missing values",
    )
    return parser


def collect_inputs(args: argparse.Namespace, interactive: bool) -> dict[str, Any]:
    """Merge command-line values with prompted ones.

    Database username and password are only asked for once a URL is known.
    """
    values: dict[str, Any] = {"invocation_dir": args.invocation_dir}

    for option in IDENTITY_OPTIONS:
        value = getattr(args, option.dest)
        if value is None and interactive:
            value = Prompt.ask(option.help, default=option.default, choices=option.choices)
        values[option.dest] = value

    for option in OPTIONAL_OPTIONS:
        value = getattr(args, option.dest)
        if value is None and interactive:
            if option.dest in ("db_username", "db_password") and not values.get("db_url"):
                value = None
            else:
                value = Prompt.ask(option.help, default="", password=option.password) or None
        values[option.dest] = value

    return values


def run(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, run the pipeline and return the exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    interactive = not args.no_input and sys.stdin.isatty()

    try:
        values = collect_inputs(args, interactive)
        request = GenerationRequest.from_inputs(values)
        settings = GeneratorSettings.from_env()
    except (ConfigurationError, ValueError) as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        return EXIT_CONFIG

    pipeline = Pipeline(request, settings)
    report = asyncio.run(pipeline.run())

    if report.get("success"):
        console.print(
            f"[bold green]Project generated in {report['project_path']}[/bold green]"
        )
        return EXIT_OK

    console.print(f"[bold red]Generation failed:[/bold red] {report.get('error')}")
    if pipeline.error is not None and isinstance(pipeline.error.cause, ConfigurationError):
        return EXIT_CONFIG
    return EXIT_FAILED


def main() -> None:
    """CLI entry point for ``servicegen`` / ``python -m servicegen``."""
    sys.exit(run())


if __name__ == "__main__":
    main()
