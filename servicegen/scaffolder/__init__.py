"""Project scaffolding: template rendering, skeleton and API stub generation.

Quick usage::

    from servicegen.scaffolder import TemplateRenderer, skeleton_generator_for

    renderer = TemplateRenderer()
    generator = skeleton_generator_for(identity.build_tool, renderer)
    written = await generator.generate(identity, project_root)
"""

from servicegen.scaffolder.api_stubs import ApiStubGenerator, OpenApiGeneratorConfig
from servicegen.scaffolder.skeleton import (
    SKELETON_GENERATORS,
    SkeletonGenerator,
    skeleton_generator_for,
)
from servicegen.scaffolder.templates import TemplateRenderer

__all__ = [
    "ApiStubGenerator",
    "OpenApiGeneratorConfig",
    "SKELETON_GENERATORS",
    "SkeletonGenerator",
    "TemplateRenderer",
    "skeleton_generator_for",
]
