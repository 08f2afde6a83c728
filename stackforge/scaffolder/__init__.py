"""stackforge scaffolder -- composes projects from template fragments.

This package resolves which fragments a ``ProjectConfiguration`` needs,
overlays them onto a new project directory, merges their ``package.json``,
``tsconfig.json`` and ``.env`` files, substitutes template variables and
records the configuration in ``.stackrc``.

Quick usage::

    from stackforge.config import ProjectConfiguration
    from stackforge.scaffolder import ProjectGenerator

    config = ProjectConfiguration(
        name="demo",
        databaseType="postgresql",
        orm="drizzle",
        auth=True,
        ui="shadcn",
    )
    result = await ProjectGenerator(config).generate("/tmp/output")
"""

from stackforge.scaffolder.catalog import (
    DirectoryNotEmptyError,
    ScaffoldError,
    TemplateCatalog,
    TemplateNotFoundError,
)
from stackforge.scaffolder.feature_adder import FeatureAdder, FeatureAdditionResult
from stackforge.scaffolder.generator import ProjectGenerator, ScaffoldResult
from stackforge.scaffolder.resolver import (
    Fallback,
    FeatureResolver,
    ResolvedTemplateOrder,
    Resolved,
    Signal,
    Skipped,
)
from stackforge.scaffolder.templates import TemplateRenderer

__all__ = [
    "DirectoryNotEmptyError",
    "Fallback",
    "FeatureAdder",
    "FeatureAdditionResult",
    "FeatureResolver",
    "ProjectGenerator",
    "ResolvedTemplateOrder",
    "Resolved",
    "ScaffoldError",
    "ScaffoldResult",
    "Signal",
    "Skipped",
    "TemplateCatalog",
    "TemplateNotFoundError",
    "TemplateRenderer",
]
