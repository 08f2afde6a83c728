"""Main scaffolding orchestrator.

Takes a ``ProjectConfiguration`` and composes a new project directory from
the template catalog: resolve fragments, overlay them, merge the structured
files, substitute variables, persist the stack configuration and optionally
install dependencies.  Each step completes before the next one starts.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from stackforge.config import PackageManager, ProjectConfiguration, Settings
from stackforge.stack_config import save_stack_config

from .catalog import TemplateCatalog
from .config_merge import ConfigFileMerger
from .env_merge import EnvironmentMerger
from .installer import InstallResult, install_dependencies
from .overlay import CopyReport, TemplateOverlayCopier
from .resolver import FeatureResolver, ResolvedTemplateOrder, Signal
from .templates import SubstitutionReport, TemplateRenderer, build_render_context


@dataclass
class ScaffoldResult:
    """Everything a creation run produced."""

    project_dir: Path
    order: ResolvedTemplateOrder
    copies: list[CopyReport] = field(default_factory=list)
    merged_files: list[Path] = field(default_factory=list)
    substitution: SubstitutionReport = field(default_factory=SubstitutionReport)
    state_file: Path | None = None
    install: InstallResult | None = None
    signals: list[Signal] = field(default_factory=list)

    @property
    def fragment_names(self) -> list[str]:
        return self.order.names


class ProjectGenerator:
    """Creates a project from a configuration and a template catalog.

    Given a ``ProjectConfiguration``, produces a directory containing:
    - the base fragment plus every resolved feature fragment
    - a single merged ``package.json`` / ``tsconfig.json``
    - a single merged ``.env``
    - a ``.stackrc`` file that can replay the run
    """

    def __init__(
        self,
        config: ProjectConfiguration,
        settings: Settings | None = None,
        catalog: TemplateCatalog | None = None,
    ) -> None:
        self.config = config
        self.settings = settings or Settings()
        self.catalog = catalog or TemplateCatalog(self.settings.templates_dir)
        self.resolver = FeatureResolver(self.catalog)
        self.copier = TemplateOverlayCopier()
        self.config_merger = ConfigFileMerger()
        self.env_merger = EnvironmentMerger()
        self.renderer = TemplateRenderer(self.settings.placeholder_policy)

    # -- Public API --------------------------------------------------------

    async def generate(self, output_dir: str | Path) -> ScaffoldResult:
        """Generate the project inside *output_dir*.

        Args:
            output_dir: Parent directory; a sub-directory named after the
                project is created inside it.

        Returns:
            A ``ScaffoldResult`` describing the run.

        Raises:
            TemplateNotFoundError: A required fragment is missing.
            DirectoryNotEmptyError: The project directory already has content.
        """
        project_dir = Path(output_dir) / self.config.name

        # 1. Decide which fragments apply
        order = self.resolver.resolve(self.config)
        result = ScaffoldResult(project_dir=project_dir, order=order)
        result.signals.extend(order.signals())

        # 2. Overlay the fragment trees
        result.copies = await self.copier.copy_all(order, project_dir)

        # 3. Merge the structured files and the environment file
        result.merged_files = await self.config_merger.merge_all(order, project_dir)
        result.merged_files.append(await self.env_merger.merge(order, project_dir))

        # 4. Substitute template variables
        context = build_render_context(self.config, now=datetime.now(timezone.utc))
        result.substitution = await self.renderer.render_project(project_dir, context)
        for filename, names in result.substitution.unresolved.items():
            result.signals.append(
                Signal("warning", f"Unresolved placeholders in {filename}: {', '.join(names)}")
            )
        for filename, reason in result.substitution.skipped.items():
            result.signals.append(
                Signal("warning", f"Left {filename} unchanged, it is not a valid template ({reason})")
            )

        # 5. Persist the configuration for replay
        result.state_file = await asyncio.to_thread(
            save_stack_config,
            self.config.with_defaults(),
            project_dir,
            file_name=self.settings.state_file_name,
        )

        # 6. Install dependencies (advisory)
        if self.config.install_deps:
            result.install = await install_dependencies(
                project_dir,
                self.config.package_manager or PackageManager.NPM,
                timeout=self.settings.install_timeout,
            )
            if not result.install.success:
                result.signals.append(
                    Signal(
                        "warning",
                        f"{result.install.message} "
                        f"You can install them manually with: {result.install.remediation}",
                    )
                )

        return result
