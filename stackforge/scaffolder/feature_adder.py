"""Retrofitting a feature onto an existing project.

``FeatureAdder.add`` copies one provider fragment (auth or mailing) into a
project without overwriting anything already there, folds the fragment's
dependencies into the project manifest and records the feature in the
project's ``.stackrc``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from stackforge.config import AuthProvider, MailingProvider, Settings
from stackforge.merge import Manifest, merge_dependency_sections
from stackforge.stack_config import (
    StackConfigurationRecord,
    read_stack_record,
    write_stack_record,
)
from stackforge.utils import load_json, save_json

from .catalog import (
    MANIFEST_FILE,
    FeatureCategory,
    TemplateCatalog,
    TemplateNotFoundError,
    provider_for_template,
)
from .overlay import CopyReport, TemplateOverlayCopier
from .resolver import FeatureResolver, Resolution, Signal, TemplateSelection, signal_for

SUPPORTED_PROVIDERS: dict[FeatureCategory, tuple[str, ...]] = {
    FeatureCategory.AUTH: tuple(p.value for p in AuthProvider),
    FeatureCategory.MAILING: tuple(p.value for p in MailingProvider),
}


@dataclass
class FeatureAdditionResult:
    """Outcome of adding one feature to a project."""

    success: bool
    feature: str
    provider: str | None = None
    resolution: Resolution | None = None
    copy: CopyReport | None = None
    state_file: Path | None = None
    signals: list[Signal] = field(default_factory=list)
    error: str | None = None

    @classmethod
    def failed(cls, feature: str, error: str, provider: str | None = None) -> "FeatureAdditionResult":
        return cls(success=False, feature=feature, provider=provider, error=error)


def normalize_feature(feature: str, provider: str | None = None) -> tuple[FeatureCategory, str | None]:
    """Map ``feature``/``provider`` arguments to a category and provider.

    A provider name may be given in place of the category, so ``nextauth``
    means ``auth`` with the ``nextauth`` provider.

    Raises:
        ValueError: The feature or provider is not supported, or a provider
            name given as the feature conflicts with *provider*.
    """
    name = feature.strip().lower()
    if provider is not None:
        provider = provider.strip().lower()
    for category, providers in SUPPORTED_PROVIDERS.items():
        if name in providers:
            if provider is not None and provider != name:
                raise ValueError(
                    f"Conflicting {category.value} providers: {name} and {provider}"
                )
            return category, name

    try:
        category = FeatureCategory(name)
    except ValueError:
        raise ValueError(f"Unsupported feature: {feature}") from None
    if category not in SUPPORTED_PROVIDERS:
        raise ValueError(f"Unsupported feature: {feature}")

    if provider is not None and provider not in SUPPORTED_PROVIDERS[category]:
        raise ValueError(f"Unsupported {category.value} provider: {provider}")
    return category, provider


class FeatureAdder:
    """Adds auth or mailing support to an already generated project."""

    def __init__(self, catalog: TemplateCatalog, settings: Settings | None = None) -> None:
        self.catalog = catalog
        self.settings = settings or Settings()
        self.resolver = FeatureResolver(catalog)
        self.copier = TemplateOverlayCopier()

    async def add(
        self, project_dir: str | Path, feature: str, provider: str | None = None
    ) -> FeatureAdditionResult:
        """Add *feature* (optionally with *provider*) to *project_dir*.

        Unsupported features or providers, a missing project directory and a
        missing fallback template produce a failed result; the project is
        left untouched in each case.
        """
        project_path = Path(project_dir)
        try:
            category, requested = normalize_feature(feature, provider)
        except ValueError as exc:
            return FeatureAdditionResult.failed(feature, str(exc), provider)

        if not await asyncio.to_thread(project_path.is_dir):
            return FeatureAdditionResult.failed(
                feature, f"Project directory not found: {project_path}", provider
            )

        try:
            resolution = self.resolver.resolve_feature(category, requested)
        except TemplateNotFoundError as exc:
            return FeatureAdditionResult.failed(feature, str(exc), provider)

        used = provider_for_template(category, resolution.template)
        result = FeatureAdditionResult(
            success=True, feature=category.value, provider=used, resolution=resolution
        )
        signal = signal_for(resolution)
        if signal is not None:
            result.signals.append(signal)

        fragment = TemplateSelection(
            category, resolution.template, self.catalog.path(resolution.template)
        )
        result.copy = await self.copier.copy_fragment(
            fragment, project_path, overwrite=False, exclude=(MANIFEST_FILE,)
        )
        await self._merge_dependencies(fragment, project_path)
        result.state_file = await self._update_record(project_path, category, used, result)
        return result

    # -- Internal helpers --------------------------------------------------

    async def _merge_dependencies(self, fragment: TemplateSelection, project_dir: Path) -> None:
        target = project_dir / MANIFEST_FILE
        if await asyncio.to_thread(target.exists):
            project_manifest = Manifest.from_dict(await asyncio.to_thread(load_json, target))
        else:
            project_manifest = Manifest()

        source = fragment.path / MANIFEST_FILE
        if await asyncio.to_thread(source.exists):
            incoming = Manifest.from_dict(await asyncio.to_thread(load_json, source))
            project_manifest = merge_dependency_sections(project_manifest, incoming)

        await save_json(project_manifest.to_dict(), target)

    async def _update_record(
        self,
        project_dir: Path,
        category: FeatureCategory,
        provider: str,
        result: FeatureAdditionResult,
    ) -> Path:
        path = self.settings.state_path(project_dir)
        record: StackConfigurationRecord | None = None
        if await asyncio.to_thread(path.exists):
            record, errors = await asyncio.to_thread(read_stack_record, path)
            if record is None:
                result.signals.append(
                    Signal(
                        "warning",
                        f"Could not read {path.name} ({'; '.join(errors)}); writing a new one",
                    )
                )

        data = record.to_json_dict() if record is not None else {"features": {}}
        features = dict(data.get("features") or {})
        features[category.value] = True
        features[f"{category.value}Provider"] = provider
        data["features"] = features
        if record is not None and record.has_configuration:
            data[category.value] = True
            data[f"{category.value}Provider"] = provider
        data["lastUpdated"] = datetime.now(timezone.utc).isoformat()

        updated = StackConfigurationRecord.model_validate(data)
        return await asyncio.to_thread(write_stack_record, updated, path)
