"""Feature resolution: which template fragments apply, and in what order.

Given a ``ProjectConfiguration`` the resolver produces a
``ResolvedTemplateOrder``: the base fragment first, followed by at most one
fragment per category in the fixed order orm -> auth -> baas -> mailing -> ui.

Provider categories degrade gracefully.  Every requested category yields one
tagged outcome:

* ``Resolved`` -- the requested fragment exists and was selected.
* ``Fallback`` -- the requested provider has no fragment; the default
  provider's fragment was selected instead.
* ``Skipped``  -- an optional fragment (BaaS) is missing and was left out.

Missing base, ORM and UI fragments are fatal (``TemplateNotFoundError``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from stackforge.config import (
    DEFAULT_AUTH_PROVIDER,
    DEFAULT_MAILING_PROVIDER,
    ORM,
    BaaS,
    ProjectConfiguration,
    UILibrary,
)

from .catalog import (
    BASE_TEMPLATE,
    FeatureCategory,
    TemplateCatalog,
    mailing_template_name,
)


# ---------------------------------------------------------------------------
# Resolution outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resolved:
    category: FeatureCategory
    provider: str
    template: str


@dataclass(frozen=True)
class Fallback:
    category: FeatureCategory
    requested: str
    used: str
    template: str


@dataclass(frozen=True)
class Skipped:
    category: FeatureCategory
    requested: str
    reason: str


Resolution = Resolved | Fallback | Skipped


@dataclass(frozen=True)
class Signal:
    """A non-fatal event surfaced to the caller (fallback, skip, advisory)."""

    level: Literal["info", "warning", "error"]
    message: str


def signal_for(resolution: Resolution) -> Signal | None:
    """Translate a resolution outcome into a user-facing signal, if any."""
    if isinstance(resolution, Fallback):
        return Signal(
            "info",
            f"{resolution.requested} {resolution.category.value} template not available yet; "
            f"using {resolution.used} instead",
        )
    if isinstance(resolution, Skipped):
        return Signal(
            "warning",
            f"{resolution.requested} template not found, skipping "
            f"{resolution.category.value} setup ({resolution.reason})",
        )
    return None


# ---------------------------------------------------------------------------
# Resolved order
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TemplateSelection:
    """One fragment chosen for composition."""

    category: FeatureCategory
    name: str
    path: Path

    @property
    def is_base(self) -> bool:
        return self.category is FeatureCategory.BASE


@dataclass
class ResolvedTemplateOrder:
    """Ordered fragments plus the outcome of every requested category."""

    fragments: list[TemplateSelection] = field(default_factory=list)
    resolutions: list[Resolution] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fragments]

    @property
    def overlays(self) -> list[TemplateSelection]:
        """Every fragment after the base, in resolution order."""
        return self.fragments[1:]

    def signals(self) -> list[Signal]:
        return [s for s in (signal_for(r) for r in self.resolutions) if s is not None]


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class FeatureResolver:
    """Maps configurations (or single features) to template fragments."""

    def __init__(self, catalog: TemplateCatalog) -> None:
        self.catalog = catalog

    # -- Public API --------------------------------------------------------

    def resolve(self, config: ProjectConfiguration) -> ResolvedTemplateOrder:
        """Resolve the full, ordered fragment list for *config*."""
        order = ResolvedTemplateOrder()
        self._select(order, FeatureCategory.BASE, BASE_TEMPLATE)

        if config.has_database and config.orm is not ORM.NONE:
            self._select(order, FeatureCategory.ORM, config.orm.value)

        auth_provider = config.effective_auth_provider
        if auth_provider is not None:
            self._add(order, self.resolve_feature(FeatureCategory.AUTH, auth_provider.value))

        if config.baas is not BaaS.NONE:
            self._add(order, self._resolve_optional(FeatureCategory.BAAS, config.baas.value))

        mailing_provider = config.effective_mailing_provider
        if mailing_provider is not None:
            self._add(
                order, self.resolve_feature(FeatureCategory.MAILING, mailing_provider.value)
            )

        if config.ui is not UILibrary.NONE:
            self._select(order, FeatureCategory.UI, config.ui.value)

        return order

    def resolve_feature(self, category: FeatureCategory, provider: str | None = None) -> Resolution:
        """Resolve one provider category (auth or mailing) with fallback."""
        if category is FeatureCategory.AUTH:
            default = DEFAULT_AUTH_PROVIDER.value
            to_template = _identity
        elif category is FeatureCategory.MAILING:
            default = DEFAULT_MAILING_PROVIDER.value
            to_template = mailing_template_name
        else:
            raise ValueError(f"{category.value} has no providers to resolve")

        requested = provider or default
        template = to_template(requested)
        if self.catalog.exists(template):
            return Resolved(category, requested, template)

        fallback_template = to_template(default)
        self.catalog.require(fallback_template)
        return Fallback(category, requested, default, fallback_template)

    # -- Internal helpers --------------------------------------------------

    def _resolve_optional(self, category: FeatureCategory, name: str) -> Resolution:
        if self.catalog.exists(name):
            return Resolved(category, name, name)
        return Skipped(category, name, f"no template at {self.catalog.path(name)}")

    def _select(self, order: ResolvedTemplateOrder, category: FeatureCategory, name: str) -> None:
        self.catalog.require(name)
        self._add(order, Resolved(category, name, name))

    def _add(self, order: ResolvedTemplateOrder, resolution: Resolution) -> None:
        order.resolutions.append(resolution)
        if isinstance(resolution, Skipped):
            return
        order.fragments.append(
            TemplateSelection(
                resolution.category,
                resolution.template,
                self.catalog.path(resolution.template),
            )
        )


def _identity(name: str) -> str:
    return name
