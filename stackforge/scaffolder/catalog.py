"""Template catalog lookup and scaffolding error types.

A catalog is a directory whose immediate sub-directories are template
fragments (``base``, ``drizzle``, ``nextauth``, ``mailing-resend``, ...).
Fragments are read-only inputs: nothing in stackforge writes into them.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

MANIFEST_FILE = "package.json"
TYPE_CONFIG_FILE = "tsconfig.json"
ENV_FILE = ".env"
README_FILE = "README.md"

# Never copied verbatim from a non-base fragment; handled by the mergers.
RESERVED_FILES: frozenset[str] = frozenset((MANIFEST_FILE, TYPE_CONFIG_FILE, ENV_FILE))

BASE_TEMPLATE = "base"


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ScaffoldError(Exception):
    """Base class for fatal scaffolding failures."""


class DirectoryNotEmptyError(ScaffoldError):
    """Raised when the destination of a new project already has content."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        super().__init__(
            f"Directory {self.path} is not empty. "
            "Please choose a different name or clear the directory."
        )


class TemplateNotFoundError(ScaffoldError):
    """Raised when a required template fragment is missing from the catalog."""

    def __init__(self, template: str, path: Path) -> None:
        self.template = template
        self.path = Path(path)
        super().__init__(f"Template '{template}' not found at {self.path}")


# ---------------------------------------------------------------------------
# Feature categories
# ---------------------------------------------------------------------------


class FeatureCategory(str, Enum):
    """Fragment categories, declared in resolution order."""

    BASE = "base"
    ORM = "orm"
    AUTH = "auth"
    BAAS = "baas"
    MAILING = "mailing"
    UI = "ui"


def mailing_template_name(provider: str) -> str:
    """Nodemailer lives in ``mailing``; other providers in ``mailing-<provider>``."""
    return "mailing" if provider == "nodemailer" else f"mailing-{provider}"


def provider_for_template(category: FeatureCategory, template: str) -> str:
    """Inverse of the template naming rules for provider categories."""
    if category is FeatureCategory.MAILING:
        if template == "mailing":
            return "nodemailer"
        return template.removeprefix("mailing-")
    return template


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class TemplateCatalog:
    """Maps template names to fragment directories under a root directory."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return self.path(name).is_dir()

    def require(self, name: str) -> Path:
        """Return the fragment path or raise :class:`TemplateNotFoundError`."""
        path = self.path(name)
        if not path.is_dir():
            raise TemplateNotFoundError(name, path)
        return path

    def names(self) -> list[str]:
        """Sorted names of every fragment in the catalog."""
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def __repr__(self) -> str:
        return f"TemplateCatalog({str(self.root)!r})"
