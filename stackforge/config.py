"""stackforge configuration.

Two families of typed models live here:

* ``ProjectConfiguration`` -- the validated, immutable record of the user's
  stack choices (UI library, database, ORM, auth, mailing, ...).  It is built
  once per run from CLI flags, interactive prompts, or a ``.stackrc`` file and
  is never mutated afterwards.
* ``Settings`` -- tool-level knobs (template catalog location, state file
  name, placeholder policy, remote template source) that can be read from
  environment variables.

All models use Pydantic v2 so they are validated at construction time and
serialise to/from JSON without boiler-plate.
"""

from __future__ import annotations

import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


_PACKAGE_TEMPLATES_DIR = Path(__file__).parent / "templates"


# ---------------------------------------------------------------------------
# Choice enums
# ---------------------------------------------------------------------------


class UILibrary(str, Enum):
    NONE = "none"
    SHADCN = "shadcn"
    CHAKRA = "chakra"
    MANTINE = "mantine"
    NEXTUI = "nextui"


class DatabaseType(str, Enum):
    NONE = "none"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    SQLITE = "sqlite"


class ORM(str, Enum):
    NONE = "none"
    PRISMA = "prisma"
    DRIZZLE = "drizzle"


class BaaS(str, Enum):
    NONE = "none"
    SUPABASE = "supabase"


class AuthProvider(str, Enum):
    NEXTAUTH = "nextauth"
    LUCIA = "lucia"
    CLERK = "clerk"


class MailingProvider(str, Enum):
    NODEMAILER = "nodemailer"
    RESEND = "resend"
    SENDGRID = "sendgrid"
    POSTMARK = "postmark"


class PackageManager(str, Enum):
    NPM = "npm"
    PNPM = "pnpm"
    YARN = "yarn"
    BUN = "bun"


DEFAULT_AUTH_PROVIDER = AuthProvider.NEXTAUTH
DEFAULT_MAILING_PROVIDER = MailingProvider.NODEMAILER

# Provider choices offered per database type (first entry is the default).
DATABASE_PROVIDERS: dict[DatabaseType, list[str]] = {
    DatabaseType.POSTGRESQL: [
        "default", "neon", "vercel", "supabase", "xata", "pglite", "nile", "bun-sql",
    ],
    DatabaseType.MYSQL: ["default", "planetscale", "tidb", "singlestore"],
    DatabaseType.SQLITE: [
        "default", "turso", "cloudflare-d1", "bun-sqlite", "native", "expo", "op",
    ],
}


# ---------------------------------------------------------------------------
# Project configuration
# ---------------------------------------------------------------------------


class ProjectConfiguration(BaseModel):
    """The user's stack choices for one project.

    Field names are snake_case in Python and camelCase on the wire (the
    ``.stackrc`` format); both spellings are accepted on input.  Sub-choices
    whose parent toggle is off are dropped during validation, so an instance
    never carries, say, an ``auth_provider`` while ``auth`` is false.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(..., min_length=1, description="Project (and directory) name")
    ui: UILibrary = Field(default=UILibrary.NONE)
    database_type: DatabaseType = Field(default=DatabaseType.NONE, alias="databaseType")
    database_provider: str = Field(default="none", alias="databaseProvider")
    orm: ORM = Field(default=ORM.NONE)
    baas: BaaS = Field(default=BaaS.NONE)
    auth: bool = Field(default=False)
    auth_provider: Optional[AuthProvider] = Field(default=None, alias="authProvider")
    mailing: bool = Field(default=False)
    mailing_provider: Optional[MailingProvider] = Field(default=None, alias="mailingProvider")
    install_deps: bool = Field(default=False, alias="installDeps")
    package_manager: Optional[PackageManager] = Field(default=None, alias="packageManager")

    @model_validator(mode="before")
    @classmethod
    def _drop_orphaned_choices(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        def _get(snake: str, camel: str) -> Any:
            return data.get(snake, data.get(camel))

        def _drop(snake: str, camel: str) -> None:
            data.pop(snake, None)
            data.pop(camel, None)

        if not _get("auth", "auth"):
            _drop("auth_provider", "authProvider")
        if not _get("mailing", "mailing"):
            _drop("mailing_provider", "mailingProvider")
        db_type = _get("database_type", "databaseType")
        if db_type in (None, DatabaseType.NONE, DatabaseType.NONE.value):
            _drop("orm", "orm")
        return data

    # -- Derived values ----------------------------------------------------

    @property
    def effective_auth_provider(self) -> AuthProvider | None:
        """The auth provider actually requested (defaulted when auth is on)."""
        if not self.auth:
            return None
        return self.auth_provider or DEFAULT_AUTH_PROVIDER

    @property
    def effective_mailing_provider(self) -> MailingProvider | None:
        """The mailing provider actually requested (defaulted when mailing is on)."""
        if not self.mailing:
            return None
        return self.mailing_provider or DEFAULT_MAILING_PROVIDER

    @property
    def has_database(self) -> bool:
        return self.database_type is not DatabaseType.NONE

    def with_defaults(self) -> "ProjectConfiguration":
        """Return a copy with implicit provider defaults made explicit."""
        return self.model_copy(
            update={
                "auth_provider": self.effective_auth_provider,
                "mailing_provider": self.effective_mailing_provider,
            }
        )

    def to_stack_dict(self) -> dict[str, Any]:
        """Serialise to the camelCase mapping stored in ``.stackrc``."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def features_summary(self) -> dict[str, Any]:
        """Compact feature overview stored under ``features`` in ``.stackrc``."""
        summary: dict[str, Any] = {
            "databaseType": self.database_type.value,
            "databaseProvider": self.database_provider,
            "orm": self.orm.value,
            "baas": self.baas.value,
            "ui": self.ui.value,
            "auth": self.auth,
            "mailing": self.mailing,
        }
        if self.effective_auth_provider is not None:
            summary["authProvider"] = self.effective_auth_provider.value
        if self.effective_mailing_provider is not None:
            summary["mailingProvider"] = self.effective_mailing_provider.value
        return summary


# ---------------------------------------------------------------------------
# Tool settings
# ---------------------------------------------------------------------------


PlaceholderPolicy = Literal["keep", "empty"]


class RemoteConfig(BaseModel):
    """Where remote templates come from and how long they stay cached."""

    repository: Optional[str] = Field(
        default=None, description="GitHub repository as 'owner/name'"
    )
    branch: str = Field(default="main")
    cache_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "stackforge-templates"
    )
    cache_ttl: int = Field(default=24 * 60 * 60, ge=0, description="Cache lifetime in seconds")


class Settings(BaseModel):
    """Global stackforge settings.

    Instances are typically created once by the CLI entry point (usually via
    :meth:`from_env`) and passed to the scaffolder components.
    """

    templates_dir: Path = Field(default=_PACKAGE_TEMPLATES_DIR)
    state_file_name: str = Field(default=".stackrc", min_length=1)
    placeholder_policy: PlaceholderPolicy = Field(
        default="keep",
        description="What to render for unknown placeholders: the literal tag or ''",
    )
    install_timeout: int = Field(default=900, ge=10, description="Dependency install timeout in seconds")
    remote: RemoteConfig = Field(default_factory=RemoteConfig)

    def state_path(self, project_dir: Path) -> Path:
        """Path of the persisted stack configuration inside *project_dir*."""
        return Path(project_dir) / self.state_file_name

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            STACKFORGE_TEMPLATES_DIR, STACKFORGE_STATE_FILE,
            STACKFORGE_PLACEHOLDERS, STACKFORGE_INSTALL_TIMEOUT,
            STACKFORGE_REMOTE_REPO, STACKFORGE_REMOTE_BRANCH,
            STACKFORGE_CACHE_DIR, STACKFORGE_CACHE_TTL.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["STACKFORGE_TEMPLATES_DIR"])
        if os.environ.get("STACKFORGE_STATE_FILE"):
            kwargs["state_file_name"] = os.environ["STACKFORGE_STATE_FILE"]
        if os.environ.get("STACKFORGE_PLACEHOLDERS"):
            kwargs["placeholder_policy"] = os.environ["STACKFORGE_PLACEHOLDERS"]
        if os.environ.get("STACKFORGE_INSTALL_TIMEOUT"):
            kwargs["install_timeout"] = int(os.environ["STACKFORGE_INSTALL_TIMEOUT"])

        remote_kwargs: dict[str, Any] = {}
        if os.environ.get("STACKFORGE_REMOTE_REPO"):
            remote_kwargs["repository"] = os.environ["STACKFORGE_REMOTE_REPO"]
        if os.environ.get("STACKFORGE_REMOTE_BRANCH"):
            remote_kwargs["branch"] = os.environ["STACKFORGE_REMOTE_BRANCH"]
        if os.environ.get("STACKFORGE_CACHE_DIR"):
            remote_kwargs["cache_dir"] = Path(os.environ["STACKFORGE_CACHE_DIR"])
        if os.environ.get("STACKFORGE_CACHE_TTL"):
            remote_kwargs["cache_ttl"] = int(os.environ["STACKFORGE_CACHE_TTL"])

        return cls(remote=RemoteConfig(**remote_kwargs), **kwargs)
