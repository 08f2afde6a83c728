"""Persistence of a project's stack configuration (``.stackrc``).

The state file records the full ``ProjectConfiguration`` (camelCase keys),
a ``createdAt`` timestamp, an optional ``lastUpdated`` timestamp and a
``features`` summary.  Unknown keys are preserved across a load/save cycle.

Loading never raises: any I/O, JSON or validation problem is reported in a
``StackLoadResult`` with one message per problem, validation errors being
prefixed with their field path.  Records written by older versions are
backfilled before validation:

* missing ``baas``                     -> ``"none"``
* ``authProvider: "supabase"``         -> removed (Supabase is a BaaS now)
* legacy ``database: prisma|drizzle``  -> ``orm`` on a default PostgreSQL
* missing ``databaseType`` / ``databaseProvider`` / ``orm`` -> ``"none"``
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stackforge.config import ProjectConfiguration
from stackforge.utils import load_json, write_json

STACK_FILE_NAME = ".stackrc"

_LEGACY_DATABASE_ORMS = ("prisma", "drizzle")


class StackConfigurationRecord(BaseModel):
    """Persisted snapshot of a project's feature set.

    Configuration fields (``name``, ``ui``, ``databaseType``, ...) are kept
    as extra fields so that minimal records and records from other versions
    round-trip unchanged.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    last_updated: Optional[datetime] = Field(default=None, alias="lastUpdated")
    features: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_configuration(
        cls,
        config: ProjectConfiguration,
        *,
        created_at: datetime | None = None,
        base: "StackConfigurationRecord | None" = None,
    ) -> "StackConfigurationRecord":
        """Build a record for *config*, keeping unknown fields of *base*."""
        data: dict[str, Any] = base.to_json_dict() if base is not None else {}
        data.update(config.to_stack_dict())
        data["createdAt"] = (created_at or datetime.now(timezone.utc)).isoformat()
        data["features"] = {**data.get("features", {}), **config.features_summary()}
        return cls.model_validate(data)

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    @property
    def has_configuration(self) -> bool:
        return "name" in self.extras

    def to_json_dict(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        for key in ("createdAt", "lastUpdated"):
            if data.get(key) is None:
                data.pop(key, None)
        return data

    def configuration(self) -> ProjectConfiguration:
        """Validate the embedded configuration (after backfilling).

        Raises:
            pydantic.ValidationError: If the record does not hold a valid
                configuration.
        """
        return ProjectConfiguration.model_validate(backfill_configuration(self.extras))


class StackLoadResult(BaseModel):
    """Outcome of reading a ``.stackrc`` file."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path
    config: Optional[ProjectConfiguration] = None
    record: Optional[StackConfigurationRecord] = None
    errors: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.config is not None


# ---------------------------------------------------------------------------
# Backward compatibility
# ---------------------------------------------------------------------------


def backfill_configuration(raw: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *raw* with fields of older record versions filled in."""
    data = dict(raw)

    legacy_database = data.pop("database", None)
    if legacy_database in _LEGACY_DATABASE_ORMS and "orm" not in data:
        data["orm"] = legacy_database
        data.setdefault("databaseType", "postgresql")
        data.setdefault("databaseProvider", "default")

    if not data.get("baas"):
        data["baas"] = "none"
    if data.get("authProvider") == "supabase":
        data.pop("authProvider")
    data.setdefault("databaseType", "none")
    data.setdefault("databaseProvider", "none")
    data.setdefault("orm", "none")
    return data


def format_validation_errors(exc: ValidationError) -> list[str]:
    """One ``path: message`` line per validation error."""
    messages: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "<root>"
        messages.append(f"{location}: {error['msg']}")
    return messages


# ---------------------------------------------------------------------------
# Save / load
# ---------------------------------------------------------------------------


def save_stack_config(
    config: ProjectConfiguration,
    project_dir: str | Path,
    *,
    file_name: str = STACK_FILE_NAME,
    created_at: datetime | None = None,
    base: StackConfigurationRecord | None = None,
) -> Path:
    """Write the stack configuration of *config* into *project_dir*."""
    record = StackConfigurationRecord.from_configuration(
        config, created_at=created_at, base=base
    )
    return write_stack_record(record, Path(project_dir) / file_name)


def write_stack_record(record: StackConfigurationRecord, path: str | Path) -> Path:
    return write_json(record.to_json_dict(), path)


def read_stack_record(path: str | Path) -> tuple[StackConfigurationRecord | None, list[str]]:
    """Read a record without requiring it to hold a full configuration."""
    file_path = Path(path)
    if not file_path.is_file():
        return None, [f"Stack configuration file not found: {file_path}"]
    try:
        raw = load_json(file_path)
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        return None, [f"Failed to read stack configuration {file_path}: {exc}"]
    try:
        return StackConfigurationRecord.model_validate(raw), []
    except ValidationError as exc:
        return None, format_validation_errors(exc)


def load_stack_config(path: str | Path) -> StackLoadResult:
    """Read and validate a stack configuration file.

    Returns:
        A ``StackLoadResult``; ``config`` is ``None`` whenever the file is
        missing, unreadable or invalid, and ``errors`` says why.
    """
    file_path = Path(path)
    record, errors = read_stack_record(file_path)
    if record is None:
        return StackLoadResult(path=file_path, errors=errors)
    try:
        config = record.configuration()
    except ValidationError as exc:
        return StackLoadResult(
            path=file_path, record=record, errors=format_validation_errors(exc)
        )
    return StackLoadResult(path=file_path, config=config, record=record)
