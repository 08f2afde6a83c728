"""Structural merging of configuration data.

``deep_merge`` is the generic recursive merge used everywhere a mapping is
folded into another.  ``Manifest`` and ``merge_manifest`` apply it to
``package.json``-shaped files (``tsconfig.json`` shares the same shape) with
section-specific precedence:

* ``dependencies`` / ``devDependencies`` -- later fragments win.
* ``scripts`` -- earlier (already accumulated) scripts win.
* ``name`` / ``version`` -- never taken from a fragment.
* anything else -- copied only if not already present.

Lists are atomic: a list in the source replaces the target's value.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

DEPENDENCY_SECTIONS: tuple[str, ...] = ("dependencies", "devDependencies")
_MANAGED_KEYS = frozenset(("name", "version", "scripts", *DEPENDENCY_SECTIONS))


# ---------------------------------------------------------------------------
# Generic deep merge
# ---------------------------------------------------------------------------


def _is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge *source* into a copy of *target*.

    Keys present only in *source* are added, mappings present on both sides
    are merged recursively, and every other conflict is won by *source*.
    Neither input is mutated and the result shares no containers with them.
    """
    result: dict[str, Any] = deepcopy(dict(target))
    for key, source_value in source.items():
        target_value = result.get(key)
        if key in result and _is_mapping(target_value) and _is_mapping(source_value):
            result[key] = deep_merge(target_value, source_value)
        else:
            result[key] = deepcopy(source_value)
    return result


# ---------------------------------------------------------------------------
# Manifest model
# ---------------------------------------------------------------------------


class Manifest(BaseModel):
    """Typed view of a manifest-like JSON file.

    Dependency sections map package names to version strings, ``scripts``
    maps script names to commands, and every other top-level key is kept
    verbatim in ``extras`` (in first-seen order).  ``None`` means the section
    is absent from the file, which is different from an empty mapping.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    version: Optional[str] = None
    scripts: Optional[dict[str, str]] = None
    dependencies: Optional[dict[str, str]] = None
    dev_dependencies: Optional[dict[str, str]] = Field(default=None, alias="devDependencies")
    extras: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Manifest":
        extras = {k: deepcopy(v) for k, v in data.items() if k not in _MANAGED_KEYS}
        return cls(
            name=data.get("name"),
            version=data.get("version"),
            scripts=dict(data["scripts"]) if "scripts" in data else None,
            dependencies=dict(data["dependencies"]) if "dependencies" in data else None,
            dev_dependencies=dict(data["devDependencies"]) if "devDependencies" in data else None,
            extras=extras,
        )

    def to_dict(self) -> dict[str, Any]:
        """Render back to a JSON object in a stable key order."""
        out: dict[str, Any] = {}
        if self.name is not None:
            out["name"] = self.name
        if self.version is not None:
            out["version"] = self.version
        out.update(deepcopy(self.extras))
        if self.scripts is not None:
            out["scripts"] = dict(self.scripts)
        if self.dependencies is not None:
            out["dependencies"] = dict(self.dependencies)
        if self.dev_dependencies is not None:
            out["devDependencies"] = dict(self.dev_dependencies)
        return out


# ---------------------------------------------------------------------------
# Manifest merge rules
# ---------------------------------------------------------------------------


def _merge_section(
    accumulated: Optional[dict[str, str]], incoming: Optional[dict[str, str]]
) -> Optional[dict[str, str]]:
    if accumulated is not None and incoming:
        return deep_merge(accumulated, incoming)
    if incoming:
        return dict(incoming)
    return accumulated


def merge_dependency_sections(accumulated: Manifest, incoming: Manifest) -> Manifest:
    """Fold only the dependency sections of *incoming* into *accumulated*."""
    return accumulated.model_copy(
        update={
            "dependencies": _merge_section(accumulated.dependencies, incoming.dependencies),
            "dev_dependencies": _merge_section(
                accumulated.dev_dependencies, incoming.dev_dependencies
            ),
        },
        deep=True,
    )


def merge_manifest(accumulated: Manifest, incoming: Manifest) -> Manifest:
    """Fold a fragment's manifest into the accumulated project manifest."""
    merged = merge_dependency_sections(accumulated, incoming)

    extras = deepcopy(merged.extras)
    for key, value in incoming.extras.items():
        if key not in extras:
            extras[key] = deepcopy(value)

    scripts = merged.scripts
    if incoming.scripts:
        scripts = dict(merged.scripts or {})
        for script_name, command in incoming.scripts.items():
            scripts.setdefault(script_name, command)

    return merged.model_copy(update={"extras": extras, "scripts": scripts})
