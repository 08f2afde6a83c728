"""Jinja2 variable substitution for generated project files.

Provides the TemplateRenderer class which renders placeholders such as
``{{ projectName }}`` inside a small, fixed set of project files (``.env``,
``package.json``, ``README.md``) after the fragments have been composed.

Unknown placeholders never abort a run.  What they render to is an explicit
policy rather than a library default:

* ``"keep"``  -- every ``{{ ... }}`` tag that mentions an unknown name is
  written back exactly as it appears in the source, filters and attribute
  access included.
* ``"empty"`` -- the tag renders as an empty string.

Either way every unresolved name is reported back to the caller.  A file
that does not parse as a template at all (a JSX ``style={{ color: 'red' }}``
snippet in a README, say) is left untouched and reported as skipped.
"""

from __future__ import annotations

import asyncio
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jinja2 import ChainableUndefined, Environment, TemplateSyntaxError, Undefined, meta

from stackforge.config import PlaceholderPolicy, ProjectConfiguration

from .catalog import ENV_FILE, MANIFEST_FILE, README_FILE

SUBSTITUTED_FILES: tuple[str, ...] = (ENV_FILE, MANIFEST_FILE, README_FILE)

# One print tag at a time; the match is lazy so adjacent tags stay separate.
_PRINT_TAG = re.compile(r"\{\{.*?\}\}", re.DOTALL)

# Context key holding the literal text of kept tags.
_KEPT_TAGS = "_stackforge_kept_tags"


# ---------------------------------------------------------------------------
# Render context
# ---------------------------------------------------------------------------


def build_render_context(
    config: ProjectConfiguration, *, now: datetime | None = None
) -> dict[str, Any]:
    """Build the template context from the project configuration."""
    now = now or datetime.now(timezone.utc)
    auth_provider = config.effective_auth_provider
    mailing_provider = config.effective_mailing_provider
    return {
        "projectName": config.name,
        "databaseType": config.database_type.value,
        "databaseProvider": config.database_provider,
        "orm": config.orm.value,
        "hasAuth": config.auth,
        "hasMailing": config.mailing,
        "currentYear": now.year,
        "ui": config.ui.value,
        "baas": config.baas.value,
        "authProvider": auth_provider.value if auth_provider else "",
        "mailingProvider": mailing_provider.value if mailing_provider else "",
        "packageManager": config.package_manager.value if config.package_manager else "npm",
    }


# ---------------------------------------------------------------------------
# Undefined policies
# ---------------------------------------------------------------------------


class KeepUndefined(ChainableUndefined):
    """Renders an unknown variable back as a placeholder tag.

    Print tags that mention an unknown name are kept verbatim before
    rendering, so this only shows up when an undefined value reaches the
    output some other way, e.g. through ``{% set %}``.
    """

    __slots__ = ()

    def __str__(self) -> str:
        return "{{ %s }}" % (self._undefined_name or "")


_UNDEFINED_BY_POLICY: dict[str, type[Undefined]] = {
    "keep": KeepUndefined,
    "empty": ChainableUndefined,
}


@dataclass
class FileRender:
    """Outcome of rendering a single file."""

    path: Path
    unresolved: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def skipped(self) -> bool:
        return self.error is not None


@dataclass
class SubstitutionReport:
    """Outcome of a substitution pass over a project directory."""

    rendered: list[Path] = field(default_factory=list)
    unresolved: dict[str, list[str]] = field(default_factory=dict)
    skipped: dict[str, str] = field(default_factory=dict)

    @property
    def has_unresolved(self) -> bool:
        return any(self.unresolved.values())


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders Jinja2 placeholders in project files.

    Rendering keeps trailing newlines, so a file without any placeholder is
    written back byte-for-byte.
    """

    def __init__(self, policy: PlaceholderPolicy = "keep") -> None:
        if policy not in _UNDEFINED_BY_POLICY:
            raise ValueError(f"Unknown placeholder policy: {policy!r}")
        self.policy = policy
        self.env = Environment(
            autoescape=False,
            undefined=_UNDEFINED_BY_POLICY[policy],
            keep_trailing_newline=True,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        # Register custom filters
        self.env.filters["slugify"] = _slugify_filter
        self.env.filters["pascal_case"] = _pascal_case_filter
        self.env.filters["snake_case"] = _snake_case_filter
        self.env.filters["camel_case"] = _camel_case_filter

    # -- String rendering --------------------------------------------------

    def render_string(self, template_string: str, context: dict[str, Any]) -> str:
        """Render an inline template string with the provided context.

        Raises:
            jinja2.TemplateSyntaxError: *template_string* is not a valid template.
        """
        if self.policy == "keep":
            missing = set(self.unresolved_names(template_string, context))
            if missing:
                template_string, kept = self._keep_tags(template_string, missing)
                context = {**context, _KEPT_TAGS: kept}
        template = self.env.from_string(template_string)
        return template.render(**context)

    def unresolved_names(self, template_string: str, context: dict[str, Any]) -> list[str]:
        """Sorted placeholder names used by *template_string* but absent from *context*."""
        ast = self.env.parse(template_string)
        return sorted(meta.find_undeclared_variables(ast) - set(context))

    def _keep_tags(self, source: str, missing: set[str]) -> tuple[str, list[str]]:
        """Swap each print tag that uses a *missing* name for a lookup of its own text."""
        kept: list[str] = []

        def replace(match: re.Match[str]) -> str:
            tag = match.group(0)
            try:
                names = meta.find_undeclared_variables(self.env.parse(tag))
            except TemplateSyntaxError:
                return tag
            if not names & missing:
                return tag
            kept.append(tag)
            return "{{ %s[%d] }}" % (_KEPT_TAGS, len(kept) - 1)

        return _PRINT_TAG.sub(replace, source), kept

    # -- File-based rendering (async) --------------------------------------

    async def render_file(self, path: str | Path, context: dict[str, Any]) -> FileRender:
        """Render *path* in place.

        A file that is not a valid template is left as it is and comes back
        with ``error`` set.
        """
        file_path = Path(path)
        source = await asyncio.to_thread(file_path.read_text, "utf-8")
        try:
            missing = self.unresolved_names(source, context)
            rendered = self.render_string(source, context)
        except TemplateSyntaxError as exc:
            return FileRender(file_path, error=f"line {exc.lineno}: {exc.message}")
        if rendered != source:
            await asyncio.to_thread(_write_file, file_path, rendered)
        return FileRender(file_path, unresolved=missing)

    async def render_project(
        self,
        project_dir: str | Path,
        context: dict[str, Any],
        filenames: tuple[str, ...] = SUBSTITUTED_FILES,
    ) -> SubstitutionReport:
        """Render each of *filenames* that exists in *project_dir*."""
        report = SubstitutionReport()
        for name in filenames:
            path = Path(project_dir) / name
            if not await asyncio.to_thread(path.is_file):
                continue
            outcome = await self.render_file(path, context)
            if outcome.skipped:
                report.skipped[name] = outcome.error
                continue
            report.rendered.append(path)
            if outcome.unresolved:
                report.unresolved[name] = outcome.unresolved
        return report


# ---------------------------------------------------------------------------
# Jinja2 custom filters
# ---------------------------------------------------------------------------

def _slugify_filter(value: str) -> str:
    """Convert a string to a URL/filename-safe slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", str(value).lower().strip())
    return slug.strip("-")


def _pascal_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``SomeThing``."""
    parts = re.split(r"[-_\s]+", str(value))
    return "".join(word.capitalize() for word in parts if word)


def _snake_case_filter(value: str) -> str:
    """Convert ``SomeThing`` or ``some-thing`` to ``some_thing``."""
    s1 = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", str(value))
    s2 = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", s1)
    return re.sub(r"[-\s]+", "_", s2).lower()


def _camel_case_filter(value: str) -> str:
    """Convert ``some-thing`` or ``some_thing`` to ``someThing``."""
    pascal = _pascal_case_filter(value)
    if pascal:
        return pascal[0].lower() + pascal[1:]
    return ""


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _write_file(path: Path, content: str) -> None:
    """Synchronous helper: create parent dirs and write content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
