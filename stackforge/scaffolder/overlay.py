"""Overlay of template fragment trees onto a project directory.

Fragments are copied one after another in resolution order so that later
fragments replace same-path files from earlier ones.  The reserved
structured files (``package.json``, ``tsconfig.json``, ``.env``) are only
taken from the base fragment; from every other fragment they are left to
the structured mergers.
"""

from __future__ import annotations

import asyncio
import shutil
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from stackforge.utils import ensure_dir, is_empty_dir, save_json

from .catalog import MANIFEST_FILE, RESERVED_FILES, DirectoryNotEmptyError
from .resolver import ResolvedTemplateOrder, TemplateSelection


@dataclass
class CopyReport:
    """Relative paths written (and left untouched) by one fragment copy."""

    fragment: str
    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


class TemplateOverlayCopier:
    """Copies resolved fragments into a destination directory."""

    def __init__(self, reserved: Iterable[str] = RESERVED_FILES) -> None:
        self.reserved = frozenset(reserved)

    # -- Public API --------------------------------------------------------

    async def prepare_destination(self, dest: str | Path) -> Path:
        """Create *dest* if needed and require it to be empty."""
        dest_path = Path(dest)
        await asyncio.to_thread(ensure_dir, dest_path)
        if not await asyncio.to_thread(is_empty_dir, dest_path):
            raise DirectoryNotEmptyError(dest_path)
        return dest_path

    async def copy_all(
        self, order: ResolvedTemplateOrder, dest: str | Path
    ) -> list[CopyReport]:
        """Overlay every fragment of *order* onto an empty *dest*.

        After each fragment a ``package.json`` is synthesised if none exists
        yet, so the config merger always has a target to fold into.
        """
        dest_path = await self.prepare_destination(dest)
        reports: list[CopyReport] = []
        for fragment in order.fragments:
            excluded = frozenset() if fragment.is_base else self.reserved
            reports.append(
                await self.copy_fragment(fragment, dest_path, overwrite=True, exclude=excluded)
            )
            await self.ensure_manifest(dest_path)
        return reports

    async def copy_fragment(
        self,
        fragment: TemplateSelection,
        dest: str | Path,
        *,
        overwrite: bool = True,
        exclude: Iterable[str] = (),
    ) -> CopyReport:
        """Copy one fragment tree into *dest*.

        Args:
            fragment: The fragment to copy.
            dest: Destination project directory.
            overwrite: Replace files that already exist at the destination.
                When ``False`` existing files are reported as skipped.
            exclude: Top-level file names of the fragment to leave out.
        """
        copied, skipped = await asyncio.to_thread(
            _copy_tree, fragment.path, Path(dest), overwrite, frozenset(exclude)
        )
        return CopyReport(fragment=fragment.name, copied=copied, skipped=skipped)

    async def ensure_manifest(self, dest: str | Path) -> Path:
        manifest = Path(dest) / MANIFEST_FILE
        if not await asyncio.to_thread(manifest.exists):
            await save_json({}, manifest)
        return manifest


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _copy_tree(
    source: Path, dest: Path, overwrite: bool, exclude: frozenset[str]
) -> tuple[list[str], list[str]]:
    copied: list[str] = []
    skipped: list[str] = []
    for item in sorted(source.rglob("*")):
        rel = item.relative_to(source)
        if rel.parts[0] in exclude and len(rel.parts) == 1:
            continue
        target = dest / rel
        if item.is_dir():
            target.mkdir(parents=True, exist_ok=True)
            continue
        if target.exists() and not overwrite:
            skipped.append(rel.as_posix())
            continue
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(item, target)
        copied.append(rel.as_posix())
    return copied, skipped
