"""Merging of structured config files across resolved fragments.

The project copy of each structured file (placed by the base fragment, or
synthesised by the overlay copier) is the accumulator.  The same file from
every other fragment is folded in, in resolution order, with
:func:`stackforge.merge.merge_manifest`, and the result is written back once.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from stackforge.merge import Manifest, merge_manifest
from stackforge.utils import load_json, save_json

from .catalog import MANIFEST_FILE, TYPE_CONFIG_FILE
from .resolver import ResolvedTemplateOrder

STRUCTURED_FILES: tuple[str, ...] = (MANIFEST_FILE, TYPE_CONFIG_FILE)


class ConfigFileMerger:
    """Folds fragment manifests/type-configs into the project's single copy."""

    def __init__(self, filenames: tuple[str, ...] = STRUCTURED_FILES) -> None:
        self.filenames = filenames

    async def merge_all(self, order: ResolvedTemplateOrder, project_dir: str | Path) -> list[Path]:
        """Merge every structured file that exists in the project."""
        written: list[Path] = []
        for filename in self.filenames:
            path = await self.merge_file(order, project_dir, filename)
            if path is not None:
                written.append(path)
        return written

    async def merge_file(
        self, order: ResolvedTemplateOrder, project_dir: str | Path, filename: str
    ) -> Path | None:
        """Merge one structured file; returns ``None`` if the project lacks it."""
        target = Path(project_dir) / filename
        if not await asyncio.to_thread(target.exists):
            return None

        merged = Manifest.from_dict(await asyncio.to_thread(load_json, target))
        for fragment in order.overlays:
            source = fragment.path / filename
            if not await asyncio.to_thread(source.exists):
                continue
            incoming = Manifest.from_dict(await asyncio.to_thread(load_json, source))
            merged = merge_manifest(merged, incoming)

        await save_json(merged.to_dict(), target)
        return target
