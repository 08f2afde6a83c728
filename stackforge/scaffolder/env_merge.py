"""Merging of ``.env`` fragments.

Only ``KEY=value`` lines whose key is upper-case alphanumeric/underscore are
recognised.  The first definition of a key wins, both within one file and
across fragments, so values from the base and earlier fragments are never
overridden by later optional ones.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from pathlib import Path

from .catalog import ENV_FILE
from .resolver import ResolvedTemplateOrder

ENV_LINE_RE = re.compile(r"^([A-Z0-9_]+)=(.*)$")


def parse_env(text: str) -> dict[str, str]:
    """Parse recognised ``KEY=value`` lines, keeping the first of each key."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        match = ENV_LINE_RE.match(line)
        if match and match.group(1) not in values:
            values[match.group(1)] = match.group(2)
    return values


def merge_env_texts(texts: Iterable[str]) -> dict[str, str]:
    merged: dict[str, str] = {}
    for text in texts:
        for key, value in parse_env(text).items():
            merged.setdefault(key, value)
    return merged


def render_env(values: dict[str, str]) -> str:
    if not values:
        return ""
    return "\n".join(f"{key}={value}" for key, value in values.items()) + "\n"


class EnvironmentMerger:
    """Builds the project ``.env`` from every resolved fragment."""

    def __init__(self, filename: str = ENV_FILE) -> None:
        self.filename = filename

    async def merge(self, order: ResolvedTemplateOrder, project_dir: str | Path) -> Path:
        """Write a freshly merged env file into *project_dir*.

        Any existing project ``.env`` is replaced, never appended to.
        """
        texts = await asyncio.to_thread(self._read_sources, order)
        target = Path(project_dir) / self.filename
        await asyncio.to_thread(target.write_text, render_env(merge_env_texts(texts)), "utf-8")
        return target

    def _read_sources(self, order: ResolvedTemplateOrder) -> list[str]:
        texts: list[str] = []
        for fragment in order.fragments:
            source = fragment.path / self.filename
            if source.is_file():
                texts.append(source.read_text(encoding="utf-8"))
        return texts
