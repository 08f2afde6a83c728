"""Tests for structured config merging (stackforge.scaffolder.config_merge).

Covers:
- package.json dependency union with later-wins versions
- scripts earlier-wins and fragment name/version ignored
- tsconfig.json first-wins for non-dependency keys
- Files missing from the project are skipped
- Output formatting (2-space indent, trailing newline)
"""

from __future__ import annotations

from pathlib import Path

import pytest

from stackforge.scaffolder.config_merge import ConfigFileMerger
from stackforge.scaffolder.overlay import TemplateOverlayCopier
from stackforge.scaffolder.resolver import FeatureResolver

from conftest import read_json

pytestmark = pytest.mark.unit


@pytest.fixture
async def demo_project(catalog, demo_config, tmp_path: Path):
    order = FeatureResolver(catalog).resolve(demo_config)
    dest = tmp_path / "demo"
    await TemplateOverlayCopier().copy_all(order, dest)
    return order, dest


class TestConfigFileMerger:
    @pytest.mark.asyncio
    async def test_package_json_merged(self, demo_project):
        order, dest = demo_project
        written = await ConfigFileMerger().merge_all(order, dest)
        assert written == [dest / "package.json", dest / "tsconfig.json"]

        manifest = read_json(dest / "package.json")
        assert manifest["name"] == "{{ projectName | slugify }}"
        assert manifest["version"] == "0.1.0"
        assert manifest["dependencies"] == {
            "next": "14.2.0",
            "react": "18.2.0",
            "drizzle-orm": "0.30.0",
            "postgres": "3.4.0",
            "next-auth": "5.0.0",
            "clsx": "2.1.0",
        }
        assert manifest["devDependencies"] == {"typescript": "5.4.0", "drizzle-kit": "0.21.0"}
        assert manifest["scripts"] == {
            "dev": "next dev",
            "build": "next build",
            "db:push": "drizzle-kit push",
        }

    @pytest.mark.asyncio
    async def test_tsconfig_first_wins(self, demo_project):
        order, dest = demo_project
        await ConfigFileMerger().merge_all(order, dest)
        tsconfig = read_json(dest / "tsconfig.json")
        assert tsconfig["compilerOptions"] == {"strict": True, "paths": {"@/*": ["./*"]}}
        assert tsconfig["include"] == ["**/*.ts"]

    @pytest.mark.asyncio
    async def test_missing_project_file_skipped(self, demo_project):
        order, dest = demo_project
        (dest / "tsconfig.json").unlink()
        written = await ConfigFileMerger().merge_all(order, dest)
        assert written == [dest / "package.json"]
        assert not (dest / "tsconfig.json").exists()

    @pytest.mark.asyncio
    async def test_output_format(self, demo_project):
        order, dest = demo_project
        await ConfigFileMerger().merge_file(order, dest, "package.json")
        text = (dest / "package.json").read_text()
        assert text.startswith('{\n  "name"')
        assert text.endswith("}\n")

    @pytest.mark.asyncio
    async def test_fragments_not_modified(self, demo_project, template_root: Path):
        order, dest = demo_project
        before = (template_root / "nextauth" / "package.json").read_text()
        await ConfigFileMerger().merge_all(order, dest)
        assert (template_root / "nextauth" / "package.json").read_text() == before

    @pytest.mark.asyncio
    async def test_deterministic(self, catalog, demo_config, tmp_path: Path):
        outputs = []
        for run in range(2):
            order = FeatureResolver(catalog).resolve(demo_config)
            dest = tmp_path / f"run{run}"
            await TemplateOverlayCopier().copy_all(order, dest)
            await ConfigFileMerger().merge_all(order, dest)
            outputs.append((dest / "package.json").read_bytes())
        assert outputs[0] == outputs[1]
