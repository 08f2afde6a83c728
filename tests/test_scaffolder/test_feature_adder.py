"""Tests for retrofitting features onto an existing project.

Covers:
- normalize_feature argument handling
- Copying without overwriting existing files
- Dependency merge into the project package.json
- .stackrc feature bookkeeping (full and minimal records)
- Failure results for unsupported input and missing templates
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stackforge.config import ProjectConfiguration
from stackforge.scaffolder.catalog import FeatureCategory, TemplateCatalog
from stackforge.scaffolder.feature_adder import FeatureAdder, normalize_feature
from stackforge.scaffolder.resolver import Fallback, Resolved
from stackforge.stack_config import load_stack_config, save_stack_config

from conftest import read_json, write_fragment

pytestmark = pytest.mark.unit


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A generated-looking project with a manifest and a full .stackrc."""
    root = tmp_path / "app"
    root.mkdir()
    (root / "package.json").write_text(
        json.dumps({"name": "app", "dependencies": {"next": "14.0.0"}}, indent=2) + "\n"
    )
    save_stack_config(ProjectConfiguration(name="app"), root)
    return root


@pytest.fixture
def adder(catalog, settings) -> FeatureAdder:
    return FeatureAdder(catalog, settings)


class TestNormalizeFeature:
    def test_category_only(self):
        assert normalize_feature("auth") == (FeatureCategory.AUTH, None)

    def test_category_and_provider(self):
        assert normalize_feature("Mailing", "Resend") == (FeatureCategory.MAILING, "resend")

    def test_provider_as_feature(self):
        assert normalize_feature("nextauth") == (FeatureCategory.AUTH, "nextauth")
        assert normalize_feature("sendgrid") == (FeatureCategory.MAILING, "sendgrid")

    def test_unsupported_feature(self):
        with pytest.raises(ValueError, match="Unsupported feature"):
            normalize_feature("payments")

    def test_category_without_providers(self):
        with pytest.raises(ValueError, match="Unsupported feature"):
            normalize_feature("ui")

    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported auth provider"):
            normalize_feature("auth", "okta")

    def test_provider_as_feature_with_same_provider(self):
        assert normalize_feature("resend", "Resend") == (FeatureCategory.MAILING, "resend")

    def test_provider_as_feature_with_conflicting_provider(self):
        with pytest.raises(ValueError, match="Conflicting mailing providers: resend and sendgrid"):
            normalize_feature("resend", "sendgrid")


class TestAdd:
    @pytest.mark.asyncio
    async def test_adds_mailing(self, adder, project):
        result = await adder.add(project, "mailing")

        assert result.success
        assert result.feature == "mailing"
        assert result.provider == "nodemailer"
        assert isinstance(result.resolution, Resolved)
        assert result.signals == []
        assert (project / "lib/mail.ts").is_file()
        assert (project / ".env").read_text() == "SMTP_HOST=localhost\n"

    @pytest.mark.asyncio
    async def test_merges_dependencies(self, adder, project):
        await adder.add(project, "mailing")
        manifest = read_json(project / "package.json")
        assert manifest["name"] == "app"
        assert manifest["dependencies"] == {"next": "14.0.0", "nodemailer": "6.9.0"}

    @pytest.mark.asyncio
    async def test_later_version_wins(self, adder, project):
        await adder.add(project, "auth")
        manifest = read_json(project / "package.json")
        assert manifest["dependencies"]["next"] == "14.2.0"
        assert manifest["dependencies"]["next-auth"] == "5.0.0"

    @pytest.mark.asyncio
    async def test_manifest_created_when_missing(self, adder, project):
        (project / "package.json").unlink()
        await adder.add(project, "mailing")
        assert read_json(project / "package.json") == {"dependencies": {"nodemailer": "6.9.0"}}

    @pytest.mark.asyncio
    async def test_does_not_overwrite(self, adder, project):
        (project / "lib").mkdir()
        (project / "lib/mail.ts").write_text("// mine\n")
        result = await adder.add(project, "mailing")
        assert (project / "lib/mail.ts").read_text() == "// mine\n"
        assert result.copy.skipped == ["lib/mail.ts"]

    @pytest.mark.asyncio
    async def test_fallback_provider(self, adder, project):
        result = await adder.add(project, "mailing", "resend")
        assert result.success
        assert isinstance(result.resolution, Fallback)
        assert result.provider == "nodemailer"
        assert [s.level for s in result.signals] == ["info"]
        assert (project / "lib/mail.ts").is_file()

    @pytest.mark.asyncio
    async def test_provider_as_feature_name(self, adder, project):
        result = await adder.add(project, "nextauth")
        assert result.success
        assert result.feature == "auth"
        assert (project / "app/api/auth/route.ts").is_file()


class TestStackRecordUpdate:
    @pytest.mark.asyncio
    async def test_full_record_updated(self, adder, project):
        created = json.loads((project / ".stackrc").read_text())["createdAt"]
        result = await adder.add(project, "mailing", "resend")

        data = json.loads(result.state_file.read_text())
        assert data["features"]["mailing"] is True
        assert data["features"]["mailingProvider"] == "nodemailer"
        assert data["mailing"] is True
        assert data["mailingProvider"] == "nodemailer"
        assert data["createdAt"] == created
        assert "lastUpdated" in data

        loaded = load_stack_config(result.state_file)
        assert loaded.ok
        assert loaded.config.mailing is True

    @pytest.mark.asyncio
    async def test_missing_record_created_minimal(self, adder, project):
        (project / ".stackrc").unlink()
        result = await adder.add(project, "auth")
        data = json.loads(result.state_file.read_text())
        assert data["features"] == {"auth": True, "authProvider": "nextauth"}
        assert "name" not in data
        assert "lastUpdated" in data

    @pytest.mark.asyncio
    async def test_corrupt_record_replaced(self, adder, project):
        (project / ".stackrc").write_text("{not json")
        result = await adder.add(project, "auth")
        assert result.success
        assert result.signals[-1].level == "warning"
        data = json.loads((project / ".stackrc").read_text())
        assert data["features"]["auth"] is True

    @pytest.mark.asyncio
    async def test_unknown_keys_preserved(self, adder, project):
        data = json.loads((project / ".stackrc").read_text())
        data["customKey"] = {"keep": True}
        (project / ".stackrc").write_text(json.dumps(data))
        await adder.add(project, "auth")
        assert json.loads((project / ".stackrc").read_text())["customKey"] == {"keep": True}


class TestFailures:
    @pytest.mark.asyncio
    async def test_unsupported_feature(self, adder, project):
        result = await adder.add(project, "payments")
        assert not result.success
        assert "Unsupported feature" in result.error

    @pytest.mark.asyncio
    async def test_unsupported_provider(self, adder, project):
        result = await adder.add(project, "mailing", "pigeon")
        assert not result.success
        assert "pigeon" in result.error

    @pytest.mark.asyncio
    async def test_conflicting_provider(self, adder, project):
        result = await adder.add(project, "resend", "sendgrid")
        assert not result.success
        assert "Conflicting" in result.error
        assert not (project / "lib/mail.ts").exists()

    @pytest.mark.asyncio
    async def test_missing_project(self, adder, tmp_path):
        result = await adder.add(tmp_path / "nope", "auth")
        assert not result.success
        assert "not found" in result.error

    @pytest.mark.asyncio
    async def test_missing_fallback_template(self, settings, project, tmp_path):
        root = tmp_path / "bare"
        write_fragment(root, "base", {"package.json": {}})
        before = sorted(p.name for p in project.iterdir())

        result = await FeatureAdder(TemplateCatalog(root), settings).add(project, "mailing", "resend")

        assert not result.success
        assert "mailing" in result.error
        assert sorted(p.name for p in project.iterdir()) == before
