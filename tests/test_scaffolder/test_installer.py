"""Tests for dependency installation (stackforge.scaffolder.installer)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from stackforge.config import PackageManager
from stackforge.scaffolder.installer import (
    INSTALL_COMMANDS,
    install_dependencies,
    remediation_command,
)

pytestmark = pytest.mark.unit


def test_install_commands_cover_every_package_manager():
    assert set(INSTALL_COMMANDS) == set(PackageManager)
    assert INSTALL_COMMANDS[PackageManager.YARN] == ["yarn"]


def test_remediation_command():
    assert remediation_command("demo", PackageManager.PNPM) == "cd demo && pnpm install"


class TestInstallDependencies:
    @pytest.mark.asyncio
    async def test_success(self, tmp_path: Path):
        run = AsyncMock(return_value=(0, "", ""))
        with (
            patch("stackforge.scaffolder.installer.command_exists", return_value=True),
            patch("stackforge.scaffolder.installer.run_command", run),
        ):
            result = await install_dependencies(tmp_path, PackageManager.BUN, timeout=60)

        assert result.success
        assert result.command == "bun install"
        run.assert_awaited_once_with(
            ["bun", "install"], cwd=tmp_path, timeout=60, capture=False
        )

    @pytest.mark.asyncio
    async def test_missing_package_manager(self, tmp_path: Path):
        run = AsyncMock()
        with (
            patch("stackforge.scaffolder.installer.command_exists", return_value=False),
            patch("stackforge.scaffolder.installer.run_command", run),
        ):
            result = await install_dependencies(tmp_path / "demo", PackageManager.PNPM)

        assert not result.success
        assert "'pnpm' is not installed" in result.message
        assert result.remediation == "cd demo && pnpm install"
        run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_non_zero_exit(self, tmp_path: Path):
        run = AsyncMock(return_value=(1, "", ""))
        with (
            patch("stackforge.scaffolder.installer.command_exists", return_value=True),
            patch("stackforge.scaffolder.installer.run_command", run),
        ):
            result = await install_dependencies(tmp_path / "demo", PackageManager.NPM)

        assert not result.success
        assert "exit code 1" in result.message
        assert result.remediation == "cd demo && npm install"

    @pytest.mark.asyncio
    async def test_timeout_reported(self, tmp_path: Path):
        run = AsyncMock(return_value=(-1, "", "Command timed out after 5s: npm install"))
        with (
            patch("stackforge.scaffolder.installer.command_exists", return_value=True),
            patch("stackforge.scaffolder.installer.run_command", run),
        ):
            result = await install_dependencies(tmp_path, PackageManager.NPM, timeout=5)

        assert not result.success
        assert "timed out" in result.message

    @pytest.mark.asyncio
    async def test_os_error(self, tmp_path: Path):
        run = AsyncMock(side_effect=PermissionError("denied"))
        with (
            patch("stackforge.scaffolder.installer.command_exists", return_value=True),
            patch("stackforge.scaffolder.installer.run_command", run),
        ):
            result = await install_dependencies(tmp_path, PackageManager.YARN)

        assert not result.success
        assert "denied" in result.message
        assert result.command == "yarn"
