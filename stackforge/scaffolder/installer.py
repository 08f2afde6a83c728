"""Optional dependency installation for a freshly created project.

Installation is advisory: the project tree is already valid without
installed dependencies, so every failure is returned as an
``InstallResult`` carrying a manual remediation command instead of being
raised.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

from stackforge.config import PackageManager
from stackforge.utils import command_exists, run_command

INSTALL_COMMANDS: dict[PackageManager, list[str]] = {
    PackageManager.NPM: ["npm", "install"],
    PackageManager.PNPM: ["pnpm", "install"],
    PackageManager.YARN: ["yarn"],
    PackageManager.BUN: ["bun", "install"],
}


class InstallResult(BaseModel):
    """Outcome of a dependency installation attempt."""

    success: bool
    command: str = Field(default="", description="The command that was (or would be) run")
    message: str = Field(default="")
    remediation: str = Field(default="", description="Manual command to run on failure")


def remediation_command(project_name: str, package_manager: PackageManager) -> str:
    return f"cd {project_name} && {package_manager.value} install"


async def install_dependencies(
    project_dir: str | Path,
    package_manager: PackageManager,
    timeout: int = 900,
) -> InstallResult:
    """Install dependencies in *project_dir* with *package_manager*.

    The child process inherits stdout/stderr and runs with ``cwd`` set to the
    project directory.
    """
    project_path = Path(project_dir)
    argv = INSTALL_COMMANDS[package_manager]
    command = " ".join(argv)
    remediation = remediation_command(project_path.name, package_manager)

    if not command_exists(argv[0]):
        return InstallResult(
            success=False,
            command=command,
            message=(
                f"Package manager '{argv[0]}' is not installed on your system. "
                "Please install it or choose a different package manager."
            ),
            remediation=remediation,
        )

    try:
        returncode, _, stderr = await run_command(
            argv, cwd=project_path, timeout=timeout, capture=False
        )
    except OSError as exc:
        return InstallResult(
            success=False,
            command=command,
            message=f"Error installing dependencies: {exc}",
            remediation=remediation,
        )

    if returncode != 0:
        detail = stderr or f"exit code {returncode}"
        return InstallResult(
            success=False,
            command=command,
            message=f"Error installing dependencies: {detail}",
            remediation=remediation,
        )

    return InstallResult(success=True, command=command, message="Dependencies installed successfully!")
