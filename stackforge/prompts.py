"""Interactive questions for ``stackforge create``.

Asks the same questions, in the same order, as the flag-driven mode exposes:
project name, UI library, database type and provider, BaaS (only offered for
the Supabase provider), ORM, authentication (only with a database), mailing
and dependency installation.
"""

from __future__ import annotations

from typing import Any

from rich.prompt import Confirm, Prompt

from stackforge.config import (
    DATABASE_PROVIDERS,
    ORM,
    AuthProvider,
    DatabaseType,
    MailingProvider,
    PackageManager,
    UILibrary,
)
from stackforge.utils import console, is_valid_project_name, print_error, sanitize_name


def _choices(enum_cls: type, exclude: tuple[str, ...] = ()) -> list[str]:
    return [member.value for member in enum_cls if member.value not in exclude]


def ask_project_name(default: str = "my-app") -> str:
    while True:
        name = Prompt.ask("What is your project name?", default=default, console=console).strip()
        if not name:
            print_error("Project name is required!")
        elif not is_valid_project_name(name):
            print_error(
                "Project name can only contain lowercase letters, numbers, "
                "dashes and underscores!"
            )
            default = sanitize_name(name) or default
        else:
            return name


def ask_configuration(default_name: str | None = None) -> dict[str, Any]:
    """Run the interactive flow and return camelCase configuration data."""
    data: dict[str, Any] = {"name": ask_project_name(default_name or "my-app")}

    data["ui"] = Prompt.ask(
        "Select a UI library", choices=_choices(UILibrary), default="none", console=console
    )

    database_type = Prompt.ask(
        "Select your database type",
        choices=_choices(DatabaseType),
        default="none",
        console=console,
    )
    data["databaseType"] = database_type
    data["databaseProvider"] = "none"

    if database_type != DatabaseType.NONE.value:
        providers = DATABASE_PROVIDERS[DatabaseType(database_type)]
        data["databaseProvider"] = Prompt.ask(
            f"Select your {database_type} provider",
            choices=providers,
            default=providers[0],
            console=console,
        )

    data["baas"] = "none"
    if data["databaseProvider"] == "supabase":
        if Confirm.ask(
            "Do you want to use Supabase as a Backend-as-a-Service (BaaS)?",
            default=False,
            console=console,
        ):
            data["baas"] = "supabase"

    if database_type != DatabaseType.NONE.value:
        data["orm"] = Prompt.ask(
            "Select your database ORM",
            choices=_choices(ORM, exclude=("none",)),
            default=ORM.PRISMA.value,
            console=console,
        )

        data["auth"] = Confirm.ask(
            "Do you want to include authentication?", default=False, console=console
        )
        if data["auth"]:
            data["authProvider"] = Prompt.ask(
                "Select your authentication provider",
                choices=_choices(AuthProvider),
                default=AuthProvider.NEXTAUTH.value,
                console=console,
            )

    data["mailing"] = Confirm.ask(
        "Do you want to include mailing capabilities?", default=False, console=console
    )
    if data["mailing"]:
        data["mailingProvider"] = Prompt.ask(
            "Select your mailing provider",
            choices=_choices(MailingProvider),
            default=MailingProvider.NODEMAILER.value,
            console=console,
        )

    data["installDeps"] = Confirm.ask(
        "Do you want to install dependencies after project creation?",
        default=False,
        console=console,
    )
    if data["installDeps"]:
        data["packageManager"] = Prompt.ask(
            "Select your preferred package manager",
            choices=_choices(PackageManager),
            default=PackageManager.NPM.value,
            console=console,
        )
    return data


def confirm_configuration() -> bool:
    return Confirm.ask("Does this look correct?", default=True, console=console)
