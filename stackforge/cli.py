"""Command-line interface for stackforge.

Sub-commands::

    stackforge create [NAME] [--yes | --stack [FILE]] [feature flags...]
    stackforge add FEATURE [PROVIDER] [--project DIR]
    stackforge templates [--remote]
    stackforge fetch NAME [--force]
"""

from __future__ import annotations

import argparse
import asyncio
import time
from pathlib import Path
from typing import Any, Sequence

from pydantic import ValidationError

from stackforge import __version__
from stackforge.config import (
    ORM,
    AuthProvider,
    BaaS,
    DatabaseType,
    MailingProvider,
    PackageManager,
    ProjectConfiguration,
    Settings,
    UILibrary,
)
from stackforge.prompts import ask_configuration, confirm_configuration
from stackforge.remote_templates import RemoteTemplateError, RemoteTemplateFetcher
from stackforge.scaffolder import (
    FeatureAdder,
    ProjectGenerator,
    ScaffoldError,
    ScaffoldResult,
    TemplateCatalog,
)
from stackforge.stack_config import format_validation_errors, load_stack_config
from stackforge.utils import (
    console,
    format_duration,
    print_error,
    print_info,
    print_signal,
    print_success,
    print_summary_table,
    print_warning,
)

DEFAULT_STACK_FILE = ".stack"


def _values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--templates-dir",
        type=Path,
        default=None,
        help="Template catalog directory (default: bundled templates)",
    )

    parser = argparse.ArgumentParser(
        prog="stackforge",
        description="stackforge -- compose a Next.js project from feature templates",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  stackforge create\n"
            "  stackforge create demo --yes --db-type postgresql --orm drizzle --auth --ui shadcn\n"
            "  stackforge create --stack demo/.stackrc\n"
            "  stackforge add mailing resend --project demo\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # -- create ------------------------------------------------------------
    create = subparsers.add_parser("create", parents=[common], help="Create a new project")
    create.add_argument("name", nargs="?", default=None, help="Project name")
    create.add_argument(
        "--yes", "-y",
        action="store_true",
        help="Skip prompts and build the configuration from flags",
    )
    create.add_argument(
        "--stack", "-s",
        nargs="?",
        const=DEFAULT_STACK_FILE,
        default=None,
        help=f"Replay a saved stack configuration (default: {DEFAULT_STACK_FILE})",
    )
    create.add_argument(
        "--output", "-o",
        type=Path,
        default=Path("."),
        help="Parent directory of the new project (default: current directory)",
    )
    create.add_argument("--ui", choices=_values(UILibrary), default=None)
    create.add_argument("--db-type", "--dbType", dest="db_type", choices=_values(DatabaseType))
    create.add_argument("--db-provider", "--dbProvider", dest="db_provider", default=None)
    create.add_argument("--orm", choices=_values(ORM), default=None)
    create.add_argument("--baas", choices=_values(BaaS), default=None)
    create.add_argument("--auth", action="store_true", help="Include authentication")
    create.add_argument(
        "--auth-provider", "--authProvider",
        dest="auth_provider",
        choices=_values(AuthProvider),
        default=None,
    )
    create.add_argument("--mailing", action="store_true", help="Include mailing")
    create.add_argument(
        "--mailing-provider", "--mailingProvider",
        dest="mailing_provider",
        choices=_values(MailingProvider),
        default=None,
    )
    create.add_argument("--install", action="store_true", help="Install dependencies")
    create.add_argument("--pm", choices=_values(PackageManager), default=None)

    # -- add ---------------------------------------------------------------
    add = subparsers.add_parser(
        "add", parents=[common], help="Add a feature to an existing project"
    )
    add.add_argument("feature", help="auth, mailing, or a provider name such as 'resend'")
    add.add_argument("provider", nargs="?", default=None, help="Provider for the feature")
    add.add_argument(
        "--project", "-p",
        type=Path,
        default=Path("."),
        help="Project directory (default: current directory)",
    )

    # -- templates ---------------------------------------------------------
    templates = subparsers.add_parser(
        "templates", parents=[common], help="List available templates"
    )
    templates.add_argument(
        "--remote", action="store_true", help="List templates of the remote repository"
    )

    # -- fetch -------------------------------------------------------------
    fetch = subparsers.add_parser("fetch", help="Download a remote template into the cache")
    fetch.add_argument("name", help="Template name")
    fetch.add_argument("--force", action="store_true", help="Ignore the local cache")

    return parser


def configuration_from_flags(args: argparse.Namespace) -> dict[str, Any]:
    """Build camelCase configuration data from ``create`` flags."""
    database_type = args.db_type or DatabaseType.NONE.value
    data: dict[str, Any] = {
        "name": args.name or "my-app",
        "ui": args.ui or UILibrary.NONE.value,
        "databaseType": database_type,
        "databaseProvider": args.db_provider
        or ("default" if database_type != DatabaseType.NONE.value else "none"),
        "orm": args.orm or ORM.NONE.value,
        "baas": args.baas or BaaS.NONE.value,
        "auth": args.auth or args.auth_provider is not None,
        "mailing": args.mailing or args.mailing_provider is not None,
        "installDeps": args.install,
    }
    if args.auth_provider:
        data["authProvider"] = args.auth_provider
    if args.mailing_provider:
        data["mailingProvider"] = args.mailing_provider
    if args.install:
        data["packageManager"] = args.pm or PackageManager.NPM.value
    return data


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "templates_dir", None) is not None:
        settings = settings.model_copy(update={"templates_dir": args.templates_dir})
    return settings


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------


def print_configuration(config: ProjectConfiguration) -> None:
    rows: dict[str, str] = {"Project": config.name, "UI Library": config.ui.value}
    if config.has_database:
        rows["Database Type"] = config.database_type.value
        rows["Database Provider"] = config.database_provider
        rows["ORM"] = config.orm.value
    else:
        rows["Database"] = "None"
    if config.baas is not BaaS.NONE:
        rows["BaaS"] = config.baas.value
    rows["Auth"] = "Yes" if config.auth else "No"
    if config.effective_auth_provider is not None:
        rows["Auth Provider"] = config.effective_auth_provider.value
    rows["Mailing"] = "Yes" if config.mailing else "No"
    if config.effective_mailing_provider is not None:
        rows["Mailing Provider"] = config.effective_mailing_provider.value
    rows["Install Dependencies"] = "Yes" if config.install_deps else "No"
    if config.install_deps:
        rows["Package Manager"] = (config.package_manager or PackageManager.NPM).value
    print_summary_table(rows, title="Stack configuration")


def print_next_steps(config: ProjectConfiguration, result: ScaffoldResult) -> None:
    pm = (config.package_manager or PackageManager.NPM).value
    installed = result.install is not None and result.install.success
    console.print()
    print_success("All done! Your stack app is ready.")
    console.print("\nTo get started:")
    console.print(f"  cd {config.name}")
    if not installed:
        console.print(f"  {pm} install")
    console.print(f"  {pm} run dev")
    if result.state_file is not None:
        console.print(
            f"\nThe configuration has been saved to [cyan]{result.state_file.name}[/cyan]. "
            "Reuse it with:"
        )
        console.print(f"  [cyan]stackforge create --stack {config.name}/{result.state_file.name}[/cyan]")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _resolve_configuration(args: argparse.Namespace) -> ProjectConfiguration | None:
    if args.stack is not None:
        stack_path = Path(args.stack)
        print_info(f"Loading configuration from {stack_path}")
        loaded = load_stack_config(stack_path)
        if loaded.config is None:
            print_error(f"Couldn't load configuration from {stack_path}")
            for message in loaded.errors:
                print_error(f"  {message}")
            return None
        config = loaded.config
        if args.name:
            config = config.model_copy(update={"name": args.name})
        print_success("Successfully loaded stack configuration!")
        return config

    data = configuration_from_flags(args) if args.yes else ask_configuration(args.name)
    try:
        return ProjectConfiguration.model_validate(data)
    except ValidationError as exc:
        print_error("Invalid project configuration")
        for message in format_validation_errors(exc):
            print_error(f"  {message}")
        return None


def cmd_create(args: argparse.Namespace) -> int:
    config = _resolve_configuration(args)
    if config is None:
        return 1

    print_configuration(config)
    interactive = not args.yes and args.stack is None
    if interactive and not confirm_configuration():
        print_warning("Operation cancelled. Run the command again to restart.")
        return 0

    settings = _settings_for(args)
    generator = ProjectGenerator(config, settings)
    print_info("Creating your project...")
    start = time.monotonic()
    try:
        result = asyncio.run(generator.generate(args.output))
    except (ScaffoldError, OSError, ValueError) as exc:
        print_error(f"Error: {exc}")
        return 1
    elapsed = time.monotonic() - start

    for signal in result.signals:
        print_signal(signal.level, signal.message)
    if result.substitution.has_unresolved:
        print_warning("Edit the files above and replace the remaining {{ ... }} placeholders.")
    print_info(
        f"Composed {', '.join(result.fragment_names)} into {result.project_dir} "
        f"in {format_duration(elapsed)}"
    )
    print_next_steps(config, result)
    return 0


def cmd_add(args: argparse.Namespace) -> int:
    settings = _settings_for(args)
    adder = FeatureAdder(TemplateCatalog(settings.templates_dir), settings)
    result = asyncio.run(adder.add(args.project, args.feature, args.provider))
    for signal in result.signals:
        print_signal(signal.level, signal.message)
    if not result.success:
        print_error(f"Error: {result.error}")
        return 1
    print_success(f"Added {result.provider} {result.feature} to {args.project}")
    if result.copy is not None and result.copy.skipped:
        print_warning(f"Kept existing files: {', '.join(result.copy.skipped)}")
    return 0


def cmd_templates(args: argparse.Namespace) -> int:
    settings = _settings_for(args)
    if args.remote:
        names = asyncio.run(RemoteTemplateFetcher(settings.remote).list_templates())
        source = settings.remote.repository or "remote"
    else:
        names = TemplateCatalog(settings.templates_dir).names()
        source = str(settings.templates_dir)
    if not names:
        print_warning(f"No templates found in {source}")
        return 0
    print_summary_table({name: source for name in names}, title="Templates")
    return 0


def cmd_fetch(args: argparse.Namespace) -> int:
    settings = Settings.from_env()
    fetcher = RemoteTemplateFetcher(settings.remote)
    try:
        path = asyncio.run(fetcher.fetch(args.name, force=args.force))
    except RemoteTemplateError as exc:
        print_error(f"Error: {exc}")
        return 1
    print_success(f"Template '{args.name}' available at {path}")
    return 0


COMMANDS = {
    "create": cmd_create,
    "add": cmd_add,
    "templates": cmd_templates,
    "fetch": cmd_fetch,
}


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point for ``stackforge`` / ``python -m stackforge``."""
    parser = build_parser()
    args = parser.parse_args(argv)
    return COMMANDS[args.command](args)
