"""
Defines the command-line interface for the application using Typer.

The commands here are the form boundary of the back office: validation errors
are rendered per field, store and network failures as one error panel.
"""

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Coroutine
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from portfolio_admin import __version__
from portfolio_admin.api.client import StoreClient
from portfolio_admin.api.mail import MailRelayClient
from portfolio_admin.core.contact import ContactFormService
from portfolio_admin.core.portfolio import PortfolioSnapshot, load_snapshot
from portfolio_admin.core.repository import PortfolioRepository
from portfolio_admin.exceptions import (
    NetworkError,
    PortfolioError,
    StoreError,
    ValidationError,
)
from portfolio_admin.models.config import AppConfig
from portfolio_admin.models.records import RecordKind
from portfolio_admin.storage.cache import QueryCache
from portfolio_admin.storage.config_manager import ConfigManager
from portfolio_admin.storage.cooldown import SubmissionCooldown
from portfolio_admin.utils.structured_logger import create_data_access_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_field_errors,
    print_overview,
    print_record_saved,
    print_records,
    print_settings,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("portfolio_admin")

app = typer.Typer(
    name="portfolio-admin",
    help=(
        "Manage the projects, skills, links, contact details and settings of a"
        " portfolio site. Use 'portfolio-admin <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)

KIND_HELP = "Record kind: projects, skills, social-links, contact-info or settings."


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "portfolio-admin"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _parse_kind(name: str) -> RecordKind:
    try:
        return RecordKind.parse(name)
    except ValueError as e:
        raise typer.BadParameter(str(e), param_hint="KIND") from e


def parse_assignments(assignments: list[str]) -> dict[str, Any]:
    """Turns ['title=My App', 'featured=true'] into a field mapping."""
    fields: dict[str, Any] = {}
    for item in assignments:
        key, sep, value = item.partition("=")
        key = key.strip().replace("-", "_")
        if not sep or not key:
            raise typer.BadParameter(
                f"Expected field=value, got '{item}'.", param_hint="--set"
            )
        fields[key] = value
    return fields


@asynccontextmanager
async def open_repository(
    ctx: typer.Context,
) -> AsyncIterator[tuple[PortfolioRepository, AppConfig]]:
    """Loads the configuration and yields a repository bound to the store."""
    config = ConfigManager(CONFIG_FILE).load_config()
    log_dir: Optional[Path] = (ctx.obj or {}).get("log_dir")
    base_logger, events = create_data_access_logger(
        log_dir=log_dir, enable_json=log_dir is not None
    )
    store = StoreClient(config.store_url, config.store_key, config.request_timeout)
    try:
        yield PortfolioRepository(store, QueryCache(), events), config
    finally:
        await store.close()
        base_logger.close()


def run_at_form_boundary(coro: Coroutine[Any, Any, Any]) -> Any:
    """Runs a command and renders any failure it raises."""
    try:
        return asyncio.run(coro)
    except ValidationError as e:
        print_field_errors(e)
        raise typer.Exit(code=1) from e
    except (StoreError, NetworkError) as e:
        log.debug(
            f"{e.kind} failure: {e.message} "
            f"(code={getattr(e, 'code', None)}, details={getattr(e, 'details', None)})"
        )
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    except PortfolioError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    log_dir: Optional[Path] = typer.Option(
        None,
        "--log-dir",
        help="Also write data-access events as JSON lines into this directory.",
    ),
):
    """Portfolio back office CLI"""
    if version:
        console.print(
            f"[bold]portfolio-admin[/bold] version [cyan]{__version__}[/cyan]"
        )
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("portfolio_admin").setLevel(log_level)

    ctx.obj = {"log_dir": log_dir}

    if show_config:
        config_manager = ConfigManager(CONFIG_FILE)
        try:
            config_data = config_manager.get_raw_config()
        except PortfolioError as e:
            console.print(f"[red]✗ {e}[/red]")
            raise typer.Exit(code=1) from e
        print_config(CONFIG_FILE, config_data)
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    store_url: str = typer.Argument(..., help="Project URL of the hosted store."),
    store_key: str = typer.Argument(..., help="Public (anon) API key of the store."),
    mail_service_id: str = typer.Option("", help="Default EmailJS service ID."),
    mail_template_id: str = typer.Option("", help="Default EmailJS template ID."),
    mail_public_key: str = typer.Option("", help="Default EmailJS public key."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Initialize configuration with the store's URL and key."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "store_url": store_url,
        "store_key": store_key,
        "mail_service_id": mail_service_id,
        "mail_template_id": mail_template_id,
        "mail_public_key": mail_public_key,
    }
    config_manager = ConfigManager(CONFIG_FILE)
    try:
        config_manager.save_new_config(settings)
        config_manager.load_config()
    except PortfolioError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Try: [cyan]portfolio-admin overview[/cyan]")


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except PortfolioError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    kind_name: str = typer.Argument(..., metavar="KIND", help=KIND_HELP),
    category: Optional[str] = typer.Option(
        None,
        "--category",
        "-c",
        help="Only skills in this category ('all' for every one).",
    ),
):
    """List the records of one kind."""
    kind = _parse_kind(kind_name)
    if category is not None and kind is not RecordKind.SKILLS:
        raise typer.BadParameter(
            "Only skills can be filtered by category.", param_hint="--category"
        )

    async def _list():
        async with open_repository(ctx) as (repo, _):
            if kind is RecordKind.SETTINGS:
                print_settings(await repo.get_settings())
                return
            state = await repo.list(kind)
            if state.error is not None and state.data is None:
                raise state.error
            records = state.data or []
            if category is not None:
                snapshot = PortfolioSnapshot(states={kind: state})
                records = snapshot.skills_in_category(category)
                log.info(f"Categories: {', '.join(snapshot.skill_categories())}")
            print_records(kind, records, stale_error=state.error)

    run_at_form_boundary(_list())


@app.command()
def create(
    ctx: typer.Context,
    kind_name: str = typer.Argument(..., metavar="KIND", help=KIND_HELP),
    assignments: list[str] = typer.Option(  # noqa: B008
        [],
        "--set",
        "-s",
        help="Field value as field=value. Repeat for each field.",
    ),
):
    """Create a record."""
    kind = _parse_kind(kind_name)
    fields = parse_assignments(assignments)

    async def _create():
        async with open_repository(ctx) as (repo, _):
            record = await repo.create(kind, fields)
            print_record_saved(kind, record, "created")

    run_at_form_boundary(_create())


@app.command()
def update(
    ctx: typer.Context,
    kind_name: str = typer.Argument(..., metavar="KIND", help=KIND_HELP),
    record_id: int = typer.Argument(..., metavar="ID", help="ID of the record."),
    assignments: list[str] = typer.Option(  # noqa: B008
        [],
        "--set",
        "-s",
        help="Field value as field=value. Repeat for each field.",
    ),
):
    """Update some fields of a record."""
    kind = _parse_kind(kind_name)
    fields = parse_assignments(assignments)

    async def _update():
        async with open_repository(ctx) as (repo, _):
            record = await repo.update(kind, record_id, fields)
            print_record_saved(kind, record, "updated")

    run_at_form_boundary(_update())


@app.command()
def delete(
    ctx: typer.Context,
    kind_name: str = typer.Argument(..., metavar="KIND", help=KIND_HELP),
    record_id: int = typer.Argument(..., metavar="ID", help="ID of the record."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass the confirmation prompt."
    ),
):
    """Delete a record."""
    kind = _parse_kind(kind_name)
    if not force and not typer.confirm(
        f"Are you sure you want to delete {kind.info.label.lower()} #{record_id}?"
    ):
        console.print("[yellow]Operation cancelled.[/yellow]")
        raise typer.Abort()

    async def _delete():
        async with open_repository(ctx) as (repo, _):
            await repo.remove(kind, record_id)
            console.print(f"[green]✓ {kind.info.label}: deleted #{record_id}[/green]")

    run_at_form_boundary(_delete())


@app.command()
def settings(
    ctx: typer.Context,
    theme: Optional[str] = typer.Option(None, help="Site theme: dark or light."),
    mail_service_id: Optional[str] = typer.Option(
        None, help="EmailJS service ID ('' to clear)."
    ),
    mail_template_id: Optional[str] = typer.Option(
        None, help="EmailJS template ID ('' to clear)."
    ),
    mail_public_key: Optional[str] = typer.Option(
        None, help="EmailJS public key ('' to clear)."
    ),
):
    """Show the site settings, or change them when options are given."""
    changes = {
        key: value
        for key, value in {
            "theme": theme,
            "emailjs_service_id": mail_service_id,
            "emailjs_template_id": mail_template_id,
            "emailjs_public_key": mail_public_key,
        }.items()
        if value is not None
    }

    async def _settings():
        async with open_repository(ctx) as (repo, _):
            if changes:
                saved = await repo.upsert_settings(changes)
                console.print("[green]✓ Settings saved.[/green]")
                print_settings(saved)
            else:
                print_settings(await repo.get_settings())

    run_at_form_boundary(_settings())


@app.command()
def overview(ctx: typer.Context):
    """Show how many records of each kind exist."""

    async def _overview():
        async with open_repository(ctx) as (repo, _):
            snapshot = await load_snapshot(repo)
            print_overview(snapshot, repo.cache.stats)

    run_at_form_boundary(_overview())


@app.command(name="send-message")
def send_message(
    ctx: typer.Context,
    name: str = typer.Option(..., help="Sender name."),
    email: str = typer.Option(..., help="Sender email address."),
    subject: str = typer.Option(..., help="Message subject."),
    message: str = typer.Option(..., help="Message body."),
    honeypot: str = typer.Option("", hidden=True),
):
    """Send a message through the contact form's mail relay."""

    async def _send():
        async with open_repository(ctx) as (repo, config):
            mail_client = MailRelayClient(timeout=config.request_timeout)
            service = ContactFormService(
                repo, mail_client, SubmissionCooldown(CONFIG_DIR), config
            )
            try:
                sent = await service.submit(
                    {
                        "name": name,
                        "email": email,
                        "subject": subject,
                        "message": message,
                    },
                    honeypot=honeypot,
                )
            finally:
                await mail_client.close()
            if sent:
                console.print("[green]✓ Message sent.[/green]")

    run_at_form_boundary(_send())


@app.command()
def diagnose():
    """Diagnose common configuration and connectivity issues."""
    console.print("\n[bold cyan]Running diagnostics...[/bold cyan]\n")
    issues_found = False
    if CONFIG_FILE.is_file():
        console.print(f"[green]✓[/] Config file exists at: [dim]{CONFIG_FILE}[/dim]")
    else:
        console.print(
            "[yellow]![/] No config file; relying on PORTFOLIO_* environment variables."
        )
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        console.print("[green]✓[/] Configuration is valid and can be loaded.")
    except PortfolioError as e:
        console.print(f"[red]✗ Configuration validation failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    if config.mail_configured:
        console.print("[green]✓[/] Default mail relay credentials are present.")
    else:
        console.print(
            "[yellow]![/] No default mail relay credentials; the settings record"
            " must provide them."
        )

    console.print("\n[dim]Testing connectivity to the store...[/dim]")

    async def test_connection() -> bool:
        async with StoreClient(
            config.store_url, config.store_key, timeout=10
        ) as store:
            return await store.ping()

    if asyncio.run(test_connection()):
        console.print("[green]✓[/] Successfully connected to the store.")
    else:
        console.print("[red]✗ Could not connect to the store.[/red]")
        issues_found = True

    console.print()
    if not issues_found:
        console.print(
            "[bold green]✓ All checks passed! Your setup looks good.[/bold green]\n"
        )
    else:
        console.print(
            "[bold red]✗ Some issues were found. "
            "Please review the messages above.[/bold red]\n"
        )
        raise typer.Exit(code=1)
