"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from portfolio_admin.core.portfolio import PortfolioSnapshot
from portfolio_admin.exceptions import ValidationError
from portfolio_admin.models.config import AppConfig
from portfolio_admin.models.records import (
    ContactInfo,
    Project,
    Record,
    RecordKind,
    Settings,
    Skill,
    SocialLink,
)
from portfolio_admin.models.stats import CacheStats
from portfolio_admin.utils.contact_value import classify_contact_value, contact_href
from portfolio_admin.utils.formatting import (
    format_level_bar,
    format_timestamp,
    mask_secret,
    truncate,
)

SECRET_KEYS = ("store_key", "mail_public_key")


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "StoreError": [
            "• The store rejected the request; check the values you sent.",
            "• Row-level security may block writes with the public key.",
            "• Run with -vv to see the store's error code and details.",
        ],
        "NetworkError": [
            "• Check your internet connection.",
            "• Verify the store URL with `portfolio-admin validate`.",
            "• Run `portfolio-admin diagnose` to test connectivity.",
        ],
        "ConfigurationError": [
            "• Run `portfolio-admin init <STORE_URL> <STORE_KEY>`.",
            "• Or set PORTFOLIO_STORE_URL and PORTFOLIO_STORE_KEY.",
        ],
        "MailRelayError": [
            "• Save relay credentials with `portfolio-admin settings`.",
            "• Check the EmailJS service, template and public key.",
        ],
        "CooldownError": [
            "• Only one message per minute can be sent.",
        ],
        "UnsupportedOperationError": [
            "• Use `portfolio-admin settings` to read or change settings.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_field_errors(error: ValidationError):
    """Displays one line per invalid field."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold yellow")
    table.add_column(style="red")
    for field, message in sorted(error.field_errors.items()):
        table.add_row(escape(field), escape(message))

    console.print(
        Panel(
            table,
            title="[bold red]Please fix the highlighted fields[/bold red]",
            border_style="red",
            expand=False,
        )
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        if key in SECRET_KEYS:
            value = "[hidden]" if value else ""
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: AppConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Store URL:", f"[green]{escape(config.store_url)}[/green]")
    table.add_row("Store Key:", mask_secret(config.store_key))
    table.add_row("Request Timeout:", f"{config.request_timeout}s")
    table.add_row(
        "Mail Relay:",
        "✓ Configured" if config.mail_configured else "✗ Not configured",
    )

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def _links(*urls: str | None) -> str:
    return "\n".join(escape(u) for u in urls if u) or "[dim]-[/dim]"


def _project_table(records: list[Project]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Technologies")
    table.add_column("Featured", justify="center")
    table.add_column("Links")
    table.add_column("Created", style="dim")
    for p in records:
        table.add_row(
            str(p.id),
            escape(p.title),
            escape(", ".join(p.technologies)),
            "[yellow]★[/yellow]" if p.featured else "",
            _links(p.github, p.demo),
            format_timestamp(p.created_at),
        )
    return table


def _skill_table(records: list[Skill]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("Category")
    table.add_column("Level", style="green")
    table.add_column("Icon", justify="center")
    for s in records:
        table.add_row(
            str(s.id),
            escape(s.name),
            escape(s.category.lower()),
            format_level_bar(s.level),
            escape(s.icon or ""),
        )
    return table


def _social_table(records: list[SocialLink]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Icon", justify="center")
    for link in records:
        table.add_row(str(link.id), escape(link.name), escape(link.url), escape(link.icon))
    return table


def _contact_table(records: list[ContactInfo]) -> Table:
    table = Table(box=box.SIMPLE_HEAVY)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Value")
    table.add_column("Type", style="magenta")
    table.add_column("Link", style="dim")
    table.add_column("Description")
    for info in records:
        table.add_row(
            str(info.id),
            escape(info.title),
            escape(info.value),
            classify_contact_value(info.value).value,
            escape(contact_href(info.value) or "-"),
            escape(truncate(info.description)),
        )
    return table


TABLE_BUILDERS = {
    RecordKind.PROJECTS: _project_table,
    RecordKind.SKILLS: _skill_table,
    RecordKind.SOCIAL_LINKS: _social_table,
    RecordKind.CONTACT_INFO: _contact_table,
}


def print_records(kind: RecordKind, records: list[Record], stale_error: Any = None):
    """Displays the records of one kind as a table."""
    console = Console()
    label = kind.info.label

    if stale_error is not None:
        console.print(
            f"[yellow]⚠️  Could not refresh {label.lower()}: "
            f"{escape(str(stale_error))}[/yellow]"
        )
    if not records:
        console.print(f"[dim]No {label.lower()} yet.[/dim]")
        return

    table = TABLE_BUILDERS[kind](records)
    table.title = f"{label} ({len(records)})"
    console.print(table)


def print_record_saved(kind: RecordKind, record: Record, action: str):
    """Confirms a successful write."""
    console = Console()
    name = getattr(record, "title", None) or getattr(record, "name", None) or ""
    console.print(
        f"[green]✓ {kind.info.label}: {action} #{record.id}[/green] "
        f"{escape(str(name))}"
    )


def print_settings(settings: Settings):
    """Displays the settings record, hiding the relay public key."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("Theme:", escape(settings.theme))
    table.add_row(
        "Mail Service ID:", escape(settings.emailjs_service_id or "") or "[dim]not set[/dim]"
    )
    table.add_row(
        "Mail Template ID:",
        escape(settings.emailjs_template_id or "") or "[dim]not set[/dim]",
    )
    table.add_row("Mail Public Key:", mask_secret(settings.emailjs_public_key))
    table.add_row("Last Updated:", format_timestamp(settings.updated_at))

    console.print(Panel(table, title="[bold]Settings[/bold]", border_style="cyan"))


def print_overview(snapshot: PortfolioSnapshot, stats: CacheStats | None = None):
    """Displays record counts per kind and, optionally, cache statistics."""
    console = Console()

    counts = Table(show_header=False, box=None, padding=(0, 2))
    counts.add_column(style="bold cyan", justify="right", width=16)
    counts.add_column(style="bold green")
    for kind, count in snapshot.counts().items():
        counts.add_row(f"{kind.info.label}:", str(count))

    counts.add_row("", "")
    counts.add_row("Featured:", str(len(snapshot.featured_projects())))
    categories = snapshot.skill_categories()[1:]
    counts.add_row("Categories:", escape(", ".join(categories)) or "-")
    counts.add_row("Primary Email:", escape(snapshot.primary_email()) or "-")

    if stats is not None:
        counts.add_row("", "")
        counts.add_row("Fetches:", str(stats.fetches))
        counts.add_row("Cache Hits:", f"{stats.hits} ({stats.hit_ratio:.0%})")

    console.print(
        Panel(
            counts,
            title="📊 [bold]Overview[/bold]",
            border_style="green",
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )

    for kind_name, error in snapshot.errors.items():
        console.print(
            f"[yellow]⚠️  {escape(kind_name)} could not be loaded: "
            f"{escape(str(error))}[/yellow]"
        )
