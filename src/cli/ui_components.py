"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Cada estado del gate / chat tiene exactamente un renderizado.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import (
    Failure,
    FeedbackRating,
    FeedbackRow,
    Message,
    Offers,
    Paywall,
    Profile,
    Role,
)
from core.services.entitlement import EntitlementModel
from core.services.gate import GateState, GateView
from core.services.navigation import AppShell

_PLACEHOLDER = "—"


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida."""

    title = Text("Get Design Strategy", style="bold cyan")
    subtitle = Text("Your design business strategist, on demand", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def failure_text(failure: Failure) -> Text:
    return Text(failure.message, style="bold red")


def build_gate_panel(view: GateView) -> Panel:
    """Panel para cualquier estado del gate distinto de `profile_ready`."""

    if view.state is GateState.LOADING or view.state is GateState.PROFILE_LOADING:
        return Panel(Text("Loading…", style="dim"), border_style="dim")
    if view.state is GateState.UNAUTHENTICATED:
        body = Text("You are not logged in.\n", style="bold")
        body.append("Run `gds login` to receive a login code by email.", style="dim")
        return Panel(body, title="Login", border_style="yellow")
    if view.state is GateState.PROFILE_MISSING:
        body = Text("Welcome — let's set your baseline.\n", style="bold")
        body.append(
            "Onboarding takes ~2 minutes and is required so the strategist stays consistent "
            "and tailored to your business. Run `gds onboard`.",
            style="dim",
        )
        if view.notice:
            body.append(f"\n\n{view.notice}", style="yellow")
        if view.failure:
            body.append("\n\n")
            body.append_text(failure_text(view.failure))
        return Panel(body, title="Onboarding", border_style="yellow")
    if view.state is GateState.PROFILE_ERROR:
        body = Text("Could not load your profile.\n")
        if view.failure:
            body.append_text(failure_text(view.failure))
        return Panel(body, title="Error", border_style="red")

    who = view.session.user_id or "you"
    role = " (admin)" if view.session.is_admin else ""
    return Panel(Text(f"Logged in as {who}{role}.", style="green"), border_style="green")


def build_header(shell: AppShell) -> Panel:
    body = Text(shell.title, style="bold")
    body.append(f"\n{shell.subtitle}", style="dim")
    nav = " · ".join(page.value for page in shell.visible_pages())
    return Panel(body, subtitle=nav, border_style="cyan")


def build_profile_panel(profile: Profile | None) -> Panel:
    """Resumen de solo lectura del onboarding (placeholder si no hay payload)."""

    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim", no_wrap=True)
    table.add_column(style="bold")

    answers = profile.answers() if profile else dict.fromkeys(Profile().answers())
    for label, value in answers.items():
        table.add_row(label, value or _PLACEHOLDER)

    details = (profile.details if profile else None) or _PLACEHOLDER
    footer = Text(
        "These answers are intentionally locked to keep guidance consistent.",
        style="dim",
    )
    body = Group(
        table,
        Text("\nDetails (what you tried)", style="dim"),
        Text(details),
        Text(""),
        footer,
    )
    return Panel(body, title="Your onboarding profile (read-only)", border_style="white")


def render_message(message: Message) -> Panel:
    if message.role is Role.ASSISTANT:
        return Panel(Text(message.content), title="strategist", title_align="left", border_style="magenta")
    return Panel(Text(message.content), title="you", title_align="right", border_style="blue")


def build_plan_table(entitlement: EntitlementModel) -> Table:
    table = Table(title="Plan")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    plan = entitlement.plan
    table.add_row("Plan", plan.value if plan else "unknown")
    sub = entitlement.subscription
    if sub is not None:
        table.add_row("Status", sub.status or ("active" if sub.active else "inactive"))
        if sub.current_period_end:
            table.add_row("Renews / ends", sub.current_period_end.strftime("%Y-%m-%d"))
    remaining = entitlement.remaining
    if plan is not None and plan.is_paid:
        table.add_row("Messages", "unlimited")
    else:
        table.add_row("Free messages left", _PLACEHOLDER if remaining is None else str(remaining))
    if entitlement.failure:
        table.add_row("Billing", Text(entitlement.failure.message, style="red"))
    return table


def build_offers_table(offers: Offers) -> Table:
    table = Table(title="Upgrade options")
    table.add_column("Plan", style="cyan", no_wrap=True)
    table.add_column("Price", style="white")
    for plan in offers.visible_plans():
        table.add_row(plan.value, offers.price_for(plan) or _PLACEHOLDER)
    return table


def build_paywall_panel(paywall: Paywall, offers: Offers) -> Panel:
    """El paywall siempre ofrece un camino de upgrade."""

    body = Text(paywall.message or paywall.cta, style="bold")
    plans = " | ".join(plan.value for plan in offers.visible_plans()) or "lifetime"
    body.append(f"\n\n{paywall.cta}: /upgrade [{plans}]", style="yellow")
    return Panel(body, title="Upgrade", border_style="yellow")


def build_feedback_table(rows: list[FeedbackRow]) -> Table:
    table = Table(title="Feedback", show_lines=True)
    table.add_column("Rating", no_wrap=True)
    table.add_column("When", style="dim", no_wrap=True)
    table.add_column("User", style="cyan")
    table.add_column("Comment")
    table.add_column("User prompt", style="dim")
    table.add_column("Assistant reply", style="dim")
    for row in rows:
        rating = "👍 Good" if row.rating is FeedbackRating.UP else "👎 Not good"
        when = row.created_at.strftime("%Y-%m-%d %H:%M") if row.created_at else _PLACEHOLDER
        comment = row.comment.strip() if row.comment and row.comment.strip() else _PLACEHOLDER
        table.add_row(
            rating,
            when,
            row.user_email or _PLACEHOLDER,
            comment,
            row.user_prompt or "",
            row.assistant_reply or "",
        )
    return table
