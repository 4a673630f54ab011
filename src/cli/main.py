"""CLI principal (Typer).

Every command opens an ``AppContext``, runs the gate and renders exactly one
gate state when the user is not yet allowed into the application shell.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import TypeVar

import typer
from pydantic import ValidationError
from rich.console import Console

from cli import doctor
from cli.ui_components import (
    build_feedback_table,
    build_gate_panel,
    build_header,
    build_offers_table,
    build_paywall_panel,
    build_plan_table,
    build_profile_panel,
    failure_text,
    print_banner,
    render_message,
)
from core.config import AppSettings
from core.domain.choices import (
    BusinessType,
    Goal12Months,
    MainBottleneck,
    MonthlyRevenue,
    PricingModel,
)
from core.domain.models import DETAILS_MIN_LENGTH, FeedbackFilter, OnboardingDraft, Plan
from core.errors import RemoteError
from core.logging_setup import configure_logging
from core.services.app_context import AppContext
from core.services.conversation import SendOutcome
from core.services.gate import GateState
from core.services.navigation import Page

app = typer.Typer(no_args_is_help=True, help="Get Design Strategy client: login, onboarding and the strategist chat.")
app.add_typer(doctor.app, name="doctor")

_console = Console()

ChoiceT = TypeVar("ChoiceT", bound=Enum)


def _settings() -> AppSettings:
    settings = AppSettings()
    configure_logging(settings.log_level)
    return settings


async def _open_ready(ctx: AppContext) -> bool:
    """Run the gate; render the blocking state and return False if not ready."""

    view = await ctx.start()
    if view.is_ready:
        return True
    _console.print(build_gate_panel(view))
    return False


# --- status / session -----------------------------------------------------


async def _status(settings: AppSettings) -> int:
    async with AppContext.open(settings) as ctx:
        if not await _open_ready(ctx):
            return 0
        _console.print(build_gate_panel(ctx.gate.view))
        assert ctx.entitlement is not None and ctx.shell is not None
        await asyncio.gather(ctx.entitlement.refresh(), ctx.entitlement.load_offers())
        if not ctx.gate.is_ready:
            _console.print(build_gate_panel(ctx.gate.view))
            return 1
        _console.print(build_header(ctx.shell))
        _console.print(build_plan_table(ctx.entitlement))
        return 0


@app.command()
def status() -> None:
    """Show the session, onboarding and plan status."""

    raise typer.Exit(code=asyncio.run(_status(_settings())))


async def _login(settings: AppSettings, email: str) -> int:
    async with AppContext.open(settings) as ctx:
        view = await ctx.start()
        if view.state is not GateState.UNAUTHENTICATED:
            _console.print("[green]Already logged in.[/green]")
            _console.print(build_gate_panel(view))
            return 0

        try:
            await ctx.backend.request_login_code(email)
        except RemoteError as exc:
            _console.print(failure_text(exc.to_failure()))
            return 1

        code = ""
        while len(code) != 6 or not code.isdigit():
            code = typer.prompt(f"Enter the 6-digit code sent to {email}").strip()

        try:
            await ctx.backend.verify_login_code(email, code)
        except RemoteError as exc:
            _console.print(failure_text(exc.to_failure()))
            return 1

        view = await ctx.gate.on_logged_in()
        _console.print(build_gate_panel(view))
        return 0 if view.session.is_authenticated else 1


@app.command()
def login(email: str = typer.Option(..., prompt="Email", help="Email that receives the login code.")) -> None:
    """Log in with a one-time code sent by email."""

    raise typer.Exit(code=asyncio.run(_login(_settings(), email.strip())))


async def _logout(settings: AppSettings) -> None:
    async with AppContext.open(settings) as ctx:
        ctx.logout()
    _console.print("[green]Logged out.[/green]")


@app.command()
def logout() -> None:
    """Forget the local session."""

    asyncio.run(_logout(_settings()))


# --- onboarding / profile -------------------------------------------------


def _choose(question: str, choices: type[ChoiceT], default: ChoiceT) -> ChoiceT:
    members = list(choices)
    _console.print(f"\n[bold]{question}[/bold]")
    for index, member in enumerate(members, start=1):
        _console.print(f"  {index}) {member.value}")
    while True:
        picked = typer.prompt("Choose", type=int, default=members.index(default) + 1)
        if 1 <= picked <= len(members):
            return members[picked - 1]
        _console.print(f"[yellow]Pick a number between 1 and {len(members)}.[/yellow]")


def _prompt_draft() -> OnboardingDraft:
    business_type = _choose("1) What best describes your business?", BusinessType, BusinessType.default())
    pricing_model = _choose("2) How do you currently price projects?", PricingModel, PricingModel.default())
    monthly_revenue = _choose("3) Monthly revenue range (average)", MonthlyRevenue, MonthlyRevenue.default())
    main_bottleneck = _choose(
        "4) What is your main growth bottleneck right now?", MainBottleneck, MainBottleneck.default()
    )
    goal = _choose("5) Where do you want to be in 12 months?", Goal12Months, Goal12Months.default())

    _console.print("\n[bold]6) Describe your main problems and what you've tried so far[/bold]")
    _console.print(f"[dim]Minimum {DETAILS_MIN_LENGTH} characters.[/dim]")
    while True:
        details = typer.prompt("Details").strip()
        try:
            return OnboardingDraft(
                business_type=business_type,
                pricing_model=pricing_model,
                monthly_revenue=monthly_revenue,
                main_bottleneck=main_bottleneck,
                goal_12_months=goal,
                details=details,
            )
        except ValidationError:
            _console.print(f"[yellow]Please write at least {DETAILS_MIN_LENGTH} characters ({len(details)} so far).[/yellow]")


async def _onboard(settings: AppSettings) -> int:
    async with AppContext.open(settings) as ctx:
        view = await ctx.start()
        if view.is_ready:
            _console.print("[green]Onboarding already completed; answers are locked.[/green]")
            _console.print(build_profile_panel(view.profile))
            return 0
        if view.state is not GateState.PROFILE_MISSING:
            _console.print(build_gate_panel(view))
            return 1

        while True:
            draft = _prompt_draft()
            confirmed = typer.confirm(
                "These answers will guide all your recommendations and cannot be edited later. Confirm?"
            )
            if not confirmed:
                return 1
            view = await ctx.gate.submit_onboarding(draft)
            if view.is_ready:
                _console.print(build_profile_panel(view.profile))
                return 0
            _console.print(build_gate_panel(view))
            if view.state is not GateState.PROFILE_MISSING or not typer.confirm("Submit again?", default=True):
                return 1


@app.command()
def onboard() -> None:
    """Answer the mandatory onboarding questionnaire (once)."""

    raise typer.Exit(code=asyncio.run(_onboard(_settings())))


async def _profile(settings: AppSettings) -> int:
    async with AppContext.open(settings) as ctx:
        if not await _open_ready(ctx):
            return 1
        assert ctx.shell is not None
        ctx.shell.navigate(Page.PROFILE)
        _console.print(build_header(ctx.shell))
        _console.print(build_profile_panel(ctx.gate.view.profile))
        return 0


@app.command()
def profile() -> None:
    """Show your onboarding answers (read-only)."""

    raise typer.Exit(code=asyncio.run(_profile(_settings())))


# --- billing --------------------------------------------------------------


async def _upgrade(settings: AppSettings, plan: Plan, open_browser: bool) -> int:
    async with AppContext.open(settings) as ctx:
        if not await _open_ready(ctx):
            return 1
        entitlement = ctx.entitlement
        assert entitlement is not None
        offers = await entitlement.load_offers()
        _console.print(build_offers_table(offers))
        if plan not in offers.visible_plans():
            _console.print(f"[yellow]The {plan.value} plan is not offered right now.[/yellow]")
            return 1

        url = await entitlement.start_checkout(plan)
        if url is None:
            if entitlement.checkout_failure:
                _console.print(failure_text(entitlement.checkout_failure))
            elif not ctx.gate.is_ready:
                _console.print(build_gate_panel(ctx.gate.view))
            return 1
        _console.print(f"Complete your purchase at: [link={url}]{url}[/link]")
        if open_browser:
            typer.launch(url)
        return 0


@app.command()
def upgrade(
    plan: Plan = typer.Argument(Plan.LIFETIME, help="monthly or lifetime"),
    open_browser: bool = typer.Option(True, "--open/--no-open", help="Open the checkout page in the browser."),
) -> None:
    """Start a checkout for a paid plan."""

    if not plan.is_paid:
        raise typer.BadParameter("choose monthly or lifetime")
    raise typer.Exit(code=asyncio.run(_upgrade(_settings(), plan, open_browser)))


# --- chat -----------------------------------------------------------------


async def _chat_upgrade(ctx: AppContext, argument: str) -> None:
    entitlement = ctx.entitlement
    if entitlement is None:
        return
    visible = entitlement.offers.visible_plans()
    try:
        plan = Plan(argument) if argument else (visible[-1] if visible else Plan.LIFETIME)
    except ValueError:
        _console.print("[yellow]Usage: /upgrade [monthly|lifetime][/yellow]")
        return
    if not plan.is_paid or plan not in visible:
        _console.print(f"[yellow]The {plan.value} plan is not offered right now.[/yellow]")
        return
    url = await entitlement.start_checkout(plan)
    if url:
        _console.print(f"Complete your purchase at: [link={url}]{url}[/link]")
        typer.launch(url)
    elif entitlement.checkout_failure:
        _console.print(failure_text(entitlement.checkout_failure))


async def _chat(settings: AppSettings) -> int:
    async with AppContext.open(settings) as ctx:
        if not await _open_ready(ctx):
            return 1
        await ctx.enter_chat()
        conversation, entitlement, shell = ctx.conversation, ctx.entitlement, ctx.shell
        if conversation is None or entitlement is None or shell is None:
            _console.print(build_gate_panel(ctx.gate.view))
            return 1

        print_banner(_console)
        _console.print(build_header(shell))
        for message in conversation.messages:
            _console.print(render_message(message))
        _console.print("[dim]Commands: /status, /upgrade [plan], /quit[/dim]")

        while ctx.gate.is_ready:
            try:
                line = await asyncio.to_thread(_console.input, "[bold blue]you ›[/bold blue] ")
            except (EOFError, KeyboardInterrupt):
                break
            line = line.strip()
            if not line:
                continue
            if line in ("/quit", "/exit"):
                break
            if line == "/status":
                _console.print(build_plan_table(entitlement))
                continue
            if line.startswith("/upgrade"):
                await _chat_upgrade(ctx, line.removeprefix("/upgrade").strip())
                continue

            conversation.draft = line
            with _console.status("Thinking…"):
                outcome = await conversation.send()
            if outcome is SendOutcome.SENT:
                _console.print(render_message(conversation.messages[-1]))
            elif outcome is SendOutcome.PAYWALL:
                _console.print(build_paywall_panel(conversation.paywall, entitlement.offers))
            elif outcome is SendOutcome.AUTH_LOST:
                _console.print(build_gate_panel(ctx.gate.view))
            elif conversation.failure is not None:
                _console.print(failure_text(conversation.failure))

        conversation.unmount()
        return 0


@app.command()
def chat() -> None:
    """Chat with your design business strategist."""

    raise typer.Exit(code=asyncio.run(_chat(_settings())))


# --- admin ----------------------------------------------------------------


async def _feedback(settings: AppSettings, rating: FeedbackFilter) -> int:
    async with AppContext.open(settings) as ctx:
        if not await _open_ready(ctx):
            return 1
        board = ctx.feedback_board()
        if board is None:
            _console.print("[red]Feedback is only available to admins.[/red]")
            return 1
        await board.load()
        if board.failure is not None:
            _console.print(failure_text(board.failure))
            return 1
        rows = board.filtered(rating)
        if not rows:
            _console.print("[dim]No feedback yet.[/dim]")
            return 0
        _console.print(build_feedback_table(rows))
        return 0


@app.command()
def feedback(
    rating: FeedbackFilter = typer.Option(FeedbackFilter.ALL, "--rating", "-r", help="all, up or down"),
) -> None:
    """List ratings on assistant replies (admin only)."""

    raise typer.Exit(code=asyncio.run(_feedback(_settings(), rating)))


def run() -> None:
    app()
