"""gib CLI: run the bot service and poke at it by hand."""

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from gib.bot import GitBot
from gib.errors import FeaturesError, GibError, NoFeaturesSelectedError, UnknownFeatureError
from gib.features.base import FeatureKind
from gib.features.registry import build_feature, compute_enabled_features, parse_feature_names
from gib.log import setup_logging
from gib.models import Event, NewComment, NewIssue
from gib.service import build_bot, build_host, build_llm, serve
from gib.settings import GibSettings, get_settings, load_settings, resolve_config_path

app = typer.Typer(help="gib: LLM-powered git issue bot", no_args_is_help=True)

ConfigOpt = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Config file (default: $GIB_CONFIG_FILE or ~/.config/gib/config.toml)"),
]
CommentIdOpt = Annotated[
    int | None,
    typer.Option("--comment-id", help="Treat the event as a new comment with this id instead of a new issue"),
]
RepoIdArg = Annotated[int, typer.Argument(help="Numeric repository id")]
IssueIdArg = Annotated[int, typer.Argument(help="Issue number")]


def _make_event(repo_id: int, issue_id: int, comment_id: int | None) -> Event:
    kind = NewIssue() if comment_id is None else NewComment(comment_id=comment_id)
    return Event(repo_id=repo_id, issue_id=issue_id, kind=kind)


def _fail(message: str) -> typer.Exit:
    rprint(f"[red]{escape(message)}[/red]")
    return typer.Exit(1)


def _load(config: Path | None) -> GibSettings:
    settings = get_settings(config)
    setup_logging(settings.log_level)
    return settings


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("serve")
def serve_cmd(config: ConfigOpt = None) -> None:
    """Run the webhook listener and the event dispatcher."""
    settings = _load(config)
    try:
        asyncio.run(serve(settings))
    except (GibError, ValueError) as exc:
        raise _fail(str(exc)) from exc


@app.command("process-event")
def process_event(
    repo_id: RepoIdArg,
    issue_id: IssueIdArg,
    comment_id: CommentIdOpt = None,
    config: ConfigOpt = None,
) -> None:
    """Run every enabled feature once on a hand-built event."""
    settings = _load(config)
    event = _make_event(repo_id, issue_id, comment_id)

    async def run() -> tuple[GitBot, FeaturesError | None]:
        host = build_host(settings)
        llm = build_llm(settings)
        try:
            bot = build_bot(settings, host, llm)
            try:
                await bot.process_event(event)
            except FeaturesError as exc:
                return bot, exc
            return bot, None
        finally:
            await host.aclose()
            await llm.aclose()

    try:
        bot, failure = asyncio.run(run())
    except (GibError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    errors = failure.errors if failure else {}
    table = Table(title=f"repo {repo_id} issue {issue_id} ({event.kind.type})")
    table.add_column("Feature", style="cyan")
    table.add_column("Result")
    table.add_column("Error", style="dim")
    for feature in bot.features:
        error = errors.get(feature.name)
        if error is None:
            table.add_row(feature.name, "[green]ok[/green]", "")
        else:
            table.add_row(feature.name, f"[red]{error.kind}[/red]", escape(str(error.cause)))
    rprint(table)

    if errors:
        raise typer.Exit(1)


@app.command("render-prompt")
def render_prompt(
    feature: Annotated[str, typer.Argument(help="Feature name, e.g. improve-issues")],
    repo_id: RepoIdArg,
    issue_id: IssueIdArg,
    comment_id: CommentIdOpt = None,
    config: ConfigOpt = None,
) -> None:
    """Render a feature's prompts for an event without calling the LLM."""
    try:
        (kind,) = parse_feature_names([feature])
    except UnknownFeatureError as exc:
        raise _fail(f"{exc}. Valid: {', '.join(k.value for k in FeatureKind)}") from exc

    settings = _load(config)
    event = _make_event(repo_id, issue_id, comment_id)

    async def run():
        host = build_host(settings)
        llm = build_llm(settings)
        try:
            instance = build_feature(kind, llm, settings)
            context = await instance.build_context(event, host)
            return None if context is None else instance.agent.render(context)
        finally:
            await host.aclose()
            await llm.aclose()

    try:
        prompt = asyncio.run(run())
    except (GibError, ValueError) as exc:
        raise _fail(str(exc)) from exc

    if prompt is None:
        rprint(f"[yellow]{feature} does not react to this event.[/yellow]")
        return
    rprint("[bold]System message[/bold]")
    print(prompt.system_message)
    rprint("[bold]User message[/bold]")
    print(prompt.user_message)


@app.command("list-features")
def list_features(config: ConfigOpt = None) -> None:
    """Show every feature and whether it is enabled."""
    settings = load_settings(config)
    try:
        enabled = compute_enabled_features(settings.allow_list, settings.features)
    except (UnknownFeatureError, NoFeaturesSelectedError) as exc:
        raise _fail(str(exc)) from exc

    table = Table(title="Features")
    table.add_column("Feature", style="cyan")
    table.add_column("Enabled")
    for kind in FeatureKind:
        table.add_row(kind.value, "[green]yes[/green]" if kind in enabled else "[dim]no[/dim]")
    rprint(table)


@app.command("config-show")
def config_show(config: ConfigOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = load_settings(config)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    def secret(val) -> str:
        return mask(val.get_secret_value() if val else None)

    table = Table(title="gib Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("config_file", str(resolve_config_path(config)))
    table.add_row("githost", settings.githost)
    table.add_row("bot_name", settings.bot_name)
    table.add_row("github_auth", settings.github_auth)
    table.add_row("github_token", secret(settings.github_token))
    table.add_row("github_api_url", settings.github_api_url)
    if settings.github_auth == "app":
        table.add_row("github_app_id", str(settings.github_app_id or "[dim](not set)[/dim]"))
        table.add_row("github_installation_id", str(settings.github_installation_id or "[dim](not set)[/dim]"))
        table.add_row("github_private_key_path", str(settings.github_private_key_path or "[dim](not set)[/dim]"))
    table.add_row("llm", settings.llm)
    table.add_row("llm_api_base_url", settings.llm_api_base_url)
    table.add_row("llm_model", settings.llm_model)
    table.add_row("llm_api_key", secret(settings.llm_api_key))
    table.add_row("webhook", f"{settings.webhook_host}:{settings.webhook_port}")
    table.add_row("webhook_secret", secret(settings.webhook_secret))
    table.add_row("allow_list", str(settings.allow_list).lower())
    table.add_row("features", ", ".join(settings.features) or "[dim](none)[/dim]")
    table.add_row("concurrent_features", str(settings.concurrent_features).lower())
    table.add_row("prompts", ", ".join(settings.prompts) or "[dim](defaults)[/dim]")
    table.add_row("log_level", settings.log_level)

    rprint(table)
