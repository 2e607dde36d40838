"""Long-running service: webhook listener and event dispatcher on one event loop."""

import asyncio
import logging

import uvicorn

from gib.bot import GitBot
from gib.errors import FeaturesError
from gib.features.registry import build_features, compute_enabled_features
from gib.hosts.base import GitHost
from gib.hosts.github import GitHubHost
from gib.llm.base import Llm
from gib.llm.openai import OpenAiLlm
from gib.models import Event
from gib.settings import GibSettings
from gib.webhook import create_app

logger = logging.getLogger(__name__)

# Webhook deliveries block once this many events are waiting.
EVENT_QUEUE_SIZE = 2


def build_host(settings: GibSettings) -> GitHost:
    match settings.githost:
        case "github":
            return GitHubHost(settings)
        case _:
            raise ValueError(f"Unknown git host '{settings.githost}'. Valid: github")


def build_llm(settings: GibSettings) -> Llm:
    match settings.llm:
        case "openai":
            if settings.llm_api_key is None:
                raise ValueError("llm_api_key is required for the openai backend")
            return OpenAiLlm(settings.llm_api_key, settings.llm_model, settings.llm_api_base_url)
        case _:
            raise ValueError(f"Unknown LLM backend '{settings.llm}'. Valid: openai")


def build_bot(settings: GibSettings, host: GitHost, llm: Llm) -> GitBot:
    kinds = compute_enabled_features(settings.allow_list, settings.features)
    return GitBot(host, build_features(kinds, llm, settings), concurrent=settings.concurrent_features)


def log_features_error(event: Event, error: FeaturesError) -> None:
    for name, feature_error in error.errors.items():
        logger.error(
            "Feature '%s' failed on repo %s issue %s (%s): %s",
            name,
            event.repo_id,
            event.issue_id,
            feature_error.kind,
            feature_error.cause,
        )


async def dispatch_events(bot: GitBot, queue: "asyncio.Queue[Event | None]") -> None:
    """Process queued events in order until a None sentinel arrives."""
    while True:
        event = await queue.get()
        try:
            if event is None:
                logger.info("Dispatcher stopping")
                return
            await bot.process_event(event)
        except FeaturesError as exc:
            log_features_error(event, exc)
        finally:
            queue.task_done()


async def serve(settings: GibSettings) -> None:
    host = build_host(settings)
    try:
        llm = build_llm(settings)
    except Exception:
        await host.aclose()
        raise
    try:
        bot = build_bot(settings, host, llm)
        queue: asyncio.Queue[Event | None] = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)
        secret = settings.webhook_secret.get_secret_value() if settings.webhook_secret else None
        app = create_app(queue, secret)

        server = uvicorn.Server(
            uvicorn.Config(app, host=settings.webhook_host, port=settings.webhook_port, log_config=None)
        )
        dispatcher = asyncio.create_task(dispatch_events(bot, queue))
        logger.info("Listening for webhooks on %s:%s", settings.webhook_host, settings.webhook_port)
        try:
            await server.serve()
        finally:
            # The listener is down; let queued events drain, then stop the dispatcher.
            await queue.put(None)
            await dispatcher
    finally:
        await host.aclose()
        await llm.aclose()
