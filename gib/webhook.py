"""GitHub webhook listener: turn webhook deliveries into bot events."""

import asyncio
import hashlib
import hmac
import json
import logging
from typing import Any

from fastapi import FastAPI, Request, Response

from gib.models import Event, NewComment, NewIssue

logger = logging.getLogger(__name__)

EVENT_HEADER = "X-GitHub-Event"
SIGNATURE_HEADER = "X-Hub-Signature-256"


class UnsupportedEvent(Exception):
    pass


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Check a ``sha256=<hex>`` signature of body against the shared secret."""
    if not signature or not signature.startswith("sha256="):
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.removeprefix("sha256="))


def event_from_payload(event_type: str, payload: dict[str, Any]) -> Event:
    """Map a webhook delivery to an Event.

    Raises UnsupportedEvent for deliveries the bot does not react to, and
    KeyError / TypeError when a supported delivery is missing required fields.
    """
    action = payload.get("action")
    match event_type, action:
        case "issues", "opened":
            kind = NewIssue()
        case "issue_comment", "created":
            kind = NewComment(comment_id=payload["comment"]["id"])
        case _:
            raise UnsupportedEvent(f"{event_type}.{action}")
    return Event(repo_id=payload["repository"]["id"], issue_id=payload["issue"]["number"], kind=kind)


def create_app(queue: "asyncio.Queue[Event | None]", secret: str | None = None) -> FastAPI:
    app = FastAPI(title="gib webhook", docs_url=None, redoc_url=None, openapi_url=None)

    @app.post("/")
    async def webhook(request: Request) -> Response:
        event_type = request.headers.get(EVENT_HEADER)
        if not event_type:
            logger.warning("Webhook delivery without %s header", EVENT_HEADER)
            return Response(status_code=400)

        body = await request.body()
        if secret and not verify_signature(secret, body, request.headers.get(SIGNATURE_HEADER)):
            logger.warning("Rejected %s delivery with a bad signature", event_type)
            return Response(status_code=401)

        try:
            payload = json.loads(body)
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            logger.warning("Webhook delivery %s is not a JSON object", event_type)
            return Response(status_code=400)

        if event_type == "ping":
            return Response(status_code=200)

        try:
            event = event_from_payload(event_type, payload)
        except UnsupportedEvent as exc:
            logger.info("Unsupported GitHub webhook event %s, ignoring", exc)
            return Response(status_code=501)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Malformed %s payload: %s", event_type, exc)
            return Response(status_code=400)

        await queue.put(event)
        logger.info("Queued %s for repo %s issue %s", event.kind.type, event.repo_id, event.issue_id)
        return Response(status_code=200)

    return app
