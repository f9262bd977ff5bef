# -*- coding: utf-8 -*-
"""
ActiveNode Slack Bot (Socket Mode + app mentions)

Behavior:
- `@bot active_node` / `@bot !an` -> one line per region:
  active colour (green / blue / goose when unknown) and deployed build.
- `@bot help` -> usage.
- anything else -> hint to ask for help.

Other:
- The invoker's real name is looked up with users.info; if that fails the
  command is dropped and logged, nothing is posted.
- Every event is handled in isolation: a failing mention is logged and the
  bot keeps listening.
"""

import logging
import os
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from slack_bolt import App
from slack_bolt.adapter.socket_mode import SocketModeHandler
from slack_sdk.errors import SlackApiError

from activenode.aggregator import RegionAggregator
from activenode.config import Settings, describe, load_settings, parse_log_level
from activenode.errors import CommandCancelled, IdentityLookupError
from activenode.models import EventKind, InboundEvent, ReplyPayload
from activenode.router import CommandRouter, EventDispatcher, ignore_event, parse_event


log = logging.getLogger("activenode-slack")


# ---------------- Slack collaborators ----------------
def resolve_invoker(client: Any, user_id: str) -> str:
    try:
        resp = client.users_info(user=user_id)
    except SlackApiError as e:
        raise IdentityLookupError(f"users.info failed for {user_id}: {e}") from e

    user = resp.get("user") or {}
    profile = user.get("profile") or {}
    return (
        user.get("real_name")
        or profile.get("real_name")
        or profile.get("display_name")
        or user.get("name")
        or user_id
    )


def handle_mention(event: InboundEvent, client: Any, router: CommandRouter) -> Optional[ReplyPayload]:
    try:
        invoker = resolve_invoker(client, event.user)
    except IdentityLookupError:
        log.exception("Dropping mention in %s: invoker could not be resolved", event.channel)
        return None

    try:
        payload = router.route(event.text, invoker)
    except CommandCancelled as e:
        log.warning("Dropping mention in %s: %s", event.channel, e)
        return None

    try:
        client.chat_postMessage(
            channel=event.channel,
            text=payload.text,
            attachments=[payload.as_attachment()],
        )
    except SlackApiError:
        log.exception("Failed to post %s reply to %s", payload.intent.value, event.channel)
    return payload


def build_dispatcher(router: CommandRouter) -> EventDispatcher:
    return EventDispatcher(
        {
            EventKind.MENTION: lambda event, client: handle_mention(event, client, router),
            EventKind.OTHER: ignore_event,
        }
    )


def handle_event(event: Mapping[str, Any], client: Any, dispatcher: EventDispatcher) -> None:
    dispatcher.dispatch(parse_event(event), client)


def build_router(settings: Settings) -> CommandRouter:
    aggregator = RegionAggregator(
        settings.regions,
        http_timeout=settings.http_timeout,
        pipeline_timeout=settings.pipeline_timeout,
        max_concurrency=settings.max_concurrency,
    )
    return CommandRouter(aggregator, releases_url=settings.releases_url, app_brand=settings.app_brand)


def create_app(settings: Settings, router: Optional[CommandRouter] = None, **app_kwargs: Any) -> App:
    app = App(token=settings.bot_token, **app_kwargs)
    dispatcher = build_dispatcher(router or build_router(settings))

    @app.event("app_mention")
    def on_mention(event, client):
        handle_event(event, client, dispatcher)

    @app.event("message")
    def on_message(event, client):
        handle_event(event, client, dispatcher)

    @app.error
    def on_error(error, body):
        log.error("Unhandled error for event %s", (body or {}).get("event_id"), exc_info=error)

    return app


# ---------------- Main ----------------
def main() -> None:
    load_dotenv(".env")
    logging.basicConfig(level=parse_log_level(os.environ.get("ACTIVENODE_LOG_LEVEL")))

    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    log.info("Starting %s Slack bot...", settings.app_brand)
    for key, value in describe(settings).items():
        log.info("%s=%s", key.upper(), value)

    router = build_router(settings)
    handler = SocketModeHandler(create_app(settings, router), settings.app_token)
    try:
        handler.start()
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down %s", settings.app_brand)
    finally:
        # Listener threads run their own loops; cancel them explicitly.
        router.shutdown()
        handler.close()


if __name__ == "__main__":
    main()
