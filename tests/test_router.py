from __future__ import annotations

import asyncio
import threading
import time
from concurrent.futures import ThreadPoolExecutor

import httpx
import pytest

from activenode.aggregator import RegionAggregator
from activenode.errors import CommandCancelled
from activenode.formatter import BLUE_MARKER, GREEN_MARKER, UNKNOWN_MARKER
from activenode.models import EventKind, Intent
from activenode.router import CommandRouter, EventDispatcher, detect_intent, parse_event

from conftest import balancer_body, host_body, route_by_host, text


class CountingAggregator:
    def __init__(self, regions) -> None:
        self.regions = regions
        self.calls = 0

    async def aggregate(self):
        self.calls += 1
        return {}


def test_detect_intent() -> None:
    assert detect_intent("<@U1> active_node") is Intent.STATUS
    assert detect_intent("<@U1> !AN please") is Intent.STATUS
    assert detect_intent("<@U1> ACTIVE_NODE help") is Intent.STATUS
    assert detect_intent("<@U1> Help me") is Intent.HELP
    assert detect_intent("<@U1> hello") is Intent.FALLBACK
    assert detect_intent("") is Intent.FALLBACK


def test_aggregator_only_runs_for_status(regions) -> None:
    aggregator = CountingAggregator(regions)
    router = CommandRouter(aggregator)

    assert router.route("help", "Jane").intent is Intent.HELP
    assert router.route("what?", "Jane").intent is Intent.FALLBACK
    assert aggregator.calls == 0

    reply = router.route("active_node help", "Jane")
    assert reply.intent is Intent.STATUS
    assert aggregator.calls == 1


def test_status_end_to_end(regions) -> None:
    transport = route_by_host(
        {
            "api1.test": text(balancer_body("site1.domain.com-green")),
            "green1.test": text(host_body("1.0.0")),
            "api2.test": text(balancer_body("site2.domain.com-blue")),
            "blue2.test": text(host_body("2.0.0")),
        }
    )
    aggregator = RegionAggregator(
        regions, client_factory=lambda: httpx.AsyncClient(transport=transport)
    )
    router = CommandRouter(aggregator, releases_url="https://deploy.test/r/")

    reply = router.route("<@U1> !an", "Jane Doe")
    lines = reply.text.splitlines()

    assert reply.intent is Intent.STATUS
    assert len(lines) == 4
    assert lines[1] == f"Site1 is {GREEN_MARKER} Build <https://deploy.test/r/1.0.0|1.0.0>"
    assert lines[2] == f"Site2 is {BLUE_MARKER} Build <https://deploy.test/r/2.0.0|2.0.0>"
    assert lines[3] == f"Site3 is {UNKNOWN_MARKER} Build n/a"
    assert len(reply.report) == 3
    assert reply.as_attachment() == {"text": reply.text, "color": "#4af030"}


def test_parse_event_kinds() -> None:
    mention = parse_event({"type": "app_mention", "user": "U1", "text": "hi", "channel": "C1"})
    assert mention.kind is EventKind.MENTION
    assert (mention.user, mention.text, mention.channel) == ("U1", "hi", "C1")

    other = parse_event({"type": "message", "text": "hi"})
    assert other.kind is EventKind.OTHER
    assert parse_event({}).kind is EventKind.OTHER


def test_dispatcher_requires_every_kind() -> None:
    with pytest.raises(ValueError):
        EventDispatcher({EventKind.MENTION: lambda e, client: None})


def test_dispatcher_routes_by_kind() -> None:
    seen = []
    dispatcher = EventDispatcher(
        {
            EventKind.MENTION: lambda e, client: seen.append(("mention", e.text, client)),
            EventKind.OTHER: lambda e, client: seen.append(("other", e.event_type, client)),
        }
    )
    dispatcher.dispatch(parse_event({"type": "app_mention", "text": "!an"}), "c1")
    dispatcher.dispatch(parse_event({"type": "reaction_added"}), "c2")
    assert seen == [("mention", "!an", "c1"), ("other", "reaction_added", "c2")]


def test_help_mentions_brand(regions) -> None:
    router = CommandRouter(CountingAggregator(regions), app_brand="DeployBot")
    assert "Only one DeployBot operation" in router.route("help", "Jane").text


def test_shutdown_cancels_aggregation_on_listener_thread(regions) -> None:
    started = threading.Event()

    async def hang(request: httpx.Request) -> httpx.Response:
        started.set()
        await asyncio.sleep(30)
        return httpx.Response(200, text="")

    aggregator = RegionAggregator(
        regions,
        pipeline_timeout=30,
        client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(hang)),
    )
    router = CommandRouter(aggregator)

    with ThreadPoolExecutor(max_workers=1) as pool:
        future = pool.submit(router.route, "!an", "Jane")
        assert started.wait(5)

        t0 = time.monotonic()
        router.shutdown()
        with pytest.raises(CommandCancelled):
            future.result(timeout=5)
        assert time.monotonic() - t0 < 1.0

    assert router.closed


def test_status_after_shutdown_is_refused(regions) -> None:
    aggregator = CountingAggregator(regions)
    router = CommandRouter(aggregator)
    router.shutdown()

    with pytest.raises(CommandCancelled):
        router.route("active_node", "Jane")
    assert aggregator.calls == 0
    assert router.route("help", "Jane").intent is Intent.HELP
