# -*- coding: utf-8 -*-
"""
Reply text for the three intents.

Status lines follow the configured region order, never the order results
arrived in:

    Hello Jane Doe
    Site1 is :green_circle: Build <https://deploy.app.com/releases/1.0.0|1.0.0>
    Site2 is :large_blue_circle: Build <https://deploy.app.com/releases/2.0.0|2.0.0>
    Site3 is :goose: Build n/a
"""

from typing import List, Optional, Sequence, Union

from activenode.config import DEFAULT_RELEASES_URL
from activenode.models import AggregateReport, Intent, Region, VariantState


BLUE_MARKER = ":large_blue_circle:"
GREEN_MARKER = ":green_circle:"
UNKNOWN_MARKER = ":goose:"
NO_BUILD = "n/a"


def node_indicator(value: Union[VariantState, str, None]) -> str:
    if isinstance(value, VariantState):
        value = value.value
    s = (value or "").strip().lower()
    if s == "blue":
        return BLUE_MARKER
    if s == "green":
        return GREEN_MARKER
    return UNKNOWN_MARKER


def build_link(build: str, releases_url: str = DEFAULT_RELEASES_URL) -> str:
    if not build:
        return NO_BUILD
    return f"<{releases_url}{build}|{build}>"


def greeting(invoker_name: str) -> str:
    return f"Hello {invoker_name}\n"


def status_text(
    invoker_name: str,
    report: AggregateReport,
    regions: Sequence[Region],
    releases_url: str = DEFAULT_RELEASES_URL,
) -> str:
    lines: List[str] = [greeting(invoker_name)]
    for region in regions:
        result = report.get(region.name)
        state = result.state if result else VariantState.UNKNOWN
        build = result.build if result else ""
        lines.append(
            f"{region.label} is {node_indicator(state)} Build {build_link(build, releases_url)}\n"
        )
    return "".join(lines)


def help_text(invoker_name: str, regions: Sequence[Region], app_brand: str = "ActiveNode") -> str:
    labels = "\\".join(r.label for r in regions)
    return (
        greeting(invoker_name)
        + f"Only one {app_brand} operation is available for now\n"
        + f"active_node or !an - bot will display {labels} active node and deployed build\n"
    )


def fallback_text(invoker_name: str) -> str:
    return greeting(invoker_name) + "Try to use 'help' with the bot name\n"


def format_reply(
    intent: Intent,
    invoker_name: str,
    regions: Sequence[Region],
    report: Optional[AggregateReport] = None,
    releases_url: str = DEFAULT_RELEASES_URL,
    app_brand: str = "ActiveNode",
) -> str:
    if intent is Intent.STATUS:
        return status_text(invoker_name, report or {}, regions, releases_url)
    if intent is Intent.HELP:
        return help_text(invoker_name, regions, app_brand)
    return fallback_text(invoker_name)
