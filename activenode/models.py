# -*- coding: utf-8 -*-
"""
Value types shared by the router, the aggregator and the formatter.

Everything here is created fresh per command except `Region`, which is the
static, read-only configuration loaded once at startup.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


ATTACHMENT_COLOR = "#4af030"


class VariantState(Enum):
    GREEN = "green"
    BLUE = "blue"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Region:
    name: str
    endpoint: str
    green_host: str
    blue_host: str
    label: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", self.name.capitalize())

    def host_for(self, state: VariantState) -> Optional[str]:
        if state is VariantState.GREEN:
            return self.green_host
        if state is VariantState.BLUE:
            return self.blue_host
        return None


@dataclass(frozen=True)
class Classification:
    """
    Outcome of polling one balancer.

    `failure` is set when the state could not be determined at all
    (transport or parse problem). UNKNOWN with no failure means the balancer
    answered with a farm name matching neither colour.
    """

    state: VariantState
    failure: Optional[str] = None


@dataclass(frozen=True)
class RegionResult:
    region: str
    state: VariantState
    build: str = ""
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.state is not VariantState.UNKNOWN


# Keyed by Region.name, one entry per configured region.
AggregateReport = Dict[str, RegionResult]


class Intent(Enum):
    STATUS = "status"
    HELP = "help"
    FALLBACK = "fallback"


@dataclass
class ReplyPayload:
    intent: Intent
    text: str
    color: str = ATTACHMENT_COLOR
    report: Optional[AggregateReport] = field(default=None, repr=False)

    def as_attachment(self) -> Dict[str, Any]:
        return {"text": self.text, "color": self.color}


class EventKind(Enum):
    MENTION = "mention"
    OTHER = "other"


@dataclass(frozen=True)
class InboundEvent:
    kind: EventKind
    event_type: str
    user: str = ""
    text: str = ""
    channel: str = ""
