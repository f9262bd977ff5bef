# -*- coding: utf-8 -*-
"""
Region fan-out / fan-in.

One pipeline per region, all launched together and joined with
asyncio.gather:

    classify(balancer)  ->  lookup(host of the active colour)

Every pipeline ends in exactly one RegionResult, so the report always has
one entry per configured region. A region that cannot be classified gets an
unresolved result (UNKNOWN, empty build, failure reason); a region that runs
past the pipeline timeout gets a timed-out result. Cancellation of the
aggregation is not swallowed and reaches every in-flight request.
"""

import asyncio
import logging
import time
from typing import Callable, Optional, Sequence, Tuple

import httpx

from activenode import balancer, webhost
from activenode.config import validate_regions
from activenode.models import AggregateReport, Region, RegionResult, VariantState


log = logging.getLogger(__name__)

ClientFactory = Callable[[], httpx.AsyncClient]


class RegionAggregator:
    def __init__(
        self,
        regions: Sequence[Region],
        http_timeout: float = 10.0,
        pipeline_timeout: float = 20.0,
        max_concurrency: int = 0,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._regions: Tuple[Region, ...] = validate_regions(tuple(regions))
        self._http_timeout = http_timeout
        self._pipeline_timeout = pipeline_timeout
        self._max_concurrency = max_concurrency or len(self._regions)
        self._client_factory = client_factory or self._default_client

    @property
    def regions(self) -> Tuple[Region, ...]:
        return self._regions

    def _default_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self._http_timeout), follow_redirects=True)

    async def aggregate(self) -> AggregateReport:
        t0 = time.monotonic()
        gate = asyncio.Semaphore(self._max_concurrency)

        async with self._client_factory() as client:
            results = await asyncio.gather(
                *(self._run_pipeline(client, region, gate) for region in self._regions)
            )

        report: AggregateReport = {}
        for result in results:
            report[result.region] = result

        failed = sorted(name for name, r in report.items() if not r.ok)
        log.info(
            "Aggregated %d regions in %.2fs (unresolved: %s)",
            len(report),
            time.monotonic() - t0,
            ", ".join(failed) or "none",
        )
        return report

    async def _run_pipeline(
        self, client: httpx.AsyncClient, region: Region, gate: asyncio.Semaphore
    ) -> RegionResult:
        async with gate:
            try:
                return await asyncio.wait_for(
                    self._pipeline(client, region), timeout=self._pipeline_timeout
                )
            except asyncio.TimeoutError:
                log.warning("Region %s timed out after %ss", region.name, self._pipeline_timeout)
                return RegionResult(
                    region=region.name,
                    state=VariantState.UNKNOWN,
                    failure=f"timed out after {self._pipeline_timeout}s",
                )

    async def _pipeline(self, client: httpx.AsyncClient, region: Region) -> RegionResult:
        classification = await balancer.classify(client, region)
        host = region.host_for(classification.state)
        if host is None:
            return RegionResult(
                region=region.name,
                state=VariantState.UNKNOWN,
                failure=classification.failure or "unrecognised variant",
            )

        build = await webhost.lookup(client, host)
        return RegionResult(region=region.name, state=classification.state, build=build)
