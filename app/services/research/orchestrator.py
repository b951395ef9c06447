"""
Aggregation orchestrator.

Runs the report adapters concurrently and assembles the Evidence Bundle.

Failure policy is all-succeed-or-fail: ``asyncio.gather`` surfaces the first
adapter error and the whole aggregation fails with it. Results from sibling
adapters that already resolved are discarded, never partially returned.
"""
import asyncio
import logging
from typing import Dict, Optional

from app.core.logger import log_async_execution_time
from app.schemas.evidence import EvidenceBundle
from app.schemas.research import QuerySpec, SourceSearchResponse
from app.services.research.adapters import REPORT_ADAPTER_NAMES, SourceAdapter, build_adapters
from app.services.research.cache import EvidenceCache
from app.services.research.search_client import SearchProvider

logger = logging.getLogger(__name__)


class ResearchOrchestrator:
    """Fans a QuerySpec out to the source adapters. The search client is injected."""

    def __init__(
        self,
        search_client: SearchProvider,
        cache: Optional[EvidenceCache] = None,
        adapters: Optional[Dict[str, SourceAdapter]] = None,
    ):
        self._adapters = adapters or build_adapters(search_client)
        self._cache = cache

    @property
    def adapters(self) -> Dict[str, SourceAdapter]:
        return self._adapters

    def adapter(self, name: str) -> SourceAdapter:
        try:
            return self._adapters[name]
        except KeyError:
            raise ValueError(f"Unknown research source: {name}") from None

    async def search_source(self, name: str, spec: QuerySpec) -> SourceSearchResponse:
        """Run one adapter on its own."""
        return await self.adapter(name).search(spec)

    @log_async_execution_time
    async def aggregate(self, spec: QuerySpec) -> EvidenceBundle:
        """Run the company, questions and interviewer adapters concurrently."""
        if self._cache is not None:
            cached = self._cache.get(spec)
            if cached is not None:
                return cached

        adapters = [self.adapter(name) for name in REPORT_ADAPTER_NAMES]
        logger.info(f"Aggregating evidence from {len(adapters)} sources concurrently")

        try:
            results = await asyncio.gather(*(adapter.search(spec) for adapter in adapters))
        except Exception as e:
            logger.warning(f"Aggregation failed, discarding partial evidence: {type(e).__name__}: {e}")
            raise

        bundle = EvidenceBundle(**{
            adapter.partition.value: result.evidence for adapter, result in zip(adapters, results)
        })
        logger.info(f"Evidence bundle assembled: {bundle.counts()}")

        if self._cache is not None:
            self._cache.put(spec, bundle)
        return bundle
