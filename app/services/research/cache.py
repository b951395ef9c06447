import logging
from typing import Optional

from cachetools import TTLCache

from app.schemas.evidence import EvidenceBundle
from app.schemas.research import QuerySpec

logger = logging.getLogger(__name__)


class EvidenceCache:
    """
    Bounded TTL cache of aggregated evidence, keyed by the normalized QuerySpec.
    Only successful aggregations are stored.
    """

    def __init__(self, maxsize: int = 256, ttl: float = 600):
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self.hits = 0
        self.misses = 0

    def get(self, spec: QuerySpec) -> Optional[EvidenceBundle]:
        bundle = self._cache.get(spec.cache_key())
        if bundle is None:
            self.misses += 1
            return None
        self.hits += 1
        logger.info(f"Evidence cache hit ({self.hits} hits / {self.misses} misses)")
        # Callers get their own copy; the cached bundle stays untouched
        return bundle.model_copy(deep=True)

    def put(self, spec: QuerySpec, bundle: EvidenceBundle) -> None:
        self._cache[spec.cache_key()] = bundle.model_copy(deep=True)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
