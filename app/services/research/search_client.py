"""
Web search provider.

The research pipeline depends only on the ``SearchProvider`` protocol. The
production implementation uses Gemini's native Google Search grounding: the
objective and query terms go into one grounded generation call, and every
grounding chunk (a web page the model consulted) becomes one raw result
record together with the answer segments it supports.
"""
import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Protocol

from google import genai
from google.genai import types

from app.core.config import Settings
from app.core.exceptions import UpstreamError
from app.services.research.rate_limiter import ServiceRateLimiter, safe_api_call

logger = logging.getLogger(__name__)


class SearchProvider(Protocol):
    async def search(
        self,
        objective: str,
        search_queries: List[str],
        *,
        max_results: int,
        max_chars_per_result: int,
        max_cost_usd: float,
    ) -> List[Dict[str, Any]]:
        ...


def build_search_prompt(objective: str, search_queries: List[str], max_results: int) -> str:
    """Grounded search prompt: the objective plus the exact query terms to run."""
    queries_block = "\n".join(f"- {q}" for q in search_queries)
    return "\n".join([
        "You are a research assistant. Use Google Search to gather evidence for the objective below.\n",
        f"OBJECTIVE:\n{objective}\n",
        f"RUN THESE SEARCH QUERIES:\n{queries_block}\n",
        "INSTRUCTIONS:",
        f"- Consult AT MOST {max_results} distinct web pages.",
        "- Summarize only what the pages say. Do not speculate.",
        "- Keep each statement short and attributable to a page.",
    ])


def grounding_to_records(response: Any, max_results: int, max_chars_per_result: int) -> List[Dict[str, Any]]:
    """Map a grounded GenAI response to raw records, one per grounding chunk."""
    if not response.candidates:
        return []
    meta = response.candidates[0].grounding_metadata
    if meta is None:
        return []

    chunks = getattr(meta, "grounding_chunks", None) or []
    supports = getattr(meta, "grounding_supports", None) or []

    # Collect the answer segments each chunk supports
    segments: Dict[int, List[str]] = {}
    for support in supports:
        segment = getattr(support, "segment", None)
        text = getattr(segment, "text", None) if segment else None
        if not text:
            continue
        for chunk_idx in getattr(support, "grounding_chunk_indices", None) or []:
            segments.setdefault(chunk_idx, []).append(text)

    records: List[Dict[str, Any]] = []
    for idx, chunk in enumerate(chunks):
        web = getattr(chunk, "web", None)
        if web is None:
            continue
        texts = segments.get(idx, [])
        records.append({
            "title": getattr(web, "title", None),
            "uri": getattr(web, "uri", None),
            "domain": getattr(web, "domain", None),
            "segment_texts": texts,
            "text": " ".join(texts)[:max_chars_per_result] or None,
        })
        if len(records) >= max_results:
            break
    return records


class GeminiSearchClient:
    """Long-lived, read-only search handle shared by all adapters."""

    def __init__(
        self,
        client: genai.Client,
        model: str,
        cost_per_1k_tokens_usd: float,
        limiter: Optional[ServiceRateLimiter] = None,
    ):
        self._client = client
        self._model = model
        self._cost_per_1k_tokens_usd = cost_per_1k_tokens_usd
        self._limiter = limiter

    @classmethod
    def from_settings(cls, client: genai.Client, settings: Settings) -> "GeminiSearchClient":
        return cls(client, settings.GEMINI_MODEL, settings.SEARCH_COST_PER_1K_TOKENS_USD)

    def _output_token_budget(self, max_cost_usd: float) -> int:
        tokens = int(max_cost_usd / self._cost_per_1k_tokens_usd * 1000)
        return max(256, min(tokens, 8192))

    async def search(
        self,
        objective: str,
        search_queries: List[str],
        *,
        max_results: int,
        max_chars_per_result: int,
        max_cost_usd: float,
    ) -> List[Dict[str, Any]]:
        prompt = build_search_prompt(objective, search_queries, max_results)
        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            max_output_tokens=self._output_token_budget(max_cost_usd),
        )

        # The SDK call is synchronous; run it on a worker thread
        async def _async_wrapper():
            return await asyncio.to_thread(
                self._client.models.generate_content,
                model=self._model,
                contents=prompt,
                config=config,
            )

        logger.info(f"Gemini search started ({len(search_queries)} queries, max_results={max_results})")
        start_time = time.perf_counter()
        try:
            response = await safe_api_call(_async_wrapper, service='gemini', limiter=self._limiter)
        except Exception as e:
            logger.error(f"Gemini search failed: {e}", exc_info=True)
            raise UpstreamError("gemini", "Web search provider call failed", details={"error": str(e)}) from e

        records = grounding_to_records(response, max_results, max_chars_per_result)
        elapsed = time.perf_counter() - start_time
        logger.info(f"Gemini search completed in {elapsed:.2f}s with {len(records)} results")
        return records
