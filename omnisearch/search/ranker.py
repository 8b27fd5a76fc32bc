"""Relevance ranking with an LLM and a deterministic heuristic fallback."""

import asyncio
import json
import logging
import math
import re
from collections.abc import Callable
from datetime import UTC, datetime

from omnisearch.clients.llm_client import LLMClient
from omnisearch.errors import RankingServiceError
from omnisearch.models.result import CanonicalResult, RankedResult

logger = logging.getLogger(__name__)

TERM_WEIGHT = 0.6
RECENCY_WEIGHT = 0.4
RECENCY_HALF_LIFE_DAYS = 30.0

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)

SYSTEM_MESSAGE = (
    "You rank workplace search results by relevance to a query. "
    "Respond with a single JSON object and nothing else."
)

PROMPT_TEMPLATE = """Query: {query}

Results (JSON):
{results}

Score every result. Return JSON:
{{
  "rankedResults": [{{"id": "<result id>", "relevanceScore": 0.0, "rankingReason": "short reason"}}],
  "rankingExplanation": "one sentence"
}}
relevanceScore must be a number between 0 and 1. Include every id exactly once."""


def tokenize(text: str) -> set[str]:
    return {token.lower() for token in _TOKEN_RE.findall(text or "")}


def clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


class ResultRanker:
    """Scores and orders canonical results.

    The LLM path is accepted only when it scores every input id with a
    number; anything else (error, timeout, partial or malformed output)
    falls back to ``0.6 * term_overlap + 0.4 * recency``. Ordering is a
    stable sort on score, so ties keep transformer order. Never raises.
    """

    def __init__(
        self,
        llm_client: LLMClient | None,
        timeout: float = 10.0,
        enabled: bool = True,
        clock: Callable[[], datetime] | None = None,
        max_content_chars: int = 300,
    ):
        """Initialize ranker.

        Args:
            llm_client: LLM client, or None to always use the heuristic
            timeout: Deadline for the ranking call in seconds
            enabled: Whether to call the model at all
            clock: Returns "now" for recency scoring (defaults to UTC now)
            max_content_chars: Content characters sent per result
        """
        self.llm_client = llm_client
        self.timeout = timeout
        self.enabled = enabled and llm_client is not None
        self.clock = clock or (lambda: datetime.now(UTC))
        self.max_content_chars = max_content_chars

        logger.info(f"Initialized ResultRanker: ai_enabled={self.enabled}, timeout={timeout}s")

    async def rank(self, query: str, results: list[CanonicalResult]) -> list[RankedResult]:
        """Rank results, discarding which method produced the scores."""
        ranked, _ = await self.rank_with_method(query, results)
        return ranked

    async def rank_with_method(
        self,
        query: str,
        results: list[CanonicalResult],
    ) -> tuple[list[RankedResult], str]:
        """Rank results.

        Args:
            query: Processed query text
            results: Canonical results in transformer order

        Returns:
            (ranked results sorted by score descending, "ai" or "heuristic")
        """
        if not results:
            return [], "heuristic"

        if self.enabled:
            try:
                ranked = await asyncio.wait_for(self._rank_with_ai(query, results), timeout=self.timeout)
                logger.info(f"✓ AI ranking COMPLETE for {len(ranked)} results")
                return self._sort(ranked), "ai"
            except asyncio.TimeoutError:
                logger.warning(f"⚠ AI ranking timed out after {self.timeout}s, using heuristic fallback")
            except RankingServiceError as e:
                logger.warning(f"⚠ AI ranking rejected: {e.message}, using heuristic fallback")
            except Exception as e:
                logger.warning(f"⚠ AI ranking failed: {type(e).__name__}: {e}, using heuristic fallback")

        return self._sort(self.heuristic_rank(query, results)), "heuristic"

    async def _rank_with_ai(self, query: str, results: list[CanonicalResult]) -> list[RankedResult]:
        payload = [
            {
                "id": r.id,
                "title": r.title,
                "content": r.content[: self.max_content_chars],
                "source": r.source,
                "createdAt": r.created_at.isoformat() if r.created_at else None,
            }
            for r in results
        ]
        prompt = PROMPT_TEMPLATE.format(query=json.dumps(query), results=json.dumps(payload, indent=1))

        try:
            data = await self.llm_client.generate_json(
                prompt=prompt,
                system_message=SYSTEM_MESSAGE,
                temperature=0.1,
                max_tokens=2000,
            )
        except ValueError as e:
            raise RankingServiceError(f"unparseable ranking response: {e}") from e

        return self._apply_scores(results, data)

    def _apply_scores(self, results: list[CanonicalResult], data: dict) -> list[RankedResult]:
        """Attach model scores; reject responses that do not cover every result."""
        entries = data.get("rankedResults")
        if not isinstance(entries, list):
            raise RankingServiceError("response has no rankedResults list")

        scores: dict[str, tuple[float, str]] = {}
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            result_id = entry.get("id")
            score = entry.get("relevanceScore")
            if not isinstance(result_id, str) or isinstance(score, bool) or not isinstance(score, (int, float)):
                continue
            if not math.isfinite(score):
                continue
            reason = entry.get("rankingReason")
            scores.setdefault(result_id, (clamp(float(score)), reason if isinstance(reason, str) else ""))

        missing = [r.id for r in results if r.id not in scores]
        if missing:
            raise RankingServiceError(f"{len(missing)} of {len(results)} results were not scored")

        return [
            RankedResult.from_canonical(r, scores[r.id][0], scores[r.id][1] or "AI relevance score")
            for r in results
        ]

    def heuristic_rank(self, query: str, results: list[CanonicalResult]) -> list[RankedResult]:
        """Deterministic fallback scoring (unsorted, one entry per input)."""
        query_terms = tokenize(query)
        now = self.clock()

        ranked = []
        for result in results:
            overlap = self.term_overlap(query_terms, result)
            recency = self.recency(result, now)
            score = clamp(TERM_WEIGHT * overlap + RECENCY_WEIGHT * recency)
            reason = f"Heuristic: term match {overlap:.2f}, recency {recency:.2f}"
            ranked.append(RankedResult.from_canonical(result, score, reason))
        return ranked

    @staticmethod
    def term_overlap(query_terms: set[str], result: CanonicalResult) -> float:
        """Fraction of query terms present in the title or content."""
        if not query_terms:
            return 0.0
        result_terms = tokenize(f"{result.title} {result.content}")
        return len(query_terms & result_terms) / len(query_terms)

    @staticmethod
    def recency(result: CanonicalResult, now: datetime) -> float:
        """Exponential decay with a 30-day half-life; undated results score 0."""
        date = result.effective_date
        if date is None:
            return 0.0
        age_days = max(0.0, (now - date).total_seconds() / 86400)
        return 0.5 ** (age_days / RECENCY_HALF_LIFE_DAYS)

    @staticmethod
    def _sort(ranked: list[RankedResult]) -> list[RankedResult]:
        return sorted(ranked, key=lambda r: r.relevance_score, reverse=True)
