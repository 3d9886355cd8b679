"""Streaming trend generation in concurrent category batches."""

import asyncio
import math
import time
from datetime import datetime, timedelta
from typing import AsyncIterator, Callable, Optional
import logging

from ..cache import IntelligenceCache
from ..models.trends import BatchProgress, Trend, TrendBatch, TrendCategory, TrendProfile
from ...utils.ai_client import CompletionOptions, CompletionService, parse_json_response
from config.settings import TREND_CATEGORIES


logger = logging.getLogger(__name__)

CATEGORIES = [
    TrendCategory.CONSUMER,
    TrendCategory.COMPETITION,
    TrendCategory.ECONOMY,
    TrendCategory.REGULATION,
]

TRENDS_CACHE_TAG = "trends"

ProgressCallback = Callable[[BatchProgress], None]


class StreamingTrendGenerator:
    """
    Generates trends for four categories concurrently and yields each
    category batch as soon as it is ready.
    """

    SYSTEM_PROMPT = "AI trend analyst. Search the web for current {category} trends. Return valid JSON only."

    CATEGORY_PROMPT = """Search the web for {count} current {focus} trends in {month}.{profile}
Return JSON:

[{{"title":"trend","summary":"brief description","category":"{category}","impact_score":7,"source":"source","source_url":"url"}}]"""

    def __init__(
        self,
        completion_service: CompletionService,
        cache: Optional[IntelligenceCache] = None,
        temperature: float = 0.7,
        max_tokens: int = 1500,
    ):
        self.completion_service = completion_service
        self.cache = cache
        self.options = CompletionOptions(
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=True,
            search_budget=1,
        )

    async def generate_batches(
        self,
        total_count: int = 20,
        profile: Optional[TrendProfile] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> AsyncIterator[TrendBatch]:
        """
        Yield one TrendBatch per category, in completion order.

        A failed category yields a batch with ``error`` set and no trends.
        Failed batches still count towards progress. Closing the generator
        early cancels the categories still running.
        """
        per_category = max(0, math.ceil(total_count / len(CATEGORIES)))
        total_batches = len(CATEGORIES)
        start = time.monotonic()
        completed = 0

        tasks = [
            asyncio.create_task(self._run_category(category, index, per_category, profile))
            for index, category in enumerate(CATEGORIES)
        ]

        try:
            for next_done in asyncio.as_completed(tasks):
                batch = await next_done
                completed += 1

                progress = completed / total_batches
                elapsed_ms = (time.monotonic() - start) * 1000
                remaining_ms = max(0.0, elapsed_ms / progress - elapsed_ms)

                batch = batch.model_copy(update={"progress": progress})
                self._notify(on_progress, BatchProgress(
                    total_batches=total_batches,
                    completed_batches=completed,
                    progress=progress,
                    estimated_time_remaining_ms=remaining_ms,
                ))
                yield batch
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                logger.info(f"Cancelled {len(pending)} pending trend batches")

    async def collect(
        self,
        total_count: int = 20,
        profile: Optional[TrendProfile] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> list[TrendBatch]:
        """Drain the stream into a list."""
        return [batch async for batch in self.generate_batches(total_count, profile, on_progress)]

    async def _run_category(
        self,
        category: TrendCategory,
        index: int,
        count: int,
        profile: Optional[TrendProfile],
    ) -> TrendBatch:
        """Generate one category; failures become an error batch."""
        batch_id = f"batch_{category.value}_{int(time.time() * 1000)}_{index}"

        try:
            trends = await self.generate_category_batch(category, count, profile)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Batch {batch_id} failed: {e}")
            return TrendBatch(batch_id=batch_id, category=category, is_complete=True, error=str(e) or type(e).__name__)

        if self.cache is not None and trends:
            self.cache.set(
                f"trends:{category.value}",
                trends,
                tags=[TRENDS_CACHE_TAG, category.value],
            )

        logger.info(f"Generated {len(trends)} {category.value} trends")
        return TrendBatch(batch_id=batch_id, trends=trends, category=category, is_complete=True)

    async def generate_category_batch(
        self,
        category: TrendCategory,
        count: int,
        profile: Optional[TrendProfile] = None,
    ) -> list[Trend]:
        """
        Generate up to ``count`` trends for one category.

        Raises:
            ValueError: if the response is not a trend list or {"trends": [...]}
        """
        category = TrendCategory(category)
        response = await self.completion_service.complete(
            self.SYSTEM_PROMPT.format(category=category.value),
            self._build_prompt(category, count, profile),
            self.options,
        )

        parsed = parse_json_response(response)
        if isinstance(parsed, list):
            items = parsed
        elif isinstance(parsed, dict) and isinstance(parsed.get("trends"), list):
            items = parsed["trends"]
        else:
            raise ValueError(f"Invalid response format for {category.value} trends")

        now = datetime.now()
        stamp = int(now.timestamp() * 1000)
        trends = []
        for index, item in enumerate(items[:max(0, count)]):
            if not isinstance(item, dict):
                continue
            trends.append(Trend(
                id=f"trend_{category.value}_{stamp}_{index}",
                category=category,
                title=str(item.get("title") or f"{category.value} AI Trend {index + 1}"),
                summary=str(item.get("summary") or "Emerging AI trend with significant market impact."),
                impact_score=item.get("impact_score", 7),
                source=str(item.get("source") or "Industry Analysis"),
                source_url=str(item["source_url"]) if item.get("source_url") else None,
                created_at=now - timedelta(minutes=index),
                updated_at=now,
            ))
        return trends

    def _build_prompt(self, category: TrendCategory, count: int, profile: Optional[TrendProfile]) -> str:
        profile_text = ""
        if profile:
            parts = [f"industry: {profile.industry}"]
            if profile.market:
                parts.append(f"market: {profile.market}")
            if profile.customer:
                parts.append(f"customers: {profile.customer}")
            if profile.business_size:
                parts.append(f"size: {profile.business_size}")
            profile_text = f"\nFocus on relevance to a company with {', '.join(parts)}."

        return self.CATEGORY_PROMPT.format(
            count=count,
            focus=TREND_CATEGORIES.get(category.value, category.value),
            month=datetime.now().strftime("%B %Y"),
            profile=profile_text,
            category=category.value,
        )

    @staticmethod
    def _notify(on_progress: Optional[ProgressCallback], progress: BatchProgress):
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
