"""Source fetcher for pulling raw intelligence from multiple upstream sources."""

import asyncio
from datetime import datetime
from typing import Optional
import httpx
import logging

from .parsers import decode_body, parse_payload
from .rate_limiter import SlidingWindowRateLimiter
from ..models.intelligence import DataSource, RawIntelligence
from config.settings import DATA_SOURCES, Settings, get_settings


logger = logging.getLogger(__name__)


class SourceFetcher:
    """
    Registry of data sources with rate-limited concurrent ingestion.

    A source at its hourly limit is skipped for the cycle, not delayed.
    A failing source never affects the others.
    """

    def __init__(
        self,
        sources: Optional[list[DataSource]] = None,
        rate_limiter: Optional[SlidingWindowRateLimiter] = None,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.rate_limiter = rate_limiter or SlidingWindowRateLimiter()
        self._transport = transport

        self.sources: dict[str, DataSource] = {}
        self.fetch_counts: dict[str, int] = {}
        self.error_counts: dict[str, int] = {}
        self.skip_counts: dict[str, int] = {}
        self.last_errors: dict[str, str] = {}
        self.last_fetch: dict[str, datetime] = {}
        self.last_ingest: Optional[datetime] = None
        self.total_records = 0

        if sources is None:
            sources = [DataSource(**source) for source in DATA_SOURCES]
        for source in sources:
            self.add_source(source)

    def add_source(self, source: DataSource):
        """Register or replace a source."""
        self.sources[source.id] = source
        logger.info(f"Added source: {source.name} ({source.type.value})")

    def remove_source(self, source_id: str):
        """Remove a source by ID."""
        if source_id in self.sources:
            del self.sources[source_id]
            self.rate_limiter.reset(source_id)
            logger.info(f"Removed source: {source_id}")

    def get_source(self, source_id: str) -> Optional[DataSource]:
        return self.sources.get(source_id)

    def list_sources(self, enabled_only: bool = False) -> list[DataSource]:
        return [s for s in self.sources.values() if s.enabled or not enabled_only]

    def _select_sources(self, source_ids: Optional[list[str]]) -> list[DataSource]:
        if not source_ids:
            return self.list_sources(enabled_only=True)

        # Explicitly requested sources run even when disabled by default
        selected = []
        for source_id in source_ids:
            source = self.sources.get(source_id)
            if source is None:
                logger.warning(f"Unknown source requested: {source_id}")
                continue
            selected.append(source)
        return selected

    async def ingest(self, source_ids: Optional[list[str]] = None) -> list[RawIntelligence]:
        """
        Fetch from the selected sources concurrently.

        Args:
            source_ids: Sources to fetch; defaults to every enabled source

        Returns:
            One RawIntelligence per payload fragment, across all sources
        """
        selected = self._select_sources(source_ids)
        if not selected:
            logger.warning("No sources selected for ingestion")
            return []

        async with self._client() as client:
            tasks = [self.fetch_with_tracking(client, source) for source in selected]
            results = await asyncio.gather(*tasks, return_exceptions=True)

        records = []
        for source, result in zip(selected, results):
            if isinstance(result, list):
                records.extend(result)
            elif isinstance(result, Exception):
                logger.error(f"Ingestion error for {source.id}: {result}")

        self.last_ingest = datetime.now()
        self.total_records += len(records)

        logger.info(f"Ingested {len(records)} raw records from {len(selected)} sources")
        return records

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.settings.source_timeout_seconds,
            headers={"User-Agent": self.settings.user_agent},
            follow_redirects=True,
            transport=self._transport,
        )

    async def fetch_with_tracking(
        self, client: httpx.AsyncClient, source: DataSource
    ) -> list[RawIntelligence]:
        """
        Fetch one source with rate limiting, error tracking and metrics.
        """
        if not self.rate_limiter.try_acquire(source.id, source.rate_limit_per_hour):
            self.skip_counts[source.id] = self.skip_counts.get(source.id, 0) + 1
            logger.warning(f"Rate limit reached for {source.name}, skipping")
            return []

        try:
            records = await self.fetch_source(client, source)
            self.last_fetch[source.id] = datetime.now()
            self.fetch_counts[source.id] = self.fetch_counts.get(source.id, 0) + 1
            self.last_errors.pop(source.id, None)
            logger.info(f"Fetched {len(records)} items from {source.name}")
            return records
        except Exception as e:
            self.error_counts[source.id] = self.error_counts.get(source.id, 0) + 1
            self.last_errors[source.id] = str(e)
            logger.error(f"Error fetching from {source.name}: {e}")
            return []

    async def fetch_source(
        self, client: httpx.AsyncClient, source: DataSource
    ) -> list[RawIntelligence]:
        """Single GET against a source, parsed into raw records."""
        headers = {}
        if source.api_key:
            headers["Authorization"] = f"Bearer {source.api_key}"

        response = await client.get(source.url, headers=headers)
        response.raise_for_status()

        data = decode_body(response.text, response.headers.get("content-type", ""))
        fragments = parse_payload(source, data)

        timestamp = datetime.now()
        return [
            RawIntelligence(
                source_id=source.id,
                source_type=source.type,
                raw_payload=fragment,
                timestamp=timestamp,
                source_url=source.url,
                reliability=source.reliability,
            )
            for fragment in fragments
        ]

    def get_stats(self) -> dict:
        """
        Get statistics for all sources.
        """
        return {
            "total_sources": len(self.sources),
            "enabled_sources": sum(1 for s in self.sources.values() if s.enabled),
            "last_ingest": self.last_ingest.isoformat() if self.last_ingest else None,
            "total_records": self.total_records,
            "sources": {
                source_id: {
                    "name": source.name,
                    "type": source.type.value,
                    "enabled": source.enabled,
                    "fetch_count": self.fetch_counts.get(source_id, 0),
                    "error_count": self.error_counts.get(source_id, 0),
                    "skip_count": self.skip_counts.get(source_id, 0),
                    "last_error": self.last_errors.get(source_id),
                    "last_fetch": (
                        self.last_fetch[source_id].isoformat()
                        if source_id in self.last_fetch else None
                    ),
                    "remaining_requests": self.rate_limiter.remaining(
                        source_id, source.rate_limit_per_hour
                    ),
                }
                for source_id, source in self.sources.items()
            },
        }

    def get_source_health(self) -> dict[str, str]:
        """
        Get health status for each source.
        """
        health = {}
        for source_id, source in self.sources.items():
            if not source.enabled:
                health[source_id] = "inactive"
            elif source_id in self.last_errors:
                health[source_id] = "error"
            elif self.fetch_counts.get(source_id, 0) == 0:
                health[source_id] = "pending"
            else:
                health[source_id] = "healthy"
        return health
