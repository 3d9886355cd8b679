"""
Unit tests for SourceFetcher using an in-process HTTP transport.
"""

import httpx
import pytest


REDDIT_LISTING = {"data": {"children": [
    {"data": {"title": "New open-weights model beats benchmarks", "score": 900}},
    {"data": {"title": "Ask: how do you evaluate agents?", "score": 120}},
]}}


def make_source(source_id, source_type, url, **kwargs):
    from trenddit.intelligence.models import DataSource

    return DataSource(id=source_id, name=source_id.title(), type=source_type, url=url, **kwargs)


def default_handler(request: httpx.Request) -> httpx.Response:
    host = request.url.host
    if host == "reddit.example.com":
        return httpx.Response(200, json=REDDIT_LISTING)
    if host == "hn.example.com":
        return httpx.Response(200, json=list(range(1, 501)))
    if host == "news.example.com":
        return httpx.Response(200, json={"articles": [{"title": "A"}, {"title": "B"}, {"title": "C"}]})
    if host == "broken.example.com":
        return httpx.Response(503, text="unavailable")
    return httpx.Response(404)


@pytest.fixture
def sources():
    return [
        make_source("reddit_ml", "social", "https://reddit.example.com/r/ml.json", reliability=0.7),
        make_source("hackernews", "technical", "https://hn.example.com/v0/topstories.json", reliability=0.8),
        make_source("news", "news", "https://news.example.com/api", reliability=0.9),
        make_source("broken", "news", "https://broken.example.com/feed", reliability=0.9),
        make_source("paid", "financial", "https://paid.example.com/v4", enabled=False),
    ]


@pytest.fixture
def fetcher(sources, test_settings):
    from trenddit.intelligence.aggregation import SourceFetcher

    return SourceFetcher(
        sources=sources,
        settings=test_settings,
        transport=httpx.MockTransport(default_handler),
    )


class TestSourceRegistry:
    """Tests for source registration."""

    def test_default_sources_loaded(self, test_settings):
        from trenddit.intelligence.aggregation import SourceFetcher

        fetcher = SourceFetcher(settings=test_settings)

        assert fetcher.get_source("hackernews") is not None
        assert fetcher.get_source("crunchbase").enabled is False
        assert all(s.enabled for s in fetcher.list_sources(enabled_only=True))

    def test_add_and_remove(self, fetcher):
        fetcher.add_source(make_source("extra", "news", "https://extra.example.com"))
        assert fetcher.get_source("extra") is not None

        fetcher.remove_source("extra")
        assert fetcher.get_source("extra") is None

    def test_list_enabled_only(self, fetcher):
        ids = {s.id for s in fetcher.list_sources(enabled_only=True)}
        assert "paid" not in ids
        assert len(fetcher.list_sources()) == 5


class TestIngest:
    """Tests for concurrent ingestion."""

    @pytest.mark.asyncio
    async def test_ingest_enabled_sources(self, fetcher):
        """Each source contributes its fragments; a failing source contributes none."""
        records = await fetcher.ingest()

        by_source = {}
        for record in records:
            by_source[record.source_id] = by_source.get(record.source_id, 0) + 1

        assert by_source == {"reddit_ml": 2, "hackernews": 10, "news": 3}
        assert fetcher.total_records == 15
        assert fetcher.last_ingest is not None

    @pytest.mark.asyncio
    async def test_records_carry_source_metadata(self, fetcher):
        records = await fetcher.ingest(["reddit_ml"])

        assert len(records) == 2
        record = records[0]
        assert record.source_type.value == "social"
        assert record.reliability == 0.7
        assert record.source_url == "https://reddit.example.com/r/ml.json"
        assert record.raw_payload["title"] == "New open-weights model beats benchmarks"

    @pytest.mark.asyncio
    async def test_failing_source_isolated(self, fetcher):
        records = await fetcher.ingest(["broken", "news"])

        assert len(records) == 3
        assert fetcher.error_counts["broken"] == 1
        assert "503" in fetcher.last_errors["broken"]

    @pytest.mark.asyncio
    async def test_rate_limited_source_skipped(self, test_settings):
        """A source at its hourly limit is skipped, not delayed."""
        from trenddit.intelligence.aggregation import SourceFetcher

        calls = []

        def handler(request):
            calls.append(request.url)
            return default_handler(request)

        fetcher = SourceFetcher(
            sources=[make_source("news", "news", "https://news.example.com/api", rate_limit_per_hour=1)],
            settings=test_settings,
            transport=httpx.MockTransport(handler),
        )

        first = await fetcher.ingest()
        second = await fetcher.ingest()

        assert len(first) == 3
        assert second == []
        assert len(calls) == 1
        assert fetcher.skip_counts["news"] == 1

    @pytest.mark.asyncio
    async def test_unknown_source_ignored(self, fetcher):
        records = await fetcher.ingest(["does_not_exist", "news"])
        assert len(records) == 3

    @pytest.mark.asyncio
    async def test_only_unknown_sources(self, fetcher):
        assert await fetcher.ingest(["does_not_exist"]) == []

    @pytest.mark.asyncio
    async def test_explicit_disabled_source_runs(self, test_settings):
        from trenddit.intelligence.aggregation import SourceFetcher

        def handler(request):
            return httpx.Response(200, json={"data": [{"company": "Acme", "round": "Series A"}]})

        fetcher = SourceFetcher(
            sources=[make_source("paid", "financial", "https://paid.example.com/v4", enabled=False)],
            settings=test_settings,
            transport=httpx.MockTransport(handler),
        )

        assert await fetcher.ingest() == []
        records = await fetcher.ingest(["paid"])
        assert records[0].raw_payload == {"company": "Acme", "round": "Series A"}

    @pytest.mark.asyncio
    async def test_api_key_sent_as_bearer(self, test_settings):
        from trenddit.intelligence.aggregation import SourceFetcher

        seen = {}

        def handler(request):
            seen["authorization"] = request.headers.get("authorization")
            seen["user_agent"] = request.headers.get("user-agent")
            return httpx.Response(200, json={"articles": []})

        fetcher = SourceFetcher(
            sources=[make_source("keyed", "news", "https://keyed.example.com", api_key="secret")],
            settings=test_settings,
            transport=httpx.MockTransport(handler),
        )
        await fetcher.ingest()

        assert seen["authorization"] == "Bearer secret"
        assert seen["user_agent"] == test_settings.user_agent


class TestSourceStats:
    """Tests for stats and health reporting."""

    @pytest.mark.asyncio
    async def test_source_health(self, fetcher):
        assert fetcher.get_source_health()["news"] == "pending"

        await fetcher.ingest()
        health = fetcher.get_source_health()

        assert health["news"] == "healthy"
        assert health["broken"] == "error"
        assert health["paid"] == "inactive"

    @pytest.mark.asyncio
    async def test_stats(self, fetcher):
        await fetcher.ingest(["news"])
        stats = fetcher.get_stats()

        assert stats["total_sources"] == 5
        assert stats["enabled_sources"] == 4
        news = stats["sources"]["news"]
        assert news["fetch_count"] == 1
        assert news["error_count"] == 0
        assert news["remaining_requests"] == 59
        assert news["last_fetch"] is not None
