"""
Integration tests for IntelligenceService.

Wires the real fetcher, processor, cache, agents and orchestrator together
with a scripted completion service and an in-process HTTP transport.
"""

import json
import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch


def scripted_handler(system_prompt, user_prompt, options):
    """Route each prompt to a canned JSON answer."""
    if "Analyze this intelligence data" in user_prompt:
        return json.dumps({
            "type": "trend",
            "title": "Hospitals expand AI documentation pilots",
            "summary": "Several health systems are scaling ambient scribes.",
            "sentiment": "positive",
            "entities": ["Epic", "Nuance"],
            "tags": ["ai", "healthcare"],
            "impact_score": 8,
            "confidence": 0.85,
        })
    if "Synthesize these findings" in user_prompt:
        return json.dumps({
            "conclusion": "AI adoption in healthcare is accelerating.",
            "recommendation": "We recommend a phased rollout starting with documentation",
            "confidence": 0.9,
        })
    if "market context" in user_prompt:
        return json.dumps({"market_signals": ["Rising RFP volume"], "sentiment": "Optimistic", "confidence": 0.8})
    if "competitive landscape" in user_prompt:
        return json.dumps({"competitors": ["Nuance"], "positioning": "Consolidating", "confidence": 0.7})
    if "adoption timeline" in user_prompt:
        return json.dumps({"timeline": "12 months", "probability": 0.8, "confidence": 0.6})
    return "{}"


def source_handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "news.example.com":
        return httpx.Response(200, json={"articles": [
            {"title": "Health systems scale AI scribes", "description": "Adoption grows."},
            {"title": "Payers test AI triage", "description": "Early pilots."},
        ]})
    return httpx.Response(500)


@pytest.fixture
def completion(completion_factory):
    return completion_factory(handler=scripted_handler)


@pytest.fixture
def service(test_settings, completion):
    from trenddit.intelligence import IntelligenceService, SourceFetcher
    from trenddit.intelligence.models import DataSource

    fetcher = SourceFetcher(
        sources=[
            DataSource(id="health_news", name="Health News", type="news",
                       url="https://news.example.com/api", reliability=0.9),
            DataSource(id="flaky", name="Flaky", type="news",
                       url="https://flaky.example.com/api", reliability=0.6),
        ],
        settings=test_settings,
        transport=httpx.MockTransport(source_handler),
    )
    svc = IntelligenceService(settings=test_settings, completion_service=completion, fetcher=fetcher)
    yield svc
    svc.close()


@pytest.mark.integration
class TestSynthesis:
    """Tests for synthesize_market_intelligence."""

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, service, completion):
        first = await service.synthesize_market_intelligence("AI adoption in healthcare")
        calls_after_first = len(completion.calls)
        second = await service.synthesize_market_intelligence("AI adoption in healthcare")

        assert first["metadata"]["cache_status"] == "miss"
        assert second["metadata"]["cache_status"] == "hit"
        assert len(completion.calls) == calls_after_first
        assert second["synthesis"] == first["synthesis"]

    @pytest.mark.asyncio
    async def test_result_shape(self, service):
        result = await service.synthesize_market_intelligence("AI adoption in healthcare")

        assert result["query"] == "AI adoption in healthcare"
        assert result["synthesis"] == "Moderate confidence: AI adoption in healthcare is accelerating."
        assert result["confidence"] == pytest.approx(0.75)
        assert len(result["reasoning"]) == 4
        assert result["recommended_actions"] == ["We recommend a phased rollout starting with documentation"]
        assert result["metadata"]["agents_used"] == ["market-intelligence"]
        assert result["data_freshness"]["sources_used"] == ["cached-intelligence"]
        assert all(r.startswith(("Low confidence: ", "Assumption: ")) for r in result["risk_factors"])

    @pytest.mark.asyncio
    async def test_threshold_above_cached_confidence_recomputes(self, service):
        await service.synthesize_market_intelligence("AI adoption in healthcare")
        result = await service.synthesize_market_intelligence(
            "AI adoption in healthcare", confidence_threshold=0.95
        )

        assert result["metadata"]["cache_status"] == "miss"

    @pytest.mark.asyncio
    async def test_hit_is_a_copy(self, service):
        first = await service.synthesize_market_intelligence("AI adoption in healthcare")
        first["recommended_actions"].append("tampered")

        second = await service.synthesize_market_intelligence("AI adoption in healthcare")
        assert "tampered" not in second["recommended_actions"]

    @pytest.mark.asyncio
    async def test_without_reasoning(self, service):
        result = await service.synthesize_market_intelligence(
            "AI adoption in healthcare", include_reasoning_chain=False
        )
        assert result["reasoning"] is None

    @pytest.mark.asyncio
    async def test_ingests_requested_sources(self, service):
        result = await service.synthesize_market_intelligence(
            "AI adoption in healthcare", data_sources=["health_news"]
        )

        assert result["data_freshness"]["sources_used"] == ["health_news"]
        assert len(service.cache.get_cached_intelligence()) == 2

    @pytest.mark.asyncio
    async def test_no_agents(self, test_settings, completion):
        from trenddit.intelligence import AgentRegistry, IntelligenceService, IntelligenceSynthesisError

        svc = IntelligenceService(settings=test_settings, completion_service=completion, registry=AgentRegistry())

        with pytest.raises(IntelligenceSynthesisError, match="No intelligence agents available"):
            await svc.synthesize_market_intelligence("anything")

    @pytest.mark.asyncio
    async def test_degraded_agent_still_answers(self, test_settings, failing_completion):
        from trenddit.intelligence import IntelligenceService

        svc = IntelligenceService(settings=test_settings, completion_service=failing_completion)
        result = await svc.synthesize_market_intelligence("AI adoption in healthcare")

        assert result["confidence"] == pytest.approx(0.3)
        assert result["synthesis"].startswith("Low confidence: Market intelligence analysis temporarily unavailable")


@pytest.mark.integration
class TestIngestion:
    """Tests for ingest_and_cache."""

    @pytest.mark.asyncio
    async def test_ingest_and_cache(self, service):
        records = await service.ingest_and_cache()

        assert len(records) == 2
        assert all(r.confidence <= 0.9 for r in records)
        assert service.fetcher.get_source_health() == {"health_news": "healthy", "flaky": "error"}

        cached = service.cache.get_cached_intelligence("trend")
        assert {r.id for r in cached} == {r.id for r in records}

    @pytest.mark.asyncio
    async def test_source_reliability_registered(self, service):
        assert service.cache.scorer.get_source_reliability("health_news") == 0.9


@pytest.mark.integration
class TestOutcomesAndDashboard:
    """Tests for record_outcome and get_dashboard."""

    @pytest.mark.asyncio
    async def test_record_outcome(self, service):
        from trenddit.intelligence.models import Outcome

        await service.record_outcome(
            Outcome(recommendation_id="rec-1", actual_result="failure"),
            intelligence_type="trend",
        )

        agent = service.registry.get("market-intelligence")
        assert agent.get_confidence() == 0.3
        assert service.cache.scorer.get_historical_accuracy("trend") == 0.0

    @pytest.mark.asyncio
    async def test_record_outcome_survives_agent_error(self, service):
        from trenddit.intelligence.models import Outcome

        agent = service.registry.get("market-intelligence")
        with patch.object(agent, "learn", new=AsyncMock(side_effect=RuntimeError("db locked"))):
            await service.record_outcome(Outcome(recommendation_id="r", actual_result="success"))

    @pytest.mark.asyncio
    async def test_dashboard(self, service):
        await service.synthesize_market_intelligence("AI adoption in healthcare")
        dashboard = await service.get_dashboard()

        assert set(dashboard) == {"cache", "recent_intelligence", "agents", "sources", "generated_at"}
        assert dashboard["agents"] == {"registered": 1, "healthy": 1, "types": ["market-intelligence"]}
        assert dashboard["recent_intelligence"][0]["key"] == "market-synthesis:AI adoption in healthcare"
        assert dashboard["cache"]["total_entries"] == 1


@pytest.mark.integration
class TestTrendStreaming:
    """Tests for stream_trends through the service."""

    @pytest.mark.asyncio
    async def test_stream_trends(self, test_settings, completion_factory):
        from trenddit.intelligence import IntelligenceService

        def handler(system_prompt, user_prompt, options):
            return json.dumps([{"title": f"Trend {i}", "summary": "S"} for i in range(3)])

        svc = IntelligenceService(settings=test_settings, completion_service=completion_factory(handler=handler))
        batches = [batch async for batch in svc.stream_trends(12)]

        assert len(batches) == 4
        assert sum(len(b.trends) for b in batches) == 12
        assert svc.cache.get_entries(tags=["trends"])


@pytest.mark.integration
class TestCommandLine:
    """Tests for the pipeline entry point."""

    def test_parser(self):
        from trenddit.intelligence.pipeline import build_parser

        args = build_parser().parse_args(["synthesize", "AI in retail", "--sources", "hackernews", "--threshold", "0.5"])

        assert args.command == "synthesize"
        assert args.query == "AI in retail"
        assert args.sources == ["hackernews"]
        assert args.threshold == 0.5
        assert args.no_reasoning is False

    def test_synthesize_command(self, capsys):
        from trenddit.intelligence import pipeline

        service = MagicMock()
        service.synthesize_market_intelligence = AsyncMock(return_value={"synthesis": "High confidence: yes"})

        with patch.object(pipeline, "IntelligenceService", return_value=service):
            code = pipeline.main(["synthesize", "AI in retail", "--no-reasoning"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"synthesis": "High confidence: yes"}
        service.synthesize_market_intelligence.assert_awaited_once_with(
            "AI in retail",
            data_sources=None,
            confidence_threshold=0.7,
            include_reasoning_chain=False,
        )
        service.close.assert_called_once()

    def test_output_file(self, tmp_path):
        from trenddit.intelligence import pipeline

        service = MagicMock()
        service.synthesize_market_intelligence = AsyncMock(return_value={"synthesis": "ok"})
        output = tmp_path / "result.json"

        with patch.object(pipeline, "IntelligenceService", return_value=service):
            code = pipeline.main(["--output", str(output), "synthesize", "AI in retail"])

        assert code == 0
        assert json.loads(output.read_text()) == {"synthesis": "ok"}

    def test_synthesis_failure_exit_code(self):
        from trenddit.intelligence import IntelligenceSynthesisError, pipeline

        service = MagicMock()
        service.synthesize_market_intelligence = AsyncMock(
            side_effect=IntelligenceSynthesisError("No intelligence agents available for analysis")
        )

        with patch.object(pipeline, "IntelligenceService", return_value=service):
            assert pipeline.main(["synthesize", "AI in retail"]) == 1

        service.close.assert_called_once()
