"""
Pytest configuration and fixtures for Trenddit Intelligence Engine tests.
"""

import json
import uuid
import os
import sys
import pytest
from pathlib import Path
from typing import Callable, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment
os.environ['TESTING'] = '1'
os.environ.setdefault('GEMINI_API_KEY', 'test-api-key')

from trenddit.utils.ai_client import CompletionOptions, CompletionService  # noqa: E402


# ============================================================
# Completion Service Fakes
# ============================================================

class FakeCompletionService(CompletionService):
    """
    Scripted completion service.

    Responses are consumed in order; once exhausted, ``handler`` (or
    ``default``) answers. A response that is an exception is raised.
    """

    def __init__(
        self,
        responses: Optional[list] = None,
        handler: Optional[Callable[[str, str, CompletionOptions], str]] = None,
        default: str = "{}",
    ):
        self.responses = list(responses or [])
        self.handler = handler
        self.default = default
        self.calls: list[dict] = []

    async def complete(self, system_prompt, user_prompt, options=None):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "options": options,
        })

        if self.responses:
            response = self.responses.pop(0)
        elif self.handler is not None:
            response = self.handler(system_prompt, user_prompt, options)
        else:
            response = self.default

        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_completion():
    """Completion service that answers '{}' unless scripted."""
    return FakeCompletionService()


@pytest.fixture
def failing_completion():
    """Completion service whose every call raises."""
    def fail(system_prompt, user_prompt, options):
        raise RuntimeError("provider unavailable")
    return FakeCompletionService(handler=fail)


# ============================================================
# Settings Fixtures
# ============================================================

@pytest.fixture
def test_settings():
    """Settings isolated from any local .env file."""
    from config.settings import Settings

    return Settings(
        _env_file=None,
        GEMINI_API_KEY="test-api-key",
        AI_MAX_RETRIES=0,
        AGENT_MAX_RESPONSE_TIME=2.0,
    )


# ============================================================
# Sample Data Fixtures
# ============================================================

@pytest.fixture
def sample_source():
    """A news source with known reliability."""
    from trenddit.intelligence.models import DataSource

    return DataSource(
        id="test_news",
        name="Test News",
        type="news",
        url="https://news.example.com/feed.json",
        rate_limit_per_hour=3,
        reliability=0.9,
    )


@pytest.fixture
def sample_raw():
    """Raw Reddit-style payload about an acquisition."""
    from trenddit.intelligence.models import RawIntelligence

    return RawIntelligence(
        source_id="reddit_ml",
        source_type="social",
        raw_payload={
            "title": "OpenAI announces acquisition of robotics startup",
            "selftext": "Big growth move with some regulation risk ahead.",
            "score": 420,
        },
        reliability=0.7,
    )


@pytest.fixture
def make_record():
    """Factory for ProcessedIntelligence records."""
    from trenddit.intelligence.models import ProcessedIntelligence

    def _make(**overrides):
        fields = {
            "id": f"rec_{uuid.uuid4().hex[:8]}",
            "type": "trend",
            "title": "Enterprise AI adoption accelerates",
            "summary": "Large companies are moving AI pilots into production.",
            "sentiment": "positive",
            "confidence": 0.8,
            "sources": ["techcrunch"],
            "entities": ["openai", "microsoft"],
            "tags": ["ai", "enterprise"],
            "impact_score": 7,
        }
        fields.update(overrides)
        return ProcessedIntelligence(**fields)

    return _make


@pytest.fixture
def sample_context():
    """Analysis context for a healthcare CTO."""
    from trenddit.intelligence.models import CompanyProfile, Context, UserProfile

    return Context(
        company=CompanyProfile(industry="healthcare", size="enterprise", tech_maturity="medium"),
        user=UserProfile(role="cto", experience="senior"),
        domain="AI adoption in healthcare",
        time_horizon="1year",
    )


@pytest.fixture
def analysis_json():
    """AI analysis payload the processor accepts."""
    return json.dumps({
        "type": "competitor",
        "title": "OpenAI buys robotics startup",
        "summary": "OpenAI acquired a robotics company to expand into embodied AI.",
        "sentiment": "positive",
        "entities": ["OpenAI", "RoboCo", "A", "B", "C", "D", "E"],
        "tags": ["acquisition", "robotics"],
        "impact_score": 8,
        "confidence": 0.95,
    })


@pytest.fixture
def completion_factory():
    """The FakeCompletionService class, for tests that script their own."""
    return FakeCompletionService
