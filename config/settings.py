"""
Configuration settings for the Trenddit Intelligence Engine
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Google Gemini
    gemini_api_key: Optional[str] = Field(default=None, alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", alias="GEMINI_MODEL")
    ai_temperature: float = Field(default=0.3, alias="AI_TEMPERATURE")
    ai_max_tokens: int = Field(default=2000, alias="AI_MAX_TOKENS")
    ai_max_retries: int = Field(default=2, alias="AI_MAX_RETRIES")
    ai_retry_base_delay: float = Field(default=1.0, alias="AI_RETRY_BASE_DELAY")

    # Cache
    cache_default_ttl_seconds: float = Field(default=3600, alias="CACHE_DEFAULT_TTL_SECONDS")
    cache_max_size: int = Field(default=1000, alias="CACHE_MAX_SIZE")
    synthesis_cache_ttl_seconds: float = Field(default=1800, alias="SYNTHESIS_CACHE_TTL_SECONDS")

    # Processing
    record_ttl_hours: float = Field(default=24, alias="RECORD_TTL_HOURS")

    # Orchestration
    agent_max_response_time: float = Field(default=30.0, alias="AGENT_MAX_RESPONSE_TIME")

    # Ingestion
    source_timeout_seconds: float = Field(default=30.0, alias="SOURCE_TIMEOUT_SECONDS")
    user_agent: str = Field(default="Trenddit-Intelligence-Engine/1.0", alias="USER_AGENT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


# Intelligence sources. Paid APIs ship disabled.
DATA_SOURCES = [
    # Social
    {
        "id": "reddit_ml",
        "name": "Reddit Machine Learning",
        "type": "social",
        "url": "https://www.reddit.com/r/MachineLearning.json",
        "rate_limit_per_hour": 100,
        "reliability": 0.7,
        "enabled": True,
    },
    {
        "id": "reddit_ai",
        "name": "Reddit Artificial Intelligence",
        "type": "social",
        "url": "https://www.reddit.com/r/artificial.json",
        "rate_limit_per_hour": 100,
        "reliability": 0.7,
        "enabled": True,
    },
    # Technical
    {
        "id": "hackernews",
        "name": "Hacker News",
        "type": "technical",
        "url": "https://hacker-news.firebaseio.com/v0/topstories.json",
        "rate_limit_per_hour": 200,
        "reliability": 0.8,
        "enabled": True,
    },
    # News
    {
        "id": "techcrunch",
        "name": "TechCrunch",
        "type": "news",
        "url": "https://techcrunch.com/wp-json/wp/v2/posts",
        "rate_limit_per_hour": 50,
        "reliability": 0.9,
        "enabled": True,
    },
    {
        "id": "venturebeat",
        "name": "VentureBeat",
        "type": "news",
        "url": "https://venturebeat.com/feed/",
        "rate_limit_per_hour": 50,
        "reliability": 0.8,
        "enabled": True,
    },
    # Financial
    {
        "id": "crunchbase",
        "name": "Crunchbase",
        "type": "financial",
        "url": "https://api.crunchbase.com/api/v4",
        "rate_limit_per_hour": 20,
        "reliability": 0.95,
        "enabled": False,
    },
    # Reviews
    {
        "id": "g2",
        "name": "G2 Reviews",
        "type": "reviews",
        "url": "https://www.g2.com/api/v1",
        "rate_limit_per_hour": 100,
        "reliability": 0.85,
        "enabled": False,
    },
]

# Trend generation categories
TREND_CATEGORIES = {
    "consumer": "consumer AI/tech products",
    "competition": "AI company strategies & acquisitions",
    "economy": "AI market trends & investments",
    "regulation": "AI regulations & policies",
}


@lru_cache
def get_settings() -> Settings:
    """Get application settings singleton"""
    return Settings()
