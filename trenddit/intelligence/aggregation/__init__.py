"""Source aggregation: rate limiting, fetching and payload parsing."""

from .parsers import PayloadParseError, decode_body, parse_payload
from .rate_limiter import SlidingWindowRateLimiter
from .source_fetcher import SourceFetcher

__all__ = [
    "PayloadParseError",
    "SlidingWindowRateLimiter",
    "SourceFetcher",
    "decode_body",
    "parse_payload",
]
