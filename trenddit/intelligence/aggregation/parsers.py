"""Response parsing per source type."""

import json
import logging
from typing import Any

import feedparser

from ..models.intelligence import DataSource, SourceType


logger = logging.getLogger(__name__)

# Hacker News returns ~500 ids; only the head is worth processing
TECHNICAL_ITEM_LIMIT = 10

NEWS_ENVELOPE_KEYS = ("articles", "items", "results", "posts")


class PayloadParseError(ValueError):
    """Raised when a response body cannot be decoded."""


def decode_body(body: str, content_type: str = "") -> Any:
    """
    Decode a response body.

    XML bodies (RSS/Atom) go through feedparser and come back as a list of
    entry dicts; everything else must be JSON.
    """
    text = body.lstrip()
    if "xml" in content_type or text.startswith("<"):
        return _parse_feed(body)

    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise PayloadParseError(f"Invalid JSON payload: {e}") from e


def _parse_feed(body: str) -> list[dict]:
    feed = feedparser.parse(body)

    if feed.bozo and not feed.entries:
        raise PayloadParseError(f"Invalid feed payload: {feed.bozo_exception}")

    items = []
    for entry in feed.entries:
        items.append({
            "title": entry.get("title", ""),
            "summary": entry.get("summary", ""),
            "link": entry.get("link"),
            "author": entry.get("author"),
            "published": entry.get("published"),
        })
    return items


def parse_payload(source: DataSource, data: Any) -> list[Any]:
    """
    Split decoded data into payload fragments.
    Each fragment becomes one RawIntelligence.
    """
    if source.type == SourceType.SOCIAL:
        return _parse_social(data, source.id)
    if source.type == SourceType.NEWS:
        return _parse_news(data)
    if source.type == SourceType.TECHNICAL:
        return _parse_technical(data, source.id)
    if source.type in (SourceType.FINANCIAL, SourceType.REVIEWS):
        return _parse_enveloped(data)
    return _as_list(data)


def _as_list(data: Any) -> list[Any]:
    if data is None:
        return []
    return list(data) if isinstance(data, list) else [data]


def _parse_social(data: Any, source_id: str) -> list[Any]:
    # Reddit listing: {"data": {"children": [{"data": {...}}, ...]}}
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        children = data["data"].get("children") or []
        return [child.get("data", child) for child in children if isinstance(child, dict)]

    if "reddit" in source_id:
        logger.debug(f"Unexpected Reddit payload shape for {source_id}")
    return _as_list(data)


def _parse_news(data: Any) -> list[Any]:
    if isinstance(data, dict):
        for key in NEWS_ENVELOPE_KEYS:
            if isinstance(data.get(key), list):
                return data[key]
    return _as_list(data)


def _parse_technical(data: Any, source_id: str) -> list[Any]:
    if isinstance(data, list):
        return data[:TECHNICAL_ITEM_LIMIT]
    if source_id == "hackernews":
        return []
    return _as_list(data)


def _parse_enveloped(data: Any) -> list[Any]:
    if isinstance(data, dict):
        inner = data.get("data")
        if inner is None:
            return []
        return _as_list(inner)
    return _as_list(data)
