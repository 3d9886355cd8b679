"""
Command line entry point for the intelligence engine.

Usage:
    python -m trenddit.intelligence.pipeline synthesize "AI adoption in healthcare"
    python -m trenddit.intelligence.pipeline trends --count 20 --industry healthcare
    python -m trenddit.intelligence.pipeline ingest --sources hackernews techcrunch
"""

import asyncio
import argparse
import logging
import json
import sys
from typing import Optional

from dotenv import load_dotenv

from .models.trends import BatchProgress, TrendProfile
from .orchestration import IntelligenceSynthesisError
from .service import IntelligenceService
from config.settings import get_settings


logger = logging.getLogger(__name__)


async def run_synthesis(
    service: IntelligenceService,
    query: str,
    sources: Optional[list[str]] = None,
    threshold: float = 0.7,
    include_reasoning: bool = True,
) -> dict:
    return await service.synthesize_market_intelligence(
        query,
        data_sources=sources,
        confidence_threshold=threshold,
        include_reasoning_chain=include_reasoning,
    )


async def run_trends(
    service: IntelligenceService,
    count: int = 20,
    profile: Optional[TrendProfile] = None,
) -> dict:
    """Stream trend batches, printing progress as each one lands."""

    def report(progress: BatchProgress):
        print(
            f"[{progress.completed_batches}/{progress.total_batches}] "
            f"{progress.progress:.0%} complete, "
            f"~{progress.estimated_time_remaining_ms / 1000:.1f}s remaining"
        )

    trends = []
    errors = []
    async for batch in service.stream_trends(count, profile, report):
        if batch.error:
            errors.append({"category": batch.category.value if batch.category else None, "error": batch.error})
            continue
        for trend in batch.trends:
            trends.append(trend.model_dump(mode="json"))
            print(f"  [{trend.category.value}] {trend.title} (impact {trend.impact_score:.0f})")

    return {"trends": trends, "errors": errors}


async def run_ingest(service: IntelligenceService, sources: Optional[list[str]] = None) -> dict:
    records = await service.ingest_and_cache(sources)

    by_type: dict[str, int] = {}
    for record in records:
        by_type[record.type.value] = by_type.get(record.type.value, 0) + 1

    return {
        "records": len(records),
        "by_type": by_type,
        "sources": service.fetcher.get_source_health(),
        "cache": service.cache.get_stats().model_dump(),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Trenddit Intelligence Engine")
    subparsers = parser.add_subparsers(dest="command", required=True)

    synthesize = subparsers.add_parser("synthesize", help="Multi-agent market synthesis")
    synthesize.add_argument("query", help="Market question to analyze")
    synthesize.add_argument(
        "--sources",
        nargs="*",
        help="Ingest these source ids before analyzing",
    )
    synthesize.add_argument(
        "--threshold",
        type=float,
        default=0.7,
        help="Minimum confidence for reusing a cached synthesis",
    )
    synthesize.add_argument(
        "--no-reasoning",
        action="store_true",
        help="Omit the reasoning chain from the output",
    )

    trends = subparsers.add_parser("trends", help="Stream generated trends")
    trends.add_argument("--count", type=int, default=20, help="Total trends across all categories")
    trends.add_argument("--industry", help="Focus trends on this industry")
    trends.add_argument("--market", help="Target market")
    trends.add_argument("--customer", help="Customer segment")
    trends.add_argument("--size", help="Business size")

    ingest = subparsers.add_parser("ingest", help="Fetch, process and cache source data")
    ingest.add_argument("--sources", nargs="*", help="Source ids (default: all enabled)")

    parser.add_argument("--output", help="Write the JSON result to this file")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    load_dotenv()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)
    service = IntelligenceService(settings=settings)

    try:
        if args.command == "synthesize":
            result = asyncio.run(run_synthesis(
                service,
                args.query,
                sources=args.sources,
                threshold=args.threshold,
                include_reasoning=not args.no_reasoning,
            ))
        elif args.command == "trends":
            profile = None
            if args.industry:
                profile = TrendProfile(
                    industry=args.industry,
                    market=args.market,
                    customer=args.customer,
                    business_size=args.size,
                )
            result = asyncio.run(run_trends(service, args.count, profile))
        else:
            result = asyncio.run(run_ingest(service, args.sources))
    except IntelligenceSynthesisError as e:
        logger.error(str(e))
        return 1
    finally:
        service.close()

    output = json.dumps(result, indent=2, default=str)
    if args.output:
        with open(args.output, "w") as f:
            f.write(output)
        logger.info(f"Result saved: {args.output}")
    else:
        print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
