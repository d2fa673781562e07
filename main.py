"""DeepContent research jobs

Simple CLI for running one research job, or checking whether a job that lost
its client has already finished.
"""

import argparse
import asyncio
import json

from app.models.research import ResearchRequest
from app.services import recovery
from app.services.job_runner import JobRunner
from app.services.result_cache import build_cache


async def run_job(request: ResearchRequest, cache_backend: str | None = None):
    """Run a job in-process and print each event frame as it arrives."""
    print(f"Research topic: {request.topic}")
    print("-" * 50)

    cache = build_cache(cache_backend)
    runner = JobRunner(cache)
    try:
        async for event in runner.stream(request):
            if event.event.value == "progress":
                print(f"[~] {event.data.get('progress')}% {event.data.get('status')}")
            elif event.event.value == "completed":
                source = "cache" if event.data.get("fromCache") else "research service"
                print(f"\n[*] Research complete (from {source})")
                print(f"{'=' * 50}")
                print(event.data.get("research", ""))
            elif event.event.value == "error":
                print(f"\n[!] Error: {event.data.get('error', 'Unknown error')}")
    finally:
        await runner.drain()
        await cache.close()


async def check_job(request: ResearchRequest, cache_backend: str | None = None):
    cache = build_cache(cache_backend)
    try:
        outcome = await recovery.check_completion(cache, request)
    finally:
        await cache.close()
    print(json.dumps(outcome, indent=2))


def main():
    parser = argparse.ArgumentParser(description="DeepContent research jobs")
    parser.add_argument("--topic", "-t", required=True, help="Research topic")
    parser.add_argument("--content-type", default="article", help="Content type (default: article)")
    parser.add_argument("--platform", default="general", help="Target platform (default: general)")
    parser.add_argument("--language", default="en", help="Language code (default: en)")
    parser.add_argument("--cache", help="Cache backend override: memory | file | postgres | none")
    parser.add_argument("--check", action="store_true", help="Only look for a finished result")

    args = parser.parse_args()
    request = ResearchRequest(
        topic=args.topic,
        content_type=args.content_type,
        platform=args.platform,
        language=args.language,
    )

    if args.check:
        asyncio.run(check_job(request, args.cache))
    else:
        asyncio.run(run_job(request, args.cache))


if __name__ == "__main__":
    main()
