from __future__ import annotations

import asyncio
import re
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlsplit

import feedparser
import httpx
from bs4 import BeautifulSoup

from app.config import settings
from app.models.trends import TrendItem
from app.services import logger as log_service

SUMMARY_CHARS = 250
ENTRIES_PER_FEED = 20

DEFAULT_FEEDS = [
    "https://news.google.com/rss/topics/business",
    "https://feeds.a.dj.com/rss/RSSMarketsMain.xml",
    "https://rss.nytimes.com/services/xml/rss/nyt/Technology.xml",
]

FEEDS_BY_KEYWORD: list[tuple[tuple[str, ...], list[str]]] = [
    (
        ("internet", "isp", "tech"),
        [
            "https://rss.nytimes.com/services/xml/rss/nyt/Technology.xml",
            "https://www.wired.com/feed/rss",
            "https://www.theverge.com/rss/index.xml",
            "https://feeds.arstechnica.com/arstechnica/technology-lab",
            "https://www.fiercetelecom.com/rss/xml",
        ],
    ),
    (
        ("marketing", "social media"),
        [
            "https://feeds.feedburner.com/ducttapemarketing/nRUD",
            "https://feeds2.feedburner.com/socialmediaexaminer",
            "https://blog.hubspot.com/marketing/rss.xml",
            "https://contentmarketinginstitute.com/feed/",
        ],
    ),
    (
        ("finance", "accounting"),
        [
            "https://feeds.a.dj.com/rss/RSSMarketsMain.xml",
            "https://feeds.a.dj.com/rss/WSJcomUSBusiness.xml",
            "https://www.forbes.com/business/feed/",
            "https://www.ft.com/rss/companies",
        ],
    ),
]

_SPACES = re.compile(r"\s+")


def feeds_for(business_type: str) -> list[str]:
    defaults = settings.rss_feed_list or DEFAULT_FEEDS
    lowered = business_type.lower()
    for keywords, feeds in FEEDS_BY_KEYWORD:
        if any(keyword in lowered for keyword in keywords):
            return [*feeds, *defaults]
    return list(defaults)


def extract_summary(html: str | None) -> str:
    text = _SPACES.sub(" ", BeautifulSoup(html or "", "html.parser").get_text(" ", strip=True))
    if not text:
        return "No summary available"
    return text[:SUMMARY_CHARS] + ("..." if len(text) > SUMMARY_CHARS else "")


def _entry_date(entry: Any) -> datetime | None:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return None
    return datetime(*parsed[:6], tzinfo=timezone.utc)


def parse_feed(text: str, feed_url: str) -> list[TrendItem]:
    feed = feedparser.parse(text)
    source = feed.feed.get("title") or urlsplit(feed_url).hostname or feed_url
    items: list[TrendItem] = []
    for entry in feed.entries[:ENTRIES_PER_FEED]:
        title = (entry.get("title") or "").strip()
        if not title:
            continue
        items.append(
            TrendItem(
                title=title,
                summary=extract_summary(entry.get("summary") or entry.get("description")),
                pub_date=_entry_date(entry),
                source=source,
                source_type="rss",
                url=entry.get("link", ""),
                categories=tuple(tag.get("term", "") for tag in entry.get("tags", []) if tag.get("term")),
            )
        )
    return items


async def _fetch_feed(client: httpx.AsyncClient, feed_url: str) -> list[TrendItem]:
    response = await client.get(feed_url, follow_redirects=True)
    response.raise_for_status()
    return parse_feed(response.text, feed_url)


async def fetch_trends(
    business_type: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[TrendItem]:
    """Recent entries from news feeds relevant to the business type. A failing feed contributes nothing."""
    feeds = feeds_for(business_type)[: settings.rss_max_feeds]

    async def _run(client: httpx.AsyncClient) -> list[TrendItem]:
        results = await asyncio.gather(
            *(_fetch_feed(client, url) for url in feeds),
            return_exceptions=True,
        )
        items: list[TrendItem] = []
        for url, result in zip(feeds, results):
            if isinstance(result, Exception):
                log_service.log_collaborator_call("rss", "error", error=str(result), feed=url)
                continue
            items.extend(result)
        return items

    if http_client is None:
        async with httpx.AsyncClient(timeout=30.0) as client:
            items = await _run(client)
    else:
        items = await _run(http_client)

    log_service.log_collaborator_call("rss", "success", items=len(items), feeds=len(feeds))
    return items
