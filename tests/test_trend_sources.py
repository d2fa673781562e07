from __future__ import annotations

from datetime import datetime, timezone

import httpx
import pytest

from app.config import settings
from app.models.trends import TrendItem
from app.services import trend_sources
from app.services.errors import CollaboratorError
from app.tools import reddit_trends, rss_trends

SAMPLE_RSS = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Small Business Daily</title>
    <link>https://example.com</link>
    <description>News</description>
    <item>
      <title>Local shops embrace subscriptions</title>
      <link>https://example.com/subscriptions</link>
      <description>&lt;p&gt;Owners are &lt;b&gt;testing&lt;/b&gt; monthly boxes.&lt;/p&gt;</description>
      <pubDate>Sat, 01 Mar 2025 12:00:00 GMT</pubDate>
      <category>Retail</category>
    </item>
    <item>
      <title>Second story</title>
      <link>https://example.com/second</link>
      <pubDate>Fri, 28 Feb 2025 08:30:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""


def _trend(title: str) -> TrendItem:
    return TrendItem(
        title=title,
        summary="",
        pub_date=datetime(2025, 3, 1, tzinfo=timezone.utc),
        source="test",
        source_type="rss",
    )


@pytest.mark.asyncio
async def test_failing_source_contributes_empty_list():
    async def broken(business_type: str):
        raise RuntimeError("feed down")

    async def working(business_type: str):
        return [_trend("Coffee demand rises")]

    payload = await trend_sources.list_trends(
        "coffee",
        sources={"reddit": broken, "rss": working},
    )

    assert payload["success"] is True
    assert payload["sources"] == {"reddit": False, "rss": True}
    assert [item["title"] for item in payload["data"]] == ["Coffee demand rises"]
    assert payload["data"][0]["sourceType"] == "rss"
    assert payload["data"][0]["pubDate"] == "2025-03-01T00:00:00+00:00"


@pytest.mark.asyncio
async def test_all_sources_failing_still_succeeds_with_no_data():
    async def broken(business_type: str):
        raise RuntimeError("down")

    payload = await trend_sources.list_trends("general", sources={"rss": broken})

    assert payload == {"success": True, "data": [], "sources": {"rss": False}}


@pytest.mark.asyncio
async def test_research_topic_filters_trends():
    async def source(business_type: str):
        return [_trend("Coffee demand rises"), _trend("Stock market wobbles")]

    payload = await trend_sources.list_trends("general", "coffee roasting", sources={"rss": source})

    assert [item["title"] for item in payload["data"]] == ["Coffee demand rises"]


def test_parse_feed_builds_trend_items():
    items = rss_trends.parse_feed(SAMPLE_RSS, "https://example.com/feed.xml")

    assert len(items) == 2
    first = items[0]
    assert first.title == "Local shops embrace subscriptions"
    assert first.source == "Small Business Daily"
    assert first.source_type == "rss"
    assert first.summary == "Owners are testing monthly boxes."
    assert first.pub_date == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert first.url == "https://example.com/subscriptions"
    assert items[1].summary == "No summary available"


def test_extract_summary_decodes_entities_and_drops_tags():
    summary = rss_trends.extract_summary("<p>Ben &amp; Jerry&#39;s <b>new</b> flavor</p>")

    assert summary == "Ben & Jerry's new flavor"


def test_extract_summary_truncates_long_text():
    summary = rss_trends.extract_summary("word " * 200)

    assert summary.endswith("...")
    assert len(summary) == rss_trends.SUMMARY_CHARS + 3


@pytest.mark.asyncio
async def test_rss_fetch_skips_failing_feeds(monkeypatch):
    monkeypatch.setattr(settings, "rss_feed_urls", "https://good.example/feed,https://bad.example/feed")

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "bad.example":
            return httpx.Response(500)
        return httpx.Response(200, text=SAMPLE_RSS)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        items = await rss_trends.fetch_trends("general", http_client=client)

    assert [item.title for item in items] == ["Local shops embrace subscriptions", "Second story"]


def test_subreddits_follow_business_type():
    assert reddit_trends.subreddits_for("Rural Internet Provider")[0] == "technology"
    assert "SEO" in reddit_trends.subreddits_for("Social Media agency")
    assert reddit_trends.subreddits_for("bakery") == reddit_trends.DEFAULT_SUBREDDITS


@pytest.mark.asyncio
async def test_reddit_without_credentials_returns_nothing(monkeypatch):
    monkeypatch.setattr(settings, "reddit_client_id", "")
    monkeypatch.setattr(settings, "reddit_client_secret", "")

    assert await reddit_trends.fetch_trends("general") == []


@pytest.mark.asyncio
async def test_reddit_fetch_maps_hot_posts(monkeypatch):
    monkeypatch.setattr(settings, "reddit_client_id", "client")
    monkeypatch.setattr(settings, "reddit_client_secret", "secret")
    monkeypatch.setattr(settings, "reddit_max_subreddits", 2)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/v1/access_token":
            return httpx.Response(200, json={"access_token": "token"})
        assert request.headers["Authorization"] == "Bearer token"
        if request.url.path == "/r/marketing/hot":
            return httpx.Response(503)
        return httpx.Response(
            200,
            json={
                "data": {
                    "children": [
                        {
                            "data": {
                                "title": "What is working for you this quarter?",
                                "selftext": "Curious what channels people rely on.",
                                "subreddit": "business",
                                "permalink": "/r/business/comments/abc/",
                                "created_utc": 1740830400,
                                "score": 42,
                            }
                        },
                        {"data": {"title": ""}},
                    ]
                }
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        items = await reddit_trends.fetch_trends("bakery", http_client=client)

    assert len(items) == 1
    item = items[0]
    assert item.source == "r/business"
    assert item.source_type == "reddit"
    assert item.score == 42
    assert item.url == "https://www.reddit.com/r/business/comments/abc/"
    assert item.pub_date == datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_reddit_auth_failure_raises(monkeypatch):
    monkeypatch.setattr(settings, "reddit_client_id", "client")
    monkeypatch.setattr(settings, "reddit_client_secret", "secret")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(CollaboratorError):
            await reddit_trends.fetch_trends("general", http_client=client)
