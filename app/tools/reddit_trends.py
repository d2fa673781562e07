from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx

from app.config import settings
from app.models.trends import TrendItem
from app.services import logger as log_service
from app.services.errors import CollaboratorError

REDDIT_TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
REDDIT_API_BASE = "https://oauth.reddit.com"
DEVICE_ID = "DEEPCONTENT_APP_ID_FIXED"
SUMMARY_CHARS = 250

DEFAULT_SUBREDDITS = ["business", "marketing", "entrepreneur", "smallbusiness"]

SUBREDDITS_BY_KEYWORD: list[tuple[tuple[str, ...], list[str]]] = [
    (
        ("internet", "isp", "tech", "broadband"),
        ["technology", "broadband", "Starlink", "wisp", "Rural_Internet", "ruralinternet", "telecom", "networking"],
    ),
    (
        ("marketing", "social media"),
        ["marketing", "socialmedia", "digitalmarketing", "contentmarketing", "SEO", "advertising", "socialmediamanagers"],
    ),
    (
        ("finance", "accounting"),
        ["finance", "accounting", "smallbusiness", "financialplanning", "tax", "investing", "entrepreneur"],
    ),
]


def subreddits_for(business_type: str) -> list[str]:
    lowered = business_type.lower()
    for keywords, subreddits in SUBREDDITS_BY_KEYWORD:
        if any(keyword in lowered for keyword in keywords):
            return [*subreddits, *DEFAULT_SUBREDDITS]
    return list(DEFAULT_SUBREDDITS)


def is_configured() -> bool:
    return bool(settings.reddit_client_id and settings.reddit_client_secret)


def _post_to_item(post: dict[str, Any]) -> TrendItem:
    selftext = (post.get("selftext") or "").strip()
    summary = selftext[:SUMMARY_CHARS] + ("..." if len(selftext) > SUMMARY_CHARS else "")
    created = post.get("created_utc")
    pub_date = (
        datetime.fromtimestamp(created, tz=timezone.utc)
        if isinstance(created, (int, float))
        else None
    )
    return TrendItem(
        title=str(post.get("title") or "").strip(),
        summary=summary or "No description available",
        pub_date=pub_date,
        source=f"r/{post.get('subreddit', '')}",
        source_type="reddit",
        url=f"https://www.reddit.com{post.get('permalink', '')}",
        score=int(post.get("score") or 0),
    )


async def _access_token(client: httpx.AsyncClient) -> str:
    response = await client.post(
        REDDIT_TOKEN_URL,
        auth=(settings.reddit_client_id, settings.reddit_client_secret),
        data={
            "grant_type": "https://oauth.reddit.com/grants/installed_client",
            "device_id": DEVICE_ID,
        },
        headers={"User-Agent": settings.reddit_user_agent},
    )
    response.raise_for_status()
    token = response.json().get("access_token")
    if not isinstance(token, str) or not token:
        raise CollaboratorError("Reddit authentication returned no access token")
    return token


async def _fetch_subreddit(client: httpx.AsyncClient, subreddit: str, token: str) -> list[dict[str, Any]]:
    response = await client.get(
        f"{REDDIT_API_BASE}/r/{subreddit}/hot",
        params={"limit": 25},
        headers={
            "Authorization": f"Bearer {token}",
            "User-Agent": settings.reddit_user_agent,
        },
    )
    response.raise_for_status()
    children = response.json().get("data", {}).get("children", [])
    return [child.get("data", {}) for child in children if isinstance(child, dict)]


async def fetch_trends(
    business_type: str,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> list[TrendItem]:
    """Hot posts from subreddits relevant to the business type.

    Returns an empty list when credentials are missing. A failing subreddit
    contributes nothing; an authentication failure raises CollaboratorError.
    """
    if not is_configured():
        log_service.log_collaborator_call("reddit", "skipped", reason="credentials not configured")
        return []

    subreddits = subreddits_for(business_type)[: settings.reddit_max_subreddits]

    async def _run(client: httpx.AsyncClient) -> list[TrendItem]:
        try:
            token = await _access_token(client)
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Reddit authentication failed: {e}") from e

        results = await asyncio.gather(
            *(_fetch_subreddit(client, name, token) for name in subreddits),
            return_exceptions=True,
        )
        items: list[TrendItem] = []
        for name, result in zip(subreddits, results):
            if isinstance(result, Exception):
                log_service.log_collaborator_call("reddit", "error", error=str(result), subreddit=name)
                continue
            items.extend(_post_to_item(post) for post in result if post.get("title"))
        return items

    if http_client is None:
        async with httpx.AsyncClient(timeout=30.0) as client:
            items = await _run(client)
    else:
        items = await _run(http_client)

    log_service.log_collaborator_call("reddit", "success", items=len(items), subreddits=len(subreddits))
    return items
