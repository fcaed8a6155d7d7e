"""
Reddit Mentions Source - Public search.json endpoint, no credentials.

Fallback for X. Reddit search has no time-window parameter finer than
"week", so posts are fetched once and split into the current and previous
24h windows by their creation time.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from ..base import HttpProvider
from ..models import Capability, Mention, ProviderMetadata, SocialMentions
from .keywords import count_sentiment


logger = logging.getLogger(__name__)


class RedditMentionsSource(HttpProvider):
    """
    SOCIAL_MENTIONS from Reddit search.

    Reach is estimated as post score x 10.
    """

    BASE_URL = "https://www.reddit.com"
    PERMALINK_BASE = "https://www.reddit.com"
    USER_AGENT = "token-report-engine/1.0 (research tool)"
    DEFAULT_SUCCESS_TTL_MS = 900_000  # 15 minutes
    DEFAULT_ERROR_TTL_MS = 300_000  # 5 minutes
    WINDOW_HOURS = 24
    SEARCH_LIMIT = 100
    TOP_MENTIONS = 5

    def __init__(self, capability: Capability = Capability.SOCIAL_MENTIONS, **kwargs: Any) -> None:
        super().__init__(capability, **kwargs)

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.SOCIAL_MENTIONS,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="reddit",
            display_name="Reddit",
            capabilities=(Capability.SOCIAL_MENTIONS,),
            requires_api_key=False,
            base_url=self.BASE_URL,
            documentation_url="https://www.reddit.com/dev/api/#GET_search",
            tags=["social", "mentions", "free"],
        )

    def _default_headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "User-Agent": self.USER_AGENT}

    async def _fetch_data(self, token_key: str) -> Optional[SocialMentions]:
        term = token_key.strip().lstrip("$")
        data = await self._search(term)
        if data is None:
            return None
        return self._summarize(self._extract_posts(data))

    async def _search(self, term: str) -> Optional[Any]:
        return await self._get_json(
            f"{self.BASE_URL}/search.json",
            params=self._search_params(term),
        )

    def _search_params(self, term: str) -> dict[str, str]:
        return {
            "q": f'"{term}" OR "${term.upper()}"',
            "sort": "new",
            "t": "week",
            "limit": str(self.SEARCH_LIMIT),
            "type": "link",
        }

    def _summarize(self, posts: list[dict[str, Any]]) -> SocialMentions:
        """Split posts into the current and previous windows and score them."""
        now = self._clock.timestamp()
        window = self.WINDOW_HOURS * 3600
        current = [p for p in posts if now - float(p.get("created_utc") or 0) <= window]
        previous = [
            p for p in posts
            if window < now - float(p.get("created_utc") or 0) <= 2 * window
        ]

        positive, negative, neutral = count_sentiment(
            f"{p.get('title', '')} {p.get('selftext', '')}" for p in current
        )

        return SocialMentions(
            current_count=len(current),
            previous_count=len(previous),
            positive=positive,
            negative=negative,
            neutral=neutral,
            total_reach=sum(int(p.get("score") or 0) * 10 for p in current),
            window_hours=self.WINDOW_HOURS,
            top_mentions=self._top_mentions(current),
            source=self.name,
        )

    @staticmethod
    def _extract_posts(data: Any) -> list[dict[str, Any]]:
        if not isinstance(data, dict):
            return []
        children = (data.get("data") or {}).get("children") or []
        return [c.get("data") or {} for c in children if isinstance(c, dict)]

    def _top_mentions(self, posts: list[dict[str, Any]]) -> tuple[Mention, ...]:
        ranked = sorted(
            posts,
            key=lambda p: int(p.get("score") or 0) + int(p.get("num_comments") or 0),
            reverse=True,
        )
        return tuple(
            Mention(
                platform=f"reddit-{p.get('subreddit', '')}",
                content=(p.get("title") or "")[:200],
                engagement=int(p.get("score") or 0) + int(p.get("num_comments") or 0),
                author=p.get("author", ""),
                url=f"{self.PERMALINK_BASE}{p['permalink']}" if p.get("permalink") else "",
                created_at=(
                    datetime.fromtimestamp(float(p["created_utc"]), tz=timezone.utc)
                    if p.get("created_utc") else None
                ),
            )
            for p in ranked[:self.TOP_MENTIONS]
        )
