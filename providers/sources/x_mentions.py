"""
X (Twitter) Mentions Source - Recent-search API v2.

Requires a bearer token (X_BEARER_TOKEN). Without it the provider answers
UNCONFIGURED and performs no I/O.

Two searches are made per token: the current window and the window
before it, so the mention trend can be computed.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

from core.clock import from_iso8601

from ..base import HttpProvider
from ..models import Capability, Mention, ProviderMetadata, SocialMentions
from .keywords import count_sentiment


logger = logging.getLogger(__name__)


def build_search_query(token: str) -> str:
    """Build an X search query covering common spellings of a ticker."""
    token = token.strip().lstrip("$")
    upper = token.upper()
    variants = [
        f'"{token}"',
        f'"{upper}"',
        f'"${token}"',
        f'"${upper}"',
        f"{token} token",
        f"{token} coin",
        f"{token} crypto",
    ]
    # Keep order, drop duplicates when the token is already upper-case
    unique = list(dict.fromkeys(variants))
    return f"({' OR '.join(unique)}) lang:en -is:retweet"


class XMentionsSource(HttpProvider):
    """
    SOCIAL_MENTIONS from X API v2 recent search.

    Features:
    - Current vs previous window mention counts
    - Keyword sentiment split
    - Reach = author followers + engagement
    - Top 5 mentions by engagement
    """

    BASE_URL = "https://api.twitter.com/2"
    DEFAULT_TIMEOUT = 15.0
    DEFAULT_SUCCESS_TTL_MS = 900_000  # 15 minutes
    DEFAULT_ERROR_TTL_MS = 300_000  # 5 minutes
    WINDOW_HOURS = 24
    MAX_RESULTS = 100
    TOP_MENTIONS = 5

    def __init__(self, capability: Capability = Capability.SOCIAL_MENTIONS, **kwargs: Any) -> None:
        super().__init__(capability, **kwargs)

    @classmethod
    def supported_capabilities(cls) -> tuple[Capability, ...]:
        return (Capability.SOCIAL_MENTIONS,)

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="x",
            display_name="X (Twitter)",
            capabilities=(Capability.SOCIAL_MENTIONS,),
            requires_api_key=True,
            base_url=self.BASE_URL,
            documentation_url="https://developer.x.com/en/docs/twitter-api/tweets/search",
            tags=["social", "mentions"],
        )

    def _default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    async def _fetch_data(self, token_key: str) -> Optional[SocialMentions]:
        now = self._clock.now()
        window = timedelta(hours=self.WINDOW_HOURS)
        # The API rejects end_time values that are not at least 10s in the past
        end = now - timedelta(seconds=30)
        start = end - window
        previous_start = start - window

        current = await self._search(token_key, start, end)
        previous = await self._search(token_key, previous_start, start)

        tweets = current.get("data") or []
        previous_tweets = previous.get("data") or []
        users = {u.get("id"): u for u in (current.get("includes") or {}).get("users") or []}

        positive, negative, neutral = count_sentiment(t.get("text", "") for t in tweets)

        return SocialMentions(
            current_count=len(tweets),
            previous_count=len(previous_tweets),
            positive=positive,
            negative=negative,
            neutral=neutral,
            total_reach=sum(self._reach(t, users.get(t.get("author_id"))) for t in tweets),
            window_hours=self.WINDOW_HOURS,
            top_mentions=self._top_mentions(tweets, users),
            source=self.name,
        )

    async def _search(self, token_key: str, start, end) -> dict[str, Any]:
        params = {
            "query": build_search_query(token_key),
            "tweet.fields": "created_at,author_id,public_metrics,text,lang",
            "user.fields": "public_metrics,username",
            "expansions": "author_id",
            "start_time": start.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "end_time": end.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "max_results": str(self.MAX_RESULTS),
        }
        data = await self._get_json(f"{self.BASE_URL}/tweets/search/recent", params=params)
        return data if isinstance(data, dict) else {}

    @staticmethod
    def _engagement(tweet: dict[str, Any]) -> int:
        metrics = tweet.get("public_metrics") or {}
        return sum(
            int(metrics.get(k) or 0)
            for k in ("retweet_count", "like_count", "reply_count", "quote_count")
        )

    def _reach(self, tweet: dict[str, Any], user: Optional[dict[str, Any]]) -> int:
        followers = int(((user or {}).get("public_metrics") or {}).get("followers_count") or 0)
        return followers + self._engagement(tweet)

    def _top_mentions(
        self,
        tweets: list[dict[str, Any]],
        users: dict[Any, dict[str, Any]],
    ) -> tuple[Mention, ...]:
        mentions = []
        for tweet in tweets:
            created = tweet.get("created_at")
            user = users.get(tweet.get("author_id")) or {}
            mentions.append(Mention(
                platform="x",
                content=(tweet.get("text") or "")[:200],
                engagement=self._engagement(tweet),
                author=user.get("username", ""),
                url=f"https://x.com/i/web/status/{tweet['id']}" if tweet.get("id") else "",
                created_at=from_iso8601(created) if created else None,
            ))
        mentions.sort(key=lambda m: m.engagement, reverse=True)
        return tuple(mentions[:self.TOP_MENTIONS])
