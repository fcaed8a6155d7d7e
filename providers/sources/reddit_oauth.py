"""
Reddit OAuth Source - Authenticated search over crypto subreddits.

Uses the application-only OAuth flow (client credentials grant), which
gets a far larger request allowance than the anonymous search.json
endpoint. The credential is one string, "client_id:client_secret"
(REDDIT_CLIENT_CREDENTIALS).

The bearer token is cached until shortly before it expires.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from ..exceptions import AuthenticationError, ParseError
from ..models import Capability, ProviderMetadata
from .reddit import RedditMentionsSource


logger = logging.getLogger(__name__)


class RedditOAuthMentionsSource(RedditMentionsSource):
    """SOCIAL_MENTIONS from targeted subreddits through oauth.reddit.com."""

    BASE_URL = "https://oauth.reddit.com"
    TOKEN_URL = "https://www.reddit.com/api/v1/access_token"
    TOKEN_REFRESH_MARGIN = 60  # seconds

    TARGET_SUBREDDITS = (
        "CryptoCurrency",
        "CryptoMoonShots",
        "SatoshiStreetBets",
        "altcoin",
        "defi",
        "solana",
        "ethtrader",
        "CryptoMarkets",
    )

    def __init__(self, capability: Capability = Capability.SOCIAL_MENTIONS, **kwargs: Any) -> None:
        super().__init__(capability, **kwargs)
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()

    @property
    def metadata(self) -> ProviderMetadata:
        return ProviderMetadata(
            name="reddit_oauth",
            display_name="Reddit (OAuth)",
            capabilities=(Capability.SOCIAL_MENTIONS,),
            requires_api_key=True,
            base_url=self.BASE_URL,
            documentation_url="https://github.com/reddit-archive/reddit/wiki/OAuth2",
            tags=["social", "mentions", "oauth"],
        )

    @property
    def is_configured(self) -> bool:
        return self._client_credentials() is not None

    def _client_credentials(self) -> Optional[tuple[str, str]]:
        client_id, _, client_secret = (self.api_key or "").partition(":")
        if not client_id.strip() or not client_secret.strip():
            return None
        return client_id.strip(), client_secret.strip()

    # ─────────────────────────────────────────────────────────────
    # Search
    # ─────────────────────────────────────────────────────────────

    async def _search(self, term: str) -> Optional[Any]:
        token = await self._get_access_token()
        subreddits = "+".join(self.TARGET_SUBREDDITS)
        try:
            return await self._get_json(
                f"{self.BASE_URL}/r/{subreddits}/search",
                params={**self._search_params(term), "restrict_sr": "1"},
                headers={"Authorization": f"Bearer {token}"},
            )
        except AuthenticationError:
            # Revoked or expired early; the next call fetches a new token
            self._access_token = None
            raise

    async def _get_access_token(self) -> str:
        async with self._token_lock:
            now = self._clock.timestamp()
            if self._access_token and now < self._token_expires_at - self.TOKEN_REFRESH_MARGIN:
                return self._access_token

            client_id, client_secret = self._client_credentials()
            data = await self._post_json(
                self.TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=aiohttp.BasicAuth(client_id, client_secret),
            )
            token = data.get("access_token") if isinstance(data, dict) else None
            if not token:
                raise ParseError(
                    "Reddit token response carried no access_token",
                    source_name=self.name,
                    raw_data=str(data),
                )

            self._access_token = token
            self._token_expires_at = now + float(data.get("expires_in") or 3600)
            logger.info(f"[{self.name}] Obtained application token")
            return token
