"""
Provider Sources - Concrete capability adapters.

Available sources:
- DexScreener (market snapshot, whale estimate, technical estimate)
- X recent search (social mentions, bearer token)
- Reddit OAuth search over crypto subreddits (social mentions, client credentials)
- Reddit search (social mentions)
- RugCheck (Solana holder distribution + security)
- Etherscan V2 (EVM holder distribution, API key)
- Birdeye (holder count, API key)
- Demo (deterministic data for any capability)
"""

from .birdeye import BirdeyeHolderSource
from .demo import DemoDataProvider
from .dexscreener import (
    DexScreenerMarketSource,
    DexScreenerSource,
    DexScreenerTechnicalSource,
    DexScreenerWhaleSource,
)
from .etherscan import EtherscanHolderSource
from .reddit import RedditMentionsSource
from .reddit_oauth import RedditOAuthMentionsSource
from .rugcheck import RugCheckHolderSource
from .x_mentions import XMentionsSource


__all__ = [
    "BirdeyeHolderSource",
    "DemoDataProvider",
    "DexScreenerMarketSource",
    "DexScreenerSource",
    "DexScreenerTechnicalSource",
    "DexScreenerWhaleSource",
    "EtherscanHolderSource",
    "RedditMentionsSource",
    "RedditOAuthMentionsSource",
    "RugCheckHolderSource",
    "XMentionsSource",
]
