"""
Keyword Sentiment - Crypto-specific bullish/bearish keyword classifier.

Used by the social sources to split mentions into positive, negative and
neutral buckets.
"""

from typing import Iterable


POSITIVE_WORDS: tuple[str, ...] = (
    "bullish", "moon", "pump", "rally", "breakout", "surge", "rocket", "lambo",
    "hold", "hodl", "diamond", "hands", "buy", "accumulate", "long", "green",
    "profit", "gain", "up", "rise", "climb", "soar", "explode", "gem",
    "good", "great", "amazing", "awesome", "love", "like", "win", "success",
)

NEGATIVE_WORDS: tuple[str, ...] = (
    "bearish", "dump", "crash", "fall", "drop", "red", "loss", "lose",
    "scam", "rug", "rugpull", "fraud", "fake", "ponzi", "rekt", "liquidated",
    "dead", "worthless", "trash", "terrible", "awful", "hate", "avoid",
    "sell", "short", "down", "decline", "plunge", "collapse", "disaster",
)


def classify_text(text: str) -> str:
    """Return "positive", "negative" or "neutral" for one post."""
    lowered = (text or "").lower()
    positive = sum(1 for w in POSITIVE_WORDS if w in lowered)
    negative = sum(1 for w in NEGATIVE_WORDS if w in lowered)

    if positive > negative:
        return "positive"
    if negative > positive:
        return "negative"
    return "neutral"


def count_sentiment(texts: Iterable[str]) -> tuple[int, int, int]:
    """Count (positive, negative, neutral) posts."""
    counts = {"positive": 0, "negative": 0, "neutral": 0}
    for text in texts:
        counts[classify_text(text)] += 1
    return counts["positive"], counts["negative"], counts["neutral"]
